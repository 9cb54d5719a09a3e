"""Prompt builders for every text-generation call."""
from typing import List, Optional, Sequence

from app.models.interview import (
    InterviewRecord,
    McqAnswer,
    McqScore,
    ProctorReport,
    Question,
    TopicStat,
    VirtualAnswer,
    VirtualScore,
)

DIFFICULTY_LABELS = {
    "easy": "basic/foundational",
    "medium": "intermediate/practical",
    "hard": "advanced/expert-level",
}


def _tech_list(tech_stack: Sequence[str]) -> str:
    return ", ".join(tech_stack or []) or "General"


def generate_jd_analysis_prompt(job_description: str, job_role: Optional[str] = None) -> str:
    return f"""You are an expert technical recruiter. Analyze this job description and extract structured information.

Job Role: {job_role or "Not specified"}
Job Description:
\"\"\"
{job_description}
\"\"\"

Respond ONLY with valid JSON:
{{
  "extractedJobRole": "string",
  "experienceLevel": "junior|mid|senior|lead",
  "primaryTechStack": ["string"],
  "secondarySkills": ["string"],
  "keyResponsibilities": ["string"],
  "coreCompetenciesRequired": ["string"],
  "suggestedInterviewConfig": {{
    "recommendedMode": "mcq|virtual",
    "recommendedDifficulty": "easy|medium|hard",
    "suggestedQuestionCount": 8,
    "suggestedDurationMinutes": 45,
    "focusAreas": ["string"]
  }},
  "summary": "string"
}}"""


def generate_questions_prompt(
    mode: str,
    num_questions: int,
    job_role: str,
    job_description: str,
    tech_stack: Sequence[str],
    difficulty: str,
) -> str:
    """Question-set prompt; the same set may be shared by a whole project."""
    header = f"""You are an expert technical interviewer. Generate exactly {num_questions} {"MCQ" if mode == "mcq" else "open-ended virtual interview"} questions.
Job Role: {job_role}
Tech Stack: {_tech_list(tech_stack)}
Difficulty: {DIFFICULTY_LABELS.get(difficulty, "intermediate")}
Job Description: \"\"\"{job_description}\"\"\"
"""
    if mode == "mcq":
        shape = f"""
Respond ONLY with a valid JSON array:
[{{
  "questionText": "string",
  "options": {{"A":"string","B":"string","C":"string","D":"string"}},
  "correctAnswer": "A|B|C|D",
  "explanation": "string",
  "topic": "string",
  "difficulty": "{difficulty}"
}}]"""
    else:
        shape = f"""
Respond ONLY with valid JSON array:
[{{
  "questionText": "string",
  "topic": "string",
  "difficulty": "{difficulty}",
  "expectedKeyPoints": ["string"],
  "followUpHints": ["string"],
  "questionType": "conceptual|problem-solving|system-design|behavioral"
}}]"""
    return header + shape


def generate_response_evaluation_prompt(
    interview: InterviewRecord, question: Question, response_text: str
) -> str:
    key_points = ", ".join(question.expected_key_points) or "N/A"
    return f"""You are a technical interviewer evaluating a virtual interview response.
Job Role: {interview.job_role} | Difficulty: {interview.difficulty}
Tech Stack: {_tech_list(interview.tech_stack)}
Question: "{question.question_text}"
Expected Key Points: {key_points}
Candidate Answer: "{response_text}"

Score on: Technical Accuracy (0-40), Depth & Completeness (0-30), Communication Clarity (0-20), Practical Examples (0-10).
Respond ONLY with valid JSON:
{{"score":0-100,"maxScore":100,"technicalAccuracy":0-40,"depthScore":0-30,"clarityScore":0-20,"practicalScore":0-10,"verdict":"Excellent|Good|Average|Poor","strengths":["string"],"gaps":["string"],"idealAnswerSummary":"string"}}"""


def generate_mcq_report_prompt(
    interview: InterviewRecord,
    score: McqScore,
    topic_breakdown: Sequence[TopicStat],
    answers: Sequence[McqAnswer],
) -> str:
    topic_lines = "\n".join(
        f"- {t.topic}: {t.correct}/{t.total} ({t.percentage}%)" for t in topic_breakdown
    )
    wrong_lines = "\n".join(
        f"- {a.question_text} | Selected: {a.selected_option or 'none'}"
        for a in answers if not a.is_correct
    ) or "None"
    return f"""You are an expert interviewer. Evaluate MCQ results for a {interview.job_role} candidate.
Score: {score.correct}/{score.total} ({score.percentage}%)
Topic Breakdown:
{topic_lines}
Wrong Questions:
{wrong_lines}

Respond ONLY with valid JSON:
{{
  "overallSummary": "string",
  "strengths": ["string"],
  "weaknesses": ["string"],
  "recommendations": ["string"],
  "hiringRecommendation": "Strong Hire|Hire|Consider|Reject",
  "hiringRationale": "string"
}}"""


def generate_virtual_report_prompt(
    interview: InterviewRecord, score: VirtualScore, answers: Sequence[VirtualAnswer]
) -> str:
    summary_lines: List[str] = []
    for i, a in enumerate(answers, start=1):
        gaps = ", ".join(a.gaps) or "None"
        summary_lines.append(
            f"Q{i} [{a.verdict or '?'}]: {a.score}/100 - {a.question_text[:60]}... Gaps: {gaps}"
        )
    per_question = "\n".join(summary_lines)
    return f"""You are an expert interviewer. Write a final virtual interview evaluation.
Candidate for: {interview.job_role} | Difficulty: {interview.difficulty}
Tech: {_tech_list(interview.tech_stack)}
Score: {score.total_raw}/{score.max_possible} ({score.percentage}%)
Per-Question Summary:
{per_question}

Respond ONLY with valid JSON:
{{"executiveSummary":"string","technicalCompetency":"string","softSkillsAssessment":"string","strengths":["string"],"areasForImprovement":["string"],"overallRating":"Excellent|Good|Average|Below Average","hiringRecommendation":"Strong Hire|Hire|Consider|Reject","hiringRationale":"string","suggestedNextSteps":["string"]}}"""


def generate_proctor_prompt(duration_minutes: int, signals: ProctorReport, with_flags: bool) -> str:
    flags = ',"flags":[{"type":"string","severity":"string","detail":"string"}]' if with_flags else ""
    return f"""You are an AI proctoring system. Interview: {duration_minutes} min.
Signals: tab switches: {signals.tab_switches}, fullscreen exits: {signals.fullscreen_exits}, long pauses: {signals.long_pauses}, camera disconnects: {signals.camera_disconnects}, look-away events: {signals.look_away_events}

Respond ONLY with valid JSON:
{{"integrityScore":number,"riskLevel":"Low|Medium|High|Critical"{flags},"behaviorSummary":"string","recommendation":"string"}}"""


def generate_feedback_email_prompt(
    candidate_name: str,
    interview: InterviewRecord,
    verdict: str,
    strengths: Sequence[str],
    improvements: Sequence[str],
) -> str:
    percentage = interview.score.percentage if interview.score else None
    return f"""Write a professional interview feedback email.
Candidate: {candidate_name} | Role: {interview.job_role} | Company: {interview.company or "Our Company"}
Decision: {verdict} | Score: {percentage}%
Strengths: {", ".join(strengths)}
Areas to improve: {", ".join(improvements)}

Respond ONLY with valid JSON: {{"subject":"string","body":"string"}}"""
