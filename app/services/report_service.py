"""Narrative reports built from scored interviews."""
import logging
from typing import Any, Dict, Mapping, Optional, Sequence, Union

from app.exceptions import MalformedOutput
from app.models.interview import AiReport, InterviewRecord, Question, validate_lenient
from app.services.llm_service import TextGenerator
from app.services.scoring_service import ScoringResult
from app.utils.prompt_generator import (
    generate_feedback_email_prompt,
    generate_mcq_report_prompt,
    generate_response_evaluation_prompt,
    generate_virtual_report_prompt,
)

logger = logging.getLogger(__name__)

TERMINATION_RATIONALE_LABELS = {
    "look_away": "look-away detected",
    "tab_switch": "tab switch detected",
}

ReportUpdate = Union[AiReport, Mapping[str, Any], None]


def merge_ai_report(existing: Optional[AiReport], update: ReportUpdate) -> AiReport:
    """Shallow merge of report sections; sections in ``update`` win."""
    merged = existing.model_dump(by_alias=True, exclude_unset=True) if existing else {}
    if update is not None:
        if not isinstance(update, AiReport):
            update = validate_lenient(AiReport, update)
        merged.update(update.model_dump(by_alias=True, exclude_unset=True))
    return AiReport.model_validate(merged)


def _as_report(payload: Any) -> AiReport:
    if not isinstance(payload, dict):
        raise MalformedOutput("AI report is not a JSON object")
    return merge_ai_report(None, payload)


class ReportGenerator:
    """Turns scores into prompts, and model replies into report fields."""

    def __init__(self, text_generator: TextGenerator):
        self.text_generator = text_generator

    async def evaluate_response(
        self, interview: InterviewRecord, question: Question, response_text: str
    ) -> Dict[str, Any]:
        """Rubric verdict for one virtual answer, as returned by the judge."""
        prompt = generate_response_evaluation_prompt(interview, question, response_text)
        return await self.text_generator.generate_json(prompt, temperature=0.3)

    async def mcq_report(self, interview: InterviewRecord, result: ScoringResult) -> AiReport:
        prompt = generate_mcq_report_prompt(interview, result.score, result.topic_breakdown, result.answers)
        return _as_report(await self.text_generator.generate_json(prompt, temperature=0.4))

    async def virtual_report(self, interview: InterviewRecord, result: ScoringResult) -> AiReport:
        prompt = generate_virtual_report_prompt(interview, result.score, result.answers)
        return _as_report(await self.text_generator.generate_json(prompt, temperature=0.4))

    async def report_for(self, interview: InterviewRecord, result: ScoringResult) -> AiReport:
        if interview.mode == "mcq":
            return await self.mcq_report(interview, result)
        return await self.virtual_report(interview, result)

    async def feedback_email(self, candidate_name: str, interview: InterviewRecord) -> Dict[str, str]:
        report = interview.ai_report or AiReport()
        verdict = report.hiring_recommendation or "Consider"
        strengths = report.strengths or []
        improvements = report.weaknesses or report.areas_for_improvement or []
        prompt = generate_feedback_email_prompt(candidate_name, interview, verdict, strengths, improvements)
        email = await self.text_generator.generate_json(prompt, temperature=0.6)
        if not isinstance(email, dict) or not {"subject", "body"} <= email.keys():
            raise MalformedOutput("Feedback email must contain subject and body")
        return {"subject": str(email["subject"]), "body": str(email["body"])}

    def termination_report(
        self, existing: Optional[AiReport], reason: str, answered: int, assigned: int, note: str
    ) -> AiReport:
        """Fixed rejection narrative for a proctoring termination. Never calls the model."""
        return merge_ai_report(existing, AiReport(
            termination_note=note,
            hiring_recommendation="Reject",
            hiring_rationale=(
                "Session auto-terminated due to proctoring violation: "
                f"{TERMINATION_RATIONALE_LABELS[reason]}."
            ),
            overall_summary=(
                f"Interview was terminated early. Only {answered} of {assigned} questions were answered."
            ),
        ))
