"""
Scoring for both interview modes.

mcq answers are scored by exact match against the stored option letter;
virtual answers arrive already judged (0-100 each) and are only summed.
Denominators always use the full assigned question count, so a terminated
interview is scored against everything it was supposed to cover.
"""
import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

from app.exceptions import MalformedOutput
from app.models.interview import (
    DEFAULT_TOPIC,
    McqAnswer,
    McqScore,
    Question,
    TopicStat,
    VirtualAnswer,
    VirtualScore,
    validate_lenient,
)

logger = logging.getLogger(__name__)

# Rubric bands reported by the judge; they add up to the 0-100 answer score.
RUBRIC_FIELDS = ("technicalAccuracy", "depthScore", "clarityScore", "practicalScore")


def _as_number(value) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def round_div(numerator: int, denominator: int) -> int:
    """numerator / denominator rounded to the nearest integer, halves up."""
    if denominator <= 0:
        return 0
    return (2 * numerator + denominator) // (2 * denominator)


def percentage(part: int, whole: int) -> int:
    return round_div(100 * part, whole)


@dataclass
class ScoringResult:
    answers: List[Union[McqAnswer, VirtualAnswer]]
    score: Union[McqScore, VirtualScore]
    topic_breakdown: List[TopicStat] = field(default_factory=list)


class ScoringEngine:
    """Computes per-answer results and aggregates for an interview."""

    # ── mcq ──────────────────────────────────────────────────────────────

    def grade_mcq(
        self,
        questions: Sequence[Question],
        selections: Mapping[str, Optional[str]],
        partial: bool = False,
    ) -> List[McqAnswer]:
        """Mark every question (or, when partial, only answered ones) right or wrong."""
        graded = []
        for q in questions:
            selected = selections.get(str(q.id)) or None
            if partial and selected is None:
                continue
            graded.append(McqAnswer(
                question_id=q.id,
                question_text=q.question_text,
                topic=q.topic,
                selected_option=selected,
                is_correct=selected is not None and selected == q.correct_answer,
            ))
        return graded

    def score_mcq(
        self,
        questions: Sequence[Question],
        selections: Mapping[str, Optional[str]],
        partial: bool = False,
    ) -> ScoringResult:
        answers = self.grade_mcq(questions, selections, partial=partial)
        correct = sum(1 for a in answers if a.is_correct)
        total = len(questions)
        score = McqScore(
            correct=correct,
            total=total,
            percentage=percentage(correct, total),
            is_partial=partial,
        )
        return ScoringResult(answers, score, self.mcq_topic_breakdown(answers))

    def mcq_topic_breakdown(self, answers: Iterable[McqAnswer]) -> List[TopicStat]:
        topics: Dict[str, Dict[str, int]] = {}
        for a in answers:
            bucket = topics.setdefault(a.topic or DEFAULT_TOPIC, {"correct": 0, "total": 0})
            bucket["total"] += 1
            if a.is_correct:
                bucket["correct"] += 1
        return [
            TopicStat(
                topic=topic,
                correct=d["correct"],
                total=d["total"],
                percentage=percentage(d["correct"], d["total"]),
            )
            for topic, d in topics.items()
        ]

    # ── virtual ──────────────────────────────────────────────────────────

    def score_virtual(
        self,
        answers: Sequence[VirtualAnswer],
        num_questions: int,
        partial: bool = False,
    ) -> ScoringResult:
        """Aggregate judged answers; unanswered questions still count in max_possible."""
        total_raw = sum(a.score or 0 for a in answers)
        max_possible = num_questions * 100
        score = VirtualScore(
            total_raw=total_raw,
            max_possible=max_possible,
            percentage=percentage(total_raw, max_possible),
            is_partial=partial,
        )
        return ScoringResult(list(answers), score, self.virtual_topic_breakdown(answers))

    def virtual_topic_breakdown(self, answers: Iterable[VirtualAnswer]) -> List[TopicStat]:
        topics: Dict[str, Dict[str, int]] = {}
        for a in answers:
            bucket = topics.setdefault(a.topic or DEFAULT_TOPIC, {"sum": 0, "count": 0})
            bucket["count"] += 1
            bucket["sum"] += a.score or 0
        # percentage is the mean answer score, not sum / total
        return [
            TopicStat(
                topic=topic,
                correct=d["sum"],
                total=d["count"] * 100,
                percentage=round_div(d["sum"], d["count"]),
            )
            for topic, d in topics.items()
        ]

    def virtual_answer(self, question: Question, response_text: str, evaluation: dict) -> VirtualAnswer:
        """Turn the judge's JSON verdict into a stored answer."""
        if not isinstance(evaluation, dict):
            raise MalformedOutput("Judge returned a non-object evaluation")
        data = dict(evaluation)
        raw = data.get("score")
        score = _as_number(raw)
        if score is None:
            if raw is not None:
                logger.warning("Unusable judge score %r for question %s, using rubric total", raw, question.id)
            score = sum(_as_number(data.get(k)) or 0 for k in RUBRIC_FIELDS)
        data["score"] = int(min(max(score, 0), 100) + 0.5)
        data.update(
            questionId=question.id,
            questionText=question.question_text,
            topic=question.topic,
            responseText=response_text,
        )
        return validate_lenient(VirtualAnswer, data)
