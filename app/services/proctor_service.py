"""Proctoring signals: live counters, post-interview assessment and forced termination."""
import logging
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Union

from app.exceptions import MalformedOutput, ValidationFailure
from app.models.interview import ProctorReport, validate_lenient
from app.services.llm_service import TextGenerator
from app.utils.prompt_generator import generate_proctor_prompt

logger = logging.getLogger(__name__)

COUNTER_FIELDS = ("tabSwitches", "fullscreenExits", "longPauses", "cameraDisconnects", "lookAwayEvents")

TERMINATION_SUMMARIES = {
    "look_away": "Interview terminated: candidate looked away from screen for more than 5 seconds",
    "tab_switch": "Interview terminated: candidate switched tabs or left the browser window",
}
TERMINATION_RECOMMENDATIONS = {
    "look_away": "Invalidate session: candidate attention left the screen",
    "tab_switch": "Invalidate session: candidate navigated away from the interview",
}

ProctorUpdate = Union[ProctorReport, Mapping[str, Any], None]


def _set_fields(update: ProctorUpdate) -> Dict[str, Any]:
    """Fields explicitly present in ``update``, restricted to the report schema."""
    if update is None:
        return {}
    if not isinstance(update, ProctorReport):
        update = validate_lenient(ProctorReport, update)
    return update.model_dump(by_alias=True, exclude_unset=True)


def merge_proctor_report(existing: Optional[ProctorReport], update: ProctorUpdate) -> ProctorReport:
    """Shallow merge: fields in ``update`` replace the same fields in ``existing``."""
    merged = existing.model_dump(by_alias=True, exclude_unset=True) if existing else {}
    merged.update(_set_fields(update))
    return ProctorReport.model_validate(merged)


class ProctorMonitor:
    """Tracks integrity signals for one interview at a time."""

    def __init__(self, text_generator: Optional[TextGenerator] = None):
        self.text_generator = text_generator

    def counter_update(self, counters: Mapping[str, Any]) -> Dict[str, int]:
        """
        ``$set`` document for a periodic update.

        The client owns the running totals, so stored counters are replaced
        with whatever it sends (a missing counter resets to 0), never added to.
        """
        update = {}
        for name in COUNTER_FIELDS:
            value = counters.get(name) or 0
            try:
                update[f"proctorReport.{name}"] = int(value)
            except (TypeError, ValueError):
                raise ValidationFailure(
                    "Validation failed", [{"field": name, "message": "Must be an integer"}]
                )
        return update

    async def assess(
        self, duration_minutes: int, proctor_data: Mapping[str, Any], with_flags: bool = False
    ) -> ProctorReport:
        """Ask the text generator for an integrity verdict and lay it over the raw signals."""
        signals = merge_proctor_report(None, proctor_data)
        prompt = generate_proctor_prompt(duration_minutes, signals, with_flags)
        assessment = await self.text_generator.generate_json(prompt, temperature=0.2)
        if not isinstance(assessment, dict):
            raise MalformedOutput("Proctor assessment is not a JSON object")
        return merge_proctor_report(signals, assessment)

    def termination_report(
        self,
        existing: Optional[ProctorReport],
        snapshot: ProctorUpdate,
        reason: str,
        terminated_at: datetime,
    ) -> ProctorReport:
        """Final report for a violation: last known signals, then the fixed verdict."""
        report = merge_proctor_report(existing, snapshot)
        logger.info("Proctor termination (%s): %s", reason, report.model_dump(exclude_unset=True))
        return merge_proctor_report(report, ProctorReport(
            terminated_by=reason,
            terminated_at=terminated_at,
            integrity_score=0,
            risk_level="Critical",
            behavior_summary=TERMINATION_SUMMARIES[reason],
            recommendation=TERMINATION_RECOMMENDATIONS[reason],
        ))
