from datetime import datetime

import pytest

from app.exceptions import MalformedOutput, ValidationFailure
from app.models.interview import ProctorReport
from app.services.proctor_service import ProctorMonitor, merge_proctor_report


def test_counter_update_replaces_every_counter():
    update = ProctorMonitor().counter_update({"tabSwitches": 4, "lookAwayEvents": "2"})

    assert update == {
        "proctorReport.tabSwitches": 4,
        "proctorReport.fullscreenExits": 0,
        "proctorReport.longPauses": 0,
        "proctorReport.cameraDisconnects": 0,
        "proctorReport.lookAwayEvents": 2,
    }


def test_counter_update_rejects_non_integers():
    with pytest.raises(ValidationFailure) as exc:
        ProctorMonitor().counter_update({"tabSwitches": "many"})

    assert exc.value.fields == [{"field": "tabSwitches", "message": "Must be an integer"}]


def test_merge_keeps_existing_fields_and_overrides_same_named():
    existing = ProctorReport(tab_switches=2, behavior_summary="Calm", risk_level="Low")

    merged = merge_proctor_report(existing, {"riskLevel": "High", "longPauses": 3})

    assert merged.tab_switches == 2
    assert merged.behavior_summary == "Calm"
    assert merged.risk_level == "High"
    assert merged.long_pauses == 3


def test_merge_drops_unknown_fields():
    merged = merge_proctor_report(None, {"tabSwitches": 1, "mood": "nervous"})

    assert "mood" not in merged.model_dump(by_alias=True)


@pytest.mark.parametrize("reason, summary", [
    ("look_away", "Interview terminated: candidate looked away from screen for more than 5 seconds"),
    ("tab_switch", "Interview terminated: candidate switched tabs or left the browser window"),
])
def test_termination_report_is_fixed_per_reason(reason, summary):
    existing = ProctorReport(tab_switches=1, integrity_score=91, risk_level="Low")
    now = datetime(2026, 3, 1, 12, 0)

    report = ProctorMonitor().termination_report(existing, {"tabSwitches": 4}, reason, now)

    assert report.integrity_score == 0
    assert report.risk_level == "Critical"
    assert report.behavior_summary == summary
    assert report.recommendation.startswith("Invalidate session")
    assert report.terminated_by == reason
    assert report.terminated_at == now
    assert report.tab_switches == 4


def test_termination_recommendations_differ_by_reason():
    monitor = ProctorMonitor()
    now = datetime(2026, 3, 1)

    look = monitor.termination_report(None, None, "look_away", now)
    tab = monitor.termination_report(None, None, "tab_switch", now)

    assert look.recommendation != tab.recommendation


@pytest.mark.asyncio
async def test_assess_lays_verdict_over_signals(llm):
    llm.queue({"integrityScore": 64, "riskLevel": "Medium", "behaviorSummary": "Several tab switches",
               "recommendation": "Review recording"})

    report = await ProctorMonitor(llm).assess(45, {"tabSwitches": 6, "cameraDisconnects": 1})

    assert report.tab_switches == 6
    assert report.camera_disconnects == 1
    assert report.integrity_score == 64
    assert report.risk_level == "Medium"
    assert "Interview: 45 min." in llm.prompts[0]
    assert '"flags"' not in llm.prompts[0]


@pytest.mark.asyncio
async def test_assess_with_flags_requests_them(llm):
    llm.queue({"integrityScore": 90, "riskLevel": "Low",
               "flags": [{"type": "tab_switch", "severity": "low", "detail": "once"}]})

    report = await ProctorMonitor(llm).assess(30, {"tabSwitches": 1}, with_flags=True)

    assert report.flags[0].type == "tab_switch"
    assert '"flags"' in llm.prompts[0]


@pytest.mark.asyncio
async def test_assess_rejects_non_object_reply(llm):
    llm.queue(["not", "an", "object"])

    with pytest.raises(MalformedOutput):
        await ProctorMonitor(llm).assess(30, {})


@pytest.mark.asyncio
async def test_assess_drops_mistyped_verdict_fields(llm):
    llm.queue({"integrityScore": "high", "riskLevel": "Low", "flags": "none", "tabSwitches": "many",
               "behaviorSummary": "Focused"})

    report = await ProctorMonitor(llm).assess(30, {"tabSwitches": 2})

    assert report.integrity_score is None
    assert report.flags == []
    assert report.tab_switches == 2
    assert report.risk_level == "Low"
    assert report.behavior_summary == "Focused"
