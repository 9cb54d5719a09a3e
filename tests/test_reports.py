from types import SimpleNamespace

import httpx
import pytest
from openai import APIConnectionError, RateLimitError

from app.exceptions import CollaboratorFailure, MalformedOutput, QuotaExceeded
from app.models.interview import AiReport
from app.services.llm_service import TextGenerator, parse_json_response, strip_code_fences
from app.services.report_service import ReportGenerator, merge_ai_report

from conftest import config_for, mcq_questions


class FakeCompletions:
    def __init__(self, outcome):
        self.outcome = outcome
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        message = SimpleNamespace(content=self.outcome)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _client(outcome):
    completions = FakeCompletions(outcome)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


_REQUEST = httpx.Request("POST", "https://llm.example.com/v1/chat/completions")


def test_strip_code_fences():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('```\n[1, 2]\n```') == "[1, 2]"
    assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'


def test_parse_json_response_rejects_prose():
    with pytest.raises(MalformedOutput) as exc:
        parse_json_response("Sure! Here is your report.")

    assert exc.value.retryable is False


@pytest.mark.asyncio
async def test_text_generator_sends_single_user_message():
    client, completions = _client('```json\n{"ok": true}\n```')
    generator = TextGenerator(client=client, model="test-model")

    assert await generator.generate_json("Say ok", temperature=0.2) == {"ok": True}
    assert completions.calls[0]["model"] == "test-model"
    assert completions.calls[0]["messages"] == [{"role": "user", "content": "Say ok"}]
    assert completions.calls[0]["temperature"] == 0.2


@pytest.mark.asyncio
async def test_rate_limit_maps_to_quota_exceeded():
    error = RateLimitError("quota", response=httpx.Response(429, request=_REQUEST), body=None)
    client, completions = _client(error)

    with pytest.raises(QuotaExceeded) as exc:
        await TextGenerator(client=client, model="m").generate("hi")

    assert exc.value.retryable is True
    assert len(completions.calls) == 1


@pytest.mark.asyncio
async def test_connection_error_maps_to_collaborator_failure():
    client, _ = _client(APIConnectionError(request=_REQUEST))

    with pytest.raises(CollaboratorFailure) as exc:
        await TextGenerator(client=client, model="m").generate("hi")

    assert not isinstance(exc.value, QuotaExceeded)
    assert exc.value.retryable is False


def test_merge_ai_report_is_shallow_and_closed():
    existing = AiReport(overall_summary="First", strengths=["a"])

    merged = merge_ai_report(existing, {"strengths": ["b", "c"], "hrNotes": "Call back", "unknown": 1})

    assert merged.overall_summary == "First"
    assert merged.strengths == ["b", "c"]
    assert merged.hr_notes == "Call back"
    assert "unknown" not in merged.model_dump(by_alias=True)


def test_merge_ai_report_drops_mistyped_sections():
    existing = AiReport(overall_summary="First", strengths=["a"])

    merged = merge_ai_report(existing, {"overallSummary": {"text": "Second"}, "strengths": "b", "hrNotes": "Call back"})

    assert merged.overall_summary == "First"
    assert merged.strengths == ["a"]
    assert merged.hr_notes == "Call back"


def test_termination_report_is_local_and_deterministic():
    reports = ReportGenerator(text_generator=None)
    existing = AiReport(strengths=["Fast reader"])

    first = reports.termination_report(existing, "tab_switch", 2, 5, "note")
    second = reports.termination_report(existing, "tab_switch", 2, 5, "note")

    assert first == second
    assert first.hiring_recommendation == "Reject"
    assert first.hiring_rationale == "Session auto-terminated due to proctoring violation: tab switch detected."
    assert first.overall_summary == "Interview was terminated early. Only 2 of 5 questions were answered."
    assert first.termination_note == "note"
    assert first.strengths == ["Fast reader"]


@pytest.mark.asyncio
async def test_mcq_report_rejects_non_object(service, reviewer, candidate, llm):
    record = service.build_record(reviewer, candidate, config_for("mcq", 2), mcq_questions(["Python"] * 2))
    result = service.scoring.score_mcq(record.questions, {})
    llm.queue(["a", "list"])

    with pytest.raises(MalformedOutput):
        await service.reports.mcq_report(record, result)


@pytest.mark.asyncio
async def test_mcq_report_keeps_well_typed_sections(service, reviewer, candidate, llm):
    record = service.build_record(reviewer, candidate, config_for("mcq", 2), mcq_questions(["Python"] * 2))
    result = service.scoring.score_mcq(record.questions, {})
    llm.queue({"overallSummary": ["Solid"], "hiringRecommendation": "Maybe", "weaknesses": [{"area": "SQL"}]})

    report = await service.reports.mcq_report(record, result)

    assert report.overall_summary is None
    assert report.weaknesses is None
    assert report.hiring_recommendation == "Maybe"


@pytest.mark.asyncio
async def test_feedback_email_requires_subject_and_body(service, reviewer, candidate, llm):
    record = service.build_record(reviewer, candidate, config_for("mcq", 2), mcq_questions(["Python"] * 2))
    llm.queue({"subject": "Hello"})

    with pytest.raises(MalformedOutput):
        await service.reports.feedback_email("Casey", record)
