import pytest
from bson import ObjectId

from app.models.user import UserModel
from app.services.notification_service import Notifier, build_invitation

from conftest import RecordingNotifier, config_for, virtual_questions


@pytest.fixture
def record(service, reviewer, candidate):
    return service.build_record(
        reviewer, candidate, config_for("virtual", 2), virtual_questions(["Python"] * 2), company="Acme"
    )


def _user(email="casey@example.com"):
    return UserModel(_id=ObjectId(), name="Casey", email=email, role="candidate")


def test_invitation_content(record):
    invitation = build_invitation(_user(), record)

    assert invitation["to"] == "casey@example.com"
    assert invitation["subject"] == "Interview Invitation - Backend Engineer | Acme"
    assert "Dear Casey" in invitation["body"]
    assert "<b>Interview Mode:</b> virtual" in invitation["body"]
    assert "<b>Duration:</b> 30 minutes" in invitation["body"]


@pytest.mark.asyncio
async def test_missing_mail_url_is_reported_not_raised(record):
    notifier = Notifier(mail_url="", batch_url="")

    assert await notifier.send_invitation(_user(), record) is False
    assert await notifier.send_batch([build_invitation(_user(), record)]) is False


@pytest.mark.asyncio
async def test_candidate_without_email_is_skipped(record):
    notifier = RecordingNotifier()

    assert await notifier.send_invitation(_user(email=None), record) is False
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_empty_batch_sends_nothing():
    notifier = RecordingNotifier()

    assert await notifier.send_batch([]) is True
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_unreachable_mail_service_returns_false(record):
    notifier = Notifier(mail_url="http://127.0.0.1:9/send", batch_url="")

    assert await notifier.send_invitation(_user(), record) is False
