"""Outbound invitation emails through the external mail service."""
import logging
import httpx
from typing import Dict, List, Optional

from app.config import settings
from app.models.interview import InterviewRecord
from app.models.user import UserModel

logger = logging.getLogger(__name__)


def build_invitation(candidate: UserModel, interview: InterviewRecord) -> Dict[str, str]:
    """Subject and HTML body of an interview invitation."""
    company = interview.company or "Our Company"
    expires = interview.expires_at.isoformat() if interview.expires_at else "N/A"
    body = f"""
<p>Dear {candidate.name or "Candidate"},</p>

<p>Greetings from <b>{company}</b>.</p>

<p>We are pleased to inform you that you have been assigned for the interview process.</p>

<p><b>Interview Details:</b></p>

<p>
<b>Company Name:</b> {company}<br>
<b>Job Role:</b> {interview.job_role}<br>
<b>Interview Mode:</b> {interview.mode}<br>
<b>Duration:</b> {interview.duration_minutes} minutes<br>
<b>Expiry Time:</b> {expires}
</p>

<p><b>Job Description:</b><br>
{interview.job_description}
</p>

<p>Please complete your interview before the expiry time.</p>

<p>We wish you all the best.</p>

<p>Best regards,<br><b>{company} Recruitment Team</b></p>
"""
    return {
        "to": candidate.email,
        "subject": f"Interview Invitation - {interview.job_role} | {company}",
        "body": body,
    }


class Notifier:
    """Fire-and-forget mail client. Failures are logged and reported as False."""

    def __init__(self, mail_url: Optional[str] = None, batch_url: Optional[str] = None):
        self.mail_url = mail_url if mail_url is not None else settings.mail_url
        self.batch_url = batch_url if batch_url is not None else settings.mail_url_batch

    async def _post(self, url: str, payload) -> bool:
        async with httpx.AsyncClient() as client:
            try:
                response = await client.post(url, json=payload, timeout=30.0)
                response.raise_for_status()
                logger.info("Email service response: %s", response.text[:200])
                return True
            except httpx.HTTPError as e:
                logger.warning("Email service error: %s", e)
                return False

    async def send_invitation(self, candidate: UserModel, interview: InterviewRecord) -> bool:
        if not self.mail_url:
            logger.warning("No mail service URL configured; invitation to %s not sent", candidate.email)
            return False
        if not candidate.email:
            logger.warning("Candidate %s has no email; invitation not sent", candidate.id)
            return False
        return await self._post(self.mail_url, build_invitation(candidate, interview))

    async def send_batch(self, invitations: List[Dict[str, str]]) -> bool:
        if not invitations:
            return True
        if not self.batch_url:
            logger.warning("No batch mail URL configured; %d invitations not sent", len(invitations))
            return False
        return await self._post(self.batch_url, invitations)
