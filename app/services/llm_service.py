"""Text-generation collaborator backed by an OpenAI-compatible chat API."""
import json
import logging
import re
from typing import Any, Optional

from openai import AsyncOpenAI, APIError, APIStatusError, RateLimitError

from app.config import settings
from app.exceptions import CollaboratorFailure, MalformedOutput, QuotaExceeded

logger = logging.getLogger(__name__)

_FENCE_OPEN = re.compile(r"```json\s*", re.IGNORECASE)
_FENCE_ANY = re.compile(r"```\s*")


def strip_code_fences(text: str) -> str:
    """Remove Markdown code fences the model likes to wrap JSON in."""
    cleaned = _FENCE_OPEN.sub("", text or "")
    cleaned = _FENCE_ANY.sub("", cleaned)
    return cleaned.strip()


def parse_json_response(text: str) -> Any:
    """Parse the model's reply as JSON, tolerating code-fence wrapping."""
    cleaned = strip_code_fences(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.warning("Unparseable model output: %s", cleaned[:200])
        raise MalformedOutput("AI returned unparseable response") from e


class TextGenerator:
    """
    Single-attempt prompt -> text calls.

    One instance is built at startup and handed to every service that needs
    it. There is no retry here; callers decide whether a failure is worth
    repeating (``QuotaExceeded.retryable``).
    """

    def __init__(self, client: Optional[AsyncOpenAI] = None, model: Optional[str] = None):
        self.client = client or AsyncOpenAI(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            timeout=settings.llm_timeout_seconds,
            max_retries=0,
        )
        self.model = model or settings.llm_model

    async def generate(self, prompt: str, temperature: float = 0.7) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=temperature,
            )
        except RateLimitError as e:
            logger.warning("Text generation quota exceeded: %s", e)
            raise QuotaExceeded("AI quota exceeded. Please retry shortly.") from e
        except APIStatusError as e:
            if e.status_code == 429 or "quota" in str(e).lower():
                raise QuotaExceeded("AI quota exceeded. Please retry shortly.") from e
            logger.error("Text generation failed with status %s: %s", e.status_code, e)
            raise CollaboratorFailure(f"AI service error: {e}") from e
        except APIError as e:
            logger.error("Text generation failed: %s", e)
            raise CollaboratorFailure(f"AI service error: {e}") from e

        return response.choices[0].message.content or ""

    async def generate_json(self, prompt: str, temperature: float = 0.7) -> Any:
        raw = await self.generate(prompt, temperature=temperature)
        return parse_json_response(raw)
