"""
OpenAI chat-completions integration.
Sends the summary prompt and returns the generated text.
Includes exponential backoff for rate-limit (429) responses.
"""

import json
import logging
import random
import requests

from summarybot.core.cancellation import CancelScope
from summarybot.core.error_codes import JobError, cancelled_error
from summarybot.core.constants import (
    ErrorCode, OPENAI_API_BASE, OPENAI_DEFAULT_MODEL, OPENAI_TEMPERATURE,
    DEFAULT_SUMMARY_LANGUAGE, SYSTEM_PROMPT_TEMPLATE,
)

logger = logging.getLogger(__name__)

_MAX_RATE_LIMIT_RETRIES = 3
_RATE_LIMIT_BASE_DELAY = 2.0   # seconds, doubles each retry with jitter
_DEFAULT_TIMEOUT_SEC = 120


class OpenAISummarizer:
    """Wraps the chat completion endpoint of an OpenAI-compatible API."""

    def __init__(self, api_key: str, model: str = OPENAI_DEFAULT_MODEL,
                 base_url: str = OPENAI_API_BASE,
                 language: str = DEFAULT_SUMMARY_LANGUAGE,
                 temperature: float = OPENAI_TEMPERATURE,
                 session: requests.Session | None = None):
        self.api_key = api_key
        self.model = model
        self.url = base_url.rstrip('/') + "/chat/completions"
        self.language = language
        self.temperature = temperature
        self.session = session or requests.Session()

    def _payload(self, prompt: str) -> dict:
        return {
            "model": self.model,
            "temperature": self.temperature,
            "messages": [
                {"role": "system",
                 "content": SYSTEM_PROMPT_TEMPLATE.format(language=self.language)},
                {"role": "user", "content": prompt},
            ],
        }

    def summarize(self, prompt: str, scope: CancelScope) -> str:
        """
        Send prompt to the chat completion API and return the generated text.
        Retries up to 3 times with exponential backoff on 429 responses.
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        for attempt in range(_MAX_RATE_LIMIT_RETRIES + 1):
            if scope.cancelled:
                raise cancelled_error("summarization")

            remaining = scope.remaining()
            timeout_sec = _DEFAULT_TIMEOUT_SEC if remaining is None else max(1.0, remaining)

            try:
                resp = self.session.post(
                    self.url,
                    headers=headers,
                    json=self._payload(prompt),
                    timeout=timeout_sec,
                )
            except requests.exceptions.Timeout:
                raise JobError(ErrorCode.SUMMARIZER_FAILED,
                               "summarizer request timed out", retryable=True)
            except requests.exceptions.ConnectionError:
                raise JobError(ErrorCode.SUMMARIZER_FAILED,
                               "network error connecting to summarizer", retryable=True)
            except requests.exceptions.RequestException as e:
                raise JobError(ErrorCode.SUMMARIZER_FAILED,
                               f"summarizer request failed: {e}")

            if resp.status_code == 429:
                if attempt < _MAX_RATE_LIMIT_RETRIES:
                    # Exponential backoff with jitter: 2s, 4s, 8s (+/- 10%)
                    delay = _RATE_LIMIT_BASE_DELAY * (2 ** attempt)
                    delay *= 1 + random.uniform(-0.1, 0.1)
                    logger.warning(
                        "Summarizer rate limited (429) — retrying in %.1fs (attempt %d/%d)",
                        delay, attempt + 1, _MAX_RATE_LIMIT_RETRIES,
                    )
                    if scope.wait(delay):
                        raise cancelled_error("summarization")
                    continue
                raise JobError(ErrorCode.SUMMARIZER_FAILED,
                               f"summarizer rate limited (429) after {_MAX_RATE_LIMIT_RETRIES} retries",
                               retryable=True)

            if resp.status_code != 200:
                # Sanitize error message (never log API key)
                error_body = resp.text[:300] if resp.text else "No response body"
                raise JobError(ErrorCode.SUMMARIZER_FAILED,
                               f"summarizer returned {resp.status_code}: {error_body}")

            try:
                result = resp.json()
            except (json.JSONDecodeError, ValueError):
                raise JobError(ErrorCode.SUMMARIZER_FAILED,
                               "failed to parse summarizer response JSON")

            return extract_completion_text(result)

        # Should never reach here
        raise JobError(ErrorCode.SUMMARIZER_FAILED, "summarizer request exhausted retries")


def extract_completion_text(response: dict) -> str:
    """Return the first choice's message content, or raise on an empty response."""
    choices = response.get('choices') or []
    if not choices:
        raise JobError(ErrorCode.SUMMARIZER_FAILED, "empty completion response")
    content = (choices[0].get('message') or {}).get('content') or ""
    if not content.strip():
        raise JobError(ErrorCode.SUMMARIZER_FAILED, "empty completion response")
    return content.strip()
