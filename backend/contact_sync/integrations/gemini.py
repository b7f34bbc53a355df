"""Google Gemini generateContent API client."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from contact_sync.core.config import Settings, get_settings
from contact_sync.core.exceptions import (
    ConfigurationError,
    ExternalAPIError,
    ParsingError,
    RateLimitExceededError,
    TransportError,
    truncate_body,
)
from contact_sync.core.resilience import exponential_backoff, parse_retry_delay

logger = logging.getLogger(__name__)

SERVICE_NAME = "gemini"

FOLLOW_UP_EMAIL_PROMPT = """Based on the following meeting transcript, please draft a concise and professional follow-up email.
The email should summarize the key discussion points and clearly list any action items assigned, including who is responsible if mentioned.
Keep the tone friendly and action-oriented.

{meeting_prompt}"""

SleepFunc = Callable[[float], Awaitable[None]]


class GeminiClient:
    """Client for the Gemini generateContent endpoint.

    Retries HTTP 429 responses with exponential backoff seeded by the
    provider's ``RetryInfo`` hint. Backoff sleeps are awaited, so they only
    suspend the calling task.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
        sleep: SleepFunc = asyncio.sleep,
        max_retries: int | None = None,
    ) -> None:
        """Initialize the Gemini client.

        Args:
            settings: Configuration; defaults to the cached application settings.
            http_client: Shared HTTP client. When omitted a short-lived client
                is opened per request.
            sleep: Awaitable used for backoff waits.
            max_retries: Additional attempts after a 429; defaults to
                ``GEMINI_MAX_RETRIES``.
        """
        self._settings = settings or get_settings()
        self._http_client = http_client
        self._sleep = sleep
        self.max_retries = (
            self._settings.GEMINI_MAX_RETRIES if max_retries is None else max_retries
        )
        self.model = self._settings.GEMINI_MODEL
        self.base_url = self._settings.GEMINI_API_BASE_URL
        self.timeout = self._settings.HTTP_TIMEOUT_SECONDS

    @property
    def endpoint(self) -> str:
        """generateContent URL for the configured model (without the key)."""
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def complete(self, prompt: str) -> str:
        """Send ``prompt`` to Gemini and return the first candidate's text.

        Args:
            prompt: Full prompt text.

        Returns:
            The generated text.

        Raises:
            ConfigurationError: If no API key is configured.
            RateLimitExceededError: If 429 persists past ``max_retries``.
            ExternalAPIError: On any other non-200 status.
            ParsingError: If the 200 body lacks candidate text.
            TransportError: On network failure.
        """
        api_key = self._settings.GEMINI_API_KEY.get_secret_value()
        if not api_key:
            raise ConfigurationError("GEMINI_API_KEY")

        payload = {"contents": [{"parts": [{"text": prompt}]}]}
        total_attempts = self.max_retries + 1
        last_body: Any = None

        for attempt in range(1, total_attempts + 1):
            response = await self._post(payload, api_key)
            body = _decode_body(response)

            if response.status_code == 200:
                return _extract_text(body)

            if response.status_code != 429:
                logger.error(
                    "Gemini API error: status=%s body=%s",
                    response.status_code,
                    truncate_body(str(body)),
                )
                raise ExternalAPIError(SERVICE_NAME, response.status_code, body)

            last_body = body
            if attempt > self.max_retries:
                break

            hint = parse_retry_delay(body, self._settings.GEMINI_DEFAULT_RETRY_DELAY_SECONDS)
            delay = exponential_backoff(hint, attempt, self._settings.GEMINI_MAX_BACKOFF_SECONDS)
            logger.warning(
                "Gemini API rate limit exceeded (attempt %d/%d). Retrying in %ds",
                attempt,
                self.max_retries,
                delay,
            )
            await self._sleep(delay)

        logger.error("Gemini API rate limit exceeded after %d attempts", total_attempts)
        raise RateLimitExceededError(SERVICE_NAME, attempts=total_attempts, last_body=last_body)

    async def generate_follow_up_email(self, transcript_text: str) -> str:
        """Draft a follow-up email summarizing a meeting transcript."""
        return await self.complete(FOLLOW_UP_EMAIL_PROMPT.format(meeting_prompt=transcript_text))

    async def _post(self, payload: dict[str, Any], api_key: str) -> httpx.Response:
        """POST to generateContent, wrapping transport failures."""
        params = {"key": api_key}
        try:
            if self._http_client is not None:
                return await self._http_client.post(
                    self.endpoint, params=params, json=payload, timeout=self.timeout
                )
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                return await client.post(self.endpoint, params=params, json=payload)
        except httpx.RequestError as e:
            # The request URL carries the API key; log the exception type only
            logger.error("Gemini connection error: %s", type(e).__name__)
            raise TransportError(SERVICE_NAME, e) from e


def _decode_body(response: httpx.Response) -> Any:
    """Parsed JSON body, or raw text when the body is not JSON."""
    try:
        return response.json()
    except ValueError:
        return response.text


def _extract_text(body: Any) -> str:
    """Return ``candidates[0].content.parts[0].text`` from a response body.

    Raises:
        ParsingError: If any step of the path is missing.
    """
    try:
        text = body["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        raise ParsingError("No text content found in Gemini response", body=body) from None
    if not isinstance(text, str):
        raise ParsingError("No text content found in Gemini response", body=body)
    return text
