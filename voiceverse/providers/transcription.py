"""
Transcription Providers

OpenAI Whisper speech-to-text with bounded rate-limit retry, and a
deterministic mock for tests and offline runs.
"""

import asyncio
from typing import Awaitable, Callable, Dict, Optional

import httpx
import structlog

from ..languages import normalize_language_code
from .base import (
    ProviderConnectionError,
    ProviderError,
    ProviderNotConfiguredError,
    ProviderRateLimitError,
    ProviderTimeoutError,
    RetryPolicy,
    TranscriberInterface,
    TranscriptionError,
    TranscriptionResult,
    parse_retry_after,
)

logger = structlog.get_logger(__name__)

Sleeper = Callable[[float], Awaitable[None]]


# =============================================================================
# OpenAI Whisper Provider
# =============================================================================


class OpenAIWhisperTranscriber(TranscriberInterface):
    """
    OpenAI Whisper speech-to-text.

    Requests ``verbose_json`` so the detected language comes back with the
    text. Rate-limit responses are retried according to ``retry_policy``;
    every other failure is raised on the first attempt.
    """

    MODEL = "whisper-1"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 60.0,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Optional[Sleeper] = None,
    ):
        if not api_key:
            raise ProviderNotConfiguredError(
                "OpenAI API key is required",
                provider="openai",
            )

        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep or asyncio.sleep
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def provider_name(self) -> str:
        return "openai"

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                },
                timeout=httpx.Timeout(self.timeout),
            )
        return self._client

    async def transcribe(
        self,
        audio_data: bytes,
        filename: str = "audio.mp3",
        mime_type: str = "audio/mpeg",
        language: Optional[str] = None,
    ) -> TranscriptionResult:
        """Transcribe audio, retrying on rate limits."""
        if not audio_data:
            raise TranscriptionError("Empty audio data provided", provider="openai")

        attempt = 1
        while True:
            try:
                result = await self._transcribe_once(
                    audio_data, filename, mime_type, language
                )
                result.attempts = attempt
                return result
            except ProviderError as e:
                if not self.retry_policy.should_retry(e.status_code, attempt):
                    raise
                delay = self.retry_policy.delay_for(attempt)
                logger.warning(
                    "transcription_rate_limited",
                    attempt=attempt,
                    max_attempts=self.retry_policy.max_attempts,
                    retry_in=delay,
                )
                await self._sleep(delay)
                attempt += 1

    async def _transcribe_once(
        self,
        audio_data: bytes,
        filename: str,
        mime_type: str,
        language: Optional[str],
    ) -> TranscriptionResult:
        try:
            client = await self._get_client()

            files = {"file": (filename, audio_data, mime_type)}
            data: Dict[str, str] = {
                "model": self.MODEL,
                "response_format": "verbose_json",
            }
            if language:
                data["language"] = language.split("-")[0]

            response = await client.post(
                "/audio/transcriptions",
                files=files,
                data=data,
            )

            if response.status_code == 429:
                raise ProviderRateLimitError(
                    "OpenAI rate limit exceeded",
                    provider="openai",
                    retry_after=parse_retry_after(response),
                )

            if response.status_code == 401:
                raise TranscriptionError(
                    "Invalid OpenAI API key",
                    provider="openai",
                    status_code=401,
                )

            if response.status_code != 200:
                raise TranscriptionError(
                    f"OpenAI API error: {response.status_code} - {response.text}",
                    provider="openai",
                    status_code=response.status_code,
                )

            payload = response.json()
            return TranscriptionResult(
                text=payload.get("text", "").strip(),
                language=normalize_language_code(payload.get("language")),
                duration=payload.get("duration"),
                provider=self.provider_name,
            )

        except ProviderError:
            raise
        except httpx.TimeoutException:
            raise ProviderTimeoutError(
                f"OpenAI request timed out after {self.timeout}s",
                provider="openai",
            )
        except httpx.HTTPError as e:
            raise ProviderConnectionError(
                "Failed to connect to OpenAI API",
                provider="openai",
                details={"error": str(e)},
            )
        except ValueError as e:
            raise TranscriptionError(
                f"Invalid OpenAI response: {e}",
                provider="openai",
            )

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None


# =============================================================================
# Mock Provider
# =============================================================================


class MockTranscriber(TranscriberInterface):
    """Returns a fixed transcript without any network access."""

    def __init__(self, text: str = "Hello, this is a test recording.", language: str = "en"):
        self.text = text
        self.language = language
        self.calls = 0

    @property
    def provider_name(self) -> str:
        return "mock"

    async def transcribe(
        self,
        audio_data: bytes,
        filename: str = "audio.mp3",
        mime_type: str = "audio/mpeg",
        language: Optional[str] = None,
    ) -> TranscriptionResult:
        self.calls += 1
        if not audio_data:
            raise TranscriptionError("Empty audio data provided", provider="mock")
        return TranscriptionResult(
            text=self.text,
            language=self.language,
            duration=len(audio_data) / 16000,
            provider=self.provider_name,
        )
