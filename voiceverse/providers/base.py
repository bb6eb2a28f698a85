"""
Provider Base Classes

Abstract interfaces, shared data types, and the exception hierarchy for
the transcription, translation, and voice synthesis adapters.
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Voice Settings
# =============================================================================


class VoiceSettings(BaseModel):
    """
    Synthesis parameters accepted from callers.

    Only the four recognized fields are kept; unknown keys are dropped.
    Unset fields are filled from the adapter's defaults at request time,
    so an explicit ``0.0`` or ``False`` is honored.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    stability: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    similarity_boost: Optional[float] = Field(
        default=None, ge=0.0, le=1.0, alias="similarityBoost"
    )
    style: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    use_speaker_boost: Optional[bool] = Field(default=None, alias="useSpeakerBoost")

    @classmethod
    def from_value(cls, value: Any) -> "VoiceSettings":
        """Build from a stored JSON dict, an instance, or nothing."""
        if value is None:
            return cls()
        if isinstance(value, VoiceSettings):
            return value
        return cls.model_validate(value)

    def merged_with(self, defaults: "VoiceSettings") -> "VoiceSettings":
        """Return a copy with unset fields taken from ``defaults``."""
        data = defaults.model_dump()
        data.update(self.model_dump(exclude_none=True))
        return VoiceSettings(**data)

    def to_payload(self) -> Dict[str, Any]:
        """ElevenLabs ``voice_settings`` body (snake_case, no nulls)."""
        return self.model_dump(exclude_none=True)

    def to_record(self) -> Dict[str, Any]:
        """JSON form stored on operation and batch records."""
        return self.model_dump(exclude_none=True, by_alias=True)


TTS_DEFAULT_SETTINGS = VoiceSettings(
    stability=0.6,
    similarity_boost=0.8,
    style=0.3,
    use_speaker_boost=True,
)

STS_DEFAULT_SETTINGS = VoiceSettings(
    stability=0.5,
    similarity_boost=0.75,
    style=0.0,
    use_speaker_boost=True,
)


# =============================================================================
# Retry Policy
# =============================================================================


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded retry with exponential backoff.

    The delay before attempt ``n + 1`` is ``backoff_base_seconds * 2 ** (n - 1)``,
    so the defaults wait 2s then 4s. Only errors carrying a status code in
    ``retry_statuses`` are retried.
    """

    max_attempts: int = 3
    backoff_base_seconds: float = 2.0
    retry_statuses: FrozenSet[int] = frozenset({429})

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.backoff_base_seconds < 0:
            raise ValueError("backoff_base_seconds must not be negative")

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        return self.backoff_base_seconds * (2 ** (attempt - 1))

    def should_retry(self, status_code: Optional[int], attempt: int) -> bool:
        return attempt < self.max_attempts and status_code in self.retry_statuses


# =============================================================================
# Data Types
# =============================================================================


def generate_request_id() -> str:
    """Generate a unique request ID."""
    return f"req_{uuid.uuid4().hex[:16]}"


def parse_retry_after(response: Any, default: int = 60) -> int:
    """Seconds from a ``Retry-After`` header, ``default`` if absent or malformed."""
    value = response.headers.get("Retry-After")
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


@dataclass
class TranscriptionResult:
    """Result of a transcription request."""

    text: str
    language: str
    duration: Optional[float] = None
    provider: str = ""
    attempts: int = 1
    request_id: str = field(default_factory=generate_request_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "language": self.language,
            "duration": self.duration,
            "provider": self.provider,
            "attempts": self.attempts,
        }


@dataclass
class VoiceInfo:
    """A synthesis voice as listed by the provider."""

    voice_id: str
    name: str
    category: Optional[str] = None
    labels: Dict[str, str] = field(default_factory=dict)
    preview_url: Optional[str] = None
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "voice_id": self.voice_id,
            "name": self.name,
            "category": self.category,
            "labels": self.labels,
            "preview_url": self.preview_url,
            "description": self.description,
        }


# =============================================================================
# Provider Interfaces
# =============================================================================


class TranscriberInterface(ABC):
    """Speech-to-text adapter."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    async def transcribe(
        self,
        audio_data: bytes,
        filename: str = "audio.mp3",
        mime_type: str = "audio/mpeg",
        language: Optional[str] = None,
    ) -> TranscriptionResult:
        """Transcribe audio and report the detected language code."""
        pass

    async def close(self) -> None:
        pass


class TranslatorInterface(ABC):
    """Text translation adapter."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    async def translate(
        self,
        text: str,
        source_language: str,
        target_language: str,
    ) -> str:
        """Translate text. Raises ``TranslationError`` on failure."""
        pass

    @abstractmethod
    async def get_languages(self) -> List[Dict[str, Any]]:
        """Languages the provider can translate between."""
        pass

    async def close(self) -> None:
        pass


class VoiceSynthesizerInterface(ABC):
    """Text-to-speech and speech-to-speech adapter."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    async def text_to_speech(
        self,
        text: str,
        voice_id: str,
        settings: Optional[VoiceSettings] = None,
        language: Optional[str] = None,
    ) -> bytes:
        pass

    @abstractmethod
    async def speech_to_speech(
        self,
        audio_data: bytes,
        voice_id: str,
        mime_type: str = "audio/mpeg",
        settings: Optional[VoiceSettings] = None,
    ) -> bytes:
        pass

    @abstractmethod
    async def voice_exists(self, voice_id: str) -> bool:
        """Lightweight existence check. May raise ``ProviderError``."""
        pass

    @abstractmethod
    async def get_voices(self) -> List[VoiceInfo]:
        pass

    @abstractmethod
    async def clone_voice(
        self,
        name: str,
        audio_data: bytes,
        filename: str = "sample.mp3",
        mime_type: str = "audio/mpeg",
        description: Optional[str] = None,
        labels: Optional[Dict[str, str]] = None,
    ) -> VoiceInfo:
        """Create a provider voice from a recording."""
        pass

    async def close(self) -> None:
        pass


# =============================================================================
# Exceptions
# =============================================================================


class ProviderError(Exception):
    """Base exception for provider operations."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or "PROVIDER_ERROR"
        self.provider = provider
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "provider": self.provider,
            "status_code": self.status_code,
            "details": self.details,
        }


class TranscriptionError(ProviderError):
    """Error during speech-to-text."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code="TRANSCRIPTION_ERROR", **kwargs)


class TranslationError(ProviderError):
    """Error during text translation."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code="TRANSLATION_ERROR", **kwargs)


class SynthesisError(ProviderError):
    """Error during text-to-speech or speech-to-speech."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code="SYNTHESIS_ERROR", **kwargs)


class ProviderRateLimitError(ProviderError):
    """Provider rate limit exceeded."""

    def __init__(self, message: str, retry_after: Optional[int] = None, **kwargs):
        kwargs.setdefault("status_code", 429)
        super().__init__(message, code="PROVIDER_RATE_LIMIT", **kwargs)
        self.retry_after = retry_after


class ProviderTimeoutError(ProviderError):
    """Provider operation timed out."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code="PROVIDER_TIMEOUT", **kwargs)


class ProviderConnectionError(ProviderError):
    """Failed to connect to provider."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code="PROVIDER_CONNECTION_ERROR", **kwargs)


class VoiceNotFoundError(ProviderError):
    """Requested voice not found."""

    def __init__(self, message: str, voice_id: str, **kwargs):
        kwargs.setdefault("status_code", 404)
        super().__init__(message, code="VOICE_NOT_FOUND", **kwargs)
        self.voice_id = voice_id


class ProviderNotConfiguredError(ProviderError):
    """Provider credentials are missing."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code="PROVIDER_NOT_CONFIGURED", **kwargs)


__all__ = [
    "VoiceSettings",
    "TTS_DEFAULT_SETTINGS",
    "STS_DEFAULT_SETTINGS",
    "RetryPolicy",
    "generate_request_id",
    "parse_retry_after",
    "TranscriptionResult",
    "VoiceInfo",
    "TranscriberInterface",
    "TranslatorInterface",
    "VoiceSynthesizerInterface",
    "ProviderError",
    "TranscriptionError",
    "TranslationError",
    "SynthesisError",
    "ProviderRateLimitError",
    "ProviderTimeoutError",
    "ProviderConnectionError",
    "VoiceNotFoundError",
    "ProviderNotConfiguredError",
]
