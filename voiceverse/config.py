"""
Configuration for the VoiceVerse translation pipeline.
"""

from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .languages import (
    DEFAULT_TTS_MODEL,
    DEFAULT_VOICE_IDS,
    LANGUAGE_MODEL_MAP,
    SPEECH_TO_SPEECH_MODEL,
    SUPPORTED_LANGUAGES,
    VOICE_ID_REPLACEMENTS,
    Language,
)


class Environment(str, Enum):
    """Deployment environment."""

    DEVELOPMENT = "development"
    TEST = "test"
    PRODUCTION = "production"


class StorageConfig(BaseSettings):
    """Storage configuration for audio files."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    local_path: str = Field(default="./uploads", description="Local storage root")
    result_prefix: str = Field(
        default="audio/voice-translate",
        description="Key prefix for generated audio",
    )


class ProviderCredentials(BaseSettings):
    """API credentials and endpoints for upstream providers."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # OpenAI (Whisper transcription)
    openai_api_key: str = Field(default="", description="OpenAI API key")
    openai_base_url: str = Field(default="https://api.openai.com/v1")

    # ElevenLabs
    elevenlabs_api_key: str = Field(default="", description="ElevenLabs API key")
    elevenlabs_base_url: str = Field(default="https://api.elevenlabs.io/v1")

    # LibreTranslate
    libretranslate_url: str = Field(
        default="https://translate.monocles.de/translate",
        description="LibreTranslate translate endpoint",
    )
    libretranslate_api_key: str = Field(default="", description="Optional LibreTranslate key")


class PipelineConfig(BaseSettings):
    """Tuning for the transform-and-translate pipeline."""

    model_config = SettingsConfigDict(env_prefix="PIPELINE_")

    use_openai_transcription: bool = Field(
        default=False,
        description="Call Whisper; when off the placeholder transcript is used",
    )
    batch_delay_seconds: float = Field(default=2.0, ge=0.0)
    max_batch_files: int = Field(default=10, ge=1, le=100)
    error_message_max_length: int = Field(default=500, ge=1)

    # Transcription retry policy
    transcription_max_attempts: int = Field(default=3, ge=1)
    transcription_backoff_base_seconds: float = Field(default=2.0, ge=0.0)

    # Request timeouts
    transcription_timeout_seconds: float = Field(default=60.0)
    translation_timeout_seconds: float = Field(default=15.0)
    synthesis_timeout_seconds: float = Field(default=60.0)
    clone_timeout_seconds: float = Field(default=120.0)

    output_mime_type: str = Field(default="audio/mpeg")
    placeholder_transcript: str = Field(
        default=(
            "Welcome to VoiceVerse! This is a demonstration of our voice "
            'translation system using the audio file "{filename}". '
            "Transcription is not available right now, so this sample text "
            "is translated and voiced in your target language instead."
        ),
    )


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    service_name: str = Field(default="voiceverse")
    environment: Environment = Field(default=Environment.DEVELOPMENT)
    log_level: str = Field(default="info")
    log_format: str = Field(default="console", description="json or console")

    database_url: str = Field(default="sqlite+aiosqlite:///./voiceverse.db")
    database_echo: bool = Field(default=False, description="Log SQL statements")
    worker_concurrency: int = Field(default=1, ge=1, le=32)

    storage: StorageConfig = Field(default_factory=StorageConfig)
    credentials: ProviderCredentials = Field(default_factory=ProviderCredentials)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid = {"debug", "info", "warning", "error", "critical"}
        if v.lower() not in valid:
            raise ValueError(f"Invalid log level: {v}")
        return v.lower()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        if v.lower() not in {"json", "console"}:
            raise ValueError(f"Invalid log format: {v}")
        return v.lower()

    @property
    def transcription_configured(self) -> bool:
        return bool(self.credentials.openai_api_key)


# =============================================================================
# Voice Catalog
# =============================================================================


@dataclass(frozen=True)
class VoiceCatalog:
    """
    Read-only voice and model tables shared by the resolver and synthesizer.

    Built once at startup and passed by reference; the mappings are
    ``MappingProxyType`` views so nothing downstream can mutate them.
    """

    languages: Tuple[Language, ...] = SUPPORTED_LANGUAGES
    replacements: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType(dict(VOICE_ID_REPLACEMENTS))
    )
    default_voices: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType(dict(DEFAULT_VOICE_IDS))
    )
    language_models: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType(dict(LANGUAGE_MODEL_MAP))
    )
    default_model: str = DEFAULT_TTS_MODEL
    speech_to_speech_model: str = SPEECH_TO_SPEECH_MODEL

    def get_language(self, code: str) -> Optional[Language]:
        for language in self.languages:
            if language.code == code:
                return language
        return None

    def is_supported(self, code: str) -> bool:
        return self.get_language(code) is not None

    def language_name(self, code: str) -> str:
        language = self.get_language(code)
        return language.name if language else code.upper()

    def default_voice_for(self, language_code: Optional[str]) -> str:
        """Language-specific default voice, else the multilingual default."""
        language = self.get_language(language_code) if language_code else None
        if language:
            return language.voice_id
        return self.default_voices["multilingual"]

    def model_for(self, language_code: Optional[str]) -> str:
        if not language_code:
            return self.default_model
        return self.language_models.get(language_code, self.default_model)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


@lru_cache
def get_voice_catalog() -> VoiceCatalog:
    """Get the process-wide voice catalog."""
    return VoiceCatalog()
