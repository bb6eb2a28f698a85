"""
Provider Adapters

Async clients for transcription (OpenAI Whisper), translation
(LibreTranslate) and voice synthesis (ElevenLabs), with mock
counterparts for tests.
"""

from .base import (
    STS_DEFAULT_SETTINGS,
    TTS_DEFAULT_SETTINGS,
    ProviderConnectionError,
    ProviderError,
    ProviderNotConfiguredError,
    ProviderRateLimitError,
    ProviderTimeoutError,
    RetryPolicy,
    SynthesisError,
    TranscriberInterface,
    TranscriptionError,
    TranscriptionResult,
    TranslationError,
    TranslatorInterface,
    VoiceInfo,
    VoiceNotFoundError,
    VoiceSettings,
    VoiceSynthesizerInterface,
)
from .elevenlabs import ElevenLabsVoiceProvider, MockVoiceProvider
from .factory import ProviderSet, create_providers
from .transcription import MockTranscriber, OpenAIWhisperTranscriber
from .translation import LibreTranslateTranslator, MockTranslator

__all__ = [
    # Settings and policy
    "VoiceSettings",
    "TTS_DEFAULT_SETTINGS",
    "STS_DEFAULT_SETTINGS",
    "RetryPolicy",
    # Results
    "TranscriptionResult",
    "VoiceInfo",
    # Interfaces
    "TranscriberInterface",
    "TranslatorInterface",
    "VoiceSynthesizerInterface",
    # Implementations
    "OpenAIWhisperTranscriber",
    "MockTranscriber",
    "LibreTranslateTranslator",
    "MockTranslator",
    "ElevenLabsVoiceProvider",
    "MockVoiceProvider",
    # Factory
    "ProviderSet",
    "create_providers",
    # Exceptions
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
