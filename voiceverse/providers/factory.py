"""
Provider Factory

Builds the provider set for a ``Settings`` instance.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from ..config import Environment, Settings, VoiceCatalog
from .base import (
    ProviderNotConfiguredError,
    RetryPolicy,
    TranscriberInterface,
    TranslatorInterface,
    VoiceSynthesizerInterface,
)
from .elevenlabs import ElevenLabsVoiceProvider, MockVoiceProvider
from .transcription import MockTranscriber, OpenAIWhisperTranscriber
from .translation import LibreTranslateTranslator, MockTranslator

logger = structlog.get_logger(__name__)


@dataclass
class ProviderSet:
    """Adapters the pipeline talks to. ``transcriber`` is None when not configured."""

    transcriber: Optional[TranscriberInterface]
    translator: TranslatorInterface
    synthesizer: VoiceSynthesizerInterface

    async def close(self) -> None:
        if self.transcriber:
            await self.transcriber.close()
        await self.translator.close()
        await self.synthesizer.close()


def create_providers(
    settings: Settings,
    catalog: VoiceCatalog,
    use_mocks: Optional[bool] = None,
) -> ProviderSet:
    """
    Factory function to create the provider set.

    Args:
        settings: Application settings
        catalog: Voice catalog shared with the synthesizer
        use_mocks: Force mock providers; defaults to True in the test environment

    Returns:
        Configured providers
    """
    if use_mocks is None:
        use_mocks = settings.environment == Environment.TEST

    if use_mocks:
        logger.info("providers_created", mode="mock")
        return ProviderSet(
            transcriber=MockTranscriber(),
            translator=MockTranslator(),
            synthesizer=MockVoiceProvider(catalog=catalog),
        )

    credentials = settings.credentials
    pipeline = settings.pipeline

    transcriber: Optional[TranscriberInterface] = None
    if credentials.openai_api_key:
        transcriber = OpenAIWhisperTranscriber(
            api_key=credentials.openai_api_key,
            base_url=credentials.openai_base_url,
            timeout=pipeline.transcription_timeout_seconds,
            retry_policy=RetryPolicy(
                max_attempts=pipeline.transcription_max_attempts,
                backoff_base_seconds=pipeline.transcription_backoff_base_seconds,
            ),
        )

    if not credentials.elevenlabs_api_key:
        raise ProviderNotConfiguredError(
            "ELEVENLABS_API_KEY is required for voice synthesis",
            provider="elevenlabs",
        )

    logger.info(
        "providers_created",
        mode="live",
        transcription=transcriber is not None,
    )
    return ProviderSet(
        transcriber=transcriber,
        translator=LibreTranslateTranslator(
            url=credentials.libretranslate_url,
            api_key=credentials.libretranslate_api_key,
            timeout=pipeline.translation_timeout_seconds,
        ),
        synthesizer=ElevenLabsVoiceProvider(
            api_key=credentials.elevenlabs_api_key,
            catalog=catalog,
            base_url=credentials.elevenlabs_base_url,
            timeout=pipeline.synthesis_timeout_seconds,
            clone_timeout=pipeline.clone_timeout_seconds,
        ),
    )
