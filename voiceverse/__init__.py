"""
VoiceVerse Voice Translation

Transcribe, translate and re-voice uploaded audio through a tracked,
asynchronous pipeline.

Quick Start:
    from voiceverse import VoiceTranslateService

    service = VoiceTranslateService.create()
    await service.start()

    handoff = await service.start_operation(user_id, audio_file_id, "es")
    operation = await service.get_operation(user_id, handoff.operation_id)
"""

from .config import Settings, VoiceCatalog, get_settings, get_voice_catalog
from .errors import (
    NotFoundError,
    PermissionDeniedError,
    SourceAudioMissingError,
    ValidationError,
    VoiceVerseError,
)
from .logging import configure_logging
from .service import (
    BatchHandoff,
    OperationHandoff,
    TextToVoiceResult,
    VoiceTranslateService,
)
from .voices import VoiceResolution, VoiceResolver
from .worker import BatchJob, OperationJob, PipelineWorker

__version__ = "1.0.0"

__all__ = [
    # Configuration
    "Settings",
    "VoiceCatalog",
    "get_settings",
    "get_voice_catalog",
    "configure_logging",
    # Service
    "VoiceTranslateService",
    "OperationHandoff",
    "BatchHandoff",
    "TextToVoiceResult",
    # Voices
    "VoiceResolver",
    "VoiceResolution",
    # Worker
    "PipelineWorker",
    "OperationJob",
    "BatchJob",
    # Errors
    "VoiceVerseError",
    "ValidationError",
    "NotFoundError",
    "PermissionDeniedError",
    "SourceAudioMissingError",
]
