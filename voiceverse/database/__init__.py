"""
Database Package

Async SQLAlchemy models and record access for audio assets and
voice translation runs.
"""

from .base import Base, DatabaseManager, TimestampMixin, to_async_url, utcnow
from .models import (
    AudioFile,
    BatchStatus,
    OperationStatus,
    VoiceClone,
    VoiceTranslateBatch,
    VoiceTranslateOperation,
)
from .repositories import (
    AudioFileRepository,
    BaseRepository,
    BatchRepository,
    OperationRepository,
    RecordStore,
    VoiceCloneRepository,
)

__all__ = [
    "Base",
    "DatabaseManager",
    "TimestampMixin",
    "to_async_url",
    "utcnow",
    "AudioFile",
    "BatchStatus",
    "OperationStatus",
    "VoiceTranslateBatch",
    "VoiceTranslateOperation",
    "VoiceClone",
    "AudioFileRepository",
    "BaseRepository",
    "BatchRepository",
    "OperationRepository",
    "RecordStore",
    "VoiceCloneRepository",
]
