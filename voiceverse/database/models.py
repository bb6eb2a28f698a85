"""
Database Models

SQLAlchemy ORM models for audio assets and voice translation runs.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin


class OperationStatus(str, Enum):
    """Lifecycle of a single translation run."""

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (OperationStatus.COMPLETED, OperationStatus.FAILED)


class BatchStatus(str, Enum):
    """Lifecycle of a batch of translation runs."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    PARTIAL = "partial"

    @property
    def is_terminal(self) -> bool:
        return self != BatchStatus.PROCESSING


# =============================================================================
# Audio Models
# =============================================================================


class AudioFile(Base, TimestampMixin):
    """Stored audio asset."""

    __tablename__ = "audio_files"

    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    original_filename: Mapped[str] = mapped_column(String(255), nullable=False)
    storage_path: Mapped[str] = mapped_column(String(500), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, default=0)
    duration: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    mime_type: Mapped[str] = mapped_column(String(100), default="audio/mpeg")
    is_public: Mapped[bool] = mapped_column(Boolean, default=False)

    __table_args__ = (
        Index("ix_audio_files_user_id", "user_id"),
    )


# =============================================================================
# Voice Translate Models
# =============================================================================


class VoiceTranslateBatch(Base, TimestampMixin):
    """A group of translation runs processed sequentially."""

    __tablename__ = "voice_translate_batches"

    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    target_language: Mapped[str] = mapped_column(String(10), nullable=False)
    voice_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    effect_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    settings: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)

    total_files: Mapped[int] = mapped_column(Integer, default=0)
    completed_files: Mapped[int] = mapped_column(Integer, default=0)
    failed_files: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[str] = mapped_column(
        String(20),
        default=BatchStatus.PROCESSING.value,
    )

    processing_time: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    operations: Mapped[List["VoiceTranslateOperation"]] = relationship(
        "VoiceTranslateOperation",
        back_populates="batch",
        order_by="VoiceTranslateOperation.batch_index",
    )

    __table_args__ = (
        Index("ix_voice_translate_batches_user_id", "user_id"),
    )

    @property
    def is_terminal(self) -> bool:
        return BatchStatus(self.status).is_terminal


class VoiceTranslateOperation(Base, TimestampMixin):
    """One transcribe, translate and synthesize run for a single audio file."""

    __tablename__ = "voice_translate_operations"

    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    source_audio_id: Mapped[str] = mapped_column(String(36), nullable=False)
    target_language: Mapped[str] = mapped_column(String(10), nullable=False)
    voice_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    effect_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    settings: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)

    status: Mapped[str] = mapped_column(
        String(20),
        default=OperationStatus.QUEUED.value,
    )
    current_step: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    source_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    detected_language: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    translated_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    result_audio_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    processing_time: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    batch_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("voice_translate_batches.id", ondelete="CASCADE"),
        nullable=True,
    )
    batch_index: Mapped[int] = mapped_column(Integer, default=0)

    batch: Mapped[Optional[VoiceTranslateBatch]] = relationship(
        "VoiceTranslateBatch",
        back_populates="operations",
    )

    __table_args__ = (
        Index("ix_voice_translate_operations_user_id", "user_id"),
        Index("ix_voice_translate_operations_batch_id", "batch_id"),
        Index("ix_voice_translate_operations_status", "status"),
    )

    @property
    def is_terminal(self) -> bool:
        return OperationStatus(self.status).is_terminal


# =============================================================================
# Voice Clone Models
# =============================================================================


class VoiceClone(Base, TimestampMixin):
    """A provider voice cloned from one of the user's audio files."""

    __tablename__ = "voice_clones"

    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    source_audio_id: Mapped[str] = mapped_column(String(36), nullable=False)
    provider_voice_id: Mapped[str] = mapped_column(String(100), nullable=False)
    voice_name: Mapped[str] = mapped_column(String(255), nullable=False)
    voice_description: Mapped[str] = mapped_column(Text, default="")
    status: Mapped[str] = mapped_column(String(20), default="ready")

    __table_args__ = (
        Index("ix_voice_clones_user_id", "user_id"),
    )


__all__ = [
    "OperationStatus",
    "BatchStatus",
    "AudioFile",
    "VoiceTranslateBatch",
    "VoiceTranslateOperation",
    "VoiceClone",
]
