"""
Voice Translate Service

Entry points for voice translation. Each ``start_*`` call validates the
request, creates the tracked records, hands the work to the background
worker, and returns at once; callers poll ``get_operation`` or
``get_batch`` for the outcome.
"""

import math
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import pydantic
import structlog

from .config import Settings, VoiceCatalog, get_settings, get_voice_catalog
from .database import (
    AudioFile,
    DatabaseManager,
    OperationStatus,
    RecordStore,
    VoiceTranslateBatch,
    VoiceClone,
    VoiceTranslateOperation,
    utcnow,
)
from .errors import (
    NotFoundError,
    PermissionDeniedError,
    SourceAudioMissingError,
    ValidationError,
)
from .logging import configure_logging
from .pipeline import BatchCoordinator, OperationPipeline
from .pipeline.batch import Sleeper
from .providers import ProviderSet, VoiceSettings, create_providers
from .storage import AudioStorage
from .voices import VoiceResolver
from .worker import BatchJob, OperationJob, PipelineWorker

logger = structlog.get_logger(__name__)


SECONDS_PER_FILE_MIN = 30
SECONDS_PER_FILE_MAX = 60
PREVIEW_LENGTH = 200
DETECTION_CONFIDENCE = 0.8
FALLBACK_CONFIDENCE = 0.3
DEFAULT_CLONE_DESCRIPTION = "Voice cloned from uploaded audio"


def estimate_time(file_count: int) -> str:
    """Human-readable processing estimate for ``file_count`` files."""
    return f"{file_count * SECONDS_PER_FILE_MIN}-{file_count * SECONDS_PER_FILE_MAX} seconds"


# =============================================================================
# Results
# =============================================================================


@dataclass
class OperationHandoff:
    """Accepted single-file request."""

    operation_id: str
    status: str
    target_language: str
    target_language_name: str
    estimated_time: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation_id": self.operation_id,
            "status": self.status,
            "target_language": self.target_language,
            "target_language_name": self.target_language_name,
            "estimated_time": self.estimated_time,
        }


@dataclass
class BatchHandoff:
    """Accepted batch request."""

    batch_id: str
    operation_ids: List[str]
    total_files: int
    target_language: str
    target_language_name: str
    estimated_time: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "batch_id": self.batch_id,
            "operation_ids": list(self.operation_ids),
            "total_files": self.total_files,
            "target_language": self.target_language,
            "target_language_name": self.target_language_name,
            "estimated_time": self.estimated_time,
        }


@dataclass
class TextToVoiceResult:
    """Synthesized speech for a piece of text."""

    original_text: str
    translated_text: str
    source_language: str
    target_language: str
    voice_id: str
    audio_data: bytes = field(repr=False)
    notes: Optional[str] = None
    voice_clone_id: Optional[str] = None
    voice_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "original_text": self.original_text,
            "translated_text": self.translated_text,
            "source_language": self.source_language,
            "target_language": self.target_language,
            "voice_id": self.voice_id,
            "audio_size": len(self.audio_data),
            "notes": self.notes,
        }
        if self.voice_clone_id:
            data["voice_clone_id"] = self.voice_clone_id
            data["voice_name"] = self.voice_name
        return data


# =============================================================================
# Service
# =============================================================================


class VoiceTranslateService:
    """Public operations for voice translation."""

    def __init__(
        self,
        settings: Settings,
        catalog: VoiceCatalog,
        store: RecordStore,
        storage: AudioStorage,
        providers: ProviderSet,
        sleep: Optional[Sleeper] = None,
    ):
        self.settings = settings
        self.catalog = catalog
        self.store = store
        self.storage = storage
        self.providers = providers

        self.resolver = VoiceResolver(catalog, providers.synthesizer)
        self.pipeline = OperationPipeline(
            store=store,
            storage=storage,
            providers=providers,
            resolver=self.resolver,
            catalog=catalog,
            config=settings.pipeline,
        )
        self.coordinator = BatchCoordinator(
            store=store,
            pipeline=self.pipeline,
            config=settings.pipeline,
            sleep=sleep,
        )
        self.worker = PipelineWorker(
            pipeline=self.pipeline,
            coordinator=self.coordinator,
            concurrency=settings.worker_concurrency,
        )

    @classmethod
    def create(
        cls,
        settings: Optional[Settings] = None,
        db: Optional[DatabaseManager] = None,
        use_mocks: Optional[bool] = None,
        sleep: Optional[Sleeper] = None,
    ) -> "VoiceTranslateService":
        """Wire the service from settings."""
        settings = settings or get_settings()
        configure_logging(
            level=settings.log_level,
            fmt=settings.log_format,
            service_name=settings.service_name,
        )
        catalog = get_voice_catalog()
        db = db or DatabaseManager(settings.database_url, echo=settings.database_echo)
        return cls(
            settings=settings,
            catalog=catalog,
            store=RecordStore(db),
            storage=AudioStorage.from_config(settings.storage),
            providers=create_providers(settings, catalog, use_mocks=use_mocks),
            sleep=sleep,
        )

    async def start(self) -> None:
        """Create tables and start the background worker."""
        if self.settings.pipeline.use_openai_transcription and self.providers.transcriber is None:
            logger.warning(
                "transcription_unavailable",
                reason="not_configured",
                detail="OPENAI_API_KEY is not set; placeholder transcripts will be used",
            )
        await self.store.db.create_all()
        await self.worker.start()
        logger.info("voice_translate_service_started", service=self.settings.service_name)

    async def close(self) -> None:
        """Stop the worker and release clients and connections."""
        await self.worker.stop()
        await self.providers.close()
        await self.store.db.close()
        logger.info("voice_translate_service_stopped")

    # =========================================================================
    # Validation helpers
    # =========================================================================

    def _require_language(self, target_language: Optional[str]) -> str:
        if not target_language:
            raise ValidationError("Target language is required")
        code = target_language.strip().lower()
        if not self.catalog.is_supported(code):
            raise ValidationError(
                f"Unsupported target language: {target_language}",
                details={"target_language": target_language},
            )
        return code

    def _parse_settings(self, settings: Any) -> VoiceSettings:
        try:
            return VoiceSettings.from_value(settings)
        except pydantic.ValidationError as e:
            raise ValidationError(
                "Invalid voice settings",
                details={"errors": e.errors(include_url=False)},
            )

    def _check_owner(self, record: Any, user_id: str, resource: str) -> None:
        if record.user_id != user_id:
            raise PermissionDeniedError(
                f"Access denied to {resource}",
                details={"resource": resource, "resource_id": record.id},
            )

    async def _load_audio(self, user_id: str, audio_file_id: str) -> AudioFile:
        audio_file = await self.store.get_audio_file(audio_file_id)
        if audio_file is None:
            raise NotFoundError(
                "Audio file not found",
                resource="audio_file",
                resource_id=audio_file_id,
            )
        self._check_owner(audio_file, user_id, "audio_file")
        return audio_file

    # =========================================================================
    # Entry points
    # =========================================================================

    async def start_operation(
        self,
        user_id: str,
        audio_file_id: str,
        target_language: str,
        voice_id: Optional[str] = None,
        effect_id: Optional[str] = None,
        settings: Any = None,
    ) -> OperationHandoff:
        """Accept one audio file for translation and queue it."""
        if not audio_file_id:
            raise ValidationError("Audio file ID is required")
        language = self._require_language(target_language)
        voice_settings = self._parse_settings(settings)
        audio_file = await self._load_audio(user_id, audio_file_id)

        operation = await self.store.create_operation(
            user_id=user_id,
            source_audio_id=audio_file.id,
            target_language=language,
            voice_id=voice_id or self.catalog.default_voice_for(language),
            effect_id=effect_id,
            settings=voice_settings.to_record(),
            status=OperationStatus.PROCESSING.value,
            current_step="Queued",
        )
        await self.worker.submit(OperationJob(operation.id))

        logger.info(
            "operation_accepted",
            operation_id=operation.id,
            user_id=user_id,
            target_language=language,
        )
        return OperationHandoff(
            operation_id=operation.id,
            status=operation.status,
            target_language=language,
            target_language_name=self.catalog.language_name(language),
            estimated_time=estimate_time(1),
        )

    async def start_batch(
        self,
        user_id: str,
        audio_file_ids: Sequence[str],
        target_language: str,
        voice_id: Optional[str] = None,
        effect_id: Optional[str] = None,
        settings: Any = None,
    ) -> BatchHandoff:
        """Accept several audio files for sequential translation and queue them."""
        if not audio_file_ids:
            raise ValidationError("At least one audio file is required")
        max_files = self.settings.pipeline.max_batch_files
        if len(audio_file_ids) > max_files:
            raise ValidationError(
                f"Maximum {max_files} files allowed per batch",
                details={"received": len(audio_file_ids), "max": max_files},
            )
        language = self._require_language(target_language)
        voice_settings = self._parse_settings(settings)

        found = {audio.id: audio for audio in await self.store.get_audio_files(audio_file_ids)}
        missing = [audio_id for audio_id in audio_file_ids if audio_id not in found]
        if missing:
            raise NotFoundError(
                "Some audio files not found",
                resource="audio_file",
                resource_id=missing[0],
                details={"missing": missing},
            )
        for audio in found.values():
            self._check_owner(audio, user_id, "audio_file")

        effective_voice = voice_id or self.catalog.default_voice_for(language)
        stored_settings = voice_settings.to_record()
        batch = await self.store.create_batch_with_operations(
            batch_fields={
                "user_id": user_id,
                "target_language": language,
                "voice_id": effective_voice,
                "effect_id": effect_id,
                "settings": stored_settings,
            },
            operation_fields=[
                {
                    "user_id": user_id,
                    "source_audio_id": audio_id,
                    "target_language": language,
                    "voice_id": effective_voice,
                    "effect_id": effect_id,
                    "settings": stored_settings,
                    "status": OperationStatus.QUEUED.value,
                    "current_step": "Queued",
                }
                for audio_id in audio_file_ids
            ],
        )
        await self.worker.submit(BatchJob(batch.id))

        operation_ids = [op.id for op in batch.operations]
        logger.info(
            "batch_accepted",
            batch_id=batch.id,
            user_id=user_id,
            total_files=len(operation_ids),
            target_language=language,
        )
        return BatchHandoff(
            batch_id=batch.id,
            operation_ids=operation_ids,
            total_files=len(operation_ids),
            target_language=language,
            target_language_name=self.catalog.language_name(language),
            estimated_time=estimate_time(len(operation_ids)),
        )

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_operation(self, user_id: str, operation_id: str) -> VoiceTranslateOperation:
        operation = await self.store.get_operation(operation_id)
        if operation is None:
            raise NotFoundError(
                "Operation not found",
                resource="operation",
                resource_id=operation_id,
            )
        self._check_owner(operation, user_id, "operation")
        return operation

    async def get_batch(self, user_id: str, batch_id: str) -> VoiceTranslateBatch:
        batch = await self.store.get_batch_with_operations(batch_id)
        if batch is None:
            raise NotFoundError(
                "Batch not found",
                resource="batch",
                resource_id=batch_id,
            )
        self._check_owner(batch, user_id, "batch")
        return batch

    async def get_history(
        self,
        user_id: str,
        page: int = 1,
        limit: int = 10,
        status: Optional[str] = None,
        language: Optional[str] = None,
    ) -> Dict[str, Any]:
        """A user's operations, newest first, with pagination."""
        if page < 1:
            raise ValidationError("Page must be at least 1")
        if limit < 1 or limit > 100:
            raise ValidationError("Limit must be between 1 and 100")
        if status is not None and status not in {s.value for s in OperationStatus}:
            raise ValidationError(f"Unknown status: {status}")
        if language:
            language = language.strip().lower()

        result = await self.store.list_operations_for_user(
            user_id,
            status=status,
            target_language=language,
            skip=(page - 1) * limit,
            limit=limit,
        )
        total = result["total"]
        return {
            "operations": [op.to_dict() for op in result["items"]],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit) if total else 0,
            },
        }

    # =========================================================================
    # Supplementary operations
    # =========================================================================

    async def get_options(self) -> Dict[str, Any]:
        """Supported languages, provider voices and translation provider status."""
        translator = self.providers.translator
        translation: Dict[str, Any] = {
            "provider": translator.provider_name,
            "available": False,
            "languages": [],
        }

        try:
            translation["languages"] = await translator.get_languages()
        except Exception as e:
            translation["languages_error"] = str(e)

        try:
            sample = await translator.translate("Hello", "en", "es")
            translation["available"] = True
            translation["test"] = {"input": "Hello", "output": sample}
        except Exception as e:
            translation["error"] = str(e)

        voices: Dict[str, Any] = {
            "provider": self.providers.synthesizer.provider_name,
            "items": [],
        }
        try:
            voices["items"] = [
                voice.to_dict() for voice in await self.providers.synthesizer.get_voices()
            ]
        except Exception as e:
            logger.warning("voice_list_unavailable", error=str(e))
            voices["error"] = str(e)

        return {
            "languages": [language.to_dict() for language in self.catalog.languages],
            "translation": translation,
            "voices": voices,
            "transcription": {
                "enabled": self.settings.pipeline.use_openai_transcription,
                "configured": self.providers.transcriber is not None,
            },
            "max_batch_files": self.settings.pipeline.max_batch_files,
        }

    async def test_translation(
        self,
        text: str = "Hello, world!",
        source_language: str = "en",
        target_language: str = "es",
    ) -> Dict[str, Any]:
        """Round-trip a phrase through the translation provider; errors propagate."""
        translated = await self.providers.translator.translate(
            text, source_language, target_language
        )
        return {
            "original_text": text,
            "translated_text": translated,
            "source_language": source_language,
            "target_language": target_language,
            "translation_service": self.providers.translator.provider_name,
            "timestamp": utcnow().isoformat(),
        }

    async def _translate_or_keep(self, text: str, source_language: str, target_language: str) -> str:
        """Translated text, or ``text`` unchanged when the provider fails."""
        if source_language == target_language:
            return text
        try:
            return await self.providers.translator.translate(
                text, source_language, target_language
            )
        except Exception as e:
            logger.warning(
                "translation_fallback",
                source_language=source_language,
                target_language=target_language,
                error=str(e),
            )
            return text

    async def text_to_voice(
        self,
        text: str,
        target_language: str,
        source_language: str = "en",
        voice_id: Optional[str] = None,
        settings: Any = None,
    ) -> TextToVoiceResult:
        """Translate ``text`` and synthesize it; translation falls back to the input."""
        if not text or not text.strip():
            raise ValidationError("Text is required")
        language = self._require_language(target_language)
        voice_settings = self._parse_settings(settings)

        translated = await self._translate_or_keep(text, source_language, language)
        resolution = await self.resolver.resolve(voice_id, language)
        audio = await self.providers.synthesizer.text_to_speech(
            translated,
            resolution.effective_id,
            settings=voice_settings,
            language=language,
        )
        return TextToVoiceResult(
            original_text=text,
            translated_text=translated,
            source_language=source_language,
            target_language=language,
            voice_id=resolution.effective_id,
            audio_data=audio,
            notes=resolution.note,
        )

    async def detect_language(self, user_id: str, audio_file_id: str) -> Dict[str, Any]:
        """Transcribe a stored file and report its language."""
        audio_file = await self._load_audio(user_id, audio_file_id)
        audio_data = await self._read_audio(audio_file)

        transcriber = self.providers.transcriber
        try:
            if transcriber is None:
                raise ValidationError("Transcription is not configured")
            result = await transcriber.transcribe(
                audio_data,
                filename=audio_file.original_filename,
                mime_type=audio_file.mime_type,
            )
            code = result.language or "en"
            confidence = DETECTION_CONFIDENCE
            preview = result.text[:PREVIEW_LENGTH]
            if len(result.text) > PREVIEW_LENGTH:
                preview += "..."
        except Exception as e:
            logger.warning(
                "language_detection_fallback",
                audio_file_id=audio_file_id,
                error=str(e),
            )
            code = "en"
            confidence = FALLBACK_CONFIDENCE
            preview = ""

        return {
            "audio_file_id": audio_file.id,
            "detected_language": code,
            "language_name": self.catalog.language_name(code),
            "confidence": confidence,
            "transcript_preview": preview,
        }

    async def _read_audio(self, audio_file: AudioFile) -> bytes:
        try:
            return await self.storage.read_file(audio_file.storage_path)
        except FileNotFoundError:
            raise SourceAudioMissingError(
                "Audio file not found on server",
                storage_path=audio_file.storage_path,
            )

    # =========================================================================
    # Cloned voices
    # =========================================================================

    async def clone_voice(
        self,
        user_id: str,
        audio_file_id: str,
        voice_name: Optional[str] = None,
        voice_description: Optional[str] = None,
    ) -> VoiceClone:
        """Clone a provider voice from one of the user's recordings."""
        if not audio_file_id:
            raise ValidationError("Audio file ID is required")
        audio_file = await self._load_audio(user_id, audio_file_id)
        audio_data = await self._read_audio(audio_file)

        name = voice_name or f"Cloned Voice {int(time.time() * 1000)}"
        description = voice_description or DEFAULT_CLONE_DESCRIPTION
        voice = await self.providers.synthesizer.clone_voice(
            name,
            audio_data,
            filename=audio_file.original_filename,
            mime_type=audio_file.mime_type,
            description=description,
            labels={
                "accent": "custom",
                "description": description,
                "age": "adult",
                "gender": "neutral",
            },
        )

        clone = await self.store.create_voice_clone(
            user_id=user_id,
            source_audio_id=audio_file.id,
            provider_voice_id=voice.voice_id,
            voice_name=voice.name,
            voice_description=voice.description or "",
            status="ready",
        )
        logger.info(
            "voice_clone_created",
            voice_clone_id=clone.id,
            provider_voice_id=voice.voice_id,
            user_id=user_id,
        )
        return clone

    async def get_my_voices(self, user_id: str) -> Dict[str, Any]:
        """The user's cloned voices, newest first."""
        clones = await self.store.list_voice_clones_for_user(user_id)
        return {
            "voice_clones": [clone.to_dict() for clone in clones],
            "count": len(clones),
        }

    async def translate_with_my_voice(
        self,
        user_id: str,
        text: str,
        target_language: str,
        voice_clone_id: str,
        source_language: str = "en",
        settings: Any = None,
    ) -> TextToVoiceResult:
        """Like ``text_to_voice``, but spoken with one of the user's cloned voices."""
        if not text or not text.strip():
            raise ValidationError("Text is required")
        if not voice_clone_id:
            raise ValidationError("Voice clone ID is required")

        clone = await self.store.get_voice_clone(voice_clone_id)
        if clone is None:
            raise NotFoundError(
                "Voice clone not found",
                resource="voice_clone",
                resource_id=voice_clone_id,
            )
        self._check_owner(clone, user_id, "voice_clone")
        language = self._require_language(target_language)
        voice_settings = self._parse_settings(settings)

        translated = await self._translate_or_keep(text, source_language, language)
        audio = await self.providers.synthesizer.text_to_speech(
            translated,
            clone.provider_voice_id,
            settings=voice_settings,
            language=language,
        )
        return TextToVoiceResult(
            original_text=text,
            translated_text=translated,
            source_language=source_language,
            target_language=language,
            voice_id=clone.provider_voice_id,
            audio_data=audio,
            voice_clone_id=clone.id,
            voice_name=clone.voice_name,
        )
