"""
Single-Operation Pipeline

Runs one voice translation operation through its six steps:

    initialization -> transcription -> translation -> voice_validation
        -> audio_generation -> saving

Each step is announced on the record (``current_step``) before its work
starts, so a crash mid-step can be diagnosed from persisted state.
Transcription and translation degrade to fallback text and never fail the
operation. Any other error fails it with the step name and a truncated
message.
"""

import time
from typing import Optional, Tuple

import structlog

from ..config import PipelineConfig, VoiceCatalog
from ..database import (
    AudioFile,
    OperationStatus,
    RecordStore,
    VoiceTranslateOperation,
    utcnow,
)
from ..errors import NotFoundError, SourceAudioMissingError
from ..providers import ProviderSet, VoiceSettings
from ..storage import AudioStorage
from ..voices import VoiceResolver

logger = structlog.get_logger(__name__)


# Step names recorded as "Failed at: <step>"
STEP_INITIALIZATION = "initialization"
STEP_TRANSCRIPTION = "transcription"
STEP_TRANSLATION = "translation"
STEP_VOICE_VALIDATION = "voice_validation"
STEP_AUDIO_GENERATION = "audio_generation"
STEP_SAVING = "saving"

NO_EFFECT = "none"


def truncate_error(error: BaseException, max_length: int) -> str:
    """Error text bounded to ``max_length`` characters."""
    message = str(error) or type(error).__name__
    return message[:max_length]


def fallback_translation(text: str, target_language: str) -> str:
    """Tagged passthrough used when the translation provider fails."""
    return f"[{target_language.upper()}] {text}"


class OperationPipeline:
    """
    Executes a single operation against its record.

    ``run`` always returns the terminal record (``completed`` or
    ``failed``) and does not raise for failures inside the steps.
    """

    def __init__(
        self,
        store: RecordStore,
        storage: AudioStorage,
        providers: ProviderSet,
        resolver: VoiceResolver,
        catalog: VoiceCatalog,
        config: PipelineConfig,
    ):
        self.store = store
        self.storage = storage
        self.providers = providers
        self.resolver = resolver
        self.catalog = catalog
        self.config = config

    async def run(
        self,
        operation_id: str,
        audio_file: Optional[AudioFile] = None,
    ) -> Optional[VoiceTranslateOperation]:
        """
        Run the pipeline for ``operation_id``.

        Args:
            operation_id: Operation record to process
            audio_file: Source audio record, loaded by id when omitted

        Returns:
            The terminal operation record, or None if the failure itself
            could not be persisted
        """
        start_time = time.monotonic()
        step = STEP_INITIALIZATION
        log = logger.bind(operation_id=operation_id)

        try:
            operation = await self.store.get_operation(operation_id)
            if operation is None:
                raise NotFoundError(
                    f"Operation {operation_id} not found",
                    resource="operation",
                    resource_id=operation_id,
                )
            if operation.is_terminal:
                log.info("operation_already_finished", status=operation.status)
                return operation

            # Step 1: initialization
            await self._enter_step(
                operation_id, step, "Reading audio file",
                status=OperationStatus.PROCESSING.value,
            )
            if audio_file is None:
                audio_file = await self.store.get_audio_file(operation.source_audio_id)
            if audio_file is None:
                raise NotFoundError(
                    "Audio file not found",
                    resource="audio_file",
                    resource_id=operation.source_audio_id,
                )
            audio_data = await self._read_source(audio_file)

            # Step 2: transcription
            step = STEP_TRANSCRIPTION
            await self._enter_step(operation_id, step, "Transcribing audio")
            source_text, detected_language = await self._transcribe(
                operation_id, audio_file, audio_data
            )

            # Step 3: translation
            step = STEP_TRANSLATION
            await self._enter_step(
                operation_id, step, "Translating text",
                source_text=source_text,
                detected_language=detected_language,
            )
            translated_text = await self._translate(
                operation_id, source_text, detected_language, operation.target_language
            )

            # Step 4: voice validation
            step = STEP_VOICE_VALIDATION
            await self._enter_step(
                operation_id, step, "Validating voice settings",
                translated_text=translated_text,
            )
            resolution = await self.resolver.resolve(
                operation.voice_id, operation.target_language
            )
            voice_fields = {"voice_id": resolution.effective_id}
            if resolution.note:
                voice_fields["notes"] = resolution.note
            await self.store.update_operation(operation_id, **voice_fields)

            # Step 5: audio generation
            step = STEP_AUDIO_GENERATION
            await self._enter_step(operation_id, step, "Generating transformed audio")
            result_audio = await self._generate_audio(
                operation,
                audio_file,
                audio_data,
                translated_text,
                resolution.effective_id,
            )

            # Step 6: persistence
            step = STEP_SAVING
            await self._enter_step(operation_id, step, "Saving result")
            result_key = self.storage.new_result_key()
            await self.storage.write_file(result_key, result_audio)
            result_file = await self.store.create_audio_file(
                user_id=audio_file.user_id,
                original_filename=result_key.rsplit("/", 1)[-1],
                storage_path=result_key,
                file_size=len(result_audio),
                duration=audio_file.duration,
                mime_type=self.config.output_mime_type,
            )

            processing_time = time.monotonic() - start_time
            completed = await self.store.update_operation(
                operation_id,
                status=OperationStatus.COMPLETED.value,
                current_step="Completed",
                result_audio_id=result_file.id,
                processing_time=processing_time,
                completed_at=utcnow(),
            )
            log.info(
                "operation_completed",
                processing_time=round(processing_time, 3),
                result_audio_id=result_file.id,
                voice_id=resolution.effective_id,
            )
            return completed

        except Exception as e:
            return await self.record_failure(operation_id, step, e, start_time)

    async def record_failure(
        self,
        operation_id: str,
        step: str,
        error: BaseException,
        start_time: float,
    ) -> Optional[VoiceTranslateOperation]:
        """Persist the terminal failed state for ``operation_id``."""
        processing_time = time.monotonic() - start_time
        error_message = truncate_error(error, self.config.error_message_max_length)
        logger.error(
            "operation_failed",
            operation_id=operation_id,
            step=step,
            error=error_message,
            error_type=type(error).__name__,
        )
        try:
            return await self.store.update_operation(
                operation_id,
                status=OperationStatus.FAILED.value,
                current_step=f"Failed at: {step}",
                error_message=error_message,
                processing_time=processing_time,
            )
        except Exception:
            logger.exception("operation_failure_not_persisted", operation_id=operation_id)
            return None

    # =========================================================================
    # Steps
    # =========================================================================

    async def _enter_step(
        self,
        operation_id: str,
        step: str,
        label: str,
        **fields,
    ) -> None:
        logger.debug("operation_step_started", operation_id=operation_id, step=step)
        await self.store.update_operation(operation_id, current_step=label, **fields)

    async def _read_source(self, audio_file: AudioFile) -> bytes:
        try:
            return await self.storage.read_file(audio_file.storage_path)
        except FileNotFoundError:
            raise SourceAudioMissingError(
                "Audio file not found on server",
                storage_path=audio_file.storage_path,
            )

    def _placeholder_transcript(self, audio_file: AudioFile) -> str:
        return self.config.placeholder_transcript.format(
            filename=audio_file.original_filename
        )

    async def _transcribe(
        self,
        operation_id: str,
        audio_file: AudioFile,
        audio_data: bytes,
    ) -> Tuple[str, str]:
        """Transcript and detected language, or the placeholder with ``en``."""
        placeholder = self._placeholder_transcript(audio_file), "en"

        if not self.config.use_openai_transcription:
            logger.info(
                "transcription_skipped",
                operation_id=operation_id,
                reason="disabled",
            )
            return placeholder

        transcriber = self.providers.transcriber
        if transcriber is None:
            logger.warning(
                "transcription_skipped",
                operation_id=operation_id,
                reason="not_configured",
            )
            return placeholder

        try:
            result = await transcriber.transcribe(
                audio_data,
                filename=audio_file.original_filename,
                mime_type=audio_file.mime_type,
            )
        except Exception as e:
            logger.warning(
                "transcription_fallback",
                operation_id=operation_id,
                reason="provider_error",
                error=str(e),
            )
            return placeholder

        if not result.text:
            logger.warning(
                "transcription_fallback",
                operation_id=operation_id,
                reason="empty_transcript",
            )
            return placeholder

        return result.text, result.language or "en"

    async def _translate(
        self,
        operation_id: str,
        text: str,
        source_language: str,
        target_language: str,
    ) -> str:
        if source_language == target_language:
            return text

        try:
            return await self.providers.translator.translate(
                text, source_language, target_language
            )
        except Exception as e:
            logger.warning(
                "translation_fallback",
                operation_id=operation_id,
                source_language=source_language,
                target_language=target_language,
                error=str(e),
            )
            return fallback_translation(text, target_language)

    async def _generate_audio(
        self,
        operation: VoiceTranslateOperation,
        audio_file: AudioFile,
        audio_data: bytes,
        translated_text: str,
        voice_id: str,
    ) -> bytes:
        """Voice transformation when an effect is requested, else synthesis."""
        synthesizer = self.providers.synthesizer
        settings = VoiceSettings.from_value(operation.settings)

        if operation.effect_id and operation.effect_id != NO_EFFECT:
            try:
                return await synthesizer.speech_to_speech(
                    audio_data,
                    voice_id,
                    mime_type=audio_file.mime_type,
                    settings=settings,
                )
            except Exception as e:
                logger.warning(
                    "voice_transform_fallback",
                    operation_id=operation.id,
                    effect_id=operation.effect_id,
                    error=str(e),
                )

        return await synthesizer.text_to_speech(
            translated_text,
            voice_id,
            settings=settings,
            language=operation.target_language,
        )
