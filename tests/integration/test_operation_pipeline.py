"""
Integration Tests for the Single-Operation Pipeline

Runs operations end to end against a temporary SQLite database and
storage directory with scripted providers.
"""

import pytest
from structlog.testing import capture_logs

from voiceverse.config import PipelineConfig
from voiceverse.providers import (
    MockTranscriber,
    MockTranslator,
    MockVoiceProvider,
    ProviderSet,
)

from conftest import (
    KNOWN_BAD_VOICE,
    KNOWN_GOOD_VOICE,
    FailingTranscriber,
    FailingTranslator,
    FixedTranscriber,
)


pytestmark = pytest.mark.integration


class TestOperationPipeline:
    """Tests for OperationPipeline."""

    @pytest.mark.asyncio
    async def test_known_bad_voice_completes_with_replacement(
        self, pipeline, store, storage, make_audio, make_operation
    ):
        audio = await make_audio(user_id="u1", filename="A.mp3")
        operation = await make_operation(audio, voice_id=KNOWN_BAD_VOICE, effect_id="none")

        result = await pipeline.run(operation.id)

        assert result.status == "completed"
        assert result.current_step == "Completed"
        assert result.voice_id == KNOWN_GOOD_VOICE
        assert result.notes
        assert result.translated_text == "(es) Hello, this is a test recording."
        assert result.source_text == "Hello, this is a test recording."
        assert result.detected_language == "en"
        assert result.error_message is None
        assert result.processing_time >= 0
        assert result.completed_at is not None

        output = await store.get_audio_file(result.result_audio_id)
        assert output.user_id == "u1"
        assert output.mime_type == "audio/mpeg"
        assert output.duration == audio.duration
        assert output.storage_path.startswith("audio/voice-translate/voice_translate_")
        assert output.storage_path.endswith(".mp3")
        assert await storage.read_file(output.storage_path) == b"ID3tts:" + result.translated_text.encode()

    @pytest.mark.asyncio
    async def test_example_with_unreachable_translator(
        self, make_pipeline, synthesizer, make_audio, make_operation
    ):
        providers = ProviderSet(
            transcriber=MockTranscriber(),
            translator=FailingTranslator(),
            synthesizer=synthesizer,
        )
        pipeline = make_pipeline(providers)
        audio = await make_audio()
        operation = await make_operation(audio, voice_id=KNOWN_BAD_VOICE)

        result = await pipeline.run(operation.id)

        assert result.status == "completed"
        assert result.voice_id == KNOWN_GOOD_VOICE
        assert result.translated_text == "[ES] Hello, this is a test recording."

    @pytest.mark.asyncio
    async def test_transcription_failure_uses_placeholder(
        self, make_pipeline, synthesizer, make_audio, make_operation
    ):
        transcriber = FailingTranscriber()
        providers = ProviderSet(
            transcriber=transcriber,
            translator=MockTranslator(),
            synthesizer=synthesizer,
        )
        pipeline = make_pipeline(providers)
        audio = await make_audio(filename="greeting.mp3")
        operation = await make_operation(audio)

        with capture_logs() as logs:
            result = await pipeline.run(operation.id)

        assert transcriber.calls == 1
        assert result.status == "completed"
        assert result.detected_language == "en"
        assert '"greeting.mp3"' in result.source_text
        events = [e for e in logs if e["event"] == "transcription_fallback"]
        assert events and events[0]["reason"] == "provider_error"

    @pytest.mark.asyncio
    async def test_transcription_disabled_is_logged_distinctly(
        self, make_pipeline, providers, make_audio, make_operation
    ):
        pipeline = make_pipeline(
            providers, config=PipelineConfig(use_openai_transcription=False)
        )
        audio = await make_audio(filename="clip.mp3")
        operation = await make_operation(audio)

        with capture_logs() as logs:
            result = await pipeline.run(operation.id)

        assert result.status == "completed"
        assert '"clip.mp3"' in result.source_text
        skipped = [e for e in logs if e["event"] == "transcription_skipped"]
        assert skipped[0]["reason"] == "disabled"

    @pytest.mark.asyncio
    async def test_transcription_not_configured_is_logged_distinctly(
        self, make_pipeline, synthesizer, make_audio, make_operation
    ):
        providers = ProviderSet(
            transcriber=None,
            translator=MockTranslator(),
            synthesizer=synthesizer,
        )
        pipeline = make_pipeline(providers)
        audio = await make_audio()
        operation = await make_operation(audio)

        with capture_logs() as logs:
            result = await pipeline.run(operation.id)

        assert result.status == "completed"
        skipped = [e for e in logs if e["event"] == "transcription_skipped"]
        assert skipped[0]["reason"] == "not_configured"
        assert skipped[0]["log_level"] == "warning"

    @pytest.mark.asyncio
    async def test_same_language_skips_translation(
        self, make_pipeline, synthesizer, make_audio, make_operation
    ):
        translator = MockTranslator()
        providers = ProviderSet(
            transcriber=FixedTranscriber("Hola a todos", "es"),
            translator=translator,
            synthesizer=synthesizer,
        )
        pipeline = make_pipeline(providers)
        audio = await make_audio()
        operation = await make_operation(audio, target_language="es")

        result = await pipeline.run(operation.id)

        assert result.status == "completed"
        assert result.translated_text == "Hola a todos"
        assert translator.calls == []

    @pytest.mark.asyncio
    async def test_unknown_voice_uses_language_default(
        self, pipeline, catalog, make_audio, make_operation
    ):
        audio = await make_audio()
        operation = await make_operation(audio, voice_id="missing-voice", target_language="fr")

        result = await pipeline.run(operation.id)

        assert result.status == "completed"
        assert result.voice_id == catalog.default_voice_for("fr")
        assert result.notes == "Using default multilingual voice for French"

    @pytest.mark.asyncio
    async def test_effect_uses_voice_transformation(
        self, pipeline, synthesizer, store, storage, make_audio, make_operation
    ):
        audio = await make_audio()
        operation = await make_operation(audio, effect_id="robot")

        result = await pipeline.run(operation.id)

        assert result.status == "completed"
        assert synthesizer.sts_calls == [{"voice_id": KNOWN_GOOD_VOICE, "mime_type": "audio/mpeg"}]
        assert synthesizer.tts_calls == []
        output = await store.get_audio_file(result.result_audio_id)
        assert (await storage.read_file(output.storage_path)).startswith(b"ID3sts:")

    @pytest.mark.asyncio
    async def test_failed_transformation_falls_back_to_synthesis(
        self, make_pipeline, catalog, make_audio, make_operation
    ):
        synthesizer = MockVoiceProvider(
            catalog=catalog, known_voices={KNOWN_GOOD_VOICE}, fail_sts=True
        )
        providers = ProviderSet(
            transcriber=MockTranscriber(),
            translator=MockTranslator(),
            synthesizer=synthesizer,
        )
        pipeline = make_pipeline(providers)
        audio = await make_audio()
        operation = await make_operation(audio, effect_id="robot")

        result = await pipeline.run(operation.id)

        assert result.status == "completed"
        assert len(synthesizer.tts_calls) == 1

    @pytest.mark.asyncio
    async def test_missing_source_file_fails_at_initialization(
        self, pipeline, make_audio, make_operation
    ):
        audio = await make_audio(write=False)
        operation = await make_operation(audio)

        result = await pipeline.run(operation.id)

        assert result.status == "failed"
        assert result.current_step == "Failed at: initialization"
        assert result.error_message == "Audio file not found on server"
        assert result.result_audio_id is None
        assert result.processing_time >= 0

    @pytest.mark.asyncio
    async def test_synthesis_failure_fails_at_audio_generation(
        self, make_pipeline, catalog, make_audio, make_operation
    ):
        synthesizer = MockVoiceProvider(
            catalog=catalog,
            known_voices={KNOWN_GOOD_VOICE},
            failing_models={catalog.default_model},
        )
        providers = ProviderSet(
            transcriber=FailingTranscriber(),
            translator=FailingTranslator(),
            synthesizer=synthesizer,
        )
        pipeline = make_pipeline(providers)
        audio = await make_audio()
        operation = await make_operation(audio)

        result = await pipeline.run(operation.id)

        assert result.status == "failed"
        assert result.current_step == "Failed at: audio_generation"
        assert result.source_text
        assert result.translated_text.startswith("[ES] ")
        assert result.result_audio_id is None

    @pytest.mark.asyncio
    async def test_error_message_is_truncated(
        self, make_pipeline, pipeline_config, catalog, make_audio, make_operation
    ):
        class ExplodingVoiceProvider(MockVoiceProvider):
            async def text_to_speech(self, text, voice_id, settings=None, language=None):
                raise RuntimeError("x" * 5000)

        providers = ProviderSet(
            transcriber=MockTranscriber(),
            translator=MockTranslator(),
            synthesizer=ExplodingVoiceProvider(catalog=catalog),
        )
        pipeline = make_pipeline(providers)
        audio = await make_audio()
        operation = await make_operation(audio)

        result = await pipeline.run(operation.id)

        assert result.status == "failed"
        assert len(result.error_message) == pipeline_config.error_message_max_length

    @pytest.mark.asyncio
    async def test_storage_failure_fails_at_saving(
        self, pipeline, storage, make_audio, make_operation, monkeypatch
    ):
        async def broken_write(key, data):
            raise OSError("disk full")

        audio = await make_audio()
        operation = await make_operation(audio)
        monkeypatch.setattr(storage, "write_file", broken_write)

        result = await pipeline.run(operation.id)

        assert result.status == "failed"
        assert result.current_step == "Failed at: saving"
        assert result.error_message == "disk full"

    @pytest.mark.asyncio
    async def test_two_runs_produce_independent_records(
        self, pipeline, store, make_audio, make_operation
    ):
        audio = await make_audio()
        first = await make_operation(audio, target_language="es")
        second = await make_operation(audio, target_language="fr")

        first_result = await pipeline.run(first.id)
        second_result = await pipeline.run(second.id)

        assert first_result.status == "completed"
        assert second_result.status == "completed"
        assert first_result.result_audio_id != second_result.result_audio_id

        reloaded = await store.get_operation(first.id)
        assert reloaded.translated_text.startswith("(es) ")
        assert reloaded.result_audio_id == first_result.result_audio_id

    @pytest.mark.asyncio
    async def test_settings_are_passed_to_synthesis(
        self, make_pipeline, catalog, make_audio, make_operation
    ):
        seen = {}

        class RecordingVoiceProvider(MockVoiceProvider):
            async def text_to_speech(self, text, voice_id, settings=None, language=None):
                seen["settings"] = settings
                seen["language"] = language
                return b"ID3"

        providers = ProviderSet(
            transcriber=MockTranscriber(),
            translator=MockTranslator(),
            synthesizer=RecordingVoiceProvider(catalog=catalog, known_voices={KNOWN_GOOD_VOICE}),
        )
        pipeline = make_pipeline(providers)
        audio = await make_audio()
        operation = await make_operation(audio, settings={"stability": 0.25, "similarityBoost": 0.5})

        result = await pipeline.run(operation.id)

        assert result.status == "completed"
        assert seen["settings"].stability == 0.25
        assert seen["settings"].similarity_boost == 0.5
        assert seen["language"] == "es"

    @pytest.mark.asyncio
    async def test_finished_operation_is_not_run_again(
        self, pipeline, synthesizer, make_audio, make_operation
    ):
        audio = await make_audio()
        operation = await make_operation(audio)

        first = await pipeline.run(operation.id)
        with capture_logs() as logs:
            second = await pipeline.run(operation.id)

        assert second.status == "completed"
        assert second.result_audio_id == first.result_audio_id
        assert second.completed_at == first.completed_at
        assert len(synthesizer.tts_calls) == 1
        assert [e["event"] for e in logs] == ["operation_already_finished"]

    @pytest.mark.asyncio
    async def test_failed_operation_is_not_retried(self, pipeline, store, make_audio, make_operation):
        audio = await make_audio(write=False)
        operation = await make_operation(audio)

        first = await pipeline.run(operation.id)
        second = await pipeline.run(operation.id)

        assert first.status == "failed"
        assert second.status == "failed"
        assert second.current_step == "Failed at: initialization"
        assert second.processing_time == first.processing_time
