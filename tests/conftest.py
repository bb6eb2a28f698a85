"""Shared pytest fixtures for testing."""

from types import MappingProxyType
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio

from voiceverse.config import (
    Environment,
    PipelineConfig,
    ProviderCredentials,
    Settings,
    StorageConfig,
    VoiceCatalog,
)
from voiceverse.database import AudioFile, DatabaseManager, RecordStore
from voiceverse.languages import VOICE_ID_REPLACEMENTS
from voiceverse.pipeline import BatchCoordinator, OperationPipeline
from voiceverse.providers import (
    MockTranscriber,
    MockTranslator,
    MockVoiceProvider,
    ProviderSet,
    TranscriberInterface,
    TranscriptionError,
    TranscriptionResult,
    TranslationError,
    TranslatorInterface,
)
from voiceverse.storage import AudioStorage, LocalStorageBackend
from voiceverse.voices import VoiceResolver


SAMPLE_AUDIO = b"ID3\x03\x00\x00\x00" + bytes(range(64))

KNOWN_BAD_VOICE = "bad-id"
KNOWN_GOOD_VOICE = "good-id"


# =============================================================================
# Test Doubles
# =============================================================================


class RecordingSleeper:
    """Stands in for ``asyncio.sleep``; records delays instead of waiting."""

    def __init__(self, events: Optional[List[Any]] = None):
        self.delays: List[float] = []
        self.events = events if events is not None else []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        self.events.append(("sleep", delay))


class FailingTranscriber(TranscriberInterface):
    """Always raises a provider error."""

    def __init__(self):
        self.calls = 0

    @property
    def provider_name(self) -> str:
        return "failing"

    async def transcribe(self, audio_data, filename="audio.mp3", mime_type="audio/mpeg", language=None):
        self.calls += 1
        raise TranscriptionError("OpenAI API error: 500 - upstream down", provider="failing", status_code=500)


class FixedTranscriber(TranscriberInterface):
    """Returns a canned transcript."""

    def __init__(self, text: str, language: str):
        self.text = text
        self.language = language

    @property
    def provider_name(self) -> str:
        return "fixed"

    async def transcribe(self, audio_data, filename="audio.mp3", mime_type="audio/mpeg", language=None):
        return TranscriptionResult(text=self.text, language=self.language, provider="fixed")


class FailingTranslator(TranslatorInterface):
    """Always raises a provider error."""

    def __init__(self):
        self.calls = 0

    @property
    def provider_name(self) -> str:
        return "failing"

    async def translate(self, text, source_language, target_language):
        self.calls += 1
        raise TranslationError("Failed to connect to LibreTranslate", provider="failing")

    async def get_languages(self):
        raise TranslationError("Failed to connect to LibreTranslate", provider="failing")


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def catalog() -> VoiceCatalog:
    """Catalog with an extra known-bad voice mapping used by the tests."""
    replacements = dict(VOICE_ID_REPLACEMENTS)
    replacements[KNOWN_BAD_VOICE] = KNOWN_GOOD_VOICE
    return VoiceCatalog(replacements=MappingProxyType(replacements))


@pytest.fixture
def pipeline_config() -> PipelineConfig:
    return PipelineConfig(
        use_openai_transcription=True,
        batch_delay_seconds=2.0,
        max_batch_files=10,
        error_message_max_length=500,
    )


@pytest.fixture
def settings(tmp_path, pipeline_config) -> Settings:
    return Settings(
        environment=Environment.TEST,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'voiceverse.db'}",
        storage=StorageConfig(local_path=str(tmp_path / "uploads")),
        credentials=ProviderCredentials(openai_api_key="", elevenlabs_api_key=""),
        pipeline=pipeline_config,
    )


# =============================================================================
# Database and Storage Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def db(settings):
    """Fresh SQLite database per test."""
    manager = DatabaseManager(settings.database_url)
    await manager.create_all()
    yield manager
    await manager.close()


@pytest.fixture
def store(db) -> RecordStore:
    return RecordStore(db)


@pytest.fixture
def storage(settings) -> AudioStorage:
    return AudioStorage(LocalStorageBackend(settings.storage.local_path))


@pytest.fixture
def make_audio(store, storage):
    """Create an audio record, optionally with bytes on disk."""

    async def _make_audio(
        user_id: str = "u1",
        filename: str = "A.mp3",
        data: bytes = SAMPLE_AUDIO,
        write: bool = True,
        duration: float = 3.5,
    ) -> AudioFile:
        key = f"audio/uploads/{user_id}/{filename}"
        if write:
            await storage.write_file(key, data)
        return await store.create_audio_file(
            user_id=user_id,
            original_filename=filename,
            storage_path=key,
            file_size=len(data),
            duration=duration,
            mime_type="audio/mpeg",
        )

    return _make_audio


@pytest.fixture
def make_operation(store):
    """Create an operation record for an audio file."""

    async def _make_operation(audio: AudioFile, **overrides: Any):
        fields: Dict[str, Any] = {
            "user_id": audio.user_id,
            "source_audio_id": audio.id,
            "target_language": "es",
            "voice_id": KNOWN_GOOD_VOICE,
            "effect_id": "none",
            "settings": {},
            "status": "processing",
        }
        fields.update(overrides)
        return await store.create_operation(**fields)

    return _make_operation


# =============================================================================
# Provider and Pipeline Fixtures
# =============================================================================


@pytest.fixture
def synthesizer(catalog) -> MockVoiceProvider:
    return MockVoiceProvider(catalog=catalog, known_voices={KNOWN_GOOD_VOICE})


@pytest.fixture
def providers(synthesizer) -> ProviderSet:
    return ProviderSet(
        transcriber=MockTranscriber(),
        translator=MockTranslator(),
        synthesizer=synthesizer,
    )


@pytest.fixture
def make_pipeline(store, storage, catalog, pipeline_config):
    """Build an OperationPipeline around a provider set."""

    def _make_pipeline(providers: ProviderSet, config: Optional[PipelineConfig] = None):
        return OperationPipeline(
            store=store,
            storage=storage,
            providers=providers,
            resolver=VoiceResolver(catalog, providers.synthesizer),
            catalog=catalog,
            config=config or pipeline_config,
        )

    return _make_pipeline


@pytest.fixture
def pipeline(make_pipeline, providers) -> OperationPipeline:
    return make_pipeline(providers)


@pytest.fixture
def sleeper() -> RecordingSleeper:
    return RecordingSleeper()


@pytest.fixture
def coordinator(store, pipeline, pipeline_config, sleeper) -> BatchCoordinator:
    return BatchCoordinator(
        store=store,
        pipeline=pipeline,
        config=pipeline_config,
        sleep=sleeper,
    )
