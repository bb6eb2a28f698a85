"""
Audio Storage

Byte storage for source and generated audio. Keys are relative paths
such as ``audio/voice-translate/voice_translate_<uuid>.mp3``.
"""

import asyncio
import uuid
from abc import ABC, abstractmethod
from pathlib import Path

import structlog

from .config import StorageConfig

logger = structlog.get_logger(__name__)


class StorageBackend(ABC):
    """Abstract storage backend interface."""

    @abstractmethod
    async def write(self, key: str, data: bytes) -> str:
        """Store data and return the key."""
        pass

    @abstractmethod
    async def read(self, key: str) -> bytes:
        """Read data by key. Raises ``FileNotFoundError`` when absent."""
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        pass


class LocalStorageBackend(StorageBackend):
    """Local filesystem storage backend."""

    def __init__(self, base_path: str):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _get_path(self, key: str) -> Path:
        """Get full path for a key."""
        # Strip traversal and absolute prefixes
        safe_key = key.replace("..", "").lstrip("/")
        return self.base_path / safe_key

    async def write(self, key: str, data: bytes) -> str:
        path = self._get_path(key)
        await asyncio.to_thread(path.parent.mkdir, parents=True, exist_ok=True)
        await asyncio.to_thread(path.write_bytes, data)
        return key

    async def read(self, key: str) -> bytes:
        path = self._get_path(key)
        if not path.is_file():
            raise FileNotFoundError(f"Key not found: {key}")
        return await asyncio.to_thread(path.read_bytes)

    async def exists(self, key: str) -> bool:
        return self._get_path(key).is_file()

    async def delete(self, key: str) -> bool:
        path = self._get_path(key)
        if not path.is_file():
            return False
        await asyncio.to_thread(path.unlink)
        return True


class AudioStorage:
    """Reads source audio and writes pipeline results."""

    def __init__(self, backend: StorageBackend, result_prefix: str = "audio/voice-translate"):
        self.backend = backend
        self.result_prefix = result_prefix.strip("/")

    @classmethod
    def from_config(cls, config: StorageConfig) -> "AudioStorage":
        return cls(
            backend=LocalStorageBackend(config.local_path),
            result_prefix=config.result_prefix,
        )

    def new_result_key(self, extension: str = "mp3") -> str:
        """Unique key for a generated audio file."""
        return f"{self.result_prefix}/voice_translate_{uuid.uuid4()}.{extension}"

    async def read_file(self, key: str) -> bytes:
        return await self.backend.read(key)

    async def write_file(self, key: str, data: bytes) -> str:
        stored = await self.backend.write(key, data)
        logger.debug("audio_written", key=key, bytes=len(data))
        return stored

    async def exists(self, key: str) -> bool:
        return await self.backend.exists(key)
