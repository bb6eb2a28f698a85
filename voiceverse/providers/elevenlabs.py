"""
ElevenLabs Voice Provider

Text-to-speech, speech-to-speech voice transformation, and voice lookup
against the ElevenLabs API, plus a deterministic mock.
"""

import json
from typing import Any, Dict, List, Optional, Set

import httpx
import structlog

from ..config import VoiceCatalog
from .base import (
    STS_DEFAULT_SETTINGS,
    TTS_DEFAULT_SETTINGS,
    ProviderConnectionError,
    ProviderError,
    ProviderNotConfiguredError,
    ProviderRateLimitError,
    ProviderTimeoutError,
    SynthesisError,
    VoiceInfo,
    VoiceNotFoundError,
    VoiceSettings,
    VoiceSynthesizerInterface,
    parse_retry_after,
)

logger = structlog.get_logger(__name__)


# =============================================================================
# ElevenLabs Provider
# =============================================================================


class ElevenLabsVoiceProvider(VoiceSynthesizerInterface):
    """
    ElevenLabs synthesis and voice transformation.

    The text-to-speech model is picked per target language from the voice
    catalog. When a language-specific model fails, the request is retried
    once with the catalog's default multilingual model.
    """

    def __init__(
        self,
        api_key: str,
        catalog: VoiceCatalog,
        base_url: str = "https://api.elevenlabs.io/v1",
        timeout: float = 60.0,
        clone_timeout: float = 120.0,
    ):
        if not api_key:
            raise ProviderNotConfiguredError(
                "ElevenLabs API key is required",
                provider="elevenlabs",
            )

        self.api_key = api_key
        self.catalog = catalog
        self.base_url = base_url
        self.timeout = timeout
        self.clone_timeout = clone_timeout
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def provider_name(self) -> str:
        return "elevenlabs"

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={
                    "xi-api-key": self.api_key,
                    "Accept": "audio/mpeg",
                },
                timeout=httpx.Timeout(self.timeout),
            )
        return self._client

    def _raise_for_status(self, response: httpx.Response, voice_id: Optional[str] = None) -> None:
        if response.status_code == 200:
            return

        if response.status_code == 401:
            raise SynthesisError(
                "Invalid ElevenLabs API key",
                provider="elevenlabs",
                status_code=401,
            )

        if response.status_code == 404 and voice_id:
            raise VoiceNotFoundError(
                f"Voice '{voice_id}' not found",
                voice_id=voice_id,
                provider="elevenlabs",
            )

        if response.status_code == 429:
            raise ProviderRateLimitError(
                "ElevenLabs rate limit exceeded",
                provider="elevenlabs",
                retry_after=parse_retry_after(response),
            )

        if response.status_code == 402:
            raise SynthesisError(
                "ElevenLabs quota exceeded",
                provider="elevenlabs",
                status_code=402,
            )

        raise SynthesisError(
            f"ElevenLabs API error: {response.status_code} - {response.text}",
            provider="elevenlabs",
            status_code=response.status_code,
        )

    async def _request(self, method: str, url: str, voice_id: Optional[str] = None, **kwargs: Any) -> httpx.Response:
        try:
            client = await self._get_client()
            response = await client.request(method, url, **kwargs)
            self._raise_for_status(response, voice_id)
            return response
        except ProviderError:
            raise
        except httpx.TimeoutException:
            raise ProviderTimeoutError(
                f"ElevenLabs request timed out after {self.timeout}s",
                provider="elevenlabs",
            )
        except httpx.HTTPError as e:
            raise ProviderConnectionError(
                "Failed to connect to ElevenLabs API",
                provider="elevenlabs",
                details={"error": str(e)},
            )

    async def text_to_speech(
        self,
        text: str,
        voice_id: str,
        settings: Optional[VoiceSettings] = None,
        language: Optional[str] = None,
    ) -> bytes:
        """Synthesize ``text`` with the language's model, falling back once."""
        if not text or not text.strip():
            raise SynthesisError("No text provided for synthesis", provider="elevenlabs")

        voice_settings = VoiceSettings.from_value(settings).merged_with(TTS_DEFAULT_SETTINGS)
        model_id = self.catalog.model_for(language)

        try:
            return await self._synthesize(text, voice_id, voice_settings, model_id)
        except ProviderError as e:
            if model_id == self.catalog.default_model:
                raise
            logger.warning(
                "tts_model_fallback",
                model_id=model_id,
                fallback_model_id=self.catalog.default_model,
                error=e.message,
            )
            return await self._synthesize(
                text, voice_id, voice_settings, self.catalog.default_model
            )

    async def _synthesize(
        self,
        text: str,
        voice_id: str,
        voice_settings: VoiceSettings,
        model_id: str,
    ) -> bytes:
        body = {
            "text": text,
            "model_id": model_id,
            "voice_settings": voice_settings.to_payload(),
        }
        response = await self._request(
            "POST",
            f"/text-to-speech/{voice_id}",
            voice_id=voice_id,
            json=body,
        )
        logger.debug(
            "tts_completed",
            voice_id=voice_id,
            model_id=model_id,
            characters=len(text),
            bytes=len(response.content),
        )
        return response.content

    async def speech_to_speech(
        self,
        audio_data: bytes,
        voice_id: str,
        mime_type: str = "audio/mpeg",
        settings: Optional[VoiceSettings] = None,
    ) -> bytes:
        """Re-voice ``audio_data`` with ``voice_id``."""
        if not audio_data:
            raise SynthesisError("Empty audio data provided", provider="elevenlabs")

        voice_settings = VoiceSettings.from_value(settings).merged_with(STS_DEFAULT_SETTINGS)
        files = {"audio": ("audio", audio_data, mime_type)}
        data = {
            "model_id": self.catalog.speech_to_speech_model,
            "voice_settings": json.dumps(voice_settings.to_payload()),
        }
        response = await self._request(
            "POST",
            f"/speech-to-speech/{voice_id}",
            voice_id=voice_id,
            files=files,
            data=data,
        )
        return response.content

    async def voice_exists(self, voice_id: str) -> bool:
        try:
            await self._request("GET", f"/voices/{voice_id}", voice_id=voice_id)
            return True
        except VoiceNotFoundError:
            return False

    async def get_voices(self) -> List[VoiceInfo]:
        response = await self._request("GET", "/voices")
        voices = []
        for voice in response.json().get("voices", []):
            voices.append(VoiceInfo(
                voice_id=voice["voice_id"],
                name=voice.get("name", ""),
                category=voice.get("category"),
                labels=voice.get("labels") or {},
                preview_url=voice.get("preview_url"),
                description=voice.get("description"),
            ))
        return voices

    async def clone_voice(
        self,
        name: str,
        audio_data: bytes,
        filename: str = "sample.mp3",
        mime_type: str = "audio/mpeg",
        description: Optional[str] = None,
        labels: Optional[Dict[str, str]] = None,
    ) -> VoiceInfo:
        """Instant voice clone from a single recording."""
        if not audio_data:
            raise SynthesisError("Empty audio data provided", provider="elevenlabs")

        data = {"name": name}
        if description:
            data["description"] = description
        if labels:
            data["labels"] = json.dumps(labels)

        response = await self._request(
            "POST",
            "/voices/add",
            files={"files": (filename, audio_data, mime_type)},
            data=data,
            timeout=self.clone_timeout,
        )
        payload = response.json()
        logger.info("voice_cloned", voice_id=payload.get("voice_id"), name=name)
        return VoiceInfo(
            voice_id=payload["voice_id"],
            name=payload.get("name") or name,
            category="cloned",
            labels=labels or {},
            description=payload.get("description") or description,
        )

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None


# =============================================================================
# Mock Provider
# =============================================================================


class MockVoiceProvider(VoiceSynthesizerInterface):
    """
    In-memory voice provider.

    Audio output is a short fake MP3 header followed by the input, so tests
    can tell which path produced it. ``failing_models`` and ``fail_sts``
    inject provider errors.
    """

    def __init__(
        self,
        catalog: Optional[VoiceCatalog] = None,
        known_voices: Optional[Set[str]] = None,
        failing_models: Optional[Set[str]] = None,
        fail_sts: bool = False,
    ):
        self.catalog = catalog or VoiceCatalog()
        self.known_voices = set(known_voices) if known_voices is not None else None
        self.failing_models = set(failing_models or ())
        self.fail_sts = fail_sts
        self.tts_calls: List[Dict[str, Any]] = []
        self.sts_calls: List[Dict[str, Any]] = []
        self.lookups: List[str] = []
        self.clones: List[Dict[str, Any]] = []

    @property
    def provider_name(self) -> str:
        return "mock"

    async def text_to_speech(
        self,
        text: str,
        voice_id: str,
        settings: Optional[VoiceSettings] = None,
        language: Optional[str] = None,
    ) -> bytes:
        if not text or not text.strip():
            raise SynthesisError("No text provided for synthesis", provider="mock")
        model_id = self.catalog.model_for(language)
        if model_id in self.failing_models and model_id != self.catalog.default_model:
            model_id = self.catalog.default_model
        if model_id in self.failing_models:
            raise SynthesisError(f"Model {model_id} unavailable", provider="mock")
        self.tts_calls.append({"text": text, "voice_id": voice_id, "model_id": model_id})
        return b"ID3tts:" + text.encode("utf-8")

    async def speech_to_speech(
        self,
        audio_data: bytes,
        voice_id: str,
        mime_type: str = "audio/mpeg",
        settings: Optional[VoiceSettings] = None,
    ) -> bytes:
        if self.fail_sts:
            raise SynthesisError("Voice transformation unavailable", provider="mock")
        self.sts_calls.append({"voice_id": voice_id, "mime_type": mime_type})
        return b"ID3sts:" + audio_data[:32]

    async def voice_exists(self, voice_id: str) -> bool:
        self.lookups.append(voice_id)
        if self.known_voices is None:
            return True
        return voice_id in self.known_voices

    async def get_voices(self) -> List[VoiceInfo]:
        voices = self.known_voices or set()
        return [VoiceInfo(voice_id=v, name=v) for v in sorted(voices)]

    async def clone_voice(
        self,
        name: str,
        audio_data: bytes,
        filename: str = "sample.mp3",
        mime_type: str = "audio/mpeg",
        description: Optional[str] = None,
        labels: Optional[Dict[str, str]] = None,
    ) -> VoiceInfo:
        if not audio_data:
            raise SynthesisError("Empty audio data provided", provider="mock")
        voice_id = f"clone-{len(self.clones) + 1}"
        self.clones.append({"name": name, "filename": filename, "voice_id": voice_id})
        if self.known_voices is not None:
            self.known_voices.add(voice_id)
        return VoiceInfo(
            voice_id=voice_id,
            name=name,
            category="cloned",
            labels=labels or {},
            description=description,
        )
