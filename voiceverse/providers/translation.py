"""
Translation Providers

LibreTranslate text translation and a deterministic mock.
"""

from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit, urlunsplit

import httpx
import structlog

from .base import (
    ProviderConnectionError,
    ProviderError,
    ProviderRateLimitError,
    ProviderTimeoutError,
    TranslationError,
    TranslatorInterface,
)

logger = structlog.get_logger(__name__)


class LibreTranslateTranslator(TranslatorInterface):
    """
    LibreTranslate client.

    ``url`` is the full ``/translate`` endpoint; the language listing is
    fetched from the sibling ``/languages`` path.
    """

    def __init__(
        self,
        url: str = "https://translate.monocles.de/translate",
        api_key: Optional[str] = None,
        timeout: float = 15.0,
    ):
        self.url = url
        self.api_key = api_key or None
        self.timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def provider_name(self) -> str:
        return "libretranslate"

    @property
    def languages_url(self) -> str:
        parts = urlsplit(self.url)
        path = parts.path.rsplit("/", 1)[0] + "/languages"
        return urlunsplit((parts.scheme, parts.netloc, path, "", ""))

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers={"Content-Type": "application/json"},
                timeout=httpx.Timeout(self.timeout),
            )
        return self._client

    async def translate(
        self,
        text: str,
        source_language: str,
        target_language: str,
    ) -> str:
        """Translate ``text``. The pipeline owns the fallback policy."""
        if not text or not text.strip():
            raise TranslationError("No text provided for translation", provider="libretranslate")

        if source_language == target_language:
            return text

        body: Dict[str, Any] = {
            "q": text,
            "source": source_language,
            "target": target_language,
            "format": "text",
        }
        if self.api_key:
            body["api_key"] = self.api_key

        try:
            client = await self._get_client()
            response = await client.post(self.url, json=body)

            if response.status_code == 429:
                raise ProviderRateLimitError(
                    "LibreTranslate rate limit exceeded",
                    provider="libretranslate",
                )

            if response.status_code != 200:
                raise TranslationError(
                    f"LibreTranslate API error: {response.status_code} - {response.text}",
                    provider="libretranslate",
                    status_code=response.status_code,
                )

            data = response.json()
            translated = data.get("translatedText") if isinstance(data, dict) else None
            if not translated:
                raise TranslationError(
                    "Invalid response from translation service",
                    provider="libretranslate",
                    details={"response": data},
                )
            return translated

        except ProviderError:
            raise
        except httpx.TimeoutException:
            raise ProviderTimeoutError(
                f"LibreTranslate request timed out after {self.timeout}s",
                provider="libretranslate",
            )
        except httpx.HTTPError as e:
            raise ProviderConnectionError(
                "Failed to connect to LibreTranslate",
                provider="libretranslate",
                details={"error": str(e)},
            )
        except ValueError as e:
            raise TranslationError(
                f"Invalid LibreTranslate response: {e}",
                provider="libretranslate",
            )

    async def get_languages(self) -> List[Dict[str, Any]]:
        try:
            client = await self._get_client()
            response = await client.get(self.languages_url)
            if response.status_code != 200:
                raise TranslationError(
                    f"LibreTranslate languages error: {response.status_code}",
                    provider="libretranslate",
                    status_code=response.status_code,
                )
            return response.json()
        except ProviderError:
            raise
        except httpx.TimeoutException:
            raise ProviderTimeoutError(
                f"LibreTranslate request timed out after {self.timeout}s",
                provider="libretranslate",
            )
        except httpx.HTTPError as e:
            raise ProviderConnectionError(
                "Failed to connect to LibreTranslate",
                provider="libretranslate",
                details={"error": str(e)},
            )

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None


class MockTranslator(TranslatorInterface):
    """Prefixes text with the target code, like ``(es) text``."""

    def __init__(self):
        self.calls: List[Dict[str, str]] = []

    @property
    def provider_name(self) -> str:
        return "mock"

    async def translate(
        self,
        text: str,
        source_language: str,
        target_language: str,
    ) -> str:
        if not text or not text.strip():
            raise TranslationError("No text provided for translation", provider="mock")
        self.calls.append(
            {"text": text, "source": source_language, "target": target_language}
        )
        if source_language == target_language:
            return text
        return f"({target_language}) {text}"

    async def get_languages(self) -> List[Dict[str, Any]]:
        return [
            {"code": "en", "name": "English"},
            {"code": "es", "name": "Spanish"},
            {"code": "fr", "name": "French"},
        ]
