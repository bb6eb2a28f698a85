"""
Service Errors

Exceptions raised by the public entry points of the translation service.
Provider failures live in ``voiceverse.providers.base``.
"""

from typing import Any, Dict, Optional


class VoiceVerseError(Exception):
    """Base exception for service operations."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or "VOICEVERSE_ERROR"
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }


class ValidationError(VoiceVerseError):
    """Request input is invalid."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code="VALIDATION_ERROR", **kwargs)


class NotFoundError(VoiceVerseError):
    """Referenced record does not exist."""

    def __init__(self, message: str, resource: str, resource_id: str, **kwargs):
        super().__init__(message, code="NOT_FOUND", **kwargs)
        self.resource = resource
        self.resource_id = resource_id


class PermissionDeniedError(VoiceVerseError):
    """Record belongs to another user."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code="PERMISSION_DENIED", **kwargs)


class SourceAudioMissingError(VoiceVerseError):
    """Source audio bytes could not be found in storage."""

    def __init__(self, message: str, storage_path: str, **kwargs):
        super().__init__(message, code="SOURCE_AUDIO_MISSING", **kwargs)
        self.storage_path = storage_path
