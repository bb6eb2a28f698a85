"""
Voice ID Resolution

Turns a requested synthesis voice id into one that is safe to use.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from .config import VoiceCatalog
from .providers.base import ProviderError, VoiceSynthesizerInterface

logger = structlog.get_logger(__name__)


REPLACED_NOTE = "Voice ID replaced for reliability"


@dataclass(frozen=True)
class VoiceResolution:
    """Outcome of resolving a requested voice id."""

    effective_id: str
    was_replaced: bool = False
    note: Optional[str] = None


class VoiceResolver:
    """
    Resolves voice ids in three steps.

    1. Known-problematic ids map straight to their replacement without
       a network call.
    2. Anything else is checked against the provider.
    3. If the check says no, or errors, the language default (or the
       multilingual default) is used instead.

    ``resolve`` never raises.
    """

    def __init__(self, catalog: VoiceCatalog, synthesizer: VoiceSynthesizerInterface):
        self.catalog = catalog
        self.synthesizer = synthesizer

    async def resolve(
        self,
        requested_id: Optional[str],
        language: Optional[str] = None,
    ) -> VoiceResolution:
        if requested_id and requested_id in self.catalog.replacements:
            replacement = self.catalog.replacements[requested_id]
            logger.info(
                "voice_id_replaced",
                requested_id=requested_id,
                effective_id=replacement,
            )
            return VoiceResolution(
                effective_id=replacement,
                was_replaced=True,
                note=REPLACED_NOTE,
            )

        if requested_id:
            try:
                if await self.synthesizer.voice_exists(requested_id):
                    return VoiceResolution(effective_id=requested_id)
                reason = "not_found"
            except ProviderError as e:
                reason = e.code
            except Exception as e:
                reason = type(e).__name__
            logger.warning(
                "voice_validation_failed",
                requested_id=requested_id,
                reason=reason,
            )
        else:
            reason = "not_provided"

        default_id = self.catalog.default_voice_for(language)
        label = self.catalog.language_name(language) if language else "this language"
        return VoiceResolution(
            effective_id=default_id,
            was_replaced=False,
            note=f"Using default multilingual voice for {label}",
        )
