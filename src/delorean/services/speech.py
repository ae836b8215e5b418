"""Text-to-speech narration for finished stories."""

import logging
import re
from dataclasses import dataclass
from typing import Protocol

from delorean.domain.errors import ProviderError, ProviderUnavailable
from delorean.services.assets import ContentStore

logger = logging.getLogger(__name__)

DEFAULT_VOICE = "coral"
AUDIO_EXTENSION = ".mp3"
_SAFE_ID = re.compile(r"[^A-Za-z0-9_-]+")


class SpeechClient(Protocol):
    """Interface for text-to-speech synthesis."""

    async def synthesize(self, *, model: str, voice: str, text: str) -> bytes:
        """Return encoded audio for the given text."""


def resolve_voice(raw: str | None) -> str:
    """Return the configured voice, ignoring blanks and template placeholders."""
    value = (raw or "").strip()
    if not value or value.startswith("your-"):
        return DEFAULT_VOICE
    return value


def audio_filename(audio_id: str) -> str:
    """Return the stored filename for an audio identifier."""
    safe = _SAFE_ID.sub("-", audio_id).strip("-")
    if not safe:
        raise ValueError(f"Invalid audio id: {audio_id!r}")
    return f"{safe}{AUDIO_EXTENSION}"


@dataclass
class SpeechService:
    """Synthesizes narration and stores it under the audio content directory."""

    client: SpeechClient | None
    audio_store: ContentStore
    model: str
    voice: str = DEFAULT_VOICE

    @property
    def is_configured(self) -> bool:
        """Return true when a speech provider is wired."""
        return self.client is not None

    async def synthesize_to_file(self, text: str, audio_id: str) -> str:
        """Synthesize ``text`` and return the stored audio filename."""
        if self.client is None:
            raise ProviderUnavailable("Speech provider is not configured on the server.")
        try:
            audio = await self.client.synthesize(
                model=self.model, voice=self.voice, text=text
            )
        except Exception as exc:
            raise ProviderError(f"Speech synthesis failed: {exc}") from exc
        if not audio:
            raise ProviderError("Speech synthesis returned no audio")
        filename = audio_filename(audio_id)
        self.audio_store.write(filename, audio)
        logger.info(
            "Narration stored", extra={"audio_id": audio_id, "bytes": len(audio)}
        )
        return filename
