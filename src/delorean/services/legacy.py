"""Batch story and narration for the older single-narrative flow."""

from dataclasses import dataclass
from uuid import uuid4

from delorean.domain.errors import ProviderUnavailable, ValidationError
from delorean.services.assets import AssetRepository
from delorean.services.speech import SpeechService
from delorean.services.stories import StoryGenerator

LEGACY_PROMPT_HEADER = "Turn these memories into a short narrative:"


@dataclass(frozen=True)
class MemoryRef:
    """One memory in a batch request."""

    id: str | None = None
    context: str | None = None


@dataclass
class LegacyStoryService:
    """Turns a list of memories into one narrative, optionally narrated."""

    repository: AssetRepository
    generator: StoryGenerator
    speech: SpeechService
    audio_route: str = "/audio"

    async def summarize(self, memories: list[MemoryRef]) -> str:
        """Return one narrative covering every memory in the batch."""
        if not self.generator.is_configured:
            raise ProviderUnavailable("Story provider is not configured on the server.")
        lines = self._memory_lines(memories)
        if not lines:
            raise ValidationError("No memories were provided.")
        prompt = "\n".join([LEGACY_PROMPT_HEADER, *lines])
        return await self.generator.complete(prompt)

    async def narrate(self, memories: list[MemoryRef]) -> tuple[str, str]:
        """Return the narrative and the public path of its narration."""
        if not self.speech.is_configured:
            raise ProviderUnavailable("Speech provider is not configured on the server.")
        story = await self.summarize(memories)
        filename = await self.speech.synthesize_to_file(story, uuid4().hex)
        return story, f"{self.audio_route}/{filename}"

    def _memory_lines(self, memories: list[MemoryRef]) -> list[str]:
        lines = []
        for memory in memories:
            text = (memory.context or "").strip()
            if not text and memory.id:
                record = self.repository.get(memory.id)
                if record is not None:
                    text = (record.context or record.title).strip()
            if text:
                lines.append(f"- {text}")
        return lines
