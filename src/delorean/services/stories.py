"""Story generation for stored photos and the per-asset story state machine."""

import base64
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from delorean.domain.assets import AssetRecord, StoryState
from delorean.domain.errors import (
    AssetMissing,
    AssetNotFound,
    DeloreanError,
    ProviderError,
    ProviderUnavailable,
)
from delorean.services.assets import AssetRepository, ContentStore
from delorean.services.speech import SpeechService
from delorean.services.tunnels import TunnelService

logger = logging.getLogger(__name__)

NARRATOR_PERSONA = (
    "You are a warm, observant narrator helping someone relive a personal memory "
    "captured in a photo."
)
LENGTH_CONSTRAINT = (
    "Write a short narrative of 3 to 5 sentences (under 120 words) in the second "
    "person. Describe what the photo shows and how the moment might have felt. "
    "Return plain text only, without headings or lists."
)


@dataclass(frozen=True)
class StoryResponse:
    """Provider reply reduced to the shapes text can be found in."""

    text: str | None = None
    wrapped: "StoryResponse | None" = None
    parts: tuple[str, ...] = ()


class StoryClient(Protocol):
    """Interface for a vision-capable text generator."""

    async def generate(
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        prompt: str,
        image_data_url: str | None,
    ) -> StoryResponse:
        """Return the provider reply for a prompt and optional image."""


@dataclass(frozen=True)
class GeneratedStory:
    """Narrative text together with the prompt that produced it."""

    text: str
    prompt: str


@dataclass(frozen=True)
class StoryOutcome:
    """Result of a story request for one asset."""

    story: StoryState
    asset: AssetRecord
    reused: bool


def build_story_prompt(
    context: str | None,
    title: str | None = None,
    position: int | None = None,
    total: int | None = None,
) -> str:
    """Build the deterministic instruction prompt for one photo."""
    lines = [NARRATOR_PERSONA, LENGTH_CONSTRAINT]
    cleaned = (context or "").strip()
    if cleaned:
        lines.append(
            "The person shared this context. Treat it as the emotional center "
            f'of the story and stay faithful to it: "{cleaned}"'
        )
    if position is not None and total:
        lines.append(f"This is memory {position} of {total} in their walkthrough.")
    if title:
        lines.append(
            f'The original file was named "{title}". Use it only as a weak hint.'
        )
    return "\n\n".join(lines)


def _direct_text(response: StoryResponse) -> str:
    return (response.text or "").strip()


def _wrapped_text(response: StoryResponse) -> str:
    if response.wrapped is None:
        return ""
    return extract_story_text(response.wrapped, raise_on_empty=False)


def _joined_parts(response: StoryResponse) -> str:
    return "".join(part for part in response.parts if part).strip()


_EXTRACTORS: tuple[Callable[[StoryResponse], str], ...] = (
    _direct_text,
    _wrapped_text,
    _joined_parts,
)


def extract_story_text(response: StoryResponse, raise_on_empty: bool = True) -> str:
    """Return the first non-empty text found across the known reply shapes."""
    for extractor in _EXTRACTORS:
        text = extractor(response)
        if text:
            return text
    if raise_on_empty:
        raise ProviderError("Story provider returned empty content")
    return ""


@dataclass
class StoryGenerator:
    """Sends a prompt plus inlined image bytes to the story provider."""

    client: StoryClient | None
    content_store: ContentStore
    model: str
    reasoning_effort: str | None = None
    store: bool = False

    @property
    def is_configured(self) -> bool:
        """Return true when a story provider is wired."""
        return self.client is not None

    async def generate_story(  # noqa: PLR0913
        self,
        image_ref: str,
        context: str | None,
        title: str | None = None,
        position: int | None = None,
        total: int | None = None,
    ) -> GeneratedStory:
        """Generate a narrative for the stored image ``image_ref``."""
        if self.client is None:
            raise ProviderUnavailable("Story provider is not configured on the server.")
        try:
            image_bytes = self.content_store.read(image_ref)
        except (FileNotFoundError, ValueError) as exc:
            raise AssetMissing(f"Image file is missing: {image_ref}") from exc
        prompt = build_story_prompt(context, title, position, total)
        text = await self.complete(prompt, _to_data_url(image_bytes))
        return GeneratedStory(text=text, prompt=prompt)

    async def complete(self, prompt: str, image_data_url: str | None = None) -> str:
        """Run one generation call and return its plain text."""
        if self.client is None:
            raise ProviderUnavailable("Story provider is not configured on the server.")
        try:
            response = await self.client.generate(
                model=self.model,
                reasoning_effort=self.reasoning_effort,
                store=self.store,
                prompt=prompt,
                image_data_url=image_data_url,
            )
        except Exception as exc:
            raise ProviderError(f"Story provider call failed: {exc}") from exc
        return extract_story_text(response)


@dataclass
class StoryService:
    """Drives the pending -> processing -> ready/error lifecycle per asset."""

    repository: AssetRepository
    generator: StoryGenerator
    tunnels: TunnelService
    speech: SpeechService | None = None
    narrate: bool = False

    async def generate_for_asset(
        self,
        asset_id: str,
        context: str | None = None,
        force: bool = False,
        tunnel_id: str | None = None,
    ) -> StoryOutcome:
        """Generate (or reuse) the story for one asset."""
        if not self.generator.is_configured:
            raise ProviderUnavailable("Story provider is not configured on the server.")
        record = self.repository.get(asset_id)
        if record is None:
            raise AssetNotFound(asset_id)
        position, total = self._position(record, tunnel_id)
        if tunnel_id:
            self.tunnels.track(tunnel_id, asset_id)

        if record.story.status == "ready" and not force:
            return StoryOutcome(story=record.story, asset=record, reused=True)

        if not self.generator.content_store.exists(record.filename):
            raise AssetMissing(f"Image file is missing for asset {asset_id}")

        override = (context or "").strip()
        effective_context = override or record.context
        prompt = build_story_prompt(effective_context, record.title, position, total)
        marked = self.repository.update(
            asset_id,
            lambda current: current.with_context(effective_context).with_story(
                current.story.processing(prompt, effective_context)
            ),
        )
        if marked is None:
            raise AssetNotFound(asset_id)

        try:
            generated = await self.generator.generate_story(
                record.filename, effective_context, record.title, position, total
            )
        except DeloreanError as exc:
            logger.warning(
                "Story generation failed",
                extra={"asset_id": asset_id, "error": exc.message},
            )
            self.repository.update(
                asset_id,
                lambda current: current.with_story(
                    current.story.failed(exc.message, prompt, effective_context)
                ),
            )
            raise

        story = marked.story.ready(generated.text, generated.prompt, effective_context)
        audio_filename = await self._narrate(asset_id, generated.text)
        if audio_filename:
            story = story.model_copy(update={"audio_filename": audio_filename})
        updated = self.repository.update(
            asset_id, lambda current: current.with_story(story)
        )
        if updated is None:
            logger.warning(
                "Asset removed while its story was generating",
                extra={"asset_id": asset_id},
            )
            raise AssetNotFound(asset_id)
        logger.info("Story ready", extra={"asset_id": asset_id})
        return StoryOutcome(story=updated.story, asset=updated, reused=False)

    def _position(self, record: AssetRecord, tunnel_id: str | None) -> tuple[int, int]:
        if tunnel_id:
            session_ids = self.tunnels.asset_ids(tunnel_id)
            if record.id in session_ids:
                return session_ids.index(record.id) + 1, len(session_ids)
        ordered = [asset.id for asset in self.repository.list()]
        if record.id in ordered:
            return ordered.index(record.id) + 1, len(ordered)
        return record.order + 1, len(ordered) or 1

    async def _narrate(self, asset_id: str, text: str) -> str | None:
        if not self.narrate or self.speech is None or not self.speech.is_configured:
            return None
        try:
            return await self.speech.synthesize_to_file(text, asset_id)
        except DeloreanError:
            logger.exception("Narration failed", extra={"asset_id": asset_id})
            return None


def _to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = _detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def _detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    return "image/webp"
