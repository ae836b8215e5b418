"""Models for stored photo assets and their story state."""

from datetime import UTC, datetime
from typing import Literal, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

StoryStatus = Literal["pending", "processing", "ready", "error"]

CANONICAL_MIME_TYPE = "image/webp"


def utcnow() -> datetime:
    """Return the current time in UTC."""
    return datetime.now(tz=UTC)


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_json_dict(self) -> dict[str, object]:
        """Serialize with camelCase keys, omitting unset optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class StoryState(_CamelModel):
    """Story generation state attached to exactly one asset."""

    status: StoryStatus = "pending"
    text: str | None = None
    prompt: str | None = None
    updated_at: datetime = Field(default_factory=utcnow)
    error: str | None = None
    context_hint: str | None = None
    audio_filename: str | None = None

    @model_validator(mode="after")
    def _check_status_payload(self) -> Self:
        if self.status == "ready" and not (self.text and self.text.strip()):
            raise ValueError("ready story requires non-empty text")
        if self.status == "error" and not (self.error and self.error.strip()):
            raise ValueError("error story requires a non-empty error message")
        return self

    def processing(self, prompt: str | None, context: str | None) -> "StoryState":
        """Return the state for an attempt that has just started."""
        return StoryState(
            status="processing",
            prompt=prompt,
            context_hint=context,
        )

    def ready(self, text: str, prompt: str, context: str | None) -> "StoryState":
        """Return the state for a successfully generated story."""
        return StoryState(
            status="ready",
            text=text,
            prompt=prompt,
            context_hint=context,
        )

    def failed(
        self, message: str, prompt: str | None, context: str | None
    ) -> "StoryState":
        """Return the state for a failed attempt."""
        return StoryState(
            status="error",
            error=message or "Story generation failed",
            prompt=prompt,
            context_hint=context,
        )


class AssetRecord(_CamelModel):
    """A normalized, stored photo plus its metadata and story state."""

    id: str
    original_name: str
    original_mime_type: str
    stored_mime_type: str = CANONICAL_MIME_TYPE
    size: int
    width: int
    height: int
    filename: str
    order: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    context: str | None = None
    story: StoryState = Field(default_factory=StoryState)

    @property
    def title(self) -> str:
        """Human readable name used as a weak hint in prompts."""
        return self.original_name or self.filename

    def with_story(self, story: StoryState) -> "AssetRecord":
        """Return a copy carrying a new story state."""
        return self.model_copy(update={"story": story})

    def with_context(self, context: str | None) -> "AssetRecord":
        """Return a copy carrying an overridden context."""
        return self.model_copy(update={"context": context})
