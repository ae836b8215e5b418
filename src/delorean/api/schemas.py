"""Request models and response presenters for the HTTP API."""

from pydantic import BaseModel, ConfigDict, Field

from delorean.domain.assets import AssetRecord, StoryState
from delorean.services.tunnels import cache_bust

UPLOADS_ROUTE = "/uploads"
AUDIO_ROUTE = "/audio"


class StoryRequest(BaseModel):
    """Body of a per-asset story request."""

    context: str | None = None
    force: bool = False


class MemoryPayload(BaseModel):
    """One memory in a legacy batch request."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    context: str | None = None


class LegacyStoryRequest(BaseModel):
    """Body of the legacy batch story and narrate endpoints."""

    memories: list[MemoryPayload] = Field(default_factory=list)


def public_url(base_url: str, route: str, filename: str | None) -> str | None:
    """Return an absolute URL for a stored content file."""
    if not filename:
        return None
    return f"{base_url.rstrip('/')}{route}/{filename}"


def present_story(story: StoryState, base_url: str) -> dict[str, object]:
    """Serialize a story state with its public audio URL."""
    payload = story.to_json_dict()
    payload["audioUrl"] = public_url(base_url, AUDIO_ROUTE, story.audio_filename)
    return payload


def present_asset(
    record: AssetRecord, base_url: str, tunnel_id: str | None = None
) -> dict[str, object]:
    """Serialize an asset with absolute ``url`` and ``audioUrl`` fields."""
    payload = record.to_json_dict()
    story = present_story(record.story, base_url)
    url = public_url(base_url, UPLOADS_ROUTE, record.filename)
    audio_url = story["audioUrl"]
    if tunnel_id:
        url = cache_bust(url, tunnel_id)
        audio_url = cache_bust(audio_url, tunnel_id)
        story["audioUrl"] = audio_url
    payload["story"] = story
    payload["url"] = url
    payload["audioUrl"] = audio_url
    return payload
