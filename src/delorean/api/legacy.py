"""Batch story endpoints kept for the older single-narrative client."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Request

from delorean.api.schemas import LegacyStoryRequest
from delorean.services.legacy import MemoryRef

if TYPE_CHECKING:
    from delorean.containers import AppContainer

router = APIRouter(prefix="/api", tags=["legacy"])


def _memories(payload: LegacyStoryRequest) -> list[MemoryRef]:
    return [MemoryRef(id=item.id, context=item.context) for item in payload.memories]


@router.post("/story")
async def batch_story(payload: LegacyStoryRequest, request: Request) -> dict[str, str]:
    """Return one narrative for a list of memories."""
    container: AppContainer = request.app.state.container
    story = await container.legacy_story_service.summarize(_memories(payload))
    return {"story": story}


@router.post("/narrate")
async def batch_narrate(
    payload: LegacyStoryRequest, request: Request
) -> dict[str, str]:
    """Return one narrative and the path of its narration."""
    container: AppContainer = request.app.state.container
    story, audio = await container.legacy_story_service.narrate(_memories(payload))
    return {"story": story, "audio": audio}
