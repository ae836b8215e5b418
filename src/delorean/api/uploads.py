"""Upload, story and deletion endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, File, Form, Query, Request, UploadFile, status
from fastapi.concurrency import run_in_threadpool

from delorean.api.schemas import StoryRequest, present_asset, present_story
from delorean.services.uploads import UploadedFile, parse_contexts

if TYPE_CHECKING:
    from delorean.containers import AppContainer

router = APIRouter(prefix="/api/uploads", tags=["uploads"])


def base_url_for(request: Request) -> str:
    """Return the base URL public asset links are built from."""
    container: AppContainer = request.app.state.container
    return container.settings.public_base_url or str(request.base_url)


@router.post("", status_code=status.HTTP_201_CREATED)
async def upload_images(
    request: Request,
    images: list[UploadFile] | None = File(default=None),
    contexts: str | None = Form(default=None),
    tunnel_id: str | None = Query(default=None, alias="tunnelId"),
) -> dict[str, object]:
    """Store a batch of photos with their contexts."""
    container: AppContainer = request.app.state.container
    files = [
        UploadedFile(
            filename=upload.filename or f"memory-{index + 1}.jpg",
            content_type=upload.content_type or "",
            data=await upload.read(),
        )
        for index, upload in enumerate(images or [])
    ]
    records = await run_in_threadpool(
        container.upload_service.upload,
        files,
        parse_contexts(contexts),
        tunnel_id=tunnel_id,
    )
    base_url = base_url_for(request)
    return {"assets": [present_asset(record, base_url) for record in records]}


@router.get("")
async def list_uploads(request: Request) -> dict[str, object]:
    """Return every stored asset in walkthrough order."""
    container: AppContainer = request.app.state.container
    base_url = base_url_for(request)
    return {
        "assets": [
            present_asset(record, base_url)
            for record in container.asset_service.list_assets()
        ]
    }


@router.get("/{asset_id}")
async def get_upload(asset_id: str, request: Request) -> dict[str, object]:
    """Return one stored asset."""
    container: AppContainer = request.app.state.container
    record = container.asset_service.get_asset(asset_id)
    return {"asset": present_asset(record, base_url_for(request))}


@router.delete("/{asset_id}")
async def delete_upload(asset_id: str, request: Request) -> dict[str, object]:
    """Delete an asset together with its stored files."""
    container: AppContainer = request.app.state.container
    removed = container.asset_service.delete_asset(asset_id)
    return {"removed": present_asset(removed, base_url_for(request))}


@router.post("/{asset_id}/story")
async def generate_story(
    asset_id: str,
    request: Request,
    payload: StoryRequest | None = None,
    tunnel_id: str | None = Query(default=None, alias="tunnelId"),
) -> dict[str, object]:
    """Generate, or reuse, the story for one asset."""
    container: AppContainer = request.app.state.container
    body = payload or StoryRequest()
    outcome = await container.story_service.generate_for_asset(
        asset_id,
        context=body.context,
        force=body.force,
        tunnel_id=tunnel_id,
    )
    base_url = base_url_for(request)
    return {
        "story": present_story(outcome.story, base_url),
        "asset": present_asset(outcome.asset, base_url),
        "reused": outcome.reused,
    }
