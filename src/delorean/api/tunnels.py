"""Tunnel session endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Request

from delorean.api.schemas import present_asset
from delorean.api.uploads import base_url_for

if TYPE_CHECKING:
    from delorean.containers import AppContainer

router = APIRouter(prefix="/api/tunnels", tags=["tunnels"])


@router.post("/start")
async def start_tunnel(request: Request) -> dict[str, str]:
    """Open a tunnel session."""
    container: AppContainer = request.app.state.container
    return {"tunnelId": container.tunnel_service.start()}


@router.post("/{tunnel_id}/commit")
async def commit_tunnel(tunnel_id: str, request: Request) -> dict[str, object]:
    """Close a session and return its assets with cache-busted URLs."""
    container: AppContainer = request.app.state.container
    assets = container.tunnel_service.commit(tunnel_id)
    base_url = base_url_for(request)
    return {
        "assets": [
            present_asset(record, base_url, tunnel_id=tunnel_id) for record in assets
        ]
    }
