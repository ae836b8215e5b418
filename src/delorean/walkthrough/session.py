"""HTTP client that drives one tunnel session from upload to walkthrough.

Story requests for a batch are sent in parallel and awaited together; one
failed request fails the batch, while stories already written on the server
stay written. Deleting an asset is optimistic: it disappears locally at once
and the remote delete runs in the background without being awaited.
"""

import asyncio
import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

import httpx

from delorean.services.uploads import UploadedFile
from delorean.walkthrough.renderer import (
    RenderBackend,
    WalkthroughRenderer,
    create_walkthrough,
)
from delorean.walkthrough.textures import TextureLoader

logger = logging.getLogger(__name__)

AssetPayload = dict[str, object]


@dataclass
class TunnelSession:
    """Client-side state for one walkthrough built against the API."""

    http_client: httpx.AsyncClient
    base_url: str = ""
    timeout: float = 120.0
    tunnel_id: str | None = None
    assets: list[AssetPayload] = field(default_factory=list)
    _deletions: set[asyncio.Task[None]] = field(default_factory=set, repr=False)

    @classmethod
    def create(cls, base_url: str) -> "TunnelSession":
        """Create a session with a managed httpx client."""
        return cls(http_client=httpx.AsyncClient(), base_url=base_url.rstrip("/"))

    @property
    def pending_deletions(self) -> int:
        return len(self._deletions)

    async def start_tunnel(self) -> str:
        """Open a server-side tunnel session and remember its token."""
        response = await self.http_client.post(
            self._url("/api/tunnels/start"), timeout=self.timeout
        )
        response.raise_for_status()
        self.tunnel_id = response.json()["tunnelId"]
        return self.tunnel_id

    async def upload(
        self, files: Sequence[UploadedFile], contexts: Sequence[str] | None = None
    ) -> list[AssetPayload]:
        """Upload a batch of photos with their contexts."""
        response = await self.http_client.post(
            self._url("/api/uploads"),
            params=self._tunnel_params(),
            files=[
                ("images", (item.filename, item.data, item.content_type))
                for item in files
            ],
            data={"contexts": json.dumps(list(contexts or []))},
            timeout=self.timeout,
        )
        response.raise_for_status()
        uploaded = response.json()["assets"]
        self.assets.extend(uploaded)
        return uploaded

    async def generate_story(
        self, asset_id: str, context: str | None = None, force: bool = False
    ) -> AssetPayload:
        """Request the story for one asset and refresh the local copy."""
        response = await self.http_client.post(
            self._url(f"/api/uploads/{asset_id}/story"),
            params=self._tunnel_params(),
            json={"context": context, "force": force},
            timeout=self.timeout,
        )
        response.raise_for_status()
        asset = response.json()["asset"]
        self.assets = [
            asset if item.get("id") == asset_id else item for item in self.assets
        ]
        return asset

    async def generate_stories(
        self, assets: Sequence[AssetPayload] | None = None, force: bool = False
    ) -> list[AssetPayload]:
        """Request stories for every asset in parallel and wait for all of them."""
        targets = list(self.assets if assets is None else assets)
        return list(
            await asyncio.gather(
                *(
                    self.generate_story(
                        str(item["id"]), _optional_str(item.get("context")), force
                    )
                    for item in targets
                )
            )
        )

    async def commit(self) -> list[AssetPayload]:
        """Close the tunnel session and keep its cache-busted asset list."""
        if self.tunnel_id is None:
            raise RuntimeError("No tunnel session has been started")
        response = await self.http_client.post(
            self._url(f"/api/tunnels/{self.tunnel_id}/commit"), timeout=self.timeout
        )
        response.raise_for_status()
        self.assets = response.json()["assets"]
        self.tunnel_id = None
        return self.assets

    async def build_walkthrough(
        self,
        files: Sequence[UploadedFile],
        contexts: Sequence[str] | None,
        backend: RenderBackend,
        loader: TextureLoader | None = None,
        **options: object,
    ) -> WalkthroughRenderer:
        """Start, upload, story and commit, then bind the result to the tunnel."""
        await self.start_tunnel()
        uploaded = await self.upload(files, contexts)
        await self.generate_stories(uploaded)
        committed = await self.commit()
        logger.info("Tunnel ready", extra={"asset_count": len(committed)})
        return create_walkthrough(committed, backend, loader=loader, **options)

    def forget(self, asset_id: str) -> None:
        """Drop an asset locally and delete it remotely in the background."""
        self.assets = [item for item in self.assets if item.get("id") != asset_id]
        task = asyncio.create_task(self._delete_remote(asset_id))
        self._deletions.add(task)
        task.add_done_callback(self._deletions.discard)

    async def close(self) -> None:
        """Let background deletions settle, then close the HTTP session."""
        if self._deletions:
            await asyncio.gather(*self._deletions, return_exceptions=True)
        await self.http_client.aclose()

    async def _delete_remote(self, asset_id: str) -> None:
        try:
            response = await self.http_client.delete(
                self._url(f"/api/uploads/{asset_id}"), timeout=self.timeout
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning(
                "Background delete failed",
                extra={"asset_id": asset_id, "error": str(exc)},
            )

    def _tunnel_params(self) -> dict[str, str]:
        return {"tunnelId": self.tunnel_id} if self.tunnel_id else {}

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"


def _optional_str(value: object) -> str | None:
    return value if isinstance(value, str) and value else None
