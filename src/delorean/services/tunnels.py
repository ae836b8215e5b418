"""Short-lived tunnel sessions grouping assets for one walkthrough."""

import logging
import threading
from dataclasses import dataclass, field
from uuid import uuid4

from delorean.domain.assets import AssetRecord
from delorean.domain.errors import TunnelNotFound
from delorean.services.assets import AssetRepository

logger = logging.getLogger(__name__)

VERSION_PARAM = "v"


def cache_bust(url: str | None, tunnel_id: str) -> str | None:
    """Append a ``v=<tunnel_id>`` query parameter unless already present."""
    if not url:
        return url
    token = f"{VERSION_PARAM}={tunnel_id}"
    if token in url:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{token}"


@dataclass
class TunnelService:
    """Tracks which assets were uploaded or storied within a session."""

    repository: AssetRepository
    _sessions: dict[str, list[str]] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def start(self) -> str:
        """Open a session and return its token."""
        tunnel_id = uuid4().hex
        with self._lock:
            self._sessions[tunnel_id] = []
        logger.info("Tunnel session started", extra={"tunnel_id": tunnel_id})
        return tunnel_id

    def is_open(self, tunnel_id: str) -> bool:
        """Return true while the session has not been committed."""
        with self._lock:
            return tunnel_id in self._sessions

    def track(self, tunnel_id: str, asset_id: str) -> None:
        """Record an asset against a session; unknown sessions are ignored."""
        with self._lock:
            asset_ids = self._sessions.get(tunnel_id)
            if asset_ids is None:
                logger.warning(
                    "Ignoring asset for unknown tunnel session",
                    extra={"tunnel_id": tunnel_id, "asset_id": asset_id},
                )
                return
            if asset_id not in asset_ids:
                asset_ids.append(asset_id)

    def asset_ids(self, tunnel_id: str) -> list[str]:
        """Return the asset ids tracked so far, in tracking order."""
        with self._lock:
            return list(self._sessions.get(tunnel_id, []))

    def commit(self, tunnel_id: str) -> list[AssetRecord]:
        """Close the session and return its surviving assets in manifest order."""
        with self._lock:
            asset_ids = self._sessions.pop(tunnel_id, None)
        if asset_ids is None:
            raise TunnelNotFound(tunnel_id)
        tracked = set(asset_ids)
        assets = [record for record in self.repository.list() if record.id in tracked]
        logger.info(
            "Tunnel session committed",
            extra={"tunnel_id": tunnel_id, "asset_count": len(assets)},
        )
        return assets
