"""Flat JSON file manifest for stored assets."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass, field
from pathlib import Path

import pydantic

from delorean.domain.assets import AssetRecord
from delorean.domain.errors import InternalError
from delorean.services.assets import AssetMutation, AssetRepository, ContentStore

logger = logging.getLogger(__name__)


@dataclass
class JsonManifestRepository(AssetRepository):
    """Manifest persisted as one JSON array, rewritten on every mutation.

    All access goes through a single in-process lock. Concurrent writers in
    other processes are not coordinated.
    """

    path: Path
    content_store: ContentStore
    audio_store: ContentStore | None = None
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    def __post_init__(self) -> None:
        self.path = Path(self.path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def append(self, record: AssetRecord) -> AssetRecord:
        """Append a record with ``order`` one past the highest live order."""
        with self._lock:
            records = self._read()
            next_order = max((r.order for r in records), default=-1) + 1
            stored = record.model_copy(update={"order": next_order})
            records.append(stored)
            self._write(records)
            return stored

    def get(self, asset_id: str) -> AssetRecord | None:
        """Return a record by id."""
        with self._lock:
            return next((r for r in self._read() if r.id == asset_id), None)

    def update(self, asset_id: str, mutation: AssetMutation) -> AssetRecord | None:
        """Read, mutate and rewrite the manifest in one locked step."""
        with self._lock:
            records = self._read()
            for index, record in enumerate(records):
                if record.id == asset_id:
                    updated = mutation(record)
                    records[index] = updated
                    self._write(records)
                    return updated
            return None

    def remove(self, asset_id: str) -> AssetRecord | None:
        """Remove a record, then unlink its image and narration files."""
        with self._lock:
            records = self._read()
            removed = next((r for r in records if r.id == asset_id), None)
            if removed is None:
                return None
            self._write([r for r in records if r.id != asset_id])

        if not self.content_store.delete(removed.filename):
            logger.warning(
                "Backing file already missing on delete",
                extra={"asset_id": asset_id, "image_filename": removed.filename},
            )
        audio_filename = removed.story.audio_filename
        if audio_filename and self.audio_store is not None:
            self.audio_store.delete(audio_filename)
        return removed

    def list(self) -> list[AssetRecord]:
        """Return records sorted by ascending order."""
        with self._lock:
            return sorted(self._read(), key=lambda record: record.order)

    def _read(self) -> list[AssetRecord]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        if not raw.strip():
            return []
        try:
            payload = json.loads(raw)
            if not isinstance(payload, list):
                raise ValueError("manifest root must be a JSON array")
            return [AssetRecord.model_validate(item) for item in payload]
        except (ValueError, pydantic.ValidationError) as exc:
            logger.exception("Manifest is unreadable", extra={"path": str(self.path)})
            raise InternalError(f"Manifest at {self.path} is corrupt") from exc

    def _write(self, records: list[AssetRecord]) -> None:
        payload = json.dumps(
            [record.to_json_dict() for record in records], indent=2, ensure_ascii=False
        )
        try:
            fd, temp_path = tempfile.mkstemp(
                dir=self.path.parent, prefix=".manifest-", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(payload)
                os.replace(temp_path, self.path)
            except OSError:
                Path(temp_path).unlink(missing_ok=True)
                raise
        except OSError:
            logger.exception(
                "Failed to write manifest", extra={"path": str(self.path)}
            )
