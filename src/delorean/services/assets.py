"""Asset manifest interfaces and read/delete use cases."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from delorean.domain.assets import AssetRecord
from delorean.domain.errors import AssetNotFound

AssetMutation = Callable[[AssetRecord], AssetRecord]


class ContentStore(Protocol):
    """Interface for storing content files by generated name."""

    def write(self, filename: str, data: bytes) -> None:
        """Persist a file, replacing any previous content."""

    def read(self, filename: str) -> bytes:
        """Return file content; raises FileNotFoundError when absent."""

    def exists(self, filename: str) -> bool:
        """Return true when the file is present."""

    def delete(self, filename: str) -> bool:
        """Delete a file and return false when it was already missing."""

    def path_for(self, filename: str) -> Path:
        """Return the on-disk location for a filename."""


class AssetRepository(Protocol):
    """Persistence interface for the ordered asset manifest."""

    def append(self, record: AssetRecord) -> AssetRecord:
        """Append a record, assigning its order, and return it."""

    def list(self) -> list[AssetRecord]:
        """Return all records in ascending order."""

    def get(self, asset_id: str) -> AssetRecord | None:
        """Return a record by id, if present."""

    def update(self, asset_id: str, mutation: AssetMutation) -> AssetRecord | None:
        """Apply a mutation to a record and return the updated record."""

    def remove(self, asset_id: str) -> AssetRecord | None:
        """Remove a record and its backing files, returning the record."""


@dataclass
class AssetService:
    """Application service for reading and deleting stored assets."""

    repository: AssetRepository

    def list_assets(self) -> list[AssetRecord]:
        """Return the manifest in walkthrough order."""
        return self.repository.list()

    def get_asset(self, asset_id: str) -> AssetRecord:
        """Return one asset or raise when unknown."""
        record = self.repository.get(asset_id)
        if record is None:
            raise AssetNotFound(asset_id)
        return record

    def delete_asset(self, asset_id: str) -> AssetRecord:
        """Delete an asset with its files or raise when unknown."""
        removed = self.repository.remove(asset_id)
        if removed is None:
            raise AssetNotFound(asset_id)
        return removed
