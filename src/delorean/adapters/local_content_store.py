"""Local filesystem content store."""

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from delorean.services.assets import ContentStore


@dataclass
class LocalContentStore(ContentStore):
    """Stores files flat under a single root directory."""

    root: Path

    def __post_init__(self) -> None:
        self.root = Path(self.root)
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, filename: str) -> Path:
        """Return the path for a filename, rejecting directory traversal."""
        name = Path(filename).name
        if not name or name != filename:
            raise ValueError(f"Invalid content filename: {filename!r}")
        return self.root / name

    def write(self, filename: str, data: bytes) -> None:
        """Write through a temp file so readers never see partial content."""
        target = self.path_for(filename)
        fd, temp_path = tempfile.mkstemp(dir=self.root, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
            os.replace(temp_path, target)
        except BaseException:
            Path(temp_path).unlink(missing_ok=True)
            raise

    def read(self, filename: str) -> bytes:
        """Read file bytes."""
        return self.path_for(filename).read_bytes()

    def exists(self, filename: str) -> bool:
        """Return true when the file exists."""
        try:
            return self.path_for(filename).is_file()
        except ValueError:
            return False

    def delete(self, filename: str) -> bool:
        """Delete the file; return false when it was already gone."""
        try:
            self.path_for(filename).unlink()
        except FileNotFoundError:
            return False
        return True
