"""Upload validation, normalization and manifest insertion."""

import json
import logging
import re
from dataclasses import dataclass
from pathlib import PurePath
from uuid import uuid4

from delorean.domain.assets import AssetRecord
from delorean.domain.errors import ValidationError
from delorean.services.assets import AssetRepository, ContentStore
from delorean.services.images import (
    CANONICAL_EXTENSION,
    HEIF_EXTENSIONS,
    ImageNormalizer,
    NormalizedImage,
)
from delorean.services.tunnels import TunnelService

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/webp",
    "image/gif",
    "image/heic",
    "image/heif",
    "image/heic-sequence",
    "image/heif-sequence",
}
ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".gif", *HEIF_EXTENSIONS}
GENERIC_MIME_TYPES = {"", "application/octet-stream"}
_FRAGMENT_SEPARATORS = re.compile(r"[_\-\s.]+")


@dataclass(frozen=True)
class UploadedFile:
    """Raw upload as received from the client."""

    filename: str
    content_type: str
    data: bytes


def parse_contexts(raw: str | None) -> list[str]:
    """Parse the ``contexts`` form field, a JSON array of strings."""
    if raw is None or not raw.strip():
        return []
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValidationError("contexts must be a JSON array of strings") from exc
    if not isinstance(payload, list):
        raise ValidationError("contexts must be a JSON array of strings")
    return [item if isinstance(item, str) else "" for item in payload]


def placeholder_context(index: int, filename: str | None) -> str:
    """Return the deterministic context used when the client sent none."""
    label = f"Memory {index + 1}"
    fragment = _filename_fragment(filename)
    return f"{label}: {fragment}" if fragment else label


def _filename_fragment(filename: str | None) -> str:
    if not filename:
        return ""
    stem = PurePath(filename).stem
    return " ".join(part for part in _FRAGMENT_SEPARATORS.split(stem) if part)[:60]


@dataclass
class UploadService:
    """Accepts a batch of photos and appends them to the manifest."""

    repository: AssetRepository
    content_store: ContentStore
    normalizer: ImageNormalizer
    tunnels: TunnelService
    max_files: int = 20
    max_bytes: int = 10 * 1024 * 1024

    def upload(
        self,
        files: list[UploadedFile],
        contexts: list[str] | None = None,
        tunnel_id: str | None = None,
    ) -> list[AssetRecord]:
        """Normalize every file, then persist them in upload order.

        A file that fails validation or normalization fails the whole batch
        before anything is written.
        """
        self._validate(files)
        contexts = contexts or []
        normalized = [
            self.normalizer.normalize(item.data, item.content_type, item.filename)
            for item in files
        ]

        stored: list[AssetRecord] = []
        for index, (item, image) in enumerate(zip(files, normalized, strict=True)):
            explicit = contexts[index].strip() if index < len(contexts) else ""
            record = self._store(
                item, image, explicit or placeholder_context(index, item.filename)
            )
            stored.append(record)
            if tunnel_id:
                self.tunnels.track(tunnel_id, record.id)
        logger.info("Stored uploads", extra={"asset_count": len(stored)})
        return stored

    def _validate(self, files: list[UploadedFile]) -> None:
        if not files:
            raise ValidationError("No images were uploaded.")
        if len(files) > self.max_files:
            raise ValidationError(
                f"Too many images: {len(files)} (max {self.max_files})."
            )
        for item in files:
            if not _is_allowed_type(item.content_type, item.filename):
                raise ValidationError(
                    f"Unsupported file type for {item.filename}: {item.content_type}"
                )
            if len(item.data) > self.max_bytes:
                raise ValidationError(
                    f"{item.filename} is too large: {len(item.data)} bytes "
                    f"(max {self.max_bytes})."
                )
            if not item.data:
                raise ValidationError(f"{item.filename} is empty.")

    def _store(
        self, item: UploadedFile, image: NormalizedImage, context: str
    ) -> AssetRecord:
        asset_id = uuid4().hex
        filename = f"{asset_id}{CANONICAL_EXTENSION}"
        self.content_store.write(filename, image.data)
        record = AssetRecord(
            id=asset_id,
            original_name=item.filename,
            original_mime_type=item.content_type,
            stored_mime_type=image.mime_type,
            size=image.size,
            width=image.width,
            height=image.height,
            filename=filename,
            context=context,
        )
        return self.repository.append(record)


def _is_allowed_type(content_type: str, filename: str) -> bool:
    mime_type = (content_type or "").split(";")[0].strip().lower()
    if mime_type in ALLOWED_MIME_TYPES:
        return True
    if mime_type in GENERIC_MIME_TYPES:
        return PurePath(filename or "").suffix.lower() in ALLOWED_EXTENSIONS
    return False
