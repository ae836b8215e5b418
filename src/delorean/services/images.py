"""Image normalization into the canonical stored format."""

import io
import logging
from dataclasses import dataclass
from pathlib import PurePath

import pillow_heif
from PIL import Image, ImageOps, UnidentifiedImageError

from delorean.domain.assets import CANONICAL_MIME_TYPE
from delorean.domain.errors import ValidationError

logger = logging.getLogger(__name__)

HEIF_MIME_TYPES = {
    "image/heic",
    "image/heif",
    "image/heic-sequence",
    "image/heif-sequence",
}
HEIF_EXTENSIONS = {".heic", ".heif"}
CANONICAL_EXTENSION = ".webp"


@dataclass(frozen=True)
class NormalizedImage:
    """Re-encoded image bytes with pixel dimensions."""

    data: bytes
    width: int
    height: int
    mime_type: str = CANONICAL_MIME_TYPE

    @property
    def size(self) -> int:
        """Return the encoded size in bytes."""
        return len(self.data)


def looks_like_heif(mime_type: str | None, filename: str | None) -> bool:
    """Return true when the MIME type or extension marks a HEIC/HEIF file."""
    if mime_type and mime_type.lower() in HEIF_MIME_TYPES:
        return True
    if filename and PurePath(filename).suffix.lower() in HEIF_EXTENSIONS:
        return True
    return False


@dataclass
class ImageNormalizer:
    """Re-encodes uploads to WEBP with orientation baked into the pixels."""

    quality: int = 82

    def normalize(
        self, data: bytes, mime_type: str | None, filename: str | None
    ) -> NormalizedImage:
        """Normalize one uploaded file, falling back to HEIF decoding."""
        try:
            return self._encode(data)
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            if not looks_like_heif(mime_type, filename):
                raise ValidationError(
                    f"Could not process image {filename or 'upload'}: {exc}"
                ) from exc
            logger.info(
                "Direct decode failed, converting HEIF first",
                extra={"image_filename": filename},
            )

        try:
            intermediate = _heif_to_png(data)
            return self._encode(intermediate)
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            raise ValidationError(
                f"Could not convert HEIC image {filename or 'upload'}: {exc}"
            ) from exc

    def _encode(self, data: bytes) -> NormalizedImage:
        with Image.open(io.BytesIO(data)) as source:
            image = ImageOps.exif_transpose(source)
            image.load()
            image = _to_encodable_mode(image)
            buffer = io.BytesIO()
            image.save(buffer, format="WEBP", quality=self.quality, method=4)
            width, height = image.size
        return NormalizedImage(data=buffer.getvalue(), width=width, height=height)


def _to_encodable_mode(image: Image.Image) -> Image.Image:
    """Convert palette and exotic modes to RGB or RGBA."""
    if image.mode in {"RGB", "RGBA"}:
        return image
    if image.mode in {"LA", "PA"} or (
        image.mode == "P" and "transparency" in image.info
    ):
        return image.convert("RGBA")
    return image.convert("RGB")


def _heif_to_png(data: bytes) -> bytes:
    """Decode HEIC/HEIF bytes and re-emit them as PNG."""
    heif_file = pillow_heif.open_heif(io.BytesIO(data), convert_hdr_to_8bit=True)
    image = heif_file.to_pillow()
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()
