"""Panel textures: generated placeholders and asynchronous image loading."""

import asyncio
import io
import logging
from dataclasses import dataclass, field
from pathlib import Path

import httpx
from PIL import Image, ImageColor, ImageDraw, ImageFont, UnidentifiedImageError

logger = logging.getLogger(__name__)

PLACEHOLDER_SIZE = 256
PLACEHOLDER_HUES = (190, 320, 60, 120, 260)


@dataclass(frozen=True)
class Texture:
    """Decoded image ready to be drawn on a panel."""

    image: Image.Image
    source: str

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size


def placeholder_texture(index: int, size: int = PLACEHOLDER_SIZE) -> Texture:
    """Return a gradient card labelled with the slot number."""
    hue = PLACEHOLDER_HUES[index % len(PLACEHOLDER_HUES)]
    start = Image.new("RGB", (size, size), ImageColor.getrgb(f"hsl({hue}, 70%, 60%)"))
    end = Image.new(
        "RGB", (size, size), ImageColor.getrgb(f"hsl({(hue + 40) % 360}, 70%, 45%)")
    )
    mask = Image.linear_gradient("L").resize((size, size))
    image = Image.composite(end, start, mask).convert("RGBA")

    overlay = Image.new("RGBA", image.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)
    margin_x, margin_y = size * 30 // 256, size * 40 // 256
    draw.rectangle(
        (margin_x, margin_y, size - margin_x, size - margin_y),
        fill=(255, 255, 255, 38),
    )
    label = f"#{index + 1:02d}"
    font = ImageFont.load_default(size=size * 60 // 256)
    left, top, right, bottom = draw.textbbox((0, 0), label, font=font)
    draw.text(
        ((size - (right - left)) / 2 - left, (size - (bottom - top)) / 2 - top),
        label,
        font=font,
        fill=(0, 0, 0, 46),
    )
    image = Image.alpha_composite(image, overlay).convert("RGB")
    return Texture(image=image, source=f"placeholder:{index}")


@dataclass
class TextureLoader:
    """Loads textures from URLs or local paths without raising."""

    http_client: httpx.AsyncClient | None = None
    timeout: float = 20.0
    _owns_client: bool = field(default=False, repr=False)

    @classmethod
    def create(cls) -> "TextureLoader":
        """Create a loader with a managed httpx session."""
        return cls(http_client=httpx.AsyncClient(), _owns_client=True)

    async def load(self, source: str) -> Texture | None:
        """Return the decoded texture, or None when it cannot be loaded."""
        try:
            data = await self._fetch(source)
            image = await asyncio.to_thread(_decode, data)
        except (httpx.HTTPError, OSError, UnidentifiedImageError, ValueError) as exc:
            logger.warning(
                "Texture load failed, continuing without it",
                extra={"source": source, "error": str(exc)},
            )
            return None
        return Texture(image=image, source=source)

    async def _fetch(self, source: str) -> bytes:
        if source.startswith(("http://", "https://")):
            if self.http_client is None:
                raise ValueError("No HTTP client configured for remote textures")
            response = await self.http_client.get(source, timeout=self.timeout)
            response.raise_for_status()
            return response.content
        return await asyncio.to_thread(Path(source).read_bytes)

    async def close(self) -> None:
        """Close the underlying HTTP session when owned."""
        if self._owns_client and self.http_client is not None:
            await self.http_client.aclose()


def _decode(data: bytes) -> Image.Image:
    with Image.open(io.BytesIO(data)) as source:
        source.load()
        return source.convert("RGB")
