"""Scene objects for the walkthrough: environment, panels and vectors."""

import math
import random
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from PIL import ImageColor

from delorean.domain.tunnel import SlotBinding, walkway_layout
from delorean.walkthrough.textures import Texture, placeholder_texture

STAR_COUNT = 2200
STAR_RADIUS = 140.0
PATH_WIDTH = 4.6
PATH_LENGTH = 200.0


@dataclass
class Vector3:
    """Mutable 3D vector."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def copy(self) -> "Vector3":
        return Vector3(self.x, self.y, self.z)

    def add(self, other: "Vector3") -> "Vector3":
        return Vector3(self.x + other.x, self.y + other.y, self.z + other.z)

    def scaled(self, factor: float) -> "Vector3":
        return Vector3(self.x * factor, self.y * factor, self.z * factor)

    def length(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)

    def normalized(self) -> "Vector3":
        size = self.length()
        if size == 0:
            return Vector3()
        return self.scaled(1 / size)

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)


@dataclass(frozen=True)
class WalkthroughAsset:
    """What a panel needs to know about a committed asset."""

    id: str
    url: str | None
    story_text: str | None = None
    audio_url: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> "WalkthroughAsset":
        """Build from one entry of a tunnel commit response."""
        story = payload.get("story")
        story_text = story.get("text") if isinstance(story, Mapping) else None
        return cls(
            id=str(payload.get("id") or payload.get("filename") or ""),
            url=_optional_str(payload.get("url")),
            story_text=_optional_str(story_text),
            audio_url=_optional_str(payload.get("audioUrl")),
        )


def _optional_str(value: object) -> str | None:
    return value if isinstance(value, str) and value else None


@dataclass(frozen=True)
class Light:
    kind: str
    color: int
    intensity: float
    position: tuple[float, float, float] | None = None


@dataclass
class PathSurface:
    """Glossy walking path along the forward axis."""

    width: float = PATH_WIDTH
    length: float = PATH_LENGTH
    center_z: float = -90.0
    clearcoat_roughness: float = 0.06
    env_map_intensity: float = 1.8

    def animate(self, elapsed: float) -> None:
        self.clearcoat_roughness = 0.04 + 0.02 * math.sin(elapsed * 0.25)
        self.env_map_intensity = 1.6 + 0.3 * math.sin(elapsed * 0.2)


@dataclass
class StarField:
    positions: list[Vector3]
    colors: list[tuple[int, int, int]]
    opacity: float = 0.88

    def animate(self, elapsed: float) -> None:
        self.opacity = 0.82 + 0.06 * math.sin(elapsed * 0.2)


@dataclass
class Environment:
    """Fixed geometry built once per walkthrough."""

    background: str
    lights: list[Light]
    path: PathSurface
    stars: StarField
    fog_density: float = 0.012
    environment_map: Texture | None = None


@dataclass
class Panel:
    """One floating image panel placed at a slot."""

    slot_id: str
    index: int
    origin: Vector3
    rotation_y: float
    scale: tuple[float, float, float]
    placeholder: Texture
    asset: WalkthroughAsset | None = None
    texture: Texture | None = None
    axis: Vector3 = field(default_factory=lambda: Vector3(0, 1, 0))
    speed: float = 0.3
    phase: float = 0.0
    amplitude: float = 0.3
    position: Vector3 = field(default_factory=Vector3)

    @property
    def visible_texture(self) -> Texture:
        """Return the loaded asset image, or the placeholder."""
        return self.texture or self.placeholder

    def float_at(self, elapsed: float) -> None:
        """Bob the panel around its origin."""
        t = elapsed * self.speed + self.phase
        self.position = self.origin.add(self.axis.scaled(math.sin(t) * self.amplitude))


def build_environment(rng: random.Random) -> Environment:
    """Create lights, path and the starfield."""
    lights = [
        Light("hemisphere", 0xF8FBFF, 1.05),
        Light("directional", 0xFFFFFF, 0.85, (3, 12, 8)),
        Light("spot", 0xE4ECFF, 2.8, (0, 14, -20)),
    ]
    return Environment(
        background="#040712",
        lights=lights,
        path=PathSurface(),
        stars=_build_stars(rng),
    )


def _build_stars(rng: random.Random) -> StarField:
    positions = []
    colors = []
    for _ in range(STAR_COUNT):
        radius = STAR_RADIUS * (0.6 + rng.random() * 0.4)
        theta = rng.random() * math.pi * 2
        phi = math.acos(rng.random() * 2 - 1)
        positions.append(
            Vector3(
                radius * math.sin(phi) * math.cos(theta),
                radius * math.sin(phi) * math.sin(theta),
                radius * math.cos(phi) - 70,
            )
        )
        hue = 180 + rng.random() * 120
        saturation = 70 + rng.random() * 20
        lightness = 75 + rng.random() * 15
        colors.append(
            ImageColor.getrgb(f"hsl({hue:.0f}, {saturation:.0f}%, {lightness:.0f}%)")
        )
    return StarField(positions=positions, colors=colors)


def build_panels(
    bindings: Sequence[SlotBinding[WalkthroughAsset]], rng: random.Random
) -> list[Panel]:
    """Create one panel per binding along the walkway."""
    layout = walkway_layout([binding.slot for binding in bindings])
    panels = []
    for index, (binding, slot) in enumerate(zip(bindings, layout, strict=True)):
        origin = Vector3(*slot.position)
        panel = Panel(
            slot_id=slot.id,
            index=index,
            origin=origin,
            rotation_y=slot.rotation[1],
            scale=slot.scale,
            placeholder=placeholder_texture(index),
            asset=binding.asset,
            axis=Vector3(
                0.15 + rng.random() * 0.25, 1, 0.2 + rng.random() * 0.2
            ).normalized(),
            speed=0.22 + rng.random() * 0.2,
            phase=rng.random() * math.pi * 2,
            amplitude=0.28 + rng.random() * 0.18,
            position=origin.copy(),
        )
        panels.append(panel)
    return panels
