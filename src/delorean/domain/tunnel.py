"""Tunnel blueprint and positional slot binding."""

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

Triple = tuple[float, float, float]

AssetT = TypeVar("AssetT")

SLOT_DEPTH_STEP = 8.0
WALKWAY_SPACING = 9.0
PANEL_SCALE: Triple = (4.0, 3.0, 1.0)


@dataclass(frozen=True)
class TunnelSlot:
    """Fixed placement point in the walkthrough geometry."""

    id: str
    position: Triple
    rotation: Triple
    scale: Triple = PANEL_SCALE


@dataclass(frozen=True)
class TunnelConfig:
    """Static tunnel blueprint; only slot contents change between sessions."""

    length: float
    radius: float
    slots: tuple[TunnelSlot, ...]


@dataclass(frozen=True)
class SlotBinding(Generic[AssetT]):
    """A slot paired with the asset at the same index, if any."""

    slot: TunnelSlot
    asset: AssetT | None = None

    @property
    def is_bound(self) -> bool:
        """Return true when an asset occupies the slot."""
        return self.asset is not None


def _slot_id(index: int) -> str:
    return f"slot-{index + 1:02d}"


DEFAULT_TUNNEL = TunnelConfig(
    length=120,
    radius=6,
    slots=(
        TunnelSlot(_slot_id(0), (0, 0, -8), (0, math.pi / 2, 0)),
        TunnelSlot(_slot_id(1), (0, 1, -16), (0, -math.pi / 2, 0)),
        TunnelSlot(_slot_id(2), (0, -0.5, -24), (0, math.pi / 3, 0)),
        TunnelSlot(_slot_id(3), (0, 0, -32), (0, -math.pi / 3, 0)),
        TunnelSlot(_slot_id(4), (0, 0.75, -40), (0, math.pi / 1.5, 0)),
        TunnelSlot(_slot_id(5), (0, -1, -48), (0, -math.pi / 2.2, 0)),
        TunnelSlot(_slot_id(6), (0, 0.25, -56), (0, math.pi / 2.8, 0)),
        TunnelSlot(_slot_id(7), (0, 0, -64), (0, -math.pi / 1.7, 0)),
        TunnelSlot(_slot_id(8), (0, -0.75, -72), (0, math.pi / 2.5, 0)),
        TunnelSlot(_slot_id(9), (0, 0.5, -80), (0, -math.pi / 2.5, 0)),
    ),
)


def extend_slots(config: TunnelConfig, count: int) -> tuple[TunnelSlot, ...]:
    """Return exactly ``count`` slots, synthesizing evenly spaced extras.

    The blueprint itself is never modified.
    """
    base = config.slots
    if count <= len(base):
        return base[: max(count, 0)]

    last_z = base[-1].position[2] if base else -SLOT_DEPTH_STEP
    spacing = abs(last_z) + SLOT_DEPTH_STEP
    extra = []
    for index in range(len(base), count):
        z = -spacing - SLOT_DEPTH_STEP * (index - len(base))
        sign = 1 if index % 2 == 0 else -1
        extra.append(
            TunnelSlot(
                id=_slot_id(index),
                position=(0, 0, z),
                rotation=(0, sign * math.pi / 2.8, 0),
            )
        )
    return (*base, *extra)


def bind_slots(
    slots: Sequence[TunnelSlot], assets: Sequence[AssetT]
) -> list[SlotBinding[AssetT]]:
    """Pair slot ``i`` with asset ``i``; extra slots stay unbound."""
    return [
        SlotBinding(slot=slot, asset=assets[index] if index < len(assets) else None)
        for index, slot in enumerate(slots)
    ]


def bind_tunnel(
    config: TunnelConfig, assets: Sequence[AssetT]
) -> list[SlotBinding[AssetT]]:
    """Bind assets to the blueprint, extending it when assets outnumber slots."""
    slots = config.slots
    if len(assets) > len(slots):
        slots = extend_slots(config, len(assets))
    return bind_slots(slots, assets)


def walkway_layout(
    slots: Sequence[TunnelSlot], spacing: float = WALKWAY_SPACING
) -> list[TunnelSlot]:
    """Lay slots out alternately left and right of the walking path."""
    layout = []
    for index, slot in enumerate(slots):
        is_left = index % 2 == 0
        layout.append(
            TunnelSlot(
                id=slot.id,
                position=(-3.2 if is_left else 3.2, 1.9, -14 - index * spacing),
                rotation=(0, (1 if is_left else -1) * math.pi / 2.15, 0),
                scale=(4.2, 3.2, 1.0),
            )
        )
    return layout
