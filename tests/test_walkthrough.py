"""Tests for the walkthrough renderer, navigation and textures."""

import asyncio
import math
from dataclasses import dataclass, field

from PIL import Image

from delorean.walkthrough import HeadlessBackend, create_walkthrough
from delorean.walkthrough.navigation import (
    MAX_FRAME_DELTA,
    X_BOUNDS,
    MoveState,
    NavigationController,
)
from delorean.walkthrough.scene import STAR_COUNT, WalkthroughAsset
from delorean.walkthrough.textures import Texture, placeholder_texture


def _payload(count: int) -> list[dict[str, object]]:
    return [
        {
            "id": f"asset-{index}",
            "url": f"http://testserver/uploads/asset-{index}.webp?v=t1",
            "story": {"status": "ready", "text": f"Story {index}"},
            "audioUrl": None,
        }
        for index in range(count)
    ]


@dataclass
class _FakeLoader:
    """Loader resolving configured sources and failing everything else."""

    available: set[str] = field(default_factory=set)
    requested: list[str] = field(default_factory=list)
    cancelled: list[str] = field(default_factory=list)
    hang: bool = False

    async def load(self, source: str) -> Texture | None:
        self.requested.append(source)
        if self.hang:
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                self.cancelled.append(source)
                raise
        if source in self.available:
            return Texture(image=Image.new("RGB", (4, 4)), source=source)
        return None


def test_walk_forward_moves_along_negative_z() -> None:
    controller = NavigationController()
    controller.lock()
    controller.moves.set_key("KeyW", True)
    start_z = controller.position.z

    for _ in range(10):
        controller.step(1 / 60)

    assert controller.position.z < start_z
    assert controller.position.x == 0


def test_unlocked_controller_does_not_move() -> None:
    controller = NavigationController()
    controller.moves.set_key("ArrowUp", True)
    before = controller.position.as_tuple()

    controller.step(1 / 60)

    assert controller.position.as_tuple() == before


def test_position_is_clamped_to_walkway() -> None:
    controller = NavigationController()
    controller.lock()
    controller.moves.set_key("KeyD", True)

    for _ in range(200):
        controller.step(MAX_FRAME_DELTA)

    assert controller.position.x == X_BOUNDS[1]


def test_large_frame_delta_is_capped() -> None:
    capped = NavigationController()
    huge = NavigationController()
    for controller in (capped, huge):
        controller.lock()
        controller.moves.set_key("KeyW", True)

    capped.step(MAX_FRAME_DELTA)
    huge.step(5.0)

    assert huge.position.as_tuple() == capped.position.as_tuple()


def test_look_requires_lock_and_clamps_pitch() -> None:
    controller = NavigationController()
    controller.look(100, 100)
    assert (controller.yaw, controller.pitch) == (0.0, 0.0)

    controller.lock()
    controller.look(0, -100000)

    assert controller.pitch < math.pi / 2


def test_unbound_keys_are_ignored_and_unlock_clears_moves() -> None:
    controller = NavigationController()
    assert MoveState().set_key("Space", True) is False
    controller.moves.set_key("KeyS", True)

    controller.unlock()

    assert controller.moves == MoveState()


def test_placeholders_are_labelled_and_distinct() -> None:
    first = placeholder_texture(0)
    second = placeholder_texture(1)

    assert first.size == (256, 256)
    assert first.source == "placeholder:0"
    assert first.image.tobytes() != second.image.tobytes()
    assert first.image.tobytes() == placeholder_texture(0).image.tobytes()


def test_asset_payload_parsing() -> None:
    asset = WalkthroughAsset.from_payload(_payload(1)[0])

    assert asset.id == "asset-0"
    assert asset.url.endswith("?v=t1")
    assert asset.story_text == "Story 0"
    assert asset.audio_url is None


def test_first_frame_shows_placeholders_for_every_slot() -> None:
    backend = HeadlessBackend()
    renderer = create_walkthrough(_payload(3), backend, seed=7)

    snapshot = renderer.frame(1 / 60, 0.0)

    assert backend.frames_drawn == 1
    assert len(snapshot.panels) == 10
    assert [panel.asset_id for panel in snapshot.panels[:3]] == [
        "asset-0",
        "asset-1",
        "asset-2",
    ]
    assert snapshot.panels[3].asset_id is None
    assert snapshot.panels[0].texture_source == "placeholder:0"
    assert snapshot.panels[1].story_text == "Story 1"
    assert len(renderer.environment.stars.positions) == STAR_COUNT
    assert snapshot.has_environment_map is False


def test_walkthrough_extends_slots_for_large_batches() -> None:
    renderer = create_walkthrough(_payload(12), HeadlessBackend())

    snapshot = renderer.frame(1 / 60, 0.0)

    assert len(snapshot.panels) == 12
    assert snapshot.panels[-1].asset_id == "asset-11"


def test_build_is_idempotent() -> None:
    renderer = create_walkthrough(_payload(2), HeadlessBackend())
    renderer.build()
    environment, panels = renderer.environment, renderer.panels

    renderer.build()

    assert renderer.environment is environment
    assert renderer.panels is panels


def test_loaded_textures_replace_placeholders_and_failures_are_tolerated() -> None:
    payload = _payload(2)
    loader = _FakeLoader(available={payload[0]["url"]})
    backend = HeadlessBackend()
    renderer = create_walkthrough(
        payload, backend, loader=loader, environment_map="sky.hdr", fps=1000
    )

    drawn = asyncio.run(renderer.run(max_frames=5))

    assert drawn == 5
    assert "sky.hdr" in loader.requested
    panels = backend.last.panels
    assert panels[0].texture_source == payload[0]["url"]
    assert panels[1].texture_source == "placeholder:1"
    assert backend.last.has_environment_map is False


def test_request_exit_stops_loop_and_fires_callback() -> None:
    exits: list[bool] = []

    class _ExitingBackend(HeadlessBackend):
        def draw(self, snapshot) -> None:  # type: ignore[no-untyped-def]
            super().draw(snapshot)
            if self.frames_drawn == 2:
                renderer.request_exit()

    renderer = create_walkthrough(
        _payload(1), _ExitingBackend(), fps=1000, on_exit=lambda: exits.append(True)
    )

    drawn = asyncio.run(renderer.run())

    assert drawn == 2
    assert exits == [True]
    assert renderer.exit_requested


def test_dispose_cancels_loads_in_flight() -> None:
    loader = _FakeLoader(hang=True)
    renderer = create_walkthrough(
        _payload(2), HeadlessBackend(), loader=loader, fps=1000
    )

    async def scenario() -> list[str]:
        await renderer.run(max_frames=2)
        return list(loader.cancelled)

    cancelled = asyncio.run(scenario())

    assert renderer.pending_loads == 0
    assert len(loader.requested) == 2
    assert sorted(cancelled) == sorted(loader.requested)
    assert not renderer.navigation.locked


def test_frames_animate_panels_and_camera() -> None:
    renderer = create_walkthrough(_payload(1), HeadlessBackend(), seed=3)

    first = renderer.frame(1 / 60, 0.0)
    later = renderer.frame(1 / 60, 2.5)

    assert first.panels[0].position != later.panels[0].position
    assert first.camera_position[1] != later.camera_position[1]
    assert later.frame == first.frame + 1
