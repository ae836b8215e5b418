"""Render loop for the tunnel walkthrough.

The renderer builds the environment once, keeps one panel per slot binding
and advances the scene on a fixed frame cadence. Texture and environment
loads run as background tasks; a frame never waits for them and a failed
load leaves the placeholder in place. Only ``request_exit`` stops the loop.
"""

import asyncio
import logging
import random
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Protocol

from delorean.domain.tunnel import DEFAULT_TUNNEL, SlotBinding, TunnelConfig, bind_tunnel
from delorean.walkthrough.navigation import MAX_FRAME_DELTA, NavigationController
from delorean.walkthrough.scene import (
    Environment,
    Panel,
    WalkthroughAsset,
    build_environment,
    build_panels,
)
from delorean.walkthrough.textures import Texture, TextureLoader

logger = logging.getLogger(__name__)

DEFAULT_FPS = 60


@dataclass(frozen=True)
class PanelSnapshot:
    slot_id: str
    position: tuple[float, float, float]
    rotation_y: float
    texture_source: str
    asset_id: str | None
    story_text: str | None


@dataclass(frozen=True)
class FrameSnapshot:
    """Everything a backend needs to draw one frame."""

    frame: int
    elapsed: float
    camera_position: tuple[float, float, float]
    yaw: float
    pitch: float
    panels: tuple[PanelSnapshot, ...]
    star_opacity: float
    has_environment_map: bool


class RenderBackend(Protocol):
    """Draws frames produced by the renderer."""

    def draw(self, snapshot: FrameSnapshot) -> None:
        """Present one frame."""


@dataclass
class HeadlessBackend(RenderBackend):
    """Backend that keeps the latest frame in memory."""

    last: FrameSnapshot | None = None
    frames_drawn: int = 0

    def draw(self, snapshot: FrameSnapshot) -> None:
        self.last = snapshot
        self.frames_drawn += 1


class WalkthroughRenderer:
    """Owns the scene, navigation and the frame loop for one walkthrough."""

    def __init__(  # noqa: PLR0913
        self,
        bindings: Sequence[SlotBinding[WalkthroughAsset]],
        backend: RenderBackend,
        loader: TextureLoader | None = None,
        environment_map: str | None = None,
        fps: int = DEFAULT_FPS,
        seed: int | None = None,
        on_exit: Callable[[], None] | None = None,
    ) -> None:
        self.bindings = list(bindings)
        self.backend = backend
        self.loader = loader
        self.environment_map_source = environment_map
        self.frame_interval = 1 / fps
        self.navigation = NavigationController()
        self.on_exit = on_exit
        self.environment: Environment | None = None
        self.panels: list[Panel] = []
        self._rng = random.Random(seed)
        self._pending: dict[asyncio.Task[Texture | None], Panel | None] = {}
        self._exit_requested = False
        self._frame = 0

    @property
    def exit_requested(self) -> bool:
        return self._exit_requested

    @property
    def pending_loads(self) -> int:
        return len(self._pending)

    def build(self) -> None:
        """Build the environment and panels; later calls are no-ops."""
        if self.environment is not None:
            return
        self.environment = build_environment(self._rng)
        self.panels = build_panels(self.bindings, self._rng)

    def schedule_loads(self) -> None:
        """Start background loads for the environment map and asset images."""
        if self.loader is None:
            return
        if self.environment_map_source:
            task = asyncio.create_task(self.loader.load(self.environment_map_source))
            self._pending[task] = None
        for panel in self.panels:
            if panel.asset is not None and panel.asset.url:
                task = asyncio.create_task(self.loader.load(panel.asset.url))
                self._pending[task] = panel

    def handle_key(self, code: str, pressed: bool) -> None:
        self.navigation.moves.set_key(code, pressed)

    def request_exit(self) -> None:
        """Stop the loop at the end of the current frame."""
        self._exit_requested = True

    def frame(self, delta: float, elapsed: float) -> FrameSnapshot:
        """Advance the scene by one frame and hand it to the backend."""
        self.build()
        self._collect_finished_loads()
        self.navigation.step(min(delta, MAX_FRAME_DELTA))

        environment = self.environment
        environment.path.animate(elapsed)
        environment.stars.animate(elapsed)
        for panel in self.panels:
            panel.float_at(elapsed)

        camera = self.navigation.position.copy()
        camera.y = self.navigation.eye_height(elapsed)
        snapshot = FrameSnapshot(
            frame=self._frame,
            elapsed=elapsed,
            camera_position=camera.as_tuple(),
            yaw=self.navigation.yaw,
            pitch=self.navigation.pitch,
            panels=tuple(_panel_snapshot(panel) for panel in self.panels),
            star_opacity=environment.stars.opacity,
            has_environment_map=environment.environment_map is not None,
        )
        self._frame += 1
        self.backend.draw(snapshot)
        return snapshot

    async def run(self, max_frames: int | None = None) -> int:
        """Drive frames until exit is requested; return the frame count."""
        self.build()
        self.schedule_loads()
        started = last = time.perf_counter()
        drawn = 0
        try:
            while not self._exit_requested:
                if max_frames is not None and drawn >= max_frames:
                    break
                now = time.perf_counter()
                self.frame(now - last, now - started)
                last = now
                drawn += 1
                spent = time.perf_counter() - now
                await asyncio.sleep(max(0.0, self.frame_interval - spent))
        finally:
            await self.dispose()
        if self._exit_requested and self.on_exit is not None:
            self.on_exit()
        return drawn

    async def dispose(self) -> None:
        """Cancel loads still in flight and wait for them to finish."""
        tasks = list(self._pending)
        self._pending.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self.navigation.unlock()

    def _collect_finished_loads(self) -> None:
        for task in [task for task in self._pending if task.done()]:
            panel = self._pending.pop(task)
            if task.cancelled():
                continue
            error = task.exception()
            if error is not None:
                logger.warning("Texture task failed", extra={"error": str(error)})
                continue
            texture = task.result()
            if texture is None:
                continue
            if panel is None:
                self.environment.environment_map = texture
            else:
                panel.texture = texture


def _panel_snapshot(panel: Panel) -> PanelSnapshot:
    return PanelSnapshot(
        slot_id=panel.slot_id,
        position=panel.position.as_tuple(),
        rotation_y=panel.rotation_y,
        texture_source=panel.visible_texture.source,
        asset_id=panel.asset.id if panel.asset else None,
        story_text=panel.asset.story_text if panel.asset else None,
    )


def create_walkthrough(
    assets: Sequence[Mapping[str, object]],
    backend: RenderBackend,
    loader: TextureLoader | None = None,
    config: TunnelConfig = DEFAULT_TUNNEL,
    **options: object,
) -> WalkthroughRenderer:
    """Bind committed tunnel assets to slots and build a renderer for them."""
    walkthrough_assets = [WalkthroughAsset.from_payload(item) for item in assets]
    bindings = bind_tunnel(config, walkthrough_assets)
    return WalkthroughRenderer(bindings, backend, loader=loader, **options)
