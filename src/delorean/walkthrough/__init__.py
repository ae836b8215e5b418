"""Headless 3D walkthrough of committed tunnel assets."""

from delorean.walkthrough.renderer import (
    FrameSnapshot,
    HeadlessBackend,
    RenderBackend,
    WalkthroughRenderer,
    create_walkthrough,
)
from delorean.walkthrough.session import TunnelSession

__all__ = [
    "FrameSnapshot",
    "HeadlessBackend",
    "RenderBackend",
    "TunnelSession",
    "WalkthroughRenderer",
    "create_walkthrough",
]
