"""First-person navigation along the walkway."""

import math
from dataclasses import dataclass, field

from delorean.walkthrough.scene import Vector3

WALK_SPEED = 20.0
DAMPING = 8.0
MAX_FRAME_DELTA = 0.1
X_BOUNDS = (-3.4, 3.4)
Y_BOUNDS = (1.6, 2.4)
PITCH_BOUNDS = (-math.pi / 2 + 0.01, math.pi / 2 - 0.01)
POINTER_SPEED = 0.6
LOOK_SENSITIVITY = 0.002
EYE_HEIGHT = 2.0
START_POSITION = (0.0, 1.8, -4.0)

KEY_BINDINGS = {
    "ArrowUp": "forward",
    "KeyW": "forward",
    "ArrowLeft": "left",
    "KeyA": "left",
    "ArrowDown": "back",
    "KeyS": "back",
    "ArrowRight": "right",
    "KeyD": "right",
}


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass
class MoveState:
    """Held-key flags, set on key down and cleared on key up."""

    forward: bool = False
    back: bool = False
    left: bool = False
    right: bool = False

    def set_key(self, code: str, pressed: bool) -> bool:
        """Update the flag bound to ``code``; return false for unbound keys."""
        direction = KEY_BINDINGS.get(code)
        if direction is None:
            return False
        setattr(self, direction, pressed)
        return True

    def clear(self) -> None:
        self.forward = self.back = self.left = self.right = False


@dataclass
class NavigationController:
    """Pointer-lock style walking constrained to a box around the path."""

    position: Vector3 = field(default_factory=lambda: Vector3(*START_POSITION))
    velocity: Vector3 = field(default_factory=Vector3)
    yaw: float = 0.0
    pitch: float = 0.0
    moves: MoveState = field(default_factory=MoveState)
    locked: bool = False

    def lock(self) -> None:
        self.locked = True

    def unlock(self) -> None:
        self.locked = False
        self.moves.clear()

    def look(self, movement_x: float, movement_y: float) -> None:
        """Apply mouse movement while the pointer is locked."""
        if not self.locked:
            return
        factor = LOOK_SENSITIVITY * POINTER_SPEED
        self.yaw -= movement_x * factor
        self.pitch = clamp(self.pitch - movement_y * factor, *PITCH_BOUNDS)

    def step(self, delta: float) -> None:
        """Advance one frame of damped movement."""
        delta = clamp(delta, 0.0, MAX_FRAME_DELTA)
        self.velocity.x -= self.velocity.x * DAMPING * delta
        self.velocity.z -= self.velocity.z * DAMPING * delta

        direction = Vector3(
            float(self.moves.left) - float(self.moves.right),
            0.0,
            float(self.moves.back) - float(self.moves.forward),
        ).normalized()

        if not self.locked:
            return
        self.velocity.z -= direction.z * WALK_SPEED * delta
        self.velocity.x -= direction.x * WALK_SPEED * delta
        self._move_right(self.velocity.x * delta)
        self._move_forward(self.velocity.z * delta)
        self.position.x = clamp(self.position.x, *X_BOUNDS)
        self.position.y = clamp(self.position.y, *Y_BOUNDS)

    def eye_height(self, elapsed: float) -> float:
        """Camera height with a slow idle bob."""
        return EYE_HEIGHT + 0.03 * math.sin(elapsed * 0.6)

    def _move_forward(self, distance: float) -> None:
        self.position.x -= math.sin(self.yaw) * distance
        self.position.z -= math.cos(self.yaw) * distance

    def _move_right(self, distance: float) -> None:
        self.position.x += math.cos(self.yaw) * distance
        self.position.z -= math.sin(self.yaw) * distance
