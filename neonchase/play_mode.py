"""The chase game: dodge the bouncing spheres and catch the target."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .geometry import angle_axis, quat_multiply, quat_normalize
from .scene import Scene, Transform
from .sound import Mixer, PlayingSample, Sample

BUTTON_LEFT = 1
PLAYER_SPEED = 30.0

# (low, high) walls for x, y and z.
_BOUNDS = ((-9.0, 9.0), (-9.0, 9.0), (1.0, 19.0))

DEFAULT_MESSAGE = "Balls = Death, Wings = Success!"
WIN_MESSAGE = "You win!"
LOSE_MESSAGE = "You lose!"


class Key(enum.Enum):
    ESCAPE = "escape"
    A = "a"
    D = "d"
    W = "w"
    S = "s"
    LEFT = "left"
    RIGHT = "right"
    PRINTSCREEN = "printscreen"


@dataclass(frozen=True)
class KeyDown:
    key: Key


@dataclass(frozen=True)
class KeyUp:
    key: Key


@dataclass(frozen=True)
class MouseButtonDown:
    button: int = BUTTON_LEFT


@dataclass(frozen=True)
class MouseMotion:
    xrel: float
    yrel: float
    left_button: bool = False
    shift: bool = False


@dataclass(frozen=True)
class MouseWheel:
    y: float


@dataclass
class Button:
    downs: int = 0
    pressed: bool = False


def _bounce(position: np.ndarray, speed: np.ndarray) -> None:
    """Reflect ``position`` off the room's walls, flipping ``speed`` as needed."""
    for axis, (low, high) in enumerate(_BOUNDS):
        if position[axis] < low:
            position[axis] = 2.0 * low - position[axis]
            speed[axis] *= -1.0
        if position[axis] > high:
            position[axis] = 2.0 * high - position[axis]
            speed[axis] *= -1.0


class PlayMode:
    """Game state plus event handling and per-frame update."""

    def __init__(
        self,
        scene: Scene,
        mixer: Optional[Mixer] = None,
        bgm_sample: Optional[Sample] = None,
        win_sample: Optional[Sample] = None,
        lose_sample: Optional[Sample] = None,
    ) -> None:
        self.scene = scene.copy()
        self.mixer = mixer
        self.win_sample = win_sample
        self.lose_sample = lose_sample

        self.left = Button()
        self.right = Button()
        self.down = Button()
        self.up = Button()

        by_name: dict[str, Transform] = {}
        for transform in self.scene.transforms:
            by_name[transform.name] = transform
        for name in ("Target", "LeftAnkle", "RightAnkle", "Sphere", "Sphere1"):
            if name not in by_name:
                raise ValueError(f"{name} not found.")
        self.sphere = by_name["Sphere"]
        self.sphere1 = by_name["Sphere1"]
        self.target = by_name["Target"]
        self.left_ankle = by_name["LeftAnkle"]
        self.right_ankle = by_name["RightAnkle"]

        self.sphere_speed = np.array([7.0, 9.0, -15.0])
        self.sphere1_speed = np.array([6.0, -3.0, 8.0])
        self.target_speed = np.array([4.0, 2.0, 3.0])

        self.left_ankle_base_rotation = self.left_ankle.rotation.copy()
        self.right_ankle_base_rotation = self.right_ankle.rotation.copy()
        self.wobble = 0.0

        if len(self.scene.cameras) != 1:
            raise ValueError(
                "Expecting scene to have exactly one camera, but it has "
                f"{len(self.scene.cameras)}"
            )
        self.camera = self.scene.cameras[0]

        self.relative_mouse = False
        self.win = False
        self.lose = False

        self.bgm: Optional[PlayingSample] = None
        if mixer is not None and bgm_sample is not None:
            self.bgm = mixer.loop(bgm_sample, 1.0)

    def _button_for(self, key: Key) -> Optional[Button]:
        return {Key.A: self.left, Key.D: self.right, Key.W: self.up, Key.S: self.down}.get(key)

    def handle_event(self, event, window_size) -> bool:
        """Apply an input event; return whether it was consumed."""
        if isinstance(event, KeyDown):
            if event.key is Key.ESCAPE:
                self.relative_mouse = False
                return True
            button = self._button_for(event.key)
            if button is not None:
                button.downs += 1
                button.pressed = True
                return True
        elif isinstance(event, KeyUp):
            button = self._button_for(event.key)
            if button is not None:
                button.pressed = False
                return True
        elif isinstance(event, MouseButtonDown):
            if not self.relative_mouse:
                self.relative_mouse = True
                return True
        elif isinstance(event, MouseMotion):
            if self.relative_mouse:
                height = float(window_size[1])
                motion_x = event.xrel / height
                motion_y = -event.yrel / height
                transform = self.camera.transform
                fovy = self.camera.fovy
                rotation = quat_multiply(
                    transform.rotation, angle_axis(-motion_x * fovy, (0.0, 1.0, 0.0))
                )
                rotation = quat_multiply(rotation, angle_axis(motion_y * fovy, (1.0, 0.0, 0.0)))
                transform.rotation = quat_normalize(rotation)
                return True
        return False

    def update(self, elapsed: float) -> None:
        """Advance the game by ``elapsed`` seconds."""
        if self.lose or self.win:
            return

        self.wobble += elapsed * 2.0
        self.wobble -= math.floor(self.wobble)
        swing = math.radians(30.0 * math.sin(self.wobble * 2.0 * math.pi))
        self.left_ankle.rotation = quat_multiply(
            self.left_ankle_base_rotation, angle_axis(swing, (1.0, 0.0, 0.0))
        )
        self.right_ankle.rotation = quat_multiply(
            self.right_ankle_base_rotation, angle_axis(-swing, (1.0, 0.0, 0.0))
        )

        self.sphere_speed[2] -= 9.8 * elapsed
        for transform, speed in (
            (self.sphere, self.sphere_speed),
            (self.sphere1, self.sphere1_speed),
            (self.target, self.target_speed),
        ):
            transform.position = transform.position + speed * elapsed
            _bounce(transform.position, speed)

        self._move_camera(elapsed)

        camera_transform = self.camera.transform
        if self.mixer is not None:
            frame = camera_transform.make_local_to_parent()
            self.mixer.listener.set_position_right(frame[:, 3], frame[:, 0], 1.0 / 60.0)

        camera_position = camera_transform.position
        if np.linalg.norm(self.target.position - camera_position) < 1.0:
            self.win = True
            self._play(self.win_sample)
            print(WIN_MESSAGE)
        if (
            np.linalg.norm(self.sphere.position - camera_position) < 1.5
            or np.linalg.norm(self.sphere1.position - camera_position) < 1.5
        ):
            self.lose = True
            self._play(self.lose_sample)
            print(LOSE_MESSAGE)

        for button in (self.left, self.right, self.up, self.down):
            button.downs = 0

    def _move_camera(self, elapsed: float) -> None:
        move = np.zeros(2)
        if self.left.pressed and not self.right.pressed:
            move[0] = -1.0
        if not self.left.pressed and self.right.pressed:
            move[0] = 1.0
        if self.down.pressed and not self.up.pressed:
            move[1] = -1.0
        if not self.down.pressed and self.up.pressed:
            move[1] = 1.0
        if move.any():
            move = move / np.linalg.norm(move) * PLAYER_SPEED * elapsed

        transform = self.camera.transform
        frame = transform.make_local_to_parent()
        frame_right = frame[:, 0]
        frame_forward = -frame[:, 2]
        position = transform.position + move[0] * frame_right + move[1] * frame_forward
        lows = np.array([low for low, _ in _BOUNDS])
        highs = np.array([high for _, high in _BOUNDS])
        transform.position = np.clip(position, lows, highs)

    def _play(self, sample: Optional[Sample]) -> None:
        if self.mixer is not None and sample is not None:
            self.mixer.play(sample, 1.0, 0.0)

    def message(self) -> str:
        """The status line shown on screen."""
        if self.lose:
            return LOSE_MESSAGE
        if self.win:
            return WIN_MESSAGE
        return DEFAULT_MESSAGE