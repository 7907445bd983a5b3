"""Software audio mixer: samples, ramped parameters and 2D/3D panning.

Audio is 48 kHz mono per sample and mixed into stereo blocks of
``MIX_SAMPLES`` frames by :meth:`Mixer.mix`.
"""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass
from typing import Any, Optional

import numpy as np

from .wav import load_wav

AUDIO_RATE = 48000
MIX_SAMPLES = 1024
RAMP_STEP = MIX_SAMPLES / AUDIO_RATE
DEFAULT_RAMP = 1.0 / 60.0

_PI = 3.1415926


def _copy(value: Any) -> Any:
    if isinstance(value, (np.ndarray, list, tuple)):
        return np.array(value, dtype=float)
    return value


@dataclass
class Sample:
    """Mono 48 kHz floating-point audio."""

    data: np.ndarray

    def __post_init__(self) -> None:
        self.data = np.asarray(self.data, dtype=np.float32)

    @classmethod
    def from_file(cls, filename) -> "Sample":
        name = str(filename)
        if name.endswith(".wav"):
            return cls(load_wav(filename))
        raise ValueError(f"Sample '{name}' doesn't end in \".wav\" -- unsure how to load.")


class Ramp:
    """A value that moves smoothly toward a target over ``ramp`` seconds."""

    def __init__(self, value: Any) -> None:
        self.value = _copy(value)
        self.target = _copy(value)
        self.ramp = 0.0

    def set(self, value: Any, ramp: float) -> None:
        if ramp <= 0.0:
            self.value = _copy(value)
            self.target = _copy(value)
            self.ramp = 0.0
        else:
            self.target = _copy(value)
            self.ramp = ramp

    def __repr__(self) -> str:
        return f"Ramp(value={self.value!r}, target={self.target!r}, ramp={self.ramp!r})"


class PlayingSample:
    """Book-keeping for a sample being played in 2D (pan) or 3D (position) mode."""

    def __init__(
        self,
        sample: Sample,
        volume: float = 1.0,
        *,
        pan: Optional[float] = None,
        position=None,
        half_volume_radius: float = math.inf,
        loop: bool = False,
        lock: Optional[threading.RLock] = None,
    ) -> None:
        self.data = sample.data
        self.i = 0
        self.loop = loop
        self.stopping = False
        self.stopped = False
        self._lock = lock if lock is not None else threading.RLock()
        self.volume = Ramp(float(volume))
        if position is None:
            self.pan = Ramp(0.0 if pan is None else float(pan))
            self.position = Ramp(np.full(3, math.nan))
            self.half_volume_radius = Ramp(math.nan)
        else:
            self.pan = Ramp(math.nan)
            self.position = Ramp(np.asarray(position, dtype=float))
            self.half_volume_radius = Ramp(float(half_volume_radius))

    @property
    def is_3d(self) -> bool:
        return math.isnan(self.pan.value)

    def set_volume(self, new_volume: float, ramp: float = DEFAULT_RAMP) -> None:
        with self._lock:
            if not self.stopping:
                self.volume.set(new_volume, ramp)

    def set_pan(self, new_pan: float, ramp: float = DEFAULT_RAMP) -> None:
        """Change panning; ignored for samples in 3D mode."""
        if self.is_3d:
            return
        with self._lock:
            self.pan.set(new_pan, ramp)

    def set_position(self, new_position, ramp: float = DEFAULT_RAMP) -> None:
        """Change position; ignored for samples in 2D mode."""
        if not self.is_3d:
            return
        with self._lock:
            self.position.set(np.asarray(new_position, dtype=float), ramp)

    def set_half_volume_radius(self, new_radius: float, ramp: float = DEFAULT_RAMP) -> None:
        if not self.is_3d:
            return
        with self._lock:
            self.half_volume_radius.set(new_radius, ramp)

    def stop(self, ramp: float = DEFAULT_RAMP) -> None:
        """Fade out over ``ramp`` seconds, then drop from the mix."""
        with self._lock:
            if not (self.stopping or self.stopped):
                self.stopping = True
                self.volume.target = 0.0
                self.volume.ramp = ramp
            else:
                self.volume.ramp = min(self.volume.ramp, ramp)


class Listener:
    """Position and right-direction used to pan 3D samples."""

    def __init__(self, lock: Optional[threading.RLock] = None) -> None:
        self._lock = lock if lock is not None else threading.RLock()
        self.position = Ramp(np.zeros(3))
        self.right = Ramp(np.array([1.0, 0.0, 0.0]))

    def set_position_right(self, new_position, new_right, ramp: float = DEFAULT_RAMP) -> None:
        new_right = np.asarray(new_right, dtype=float)
        with self._lock:
            self.position.set(np.asarray(new_position, dtype=float), ramp)
            if not new_right.any():
                self.right.set(np.array([1.0, 0.0, 0.0]), ramp)
            else:
                self.right.set(new_right / np.linalg.norm(new_right), ramp)


def compute_pan_weights(pan: float) -> tuple[float, float]:
    """Equal-power (left, right) weights for ``pan`` in [-1, 1]."""
    pan = max(-1.0, min(1.0, pan))
    ang = 0.5 * _PI * (0.5 * (pan + 1.0))
    return math.cos(ang), math.sin(ang)


def compute_pan_from_listener_and_position(
    listener_position, listener_right, source_position, source_half_radius
) -> tuple[float, float]:
    """(left, right) weights for a source heard from the listener, with distance falloff."""
    to = np.asarray(source_position, dtype=float) - np.asarray(listener_position, dtype=float)
    distance = float(np.linalg.norm(to))
    if distance == 0.0:
        return math.sqrt(2.0), math.sqrt(2.0)
    amt = float(np.dot(listener_right, to)) / distance
    ang = 0.5 * _PI * (0.5 * (amt + 1.0))
    att = 1.0 / (1.0 + (distance / source_half_radius))
    return math.cos(ang) * att, math.sin(ang) * att


def step_value_ramp(ramp: Ramp) -> None:
    if ramp.ramp < RAMP_STEP:
        ramp.value = ramp.target
        ramp.ramp = 0.0
    else:
        ramp.value += (RAMP_STEP / ramp.ramp) * (ramp.target - ramp.value)
        ramp.ramp -= RAMP_STEP


def step_position_ramp(ramp: Ramp) -> None:
    if ramp.ramp < RAMP_STEP:
        ramp.value = _copy(ramp.target)
        ramp.ramp = 0.0
    else:
        t = RAMP_STEP / ramp.ramp
        ramp.value = ramp.value + (ramp.target - ramp.value) * t
        ramp.ramp -= RAMP_STEP


def step_direction_ramp(ramp: Ramp) -> None:
    """Rotate a unit vector toward its target along a great circle."""
    if ramp.ramp < RAMP_STEP:
        ramp.value = _copy(ramp.target)
        ramp.ramp = 0.0
        return
    value = np.asarray(ramp.value, dtype=float)
    target = np.asarray(ramp.target, dtype=float)
    norm = np.cross(value, target)
    if not norm.any():
        if target[0] <= target[1] and target[0] <= target[2]:
            norm = np.array([1.0, 0.0, 0.0])
        elif target[1] <= target[2]:
            norm = np.array([0.0, 1.0, 0.0])
        else:
            norm = np.array([0.0, 0.0, 1.0])
        norm = norm - target * float(np.dot(target, norm))
    norm = norm / np.linalg.norm(norm)
    perp = np.cross(norm, target)
    angle = math.acos(max(-1.0, min(1.0, float(np.dot(value, target)))))
    angle *= (ramp.ramp - RAMP_STEP) / ramp.ramp
    ramp.value = target * math.cos(angle) + perp * math.sin(angle)
    ramp.ramp -= RAMP_STEP


class Mixer:
    """Holds playing samples, global volume and the listener; mixes stereo blocks."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self.volume = Ramp(1.0)
        self.listener = Listener(self._lock)
        self.playing_samples: list[PlayingSample] = []

    def _start(self, playing: PlayingSample) -> PlayingSample:
        with self._lock:
            self.playing_samples.append(playing)
        return playing

    def play(self, sample: Sample, volume: float = 1.0, pan: float = 0.0) -> PlayingSample:
        return self._start(PlayingSample(sample, volume, pan=pan, lock=self._lock))

    def play_3d(self, sample: Sample, volume: float, position, half_volume_radius: float = math.inf) -> PlayingSample:
        return self._start(PlayingSample(
            sample, volume, position=position, half_volume_radius=half_volume_radius, lock=self._lock
        ))

    def loop(self, sample: Sample, volume: float = 1.0, pan: float = 0.0) -> PlayingSample:
        return self._start(PlayingSample(sample, volume, pan=pan, loop=True, lock=self._lock))

    def loop_3d(self, sample: Sample, volume: float, position, half_volume_radius: float = math.inf) -> PlayingSample:
        return self._start(PlayingSample(
            sample, volume, position=position, half_volume_radius=half_volume_radius,
            loop=True, lock=self._lock,
        ))

    def stop_all_samples(self) -> None:
        with self._lock:
            for playing in self.playing_samples:
                playing.stop()

    def set_volume(self, new_volume: float, ramp: float = DEFAULT_RAMP) -> None:
        with self._lock:
            self.volume.set(new_volume, ramp)

    def _pan_for(self, playing: PlayingSample, position, right) -> tuple[float, float]:
        if playing.is_3d:
            return compute_pan_from_listener_and_position(
                position, right, playing.position.value, playing.half_volume_radius.value
            )
        return compute_pan_weights(playing.pan.value)

    def mix(self) -> np.ndarray:
        """Produce the next ``MIX_SAMPLES`` x 2 block of stereo audio."""
        buffer = np.zeros((MIX_SAMPLES, 2), dtype=np.float32)
        with self._lock:
            listener = self.listener
            start_volume = self.volume.value
            start_position = np.array(listener.position.value, dtype=float)
            start_right = np.array(listener.right.value, dtype=float)

            step_value_ramp(self.volume)
            step_position_ramp(listener.position)
            step_direction_ramp(listener.right)

            end_volume = self.volume.value
            end_position = np.array(listener.position.value, dtype=float)
            end_right = np.array(listener.right.value, dtype=float)

            still_playing = []
            for playing in self.playing_samples:
                start_l, start_r = self._pan_for(playing, start_position, start_right)
                if playing.is_3d:
                    step_position_ramp(playing.position)
                    step_value_ramp(playing.half_volume_radius)
                else:
                    step_value_ramp(playing.pan)
                gain = start_volume * playing.volume.value
                start_l, start_r = start_l * gain, start_r * gain

                step_value_ramp(playing.volume)

                end_l, end_r = self._pan_for(playing, end_position, end_right)
                gain = end_volume * playing.volume.value
                end_l, end_r = end_l * gain, end_r * gain

                size = len(playing.data)
                if size > 0:
                    if playing.loop:
                        count = MIX_SAMPLES
                        indices = (playing.i + np.arange(count)) % size
                        playing.i = (playing.i + count) % size
                    else:
                        count = min(MIX_SAMPLES, size - playing.i)
                        indices = playing.i + np.arange(count)
                        playing.i += count
                    steps = np.arange(count)
                    values = playing.data[indices]
                    buffer[:count, 0] += (start_l + steps * ((end_l - start_l) / MIX_SAMPLES)) * values
                    buffer[:count, 1] += (start_r + steps * ((end_r - start_r) / MIX_SAMPLES)) * values

                if playing.i >= size or (playing.stopping and playing.volume.value == 0.0):
                    playing.stopped = True
                else:
                    still_playing.append(playing)
            self.playing_samples = still_playing
        return buffer