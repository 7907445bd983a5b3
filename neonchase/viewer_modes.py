"""Viewer modes for inspecting mesh collections and scene hierarchies.

Both modes use a z-up, trackball-style orbiting camera: drag to tumble,
shift-drag to pan and the mouse wheel to dolly.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Mapping, Optional

import numpy as np

from .geometry import angle_axis, quat_multiply, quat_rotate, quat_to_mat3
from .play_mode import BUTTON_LEFT, Key, KeyDown, MouseButtonDown, MouseMotion, MouseWheel
from .scene import GL_TRIANGLES, Camera, Drawable, Pipeline, Scene, Transform

_PI = 3.1415926
MIN_RADIUS = 1e-1
MAX_RADIUS = 1e6


def _round_half_away(value: float) -> float:
    return math.copysign(math.floor(abs(value) + 0.5), value)


def _wrap_angle(angle: float) -> float:
    """Wrap ``angle`` into [-pi, pi]."""
    turns = angle / (2.0 * _PI)
    turns -= _round_half_away(turns)
    return turns * 2.0 * _PI


@dataclass
class OrbitCamera:
    """Camera orbiting ``target`` at ``radius``; angles in radians."""

    radius: float = 2.0
    azimuth: float = 0.3
    elevation: float = 0.2
    target: np.ndarray = field(default_factory=lambda: np.zeros(3))
    flip_x: bool = False

    def __post_init__(self) -> None:
        self.target = np.array(self.target, dtype=float)

    def handle_event(self, event, window_size, camera_rotation) -> bool:
        """Apply a mouse event; ``camera_rotation`` orients panning. Returns whether it was used."""
        if isinstance(event, MouseButtonDown):
            if event.button == BUTTON_LEFT:
                # Reverse azimuth drags when the camera starts upside-down.
                self.flip_x = abs(self.elevation) > 0.5 * _PI
                return True
            return False
        if isinstance(event, MouseMotion):
            if not event.left_button:
                return False
            width, height = float(window_size[0]), float(window_size[1])
            delta_x = event.xrel / width * 2.0 * (height / width)
            delta_y = event.yrel / height * -2.0
            if event.shift:
                frame = quat_to_mat3(camera_rotation)
                self.target = self.target - (
                    frame[:, 0] * (delta_x * self.radius) + frame[:, 1] * (delta_y * self.radius)
                )
            else:
                self.azimuth -= 3.0 * delta_x * (-1.0 if self.flip_x else 1.0)
                self.elevation -= 3.0 * delta_y
                self.azimuth = _wrap_angle(self.azimuth)
                self.elevation = _wrap_angle(self.elevation)
            return True
        if isinstance(event, MouseWheel):
            self.radius *= 0.5 ** (0.1 * event.y)
            self.radius = min(MAX_RADIUS, max(MIN_RADIUS, self.radius))
            return True
        return False

    def apply(self, camera: Camera, drawable_size) -> None:
        """Place ``camera`` on the orbit and set its aspect ratio."""
        rotation = quat_multiply(
            angle_axis(self.azimuth, (0.0, 0.0, 1.0)),
            angle_axis(0.5 * _PI - self.elevation, (1.0, 0.0, 0.0)),
        )
        transform = camera.transform
        transform.rotation = rotation
        transform.position = self.target + self.radius * quat_rotate(rotation, (0.0, 0.0, 1.0))
        transform.scale = np.ones(3)
        camera.aspect = float(drawable_size[0]) / float(drawable_size[1])


@dataclass
class MeshInfo:
    """Where a named mesh lives in a vertex buffer, with its bounding box."""

    type: int = GL_TRIANGLES
    start: int = 0
    count: int = 0
    min: np.ndarray = field(default_factory=lambda: np.zeros(3))
    max: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self) -> None:
        self.min = np.array(self.min, dtype=float)
        self.max = np.array(self.max, dtype=float)


def _make_viewer_camera(scene: Scene) -> Camera:
    transform = Transform()
    scene.transforms.append(transform)
    camera = Camera(transform, fovy=60.0 / 180.0 * _PI, near=0.01)
    scene.cameras.append(camera)
    return camera


class ShowMeshesMode:
    """Steps through the meshes of a buffer, one at a time, in name order."""

    def __init__(self, meshes: Mapping[str, MeshInfo], vao: int = 0,
                 pipeline: Optional[Pipeline] = None) -> None:
        self.meshes = dict(meshes)
        self._names = sorted(self.meshes)
        self.camera = OrbitCamera()
        self.vao = vao

        self.scene = Scene()
        self.scene_camera = _make_viewer_camera(self.scene)

        transform = Transform()
        self.scene.transforms.append(transform)
        base = pipeline if pipeline is not None else Pipeline()
        drawable_pipeline = Pipeline(
            program=base.program,
            vao=vao,
            object_to_clip_mat4=base.object_to_clip_mat4,
            object_to_light_mat4x3=base.object_to_light_mat4x3,
            normal_to_light_mat3=base.normal_to_light_mat3,
            set_uniforms=base.set_uniforms,
        )
        self.scene_drawable = Drawable(transform, drawable_pipeline)
        self.scene.drawables.append(self.scene_drawable)

        self.current_mesh_name = ""
        self.current_mesh_min = np.zeros(3)
        self.current_mesh_max = np.zeros(3)
        self.select_prev_mesh()

    def _select(self, name: Optional[str]) -> None:
        pipeline = self.scene_drawable.pipeline
        if name is None:
            self.current_mesh_name = ""
            pipeline.type, pipeline.start, pipeline.count = GL_TRIANGLES, 0, 0
            self.current_mesh_min = np.zeros(3)
            self.current_mesh_max = np.zeros(3)
            return
        mesh = self.meshes[name]
        self.current_mesh_name = name
        pipeline.type, pipeline.start, pipeline.count = mesh.type, mesh.start, mesh.count
        self.current_mesh_min = mesh.min.copy()
        self.current_mesh_max = mesh.max.copy()

    def select_prev_mesh(self) -> None:
        """Select the previous mesh; stays on the first, or picks it if none is selected."""
        if not self._names:
            self._select(None)
            return
        if self.current_mesh_name in self.meshes:
            index = self._names.index(self.current_mesh_name)
            self._select(self._names[max(0, index - 1)])
        else:
            self._select(self._names[0])

    def select_next_mesh(self) -> None:
        """Select the next mesh; stays on the last, or picks it if none is selected."""
        if not self._names:
            self._select(None)
            return
        if self.current_mesh_name in self.meshes:
            index = self._names.index(self.current_mesh_name)
            self._select(self._names[min(len(self._names) - 1, index + 1)])
        else:
            self._select(self._names[-1])

    def handle_event(self, event, window_size) -> bool:
        if isinstance(event, KeyDown):
            if event.key is Key.RIGHT:
                self.select_next_mesh()
                return True
            if event.key is Key.LEFT:
                self.select_prev_mesh()
                return True
        return self.camera.handle_event(event, window_size, self.scene_camera.transform.rotation)

    def update_camera(self, drawable_size) -> None:
        self.camera.apply(self.scene_camera, drawable_size)


class ShowSceneMode:
    """Views a scene through an orbiting camera kept in a separate scene."""

    def __init__(self, scene: Scene) -> None:
        self.scene = scene
        self.camera = OrbitCamera()
        self.camera_scene = Scene()
        self.scene_camera = _make_viewer_camera(self.camera_scene)

    def handle_event(self, event, window_size) -> bool:
        return self.camera.handle_event(event, window_size, self.scene_camera.transform.rotation)

    def update_camera(self, drawable_size) -> None:
        self.camera.apply(self.scene_camera, drawable_size)