"""Hierarchical scenes of transforms with drawables, cameras and lights."""

from __future__ import annotations

import copy
import enum
import math
import sys
from dataclasses import dataclass, field, replace
from typing import BinaryIO, Callable, Optional

import numpy as np

from .chunks import read_chunk
from .geometry import (
    infinite_perspective,
    pad_to_mat4,
    quat_inverse,
    quat_to_mat3,
)

GL_TRIANGLES = 0x0004
GL_TEXTURE_2D = 0x0DE1
NO_LOCATION = 0xFFFFFFFF

_HIERARCHY_FORMAT = "<3I3f4f3f"
_MESH_FORMAT = "<3I"
_CAMERA_FORMAT = "<I4s3f"
_LIGHT_FORMAT = "<Ic3B3f"

_PI = 3.1415926


class SceneFormatError(ValueError):
    """Raised when a scene file is malformed."""


def _array(values) -> np.ndarray:
    return np.array(values, dtype=float)


@dataclass(eq=False)
class Transform:
    """A position, rotation and scale, optionally relative to a parent."""

    name: str = ""
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    rotation: np.ndarray = field(default_factory=lambda: np.array([1.0, 0.0, 0.0, 0.0]))
    scale: np.ndarray = field(default_factory=lambda: np.ones(3))
    parent: Optional["Transform"] = None

    def __post_init__(self) -> None:
        self.position = _array(self.position)
        self.rotation = _array(self.rotation)
        self.scale = _array(self.scale)

    def make_local_to_parent(self) -> np.ndarray:
        """3x4 matrix: translate * rotate * scale."""
        rot = quat_to_mat3(self.rotation) * self.scale[np.newaxis, :]
        return np.hstack([rot, self.position.reshape(3, 1)])

    def make_parent_to_local(self) -> np.ndarray:
        """3x4 inverse of :meth:`make_local_to_parent` (degenerate if scale is zero)."""
        inv_scale = np.array([0.0 if s == 0.0 else 1.0 / s for s in self.scale])
        inv_rot = quat_to_mat3(quat_inverse(self.rotation)) * inv_scale[:, np.newaxis]
        return np.hstack([inv_rot, (inv_rot @ -self.position).reshape(3, 1)])

    def make_local_to_world(self) -> np.ndarray:
        if self.parent is None:
            return self.make_local_to_parent()
        return self.parent.make_local_to_world() @ pad_to_mat4(self.make_local_to_parent())

    def make_world_to_local(self) -> np.ndarray:
        if self.parent is None:
            return self.make_parent_to_local()
        return self.make_parent_to_local() @ pad_to_mat4(self.parent.make_world_to_local())


@dataclass
class TextureInfo:
    texture: int = 0
    target: int = GL_TEXTURE_2D


@dataclass
class Pipeline:
    """Everything needed to hand a drawable to the renderer."""

    TEXTURE_COUNT = 4

    program: int = 0
    vao: int = 0
    type: int = GL_TRIANGLES
    start: int = 0
    count: int = 0
    object_to_clip_mat4: int = NO_LOCATION
    object_to_light_mat4x3: int = NO_LOCATION
    normal_to_light_mat3: int = NO_LOCATION
    set_uniforms: Optional[Callable[[], None]] = None
    textures: list = field(default_factory=lambda: [TextureInfo() for _ in range(Pipeline.TEXTURE_COUNT)])


@dataclass(eq=False)
class Drawable:
    transform: Transform
    pipeline: Pipeline = field(default_factory=Pipeline)


@dataclass(eq=False)
class Camera:
    """Perspective camera looking along its transform's -z axis."""

    transform: Transform
    fovy: float = math.radians(60.0)
    aspect: float = 1.0
    near: float = 0.01

    def make_projection(self) -> np.ndarray:
        return infinite_perspective(self.fovy, self.aspect, self.near)


class LightType(enum.Enum):
    POINT = "p"
    HEMISPHERE = "h"
    SPOT = "s"
    DIRECTIONAL = "d"


@dataclass(eq=False)
class Light:
    transform: Transform
    type: LightType = LightType.POINT
    energy: np.ndarray = field(default_factory=lambda: np.ones(3))
    spot_fov: float = math.radians(45.0)


OnDrawable = Callable[["Scene", Transform, str], None]


@dataclass(eq=False)
class Scene:
    """Transforms plus the drawables, cameras and lights attached to them."""

    transforms: list = field(default_factory=list)
    drawables: list = field(default_factory=list)
    cameras: list = field(default_factory=list)
    lights: list = field(default_factory=list)

    @classmethod
    def from_file(cls, filename, on_drawable: Optional[OnDrawable] = None) -> "Scene":
        scene = cls()
        scene.load(filename, on_drawable)
        return scene

    def load(self, filename, on_drawable: Optional[OnDrawable] = None) -> None:
        """Add the contents of a scene file; ``on_drawable`` is called for each mesh."""
        with open(filename, "rb") as stream:
            names = read_chunk(stream, "str0")
            hierarchy = read_chunk(stream, "xfh0", _HIERARCHY_FORMAT)
            meshes = read_chunk(stream, "msh0", _MESH_FORMAT)
            loaded_cameras = read_chunk(stream, "cam0", _CAMERA_FORMAT)
            loaded_lights = read_chunk(stream, "lmp0", _LIGHT_FORMAT)

            def name_at(begin: int, end: int) -> str | None:
                if begin <= end <= len(names):
                    return names[begin:end].decode("utf-8", errors="replace")
                return None

            created: list[Transform] = []
            for entry in hierarchy:
                parent, name_begin, name_end = entry[0:3]
                px, py, pz, qx, qy, qz, qw, sx, sy, sz = entry[3:]
                transform = Transform()
                self.transforms.append(transform)
                if parent != NO_LOCATION:
                    if parent >= len(created):
                        raise SceneFormatError(
                            f"scene file '{filename}' did not contain transforms in topological-sort order."
                        )
                    transform.parent = created[parent]
                name = name_at(name_begin, name_end)
                if name is None:
                    raise SceneFormatError(
                        f"scene file '{filename}' contains hierarchy entry with invalid name indices"
                    )
                transform.name = name
                transform.position = _array([px, py, pz])
                transform.rotation = _array([qw, qx, qy, qz])
                transform.scale = _array([sx, sy, sz])
                created.append(transform)

            for index, name_begin, name_end in meshes:
                if index >= len(created):
                    raise SceneFormatError(
                        f"scene file '{filename}' contains mesh entry with invalid transform index ({index})"
                    )
                name = name_at(name_begin, name_end)
                if name is None:
                    raise SceneFormatError(
                        f"scene file '{filename}' contains mesh entry with invalid name indices"
                    )
                if on_drawable is not None:
                    on_drawable(self, created[index], name)

            for index, kind, data, clip_near, _clip_far in loaded_cameras:
                if index >= len(created):
                    raise SceneFormatError(
                        f"scene file '{filename}' contains camera entry with invalid transform index ({index})"
                    )
                kind_text = kind.decode("latin-1")
                if kind_text != "pers":
                    print(f"Ignoring non-perspective camera ({kind_text}) stored in file.")
                    continue
                # Far plane is ignored: cameras use infinite perspective.
                self.cameras.append(
                    Camera(created[index], fovy=data / 180.0 * _PI, near=clip_near)
                )

            for index, kind, r, g, b, energy, _distance, fov in loaded_lights:
                if index >= len(created):
                    raise SceneFormatError(
                        f"scene file '{filename}' contains lamp entry with invalid transform index ({index})"
                    )
                kind_text = kind.decode("latin-1")
                try:
                    light_type = LightType(kind_text)
                except ValueError:
                    print(f"Ignoring unrecognized lamp type ({kind_text}) stored in file.")
                    continue
                self.lights.append(Light(
                    created[index],
                    type=light_type,
                    energy=_array([r, g, b]) / 255.0 * energy,
                    spot_fov=fov / 180.0 * _PI,
                ))

            self.load_extra(stream, names, created)

            if stream.read(1):
                print(f"WARNING: trailing data in scene file '{filename}'", file=sys.stderr)

    def load_extra(self, stream: BinaryIO, names: bytes, transforms: list) -> None:
        """Hook for subclasses to read further chunks after the standard ones."""

    def set(self, other: "Scene") -> dict:
        """Make this scene a deep copy of ``other``; return the old-to-new transform map."""
        source_transforms = list(other.transforms)
        source_drawables = list(other.drawables)
        source_cameras = list(other.cameras)
        source_lights = list(other.lights)

        mapping: dict = {None: None}
        self.transforms = []
        for t in source_transforms:
            new = Transform(
                name=t.name,
                position=t.position.copy(),
                rotation=t.rotation.copy(),
                scale=t.scale.copy(),
                parent=t.parent,
            )
            self.transforms.append(new)
            mapping[t] = new
        for t in self.transforms:
            t.parent = mapping[t.parent]

        self.drawables = [
            replace(d, transform=mapping[d.transform], pipeline=copy.deepcopy(d.pipeline))
            for d in source_drawables
        ]
        self.cameras = [replace(c, transform=mapping[c.transform]) for c in source_cameras]
        self.lights = [
            replace(light, transform=mapping[light.transform], energy=light.energy.copy())
            for light in source_lights
        ]
        del mapping[None]
        return mapping

    def copy(self) -> "Scene":
        duplicate = type(self)()
        duplicate.set(self)
        return duplicate

    def find_transform(self, name: str) -> Transform:
        """The transform named ``name`` (the last one, if several share it)."""
        found = None
        for transform in self.transforms:
            if transform.name == name:
                found = transform
        if found is None:
            raise KeyError(f"{name} not found.")
        return found