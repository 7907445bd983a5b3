"""Small vector, quaternion and matrix helpers built on numpy.

Quaternions are arrays in (w, x, y, z) order.  Affine transforms are
3x4 arrays (three rows, four columns: three basis columns and a
translation column).
"""

from __future__ import annotations

import math

import numpy as np

IDENTITY_QUAT = np.array([1.0, 0.0, 0.0, 0.0])


def _vec(values) -> np.ndarray:
    return np.asarray(values, dtype=float)


def angle_axis(angle, axis) -> np.ndarray:
    """Quaternion rotating by ``angle`` radians about ``axis`` (not normalised)."""
    axis = _vec(axis)
    half = angle * 0.5
    s = math.sin(half)
    return np.array([math.cos(half), axis[0] * s, axis[1] * s, axis[2] * s])


def quat_multiply(a, b) -> np.ndarray:
    """Hamilton product ``a * b``."""
    aw, ax, ay, az = _vec(a)
    bw, bx, by, bz = _vec(b)
    return np.array([
        aw * bw - ax * bx - ay * by - az * bz,
        aw * bx + ax * bw + ay * bz - az * by,
        aw * by - ax * bz + ay * bw + az * bx,
        aw * bz + ax * by - ay * bx + az * bw,
    ])


def quat_normalize(q) -> np.ndarray:
    """Unit-length copy of ``q``; the identity if ``q`` has zero length."""
    q = _vec(q)
    length = float(np.linalg.norm(q))
    if length <= 0.0:
        return IDENTITY_QUAT.copy()
    return q / length


def quat_inverse(q) -> np.ndarray:
    """Multiplicative inverse of ``q``."""
    q = _vec(q)
    norm2 = float(np.dot(q, q))
    if norm2 == 0.0:
        raise ValueError("cannot invert a zero quaternion")
    return np.array([q[0], -q[1], -q[2], -q[3]]) / norm2


def quat_to_mat3(q) -> np.ndarray:
    """3x3 rotation matrix of ``q``."""
    w, x, y, z = _vec(q)
    xx, yy, zz = x * x, y * y, z * z
    xy, xz, yz = x * y, x * z, y * z
    wx, wy, wz = w * x, w * y, w * z
    return np.array([
        [1.0 - 2.0 * (yy + zz), 2.0 * (xy - wz), 2.0 * (xz + wy)],
        [2.0 * (xy + wz), 1.0 - 2.0 * (xx + zz), 2.0 * (yz - wx)],
        [2.0 * (xz - wy), 2.0 * (yz + wx), 1.0 - 2.0 * (xx + yy)],
    ])


def quat_rotate(q, v) -> np.ndarray:
    """Rotate vector ``v`` by unit quaternion ``q``."""
    q = _vec(q)
    v = _vec(v)
    u = q[1:]
    uv = np.cross(u, v)
    uuv = np.cross(u, uv)
    return v + 2.0 * (uv * q[0] + uuv)


def pad_to_mat4(m) -> np.ndarray:
    """Extend a 3x4 or 3x3 matrix to 4x4 with a (0, 0, 0, 1) bottom row."""
    m = _vec(m)
    out = np.eye(4)
    if m.shape == (4, 4):
        return m.copy()
    if m.shape == (3, 4):
        out[:3, :] = m
    elif m.shape == (3, 3):
        out[:3, :3] = m
    else:
        raise ValueError(f"cannot pad matrix of shape {m.shape} to 4x4")
    return out


def infinite_perspective(fovy, aspect, near) -> np.ndarray:
    """Perspective projection with the far plane at infinity."""
    extent = math.tan(fovy / 2.0) * near
    left, right = -extent * aspect, extent * aspect
    bottom, top = -extent, extent
    m = np.zeros((4, 4))
    m[0, 0] = (2.0 * near) / (right - left)
    m[1, 1] = (2.0 * near) / (top - bottom)
    m[2, 2] = -1.0
    m[3, 2] = -1.0
    m[2, 3] = -2.0 * near
    return m