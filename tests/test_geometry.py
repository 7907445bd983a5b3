import math

import numpy as np
import pytest

from neonchase.geometry import (
    angle_axis,
    infinite_perspective,
    pad_to_mat4,
    quat_inverse,
    quat_multiply,
    quat_normalize,
    quat_rotate,
    quat_to_mat3,
)


def test_angle_axis_rotates_x_to_y():
    q = angle_axis(math.pi / 2, [0, 0, 1])
    assert np.allclose(quat_rotate(q, [1, 0, 0]), [0, 1, 0])


def test_quat_to_mat3_agrees_with_rotate():
    q = quat_normalize(angle_axis(0.7, [1, 2, 3]))
    v = np.array([0.3, -1.2, 2.5])
    assert np.allclose(quat_to_mat3(q) @ v, quat_rotate(q, v))


def test_identity_quaternion_gives_identity_matrix():
    assert np.allclose(quat_to_mat3([1, 0, 0, 0]), np.eye(3))


def test_inverse_times_quat_is_identity():
    q = np.array([0.5, 1.0, -2.0, 0.25])
    assert np.allclose(quat_multiply(q, quat_inverse(q)), [1, 0, 0, 0])


def test_inverse_of_zero_raises():
    with pytest.raises(ValueError):
        quat_inverse([0, 0, 0, 0])


def test_normalize_unit_length_and_zero_case():
    assert np.isclose(np.linalg.norm(quat_normalize([3, 4, 0, 0])), 1.0)
    assert np.allclose(quat_normalize([0, 0, 0, 0]), [1, 0, 0, 0])


def test_multiply_composes_rotations():
    a = angle_axis(0.4, [0, 0, 1])
    b = angle_axis(-1.1, [1, 0, 0])
    v = np.array([1.0, 2.0, 3.0])
    combined = quat_rotate(quat_multiply(a, b), v)
    assert np.allclose(combined, quat_rotate(a, quat_rotate(b, v)))


def test_pad_to_mat4_adds_bottom_row():
    m = np.arange(12, dtype=float).reshape(3, 4)
    padded = pad_to_mat4(m)
    assert padded.shape == (4, 4)
    assert np.allclose(padded[3], [0, 0, 0, 1])
    assert np.allclose(padded[:3], m)


def test_pad_to_mat4_rejects_bad_shape():
    with pytest.raises(ValueError):
        pad_to_mat4(np.zeros((2, 2)))


def test_infinite_perspective_maps_near_plane_to_minus_one_depth():
    near = 0.5
    proj = infinite_perspective(math.radians(60), 1.5, near)
    clip = proj @ np.array([0.0, 0.0, -near, 1.0])
    assert np.isclose(clip[2] / clip[3], -1.0)
    far = proj @ np.array([0.0, 0.0, -1e9, 1.0])
    assert far[2] / far[3] == pytest.approx(1.0, abs=1e-6)


def test_infinite_perspective_aspect_ratio():
    proj = infinite_perspective(1.0, 2.0, 0.1)
    assert np.isclose(proj[1, 1], 2.0 * proj[0, 0])