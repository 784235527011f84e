"""Axis-angle rotation helpers.

Rotations are 3-vectors whose direction is the rotation axis and whose
norm is the angle in radians (same convention as ceres AngleAxis and
scipy rotvec).
"""

import numpy as np
from scipy.spatial.transform import Rotation

_SMALL_ANGLE = 1e-8


def _skew(*, v: np.ndarray) -> np.ndarray:
    """Cross-product matrix [v]x."""
    return np.array([
        [0.0, -v[2], v[1]],
        [v[2], 0.0, -v[0]],
        [-v[1], v[0], 0.0],
    ])


def angle_axis_to_rotation_matrix(*, angle_axis: np.ndarray) -> np.ndarray:
    """Convert axis-angle vector to (3, 3) rotation matrix.

    Args:
        angle_axis: (3,) axis-angle vector

    Returns:
        (3, 3) rotation matrix
    """
    return Rotation.from_rotvec(np.asarray(angle_axis, dtype=np.float64)).as_matrix()


def angle_axis_rotate_point(
    *,
    angle_axis: np.ndarray,
    point: np.ndarray
) -> np.ndarray:
    """Rotate a 3D point by an axis-angle rotation.

    Args:
        angle_axis: (3,) axis-angle vector
        point: (3,) point

    Returns:
        (3,) rotated point
    """
    return angle_axis_to_rotation_matrix(angle_axis=angle_axis) @ np.asarray(point, dtype=np.float64)


def angle_axis_rotate_point_jacobians(
    *,
    angle_axis: np.ndarray,
    point: np.ndarray
) -> tuple[np.ndarray, np.ndarray]:
    """Jacobians of R(angle_axis) @ point.

    Uses the SO(3) right jacobian:
        d(R x)/d(angle_axis) = -R [x]x J_r(angle_axis)

    Args:
        angle_axis: (3,) axis-angle vector
        point: (3,) point

    Returns:
        Tuple of (d_rotated/d_angle_axis, d_rotated/d_point), both (3, 3)
    """
    angle_axis = np.asarray(angle_axis, dtype=np.float64)
    point = np.asarray(point, dtype=np.float64)

    R = angle_axis_to_rotation_matrix(angle_axis=angle_axis)
    theta = np.linalg.norm(angle_axis)
    K = _skew(v=angle_axis)

    if theta < _SMALL_ANGLE:
        J_r = np.eye(3) - 0.5 * K
    else:
        J_r = (
            np.eye(3)
            - ((1.0 - np.cos(theta)) / theta ** 2) * K
            + ((theta - np.sin(theta)) / theta ** 3) * (K @ K)
        )

    d_angle_axis = -R @ _skew(v=point) @ J_r

    return d_angle_axis, R
