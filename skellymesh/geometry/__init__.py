"""Geometric primitives shared by the cost functions."""

from .rotation import (
    angle_axis_rotate_point,
    angle_axis_rotate_point_jacobians,
    angle_axis_to_rotation_matrix,
)
from .sampling import sample_with_derivative

__all__ = [
    "angle_axis_rotate_point",
    "angle_axis_rotate_point_jacobians",
    "angle_axis_to_rotation_matrix",
    "sample_with_derivative",
]
