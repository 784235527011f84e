"""Tests for rotation and sampling primitives."""

import numpy as np
import pytest

from skellymesh.data.image_level import ImageLevel
from skellymesh.geometry import (
    angle_axis_rotate_point,
    angle_axis_rotate_point_jacobians,
    angle_axis_to_rotation_matrix,
    sample_with_derivative,
)


class TestAngleAxisRotation:
    """Test axis-angle rotation helpers."""

    def test_zero_rotation_is_identity(self) -> None:
        """Zero axis-angle should leave the point unchanged."""
        point = np.array([1.0, -2.0, 3.0])

        rotated = angle_axis_rotate_point(angle_axis=np.zeros(3), point=point)

        assert np.allclose(rotated, point)

    def test_quarter_turn_about_z(self) -> None:
        """90 degrees about z should map x onto y."""
        rotated = angle_axis_rotate_point(
            angle_axis=np.array([0.0, 0.0, np.pi / 2]),
            point=np.array([1.0, 0.0, 0.0])
        )

        assert np.allclose(rotated, [0.0, 1.0, 0.0])

    def test_rotation_matrix_is_orthonormal(self) -> None:
        """Rotation matrix should be orthonormal with det 1."""
        R = angle_axis_to_rotation_matrix(angle_axis=np.array([0.3, -0.2, 0.5]))

        assert np.allclose(R @ R.T, np.eye(3))
        assert np.isclose(np.linalg.det(R), 1.0)

    @pytest.mark.parametrize("angle_axis", [
        np.array([0.0, 0.0, 0.0]),
        np.array([1e-10, 0.0, 0.0]),
        np.array([0.3, -0.2, 0.5]),
        np.array([2.0, 1.0, -1.5]),
    ])
    def test_jacobian_matches_finite_differences(self, angle_axis: np.ndarray) -> None:
        """Analytic jacobian should match central differences."""
        point = np.array([0.4, -1.2, 2.0])
        eps = 1e-6

        d_angle_axis, d_point = angle_axis_rotate_point_jacobians(
            angle_axis=angle_axis,
            point=point
        )

        numeric = np.zeros((3, 3))
        for i in range(3):
            step = np.zeros(3)
            step[i] = eps
            plus = angle_axis_rotate_point(angle_axis=angle_axis + step, point=point)
            minus = angle_axis_rotate_point(angle_axis=angle_axis - step, point=point)
            numeric[:, i] = (plus - minus) / (2 * eps)

        assert np.allclose(d_angle_axis, numeric, atol=1e-6)
        assert np.allclose(d_point, angle_axis_to_rotation_matrix(angle_axis=angle_axis))


class TestSampleWithDerivative:
    """Test bilinear sampling."""

    def test_exact_on_linear_ramp(self, ramp_frame: ImageLevel) -> None:
        """Bilinear sampling of x + 2y should be exact between pixels."""
        value, dx, dy = sample_with_derivative(
            image=ramp_frame.gray_image,
            grad_x=ramp_frame.grad_x_image,
            grad_y=ramp_frame.grad_y_image,
            x=3.5,
            y=2.25
        )

        assert np.isclose(value, 3.5 + 2 * 2.25)
        assert np.isclose(dx, 1.0)
        assert np.isclose(dy, 2.0)

    def test_integer_coordinates_hit_pixels(self, ramp_frame: ImageLevel) -> None:
        """Integer coordinates should return the pixel value."""
        value, _, _ = sample_with_derivative(
            image=ramp_frame.gray_image,
            grad_x=ramp_frame.grad_x_image,
            grad_y=ramp_frame.grad_y_image,
            x=10.0,
            y=7.0
        )

        assert np.isclose(value, ramp_frame.gray_image[7, 10])

    def test_clamps_to_border(self, ramp_frame: ImageLevel) -> None:
        """Coordinates past the border should clamp."""
        value, _, _ = sample_with_derivative(
            image=ramp_frame.gray_image,
            grad_x=ramp_frame.grad_x_image,
            grad_y=ramp_frame.grad_y_image,
            x=-5.0,
            y=1000.0
        )

        assert np.isclose(value, ramp_frame.gray_image[-1, 0])

    def test_last_column_fraction(self, ramp_frame: ImageLevel) -> None:
        """Fractional coordinates in the last column should not index past the edge."""
        x = ramp_frame.width - 0.5

        value, _, _ = sample_with_derivative(
            image=ramp_frame.gray_image,
            grad_x=ramp_frame.grad_x_image,
            grad_y=ramp_frame.grad_y_image,
            x=x,
            y=0.0
        )

        assert np.isclose(value, ramp_frame.gray_image[0, -1])

    def test_multichannel(self, ramp_frame: ImageLevel) -> None:
        """Color images should sample per channel."""
        value, dx, dy = sample_with_derivative(
            image=ramp_frame.color_image,
            grad_x=ramp_frame.color_grad_x_image,
            grad_y=ramp_frame.color_grad_y_image,
            x=4.5,
            y=6.5
        )

        assert value.shape == (3,)
        assert np.allclose(value, [4.5, 6.5, 11.0])
        assert np.allclose(dx, [1.0, 0.0, 1.0])
        assert np.allclose(dy, [0.0, 1.0, 1.0])
