"""Image projection data terms.

A single cost covers every way a mesh vertex is compared against a
frame: gray intensity, RGB color, depth point-to-point and depth
point-to-plane. For a different pyramid level, pass the camera and
image level of that level; they must describe the same resolution.

Cost Functions:
- ImageProjectionCost: Project a transformed vertex and compare with the image
"""

from enum import IntEnum

import numpy as np

from skellymesh.data.camera import CameraInfo
from skellymesh.data.image_level import ImageLevel
from skellymesh.geometry.rotation import angle_axis_rotate_point_jacobians
from skellymesh.geometry.sampling import sample_with_derivative
from .base_cost import BaseCostFunction, borrow


class DataTermErrorType(IntEnum):
    """What the projected vertex is compared against."""

    INTENSITY = 0
    COLOR = 1
    DEPTH = 2
    DEPTH_PLANE = 3


DATA_TERM_RESIDUAL_COUNTS: dict[DataTermErrorType, int] = {
    DataTermErrorType.INTENSITY: 1,
    DataTermErrorType.COLOR: 3,
    DataTermErrorType.DEPTH: 3,
    DataTermErrorType.DEPTH_PLANE: 1,
}

_REQUIRED_IMAGES: dict[DataTermErrorType, tuple[str, ...]] = {
    DataTermErrorType.INTENSITY: ("gray_image",),
    DataTermErrorType.COLOR: ("color_image",),
    DataTermErrorType.DEPTH: ("depth_image",),
    DataTermErrorType.DEPTH_PLANE: ("depth_image", "depth_normal_image"),
}

_VALUE_SIZES: dict[DataTermErrorType, int] = {
    DataTermErrorType.INTENSITY: 1,
    DataTermErrorType.COLOR: 3,
}


class ImageProjectionCost(BaseCostFunction):
    """Photometric / depth alignment of a projected vertex.

    Model:
        p = rotate(rotation, xyz) + translation
        (u, v) = project(p, camera)
        residual = compare(sample(frame, u, v), template)

    Residual size depends on the error type (see DATA_TERM_RESIDUAL_COUNTS).
    A vertex projecting outside [0, width) x [0, height) contributes
    an all-zero residual and zero jacobians.

    Depth variants sample at the projection of p but compare against the
    untransformed vertex xyz:
        DEPTH (perspective): e = D(u, v) - xyz_z,
            residual = [e * (invKK00 u + invKK02), e * (invKK11 v + invKK12), e]
        DEPTH (orthographic): residual = weight * [e, 0, 0]
        DEPTH_PLANE: bp = back_project(u, v, D(u, v)),
            residual = n(u, v) . (xyz - bp)

    Perspective DEPTH and DEPTH_PLANE residuals are not scaled by weight.

    Parameters:
        - rotation (3): axis-angle
        - translation (3)
        - xyz (3): vertex position
    """

    def __init__(
        self,
        *,
        weight: float,
        camera: CameraInfo,
        frame: ImageLevel,
        error_type: DataTermErrorType = DataTermErrorType.INTENSITY,
        value: np.ndarray | float | None = None
    ) -> None:
        """Initialize image projection cost.

        Args:
            weight: Weight for this data term (not applied to perspective
                DEPTH or to DEPTH_PLANE)
            camera: Camera of the pyramid level (borrowed)
            frame: Images of the pyramid level (borrowed)
            error_type: Which comparison to make
            value: Template intensity (1) or color (3), borrowed.
                Unused for depth error types.

        Raises:
            ValueError: If camera and images disagree in size, the
                template value has the wrong size, or a required image
                is missing
        """
        error_type = DataTermErrorType(error_type)
        unweighted = error_type == DataTermErrorType.DEPTH_PLANE or (
            error_type == DataTermErrorType.DEPTH and not camera.is_ortho_camera
        )
        super().__init__(weight=1.0 if unweighted else weight)
        self.camera = camera
        self.frame = frame
        self.error_type = error_type

        if value is None:
            if camera.width != frame.width or camera.height != frame.height:
                raise ValueError(
                    f"Camera size {camera.width}x{camera.height} does not match "
                    f"image size {frame.width}x{frame.height}"
                )
            self.value = None
        else:
            self.value = borrow(np.atleast_1d(value))

        expected_size = _VALUE_SIZES.get(self.error_type)
        if expected_size is not None:
            if self.value is None:
                raise ValueError(f"{self.error_type.name} data term needs a template value")
            if self.value.shape != (expected_size,):
                raise ValueError(
                    f"{self.error_type.name} template value must have {expected_size} "
                    f"elements, got shape {self.value.shape}"
                )

        for image_name in _REQUIRED_IMAGES[self.error_type]:
            if getattr(frame, image_name) is None:
                raise ValueError(f"{self.error_type.name} data term needs frame.{image_name}")

        self.set_num_residuals(self.residual_count)
        self.set_parameter_block_sizes([3, 3, 3])

    @property
    def residual_count(self) -> int:
        """Residual size for this error type."""
        return DATA_TERM_RESIDUAL_COUNTS[self.error_type]

    def _project(
        self,
        *,
        point: np.ndarray
    ) -> tuple[float, float, np.ndarray] | None:
        """Project a camera-frame point to image coordinates.

        Args:
            point: (3,) point in camera frame

        Returns:
            (u, v, d_uv/d_point) or None if the point cannot be projected
        """
        if self.camera.is_ortho_camera:
            d_uv = np.array([
                [1.0, 0.0, 0.0],
                [0.0, 1.0, 0.0],
            ])
            return float(point[0]), float(point[1]), d_uv

        z = float(point[2])
        if z == 0.0:
            return None

        fx = self.camera.KK[0, 0]
        fy = self.camera.KK[1, 1]
        u = point[0] * fx / z + self.camera.KK[0, 2]
        v = point[1] * fy / z + self.camera.KK[1, 2]
        d_uv = np.array([
            [fx / z, 0.0, -fx * point[0] / z ** 2],
            [0.0, fy / z, -fy * point[1] / z ** 2],
        ])
        return float(u), float(v), d_uv

    def _back_projection_rays(self, *, u: float, v: float) -> tuple[float, float]:
        """Normalized ray components (x/z, y/z) at pixel (u, v)."""
        invKK = self.camera.invKK
        return invKK[0, 0] * u + invKK[0, 2], invKK[1, 1] * v + invKK[1, 2]

    def _compare(
        self,
        *,
        u: float,
        v: float,
        xyz: np.ndarray
    ) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Sample the frame and compare with the template.

        Args:
            u: Projected column
            v: Projected row
            xyz: (3,) untransformed vertex

        Returns:
            (residual (n,), d_residual/d_uv (n, 2), d_residual/d_xyz (n, 3))
            where d_residual/d_xyz is the direct dependence only
        """
        n = self.residual_count
        frame = self.frame
        d_uv = np.zeros((n, 2))
        d_xyz = np.zeros((n, 3))

        if self.error_type == DataTermErrorType.INTENSITY:
            current, gx, gy = sample_with_derivative(
                image=frame.gray_image,
                grad_x=frame.grad_x_image,
                grad_y=frame.grad_y_image,
                x=u,
                y=v
            )
            residual = np.array([current - self.value[0]])
            d_uv[0] = [gx, gy]

        elif self.error_type == DataTermErrorType.COLOR:
            current, gx, gy = sample_with_derivative(
                image=frame.color_image,
                grad_x=frame.color_grad_x_image,
                grad_y=frame.color_grad_y_image,
                x=u,
                y=v
            )
            residual = current - self.value
            d_uv[:, 0] = gx
            d_uv[:, 1] = gy

        elif self.error_type == DataTermErrorType.DEPTH:
            depth, gx, gy = sample_with_derivative(
                image=frame.depth_image,
                grad_x=frame.depth_grad_x_image,
                grad_y=frame.depth_grad_y_image,
                x=u,
                y=v
            )
            error = depth - xyz[2]

            if self.camera.is_ortho_camera:
                residual = np.array([error, 0.0, 0.0])
                d_uv[0] = [gx, gy]
                d_xyz[0, 2] = -1.0
            else:
                ray_x, ray_y = self._back_projection_rays(u=u, v=v)
                invKK = self.camera.invKK
                residual = np.array([error * ray_x, error * ray_y, error])
                d_uv[0] = [gx * ray_x + error * invKK[0, 0], gy * ray_x]
                d_uv[1] = [gx * ray_y, gy * ray_y + error * invKK[1, 1]]
                d_uv[2] = [gx, gy]
                d_xyz[:, 2] = [-ray_x, -ray_y, -1.0]

        else:
            depth, gx, gy = sample_with_derivative(
                image=frame.depth_image,
                grad_x=frame.depth_grad_x_image,
                grad_y=frame.depth_grad_y_image,
                x=u,
                y=v
            )
            ray_x, ray_y = self._back_projection_rays(u=u, v=v)
            invKK = self.camera.invKK
            back_projection = np.array([depth * ray_x, depth * ray_y, depth])
            d_back_projection_du = np.array([gx * ray_x + depth * invKK[0, 0], gx * ray_y, gx])
            d_back_projection_dv = np.array([gy * ray_x, gy * ray_y + depth * invKK[1, 1], gy])

            # interpolated normals are used as-is, they come normalized per pixel
            normal, normal_gx, normal_gy = sample_with_derivative(
                image=frame.depth_normal_image,
                grad_x=frame.depth_normal_grad_x_image,
                grad_y=frame.depth_normal_grad_y_image,
                x=u,
                y=v
            )
            offset = xyz - back_projection
            residual = np.array([np.dot(normal, offset)])
            d_uv[0] = [
                np.dot(normal_gx, offset) - np.dot(normal, d_back_projection_du),
                np.dot(normal_gy, offset) - np.dot(normal, d_back_projection_dv),
            ]
            d_xyz[0] = normal

        return residual, d_uv, d_xyz

    def _evaluate(
        self,
        *,
        parameters: list[np.ndarray],
        with_jacobians: bool
    ) -> tuple[np.ndarray, list[np.ndarray] | None]:
        """Unweighted residual and (optionally) per-block jacobians.

        Args:
            parameters: [rotation, translation, xyz]
            with_jacobians: Also compute jacobians

        Returns:
            (residual, [d_rotation, d_translation, d_xyz] or None)
        """
        rotation = np.asarray(parameters[0], dtype=np.float64)
        translation = np.asarray(parameters[1], dtype=np.float64)
        xyz = np.asarray(parameters[2], dtype=np.float64)

        n = self.residual_count
        d_rotation, R = angle_axis_rotate_point_jacobians(angle_axis=rotation, point=xyz)
        point = R @ xyz + translation

        projection = self._project(point=point)
        if projection is None or not self.camera.contains(u=projection[0], v=projection[1]):
            zeros = [np.zeros((n, 3)) for _ in range(3)] if with_jacobians else None
            return np.zeros(n), zeros

        u, v, d_uv_d_point = projection
        residual, d_residual_d_uv, d_residual_d_xyz = self._compare(u=u, v=v, xyz=xyz)

        if not with_jacobians:
            return residual, None

        # rotation and translation only enter through the sampling location
        d_point = d_residual_d_uv @ d_uv_d_point
        return residual, [
            d_point @ d_rotation,
            d_point,
            d_point @ R + d_residual_d_xyz,
        ]

    def _compute_residual(
        self,
        parameters: list[np.ndarray]
    ) -> np.ndarray:
        residual, _ = self._evaluate(parameters=parameters, with_jacobians=False)
        return residual

    def _compute_jacobians(
        self,
        *,
        parameters: list[np.ndarray],
        residuals: np.ndarray,
        jacobians: list[np.ndarray]
    ) -> None:
        """Analytic jacobians through sampled image gradients."""
        _, blocks = self._evaluate(parameters=parameters, with_jacobians=True)
        for index, block in enumerate(blocks):
            self._write_jacobian(jacobians=jacobians, index=index, matrix=self.weight * block)
