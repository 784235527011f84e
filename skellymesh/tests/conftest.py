"""Pytest configuration and fixtures for SkellyMesh tests.

Provides reusable fixtures for:
- Cameras (perspective and orthographic)
- Image levels built from linear ramps (bilinear sampling is exact on them)
- A small template mesh
"""

import numpy as np
import pytest

from skellymesh.data.camera import CameraInfo
from skellymesh.data.image_level import ImageLevel

WIDTH = 64
HEIGHT = 48


@pytest.fixture
def perspective_camera() -> CameraInfo:
    """64x48 pinhole camera, f=50, principal point at the image center.

    Returns:
        CameraInfo instance
    """
    return CameraInfo.from_intrinsics(
        fx=50.0,
        fy=50.0,
        cx=32.0,
        cy=24.0,
        width=WIDTH,
        height=HEIGHT
    )


@pytest.fixture
def ortho_camera() -> CameraInfo:
    """64x48 orthographic camera.

    Returns:
        CameraInfo instance
    """
    return CameraInfo.from_intrinsics(
        fx=1.0,
        fy=1.0,
        cx=0.0,
        cy=0.0,
        width=WIDTH,
        height=HEIGHT,
        is_ortho_camera=True
    )


@pytest.fixture
def pixel_grid() -> tuple[np.ndarray, np.ndarray]:
    """Column (x) and row (y) coordinate images.

    Returns:
        Tuple of (xs, ys), each (HEIGHT, WIDTH)
    """
    ys, xs = np.mgrid[0:HEIGHT, 0:WIDTH].astype(np.float64)
    return xs, ys


@pytest.fixture
def ramp_frame(pixel_grid: tuple[np.ndarray, np.ndarray]) -> ImageLevel:
    """Image level made of linear ramps.

    gray = x + 2y
    color = (x, y, x + y)
    depth = 3
    normals = (0, 0, 1)

    Returns:
        ImageLevel instance
    """
    xs, ys = pixel_grid
    gray = xs + 2.0 * ys
    color = np.stack([xs, ys, xs + ys], axis=-1)
    depth = np.full((HEIGHT, WIDTH), 3.0)
    normals = np.zeros((HEIGHT, WIDTH, 3))
    normals[..., 2] = 1.0

    return ImageLevel.from_images(gray=gray, color=color, depth=depth, normals=normals)


@pytest.fixture
def sloped_depth_frame(pixel_grid: tuple[np.ndarray, np.ndarray]) -> ImageLevel:
    """Image level whose depth and normals vary linearly across the image.

    Returns:
        ImageLevel instance
    """
    xs, ys = pixel_grid
    gray = xs + 2.0 * ys
    depth = 2.5 + 0.01 * xs - 0.02 * ys
    normals = np.stack([
        0.1 + 0.001 * xs,
        -0.2 + 0.002 * ys,
        np.ones_like(xs),
    ], axis=-1)

    return ImageLevel.from_images(gray=gray, depth=depth, normals=normals)


@pytest.fixture
def triangle_mesh() -> tuple[np.ndarray, np.ndarray]:
    """Two-triangle template mesh in front of the camera.

    Returns:
        Tuple of (vertices (4, 3), faces (2, 3))
    """
    vertices = np.array([
        [0.0, 0.0, 2.0],
        [0.1, 0.0, 2.0],
        [0.0, 0.1, 2.0],
        [0.1, 0.1, 2.0],
    ])
    faces = np.array([
        [0, 1, 2],
        [1, 3, 2],
    ])
    return vertices, faces
