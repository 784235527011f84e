"""Bilinear image sampling with derivatives.

The value is bilinearly interpolated from the image; the derivatives
are bilinearly interpolated from precomputed gradient images rather than
differentiated from the interpolant, so they stay smooth across pixel
boundaries.
"""

import numpy as np


def _bilinear(
    *,
    image: np.ndarray,
    x0: int,
    x1: int,
    y0: int,
    y1: int,
    ax: float,
    ay: float
) -> np.ndarray | float:
    top = (1.0 - ax) * image[y0, x0] + ax * image[y0, x1]
    bottom = (1.0 - ax) * image[y1, x0] + ax * image[y1, x1]
    return (1.0 - ay) * top + ay * bottom


def sample_with_derivative(
    *,
    image: np.ndarray,
    grad_x: np.ndarray,
    grad_y: np.ndarray,
    x: float,
    y: float
) -> tuple[np.ndarray | float, np.ndarray | float, np.ndarray | float]:
    """Sample an image and its gradient at fractional coordinates.

    Coordinates outside the image are clamped to the border.

    Args:
        image: (H, W) or (H, W, C) image
        grad_x: Gradient of image along x (columns), same shape
        grad_y: Gradient of image along y (rows), same shape
        x: Column coordinate
        y: Row coordinate

    Returns:
        Tuple of (value, d_value/dx, d_value/dy). Scalars for single
        channel images, (C,) arrays for multi-channel images.
    """
    height, width = image.shape[:2]

    x = float(np.clip(x, 0.0, width - 1))
    y = float(np.clip(y, 0.0, height - 1))

    x0 = int(np.floor(x))
    y0 = int(np.floor(y))
    x1 = min(x0 + 1, width - 1)
    y1 = min(y0 + 1, height - 1)
    ax = x - x0
    ay = y - y0

    value = _bilinear(image=image, x0=x0, x1=x1, y0=y0, y1=y1, ax=ax, ay=ay)
    dx = _bilinear(image=grad_x, x0=x0, x1=x1, y0=y0, y1=y1, ax=ax, ay=ay)
    dy = _bilinear(image=grad_y, x0=x0, x1=x1, y0=y0, y1=y1, ax=ax, ay=ay)

    return value, dx, dy
