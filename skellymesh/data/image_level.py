"""One resolution level of a frame's image pyramid.

Holds the intensity, color, depth and normal images of a frame together
with their spatial gradients. Building the pyramid itself happens
upstream; this module only stores one level and can derive gradients
for it.
"""

import logging

import numpy as np
from pydantic import model_validator
from typing_extensions import Self

from skellymesh.data.arbitrary_types_model import FrozenABaseModel

logger = logging.getLogger(__name__)


def compute_image_gradients(*, image: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Central-difference gradients along columns (x) and rows (y).

    Args:
        image: (H, W) or (H, W, C) image

    Returns:
        Tuple of (grad_x, grad_y), same shape as image
    """
    image = np.asarray(image, dtype=np.float64)
    grad_y, grad_x = np.gradient(image, axis=(0, 1))
    return grad_x, grad_y


class ImageLevel(FrozenABaseModel):
    """Images and gradients for one pyramid level.

    Images not needed by the active data term may be None.

    Attributes:
        gray_image: (H, W) intensity image
        grad_x_image: (H, W) intensity gradient along x
        grad_y_image: (H, W) intensity gradient along y
        color_image: (H, W, 3) color image
        color_grad_x_image: (H, W, 3) color gradient along x
        color_grad_y_image: (H, W, 3) color gradient along y
        depth_image: (H, W) depth image
        depth_grad_x_image: (H, W) depth gradient along x
        depth_grad_y_image: (H, W) depth gradient along y
        depth_normal_image: (H, W, 3) surface normals from depth
        depth_normal_grad_x_image: (H, W, 3) normal gradient along x
        depth_normal_grad_y_image: (H, W, 3) normal gradient along y
    """

    gray_image: np.ndarray
    grad_x_image: np.ndarray
    grad_y_image: np.ndarray

    color_image: np.ndarray | None = None
    color_grad_x_image: np.ndarray | None = None
    color_grad_y_image: np.ndarray | None = None

    depth_image: np.ndarray | None = None
    depth_grad_x_image: np.ndarray | None = None
    depth_grad_y_image: np.ndarray | None = None

    depth_normal_image: np.ndarray | None = None
    depth_normal_grad_x_image: np.ndarray | None = None
    depth_normal_grad_y_image: np.ndarray | None = None

    @model_validator(mode="after")
    def validate_sizes(self) -> Self:
        """Validate that every provided image has the same (H, W)."""
        if self.gray_image.ndim != 2:
            raise ValueError(f"gray_image must be 2D, got shape {self.gray_image.shape}")

        size = self.gray_image.shape[:2]

        for name in type(self).model_fields:
            image = getattr(self, name)
            if image is None:
                continue
            if image.shape[:2] != size:
                raise ValueError(
                    f"{name} has size {image.shape[:2]}, expected {size}"
                )
        return self

    @classmethod
    def from_images(
        cls,
        *,
        gray: np.ndarray,
        color: np.ndarray | None = None,
        depth: np.ndarray | None = None,
        normals: np.ndarray | None = None
    ) -> "ImageLevel":
        """Create level from raw images, computing all gradients.

        Args:
            gray: (H, W) intensity image
            color: Optional (H, W, 3) color image
            depth: Optional (H, W) depth image
            normals: Optional (H, W, 3) normal image

        Returns:
            ImageLevel with gradients filled in
        """
        gray = np.asarray(gray, dtype=np.float64)
        grad_x, grad_y = compute_image_gradients(image=gray)
        fields: dict[str, np.ndarray] = {
            "gray_image": gray,
            "grad_x_image": grad_x,
            "grad_y_image": grad_y,
        }

        if color is not None:
            color = np.asarray(color, dtype=np.float64)
            fields["color_image"] = color
            fields["color_grad_x_image"], fields["color_grad_y_image"] = compute_image_gradients(image=color)

        if depth is not None:
            depth = np.asarray(depth, dtype=np.float64)
            fields["depth_image"] = depth
            fields["depth_grad_x_image"], fields["depth_grad_y_image"] = compute_image_gradients(image=depth)

        if normals is not None:
            normals = np.asarray(normals, dtype=np.float64)
            fields["depth_normal_image"] = normals
            fields["depth_normal_grad_x_image"], fields["depth_normal_grad_y_image"] = compute_image_gradients(image=normals)

        logger.debug(
            f"Built image level {gray.shape[1]}x{gray.shape[0]} "
            f"(color={color is not None}, depth={depth is not None}, normals={normals is not None})"
        )
        return cls(**fields)

    @property
    def width(self) -> int:
        """Image width in pixels."""
        return int(self.gray_image.shape[1])

    @property
    def height(self) -> int:
        """Image height in pixels."""
        return int(self.gray_image.shape[0])
