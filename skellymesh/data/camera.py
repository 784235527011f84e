"""Camera model for a single tracking frame.

The camera is immutable for the lifetime of a frame and is shared
(read-only) by every data term projecting into that frame.
"""

import numpy as np
from pydantic import model_validator
from typing_extensions import Self

from skellymesh.data.arbitrary_types_model import FrozenABaseModel


class CameraInfo(FrozenABaseModel):
    """Pinhole (or orthographic) camera intrinsics.

    Attributes:
        width: Image width in pixels
        height: Image height in pixels
        KK: (3, 3) intrinsic matrix
        invKK: (3, 3) inverse intrinsic matrix (computed if omitted)
        is_ortho_camera: Project by dropping z instead of perspective divide
    """

    width: int
    height: int
    KK: np.ndarray
    invKK: np.ndarray | None = None
    is_ortho_camera: bool = False

    @model_validator(mode="before")
    @classmethod
    def fill_inverse(cls, data: dict) -> dict:
        """Coerce intrinsics to float arrays and compute invKK when not given."""
        if not isinstance(data, dict) or data.get("KK") is None:
            return data

        KK = np.asarray(data["KK"], dtype=np.float64)
        if data.get("invKK") is None:
            invKK = np.linalg.inv(KK) if KK.shape == (3, 3) else None
        else:
            invKK = np.asarray(data["invKK"], dtype=np.float64)
        return {**data, "KK": KK, "invKK": invKK}

    @model_validator(mode="after")
    def validate_intrinsics(self) -> Self:
        """Validate camera intrinsics."""
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Camera size must be positive, got {self.width}x{self.height}")

        if self.KK.shape != (3, 3):
            raise ValueError(f"KK must be 3x3, got shape {self.KK.shape}")

        if self.invKK.shape != (3, 3):
            raise ValueError(f"invKK must be 3x3, got shape {self.invKK.shape}")

        return self

    @classmethod
    def from_intrinsics(
        cls,
        *,
        fx: float,
        fy: float,
        cx: float,
        cy: float,
        width: int,
        height: int,
        is_ortho_camera: bool = False
    ) -> "CameraInfo":
        """Build camera from focal lengths and principal point.

        Args:
            fx: Focal length in x (pixels)
            fy: Focal length in y (pixels)
            cx: Principal point x (pixels)
            cy: Principal point y (pixels)
            width: Image width
            height: Image height
            is_ortho_camera: Orthographic projection

        Returns:
            CameraInfo instance
        """
        KK = np.array([
            [fx, 0.0, cx],
            [0.0, fy, cy],
            [0.0, 0.0, 1.0],
        ])
        return cls(
            width=width,
            height=height,
            KK=KK,
            is_ortho_camera=is_ortho_camera
        )

    @property
    def fx(self) -> float:
        return float(self.KK[0, 0])

    @property
    def fy(self) -> float:
        return float(self.KK[1, 1])

    @property
    def cx(self) -> float:
        return float(self.KK[0, 2])

    @property
    def cy(self) -> float:
        return float(self.KK[1, 2])

    def contains(self, *, u: float, v: float) -> bool:
        """Check whether image coordinates lie inside [0, width) x [0, height).

        Args:
            u: Column coordinate
            v: Row coordinate

        Returns:
            True if inside the image
        """
        return 0.0 <= v < self.height and 0.0 <= u < self.width
