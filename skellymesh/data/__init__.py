"""Frame data models consumed by the residual terms."""

from .arbitrary_types_model import ABaseModel, FrozenABaseModel
from .camera import CameraInfo
from .image_level import ImageLevel, compute_image_gradients

__all__ = [
    "ABaseModel",
    "FrozenABaseModel",
    "CameraInfo",
    "ImageLevel",
    "compute_image_gradients",
]
