"""Cost functions module for SkellyMesh.

Modules:
- base_cost: Abstract base class and reference borrowing
- cost_info_model: Residual block bookkeeping
- image_costs: Image projection data terms
- regularization_costs: Mesh shape regularizers
- temporal_costs: Rigid motion smoothness

Usage:
    from skellymesh.core.cost_primatives import ImageProjectionCost
    from skellymesh.core.cost_primatives import ARAPCost
"""

from .base_cost import BaseCostFunction, borrow
from .cost_info_model import CostCollection, CostInfo, CostType
from .image_costs import (
    DATA_TERM_RESIDUAL_COUNTS,
    DataTermErrorType,
    ImageProjectionCost,
)
from .regularization_costs import (
    ARAPCost,
    DeformCost,
    InextensibilityCost,
    RotTVCost,
    TVCost,
)
from .temporal_costs import TemporalMotionCost

__all__ = [
    # Base
    "BaseCostFunction",
    "borrow",
    # Bookkeeping
    "CostCollection",
    "CostInfo",
    "CostType",
    # Data terms
    "DATA_TERM_RESIDUAL_COUNTS",
    "DataTermErrorType",
    "ImageProjectionCost",
    # Regularizers
    "ARAPCost",
    "DeformCost",
    "InextensibilityCost",
    "RotTVCost",
    "TVCost",
    # Temporal
    "TemporalMotionCost",
]
