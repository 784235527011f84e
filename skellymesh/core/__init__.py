"""Core optimization infrastructure for SkellyMesh.

- config: Optimization configuration and energy weights
- result: Optimization result structure
- optimizer: High-level pyceres wrapper
- callbacks: Per-iteration solver callbacks
- cost_primatives: Library of residual terms

Usage:
    from skellymesh.core import OptimizationConfig, Optimizer, EnergyCallback

    config = OptimizationConfig(max_iterations=50)
    optimizer = Optimizer(config=config)
"""

# Configuration
from .config import (
    BundleAdjustmentType,
    OptimizationConfig,
    TrackingWeightConfig,
)

# Results
from .result import OptimizationResult

# Optimizer
from .optimizer import Optimizer

# Callbacks
from .callbacks import EnergyCallback

# Cost functions
from .cost_primatives import (
    ARAPCost,
    BaseCostFunction,
    DATA_TERM_RESIDUAL_COUNTS,
    DataTermErrorType,
    DeformCost,
    ImageProjectionCost,
    InextensibilityCost,
    RotTVCost,
    TemporalMotionCost,
    TVCost,
)

__all__ = [
    # Configuration
    "BundleAdjustmentType",
    "OptimizationConfig",
    "TrackingWeightConfig",
    # Results
    "OptimizationResult",
    # Optimizer
    "Optimizer",
    # Callbacks
    "EnergyCallback",
    # Cost functions
    "ARAPCost",
    "BaseCostFunction",
    "DATA_TERM_RESIDUAL_COUNTS",
    "DataTermErrorType",
    "DeformCost",
    "ImageProjectionCost",
    "InextensibilityCost",
    "RotTVCost",
    "TemporalMotionCost",
    "TVCost",
]
