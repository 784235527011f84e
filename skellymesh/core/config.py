"""Optimization configuration for SkellyMesh tracking.

This module provides:
- OptimizationConfig: pyceres solver parameters
- TrackingWeightConfig: Cost function weights
- BundleAdjustmentType: Which parameter blocks are optimized
"""

import os
from dataclasses import dataclass, fields
from enum import Enum
from typing import Literal

import pyceres


LINEAR_SOLVER_TYPES: dict[str, pyceres.LinearSolverType] = {
    "dense_qr": pyceres.LinearSolverType.DENSE_QR,
    "sparse_normal_cholesky": pyceres.LinearSolverType.SPARSE_NORMAL_CHOLESKY,
    "sparse_schur": pyceres.LinearSolverType.SPARSE_SCHUR,
}

TRUST_REGION_STRATEGIES: dict[str, pyceres.TrustRegionStrategyType] = {
    "levenberg_marquardt": pyceres.TrustRegionStrategyType.LEVENBERG_MARQUARDT,
    "dogleg": pyceres.TrustRegionStrategyType.DOGLEG,
}

ROBUST_LOSSES: dict[str, type[pyceres.LossFunction]] = {
    "huber": pyceres.HuberLoss,
    "cauchy": pyceres.CauchyLoss,
    "soft_l1": pyceres.SoftLOneLoss,
}


def _lookup(*, table: dict, name: str, kind: str):
    try:
        return table[name]
    except KeyError:
        raise ValueError(f"Unknown {kind}: {name} (expected one of {sorted(table)})") from None


class BundleAdjustmentType(Enum):
    """Which parameter blocks a tracking solve is free to change.

    MOTION: Only the rigid rotation/translation (mesh shape held)
    STRUCTURE: Only vertex positions and local rotations (motion held)
    MOTION_STRUCTURE: Everything
    """

    MOTION = "motion"
    STRUCTURE = "structure"
    MOTION_STRUCTURE = "motion_structure"

    @property
    def optimizes_motion(self) -> bool:
        return self in (BundleAdjustmentType.MOTION, BundleAdjustmentType.MOTION_STRUCTURE)

    @property
    def optimizes_structure(self) -> bool:
        return self in (BundleAdjustmentType.STRUCTURE, BundleAdjustmentType.MOTION_STRUCTURE)


@dataclass
class OptimizationConfig:
    """Configuration for pyceres nonlinear optimization.

    Attributes:
        max_iterations: Maximum number of optimization iterations
        function_tolerance: Convergence tolerance for cost function
        gradient_tolerance: Convergence tolerance for gradient
        parameter_tolerance: Convergence tolerance for parameters
        use_robust_loss: Whether to use robust loss function
        robust_loss_type: Type of robust loss (huber, cauchy, soft_l1)
        robust_loss_param: Parameter for robust loss (e.g., huber delta)
        linear_solver: Linear solver type
        trust_region_strategy: Trust region strategy
        num_threads: Number of threads (None = auto-detect)
        minimizer_progress_to_stdout: Print optimization progress
    """

    # Convergence criteria
    max_iterations: int = 50
    function_tolerance: float = 1e-6
    gradient_tolerance: float = 1e-10
    parameter_tolerance: float = 1e-8

    # Robust loss function
    use_robust_loss: bool = False
    robust_loss_type: Literal["huber", "cauchy", "soft_l1"] = "huber"
    robust_loss_param: float = 1.0

    # Linear solver
    linear_solver: Literal["dense_qr", "sparse_normal_cholesky", "sparse_schur"] = "sparse_normal_cholesky"

    # Trust region strategy
    trust_region_strategy: Literal["levenberg_marquardt", "dogleg"] = "levenberg_marquardt"

    # Parallelization
    num_threads: int | None = None

    # Logging
    minimizer_progress_to_stdout: bool = False

    def to_solver_options(self) -> pyceres.SolverOptions:
        """Convert to pyceres SolverOptions.

        Raises:
            ValueError: If linear solver or trust region name is unknown
        """
        options = pyceres.SolverOptions()
        options.max_num_iterations = self.max_iterations
        options.function_tolerance = self.function_tolerance
        options.gradient_tolerance = self.gradient_tolerance
        options.parameter_tolerance = self.parameter_tolerance
        options.linear_solver_type = _lookup(
            table=LINEAR_SOLVER_TYPES,
            name=self.linear_solver,
            kind="linear solver"
        )
        options.trust_region_strategy_type = _lookup(
            table=TRUST_REGION_STRATEGIES,
            name=self.trust_region_strategy,
            kind="trust region strategy"
        )
        options.num_threads = self.resolved_num_threads
        options.minimizer_progress_to_stdout = self.minimizer_progress_to_stdout
        return options

    @property
    def resolved_num_threads(self) -> int:
        """Explicit thread count, or all cores but one."""
        if self.num_threads is not None:
            return self.num_threads
        return max((os.cpu_count() or 2) - 1, 1)

    def get_loss_function(self) -> pyceres.LossFunction | None:
        """Robust loss for residual blocks, None when disabled.

        Raises:
            ValueError: If robust_loss_type is unknown
        """
        if not self.use_robust_loss:
            return None
        loss_class = _lookup(table=ROBUST_LOSSES, name=self.robust_loss_type, kind="robust loss type")
        return loss_class(self.robust_loss_param)


@dataclass
class TrackingWeightConfig:
    """Weights of the mesh tracking energy terms.

    A weight of 0.0 disables the corresponding term.

    Common patterns:
    - Data term: 1.0
    - TV / ARAP regularizers: 0.1 - 10.0 depending on mesh resolution
    - Deform anchor: small, only to stop drift
    """

    # Data fitting
    lambda_data: float = 1.0

    # Shape regularization
    lambda_tv: float = 1.0
    lambda_rot_tv: float = 0.0
    lambda_inextent: float = 0.0
    lambda_arap: float = 0.0
    lambda_deform: float = 0.0

    # Temporal smoothness of rigid motion
    lambda_temporal_rot: float = 0.0
    lambda_temporal_trans: float = 0.0

    def scale_all(self, *, factor: float) -> None:
        """Scale all weights by a factor.

        Args:
            factor: Multiplicative factor
        """
        for weight_field in fields(self):
            setattr(self, weight_field.name, getattr(self, weight_field.name) * factor)
