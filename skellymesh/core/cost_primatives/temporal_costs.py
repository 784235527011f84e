"""Temporal smoothness of the rigid camera/mesh motion.

Penalizes frame-to-frame change of the global rotation and translation
against the (fixed) previous-frame estimate.
"""

import logging

import numpy as np

from .base_cost import BaseCostFunction, borrow

logger = logging.getLogger(__name__)


class TemporalMotionCost(BaseCostFunction):
    """Rigid motion change relative to the previous frame.

    Model:
        residual[0:3] = rot_weight * (rotation - prev_rotation)
        residual[3:6] = trans_weight * (translation - prev_translation)

    The two halves carry their own weights, so the base weight stays 1.
    Operand dumps go through a logger at DEBUG level and only when
    verbose is set, since this is evaluated on every solver iteration.
    """

    def __init__(
        self,
        *,
        prev_rotation: np.ndarray,
        prev_translation: np.ndarray,
        rot_weight: float,
        trans_weight: float,
        verbose: bool = False,
        log: logging.Logger | None = None
    ) -> None:
        """Initialize temporal motion cost.

        Args:
            prev_rotation: (3,) previous-frame axis-angle rotation (borrowed)
            prev_translation: (3,) previous-frame translation (borrowed)
            rot_weight: Weight for the rotation half
            trans_weight: Weight for the translation half
            verbose: Log all operands on every evaluation
            log: Logger for verbose output (module logger if None)
        """
        super().__init__(weight=1.0)
        self.prev_rotation = borrow(prev_rotation)
        self.prev_translation = borrow(prev_translation)
        self.rot_weight = rot_weight
        self.trans_weight = trans_weight
        self.verbose = verbose
        self.log = log if log is not None else logger
        self.set_num_residuals(6)
        self.set_parameter_block_sizes([3, 3])

    def _compute_residual(
        self,
        parameters: list[np.ndarray]
    ) -> np.ndarray:
        """Compute residual as weighted motion change.

        Args:
            parameters: [rotation, translation]

        Returns:
            6D residual (rotation half, translation half)
        """
        rotation = parameters[0]
        translation = parameters[1]

        residual = np.concatenate([
            self.rot_weight * (rotation - self.prev_rotation),
            self.trans_weight * (translation - self.prev_translation),
        ])

        if self.verbose:
            self.log.debug(
                f"TemporalMotionCost rot_weight={self.rot_weight} trans_weight={self.trans_weight} "
                f"rotation={np.array2string(np.asarray(rotation))} "
                f"translation={np.array2string(np.asarray(translation))} "
                f"prev_rotation={np.array2string(self.prev_rotation)} "
                f"prev_translation={np.array2string(self.prev_translation)}"
            )

        return residual

    def _compute_jacobians(
        self,
        *,
        parameters: list[np.ndarray],
        residuals: np.ndarray,
        jacobians: list[np.ndarray]
    ) -> None:
        """Analytic jacobians: scaled identity in each half."""
        d_rotation = np.zeros((6, 3))
        d_rotation[0:3, :] = np.eye(3) * self.rot_weight

        d_translation = np.zeros((6, 3))
        d_translation[3:6, :] = np.eye(3) * self.trans_weight

        self._write_jacobian(jacobians=jacobians, index=0, matrix=self.weight * d_rotation)
        self._write_jacobian(jacobians=jacobians, index=1, matrix=self.weight * d_translation)
