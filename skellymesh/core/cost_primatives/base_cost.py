"""Base classes for all cost functions in SkellyMesh.

This module provides the abstract base class that all residual terms
inherit from. Provides weight application, numeric jacobians and the
helpers for borrowing reference data from the caller.
"""

import numpy as np
import pyceres


def borrow(array: np.ndarray) -> np.ndarray:
    """Return a read-only view of caller-owned reference data.

    The view shares memory with the caller's array, so the caller must
    keep it alive and unchanged until the solve finishes.

    Args:
        array: Caller-owned array

    Returns:
        Read-only float64 view (a copy only if dtype conversion is needed)
    """
    view = np.asarray(array, dtype=np.float64).view()
    view.flags.writeable = False
    return view


class BaseCostFunction(pyceres.CostFunction):
    """Abstract base class for all SkellyMesh cost functions.

    Provides:
    - Automatic weight application
    - Numeric jacobian computation (override for analytic)
    - Consistent interface across all cost functions

    Subclasses must implement:
    - _compute_residual(): Compute the residual vector
    - Set num_residuals and parameter_block_sizes in __init__
    """

    def __init__(self, *, weight: float = 1.0) -> None:
        """Initialize base cost function.

        Args:
            weight: Weight for this cost term in the optimization
        """
        super().__init__()
        self.weight = weight

    def _compute_residual(
        self,
        parameters: list[np.ndarray]
    ) -> np.ndarray:
        """Compute residual vector (unweighted).

        Must be implemented by subclasses.

        Args:
            parameters: List of parameter blocks

        Returns:
            Residual vector (will be weighted automatically)
        """
        raise NotImplementedError

    def Evaluate(
        self,
        parameters: list[np.ndarray],
        residuals: np.ndarray,
        jacobians: list[np.ndarray] | None
    ) -> bool:
        """Evaluate cost function (pyceres interface).

        This is called by pyceres during optimization.
        Computes weighted residual and optionally jacobians.

        Args:
            parameters: List of parameter blocks
            residuals: Output residual vector
            jacobians: Optional list of jacobian matrices (row-major, flattened)

        Returns:
            True if evaluation succeeded
        """
        residual_unweighted = self._compute_residual(parameters=parameters)

        residuals[:] = self.weight * residual_unweighted

        if jacobians is not None:
            self._compute_jacobians(
                parameters=parameters,
                residuals=residuals,
                jacobians=jacobians
            )

        return True

    def _compute_jacobians(
        self,
        *,
        parameters: list[np.ndarray],
        residuals: np.ndarray,
        jacobians: list[np.ndarray]
    ) -> None:
        """Compute jacobians (numeric by default, override for analytic).

        Args:
            parameters: List of parameter blocks
            residuals: Current residual vector
            jacobians: List of jacobian matrices to fill
        """
        self._compute_jacobians_numeric(
            parameters=parameters,
            residuals=residuals,
            jacobians=jacobians,
            eps=1e-8
        )

    def _compute_jacobians_numeric(
        self,
        *,
        parameters: list[np.ndarray],
        residuals: np.ndarray,
        jacobians: list[np.ndarray],
        eps: float = 1e-8
    ) -> None:
        """Compute jacobians using forward finite differences.

        Args:
            parameters: List of parameter blocks
            residuals: Current (weighted) residual vector
            jacobians: List of jacobian matrices to fill
            eps: Step size for finite differences
        """
        n_residuals = len(residuals)

        for param_idx, param in enumerate(parameters):
            if jacobians[param_idx] is None:
                continue

            n_params = len(param)
            jacobian = np.zeros((n_residuals, n_params))

            for i in range(n_params):
                param_plus = np.array(param, dtype=np.float64)
                param_plus[i] += eps

                params_plus = list(parameters)
                params_plus[param_idx] = param_plus
                residual_plus = self.weight * self._compute_residual(parameters=params_plus)

                jacobian[:, i] = (residual_plus - residuals) / eps

            jacobians[param_idx][:] = jacobian.ravel()

    @staticmethod
    def _write_jacobian(
        *,
        jacobians: list[np.ndarray],
        index: int,
        matrix: np.ndarray
    ) -> None:
        """Write a (n_residuals, block_size) matrix into a pyceres jacobian slot.

        Args:
            jacobians: pyceres jacobian list
            index: Parameter block index
            matrix: Dense jacobian for that block
        """
        if jacobians[index] is not None:
            jacobians[index][:] = np.asarray(matrix, dtype=np.float64).ravel()
