"""Optimizer wrapper for pyceres.

This module provides a high-level interface to pyceres optimization
that handles:
- Problem setup
- Parameter block management
- Cost function addition
- Holding blocks constant
- Solving, with optional per-iteration callbacks
- Result extraction
"""

import logging
import time

import numpy as np
import pyceres

from .callbacks import EnergyCallback
from .config import OptimizationConfig
from .result import OptimizationResult

logger = logging.getLogger(__name__)


class Optimizer:
    """Generic pyceres optimizer wrapper.

    Usage:
        config = OptimizationConfig(...)
        optimizer = Optimizer(config=config)

        # Add parameters
        optimizer.add_parameter_block(name="rotation", parameters=rotation)

        # Add costs
        optimizer.add_residual_block(cost=cost_fn, parameters=[rotation, translation, xyz])

        # Solve
        result = optimizer.solve()
    """

    def __init__(self, *, config: OptimizationConfig) -> None:
        """Initialize optimizer.

        Args:
            config: Optimization configuration
        """
        self.config = config
        self.problem = pyceres.Problem()
        self.parameter_blocks: dict[str, np.ndarray] = {}
        self.loss_function = config.get_loss_function()

    def add_parameter_block(
        self,
        *,
        name: str,
        parameters: np.ndarray
    ) -> None:
        """Add parameter block to optimization problem.

        Args:
            name: Identifier for this parameter block
            parameters: float64 parameter array (modified in-place by the solver)

        Raises:
            ValueError: If the name is already registered or the array is not float64
        """
        if name in self.parameter_blocks:
            raise ValueError(f"Parameter block '{name}' already added")

        if parameters.dtype != np.float64:
            raise ValueError(f"Parameter block '{name}' must be float64, got {parameters.dtype}")

        self.parameter_blocks[name] = parameters
        self.problem.add_parameter_block(parameters, len(parameters))
        logger.debug(f"Added parameter block '{name}' with {len(parameters)} parameters")

    def add_residual_block(
        self,
        *,
        cost: pyceres.CostFunction,
        parameters: list[np.ndarray],
        loss: pyceres.LossFunction | None = None
    ) -> None:
        """Add residual block to optimization problem.

        Args:
            cost: Cost function
            parameters: List of parameter arrays used by this cost
            loss: Optional loss function (uses config default if None)
        """
        if loss is None:
            loss = self.loss_function

        self.problem.add_residual_block(cost, loss, parameters)

    def set_parameter_constant(
        self,
        *,
        parameters: np.ndarray
    ) -> None:
        """Set parameter block as constant (not optimized).

        Args:
            parameters: Parameter array to hold constant
        """
        self.problem.set_parameter_block_constant(parameters)

    def set_parameter_variable(
        self,
        *,
        parameters: np.ndarray
    ) -> None:
        """Let a previously constant parameter block be optimized again.

        Args:
            parameters: Parameter array to free
        """
        self.problem.set_parameter_block_variable(parameters)

    def get_parameter(self, *, name: str) -> np.ndarray:
        """Get parameter block by name.

        Args:
            name: Parameter block identifier

        Returns:
            Parameter array

        Raises:
            KeyError: If no block with that name was added
        """
        if name not in self.parameter_blocks:
            raise KeyError(f"Parameter block '{name}' not found")

        return self.parameter_blocks[name]

    def num_parameters(self) -> int:
        """Get total number of parameters.

        Returns:
            Number of parameters in the problem
        """
        return self.problem.num_parameters()

    def num_residuals(self) -> int:
        """Get total number of residual blocks.

        Returns:
            Number of residual blocks
        """
        return self.problem.num_residual_blocks()

    def solve(self) -> OptimizationResult:
        """Solve optimization problem.

        Returns:
            OptimizationResult with optimization results
        """
        options = self.config.to_solver_options()
        return self._run(options=options, energy_callback=None)

    def solve_with_callback(
        self,
        *,
        callback: EnergyCallback
    ) -> OptimizationResult:
        """Solve with a per-iteration energy callback.

        The callback records the cost after every iteration; the recorded
        energy is copied into the result. The callback is not reset, so
        call callback.reset() between solves to start a fresh record.

        Args:
            callback: EnergyCallback to register with the solver

        Returns:
            OptimizationResult with the energy record filled in
        """
        options = self.config.to_solver_options()
        options.callbacks = [callback]
        return self._run(options=options, energy_callback=callback)

    def _run(
        self,
        *,
        options: pyceres.SolverOptions,
        energy_callback: EnergyCallback | None
    ) -> OptimizationResult:
        logger.info("="*80)
        logger.info("STARTING OPTIMIZATION")
        logger.info("="*80)
        logger.info(f"Parameters:      {self.num_parameters()}")
        logger.info(f"Residual blocks: {self.num_residuals()}")

        summary = pyceres.SolverSummary()

        start_time = time.time()
        pyceres.solve(options, self.problem, summary)
        solve_time = time.time() - start_time

        result = OptimizationResult.from_pyceres_summary(
            summary=summary,
            solve_time_seconds=solve_time,
            energy=energy_callback.energy_record if energy_callback is not None else None
        )

        logger.info("="*80)
        logger.info("OPTIMIZATION COMPLETE")
        logger.info("="*80)
        logger.info(f"Status:       {'✓ Converged' if result.success else '✗ Did not converge'}")
        logger.info(f"Iterations:   {result.num_iterations}")
        logger.info(f"Solve time:   {result.solve_time_seconds:.2f}s")
        logger.info(f"Initial cost: {result.initial_cost:.6f}")
        logger.info(f"Final cost:   {result.final_cost:.6f}")
        logger.info(f"Reduction:    {result.cost_reduction_percent:.1f}%")
        logger.info("="*80)

        return result
