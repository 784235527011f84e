"""Optimization result for SkellyMesh tracking solves."""

import logging

import pyceres
from pydantic import Field, model_validator
from typing_extensions import Self

from skellymesh.data.arbitrary_types_model import ABaseModel

logger = logging.getLogger(__name__)


class OptimizationResult(ABaseModel):
    """Results from a pyceres solve.

    Core results that are always present:
    - success: Whether optimization converged
    - num_iterations: Number of iterations performed
    - initial_cost: Initial cost function value
    - final_cost: Final cost function value
    - solve_time_seconds: Time spent in solver

    Optional results:
    - energy: Per-iteration cost (when solved with an EnergyCallback)
    """

    # Core results (always present)
    success: bool
    num_iterations: int
    initial_cost: float
    final_cost: float
    solve_time_seconds: float

    # Optional results
    energy: list[float] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_convergence(self) -> Self:
        """Warn when the solver stopped without converging."""
        if not self.success:
            logger.warning(
                f"Optimization did not converge "
                f"(iterations: {self.num_iterations}, final cost: {self.final_cost:.6f})"
            )
        return self

    @property
    def cost_reduction(self) -> float:
        """Compute relative cost reduction.

        Returns:
            Fraction of cost reduced (0-1)
        """
        if self.initial_cost == 0.0:
            return 0.0
        return (self.initial_cost - self.final_cost) / self.initial_cost

    @property
    def cost_reduction_percent(self) -> float:
        """Compute cost reduction percentage.

        Returns:
            Percentage of cost reduced (0-100)
        """
        return self.cost_reduction * 100.0

    def summary(self) -> str:
        """Generate human-readable summary.

        Returns:
            Multi-line summary string
        """
        lines = [
            "="*80,
            "OPTIMIZATION RESULT",
            "="*80,
            f"Status:       {'✓ Converged' if self.success else '✗ Did not converge'}",
            f"Iterations:   {self.num_iterations}",
            f"Solve time:   {self.solve_time_seconds:.2f}s",
            f"Initial cost: {self.initial_cost:.6f}",
            f"Final cost:   {self.final_cost:.6f}",
            f"Reduction:    {self.cost_reduction_percent:.1f}%",
            "="*80,
        ]

        if self.energy:
            lines.append(f"Energy:       {len(self.energy)} recorded iterations")

        return "\n".join(lines)

    @classmethod
    def from_pyceres_summary(
        cls,
        *,
        summary: pyceres.SolverSummary,
        solve_time_seconds: float,
        energy: list[float] | None = None
    ) -> "OptimizationResult":
        """Create result from pyceres SolverSummary.

        Args:
            summary: pyceres solver summary
            solve_time_seconds: Measured solve time
            energy: Optional per-iteration costs

        Returns:
            OptimizationResult with core fields filled
        """
        success = (
            summary.termination_type == pyceres.TerminationType.CONVERGENCE or
            summary.termination_type == pyceres.TerminationType.USER_SUCCESS
        )

        return cls(
            success=success,
            num_iterations=summary.num_successful_steps + summary.num_unsuccessful_steps,
            initial_cost=summary.initial_cost,
            final_cost=summary.final_cost,
            solve_time_seconds=solve_time_seconds,
            energy=list(energy) if energy is not None else []
        )
