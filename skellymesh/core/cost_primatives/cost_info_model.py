"""Typed wrapper for cost function information.

Keeps each residual block together with the parameter blocks it reads,
so a builder can hand a whole energy to the optimizer in one call and
report what it contains.
"""

import logging
from typing import Any, Literal

import numpy as np
import pyceres
from pydantic import Field

from skellymesh.data.arbitrary_types_model import ABaseModel

logger = logging.getLogger(__name__)


CostType = Literal[
    "data",
    "tv",
    "rot_tv",
    "inextent",
    "arap",
    "deform",
    "temporal_motion",
]


class CostInfo(ABaseModel):
    """Information about a single residual block.

    Attributes:
        cost: The pyceres cost function
        parameters: List of parameter arrays this cost operates on
        cost_type: Category of cost
        weight: Weight applied to this cost
        vertex_index: Vertex the cost belongs to (None for global terms)
        neighbor_index: Neighbor vertex for edge terms
    """

    cost: pyceres.CostFunction
    parameters: list[np.ndarray]
    cost_type: CostType
    weight: float
    vertex_index: int | None = None
    neighbor_index: int | None = None

    def __str__(self) -> str:
        if self.neighbor_index is not None:
            return f"CostInfo[{self.cost_type}]: {self.vertex_index} -> {self.neighbor_index}"
        if self.vertex_index is not None:
            return f"CostInfo[{self.cost_type}]: vertex {self.vertex_index}"
        return f"CostInfo[{self.cost_type}]"


class CostCollection(ABaseModel):
    """Collection of cost functions with utility methods."""

    costs: list[CostInfo] = Field(default_factory=list)

    def add(self, *, cost_info: CostInfo) -> None:
        """Add a cost to the collection."""
        self.costs.append(cost_info)

    def filter_by_type(self, *, cost_type: CostType) -> list[CostInfo]:
        """Get all costs of a specific type."""
        return [c for c in self.costs if c.cost_type == cost_type]

    @property
    def total_costs(self) -> int:
        """Total number of costs."""
        return len(self.costs)

    def count_by_type(self) -> dict[str, int]:
        """Number of residual blocks per cost type."""
        counts: dict[str, int] = {}
        for cost_info in self.costs:
            counts[cost_info.cost_type] = counts.get(cost_info.cost_type, 0) + 1
        return counts

    def get_summary(self) -> dict[str, Any]:
        """Get summary statistics."""
        return {
            "total_costs": self.total_costs,
            "by_type": self.count_by_type(),
        }

    def log_summary(self) -> None:
        """Log a per-type breakdown of the collected costs."""
        logger.info("="*80)
        logger.info("COST SUMMARY")
        logger.info("="*80)
        logger.info(f"Total costs: {self.total_costs}")
        for cost_type, count in self.count_by_type().items():
            logger.info(f"  {cost_type:20s}: {count:6d} costs")
        logger.info("="*80)

    def to_optimizer(self, *, optimizer: Any) -> None:
        """Add all costs to an Optimizer.

        Args:
            optimizer: Optimizer instance
        """
        for cost_info in self.costs:
            optimizer.add_residual_block(
                cost=cost_info.cost,
                parameters=cost_info.parameters
            )
