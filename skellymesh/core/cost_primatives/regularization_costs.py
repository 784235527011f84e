"""Mesh regularization cost functions.

These keep the tracked mesh close to the template mesh shape while the
data terms pull individual vertices toward the observations.

Cost Functions:
- TVCost: Vertex-to-neighbor offset should match the template offset
- RotTVCost: Neighboring local rotations should agree
- InextensibilityCost: Edge lengths should match the template
- ARAPCost: Edges should be rotated template edges (as-rigid-as-possible)
- DeformCost: Vertex should stay near a reference position
"""

import numpy as np

from skellymesh.geometry.rotation import (
    angle_axis_rotate_point,
    angle_axis_rotate_point_jacobians,
)
from .base_cost import BaseCostFunction, borrow


class TVCost(BaseCostFunction):
    """Total variation of vertex offsets against the template.

    Model:
        residual = (ref_vertex - ref_neighbor) - (vertex - neighbor)
    """

    def __init__(
        self,
        *,
        reference_vertex: np.ndarray,
        reference_neighbor: np.ndarray,
        weight: float = 1.0
    ) -> None:
        """Initialize TV cost.

        Args:
            reference_vertex: (3,) template vertex (borrowed)
            reference_neighbor: (3,) template neighbor (borrowed)
            weight: Weight for this cost term
        """
        super().__init__(weight=weight)
        self.reference_vertex = borrow(reference_vertex)
        self.reference_neighbor = borrow(reference_neighbor)
        self.set_num_residuals(3)
        self.set_parameter_block_sizes([3, 3])

    def _compute_residual(
        self,
        parameters: list[np.ndarray]
    ) -> np.ndarray:
        """Compute residual as offset difference.

        Args:
            parameters: [vertex, neighbor]

        Returns:
            3D residual
        """
        vertex = parameters[0]
        neighbor = parameters[1]

        reference_diff = self.reference_vertex - self.reference_neighbor
        current_diff = vertex - neighbor

        return reference_diff - current_diff

    def _compute_jacobians(
        self,
        *,
        parameters: list[np.ndarray],
        residuals: np.ndarray,
        jacobians: list[np.ndarray]
    ) -> None:
        """Analytic jacobians: -I for the vertex, +I for the neighbor."""
        identity = np.eye(3) * self.weight
        self._write_jacobian(jacobians=jacobians, index=0, matrix=-identity)
        self._write_jacobian(jacobians=jacobians, index=1, matrix=identity)


class RotTVCost(BaseCostFunction):
    """Smoothness of per-vertex local rotations.

    Model:
        residual = rotation - neighbor_rotation
    """

    def __init__(self, *, weight: float = 1.0) -> None:
        """Initialize rotation TV cost.

        Args:
            weight: Weight for this cost term
        """
        super().__init__(weight=weight)
        self.set_num_residuals(3)
        self.set_parameter_block_sizes([3, 3])

    def _compute_residual(
        self,
        parameters: list[np.ndarray]
    ) -> np.ndarray:
        rotation = parameters[0]
        neighbor_rotation = parameters[1]

        return rotation - neighbor_rotation

    def _compute_jacobians(
        self,
        *,
        parameters: list[np.ndarray],
        residuals: np.ndarray,
        jacobians: list[np.ndarray]
    ) -> None:
        identity = np.eye(3) * self.weight
        self._write_jacobian(jacobians=jacobians, index=0, matrix=identity)
        self._write_jacobian(jacobians=jacobians, index=1, matrix=-identity)


class InextensibilityCost(BaseCostFunction):
    """Edge length preservation against the template.

    Model:
        residual = ||ref_vertex - ref_neighbor|| - ||vertex - neighbor||
    """

    def __init__(
        self,
        *,
        reference_vertex: np.ndarray,
        reference_neighbor: np.ndarray,
        weight: float = 1.0
    ) -> None:
        """Initialize inextensibility cost.

        Args:
            reference_vertex: (3,) template vertex (borrowed)
            reference_neighbor: (3,) template neighbor (borrowed)
            weight: Weight for this cost term
        """
        super().__init__(weight=weight)
        self.reference_vertex = borrow(reference_vertex)
        self.reference_neighbor = borrow(reference_neighbor)
        self.set_num_residuals(1)
        self.set_parameter_block_sizes([3, 3])

    def _compute_residual(
        self,
        parameters: list[np.ndarray]
    ) -> np.ndarray:
        """Compute residual as edge length change.

        Args:
            parameters: [vertex, neighbor]

        Returns:
            1D residual
        """
        current_length = np.linalg.norm(parameters[0] - parameters[1])
        reference_length = np.linalg.norm(self.reference_vertex - self.reference_neighbor)

        return np.array([reference_length - current_length])

    def _compute_jacobians(
        self,
        *,
        parameters: list[np.ndarray],
        residuals: np.ndarray,
        jacobians: list[np.ndarray]
    ) -> None:
        """Analytic jacobians of the edge length.

        d||d||/dd = d / ||d||, zero for degenerate (zero length) edges.
        """
        diff = parameters[0] - parameters[1]
        length = np.linalg.norm(diff)

        if length < 1e-12:
            direction = np.zeros(3)
        else:
            direction = diff / length

        row = (self.weight * direction).reshape(1, 3)
        self._write_jacobian(jacobians=jacobians, index=0, matrix=-row)
        self._write_jacobian(jacobians=jacobians, index=1, matrix=row)


class ARAPCost(BaseCostFunction):
    """As-rigid-as-possible edge term.

    The local rotation maps the template mesh onto the current mesh.

    Model:
        residual = (vertex - neighbor) - rotate(local_rotation, ref_vertex - ref_neighbor)
    """

    def __init__(
        self,
        *,
        reference_vertex: np.ndarray,
        reference_neighbor: np.ndarray,
        weight: float = 1.0
    ) -> None:
        """Initialize ARAP cost.

        Args:
            reference_vertex: (3,) template vertex (borrowed)
            reference_neighbor: (3,) template neighbor (borrowed)
            weight: Weight for this cost term
        """
        super().__init__(weight=weight)
        self.reference_vertex = borrow(reference_vertex)
        self.reference_neighbor = borrow(reference_neighbor)
        self.set_num_residuals(3)
        self.set_parameter_block_sizes([3, 3, 3])

    def _compute_residual(
        self,
        parameters: list[np.ndarray]
    ) -> np.ndarray:
        """Compute residual against the rotated template edge.

        Args:
            parameters: [vertex, neighbor, local_rotation]

        Returns:
            3D residual
        """
        vertex = parameters[0]
        neighbor = parameters[1]
        local_rotation = parameters[2]

        template_diff = self.reference_vertex - self.reference_neighbor
        rotated_template_diff = angle_axis_rotate_point(
            angle_axis=local_rotation,
            point=template_diff
        )

        return (vertex - neighbor) - rotated_template_diff

    def _compute_jacobians(
        self,
        *,
        parameters: list[np.ndarray],
        residuals: np.ndarray,
        jacobians: list[np.ndarray]
    ) -> None:
        identity = np.eye(3) * self.weight
        self._write_jacobian(jacobians=jacobians, index=0, matrix=identity)
        self._write_jacobian(jacobians=jacobians, index=1, matrix=-identity)

        if jacobians[2] is not None:
            template_diff = self.reference_vertex - self.reference_neighbor
            d_rotation, _ = angle_axis_rotate_point_jacobians(
                angle_axis=parameters[2],
                point=template_diff
            )
            self._write_jacobian(jacobians=jacobians, index=2, matrix=-self.weight * d_rotation)


class DeformCost(BaseCostFunction):
    """Anchor a vertex toward a fixed reference position.

    Model:
        residual = vertex - ref_vertex
    """

    def __init__(
        self,
        *,
        reference_vertex: np.ndarray,
        weight: float = 1.0
    ) -> None:
        """Initialize deform cost.

        Args:
            reference_vertex: (3,) anchor position (borrowed)
            weight: Weight for this cost term
        """
        super().__init__(weight=weight)
        self.reference_vertex = borrow(reference_vertex)
        self.set_num_residuals(3)
        self.set_parameter_block_sizes([3])

    def _compute_residual(
        self,
        parameters: list[np.ndarray]
    ) -> np.ndarray:
        return parameters[0] - self.reference_vertex

    def _compute_jacobians(
        self,
        *,
        parameters: list[np.ndarray],
        residuals: np.ndarray,
        jacobians: list[np.ndarray]
    ) -> None:
        self._write_jacobian(jacobians=jacobians, index=0, matrix=np.eye(3) * self.weight)
