"""Cost builder for per-frame non-rigid mesh tracking.

Converts a template mesh, a frame (camera + image level) and a set of
energy weights into pyceres residual blocks:

    E = lambda_data * sum_v data(v)
      + lambda_tv * sum_(v,n) tv(v, n)
      + lambda_rot_tv * sum_(v,n) rot_tv(v, n)
      + lambda_inextent * sum_(v,n) inextent(v, n)
      + lambda_arap * sum_(v,n) arap(v, n)
      + lambda_deform * sum_v deform(v)
      + temporal(rotation, translation)

Edges are directed (vertex, neighbor) pairs; use edges_from_faces() to
get both directions of every triangle edge.
"""

import logging

import numpy as np
from pydantic import Field, model_validator
from typing_extensions import Self

from skellymesh.core.config import BundleAdjustmentType, TrackingWeightConfig
from skellymesh.core.cost_primatives import (
    ARAPCost,
    CostCollection,
    CostInfo,
    DataTermErrorType,
    DeformCost,
    ImageProjectionCost,
    InextensibilityCost,
    RotTVCost,
    TemporalMotionCost,
    TVCost,
)
from skellymesh.core.optimizer import Optimizer
from skellymesh.data.arbitrary_types_model import ABaseModel
from skellymesh.data.camera import CameraInfo
from skellymesh.data.image_level import ImageLevel

logger = logging.getLogger(__name__)


def edges_from_faces(*, faces: np.ndarray) -> np.ndarray:
    """Directed, de-duplicated vertex-neighbor pairs of a triangle mesh.

    Args:
        faces: (n_faces, 3) vertex indices

    Returns:
        (n_edges, 2) int array with both (i, j) and (j, i) for every edge
    """
    faces = np.asarray(faces, dtype=np.int64)
    pairs = np.concatenate([
        faces[:, [0, 1]], faces[:, [1, 2]], faces[:, [2, 0]],
        faces[:, [1, 0]], faces[:, [2, 1]], faces[:, [0, 2]],
    ])
    return np.unique(pairs, axis=0)


class MeshTrackingCostBuilder(ABaseModel):
    """Build the tracking energy for one frame.

    Template data is borrowed by the cost functions: keep the arrays
    alive and unchanged until the solve finishes.

    Attributes:
        camera: Camera of the pyramid level being solved
        frame: Image level being solved
        template_vertices: (n_vertices, 3) template mesh positions
        edges: (n_edges, 2) directed vertex-neighbor pairs
        template_values: (n_vertices,) gray or (n_vertices, 3) color values
        weights: Energy term weights
        error_type: Data term comparison
        ba_type: Which parameter blocks are optimized
        prev_rotation: (3,) previous-frame rotation for the temporal term
        prev_translation: (3,) previous-frame translation for the temporal term
        verbose_temporal: Log temporal term operands on every evaluation
    """

    camera: CameraInfo
    frame: ImageLevel
    template_vertices: np.ndarray
    edges: np.ndarray = Field(default_factory=lambda: np.zeros((0, 2), dtype=np.int64))
    template_values: np.ndarray | None = None
    weights: TrackingWeightConfig = Field(default_factory=TrackingWeightConfig)
    error_type: DataTermErrorType = DataTermErrorType.INTENSITY
    ba_type: BundleAdjustmentType = BundleAdjustmentType.MOTION_STRUCTURE
    prev_rotation: np.ndarray | None = None
    prev_translation: np.ndarray | None = None
    verbose_temporal: bool = False

    @model_validator(mode="after")
    def validate_inputs(self) -> Self:
        """Validate template shapes against the enabled terms."""
        if self.template_vertices.ndim != 2 or self.template_vertices.shape[1] != 3:
            raise ValueError(
                f"template_vertices must be (n_vertices, 3), got {self.template_vertices.shape}"
            )

        if self.edges.ndim != 2 or self.edges.shape[1] != 2:
            raise ValueError(f"edges must be (n_edges, 2), got {self.edges.shape}")

        if len(self.edges) > 0 and (self.edges.min() < 0 or self.edges.max() >= self.n_vertices):
            raise ValueError(f"edges reference vertices outside [0, {self.n_vertices})")

        needs_values = self.error_type in (DataTermErrorType.INTENSITY, DataTermErrorType.COLOR)
        if self.weights.lambda_data > 0.0 and needs_values:
            if self.template_values is None:
                raise ValueError(f"{self.error_type.name} data term needs template_values")
            if len(self.template_values) != self.n_vertices:
                raise ValueError(
                    f"template_values has {len(self.template_values)} entries, "
                    f"expected {self.n_vertices}"
                )

        if self.weights.lambda_temporal_rot > 0.0 or self.weights.lambda_temporal_trans > 0.0:
            if self.prev_rotation is None or self.prev_translation is None:
                raise ValueError("Temporal motion term needs prev_rotation and prev_translation")

        return self

    @property
    def n_vertices(self) -> int:
        """Number of template vertices."""
        return int(self.template_vertices.shape[0])

    @property
    def uses_local_rotations(self) -> bool:
        """Whether ARAP or rotation TV terms are enabled."""
        return self.weights.lambda_arap > 0.0 or self.weights.lambda_rot_tv > 0.0

    @property
    def uses_motion(self) -> bool:
        """Whether any term reads the rigid rotation/translation."""
        return (
            self.weights.lambda_data > 0.0
            or self.weights.lambda_temporal_rot > 0.0
            or self.weights.lambda_temporal_trans > 0.0
        )

    def build_all_costs(
        self,
        *,
        rotation: np.ndarray,
        translation: np.ndarray,
        vertex_blocks: list[np.ndarray],
        local_rotation_blocks: list[np.ndarray] | None = None
    ) -> CostCollection:
        """Build every enabled residual block.

        Args:
            rotation: (3,) rigid rotation parameter block
            translation: (3,) rigid translation parameter block
            vertex_blocks: Per-vertex (3,) position parameter blocks
            local_rotation_blocks: Per-vertex (3,) local rotation blocks
                (required when ARAP or rotation TV is enabled)

        Returns:
            CostCollection with all generated costs

        Raises:
            ValueError: If block counts do not match the template
        """
        if len(vertex_blocks) != self.n_vertices:
            raise ValueError(f"Got {len(vertex_blocks)} vertex blocks, expected {self.n_vertices}")

        if self.uses_local_rotations:
            if local_rotation_blocks is None or len(local_rotation_blocks) != self.n_vertices:
                raise ValueError("ARAP / rotation TV terms need one local rotation block per vertex")

        costs = CostCollection()
        weights = self.weights

        if weights.lambda_data > 0.0:
            for vertex_index, vertex_block in enumerate(vertex_blocks):
                value = None if self.template_values is None else self.template_values[vertex_index]
                cost = ImageProjectionCost(
                    weight=weights.lambda_data,
                    camera=self.camera,
                    frame=self.frame,
                    error_type=self.error_type,
                    value=value
                )
                costs.add(cost_info=CostInfo(
                    cost=cost,
                    parameters=[rotation, translation, vertex_block],
                    cost_type="data",
                    weight=weights.lambda_data,
                    vertex_index=vertex_index
                ))

        for vertex_index, neighbor_index in self.edges:
            vertex_index = int(vertex_index)
            neighbor_index = int(neighbor_index)
            reference_vertex = self.template_vertices[vertex_index]
            reference_neighbor = self.template_vertices[neighbor_index]
            edge_blocks = [vertex_blocks[vertex_index], vertex_blocks[neighbor_index]]

            if weights.lambda_tv > 0.0:
                costs.add(cost_info=CostInfo(
                    cost=TVCost(
                        reference_vertex=reference_vertex,
                        reference_neighbor=reference_neighbor,
                        weight=weights.lambda_tv
                    ),
                    parameters=edge_blocks,
                    cost_type="tv",
                    weight=weights.lambda_tv,
                    vertex_index=vertex_index,
                    neighbor_index=neighbor_index
                ))

            if weights.lambda_inextent > 0.0:
                costs.add(cost_info=CostInfo(
                    cost=InextensibilityCost(
                        reference_vertex=reference_vertex,
                        reference_neighbor=reference_neighbor,
                        weight=weights.lambda_inextent
                    ),
                    parameters=edge_blocks,
                    cost_type="inextent",
                    weight=weights.lambda_inextent,
                    vertex_index=vertex_index,
                    neighbor_index=neighbor_index
                ))

            if weights.lambda_arap > 0.0:
                costs.add(cost_info=CostInfo(
                    cost=ARAPCost(
                        reference_vertex=reference_vertex,
                        reference_neighbor=reference_neighbor,
                        weight=weights.lambda_arap
                    ),
                    parameters=edge_blocks + [local_rotation_blocks[vertex_index]],
                    cost_type="arap",
                    weight=weights.lambda_arap,
                    vertex_index=vertex_index,
                    neighbor_index=neighbor_index
                ))

            if weights.lambda_rot_tv > 0.0:
                costs.add(cost_info=CostInfo(
                    cost=RotTVCost(weight=weights.lambda_rot_tv),
                    parameters=[
                        local_rotation_blocks[vertex_index],
                        local_rotation_blocks[neighbor_index],
                    ],
                    cost_type="rot_tv",
                    weight=weights.lambda_rot_tv,
                    vertex_index=vertex_index,
                    neighbor_index=neighbor_index
                ))

        if weights.lambda_deform > 0.0:
            for vertex_index, vertex_block in enumerate(vertex_blocks):
                costs.add(cost_info=CostInfo(
                    cost=DeformCost(
                        reference_vertex=self.template_vertices[vertex_index],
                        weight=weights.lambda_deform
                    ),
                    parameters=[vertex_block],
                    cost_type="deform",
                    weight=weights.lambda_deform,
                    vertex_index=vertex_index
                ))

        if weights.lambda_temporal_rot > 0.0 or weights.lambda_temporal_trans > 0.0:
            costs.add(cost_info=CostInfo(
                cost=TemporalMotionCost(
                    prev_rotation=self.prev_rotation,
                    prev_translation=self.prev_translation,
                    rot_weight=weights.lambda_temporal_rot,
                    trans_weight=weights.lambda_temporal_trans,
                    verbose=self.verbose_temporal
                ),
                parameters=[rotation, translation],
                cost_type="temporal_motion",
                weight=1.0
            ))

        return costs

    def add_to_optimizer(
        self,
        *,
        optimizer: Optimizer,
        rotation: np.ndarray,
        translation: np.ndarray,
        vertices: np.ndarray,
        local_rotations: np.ndarray | None = None
    ) -> CostCollection:
        """Register parameter blocks and residual blocks with an optimizer.

        Vertex and local rotation blocks are row views of the given
        (n_vertices, 3) arrays, so the solver updates them in place.

        Args:
            optimizer: Optimizer to populate
            rotation: (3,) rigid rotation, float64
            translation: (3,) rigid translation, float64
            vertices: (n_vertices, 3) C-contiguous float64 vertex positions
            local_rotations: (n_vertices, 3) C-contiguous float64 local rotations

        Returns:
            CostCollection that was added

        Raises:
            ValueError: If vertices/local rotations have the wrong layout
        """
        _check_block_array(name="vertices", array=vertices, n_rows=self.n_vertices)
        vertex_blocks = [vertices[i] for i in range(self.n_vertices)]

        local_rotation_blocks = None
        if self.uses_local_rotations:
            if local_rotations is None:
                raise ValueError("ARAP / rotation TV terms need local_rotations")
            _check_block_array(name="local_rotations", array=local_rotations, n_rows=self.n_vertices)
            local_rotation_blocks = [local_rotations[i] for i in range(self.n_vertices)]

        costs = self.build_all_costs(
            rotation=rotation,
            translation=translation,
            vertex_blocks=vertex_blocks,
            local_rotation_blocks=local_rotation_blocks
        )

        if self.uses_motion:
            optimizer.add_parameter_block(name="rotation", parameters=rotation)
            optimizer.add_parameter_block(name="translation", parameters=translation)

        for vertex_index, vertex_block in enumerate(vertex_blocks):
            optimizer.add_parameter_block(name=f"vertex_{vertex_index}", parameters=vertex_block)

        if local_rotation_blocks is not None:
            for vertex_index, rotation_block in enumerate(local_rotation_blocks):
                optimizer.add_parameter_block(name=f"local_rotation_{vertex_index}", parameters=rotation_block)

        costs.to_optimizer(optimizer=optimizer)

        if self.uses_motion and not self.ba_type.optimizes_motion:
            optimizer.set_parameter_constant(parameters=rotation)
            optimizer.set_parameter_constant(parameters=translation)

        if not self.ba_type.optimizes_structure:
            for vertex_block in vertex_blocks:
                optimizer.set_parameter_constant(parameters=vertex_block)
            for rotation_block in local_rotation_blocks or []:
                optimizer.set_parameter_constant(parameters=rotation_block)

        logger.info(
            f"Built tracking problem: {self.n_vertices} vertices, {len(self.edges)} edges, "
            f"data term {self.error_type.name}, bundle adjustment {self.ba_type.name}"
        )
        costs.log_summary()

        return costs


def _check_block_array(*, name: str, array: np.ndarray, n_rows: int) -> None:
    if array.shape != (n_rows, 3):
        raise ValueError(f"{name} must be ({n_rows}, 3), got {array.shape}")
    if array.dtype != np.float64 or not array.flags.c_contiguous:
        raise ValueError(f"{name} must be a C-contiguous float64 array")
