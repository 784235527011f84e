"""Problem builders that turn tracking inputs into pyceres energies."""

from .mesh_tracking_cost_builder import MeshTrackingCostBuilder, edges_from_faces

__all__ = [
    "MeshTrackingCostBuilder",
    "edges_from_faces",
]
