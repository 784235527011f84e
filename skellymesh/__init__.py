"""SkellyMesh: residual terms and pyceres glue for non-rigid mesh tracking."""

__version__ = "0.1.0"
