from .points_io import read_centroids, read_points, write_centroids, write_points
from .validation import validate_inputs

__all__ = [
    "read_points",
    "read_centroids",
    "write_points",
    "write_centroids",
    "validate_inputs",
]
