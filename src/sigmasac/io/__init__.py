from .scene import (
    Scene, read_points, load_matrix, normalize_correspondences, threshold_normalizer, load_scene,
)

__all__ = [
    "Scene", "read_points", "load_matrix", "normalize_correspondences", "threshold_normalizer",
    "load_scene",
]
