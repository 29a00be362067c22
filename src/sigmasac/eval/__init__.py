from .metrics import (
    LABEL_REFINEMENT_THRESHOLDS, subset_from_labeling, refine_manual_labeling, reference_inliers, rmse, inlier_count,
)
from .synthetic import synthetic_homography_scene, synthetic_two_view_scene

__all__ = [
    "LABEL_REFINEMENT_THRESHOLDS", "subset_from_labeling", "refine_manual_labeling", "reference_inliers",
    "rmse", "inlier_count",
    "synthetic_homography_scene", "synthetic_two_view_scene",
]
