"""
Evaluation helpers for annotated scenes.

Manual annotations are often slightly off; refine_manual_labeling fits a
model to the annotated inliers and relabels every point against it, so the
reference inlier set used for RMSE is consistent with the geometry.
"""

from __future__ import annotations

from typing import Dict, Optional

import numpy as np

from ..consensus.core import get_model_inliers_mask
from ..consensus.types import Correspondences, Estimator, IntArray, Model, ModelKind

# Pixels. Fundamental matrix annotations are refined at the LO*-RANSAC
# threshold; essential matrix scenes use the annotation as given.
LABEL_REFINEMENT_THRESHOLDS: Dict[ModelKind, Optional[float]] = {
    ModelKind.HOMOGRAPHY: 2.0,
    ModelKind.FUNDAMENTAL: 0.35,
    ModelKind.ESSENTIAL: None,
}


def subset_from_labeling(labels: IntArray, label: int = 1) -> IntArray:
    """Indices of the points carrying `label`."""
    return np.flatnonzero(np.asarray(labels) == label).astype(np.intp)


def refine_manual_labeling(
        points: Correspondences,
        labels: IntArray,
        estimator: Estimator,
        threshold: float,
) -> Optional[IntArray]:
    """
    Refit a model on the annotated inliers and relabel all points:
    1 where the residual is <= threshold, 0 elsewhere.

    Returns None if the annotated inliers do not determine a model.
    """
    inliers = subset_from_labeling(labels, 1)
    if inliers.size < estimator.non_minimal_sample_size:
        return None

    model = estimator.estimate_non_minimal_model(points, inliers)
    if model is None:
        return None

    residuals = estimator.residuals(model, points)
    return (residuals <= threshold).astype(np.intp)


def reference_inliers(
        points: Correspondences,
        labels: IntArray,
        estimator: Estimator,
        threshold: Optional[float] = None,
) -> IntArray:
    """
    Indices of the ground truth inliers used for evaluation.

    With a threshold, the annotation is refined (see refine_manual_labeling)
    and the larger of the annotated and refined inlier sets is kept.
    """
    inliers = subset_from_labeling(labels, 1)
    if threshold is None:
        return inliers

    refined = refine_manual_labeling(points, labels, estimator, threshold)
    if refined is None:
        return inliers
    refined_inliers = subset_from_labeling(refined, 1)
    return refined_inliers if refined_inliers.size > inliers.size else inliers


def rmse(estimator: Estimator, model: Model, points: Correspondences, indices: IntArray) -> float:
    """
    Root mean squared residual over the selected points (e.g. the ground
    truth inliers). inf if no point is selected.
    """
    indices = np.asarray(indices, dtype=np.intp)
    if indices.size == 0:
        return float("inf")
    sq = estimator.squared_residuals(model, points[indices])
    return float(np.sqrt(np.mean(sq)))


def inlier_count(estimator: Estimator, model: Model, points: Correspondences, threshold: float) -> int:
    """Number of points with residual <= threshold."""
    return int(np.count_nonzero(get_model_inliers_mask(points, model, estimator, threshold)))
