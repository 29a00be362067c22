"""
Adapter: makes the essential matrix functions conform to the Estimator Protocol.

Expects correspondences already normalized by the camera intrinsics (see
sigmasac.io.scene.normalize_correspondences); thresholds passed to the
engine must be scaled into the same units.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from .types import Correspondences, FloatArray, IntArray, Model, ModelKind, split_correspondences
from .essential import fit_essential_five_point, fit_essential_weighted
from .fundamental import squared_sampson_distances


@dataclass(frozen=True)
class EssentialEstimator:
    kind: ModelKind = field(default=ModelKind.ESSENTIAL, init=False)

    @property
    def sample_size(self) -> int:
        return 5

    @property
    def non_minimal_sample_size(self) -> int:
        return 8

    def estimate_minimal_models(self, points: Correspondences, sample: IntArray) -> List[Model]:
        pts0, pts1 = split_correspondences(points[sample])
        return [Model(E, self.kind) for E in fit_essential_five_point(pts0, pts1)]

    def estimate_non_minimal_model(
            self,
            points: Correspondences,
            indices: IntArray,
            weights: Optional[FloatArray] = None,
    ) -> Optional[Model]:
        pts0, pts1 = split_correspondences(points[indices])
        E = fit_essential_weighted(pts0, pts1, weights)
        return None if E is None else Model(E, self.kind)

    def squared_residuals(self, model: Model, points: Correspondences) -> FloatArray:
        pts0, pts1 = split_correspondences(points)
        return squared_sampson_distances(model.descriptor, pts0, pts1)

    def residuals(self, model: Model, points: Correspondences) -> FloatArray:
        return np.sqrt(self.squared_residuals(model, points))
