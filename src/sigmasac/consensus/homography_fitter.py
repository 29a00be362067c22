"""
Adapter: makes the homography functions conform to the Estimator Protocol.

This keeps consensus/core.py generic and reusable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from .types import Correspondences, FloatArray, IntArray, Model, ModelKind, split_correspondences
from .homography import fit_homography_minimal, fit_homography_weighted, squared_reprojection_errors


@dataclass(frozen=True)
class HomographyEstimator:
    eps_area: float = 1e-6
    kind: ModelKind = field(default=ModelKind.HOMOGRAPHY, init=False)

    @property
    def sample_size(self) -> int:
        return 4

    @property
    def non_minimal_sample_size(self) -> int:
        return 4

    def estimate_minimal_models(self, points: Correspondences, sample: IntArray) -> List[Model]:
        pts0, pts1 = split_correspondences(points[sample])
        H = fit_homography_minimal(pts0, pts1, eps_area=self.eps_area)
        return [] if H is None else [Model(H, self.kind)]

    def estimate_non_minimal_model(
            self,
            points: Correspondences,
            indices: IntArray,
            weights: Optional[FloatArray] = None,
    ) -> Optional[Model]:
        pts0, pts1 = split_correspondences(points[indices])
        H = fit_homography_weighted(pts0, pts1, weights)
        return None if H is None else Model(H, self.kind)

    def squared_residuals(self, model: Model, points: Correspondences) -> FloatArray:
        pts0, pts1 = split_correspondences(points)
        return squared_reprojection_errors(model.descriptor, pts0, pts1)

    def residuals(self, model: Model, points: Correspondences) -> FloatArray:
        return np.sqrt(self.squared_residuals(model, points))
