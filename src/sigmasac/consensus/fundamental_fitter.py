"""
Adapter: makes the fundamental matrix functions conform to the Estimator Protocol.

The minimal solver is the 7-point algorithm by default; the 8-point
algorithm can be used instead (fewer candidates per sample, one more point
per sample).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from .types import Correspondences, FloatArray, IntArray, Model, ModelKind, split_correspondences
from .fundamental import (
    fit_fundamental_seven_point, fit_fundamental_eight_point, squared_sampson_distances,
)

SEVEN_POINT = "seven_point"
EIGHT_POINT = "eight_point"


@dataclass(frozen=True)
class FundamentalEstimator:
    minimal_solver: str = SEVEN_POINT
    kind: ModelKind = field(default=ModelKind.FUNDAMENTAL, init=False)

    def __post_init__(self):
        if self.minimal_solver not in (SEVEN_POINT, EIGHT_POINT):
            raise ValueError(f"Unknown minimal solver {self.minimal_solver!r}")

    @property
    def sample_size(self) -> int:
        return 7 if self.minimal_solver == SEVEN_POINT else 8

    @property
    def non_minimal_sample_size(self) -> int:
        return 8

    def estimate_minimal_models(self, points: Correspondences, sample: IntArray) -> List[Model]:
        pts0, pts1 = split_correspondences(points[sample])
        if self.minimal_solver == SEVEN_POINT:
            return [Model(F, self.kind) for F in fit_fundamental_seven_point(pts0, pts1)]

        F = fit_fundamental_eight_point(pts0, pts1)
        return [] if F is None else [Model(F, self.kind)]

    def estimate_non_minimal_model(
            self,
            points: Correspondences,
            indices: IntArray,
            weights: Optional[FloatArray] = None,
    ) -> Optional[Model]:
        pts0, pts1 = split_correspondences(points[indices])
        F = fit_fundamental_eight_point(pts0, pts1, weights)
        return None if F is None else Model(F, self.kind)

    def squared_residuals(self, model: Model, points: Correspondences) -> FloatArray:
        pts0, pts1 = split_correspondences(points)
        return squared_sampson_distances(model.descriptor, pts0, pts1)

    def residuals(self, model: Model, points: Correspondences) -> FloatArray:
        return np.sqrt(self.squared_residuals(model, points))
