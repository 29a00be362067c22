"""
Shared typed primitives for the sigma-consensus estimator.

Defines:
- Typed NumPy aliases for geometry
    - Correspondences are (N,4) float arrays: x1, y1, x2, y2
    - Models are 3x3 matrices tagged with their kind
- Estimator protocol (one concrete adapter per model kind)
- Model score and structured run result containers
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Tuple, TypeAlias

import numpy as np
import numpy.typing as npt

# ---------- Numpy typing aliases ----------
# - float64 for geometry / matrices (more stable for linear algebra)
# - bool_ for masks
# - intp for point indices

FloatArray: TypeAlias = npt.NDArray[np.float64]
BoolArray: TypeAlias = npt.NDArray[np.bool_]
IntArray: TypeAlias = npt.NDArray[np.intp]

# Points in 2D image coordinates.
Points2D: TypeAlias = FloatArray          # shape: (N, 2)

# Homogeneous points [x, y, 1].
PointsHomog: TypeAlias = FloatArray       # shape: (N, 3)

# Correspondence matrix, one row per match: [x1, y1, x2, y2, (extra columns ignored)]
# Row order is the canonical point index used everywhere.
Correspondences: TypeAlias = FloatArray   # shape: (N, >=4)

# Boolean inlier mask: True as inlier, False as outlier
Mask: TypeAlias = BoolArray               # shape: (N,)

# 3x3 model matrix (homography, fundamental or essential).
Mat3x3: TypeAlias = FloatArray            # shape: (3, 3)


class ModelKind(enum.Enum):
    HOMOGRAPHY = "homography"
    FUNDAMENTAL = "fundamental"
    ESSENTIAL = "essential"


@dataclass(frozen=True)
class Model:
    """
    A model descriptor: a 3x3 matrix plus the kind of geometry it encodes.

    The matrix belongs to whoever receives the model; nothing in the
    estimator writes to it after construction.
    """
    descriptor: Mat3x3
    kind: ModelKind


@dataclass(frozen=True, order=True)
class ModelScore:
    """
    Quality of a model.

    Ordered primarily by the continuous sigma-consensus score, ties broken
    by the number of inliers under the reference threshold.
    """
    score: float = 0.0
    inlier_number: int = 0

    @classmethod
    def worst(cls) -> "ModelScore":
        return cls(score=float("-inf"), inlier_number=0)


class RunStatus(enum.Enum):
    SUCCESS = "success"
    INSUFFICIENT_DATA = "insufficient_data"   # fewer points than a minimal sample
    RUN_EXHAUSTED = "run_exhausted"           # budget consumed, no valid model ever found


class Estimator(Protocol):
    """
    Interface a model kind must implement to be usable by the sigma-consensus engine.

    Engine steps:
    1) Fit candidate models from a minimal sample
    2) Refit a better model from a weighted, non-minimal subset
    3) Score all correspondences with a per-point residual
    """

    kind: ModelKind

    @property
    def sample_size(self) -> int:
        """Size of a minimal sample (4 homography, 7/8 fundamental, 5 essential)."""
        ...

    @property
    def non_minimal_sample_size(self) -> int:
        """Fewest points the weighted least-squares solver accepts."""
        ...

    def estimate_minimal_models(self, points: Correspondences, sample: IntArray) -> List[Model]:
        """
        Fit from a minimal sample of point indices.
        Return an empty list if the sample is degenerate.
        """
        ...

    def estimate_non_minimal_model(
            self,
            points: Correspondences,
            indices: IntArray,
            weights: Optional[FloatArray] = None,
    ) -> Optional[Model]:
        """
        Weighted least-squares refit from an arbitrary subset.
        `weights` is aligned with `indices`. Return None if the solve fails.
        """
        ...

    def residuals(self, model: Model, points: Correspondences) -> FloatArray:
        """Non-negative residual per correspondence, shape (N,)."""
        ...

    def squared_residuals(self, model: Model, points: Correspondences) -> FloatArray:
        """Squared residual per correspondence, shape (N,)."""
        ...


# ---------- Run output container ----------
@dataclass(frozen=True)
class SigmaConsensusResult:
    status: RunStatus
    model: Optional[Model]          # best model found, None on failure
    score: ModelScore               # score of the best model
    iterations: int                 # how many iterations were actually run
    iteration_limit: int            # adaptive budget at the end of the run
    score_history: Tuple[float, ...] = field(default=())   # best score after each iteration

    @property
    def success(self) -> bool:
        return self.status is RunStatus.SUCCESS and self.model is not None


# ---------- Helper Functions ----------
def split_correspondences(points: Correspondences) -> Tuple[Points2D, Points2D]:
    """
    Split an (N,>=4) correspondence matrix into source and destination (N,2) points.
    """
    if points.ndim != 2 or points.shape[1] < 4:
        raise ValueError(f"Expected correspondences of shape (N, >=4) but got {points.shape}")
    return points[:, 0:2].astype(np.float64), points[:, 2:4].astype(np.float64)


def as_homogeneous(pts: Points2D) -> PointsHomog:
    """
    Convert (N,2) points -> (N,3) homogeneous points: [x, y, 1].
    """
    if pts.ndim != 2 or pts.shape[1] != 2:
        raise ValueError(f"Expected points shape (N, 2) but got {pts.shape}")

    ones = np.ones((pts.shape[0], 1), dtype=np.float64)
    return np.hstack([pts.astype(np.float64), ones])


def is_valid_mat3x3(T: Mat3x3) -> bool:
    """
    Verify a 3x3 model matrix.
    Used for rejecting failed fits.
    """
    return isinstance(T, np.ndarray) and T.shape == (3, 3) and bool(np.isfinite(T).all())
