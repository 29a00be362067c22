"""
Hartley normalization shared by the DLT / 8-point solvers.

Points are translated so their (weighted) centroid is at the origin and
scaled so the mean distance to it is sqrt(2):

    x_n = S @ [x, y, 1]^T,   S = [[s, 0, -s*cx],
                                  [0, s, -s*cy],
                                  [0, 0,     1]]
"""

from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from .types import Points2D, Mat3x3, FloatArray


def normalize_points(
        pts: Points2D,
        weights: Optional[FloatArray] = None,
        eps: float = 1e-12,
) -> Optional[Tuple[Points2D, Mat3x3]]:
    """
    Condition (N,2) points for a linear solve.

    Returns (normalized points (N,2), similarity S), or None when the points
    have no spread (all coincident), which leaves the scale undefined.
    """
    if pts.ndim != 2 or pts.shape[1] != 2:
        raise ValueError(f"Expected pts shape (N,2), got {pts.shape}")

    if weights is None:
        w = np.ones(pts.shape[0], dtype=np.float64)
    else:
        w = np.asarray(weights, dtype=np.float64)

    w_sum = float(np.sum(w))
    if w_sum <= eps:
        return None

    centroid = (w[:, None] * pts).sum(axis=0) / w_sum
    dist = np.linalg.norm(pts - centroid, axis=1)
    mean_dist = float(np.sum(w * dist) / w_sum)
    if not np.isfinite(mean_dist) or mean_dist <= eps:
        return None

    s = np.sqrt(2.0) / mean_dist
    S = np.array(
        [
            [s, 0.0, -s * centroid[0]],
            [0.0, s, -s * centroid[1]],
            [0.0, 0.0, 1.0],
        ],
        dtype=np.float64,
    )
    normalized = (pts - centroid) * s
    return normalized.astype(np.float64), S


def null_vector(A: FloatArray, rank_tol: float = 1e-10) -> Optional[FloatArray]:
    """
    Right singular vector of the smallest singular value of A.

    Returns None if the SVD fails or if the second-smallest singular value is
    also ~0 (the null space is more than one-dimensional, so the solution is
    not unique).
    """
    try:
        _, S, Vt = np.linalg.svd(A)
    except np.linalg.LinAlgError:
        return None

    n = A.shape[1]
    if S.shape[0] < n - 1 or S[0] <= 0.0:
        return None
    if S[n - 2] / S[0] < rank_tol:
        return None
    return Vt[-1]
