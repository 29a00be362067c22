"""
Fundamental matrix utilities.

F relates corresponding points through the epipolar constraint:

    [x2, y2, 1] @ F @ [x1, y1, 1]^T = 0

F has 7 degrees of freedom (9 entries up to scale, det(F) = 0). Expanding
the constraint gives one row of A f = 0 per correspondence, with f = F
flattened row-major:

    [x2*x1, x2*y1, x2, y2*x1, y2*y1, y2, x1, y1, 1]

- 7-point solver: A has a 2-D null space {F1, F2}; det(a*F1 + (1-a)*F2) = 0
  is a cubic in a with one or three real roots, each a candidate F.
- 8-point solver: 1-D null space, then the rank-2 constraint is enforced
  by zeroing the smallest singular value.
"""

from __future__ import annotations

from typing import List, Optional

import numpy as np

from .conditioning import normalize_points, null_vector
from .types import Points2D, Mat3x3, FloatArray, as_homogeneous, is_valid_mat3x3


def _epipolar_rows(pts0: Points2D, pts1: Points2D) -> FloatArray:
    """Build the (N, 9) epipolar design matrix."""
    x1, y1 = pts0[:, 0], pts0[:, 1]
    x2, y2 = pts1[:, 0], pts1[:, 1]
    ones = np.ones(pts0.shape[0], dtype=np.float64)
    return np.stack([x2 * x1, x2 * y1, x2, y2 * x1, y2 * y1, y2, x1, y1, ones], axis=1)


def _denormalize(F_n: Mat3x3, S0: Mat3x3, S1: Mat3x3) -> Optional[Mat3x3]:
    """F = S1^T @ F_n @ S0, scaled to unit Frobenius norm."""
    F = S1.T @ F_n @ S0
    norm = float(np.linalg.norm(F))
    if not np.isfinite(norm) or norm <= 0.0:
        return None
    F = F / norm
    if not is_valid_mat3x3(F):
        return None
    return F.astype(np.float64)


def enforce_rank2(F: Mat3x3) -> Optional[Mat3x3]:
    """Closest rank-2 matrix in Frobenius norm."""
    try:
        U, S, Vt = np.linalg.svd(F)
    except np.linalg.LinAlgError:
        return None
    S[2] = 0.0
    return U @ np.diag(S) @ Vt


def fit_fundamental_seven_point(pts0: Points2D, pts1: Points2D, rank_tol: float = 1e-10) -> List[Mat3x3]:
    """
    Fit fundamental matrices from exactly 7 correspondences.

    Returns up to three candidate matrices; an empty list if the sample is
    degenerate (the design matrix has rank < 7, e.g. collinear points).
    """
    if pts0.shape != (7, 2) or pts1.shape != (7, 2):
        raise ValueError(f"fit_fundamental_seven_point expects (7,2) inputs, got {pts0.shape} and {pts1.shape}")

    cond0 = normalize_points(pts0)
    cond1 = normalize_points(pts1)
    if cond0 is None or cond1 is None:
        return []
    n0, S0 = cond0
    n1, S1 = cond1

    A = _epipolar_rows(n0, n1)
    try:
        _, S, Vt = np.linalg.svd(A)
    except np.linalg.LinAlgError:
        return []
    if S[0] <= 0.0 or S[6] / S[0] < rank_tol:
        return []

    F1 = Vt[7].reshape(3, 3)
    F2 = Vt[8].reshape(3, 3)

    # det(a*F1 + (1-a)*F2) is a cubic in a; four samples pin it down exactly.
    alphas = np.array([0.0, 1.0, -1.0, 2.0])
    dets = [np.linalg.det(a * F1 + (1.0 - a) * F2) for a in alphas]
    coeffs = np.polyfit(alphas, dets, 3)

    models: List[Mat3x3] = []
    for root in np.roots(coeffs):
        if abs(root.imag) > 1e-8 * max(1.0, abs(root.real)):
            continue
        a = float(root.real)
        F = _denormalize(a * F1 + (1.0 - a) * F2, S0, S1)
        if F is not None:
            models.append(F)
    return models


def fit_fundamental_eight_point(
        pts0: Points2D,
        pts1: Points2D,
        weights: Optional[FloatArray] = None,
) -> Optional[Mat3x3]:
    """
    Fit a fundamental matrix from N >= 8 correspondences (normalized 8-point).

    Each row of the design matrix is multiplied by the point's weight.
    Points with zero weight are dropped. Returns None if fewer than 8 usable
    points remain or the null space is not unique.
    """
    if pts0.shape != pts1.shape:
        raise ValueError(f"pts0 and pts1 must have same shape, got {pts0.shape} vs {pts1.shape}")
    if pts0.ndim != 2 or pts0.shape[1] != 2:
        raise ValueError(f"Expected pts shape (N,2), got {pts0.shape}")

    if weights is None:
        weights = np.ones(pts0.shape[0], dtype=np.float64)
    weights = np.asarray(weights, dtype=np.float64)
    if weights.shape != (pts0.shape[0],):
        raise ValueError(f"Expected weights shape ({pts0.shape[0]},), got {weights.shape}")

    keep = weights > 0.0
    if int(np.count_nonzero(keep)) < 8:
        return None
    pts0, pts1, weights = pts0[keep], pts1[keep], weights[keep]

    cond0 = normalize_points(pts0, weights)
    cond1 = normalize_points(pts1, weights)
    if cond0 is None or cond1 is None:
        return None
    n0, S0 = cond0
    n1, S1 = cond1

    f = null_vector(_epipolar_rows(n0, n1) * weights[:, None])
    if f is None:
        return None

    F_n = enforce_rank2(f.reshape(3, 3))
    if F_n is None:
        return None
    return _denormalize(F_n, S0, S1)


def squared_sampson_distances(F: Mat3x3, pts0: Points2D, pts1: Points2D, eps: float = 1e-18) -> FloatArray:
    """
    Squared Sampson distance, the first-order approximation of the squared
    geometric error to the epipolar lines:

        d^2 = (x2^T F x1)^2 / ((F x1)_1^2 + (F x1)_2^2 + (F^T x2)_1^2 + (F^T x2)_2^2)

    Returns shape (N,)
    """
    if pts0.shape != pts1.shape:
        raise ValueError(f"pts0 and pts1 must have same shape, got {pts0.shape} vs {pts1.shape}")

    x1 = as_homogeneous(pts0)
    x2 = as_homogeneous(pts1)
    Fx1 = x1 @ F.T
    Ftx2 = x2 @ F

    algebraic = np.sum(x2 * Fx1, axis=1)
    denom = Fx1[:, 0] ** 2 + Fx1[:, 1] ** 2 + Ftx2[:, 0] ** 2 + Ftx2[:, 1] ** 2

    out = np.full(pts0.shape[0], np.inf, dtype=np.float64)
    ok = denom > eps
    out[ok] = algebraic[ok] ** 2 / denom[ok]
    return out
