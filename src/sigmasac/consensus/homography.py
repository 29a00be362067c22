"""
Homography model utilities.

We estimate a projective transform H such that:

    [x', y', w']^T  ≈  H @ [x, y, 1]^T,   (u, v) = (x'/w', y'/w')

H has 8 degrees of freedom (9 entries up to scale), so 4 correspondences
determine it. Each correspondence (x, y) -> (u, v) gives two rows of the
DLT system A h = 0:

    [-x, -y, -1,  0,  0,  0, u*x, u*y, u]
    [ 0,  0,  0, -x, -y, -1, v*x, v*y, v]

Points are Hartley-normalized before the solve and the result is
de-normalized:  H = S1'^-1 @ H_n @ S0.
"""

from __future__ import annotations

from itertools import combinations
from typing import Optional

import numpy as np

from .conditioning import normalize_points, null_vector
from .types import Points2D, Mat3x3, FloatArray, as_homogeneous, is_valid_mat3x3


# ---------- Degeneracy Check Helpers ----------
def _signed_area(p1: np.ndarray, p2: np.ndarray, p3: np.ndarray) -> float:
    """
    Return 2x the signed triangle area formed by (p1, p2, p3):

        area2 = (p2 - p1) x (p3 - p1)

    Near 0 means the three points are collinear.
    """
    u = p2 - p1
    v = p3 - p1
    return float(u[0] * v[1] - u[1] * v[0])


def is_degenerate_quadruplet(pts0: Points2D, pts1: Points2D, eps_area: float = 1e-6) -> bool:
    """
    Check whether a 4-point sample cannot define a homography.

    Rejects the sample if any three points are nearly collinear in either
    image, or if a triangle flips orientation between the images (a
    homography of a visible plane never mirrors it).

    Works on the conditioned points, so eps_area is relative to the sample spread.
    """
    if pts0.shape != (4, 2) or pts1.shape != (4, 2):
        raise ValueError(f"Expected (4,2) samples, got {pts0.shape} and {pts1.shape}")

    for i, j, k in combinations(range(4), 3):
        a0 = _signed_area(pts0[i], pts0[j], pts0[k])
        a1 = _signed_area(pts1[i], pts1[j], pts1[k])
        if abs(a0) < eps_area or abs(a1) < eps_area:
            return True
        if a0 * a1 < 0.0:
            return True
    return False


# ---------- Homography Fitting ----------
def _dlt_rows(pts0: Points2D, pts1: Points2D) -> FloatArray:
    """Build the (2N, 9) DLT design matrix."""
    n = pts0.shape[0]
    x, y = pts0[:, 0], pts0[:, 1]
    u, v = pts1[:, 0], pts1[:, 1]
    zeros = np.zeros(n, dtype=np.float64)
    ones = np.ones(n, dtype=np.float64)

    A = np.empty((2 * n, 9), dtype=np.float64)
    A[0::2] = np.stack([-x, -y, -ones, zeros, zeros, zeros, u * x, u * y, u], axis=1)
    A[1::2] = np.stack([zeros, zeros, zeros, -x, -y, -ones, v * x, v * y, v], axis=1)
    return A


def _finalize(H_n: Mat3x3, S0: Mat3x3, S1: Mat3x3, eps: float = 1e-12) -> Optional[Mat3x3]:
    """De-normalize, fix the scale and reject singular / non-finite results."""
    try:
        H = np.linalg.inv(S1) @ H_n @ S0
    except np.linalg.LinAlgError:
        return None

    if abs(H[2, 2]) > eps:
        H = H / H[2, 2]
    else:
        H = H / np.linalg.norm(H)

    if not is_valid_mat3x3(H):
        return None
    # A singular H maps the plane onto a line
    if abs(np.linalg.det(H)) < eps:
        return None
    return H.astype(np.float64)


def fit_homography_minimal(pts0: Points2D, pts1: Points2D, eps_area: float = 1e-6) -> Optional[Mat3x3]:
    """
    Fit a homography from exactly 4 point correspondences.

    pts0: (4,2) source points
    pts1: (4,2) target points

    Returns:
      3x3 homography, or None if degenerate / solve fails.
    """
    if pts0.shape != (4, 2) or pts1.shape != (4, 2):
        raise ValueError(f"fit_homography_minimal expects (4,2) inputs, got {pts0.shape} and {pts1.shape}")

    cond0 = normalize_points(pts0)
    cond1 = normalize_points(pts1)
    if cond0 is None or cond1 is None:
        return None
    n0, S0 = cond0
    n1, S1 = cond1

    if is_degenerate_quadruplet(n0, n1, eps_area=eps_area):
        return None

    h = null_vector(_dlt_rows(n0, n1))
    if h is None:
        return None
    return _finalize(h.reshape(3, 3), S0, S1)


def fit_homography_weighted(
        pts0: Points2D,
        pts1: Points2D,
        weights: Optional[FloatArray] = None,
) -> Optional[Mat3x3]:
    """
    Fit a homography from N >= 4 correspondences by weighted least squares.

    Each pair of DLT rows is multiplied by the point's weight, so the solve
    minimizes sum_i w_i^2 * ||A_i h||^2 subject to ||h|| = 1.
    Points with zero weight are dropped before conditioning.
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
    if int(np.count_nonzero(keep)) < 4:
        return None
    pts0, pts1, weights = pts0[keep], pts1[keep], weights[keep]

    cond0 = normalize_points(pts0, weights)
    cond1 = normalize_points(pts1, weights)
    if cond0 is None or cond1 is None:
        return None
    n0, S0 = cond0
    n1, S1 = cond1

    A = _dlt_rows(n0, n1) * np.repeat(weights, 2)[:, None]
    h = null_vector(A)
    if h is None:
        return None
    return _finalize(h.reshape(3, 3), S0, S1)


# ---------- Apply transform + residuals ----------
def project(H: Mat3x3, pts: Points2D, eps: float = 1e-12) -> Points2D:
    """
    Apply a homography to (N,2) points, returning (N,2) points.

    Points mapped to infinity (w' ~ 0) come back as inf.
    """
    if pts.ndim != 2 or pts.shape[1] != 2:
        raise ValueError(f"Expected pts shape (N,2), got {pts.shape}")
    if H.shape != (3, 3):
        raise ValueError(f"Expected H shape (3,3), got {H.shape}")

    ph = as_homogeneous(pts) @ H.T
    w = ph[:, 2]
    out = np.full((pts.shape[0], 2), np.inf, dtype=np.float64)
    ok = np.abs(w) > eps
    out[ok] = ph[ok, :2] / w[ok, None]
    return out


def squared_reprojection_errors(H: Mat3x3, pts0: Points2D, pts1: Points2D) -> FloatArray:
    """
    Squared forward reprojection error in pixels^2:

        e_i^2 = || project(H, pts0[i]) - pts1[i] ||^2

    Returns shape (N,)
    """
    if pts0.shape != pts1.shape:
        raise ValueError(f"pts0 and pts1 must have same shape, got {pts0.shape} vs {pts1.shape}")
    diff = project(H, pts0) - pts1.astype(np.float64)
    with np.errstate(invalid="ignore", over="ignore"):
        sq = np.sum(diff * diff, axis=1)
    return np.nan_to_num(sq, nan=np.inf, posinf=np.inf).astype(np.float64)
