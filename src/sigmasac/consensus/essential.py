"""
Essential matrix utilities.

Works on calibrated (intrinsics-normalized) coordinates:

    x_n = K^-1 @ [x, y, 1]^T

so the epipolar constraint reads  x2_n^T E x1_n = 0, with E = [t]_x R.
A valid essential matrix has two equal singular values and one zero.

- Minimal solver: Nister's 5-point algorithm via OpenCV. With exactly
  five points cv2.findEssentialMat skips its own robust loop and returns
  every solution stacked as a (3k, 3) matrix.
- Non-minimal solver: weighted normalized 8-point, then projection onto
  the essential manifold (singular values (s, s, 0)).
- Residual: Sampson distance (shared with the fundamental matrix), in
  normalized-coordinate units.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

import cv2
import numpy as np

from .fundamental import fit_fundamental_eight_point
from .types import Points2D, Mat3x3, FloatArray, is_valid_mat3x3

_IDENTITY_K = np.eye(3, dtype=np.float64)


def project_to_essential(E: Mat3x3) -> Optional[Mat3x3]:
    """
    Closest essential matrix: average the two largest singular values and
    zero the third. Scaled to unit Frobenius norm.
    """
    try:
        U, S, Vt = np.linalg.svd(E)
    except np.linalg.LinAlgError:
        return None

    s = (S[0] + S[1]) / 2.0
    if s <= 0.0:
        return None
    E = U @ np.diag([s, s, 0.0]) @ Vt
    E = E / np.linalg.norm(E)
    if not is_valid_mat3x3(E):
        return None
    return E.astype(np.float64)


def fit_essential_five_point(pts0: Points2D, pts1: Points2D) -> List[Mat3x3]:
    """
    Fit essential matrices from exactly 5 normalized correspondences.

    Returns up to ten candidates; an empty list if the solver finds none.
    """
    if pts0.shape != (5, 2) or pts1.shape != (5, 2):
        raise ValueError(f"fit_essential_five_point expects (5,2) inputs, got {pts0.shape} and {pts1.shape}")

    p0 = np.ascontiguousarray(pts0, dtype=np.float64)
    p1 = np.ascontiguousarray(pts1, dtype=np.float64)

    try:
        stacked, _ = cv2.findEssentialMat(
            p0,
            p1,
            cameraMatrix=_IDENTITY_K,
            method=cv2.RANSAC,
            prob=0.999,
            threshold=1.0,
        )
    except cv2.error:
        return []

    if stacked is None or stacked.ndim != 2 or stacked.shape[1] != 3 or stacked.shape[0] % 3 != 0:
        return []

    models: List[Mat3x3] = []
    for i in range(stacked.shape[0] // 3):
        E = project_to_essential(np.asarray(stacked[3 * i:3 * i + 3], dtype=np.float64))
        if E is not None:
            models.append(E)
    return models


def fit_essential_weighted(
        pts0: Points2D,
        pts1: Points2D,
        weights: Optional[FloatArray] = None,
) -> Optional[Mat3x3]:
    """
    Fit an essential matrix from N >= 8 normalized correspondences by
    weighted least squares, then enforce the essential constraints.
    """
    F = fit_fundamental_eight_point(pts0, pts1, weights)
    if F is None:
        return None
    return project_to_essential(F)


def decompose_essential(E: Mat3x3) -> Tuple[Mat3x3, Mat3x3, FloatArray]:
    """
    Split E into its two candidate rotations and the unit translation
    direction (sign ambiguous). The cheirality check that picks one of the
    four (R, t) combinations needs triangulation and is left to the caller.
    """
    if E.shape != (3, 3):
        raise ValueError(f"Expected E shape (3,3), got {E.shape}")
    R1, R2, t = cv2.decomposeEssentialMat(np.asarray(E, dtype=np.float64))
    return R1.astype(np.float64), R2.astype(np.float64), t.reshape(3).astype(np.float64)
