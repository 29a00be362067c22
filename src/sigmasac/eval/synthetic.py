"""
Synthetic two-view scenes with known geometry, for demos and tests.
"""

from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from ..consensus.homography import project
from ..consensus.types import Correspondences, IntArray, Mat3x3

DEFAULT_HOMOGRAPHY = np.array(
    [[1.05, 0.08, 15.0],
     [-0.04, 0.97, -8.0],
     [1.2e-4, -6.0e-5, 1.0]],
    dtype=np.float64,
)


def synthetic_homography_scene(
        rng: np.random.Generator,
        *,
        n_inliers: int = 40,
        n_outliers: int = 10,
        noise_sigma: float = 0.5,
        H: Optional[Mat3x3] = None,
        width: float = 640.0,
        height: float = 480.0,
) -> Tuple[Correspondences, IntArray, Mat3x3]:
    """
    Inliers: uniform points in the first image mapped through H, with
    Gaussian noise of scale noise_sigma added to the second image.
    Outliers: independent uniform points in both images.

    Returns (points (N,4), labels (N,) with 1 = inlier, H). Inliers come first.
    """
    H = DEFAULT_HOMOGRAPHY if H is None else np.asarray(H, dtype=np.float64)

    pts0 = rng.uniform([0.0, 0.0], [width, height], size=(n_inliers, 2))
    pts1 = project(H, pts0) + rng.normal(0.0, noise_sigma, size=(n_inliers, 2))

    o0 = rng.uniform([0.0, 0.0], [width, height], size=(n_outliers, 2))
    o1 = rng.uniform([0.0, 0.0], [width, height], size=(n_outliers, 2))

    points = np.vstack([np.hstack([pts0, pts1]), np.hstack([o0, o1])]).astype(np.float64)
    labels = np.concatenate([np.ones(n_inliers, dtype=np.intp), np.zeros(n_outliers, dtype=np.intp)])
    return points, labels, H


def synthetic_two_view_scene(
        rng: np.random.Generator,
        *,
        n_inliers: int = 100,
        n_outliers: int = 30,
        noise_sigma: float = 0.0,
        K: Optional[Mat3x3] = None,
) -> Tuple[Correspondences, IntArray, Mat3x3, Mat3x3, np.ndarray]:
    """
    General (non-planar) scene seen by two calibrated cameras.

    Camera 1 is at the origin, camera 2 is rotated slightly about y and
    translated sideways. 3-D points lie 4 to 8 units in front of both.
    Noise of scale noise_sigma (pixels) is added to the second image.

    Returns (points (N,4) in pixels, labels, K, R, t); inliers come first.
    """
    if K is None:
        K = np.array([[800.0, 0.0, 320.0], [0.0, 800.0, 240.0], [0.0, 0.0, 1.0]])

    angle = 0.1
    R = np.array(
        [[np.cos(angle), 0.0, np.sin(angle)],
         [0.0, 1.0, 0.0],
         [-np.sin(angle), 0.0, np.cos(angle)]],
    )
    t = np.array([1.0, 0.1, 0.05])

    X = np.column_stack([
        rng.uniform(-2.0, 2.0, n_inliers),
        rng.uniform(-1.5, 1.5, n_inliers),
        rng.uniform(4.0, 8.0, n_inliers),
    ])

    def to_pixels(P: np.ndarray) -> np.ndarray:
        p = P @ K.T
        return p[:, :2] / p[:, 2:3]

    pts0 = to_pixels(X)
    pts1 = to_pixels(X @ R.T + t) + rng.normal(0.0, noise_sigma, size=(n_inliers, 2))

    o0 = rng.uniform([0.0, 0.0], [640.0, 480.0], size=(n_outliers, 2))
    o1 = rng.uniform([0.0, 0.0], [640.0, 480.0], size=(n_outliers, 2))

    points = np.vstack([np.hstack([pts0, pts1]), np.hstack([o0, o1])]).astype(np.float64)
    labels = np.concatenate([np.ones(n_inliers, dtype=np.intp), np.zeros(n_outliers, dtype=np.intp)])
    return points, labels, K, R, t
