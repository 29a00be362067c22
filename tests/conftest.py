"""Shared fixtures."""

import numpy as np
import pytest

from sigmasac.eval import synthetic_homography_scene, synthetic_two_view_scene


@pytest.fixture
def rng():
    return np.random.default_rng(7)


@pytest.fixture
def homography_scene(rng):
    """50 correspondences: 40 from a known homography with 0.5 px noise, 10 outliers."""
    return synthetic_homography_scene(rng, n_inliers=40, n_outliers=10, noise_sigma=0.5)


@pytest.fixture
def clean_two_view_scene(rng):
    """Noise-free, outlier-free general scene seen by two calibrated cameras."""
    return synthetic_two_view_scene(rng, n_inliers=60, n_outliers=0, noise_sigma=0.0)


def skew(t):
    return np.array([[0.0, -t[2], t[1]], [t[2], 0.0, -t[0]], [-t[1], t[0], 0.0]])
