"""Tests for the homography model."""

from dataclasses import FrozenInstanceError

import numpy as np
import pytest

from sigmasac.consensus import (
    HomographyEstimator, Model, ModelKind,
    fit_homography_minimal, fit_homography_weighted, project, squared_reprojection_errors,
)
from sigmasac.eval.synthetic import DEFAULT_HOMOGRAPHY

QUAD = np.array([[10.0, 20.0], [600.0, 30.0], [580.0, 450.0], [40.0, 420.0]])


def _normalized(H):
    return H / H[2, 2]


class TestHomographyMinimal:
    """Test the 4-point solver."""

    def test_exact_recovery(self):
        pts1 = project(DEFAULT_HOMOGRAPHY, QUAD)
        H = fit_homography_minimal(QUAD, pts1)

        assert H is not None
        np.testing.assert_allclose(_normalized(H), DEFAULT_HOMOGRAPHY, rtol=1e-6, atol=1e-9)

    def test_collinear_sample_rejected(self):
        pts0 = np.array([[0.0, 0.0], [1.0, 1.0], [2.0, 2.0], [3.0, 5.0]])
        pts1 = pts0 + 10.0
        assert fit_homography_minimal(pts0, pts1) is None

    def test_mirrored_sample_rejected(self):
        pts1 = QUAD * np.array([-1.0, 1.0])
        assert fit_homography_minimal(QUAD, pts1) is None

    def test_coincident_points_rejected(self):
        pts0 = np.zeros((4, 2))
        assert fit_homography_minimal(pts0, QUAD) is None

    def test_wrong_shape(self):
        with pytest.raises(ValueError):
            fit_homography_minimal(QUAD[:3], QUAD[:3])


class TestHomographyWeighted:
    """Test the weighted least-squares solver."""

    def test_exact_recovery(self, rng):
        pts0 = rng.uniform([0, 0], [640, 480], size=(30, 2))
        pts1 = project(DEFAULT_HOMOGRAPHY, pts0)
        H = fit_homography_weighted(pts0, pts1)

        assert H is not None
        np.testing.assert_allclose(_normalized(H), DEFAULT_HOMOGRAPHY, rtol=1e-6, atol=1e-9)

    def test_zero_weight_points_ignored(self, rng):
        pts0 = rng.uniform([0, 0], [640, 480], size=(30, 2))
        pts1 = project(DEFAULT_HOMOGRAPHY, pts0)
        pts1[:5] = rng.uniform([0, 0], [640, 480], size=(5, 2))
        weights = np.ones(30)
        weights[:5] = 0.0

        H = fit_homography_weighted(pts0, pts1, weights)
        assert H is not None
        np.testing.assert_allclose(_normalized(H), DEFAULT_HOMOGRAPHY, rtol=1e-6, atol=1e-9)

    def test_too_few_weighted_points(self, rng):
        pts0 = rng.uniform([0, 0], [640, 480], size=(10, 2))
        pts1 = project(DEFAULT_HOMOGRAPHY, pts0)
        weights = np.zeros(10)
        weights[:3] = 1.0
        assert fit_homography_weighted(pts0, pts1, weights) is None

    def test_weight_shape_mismatch(self):
        with pytest.raises(ValueError):
            fit_homography_weighted(QUAD, QUAD, np.ones(3))


class TestReprojection:
    """Test projection and residuals."""

    def test_true_model_has_zero_error(self, rng):
        pts0 = rng.uniform([0, 0], [640, 480], size=(20, 2))
        pts1 = project(DEFAULT_HOMOGRAPHY, pts0)
        assert np.all(squared_reprojection_errors(DEFAULT_HOMOGRAPHY, pts0, pts1) < 1e-12)

    def test_known_offset(self):
        H = np.eye(3)
        pts0 = np.array([[0.0, 0.0], [5.0, 5.0]])
        pts1 = pts0 + np.array([3.0, 4.0])
        np.testing.assert_allclose(squared_reprojection_errors(H, pts0, pts1), [25.0, 25.0])

    def test_points_at_infinity(self):
        H = np.array([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [1.0, 0.0, 0.0]])
        pts0 = np.array([[0.0, 5.0], [1.0, 1.0]])
        out = project(H, pts0)
        assert np.all(np.isinf(out[0]))
        np.testing.assert_allclose(out[1], [1.0, 1.0])
        assert np.isinf(squared_reprojection_errors(H, pts0, pts0)[0])


class TestHomographyEstimator:
    """Test the Estimator adapter."""

    def test_sample_sizes(self):
        estimator = HomographyEstimator()
        assert estimator.sample_size == 4
        assert estimator.non_minimal_sample_size == 4
        assert estimator.kind is ModelKind.HOMOGRAPHY

    def test_is_immutable(self):
        with pytest.raises(FrozenInstanceError):
            HomographyEstimator().eps_area = 1.0

    def test_minimal_models(self):
        points = np.hstack([QUAD, project(DEFAULT_HOMOGRAPHY, QUAD)])
        models = HomographyEstimator().estimate_minimal_models(points, np.arange(4))
        assert len(models) == 1
        assert models[0].kind is ModelKind.HOMOGRAPHY

    def test_degenerate_sample_yields_no_model(self):
        pts0 = np.array([[0.0, 0.0], [1.0, 0.0], [2.0, 0.0], [3.0, 0.0]])
        points = np.hstack([pts0, pts0])
        assert HomographyEstimator().estimate_minimal_models(points, np.arange(4)) == []

    def test_residuals(self, homography_scene):
        points, labels, _ = homography_scene
        estimator = HomographyEstimator()
        model = estimator.estimate_non_minimal_model(points, np.flatnonzero(labels == 1))

        res = estimator.residuals(model, points)
        sq = estimator.squared_residuals(model, points)
        assert res.shape == (points.shape[0],)
        np.testing.assert_allclose(res ** 2, sq)
        assert np.all(res >= 0.0)

    def test_residual_of_point_at_infinity(self):
        H = np.array([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [1.0, 0.0, 0.0]])
        points = np.array([[0.0, 5.0, 0.0, 5.0], [1.0, 1.0, 1.0, 1.0]])
        estimator = HomographyEstimator()
        model = Model(H, ModelKind.HOMOGRAPHY)

        assert np.isinf(estimator.squared_residuals(model, points)[0])
        assert np.isinf(estimator.residuals(model, points)[0])
        assert estimator.residuals(model, points)[1] == pytest.approx(0.0)
