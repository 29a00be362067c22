"""Tests for the sigma-consensus weight function and scoring."""

import numpy as np
import pytest
from scipy.stats import chi2

from sigmasac.consensus import (
    HomographyEstimator, Model, ModelKind, SigmaScorer,
    chi2_weights, marginal_weights, sigma_partition, sigma_quantile,
)


class TestSigmaQuantile:
    """Test the sigma-to-threshold multiplier."""

    def test_four_dof_value(self):
        """k for 4 DoF at 0.99 is ~3.64."""
        assert sigma_quantile(4) == pytest.approx(3.6437, abs=1e-3)

    def test_matches_chi2_quantile(self):
        for dof in (1, 2, 4, 6):
            assert sigma_quantile(dof) ** 2 == pytest.approx(chi2.ppf(0.99, dof))

    def test_invalid_dof(self):
        with pytest.raises(ValueError):
            sigma_quantile(0)


class TestSigmaPartition:
    """Test the sigma levels."""

    def test_evenly_spaced_up_to_maximum_threshold(self):
        sigmas = sigma_partition(16.0, 10)

        assert sigmas.shape == (10,)
        assert sigmas[-1] == pytest.approx(16.0)
        assert sigmas[0] == pytest.approx(1.6)
        np.testing.assert_allclose(np.diff(sigmas), 1.6)

    def test_noise_at_maximum_threshold_keeps_weight(self):
        """Residuals typical of noise at sigma = maximum_threshold still count."""
        sigmas = sigma_partition(3.0, 10)
        sq = np.full(5, 2.0 * 3.0 ** 2)
        assert np.all(marginal_weights(sq, sigmas) > 0.0)

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            sigma_partition(0.0, 10)
        with pytest.raises(ValueError):
            sigma_partition(5.0, 0)


class TestChi2Weights:
    """Test the per-sigma weight against the chi-squared distribution."""

    def test_against_chi2_survival_function(self):
        sigma = 1.5
        x = np.array([0.0, 0.5, 1.0, 2.0, 5.0, 10.0, 13.0])
        k2 = chi2.ppf(0.99, 4)
        tail = chi2.sf(k2, 4)
        expected = np.clip((chi2.sf(x, 4) - tail) / (1.0 - tail), 0.0, 1.0)

        weights = chi2_weights(x * sigma ** 2, sigma, dof=4)
        np.testing.assert_allclose(weights, expected, rtol=1e-9, atol=1e-12)

    def test_one_at_zero_and_zero_beyond_cutoff(self):
        sigma = 2.0
        k = sigma_quantile(4)
        cutoff_sq = (k * sigma) ** 2
        w = chi2_weights(np.array([0.0, cutoff_sq, cutoff_sq * 1.5]), sigma)
        assert w[0] == pytest.approx(1.0)
        assert w[1] == 0.0
        assert w[2] == 0.0

    def test_monotonically_decreasing(self):
        sq = np.linspace(0.0, 60.0, 200)
        w = chi2_weights(sq, 2.0)
        assert np.all(np.diff(w) <= 1e-15)
        assert np.all((w >= 0.0) & (w <= 1.0))

    def test_huge_and_invalid_residuals(self):
        """No underflow / NaN for huge, infinite or NaN residuals."""
        w = chi2_weights(np.array([1e300, np.inf, np.nan]), 1.0)
        np.testing.assert_array_equal(w, [0.0, 0.0, 0.0])

    def test_invalid_sigma(self):
        with pytest.raises(ValueError):
            chi2_weights(np.array([1.0]), 0.0)


class TestMarginalWeights:
    """Test marginalization over the sigma partition."""

    def test_mean_over_levels(self):
        sigmas = sigma_partition(10.0, 5)
        sq = np.array([0.0, 1.0, 4.0, 30.0, 200.0])
        expected = np.mean([chi2_weights(sq, s) for s in sigmas], axis=0)
        np.testing.assert_allclose(marginal_weights(sq, sigmas), expected)

    def test_zero_residual_has_full_weight(self):
        sigmas = sigma_partition(10.0, 5)
        assert marginal_weights(np.array([0.0]), sigmas)[0] == pytest.approx(1.0)

    def test_beyond_widest_cutoff_has_no_weight(self):
        sigmas = sigma_partition(10.0, 5)
        cutoff = sigma_quantile(4) * 10.0
        assert marginal_weights(np.array([cutoff ** 2 * (1.0 + 1e-9)]), sigmas)[0] == 0.0
        assert marginal_weights(np.array([10.0 ** 2]), sigmas)[0] > 0.0

    def test_empty_partition(self):
        with pytest.raises(ValueError):
            marginal_weights(np.array([1.0]), np.array([]))


class TestSigmaScorer:
    """Test model scoring."""

    def test_scoring_is_idempotent(self, homography_scene):
        points, _, H = homography_scene
        scorer = SigmaScorer.create(maximum_threshold=16.0, reference_threshold=2.0)
        model = Model(H, ModelKind.HOMOGRAPHY)

        first = scorer.score(HomographyEstimator(), model, points)
        second = scorer.score(HomographyEstimator(), model, points)

        assert first.score == second.score
        np.testing.assert_array_equal(first.weights, second.weights)

    def test_true_model_scores_its_inliers(self, homography_scene):
        points, labels, H = homography_scene
        scorer = SigmaScorer.create(maximum_threshold=16.0, reference_threshold=3.0)
        scoring = scorer.score(HomographyEstimator(), Model(H, ModelKind.HOMOGRAPHY), points)

        assert scoring.score.inlier_number == 40
        # soft count: every inlier contributes close to but below 1
        assert 35.0 < float(np.sum(scoring.weights[labels == 1])) < 40.0
        assert scoring.score.score <= points.shape[0]
        assert np.all(scoring.weights[labels == 1] > 0.0)

    def test_points_at_infinity_stay_infinite(self):
        scorer = SigmaScorer.create(maximum_threshold=4.0, reference_threshold=2.0)
        scoring = scorer.score_residuals(np.array([0.5, np.inf, np.nan]))

        assert np.isinf(scoring.squared_residuals[1])
        assert np.isinf(scoring.squared_residuals[2])
        np.testing.assert_array_equal(scoring.weights[1:], [0.0, 0.0])
        assert scoring.score.inlier_number == 1

    def test_better_model_scores_higher(self, homography_scene):
        points, _, H = homography_scene
        scorer = SigmaScorer.create(maximum_threshold=16.0, reference_threshold=2.0)
        shifted = H.copy()
        shifted[0, 2] += 4.0

        good = scorer.score(HomographyEstimator(), Model(H, ModelKind.HOMOGRAPHY), points).score
        bad = scorer.score(HomographyEstimator(), Model(shifted, ModelKind.HOMOGRAPHY), points).score
        assert good > bad
