"""Tests for the adaptive iteration budget."""

import math

import numpy as np
import pytest

from sigmasac.consensus import next_iteration_limit


class TestNextIterationLimit:
    """Test next_iteration_limit."""

    def test_known_value(self):
        """w = 0.5, m = 4, p = 0.99 -> ceil(log(0.01) / log(1 - 0.0625)) = 72."""
        assert next_iteration_limit(0.5, 0.99, 4, 10000) == 72

    def test_matches_formula(self):
        for w, m in [(0.8, 4), (0.6, 7), (0.7, 5), (0.9, 8)]:
            expected = math.ceil(math.log(1 - 0.99) / math.log(1 - w ** m))
            assert next_iteration_limit(w, 0.99, m, 10 ** 9) == expected

    def test_zero_inlier_ratio_returns_cap(self):
        assert next_iteration_limit(0.0, 0.99, 4, 5000) == 5000

    def test_all_inliers_needs_one_iteration(self):
        assert next_iteration_limit(1.0, 0.99, 7, 5000) == 1

    def test_clipped_to_cap(self):
        assert next_iteration_limit(0.05, 0.99, 7, 1000) == 1000

    def test_non_increasing_in_inlier_ratio(self):
        limits = [next_iteration_limit(w, 0.99, 4, 10000) for w in np.linspace(0.0, 1.0, 101)]
        assert all(b <= a for a, b in zip(limits, limits[1:]))

    def test_higher_confidence_needs_more_iterations(self):
        assert next_iteration_limit(0.5, 0.999, 4, 10000) > next_iteration_limit(0.5, 0.9, 4, 10000)

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            next_iteration_limit(0.5, 0.99, 0, 100)
        with pytest.raises(ValueError):
            next_iteration_limit(0.5, 0.99, 4, 0)
