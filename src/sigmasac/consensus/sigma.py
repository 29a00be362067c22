"""
Sigma-consensus scoring: marginalizing inlier support over noise scales.

Plain RANSAC counts points under one threshold. Here the noise scale
sigma is unknown, so each point's support is averaged over a range of
plausible sigmas instead.

Noise model:
    Under isotropic Gaussian noise of scale sigma on a correspondence with
    `dof` coordinates (4 for x1, y1, x2, y2), the squared residual follows

        r^2 / sigma^2  ~  chi^2(dof)

    A point is considered explainable at scale sigma if r < k * sigma,
    where k^2 is the 0.99 quantile of chi^2(dof) (k ~ 3.64 for dof = 4).

Weight at one sigma:
    The survival function Q(dof/2, r^2 / (2 sigma^2)) (regularized upper
    incomplete gamma) is 1 at r = 0 and equals 1 - 0.99 at r = k * sigma.
    Shifting and rescaling it gives a weight that is exactly 1 at zero
    residual and decays smoothly to exactly 0 at the cutoff:

        w(r, sigma) = (Q(dof/2, r^2 / 2sigma^2) - Q(dof/2, k^2/2)) / (1 - Q(dof/2, k^2/2))

    clipped to [0, 1]. gammaincc saturates to 0 for large arguments, so
    there is no underflow for huge residuals.

Partition:
    maximum_threshold is the largest plausible noise scale sigma_max, and
    the P levels are evenly spaced
    sigma_j = sigma_max * (j + 1) / P,  j = 0..P-1.
    The widest residual cutoff is therefore k * maximum_threshold.
    The marginal weight of a point is the mean of w over the P levels; the
    model score is the sum of marginal weights (a soft inlier count in [0, N]).
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import NamedTuple

import numpy as np
from scipy.special import gammaincc
from scipy.stats import chi2

from .types import Correspondences, FloatArray, Model, ModelScore, Estimator

DEFAULT_SIGMA_CONFIDENCE = 0.99


@lru_cache(maxsize=None)
def sigma_quantile(dof: int, confidence: float = DEFAULT_SIGMA_CONFIDENCE) -> float:
    """
    Multiplier k converting a noise scale into a residual cutoff: k = sqrt(chi2.ppf(confidence, dof)).
    """
    if dof < 1:
        raise ValueError("dof must be >= 1")
    if not 0.0 < confidence < 1.0:
        raise ValueError("confidence must be in (0, 1)")
    return float(np.sqrt(chi2.ppf(confidence, dof)))


def sigma_partition(maximum_threshold: float, partition_number: int) -> FloatArray:
    """
    Evenly spaced sigma levels from maximum_threshold / P up to maximum_threshold.
    """
    if maximum_threshold <= 0.0:
        raise ValueError("maximum_threshold must be > 0")
    if partition_number < 1:
        raise ValueError("partition_number must be >= 1")

    levels = np.arange(1, partition_number + 1, dtype=np.float64)
    return maximum_threshold * levels / float(partition_number)


def chi2_weights(squared_residuals: FloatArray, sigma: float, dof: int = 4) -> FloatArray:
    """
    Inlier weight of every point at a single noise scale sigma. Shape (N,).
    """
    if sigma <= 0.0:
        raise ValueError("sigma must be > 0")

    k = sigma_quantile(dof)
    q_k = float(gammaincc(dof / 2.0, k * k / 2.0))

    sq = np.nan_to_num(np.asarray(squared_residuals, dtype=np.float64), nan=np.inf, posinf=np.inf)
    q = gammaincc(dof / 2.0, sq / (2.0 * sigma * sigma))
    w = (q - q_k) / (1.0 - q_k)
    w[sq >= (k * sigma) ** 2] = 0.0
    return np.clip(w, 0.0, 1.0)


def marginal_weights(squared_residuals: FloatArray, sigmas: FloatArray, dof: int = 4) -> FloatArray:
    """
    Mean weight over the sigma partition: each point's inlier probability
    averaged over all plausible noise levels. Shape (N,).
    """
    sigmas = np.asarray(sigmas, dtype=np.float64)
    if sigmas.ndim != 1 or sigmas.size == 0:
        raise ValueError("sigmas must be a non-empty 1-D array")

    total = np.zeros(np.asarray(squared_residuals).shape[0], dtype=np.float64)
    for sigma in sigmas:
        total += chi2_weights(squared_residuals, float(sigma), dof)
    return total / float(sigmas.size)


class Scoring(NamedTuple):
    score: ModelScore
    weights: FloatArray             # marginal weight per point
    squared_residuals: FloatArray


@dataclass(frozen=True)
class SigmaScorer:
    """
    Scores models against a fixed sigma partition.

    Pure: scoring the same model twice gives identical results.
    """
    sigmas: FloatArray
    reference_threshold: float
    dof: int = 4

    @classmethod
    def create(
            cls,
            maximum_threshold: float,
            reference_threshold: float,
            partition_number: int = 10,
            dof: int = 4,
    ) -> "SigmaScorer":
        return cls(
            sigmas=sigma_partition(maximum_threshold, partition_number),
            reference_threshold=float(reference_threshold),
            dof=dof,
        )

    def score_residuals(self, squared_residuals: FloatArray) -> Scoring:
        sq = np.nan_to_num(np.asarray(squared_residuals, dtype=np.float64), nan=np.inf, posinf=np.inf)
        weights = marginal_weights(sq, self.sigmas, self.dof)
        inliers = int(np.count_nonzero(sq <= self.reference_threshold ** 2))
        return Scoring(
            score=ModelScore(score=float(np.sum(weights)), inlier_number=inliers),
            weights=weights,
            squared_residuals=sq,
        )

    def score(self, estimator: Estimator, model: Model, points: Correspondences) -> Scoring:
        return self.score_residuals(estimator.squared_residuals(model, points))
