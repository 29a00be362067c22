"""
Sigma-consensus loop (model-agnostic).

Overview:
- Randomly sample a *minimal* subset of correspondences
- Fit candidate models from that subset
- Score every candidate by marginalizing inlier support over a range of
  noise scales sigma (see sigma.py) instead of counting points under one
  threshold
- Refine a candidate that beats the best so far by iteratively reweighted
  least squares (the marginal weights drive a weighted non-minimal refit)
- Optionally grow a spatially coherent inlier set with the neighborhood
  graph and refit from sub-samples of it (local optimization)
- Stop once enough iterations were drawn to hit an all-inlier sample with
  the requested confidence

Uses the Estimator Protocol from types.py, so the same loop runs
homography, fundamental and essential matrix estimation.
"""
from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import List, NamedTuple, Optional

import numpy as np

from .neighborhood import NeighborhoodGraph
from .sampler import UniformSampler
from .sigma import SigmaScorer, Scoring
from .types import (
    Correspondences, Estimator, Mask, Model, ModelScore, RunStatus, SigmaConsensusResult,
)

logger = logging.getLogger(__name__)

DEFAULT_REFERENCE_THRESHOLD = 2.0


@dataclass(frozen=True)
class SigmaConsensusParams:
    """
    Run configuration.

    Thresholds are in residual units: pixels for homography / fundamental
    matrices, normalized image units for essential matrices (the caller
    rescales them by the focal-length normalizer).
    """
    confidence: float = 0.99
    # largest plausible noise scale sigma, in residual units
    maximum_threshold: float = 10.0
    # only used for the adaptive budget and the reported inlier count;
    # None -> min(2.0, maximum_threshold)
    reference_threshold: Optional[float] = None
    # number of sigma levels the support is marginalized over
    partition_number: int = 10
    degrees_of_freedom: int = 4
    # absolute iteration cap
    iteration_limit: int = 10000
    min_iterations: int = 0
    # IRLS rounds per refined candidate
    refinement_rounds: int = 5
    refinement_tolerance: float = 1e-6
    # graph-based local optimization on every new best
    local_optimization: bool = True
    # additionally run local optimization every n iterations (0: never)
    lo_interval: int = 0
    lo_inner_iterations: int = 10
    # inner sample size = multiplier * minimal sample size
    lo_sample_multiplier: int = 7
    neighbor_count: int = 8
    # wall-clock budget in seconds (None: unlimited)
    time_limit: Optional[float] = None

    def __post_init__(self):
        if not 0.0 < self.confidence < 1.0:
            raise ValueError("confidence must be in (0, 1)")
        if self.maximum_threshold <= 0.0:
            raise ValueError("maximum_threshold must be > 0")
        if self.reference_threshold is not None and self.reference_threshold <= 0.0:
            raise ValueError("reference_threshold must be > 0")
        if self.partition_number < 1:
            raise ValueError("partition_number must be >= 1")
        if self.degrees_of_freedom < 1:
            raise ValueError("degrees_of_freedom must be >= 1")
        if self.iteration_limit < 1:
            raise ValueError("iteration_limit must be >= 1")
        if self.min_iterations < 0:
            raise ValueError("min_iterations must be >= 0")
        if self.refinement_rounds < 0:
            raise ValueError("refinement_rounds must be >= 0")
        if self.lo_interval < 0:
            raise ValueError("lo_interval must be >= 0")
        if self.lo_inner_iterations < 1 or self.lo_sample_multiplier < 1:
            raise ValueError("local optimization sizes must be >= 1")
        if self.neighbor_count < 1:
            raise ValueError("neighbor_count must be >= 1")
        if self.time_limit is not None and self.time_limit <= 0.0:
            raise ValueError("time_limit must be > 0")

    @property
    def resolved_reference_threshold(self) -> float:
        if self.reference_threshold is not None:
            return float(self.reference_threshold)
        return min(DEFAULT_REFERENCE_THRESHOLD, self.maximum_threshold)


def next_iteration_limit(
        inlier_ratio: float,
        confidence: float,
        sample_size: int,
        cap: int,
) -> int:
    """
    Compute the number of iterations needed so that the probability of
    having drawn at least ONE all-inlier minimal sample is >= confidence.

    inlier ratio w = (# inliers) / N, minimal sample size m:
    - P(all-inliers) = w^m
    - P(not-all-inlier-for-k-times) = (1 - w^m)^k
    - 1 - (1 - w^m)^k >= p   ->   k >= log(1 - p) / log(1 - w^m)

    Edge cases:
     - w <= 0  -> an all-inlier sample is impossible, return cap
     - w >= 1  -> 1 iteration is enough
    The result is clipped to [1, cap] and is non-increasing in w.
    """
    if sample_size <= 0:
        raise ValueError("sample_size must be >= 1")
    if cap < 1:
        raise ValueError("cap must be >= 1")

    p = float(np.clip(confidence, 1e-12, 1.0 - 1e-12))
    w = float(np.clip(inlier_ratio, 0.0, 1.0))

    if w >= 1.0:
        return 1
    if w <= 0.0:
        return int(cap)

    w_to_m = w ** sample_size
    # log1p keeps precision when w^m is tiny
    if w_to_m <= 0.0:
        return int(cap)
    denominator = math.log1p(-w_to_m)
    if denominator >= 0.0:
        return 1
    k = math.ceil(math.log1p(-p) / denominator)
    return int(min(max(1, k), cap))


def get_model_inliers_mask(
        points: Correspondences,
        model: Model,
        estimator: Estimator,
        threshold: float,
) -> Mask:
    """
    Boolean mask of points whose residual is <= threshold.

    For reporting and drawing only; scoring never uses a hard threshold.
    """
    residuals = estimator.residuals(model, np.asarray(points, dtype=np.float64))
    return np.asarray(residuals <= threshold, dtype=np.bool_)


class _Candidate(NamedTuple):
    model: Model
    scoring: Scoring


class SigmaConsensus:
    """
    Robust estimator for models under unknown noise.

    All run state (counters, best model, adaptive budget) lives inside
    run(), so one instance can be reused for several sequential runs.
    """

    def __init__(self, params: Optional[SigmaConsensusParams] = None):
        self.params = params if params is not None else SigmaConsensusParams()

    def make_scorer(self) -> SigmaScorer:
        return SigmaScorer.create(
            maximum_threshold=self.params.maximum_threshold,
            reference_threshold=self.params.resolved_reference_threshold,
            partition_number=self.params.partition_number,
            dof=self.params.degrees_of_freedom,
        )

    def score_model(self, points: Correspondences, estimator: Estimator, model: Model) -> ModelScore:
        """Sigma-consensus score of a single model under the current parameters."""
        points = np.asarray(points, dtype=np.float64)
        return self.make_scorer().score(estimator, model, points).score

    def run(
            self,
            points: Correspondences,
            estimator: Estimator,
            sampler: Optional[UniformSampler] = None,
    ) -> SigmaConsensusResult:
        """
        Estimate the model best supported by `points`.

        Inputs:
        - points: (N, >=4) correspondences [x1, y1, x2, y2, ...]
        - estimator: one of the model adapters (homography / fundamental / essential)
        - sampler: draws minimal samples; a fresh unseeded UniformSampler by default

        Returns a SigmaConsensusResult; `status` is INSUFFICIENT_DATA if N is
        smaller than a minimal sample and RUN_EXHAUSTED if no sample ever
        produced a model.
        """
        params = self.params
        points = np.asarray(points, dtype=np.float64)
        if points.size == 0:
            points = points.reshape(0, 4)
        if points.ndim != 2 or points.shape[1] < 4:
            raise ValueError(f"Expected correspondences of shape (N, >=4) but got {points.shape}")
        if sampler is None:
            sampler = UniformSampler()

        n = points.shape[0]
        m = estimator.sample_size
        cap = params.iteration_limit

        # ---------- Not enough data: never sample ----------
        if n < m:
            logger.info("Sigma-consensus: %d correspondences, %d needed for a minimal sample", n, m)
            return SigmaConsensusResult(
                status=RunStatus.INSUFFICIENT_DATA,
                model=None,
                score=ModelScore.worst(),
                iterations=0,
                iteration_limit=0,
            )

        scorer = self.make_scorer()
        graph: Optional[NeighborhoodGraph] = None
        if params.local_optimization or params.lo_interval > 0:
            graph = NeighborhoodGraph.build(points, k=params.neighbor_count)

        logger.debug(
            "Sigma-consensus start: N=%d, m=%d, max_threshold=%g, reference=%g, sigmas=%d",
            n, m, params.maximum_threshold, scorer.reference_threshold, scorer.sigmas.size,
        )

        best: Optional[_Candidate] = None
        best_score = ModelScore.worst()
        target_iters = cap
        iterations = 0
        history: List[float] = []
        start = time.perf_counter()

        def install(candidate: _Candidate) -> None:
            nonlocal best, best_score, target_iters
            best = candidate
            best_score = candidate.scoring.score
            target_iters = next_iteration_limit(
                best_score.inlier_number / float(n), params.confidence, m, cap,
            )
            logger.debug(
                "[iter %d] better model: score=%.3f, inliers=%d/%d, target_iters=%d",
                iterations, best_score.score, best_score.inlier_number, n, target_iters,
            )

        # ---------- Main loop ----------
        while iterations < cap and (iterations < target_iters or iterations < params.min_iterations):
            if params.time_limit is not None and time.perf_counter() - start > params.time_limit:
                logger.debug("Sigma-consensus: time budget of %.3fs exhausted", params.time_limit)
                break

            iterations += 1

            sample = sampler.sample(n, m)

            # A degenerate sample yields no model; the iteration still counts
            for model in estimator.estimate_minimal_models(points, sample):
                scoring = scorer.score(estimator, model, points)
                if not scoring.score > best_score:
                    continue

                candidate = self._refine(points, estimator, scorer, _Candidate(model, scoring))
                if params.local_optimization and graph is not None:
                    candidate = self._local_optimization(points, estimator, scorer, sampler, graph, candidate)

                if candidate.scoring.score > best_score:
                    install(candidate)

            if params.lo_interval > 0 and best is not None and graph is not None \
                    and iterations % params.lo_interval == 0:
                candidate = self._local_optimization(points, estimator, scorer, sampler, graph, best)
                if candidate.scoring.score > best_score:
                    install(candidate)

            history.append(best_score.score)

        if best is None:
            logger.info("Sigma-consensus: no valid model after %d iterations", iterations)
            return SigmaConsensusResult(
                status=RunStatus.RUN_EXHAUSTED,
                model=None,
                score=best_score,
                iterations=iterations,
                iteration_limit=target_iters,
                score_history=tuple(history),
            )

        logger.info(
            "Sigma-consensus: score=%.3f, inliers=%d/%d after %d iterations",
            best_score.score, best_score.inlier_number, n, iterations,
        )
        return SigmaConsensusResult(
            status=RunStatus.SUCCESS,
            model=best.model,
            score=best_score,
            iterations=iterations,
            iteration_limit=target_iters,
            score_history=tuple(history),
        )

    # ---------- Sigma-consensus refinement (IRLS) ----------
    def _refine(
            self,
            points: Correspondences,
            estimator: Estimator,
            scorer: SigmaScorer,
            candidate: _Candidate,
    ) -> _Candidate:
        """
        Iteratively reweighted least squares: refit on the points with
        non-zero marginal weight, weighted by it, and rescore. Stops when the
        score no longer improves; a failed refit keeps the previous model.
        """
        current = candidate
        for _ in range(self.params.refinement_rounds):
            weights = current.scoring.weights
            idx = np.flatnonzero(weights > 0.0)
            if idx.size < estimator.non_minimal_sample_size:
                break

            model = estimator.estimate_non_minimal_model(points, idx, weights[idx])
            if model is None:
                break

            scoring = scorer.score(estimator, model, points)
            if not scoring.score > current.scoring.score:
                break

            gain = scoring.score.score - current.scoring.score.score
            current = _Candidate(model, scoring)
            if gain <= self.params.refinement_tolerance:
                break
        return current

    # ---------- Graph-based local optimization ----------
    def _local_optimization(
            self,
            points: Correspondences,
            estimator: Estimator,
            scorer: SigmaScorer,
            sampler: UniformSampler,
            graph: NeighborhoodGraph,
            candidate: _Candidate,
    ) -> _Candidate:
        """
        Grow the reference inliers of `candidate` by their graph neighbors
        (keeping only points with non-zero weight), fit weighted models to
        random sub-samples of that pool and IRLS-refine the best of them.
        """
        params = self.params
        weights = candidate.scoring.weights
        reference_sq = scorer.reference_threshold ** 2

        seed = np.flatnonzero(candidate.scoring.squared_residuals <= reference_sq)
        if seed.size < estimator.sample_size:
            seed = np.flatnonzero(weights > 0.0)

        pool = graph.expand(seed)
        pool = pool[weights[pool] > 0.0]
        if pool.size < estimator.non_minimal_sample_size:
            return candidate

        size = max(
            estimator.non_minimal_sample_size,
            min(params.lo_sample_multiplier * estimator.sample_size, int(pool.size)),
        )
        rounds = 1 if size >= pool.size else params.lo_inner_iterations

        current = candidate
        for _ in range(rounds):
            if size >= pool.size:
                subset = pool
            else:
                subset = pool[sampler.sample(int(pool.size), size)]

            model = estimator.estimate_non_minimal_model(points, subset, weights[subset])
            if model is None:
                continue

            scoring = scorer.score(estimator, model, points)
            if scoring.score > current.scoring.score:
                current = _Candidate(model, scoring)

        if current is not candidate:
            current = self._refine(points, estimator, scorer, current)
        return current
