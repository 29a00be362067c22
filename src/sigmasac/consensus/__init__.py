"""
Sigma-consensus package

This module provides:
- A reusable sigma-consensus loop (marginalized scoring, IRLS refinement,
  graph-based local optimization, adaptive stopping)
- Typed geometry primitives
- Estimator interface definitions
- Homography, fundamental matrix and essential matrix models
"""

from .types import (
    FloatArray, BoolArray, IntArray, Points2D, PointsHomog, Correspondences, Mask, Mat3x3,
    ModelKind, Model, ModelScore, RunStatus, Estimator, SigmaConsensusResult,
    split_correspondences, as_homogeneous, is_valid_mat3x3,
)

from .errors import SigmaConsensusError, InsufficientDataError

from .homography import (
    fit_homography_minimal, fit_homography_weighted, project, squared_reprojection_errors,
)
from .homography_fitter import HomographyEstimator

from .fundamental import (
    fit_fundamental_seven_point, fit_fundamental_eight_point, squared_sampson_distances,
)
from .fundamental_fitter import FundamentalEstimator

from .essential import fit_essential_five_point, fit_essential_weighted, decompose_essential
from .essential_fitter import EssentialEstimator

from .sampler import UniformSampler
from .neighborhood import NeighborhoodGraph
from .sigma import sigma_quantile, sigma_partition, chi2_weights, marginal_weights, SigmaScorer

from .core import SigmaConsensus, SigmaConsensusParams, next_iteration_limit, get_model_inliers_mask

__all__ = [
    "FloatArray", "BoolArray", "IntArray", "Points2D", "PointsHomog", "Correspondences", "Mask", "Mat3x3",
    "ModelKind", "Model", "ModelScore", "RunStatus", "Estimator", "SigmaConsensusResult",
    "split_correspondences", "as_homogeneous", "is_valid_mat3x3",
    "SigmaConsensusError", "InsufficientDataError",
    "fit_homography_minimal", "fit_homography_weighted", "project", "squared_reprojection_errors",
    "HomographyEstimator",
    "fit_fundamental_seven_point", "fit_fundamental_eight_point", "squared_sampson_distances",
    "FundamentalEstimator",
    "fit_essential_five_point", "fit_essential_weighted", "decompose_essential",
    "EssentialEstimator",
    "UniformSampler", "NeighborhoodGraph",
    "sigma_quantile", "sigma_partition", "chi2_weights", "marginal_weights", "SigmaScorer",
    "SigmaConsensus", "SigmaConsensusParams", "next_iteration_limit", "get_model_inliers_mask",
]
