"""
sigmasac: robust two-view geometry estimation with sigma-consensus.
"""

from .consensus import (
    ModelKind, Model, ModelScore, RunStatus, SigmaConsensusResult,
    HomographyEstimator, FundamentalEstimator, EssentialEstimator,
    UniformSampler, SigmaConsensus, SigmaConsensusParams, get_model_inliers_mask,
)

__version__ = "0.1.0"

__all__ = [
    "ModelKind", "Model", "ModelScore", "RunStatus", "SigmaConsensusResult",
    "HomographyEstimator", "FundamentalEstimator", "EssentialEstimator",
    "UniformSampler", "SigmaConsensus", "SigmaConsensusParams", "get_model_inliers_mask",
]
