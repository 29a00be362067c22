"""
Errors raised by the sigma-consensus estimator.

Only InsufficientDataError is raised in normal operation (by the sampler,
whose precondition the engine checks before starting a run). Degenerate
samples and failed refits are ordinary loop outcomes: the fitters return
an empty list / None and the engine moves on.
"""


class SigmaConsensusError(Exception):
    """Base class for all estimator errors."""


class InsufficientDataError(SigmaConsensusError, ValueError):
    """Fewer points than a minimal sample needs."""

    def __init__(self, point_count: int, sample_size: int):
        super().__init__(
            f"Need at least {sample_size} correspondences, got {point_count}"
        )
        self.point_count = point_count
        self.sample_size = sample_size
