"""
Minimal-sample selection.

Uniform sampling without replacement: every subset of `sample_size`
indices out of `point_count` is equally likely. Rejecting degenerate
samples is the estimator's job, not the sampler's.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from .errors import InsufficientDataError
from .types import IntArray


class UniformSampler:
    """
    Draws minimal samples from a numpy Generator.

    The only state is the generator itself; pass a seed for reproducible
    runs. Concurrent runs should each own a sampler.
    """

    def __init__(self, seed: Optional[int] = None):
        self.rng = np.random.default_rng(seed)

    def sample(self, point_count: int, sample_size: int) -> IntArray:
        """
        Return `sample_size` distinct indices in [0, point_count).

        Raises InsufficientDataError if there are not enough points.
        """
        if sample_size < 1 or point_count < sample_size:
            raise InsufficientDataError(point_count, sample_size)
        return self.rng.choice(point_count, size=sample_size, replace=False).astype(np.intp)
