"""
Neighborhood graph over the correspondences.

Each correspondence is a point (x1, y1, x2, y2) in a joint 4-D space; two
matches are neighbors if they are close in both images at once. The graph
is built once per run with a k-d tree and is only used to grow spatially
coherent inlier sets during local optimization.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy.spatial import cKDTree

from .types import Correspondences, IntArray


@dataclass(frozen=True)
class NeighborhoodGraph:
    adjacency: IntArray     # shape (N, k): indices of the k nearest neighbors of each point

    @classmethod
    def build(cls, points: Correspondences, k: int = 8) -> "NeighborhoodGraph":
        """
        k-nearest-neighbor graph in (x1, y1, x2, y2) space, self excluded.
        k is clipped to N - 1.
        """
        if points.ndim != 2 or points.shape[1] < 4:
            raise ValueError(f"Expected correspondences of shape (N, >=4) but got {points.shape}")
        if k < 1:
            raise ValueError("k must be >= 1")

        n = points.shape[0]
        k = min(k, n - 1)
        if k < 1:
            return cls(adjacency=np.empty((n, 0), dtype=np.intp))

        coords = np.ascontiguousarray(points[:, :4], dtype=np.float64)
        tree = cKDTree(coords)
        # k + 1 because every point is its own nearest neighbor
        _, idx = tree.query(coords, k=k + 1)
        idx = np.asarray(idx, dtype=np.intp).reshape(n, k + 1)

        adjacency = np.empty((n, k), dtype=np.intp)
        for i in range(n):
            row = idx[i][idx[i] != i]
            # duplicate coordinates can push `i` out of its own result list
            adjacency[i] = row[:k]
        return cls(adjacency=adjacency)

    def __len__(self) -> int:
        return int(self.adjacency.shape[0])

    def neighbors(self, index: int) -> IntArray:
        return self.adjacency[index]

    def expand(self, indices: IntArray) -> IntArray:
        """Sorted union of `indices` and all their neighbors."""
        indices = np.asarray(indices, dtype=np.intp)
        if indices.size == 0 or self.adjacency.shape[1] == 0:
            return np.unique(indices)
        return np.unique(np.concatenate([indices, self.adjacency[indices].ravel()]))
