"""Tests for the neighborhood graph."""

import numpy as np
import pytest

from sigmasac.consensus import NeighborhoodGraph


def _grid_points():
    xs, ys = np.meshgrid(np.arange(5, dtype=np.float64), np.arange(4, dtype=np.float64))
    pts = np.column_stack([xs.ravel(), ys.ravel()]) * 10.0
    return np.hstack([pts, pts + 3.0])


class TestNeighborhoodGraph:
    """Test NeighborhoodGraph."""

    def test_shape_and_self_exclusion(self):
        points = _grid_points()
        graph = NeighborhoodGraph.build(points, k=4)

        assert len(graph) == points.shape[0]
        assert graph.adjacency.shape == (points.shape[0], 4)
        for i in range(len(graph)):
            assert i not in graph.neighbors(i)

    def test_nearest_neighbors_are_adjacent_cells(self):
        points = _grid_points()
        graph = NeighborhoodGraph.build(points, k=2)
        # corner (0, 0) has exactly two neighbors at distance 10 in both images
        assert set(graph.neighbors(0).tolist()) == {1, 5}

    def test_k_clipped_to_point_count(self):
        points = _grid_points()[:3]
        graph = NeighborhoodGraph.build(points, k=8)
        assert graph.adjacency.shape == (3, 2)

    def test_expand(self):
        points = _grid_points()
        graph = NeighborhoodGraph.build(points, k=2)
        expanded = graph.expand(np.array([0]))
        assert set(expanded.tolist()) == {0, 1, 5}

    def test_expand_empty(self):
        graph = NeighborhoodGraph.build(_grid_points(), k=2)
        assert graph.expand(np.array([], dtype=np.intp)).size == 0

    def test_invalid_input(self):
        with pytest.raises(ValueError):
            NeighborhoodGraph.build(np.zeros((5, 2)))
        with pytest.raises(ValueError):
            NeighborhoodGraph.build(_grid_points(), k=0)
