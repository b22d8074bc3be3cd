"""Tests for Voronoi cell graph construction."""

import numpy as np
import pytest

from py_blobmap.core.alea_prng import AleaPRNG
from py_blobmap.core.errors import DegenerateGeometry, OutOfRangeIndex
from py_blobmap.core.poisson_sampler import sample_points
from py_blobmap.core.voronoi_graph import (
    build_cell_graph,
    find_cell,
    mirror_points,
    order_polygon,
)


def polygon_area(ring):
    x = ring[:, 0]
    y = ring[:, 1]
    return 0.5 * (np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1)))


class TestCellGraph:
    """Test graph structure on a sampled point set."""

    @pytest.fixture
    def points(self):
        return sample_points(100, 100, 8, prng=AleaPRNG("voronoi"))

    @pytest.fixture
    def graph(self, points):
        return build_cell_graph(points, (100, 100))

    def test_one_cell_per_point(self, graph, points):
        """Cell i is built from point i."""
        assert graph.n_cells == len(points)
        assert len(graph) == len(points)
        assert len(graph.polygons) == len(points)
        assert np.array_equal(graph.points, points)

    def test_fresh_graph_state(self, graph):
        """New graphs start flat and unclassified."""
        assert np.all(graph.heights == 0)
        assert all(t is None for t in graph.feature_types)
        assert np.all(graph.feature_numbers == -1)
        assert not graph.shallow.any()

    def test_adjacency_symmetric(self, graph):
        """If i lists j as a neighbour, j lists i."""
        for i, neighbors in enumerate(graph.cell_neighbors):
            assert i not in neighbors
            for j in neighbors:
                assert i in graph.cell_neighbors[j]

    def test_every_cell_has_neighbors(self, graph):
        assert all(len(n) > 0 for n in graph.cell_neighbors)

    def test_shared_edges_recorded(self, graph):
        """Every pair of neighbours shares a recorded border."""
        for i, neighbors in enumerate(graph.cell_neighbors):
            for j in neighbors:
                assert graph.edge_between(i, j) is not None
                assert graph.edge_between(i, j) == graph.edge_between(j, i)

    def test_polygons_clipped_to_bounds(self, graph):
        """No polygon vertex lies outside the rectangle."""
        for ring in graph.polygons:
            assert len(ring) >= 3
            assert np.all(ring >= -1e-6)
            assert np.all(ring <= 100 + 1e-6)

    def test_polygons_tile_rectangle(self, graph):
        """Clipped cells cover the whole map exactly once."""
        total = sum(polygon_area(ring) for ring in graph.polygons)
        assert total == pytest.approx(100 * 100, rel=1e-6)

    def test_polygons_counter_clockwise(self, graph):
        for ring in graph.polygons:
            assert polygon_area(ring) > 0

    def test_cell_view(self, graph):
        """The cell view mirrors the parallel arrays."""
        cell = graph.cell(3)
        assert cell.index == 3
        assert cell.point == (graph.points[3][0], graph.points[3][1])
        assert cell.neighbors == tuple(graph.cell_neighbors[3])
        assert cell.feature_type is None
        assert cell.feature_number == -1

    def test_cell_view_out_of_range(self, graph):
        with pytest.raises(OutOfRangeIndex):
            graph.cell(graph.n_cells)
        with pytest.raises(OutOfRangeIndex):
            graph.cell(-1)

    def test_copy_is_independent(self, graph):
        """Mutating a copy leaves the original untouched."""
        clone = graph.copy()
        clone.heights[:] = 0.7
        clone.cell_neighbors[0].append(999)
        clone.polygons[0][0, 0] = -50

        assert np.all(graph.heights == 0)
        assert 999 not in graph.cell_neighbors[0]
        assert graph.polygons[0][0, 0] >= 0


class TestFindCell:
    """Test point location."""

    @pytest.fixture
    def graph(self):
        points = sample_points(100, 100, 8, prng=AleaPRNG("find"))
        return build_cell_graph(points, (100, 100))

    def test_nearest_seed(self, graph):
        """A point belongs to the cell with the nearest seed."""
        prng = AleaPRNG("queries")
        for _ in range(50):
            x = prng.uniform(0, 100)
            y = prng.uniform(0, 100)
            expected = int(np.argmin(np.hypot(graph.points[:, 0] - x, graph.points[:, 1] - y)))
            assert find_cell(graph, x, y) == expected

    def test_seed_maps_to_own_cell(self, graph):
        for i in range(0, graph.n_cells, 7):
            x, y = graph.points[i]
            assert find_cell(graph, x, y) == i

    def test_corners_are_inside(self, graph):
        find_cell(graph, 0, 0)
        find_cell(graph, 100, 100)

    @pytest.mark.parametrize("x,y", [(-1, 50), (50, -0.5), (100.1, 10), (10, 250)])
    def test_outside_point(self, graph, x, y):
        with pytest.raises(OutOfRangeIndex):
            find_cell(graph, x, y)

    def test_empty_graph(self):
        graph = build_cell_graph(np.zeros((0, 2)), (10, 10))
        with pytest.raises(OutOfRangeIndex):
            find_cell(graph, 5, 5)


class TestDegenerateInput:
    """Test small and degenerate point sets."""

    def test_empty_points(self):
        graph = build_cell_graph([], (10, 10))
        assert graph.n_cells == 0
        assert graph.cell_neighbors == []

    def test_single_point(self):
        """A lone point gets a trivial boundary and no neighbours."""
        with pytest.warns(DegenerateGeometry):
            graph = build_cell_graph([[5, 5]], (10, 10))

        assert graph.n_cells == 1
        assert graph.cell_neighbors == [[]]
        assert graph.polygons[0].shape == (1, 2)

    def test_two_points(self):
        with pytest.warns(DegenerateGeometry):
            graph = build_cell_graph([[2, 5], [8, 5]], (10, 10))

        assert graph.n_cells == 2
        assert graph.cell_neighbors == [[], []]

    def test_colinear_points(self):
        """Points on one line still produce a consistent graph."""
        points = [[10, 50], [30, 50], [50, 50], [70, 50], [90, 50]]
        graph = build_cell_graph(points, (100, 100))

        assert graph.n_cells == 5
        assert len(graph.polygons) == 5
        for i, neighbors in enumerate(graph.cell_neighbors):
            for j in neighbors:
                assert i in graph.cell_neighbors[j]


class TestHelpers:
    """Test geometry helpers."""

    def test_mirror_points(self):
        mirrored = mirror_points(np.array([[2.0, 3.0]]), 10, 20)
        assert mirrored.shape == (4, 2)
        assert mirrored[0] == pytest.approx([-2, 3])
        assert mirrored[1] == pytest.approx([18, 3])
        assert mirrored[2] == pytest.approx([2, -3])
        assert mirrored[3] == pytest.approx([2, 37])

    def test_order_polygon(self):
        square = np.array([[1, 1], [-1, -1], [1, -1], [-1, 1]], dtype=float)
        ordered = order_polygon(np.array([0.0, 0.0]), square)
        assert polygon_area(ordered) == pytest.approx(4)
