"""
Tests for heightmap generation module.
"""

import numpy as np
import pytest

from py_blobmap.core.alea_prng import AleaPRNG
from py_blobmap.core.errors import DegenerateGeometry, InvalidConfiguration, OutOfRangeIndex
from py_blobmap.core.features import FeatureType
from py_blobmap.core.heightmap_generator import (
    MAX_SHARPNESS,
    MIN_PROPAGATED_HEIGHT,
    BlobKind,
    HeightmapGenerator,
)
from py_blobmap.core.poisson_sampler import sample_points
from py_blobmap.core.voronoi_graph import build_cell_graph, find_cell


def make_graph(seed="test123", width=100, height=100, spacing=8):
    points = sample_points(width, height, spacing, prng=AleaPRNG(seed))
    return build_cell_graph(points, (width, height))


def hop_distances(graph, origin):
    """Ring distance of every cell from ``origin``."""
    rings = {origin: 0}
    frontier = [origin]
    while frontier:
        next_frontier = []
        for cell in frontier:
            for neighbor in graph.cell_neighbors[cell]:
                if neighbor not in rings:
                    rings[neighbor] = rings[cell] + 1
                    next_frontier.append(neighbor)
        frontier = next_frontier
    return rings


class TestSpread:
    """Test batch blob spreading."""

    @pytest.fixture
    def small_graph(self):
        """Create a small test graph."""
        return make_graph()

    def test_heights_in_range(self, small_graph):
        """Heights stay within [0, 1] even with many strong blobs."""
        generator = HeightmapGenerator(small_graph, AleaPRNG("range"))
        heights = generator.spread(peak=1.0, decay=0.99, sharpness=0.5, blob_count=10)

        assert heights is small_graph.heights
        assert np.all(heights >= 0)
        assert np.all(heights <= 1)
        assert np.any(heights > 0)

    def test_spread_resets_heights(self, small_graph):
        """Batch mode starts from a flat map."""
        small_graph.heights[:] = 1.0
        generator = HeightmapGenerator(small_graph, AleaPRNG("reset"))
        generator.spread(peak=0.5, decay=0.5, sharpness=0, blob_count=1)

        assert small_graph.heights.max() == pytest.approx(0.5)

    def test_single_blob_rings(self, small_graph):
        """Without sharpness the first ring gets exactly peak * decay."""
        generator = HeightmapGenerator(small_graph, AleaPRNG("ring"))
        generator.spread(peak=0.8, decay=0.5, sharpness=0, blob_count=1)

        origin = int(np.argmax(small_graph.heights))
        assert small_graph.heights[origin] == pytest.approx(0.8)
        for neighbor in small_graph.cell_neighbors[origin]:
            assert small_graph.heights[neighbor] == pytest.approx(0.4)

    def test_reproducible(self):
        """Same seeds give the same heightmap."""
        a = make_graph("same")
        b = make_graph("same")
        HeightmapGenerator(a, AleaPRNG("blob")).spread(0.9, 0.8, 0.3, 4)
        HeightmapGenerator(b, AleaPRNG("blob")).spread(0.9, 0.8, 0.3, 4)

        assert np.array_equal(a.heights, b.heights)

    def test_later_blobs_cluster_and_accumulate(self, small_graph, monkeypatch):
        """A later blob starts next to an earlier origin and adds onto its heights."""
        generator = HeightmapGenerator(small_graph, AleaPRNG("cluster"))
        picked = []
        pick_origin = generator._pick_origin

        def recording_pick(origins):
            origin = pick_origin(origins)
            picked.append(origin)
            return origin

        monkeypatch.setattr(generator, "_pick_origin", recording_pick)
        generator.spread(peak=0.4, decay=0.5, sharpness=0, blob_count=2)

        first, second = picked
        assert second in small_graph.cell_neighbors[first]
        # 0.4 from the first blob plus 0.1 from the second, and the reverse
        assert small_graph.heights[first] == pytest.approx(0.5)
        assert small_graph.heights[second] == pytest.approx(0.4)

        # Each blob reaches every cell once, by ring distance from its origin
        expected = np.zeros(small_graph.n_cells)
        for origin, h0 in ((first, 0.4), (second, 0.2)):
            for cell, ring in hop_distances(small_graph, origin).items():
                h = h0 * 0.5 ** ring
                if h >= MIN_PROPAGATED_HEIGHT:
                    expected[cell] += h
        assert np.allclose(small_graph.heights, expected)

    def test_isolated_origin_falls_back_to_any_cell(self):
        """Without neighbours the next origin is drawn from all cells."""
        with pytest.warns(DegenerateGeometry):
            graph = build_cell_graph([[10, 10], [90, 90]], (100, 100))
        HeightmapGenerator(graph, AleaPRNG("isolated")).spread(0.4, 0.5, 0, 3)

        # Only the origins are raised: 0.4, 0.2 and 0.1 in total
        assert graph.heights.sum() == pytest.approx(0.7)

    def test_full_sharpness_keeps_heights_in_range(self, small_graph):
        generator = HeightmapGenerator(small_graph, AleaPRNG("sharp"))
        heights = generator.spread(peak=0.9, decay=0.9, sharpness=MAX_SHARPNESS, blob_count=4)

        assert np.all(heights >= 0)
        assert np.all(heights <= 1)

    @pytest.mark.parametrize(
        "params",
        [
            dict(peak=0, decay=0.5, sharpness=0, blob_count=1),
            dict(peak=0.5, decay=0, sharpness=0, blob_count=1),
            dict(peak=0.5, decay=1.5, sharpness=0, blob_count=1),
            dict(peak=0.5, decay=0.5, sharpness=-0.1, blob_count=1),
            dict(peak=0.5, decay=0.5, sharpness=1.5, blob_count=1),
            dict(peak=0.5, decay=0.5, sharpness=0, blob_count=0),
        ],
    )
    def test_invalid_parameters(self, small_graph, params):
        generator = HeightmapGenerator(small_graph, AleaPRNG("bad"))
        with pytest.raises(InvalidConfiguration):
            generator.spread(**params)

    def test_empty_graph(self):
        graph = build_cell_graph(np.zeros((0, 2)), (10, 10))
        with pytest.raises(OutOfRangeIndex):
            HeightmapGenerator(graph, AleaPRNG("empty")).spread(0.5, 0.5, 0, 1)


class TestAddHeight:
    """Test interactive blob placement."""

    @pytest.fixture
    def small_graph(self):
        return make_graph("interactive")

    @pytest.fixture
    def generator(self, small_graph):
        return HeightmapGenerator(small_graph, AleaPRNG("add"))

    def center(self, graph):
        return find_cell(graph, 50, 50)

    def test_origin_gets_initial_height(self, small_graph, generator):
        """On a flat map the origin ends up at exactly the initial height."""
        origin = self.center(small_graph)
        generator.add_height(origin, 0.5, BlobKind.ISLAND, 0.5, 0)

        assert small_graph.heights[origin] == pytest.approx(0.5)
        for neighbor in small_graph.cell_neighbors[origin]:
            assert small_graph.heights[neighbor] == pytest.approx(0.25)

    def test_untouched_cells_stay_flat(self, small_graph, generator):
        """Cells beyond the blob's reach keep height 0."""
        origin = self.center(small_graph)
        touched = generator.add_height(origin, 0.5, "hill", 0.1, 0)

        assert touched[0] == origin
        assert len(touched) < small_graph.n_cells
        untouched = sorted(set(range(small_graph.n_cells)) - set(touched))
        assert untouched
        assert np.all(small_graph.heights[untouched] == 0)

    def test_hill_decays_from_propagated_value(self, small_graph, generator):
        """Hill rings follow initial * decay ** ring, not the cell height."""
        small_graph.heights[:] = 0.3
        origin = self.center(small_graph)
        generator.add_height(origin, 0.4, BlobKind.HILL, 0.5, 0)

        assert small_graph.heights[origin] == pytest.approx(0.7)
        for neighbor in small_graph.cell_neighbors[origin]:
            assert small_graph.heights[neighbor] == pytest.approx(0.3 + 0.2)

    def test_island_decays_from_cell_height(self, small_graph, generator):
        """Island rings feed off the accumulated height of the parent."""
        small_graph.heights[:] = 0.3
        origin = self.center(small_graph)
        generator.add_height(origin, 0.4, BlobKind.ISLAND, 0.5, 0)

        for neighbor in small_graph.cell_neighbors[origin]:
            assert small_graph.heights[neighbor] == pytest.approx(0.3 + 0.35)

    def test_heights_clamped(self, small_graph, generator):
        origin = self.center(small_graph)
        generator.add_height(origin, 0.9, BlobKind.ISLAND, 0.9, 0.2)
        generator.add_height(origin, 0.9, BlobKind.ISLAND, 0.9, 0.2)

        assert small_graph.heights[origin] == pytest.approx(1.0)
        assert np.all(small_graph.heights <= 1)
        assert np.all(small_graph.heights >= 0)

    def test_sharpness_above_limit_rejected(self, small_graph, generator):
        """Strong modulation would push neighbours below zero, so it is refused."""
        with pytest.raises(InvalidConfiguration):
            generator.add_height(self.center(small_graph), 0.5, BlobKind.HILL, 0.9, 2.0)
        assert np.all(small_graph.heights == 0)

    def test_full_sharpness_never_lowers_cells(self, small_graph, generator):
        small_graph.heights[:] = 0.1
        origin = self.center(small_graph)
        generator.add_height(origin, 0.5, BlobKind.HILL, 0.9, MAX_SHARPNESS)
        generator.add_height(origin, 0.5, BlobKind.ISLAND, 0.9, MAX_SHARPNESS)

        assert np.all(small_graph.heights >= 0.1)
        assert np.all(small_graph.heights <= 1)

    def test_touched_cells_lose_classification(self, small_graph, generator):
        """Every touched cell is reset to unclassified."""
        small_graph.feature_types[:] = [FeatureType.OCEAN] * small_graph.n_cells
        small_graph.feature_numbers[:] = 0

        touched = set(generator.add_height(self.center(small_graph), 0.5, "hill", 0.3, 0))

        for i in range(small_graph.n_cells):
            if i in touched:
                assert small_graph.feature_types[i] is None
                assert small_graph.feature_numbers[i] == -1
            else:
                assert small_graph.feature_types[i] is FeatureType.OCEAN

    def test_out_of_range_origin(self, small_graph, generator):
        """A bad origin raises before anything changes."""
        with pytest.raises(OutOfRangeIndex):
            generator.add_height(small_graph.n_cells, 0.5, BlobKind.ISLAND, 0.5, 0)
        assert np.all(small_graph.heights == 0)

    def test_unknown_kind(self, small_graph, generator):
        with pytest.raises(InvalidConfiguration):
            generator.add_height(0, 0.5, "volcano", 0.5, 0)

    def test_reproducible_with_sharpness(self):
        a = make_graph("same")
        b = make_graph("same")
        for graph in (a, b):
            HeightmapGenerator(graph, AleaPRNG("sharp")).add_height(
                find_cell(graph, 50, 50), 0.8, BlobKind.ISLAND, 0.8, 0.4
            )
        assert np.array_equal(a.heights, b.heights)


class TestRandomMap:
    """Test the island-and-hills map."""

    def test_random_map(self):
        graph = make_graph("random")
        heights = HeightmapGenerator(graph, AleaPRNG("random")).random_map(
            count=5, initial_height=0.9, decay=0.85, sharpness=0.2
        )

        assert np.all(heights >= 0)
        assert np.all(heights <= 1)
        assert heights.max() >= 0.9

    def test_island_in_centre_and_hills_in_band(self, monkeypatch):
        """The island lands in the centre quadrant and hills on low central cells."""
        graph = make_graph("random")
        generator = HeightmapGenerator(graph, AleaPRNG("placement"))
        calls = []
        add_height = generator.add_height

        def recording_add(origin, initial_height, kind, decay, sharpness):
            calls.append((origin, initial_height, kind, float(graph.heights[origin])))
            return add_height(origin, initial_height, kind, decay, sharpness)

        monkeypatch.setattr(generator, "add_height", recording_add)
        # Steep decay keeps blobs local so low central cells stay available
        generator.random_map(count=5, initial_height=0.3, decay=0.3, sharpness=0.2, hill_decay=0.3)

        assert len(calls) == 5
        island, hills = calls[0], calls[1:]

        origin, initial_height, kind, _ = island
        assert kind is BlobKind.ISLAND
        assert initial_height == 0.3
        # Nearest seed to a point in [50, 75] x [50, 75]
        x, y = graph.points[origin]
        assert 50 - 16 <= x <= 75 + 16
        assert 50 - 16 <= y <= 75 + 16

        for origin, hill_height, kind, height_before in hills:
            x, y = graph.points[origin]
            assert kind is BlobKind.HILL
            assert 0.1 <= hill_height < 0.5
            assert height_before <= 0.25
            assert 25 <= x <= 75
            assert 20 <= y <= 75

    def test_invalid_count(self):
        graph = make_graph("random")
        with pytest.raises(InvalidConfiguration):
            HeightmapGenerator(graph, AleaPRNG("random")).random_map(0, 0.9, 0.85, 0.2)
