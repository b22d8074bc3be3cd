"""
Coastline tracing.

Collects every border segment between a land cell and a water cell and
stitches the segments of each feature into polylines. Island coastlines are
keyed by the island, lake shores by the lake.
"""

import warnings
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np
import structlog

from .errors import DegenerateGeometry
from .features import FeatureType
from .voronoi_graph import CellGraph

logger = structlog.get_logger()

# Guards against chains that never close because of degenerate geometry
MAX_STITCH_ITERATIONS = 2000

FeatureKey = Tuple[FeatureType, int]


@dataclass(frozen=True)
class BoundaryEdge:
    """Border segment shared by a land cell and a water cell."""

    start: int  # vertex id
    end: int    # vertex id
    feature: FeatureKey


@dataclass
class CoastlineLoop:
    """Ordered boundary points of one feature; first == last when closed."""

    feature: FeatureKey
    vertices: List[int]
    points: np.ndarray
    closed: bool

    def __len__(self) -> int:
        return len(self.points)


def collect_boundary_edges(graph: CellGraph, sea_level: float) -> List[BoundaryEdge]:
    """
    Emit one edge per (land cell, water neighbour) pair.

    The edge belongs to the lake when the water side is a lake, otherwise to
    the island on the land side. Ocean cells along a coast are flagged as
    shallow.
    """
    heights = graph.heights
    graph.shallow[:] = False
    edges = []

    for i in range(graph.n_cells):
        if heights[i] < sea_level:
            continue

        for neighbor in graph.cell_neighbors[i]:
            if heights[neighbor] >= sea_level:
                continue

            shared = graph.edge_between(i, neighbor)
            if shared is None:
                continue

            if graph.feature_types[neighbor] is FeatureType.OCEAN:
                graph.shallow[neighbor] = True
                key = (FeatureType.ISLAND, int(graph.feature_numbers[i]))
            else:
                key = (FeatureType.LAKE, int(graph.feature_numbers[neighbor]))

            edges.append(BoundaryEdge(shared[0], shared[1], key))

    return edges


def stitch_edges(
    edges: List[BoundaryEdge],
    vertex_coordinates: np.ndarray,
    feature: FeatureKey,
    max_iterations: int = MAX_STITCH_ITERATIONS,
) -> List[CoastlineLoop]:
    """
    Chain the edges of one feature into loops.

    Each loop starts at the first unconsumed edge and is extended with any
    unconsumed edge touching its current end until it closes, runs out of
    edges or hits ``max_iterations``. Unclosed chains are returned with
    ``closed=False``.
    """
    pool: Dict[int, BoundaryEdge] = dict(enumerate(edges))
    by_vertex: Dict[int, List[int]] = defaultdict(list)
    for edge_id, edge in pool.items():
        by_vertex[edge.start].append(edge_id)
        by_vertex[edge.end].append(edge_id)

    def take_touching(vertex: int) -> Optional[BoundaryEdge]:
        candidates = by_vertex[vertex]
        while candidates:
            edge_id = candidates.pop(0)
            if edge_id in pool:
                return pool.pop(edge_id)
        return None

    loops = []
    for first_id in range(len(edges)):
        if first_id not in pool:
            continue

        first = pool.pop(first_id)
        start = first.start
        end = first.end
        chain = [start, end]

        iterations = 0
        while end != start and iterations < max_iterations:
            iterations += 1
            edge = take_touching(end)
            if edge is None:
                break
            end = edge.end if edge.start == end else edge.start
            chain.append(end)

        closed = end == start
        if not closed:
            logger.warning(
                "Open coastline chain",
                feature=f"{feature[0].value} {feature[1]}",
                vertices=len(chain),
                iterations=iterations,
            )
            warnings.warn(
                f"Coastline of {feature[0].value} {feature[1]} did not close "
                f"after {iterations} steps",
                DegenerateGeometry,
                stacklevel=3,
            )

        loops.append(
            CoastlineLoop(
                feature=feature,
                vertices=chain,
                points=vertex_coordinates[chain],
                closed=closed,
            )
        )

    return loops


def trace_coastlines(
    graph: CellGraph, sea_level: Optional[float] = None
) -> Dict[FeatureKey, List[CoastlineLoop]]:
    """
    Trace the coastline loops of every island and lake.

    Args:
        graph: Classified CellGraph
        sea_level: Land threshold; defaults to the one used by the classifier

    Returns:
        Mapping from (feature type, feature number) to its loops
    """
    if sea_level is None:
        sea_level = graph.sea_level
    if sea_level is None or any(t is None for t in graph.feature_types):
        raise ValueError("Graph is not classified. Call Features.classify() first!")

    edges = collect_boundary_edges(graph, sea_level)

    groups: Dict[FeatureKey, List[BoundaryEdge]] = defaultdict(list)
    for edge in edges:
        groups[edge.feature].append(edge)

    coastlines = {}
    for key in sorted(groups, key=lambda k: (k[0].value, k[1])):
        coastlines[key] = stitch_edges(groups[key], graph.vertex_coordinates, key)

    logger.info(
        "Coastlines traced",
        edges=len(edges),
        features=len(coastlines),
        loops=sum(len(v) for v in coastlines.values()),
        open_loops=sum(1 for v in coastlines.values() for loop in v if not loop.closed),
    )
    return coastlines
