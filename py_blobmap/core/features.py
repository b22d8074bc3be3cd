"""
Geographic features detection and markup.

This module handles:
- Ocean flood fill from the map's (0, 0) corner
- Island and lake identification as connected components
- Feature naming
"""

from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

import structlog

from .alea_prng import AleaPRNG
from .errors import InvalidConfiguration
from .name_generator import FeatureNameGenerator
from .voronoi_graph import CellGraph, find_cell

logger = structlog.get_logger()

OCEAN_NUMBER = 0


class FeatureType(str, Enum):
    """Kinds of connected map features."""

    OCEAN = "Ocean"
    LAKE = "Lake"
    ISLAND = "Island"


@dataclass
class Feature:
    """Represents a geographic feature (ocean, lake, island)."""

    type: FeatureType
    number: int  # unique within its type
    name: str
    cells: int  # total cells in feature
    first_cell: int

    @property
    def key(self):
        return (self.type, self.number)

    @property
    def land(self) -> bool:
        return self.type is FeatureType.ISLAND


class Features:
    """Partitions a cell graph into ocean, lake and island features."""

    def __init__(
        self,
        graph: CellGraph,
        prng: Optional[AleaPRNG] = None,
        names: Optional[FeatureNameGenerator] = None,
    ):
        """
        Args:
            graph: CellGraph with populated heights
            prng: Random source for names (defaults to the shared PRNG)
            names: Name generator; built from ``prng`` when omitted
        """
        self.graph = graph
        self.n_cells = graph.n_cells
        self.names = names or FeatureNameGenerator(prng)

    def ocean_seed(self) -> Optional[int]:
        """Cell containing the (0, 0) corner, or None for an empty graph."""
        if self.n_cells == 0:
            return None
        return find_cell(self.graph, 0.0, 0.0)

    def classify(self, sea_level: float) -> List[Feature]:
        """
        Label every cell as part of an ocean, lake or island.

        The ocean is the set of water cells reachable from the (0, 0) cell.
        The remaining cells are scanned by ascending index and each unlabeled
        cell seeds the next island (land) or lake (water) component.

        Args:
            sea_level: Cells with height >= sea_level are land

        Returns:
            List of features in discovery order
        """
        if not 0 < sea_level < 1:
            raise InvalidConfiguration(f"Sea level must be in (0, 1), got {sea_level}")

        graph = self.graph
        heights = graph.heights
        features: List[Feature] = []

        seed = self.ocean_seed()
        prior_name = None
        if seed is not None and graph.feature_types[seed] is not None:
            prior_name = graph.feature_names[seed]

        for i in range(self.n_cells):
            graph.clear_feature(i)
            graph.feature_names[i] = None

        def is_water(c: int) -> bool:
            return heights[c] < sea_level

        def is_land(c: int) -> bool:
            return heights[c] >= sea_level

        if seed is not None and is_water(seed):
            name = prior_name or self.names.generate()
            size = self._fill(seed, FeatureType.OCEAN, OCEAN_NUMBER, name, is_water)
            features.append(Feature(FeatureType.OCEAN, OCEAN_NUMBER, name, size, seed))

        island = 0
        lake = 0
        for start in range(self.n_cells):
            if graph.feature_types[start] is not None:
                continue

            if is_land(start):
                feature_type, number, same_side = FeatureType.ISLAND, island, is_land
                island += 1
            else:
                feature_type, number, same_side = FeatureType.LAKE, lake, is_water
                lake += 1

            name = self.names.generate()
            size = self._fill(start, feature_type, number, name, same_side)
            features.append(Feature(feature_type, number, name, size, start))

        graph.sea_level = sea_level
        graph.features = features

        logger.info(
            "Features marked",
            oceans=sum(1 for f in features if f.type is FeatureType.OCEAN),
            islands=island,
            lakes=lake,
        )
        return features

    def _fill(
        self,
        start: int,
        feature_type: FeatureType,
        number: int,
        name: str,
        same_side: Callable[[int], bool],
    ) -> int:
        """Label the connected component of ``start``; returns its size."""
        graph = self.graph
        visited = {start}
        queue = deque([start])

        while queue:
            cell_id = queue.popleft()
            graph.feature_types[cell_id] = feature_type
            graph.feature_numbers[cell_id] = number
            graph.feature_names[cell_id] = name

            for neighbor_id in graph.cell_neighbors[cell_id]:
                if neighbor_id not in visited and same_side(neighbor_id):
                    visited.add(neighbor_id)
                    queue.append(neighbor_id)

        return len(visited)
