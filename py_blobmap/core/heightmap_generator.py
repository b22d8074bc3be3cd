"""
Heightmap generation by blob spreading.

A blob is one breadth-first pass over the cell graph from an origin cell,
handing a decaying height value to each ring of neighbours. Landmasses are
built by layering blobs:

- ``spread`` resets the map and plants a cluster of blobs (batch mode)
- ``add_height`` plants one blob on top of the current heights (interactive)
- ``random_map`` plants one island and a number of hills around the centre
"""

from collections import deque
from enum import Enum
from typing import List, Optional, Union

import numpy as np
import structlog

from .alea_prng import AleaPRNG
from .errors import InvalidConfiguration
from .voronoi_graph import CellGraph, find_cell
from ..utils.random import resolve_prng

logger = structlog.get_logger()

# Heights below this are not propagated any further
MIN_PROPAGATED_HEIGHT = 0.01

# Upper bound for the random height modulation strength
MAX_SHARPNESS = 1.0


class BlobKind(str, Enum):
    """How an interactive blob spreads."""

    ISLAND = "island"  # children feed off the accumulated height: steep peaks
    HILL = "hill"      # children feed off the propagated value: flat mounds


class GenerationMode(str, Enum):
    """How a fresh map is raised."""

    SPREAD = "spread"          # clustered blobs, see HeightmapGenerator.spread
    RANDOM_MAP = "random_map"  # central island plus hills, see HeightmapGenerator.random_map


class HeightmapGenerator:
    """Raises cell heights on a CellGraph by blob spreading."""

    def __init__(self, graph: CellGraph, prng: Optional[AleaPRNG] = None):
        """
        Args:
            graph: Cell graph whose ``heights`` are modified in place
            prng: Random source (defaults to the shared PRNG)
        """
        self.graph = graph
        self.n_cells = graph.n_cells
        self.prng = resolve_prng(prng)

    def _random(self) -> float:
        return self.prng.random()

    def _check_blob_params(self, decay: float, sharpness: float) -> None:
        if not 0 < decay <= 1:
            raise InvalidConfiguration(f"Decay must be in (0, 1], got {decay}")
        if not 0 <= sharpness <= MAX_SHARPNESS:
            raise InvalidConfiguration(
                f"Sharpness must be in [0, {MAX_SHARPNESS}], got {sharpness}"
            )

    def spread(
        self, peak: float, decay: float, sharpness: float, blob_count: int
    ) -> np.ndarray:
        """
        Reset all heights and plant ``blob_count`` clustered blobs.

        The first blob starts at a random cell with height ``peak``. Each
        later blob starts next to one of the earlier origins with height
        ``peak * decay ** b``, which grows one contiguous landmass instead of
        scattered noise.

        Args:
            peak: Height of the first blob
            decay: Factor applied per ring of neighbours
            sharpness: Random modulation strength (0 disables it)
            blob_count: Number of blobs to plant

        Returns:
            The graph's heights array
        """
        if peak <= 0:
            raise InvalidConfiguration(f"Peak height must be positive, got {peak}")
        if blob_count <= 0:
            raise InvalidConfiguration(f"Blob count must be positive, got {blob_count}")
        self._check_blob_params(decay, sharpness)
        self.graph.check_index(0)

        heights = self.graph.heights
        heights[:] = 0

        origins: List[int] = []
        for b in range(blob_count):
            origin = self._pick_origin(origins)
            origins.append(origin)
            h0 = peak if b == 0 else peak * decay ** b
            self._spread_blob(origin, h0, decay, sharpness)

        logger.info(
            "Blobs spread",
            blobs=blob_count,
            peak=peak,
            decay=decay,
            land_max=float(heights.max()),
        )
        return heights

    def _pick_origin(self, origins: List[int]) -> int:
        if origins:
            previous = self.prng.choice(origins)
            neighbors = self.graph.cell_neighbors[previous]
            if neighbors:
                return self.prng.choice(neighbors)
        return self.prng.randrange(self.n_cells)

    def _spread_blob(self, origin: int, h0: float, decay: float, sharpness: float) -> None:
        heights = self.graph.heights
        neighbors = self.graph.cell_neighbors

        heights[origin] = min(1.0, heights[origin] + h0)
        visited = {origin}
        queue = deque([(origin, h0)])

        while queue:
            current, h = queue.popleft()
            if h < MIN_PROPAGATED_HEIGHT:
                continue

            for neighbor in neighbors[current]:
                if neighbor in visited:
                    continue

                if sharpness == 0:
                    mod = 1.0
                else:
                    mod = 1 + sharpness * (2 * self._random() - 1)

                next_h = h * decay * mod
                if next_h < MIN_PROPAGATED_HEIGHT:
                    continue

                heights[neighbor] = max(0.0, min(1.0, heights[neighbor] + next_h))
                visited.add(neighbor)
                queue.append((neighbor, next_h))

    def add_height(
        self,
        origin: int,
        initial_height: float,
        kind: Union[BlobKind, str],
        decay: float,
        sharpness: float,
    ) -> List[int]:
        """
        Plant one blob on top of the current heights.

        For ``island`` blobs the value handed to a cell's neighbours is that
        cell's own accumulated height times ``decay``; for ``hill`` blobs it
        is the previously propagated value times ``decay``. Every touched
        cell loses its feature classification.

        Args:
            origin: Index of the origin cell
            initial_height: Height added to the origin
            kind: "island" or "hill"
            decay: Factor applied per step
            sharpness: Random modulation strength (0 disables it)

        Returns:
            Indices of all touched cells in visiting order
        """
        try:
            kind = BlobKind(kind)
        except ValueError:
            raise InvalidConfiguration(f"Unknown blob kind: {kind!r}") from None
        self._check_blob_params(decay, sharpness)
        self.graph.check_index(origin)

        heights = self.graph.heights
        neighbors = self.graph.cell_neighbors

        heights[origin] = np.clip(heights[origin] + initial_height, 0.0, 1.0)
        self.graph.clear_feature(origin)

        queue = [origin]
        visited = {origin}
        height = initial_height
        i = 0

        while i < len(queue) and height >= MIN_PROPAGATED_HEIGHT:
            current = queue[i]
            i += 1

            if kind is BlobKind.ISLAND:
                height = heights[current] * decay
            else:
                height = height * decay

            for neighbor in neighbors[current]:
                if neighbor in visited:
                    continue

                if sharpness == 0:
                    mod = 1.0
                else:
                    mod = self._random() * sharpness + 1.1 - sharpness

                heights[neighbor] = max(0.0, min(1.0, heights[neighbor] + height * mod))
                self.graph.clear_feature(neighbor)
                visited.add(neighbor)
                queue.append(neighbor)

        logger.debug(
            "Blob added",
            origin=origin,
            kind=kind.value,
            initial_height=initial_height,
            cells=len(queue),
        )
        return queue

    def random_map(
        self,
        count: int,
        initial_height: float,
        decay: float,
        sharpness: float,
        hill_decay: float = 0.99,
    ) -> np.ndarray:
        """
        Plant one island near the centre followed by ``count - 1`` hills.

        Hills go on low cells (height <= 0.25) inside the central band of the
        map, with up to 50 tries to find one; each hill gets a random height
        between 0.1 and 0.5.

        Returns:
            The graph's heights array
        """
        if count <= 0:
            raise InvalidConfiguration(f"Blob count must be positive, got {count}")
        self.graph.check_index(0)

        width = self.graph.width
        height = self.graph.height
        points = self.graph.points

        for c in range(count):
            if c == 0:
                x = self._random() * width / 4 + width / 2
                y = self._random() * height / 4 + height / 2
                start = find_cell(self.graph, x, y)
                self.add_height(start, initial_height, BlobKind.ISLAND, decay, sharpness)
                continue

            limit = 0
            while True:
                start = self.prng.randrange(self.n_cells)
                limit += 1
                sx, sy = points[start]
                unsuitable = (
                    self.graph.heights[start] > 0.25
                    or sx < width * 0.25
                    or sx > width * 0.75
                    or sy < height * 0.2
                    or sy > height * 0.75
                )
                if not unsuitable or limit >= 50:
                    break

            hill_height = self._random() * 0.4 + 0.1
            self.add_height(start, hill_height, BlobKind.HILL, hill_decay, sharpness)

        logger.info("Random map generated", blobs=count)
        return self.graph.heights
