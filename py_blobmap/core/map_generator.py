"""
Map generation pipeline.

PointSampler -> CellGraphBuilder -> ElevationEngine -> FeatureClassifier ->
CoastlineTracer. A MapGenerator owns the graph for one map: ``generate``
builds it from scratch and ``add_blob_at`` edits it in place, after which
features and coastlines are recomputed.
"""

import copy
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

import structlog

from .alea_prng import AleaPRNG
from .coastline import CoastlineLoop, FeatureKey, trace_coastlines
from .errors import InvalidConfiguration
from .features import Feature, Features
from .heightmap_generator import BlobKind, GenerationMode, HeightmapGenerator
from .poisson_sampler import compute_margin, sample_points
from .voronoi_graph import CellGraph, build_cell_graph, find_cell
from ..utils.random import resolve_prng

if TYPE_CHECKING:
    from ..config.generation import GenerationConfig

logger = structlog.get_logger()

# Interactive hills spread wide and flat
HILL_DECAY = 0.99
HILL_HEIGHT_RANGE = (0.1, 0.5)


@dataclass
class TerrainMap:
    """Everything the renderer needs to draw one map."""

    config: "GenerationConfig"
    graph: CellGraph
    features: List[Feature]
    coastlines: Dict[FeatureKey, List[CoastlineLoop]]
    margin: float = 0.0
    blobs_added: int = 0
    generation_time_seconds: Optional[float] = field(default=None)

    def snapshot(self) -> "TerrainMap":
        """Independent copy, safe to hand to a renderer."""
        return TerrainMap(
            config=self.config,
            graph=self.graph.copy(),
            features=copy.deepcopy(self.features),
            coastlines=copy.deepcopy(self.coastlines),
            margin=self.margin,
            blobs_added=self.blobs_added,
            generation_time_seconds=self.generation_time_seconds,
        )

    def feature_at(self, cell: int) -> Optional[Feature]:
        """Feature the given cell belongs to."""
        self.graph.check_index(cell)
        key = (self.graph.feature_types[cell], int(self.graph.feature_numbers[cell]))
        for feature in self.features:
            if feature.key == key:
                return feature
        return None


class MapGenerator:
    """Generates a map and applies interactive edits to it."""

    def __init__(self, config: "GenerationConfig", prng: Optional[AleaPRNG] = None):
        """
        Args:
            config: Generation parameters
            prng: Random source; when omitted a PRNG seeded from
                ``config.seed`` is used, or the shared one if there is no seed
        """
        self.config = config
        if prng is None and config.seed is not None:
            prng = AleaPRNG(config.seed)
        self.prng = resolve_prng(prng)
        self._terrain: Optional[TerrainMap] = None

    @property
    def terrain(self) -> TerrainMap:
        if self._terrain is None:
            raise RuntimeError("No map generated yet. Call generate() first!")
        return self._terrain

    def generate(self) -> TerrainMap:
        """Run the full pipeline and replace the current map."""
        config = self.config
        started = time.perf_counter()
        logger.info(
            "Generating map",
            width=config.width,
            height=config.height,
            spacing=config.spacing,
            seed=config.seed,
            mode=config.mode.value,
        )

        margin = 0.0
        if config.apply_margin:
            margin = compute_margin(
                config.spacing, config.sea_level, config.peak_height, config.decay
            )
            if 2 * margin >= config.width or 2 * margin >= config.height:
                raise InvalidConfiguration(
                    f"Margin {margin} leaves no interior in a "
                    f"{config.width}x{config.height} domain"
                )

        points = sample_points(
            config.width, config.height, config.spacing, margin=margin, prng=self.prng
        )
        graph = build_cell_graph(points, (config.width, config.height))

        heightmap = HeightmapGenerator(graph, self.prng)
        if config.mode is GenerationMode.RANDOM_MAP:
            heightmap.random_map(
                count=config.blob_count,
                initial_height=config.peak_height,
                decay=config.decay,
                sharpness=config.sharpness,
                hill_decay=HILL_DECAY,
            )
        else:
            heightmap.spread(
                peak=config.peak_height,
                decay=config.decay,
                sharpness=config.sharpness,
                blob_count=config.blob_count,
            )
        features = Features(graph, self.prng).classify(config.sea_level)
        coastlines = trace_coastlines(graph)

        elapsed = time.perf_counter() - started
        self._terrain = TerrainMap(
            config=config,
            graph=graph,
            features=features,
            coastlines=coastlines,
            margin=margin,
            generation_time_seconds=elapsed,
        )
        logger.info("Map generated", cells=graph.n_cells, seconds=round(elapsed, 3))
        return self._terrain

    def add_blob_at(
        self,
        point: Optional[Tuple[float, float]] = None,
        cell: Optional[int] = None,
        kind: Optional[BlobKind] = None,
        height: Optional[float] = None,
        decay: Optional[float] = None,
        sharpness: Optional[float] = None,
    ) -> TerrainMap:
        """
        Raise a blob at a point or cell and refresh features and coastlines.

        Exactly one of ``point`` and ``cell`` must be given. When ``kind`` is
        omitted the first edit of a map is an island and later ones are
        hills. Islands default to the configured peak height and decay;
        hills default to a random height between 0.1 and 0.5 and a decay of
        0.99. Nothing is mutated if the target is outside the graph.
        """
        terrain = self.terrain
        graph = terrain.graph

        if (point is None) == (cell is None):
            raise InvalidConfiguration("Give exactly one of point or cell")
        if point is not None:
            cell = find_cell(graph, float(point[0]), float(point[1]))
        graph.check_index(cell)

        if kind is None:
            kind = BlobKind.ISLAND if terrain.blobs_added == 0 else BlobKind.HILL
        try:
            kind = BlobKind(kind)
        except ValueError:
            raise InvalidConfiguration(f"Unknown blob kind: {kind!r}") from None

        if height is None:
            if kind is BlobKind.ISLAND:
                height = self.config.peak_height
            else:
                height = self.prng.uniform(*HILL_HEIGHT_RANGE)
        if decay is None:
            decay = self.config.decay if kind is BlobKind.ISLAND else HILL_DECAY
        if sharpness is None:
            sharpness = self.config.sharpness

        touched = HeightmapGenerator(graph, self.prng).add_height(
            cell, height, kind, decay, sharpness
        )
        terrain.features = Features(graph, self.prng).classify(self.config.sea_level)
        terrain.coastlines = trace_coastlines(graph)
        terrain.blobs_added += 1

        logger.info(
            "Blob added at cell",
            cell=cell,
            kind=kind.value,
            height=round(float(height), 3),
            touched=len(touched),
        )
        return terrain
