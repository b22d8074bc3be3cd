"""Procedural island map generation on a Voronoi cell graph."""

__version__ = "0.1.0"

from .core import (
    BlobKind,
    CellGraph,
    FeatureType,
    MapGenerator,
    TerrainMap,
)

__all__ = ["BlobKind", "CellGraph", "FeatureType", "MapGenerator", "TerrainMap", "__version__"]
