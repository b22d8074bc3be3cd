"""
Core map generation functionality.
"""

from .errors import (
    DegenerateGeometry,
    InvalidConfiguration,
    MapGenerationError,
    MapGenerationWarning,
    OutOfRangeIndex,
    SamplingExhausted,
)
from .poisson_sampler import bounded_poisson_disc_sampler, compute_margin, poisson_disc_sampler, sample_points
from .voronoi_graph import Cell, CellGraph, build_cell_graph, find_cell
from .heightmap_generator import BlobKind, GenerationMode, HeightmapGenerator
from .features import Feature, Features, FeatureType
from .coastline import CoastlineLoop, trace_coastlines
from .map_generator import MapGenerator, TerrainMap

__all__ = ['DegenerateGeometry', 'InvalidConfiguration', 'MapGenerationError',
           'MapGenerationWarning', 'OutOfRangeIndex', 'SamplingExhausted',
           'bounded_poisson_disc_sampler', 'compute_margin', 'poisson_disc_sampler', 'sample_points',
           'Cell', 'CellGraph', 'build_cell_graph', 'find_cell',
           'BlobKind', 'GenerationMode', 'HeightmapGenerator',
           'Feature', 'Features', 'FeatureType',
           'CoastlineLoop', 'trace_coastlines',
           'MapGenerator', 'TerrainMap']
