"""
Error and warning types raised by the generation pipeline.

Configuration problems and bad indices are raised as exceptions and stop the
operation before anything is mutated. Degraded but usable results (a short
sample set, a coastline that does not close) are issued as warnings so the
pipeline can carry on with a partial map.
"""


class MapGenerationError(Exception):
    """Base class for map generation errors."""


class InvalidConfiguration(MapGenerationError, ValueError):
    """Generation parameters are out of range or inconsistent."""


class OutOfRangeIndex(MapGenerationError, IndexError):
    """A cell index or query point lies outside the graph."""


class MapGenerationWarning(UserWarning):
    """Base class for recoverable generation problems."""


class SamplingExhausted(MapGenerationWarning):
    """The bounded sampler gave up and returned fewer points."""


class DegenerateGeometry(MapGenerationWarning):
    """Geometry could not be fully resolved; a trivial fallback was used."""
