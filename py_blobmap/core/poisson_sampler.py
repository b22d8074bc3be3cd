"""Blue-noise point sampling (Bridson's Poisson-disc algorithm)."""

import math
import warnings
from typing import Iterator, List, Optional, Tuple

import numpy as np
import structlog

from .alea_prng import AleaPRNG
from .errors import InvalidConfiguration, SamplingExhausted
from ..utils.random import resolve_prng

logger = structlog.get_logger()

Point = Tuple[float, float]

CANDIDATE_ATTEMPTS = 30
MARGIN_ATTEMPTS = 1000


def poisson_disc_sampler(
    width: float,
    height: float,
    radius: float,
    prng: Optional[AleaPRNG] = None,
    k: int = CANDIDATE_ATTEMPTS,
) -> Iterator[Point]:
    """
    Generate points in [0, width) x [0, height) no closer than ``radius``.

    Points are produced lazily. The generator keeps an active list and a
    background grid of cell size r/sqrt(2) so each grid cell holds at most
    one sample; neighbourhood checks only look at the surrounding 5x5 cells.

    Args:
        width: Domain width
        height: Domain height
        radius: Minimum distance between any two points
        prng: Random source (defaults to the shared PRNG)
        k: Candidate attempts per active point before it is retired

    Returns:
        Iterator of (x, y) tuples. Not restartable.
    """
    if width <= 0 or height <= 0:
        raise InvalidConfiguration(
            f"Domain must have positive size, got {width}x{height}"
        )
    if radius <= 0:
        raise InvalidConfiguration(f"Point spacing must be positive, got {radius}")
    return _sample(width, height, radius, resolve_prng(prng), k)


def _sample(
    width: float, height: float, radius: float, prng: AleaPRNG, k: int
) -> Iterator[Point]:
    radius2 = radius * radius
    annulus = 3 * radius2  # r^2 .. (2r)^2
    cell_size = radius * math.sqrt(0.5)
    grid_width = int(math.ceil(width / cell_size))
    grid_height = int(math.ceil(height / cell_size))
    grid: List[Optional[Point]] = [None] * (grid_width * grid_height)
    active: List[Point] = []

    def far(x: float, y: float) -> bool:
        i = int(x / cell_size)
        j = int(y / cell_size)
        i0 = max(i - 2, 0)
        j0 = max(j - 2, 0)
        i1 = min(i + 3, grid_width)
        j1 = min(j + 3, grid_height)

        for jj in range(j0, j1):
            row = jj * grid_width
            for ii in range(i0, i1):
                s = grid[row + ii]
                if s is not None:
                    dx = s[0] - x
                    dy = s[1] - y
                    if dx * dx + dy * dy < radius2:
                        return False
        return True

    def place(x: float, y: float) -> Point:
        s = (x, y)
        active.append(s)
        grid[grid_width * int(y / cell_size) + int(x / cell_size)] = s
        return s

    yield place(prng.random() * width, prng.random() * height)

    while active:
        i = prng.randrange(len(active))
        s = active[i]

        for _ in range(k):
            a = 2 * math.pi * prng.random()
            r = math.sqrt(prng.random() * annulus + radius2)
            x = s[0] + r * math.cos(a)
            y = s[1] + r * math.sin(a)

            if 0 <= x < width and 0 <= y < height and far(x, y):
                yield place(x, y)
                break
        else:
            # Swap-remove: order of the active list does not matter
            active[i] = active[-1]
            active.pop()


def compute_margin(
    radius: float, sea_level: float, peak_height: float, decay: float
) -> float:
    """
    Border margin a blob needs to fade below sea level before the map edge.

    A blob loses a factor ``decay`` per ring of cells, and rings are roughly
    ``radius`` apart, so it takes ceil(log(sea_level / peak) / log(decay))
    rings to drop under the threshold.

    Returns:
        Margin in map units, never negative
    """
    if not 0 < decay < 1:
        raise InvalidConfiguration(f"Decay must be in (0, 1) to derive a margin, got {decay}")
    if sea_level <= 0 or peak_height <= 0:
        raise InvalidConfiguration("Sea level and peak height must be positive")

    rings = math.ceil(math.log(sea_level / peak_height) / math.log(decay))
    return radius * max(rings, 0)


def bounded_poisson_disc_sampler(
    width: float,
    height: float,
    radius: float,
    margin: float,
    prng: Optional[AleaPRNG] = None,
    max_attempts: int = MARGIN_ATTEMPTS,
) -> Iterator[Point]:
    """
    Poisson-disc sampler that keeps ``margin`` clear along every edge.

    Fails immediately with InvalidConfiguration if the margin leaves no
    interior. Points from the base sampler landing inside the margin are
    discarded; after ``max_attempts`` consecutive discards the sampler stops
    early and a SamplingExhausted warning is issued.
    """
    if margin < 0:
        raise InvalidConfiguration(f"Margin must not be negative, got {margin}")
    if 2 * margin >= width or 2 * margin >= height:
        raise InvalidConfiguration(
            f"Margin {margin} leaves no interior in a {width}x{height} domain"
        )
    base = poisson_disc_sampler(width, height, radius, prng)
    return _bounded(base, width, height, margin, max_attempts)


def _bounded(
    base: Iterator[Point],
    width: float,
    height: float,
    margin: float,
    max_attempts: int,
) -> Iterator[Point]:
    produced = 0
    rejected = 0
    for x, y in base:
        if margin <= x <= width - margin and margin <= y <= height - margin:
            rejected = 0
            produced += 1
            yield (x, y)
            continue

        rejected += 1
        if rejected >= max_attempts:
            logger.warning(
                "Bounded sampling exhausted", points=produced, attempts=max_attempts
            )
            warnings.warn(
                f"Could not place a point outside the {margin} margin after "
                f"{max_attempts} attempts; continuing with {produced} points",
                SamplingExhausted,
                stacklevel=2,
            )
            return


def sample_points(
    width: float,
    height: float,
    radius: float,
    margin: float = 0.0,
    prng: Optional[AleaPRNG] = None,
) -> np.ndarray:
    """
    Drain a sampler into an (N, 2) array.

    Uses the bounded sampler when ``margin`` is positive.
    """
    if margin > 0:
        sampler = bounded_poisson_disc_sampler(width, height, radius, margin, prng)
    else:
        sampler = poisson_disc_sampler(width, height, radius, prng)

    points = np.array(list(sampler), dtype=np.float64).reshape(-1, 2)
    logger.info(
        "Points sampled",
        count=len(points),
        width=width,
        height=height,
        radius=radius,
        margin=margin,
    )
    return points
