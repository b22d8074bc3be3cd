"""Voronoi cell graph construction."""

import warnings
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, NamedTuple, Optional, Tuple

import numpy as np
import structlog
from scipy.spatial import QhullError, Voronoi, cKDTree

from .errors import DegenerateGeometry, OutOfRangeIndex

if TYPE_CHECKING:
    from .features import Feature, FeatureType

logger = structlog.get_logger()

EdgeKey = Tuple[int, int]


class Cell(NamedTuple):
    """Read-only view of one cell of a CellGraph."""

    index: int
    point: Tuple[float, float]
    polygon: np.ndarray
    height: float
    neighbors: Tuple[int, ...]
    feature_type: Optional["FeatureType"]
    feature_number: int
    feature_name: Optional[str]
    shallow: bool


@dataclass
class CellGraph:
    """Planar subdivision of the map into Voronoi cells.

    Cells live in an arena addressed by their index; every per-cell property
    is a parallel array and every relation is expressed with indices, so the
    whole structure can be copied for the renderer with ``copy()``.
    """

    width: float
    height: float

    points: np.ndarray               # points[i] = seed [x, y] of cell i
    polygons: List[np.ndarray]       # polygons[i] = CCW vertex ring, closing edge implicit
    cell_neighbors: List[List[int]]  # sorted neighbour indices, symmetric
    heights: np.ndarray              # float heights in [0, 1]

    vertex_coordinates: np.ndarray           # Voronoi vertices clipped to the bounds
    edge_vertices: Dict[EdgeKey, EdgeKey]    # (i, j) with i < j -> shared edge vertex ids

    feature_types: List[Optional["FeatureType"]] = field(default_factory=list)
    feature_numbers: Optional[np.ndarray] = field(default=None)
    feature_names: List[Optional[str]] = field(default_factory=list)
    shallow: Optional[np.ndarray] = field(default=None)

    # Populated by the features module
    sea_level: Optional[float] = field(default=None)
    features: Optional[List["Feature"]] = field(default=None)

    _tree: Optional[cKDTree] = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        n = len(self.points)
        if not self.feature_types:
            self.feature_types = [None] * n
        if self.feature_numbers is None:
            self.feature_numbers = np.full(n, -1, dtype=np.int32)
        if not self.feature_names:
            self.feature_names = [None] * n
        if self.shallow is None:
            self.shallow = np.zeros(n, dtype=bool)

    def __len__(self) -> int:
        return len(self.points)

    @property
    def n_cells(self) -> int:
        return len(self.points)

    def cell(self, index: int) -> Cell:
        """Return a read-only view of cell ``index``."""
        self.check_index(index)
        return Cell(
            index=index,
            point=(float(self.points[index][0]), float(self.points[index][1])),
            polygon=self.polygons[index].copy(),
            height=float(self.heights[index]),
            neighbors=tuple(self.cell_neighbors[index]),
            feature_type=self.feature_types[index],
            feature_number=int(self.feature_numbers[index]),
            feature_name=self.feature_names[index],
            shallow=bool(self.shallow[index]),
        )

    def check_index(self, index: int) -> None:
        """Raise OutOfRangeIndex unless ``index`` names an existing cell."""
        if self.n_cells == 0:
            raise OutOfRangeIndex("Graph has no cells")
        if not 0 <= index < self.n_cells:
            raise OutOfRangeIndex(
                f"Cell index {index} outside graph of {self.n_cells} cells"
            )

    def clear_feature(self, index: int) -> None:
        """Invalidate the classification of one cell."""
        self.feature_types[index] = None
        self.feature_numbers[index] = -1

    def edge_between(self, a: int, b: int) -> Optional[EdgeKey]:
        """Vertex ids of the border shared by cells ``a`` and ``b``."""
        return self.edge_vertices.get((a, b) if a < b else (b, a))

    def copy(self) -> "CellGraph":
        """Independent snapshot of the graph."""
        return CellGraph(
            width=self.width,
            height=self.height,
            points=self.points.copy(),
            polygons=[p.copy() for p in self.polygons],
            cell_neighbors=[list(n) for n in self.cell_neighbors],
            heights=self.heights.copy(),
            vertex_coordinates=self.vertex_coordinates.copy(),
            edge_vertices=dict(self.edge_vertices),
            feature_types=list(self.feature_types),
            feature_numbers=self.feature_numbers.copy(),
            feature_names=list(self.feature_names),
            shallow=self.shallow.copy(),
            sea_level=self.sea_level,
            features=list(self.features) if self.features is not None else None,
        )


def mirror_points(points: np.ndarray, width: float, height: float) -> np.ndarray:
    """
    Reflect every point across the four edges of the bounding rectangle.

    The bisector between a point and its reflection is the edge itself, so
    adding the reflections clips every real cell to the rectangle. The
    reflections are pushed out by a tiny epsilon so points lying exactly on
    an edge do not coincide with their mirror image.
    """
    eps = 1e-9 * max(width, height)
    x = points[:, 0]
    y = points[:, 1]
    left = np.column_stack([-x - eps, y])
    right = np.column_stack([2 * width - x + eps, y])
    bottom = np.column_stack([x, -y - eps])
    top = np.column_stack([x, 2 * height - y + eps])
    return np.vstack([left, right, bottom, top])


def build_cell_connectivity(
    vor: Voronoi, n_points: int
) -> Tuple[List[List[int]], Dict[EdgeKey, EdgeKey]]:
    """
    Build cell neighbours and shared edges from scipy Voronoi ridges.

    Args:
        vor: scipy Voronoi diagram
        n_points: Number of real sites (reflections excluded)

    Returns:
        Tuple of (cell_neighbors, edge_vertices)
    """
    cell_neighbors = [set() for _ in range(n_points)]
    edge_vertices: Dict[EdgeKey, EdgeKey] = {}

    for (p1, p2), ridge in zip(vor.ridge_points, vor.ridge_vertices):
        p1 = int(p1)
        p2 = int(p2)
        # Only connections between real sites
        if p1 >= n_points or p2 >= n_points:
            continue

        cell_neighbors[p1].add(p2)
        cell_neighbors[p2].add(p1)

        if -1 not in ridge and len(ridge) == 2:
            key = (p1, p2) if p1 < p2 else (p2, p1)
            edge_vertices[key] = (int(ridge[0]), int(ridge[1]))

    return [sorted(n) for n in cell_neighbors], edge_vertices


def order_polygon(site: np.ndarray, vertices: np.ndarray) -> np.ndarray:
    """Sort the vertices of a convex cell counter-clockwise around its site."""
    angles = np.arctan2(vertices[:, 1] - site[1], vertices[:, 0] - site[0])
    return vertices[np.argsort(angles, kind="stable")]


def build_cell_polygons(vor: Voronoi, points: np.ndarray, vertices: np.ndarray) -> List[np.ndarray]:
    """
    Build the polygon ring of every real cell.

    Cells whose region cannot be resolved get a single-point boundary at
    their own site.
    """
    polygons = []
    unresolved = 0

    for i, site in enumerate(points):
        region_idx = vor.point_region[i]
        region = vor.regions[region_idx] if region_idx >= 0 else []

        if not region or -1 in region or len(region) < 3:
            polygons.append(site.reshape(1, 2).copy())
            unresolved += 1
            continue

        polygons.append(order_polygon(site, vertices[region]))

    if unresolved:
        logger.warning("Cells without resolvable polygon", count=unresolved)
        warnings.warn(
            f"{unresolved} cells have no resolvable polygon",
            DegenerateGeometry,
            stacklevel=3,
        )
    return polygons


def _degenerate_graph(points: np.ndarray, width: float, height: float) -> CellGraph:
    n = len(points)
    return CellGraph(
        width=width,
        height=height,
        points=points,
        polygons=[p.reshape(1, 2).copy() for p in points],
        cell_neighbors=[[] for _ in range(n)],
        heights=np.zeros(n, dtype=np.float64),
        vertex_coordinates=np.zeros((0, 2), dtype=np.float64),
        edge_vertices={},
    )


def build_cell_graph(points, bounds: Tuple[float, float]) -> CellGraph:
    """
    Turn a point set into a clipped Voronoi cell graph.

    Cell ``i`` is built from ``points[i]``; this index is the cell's only
    identity for the lifetime of the graph.

    Args:
        points: Sequence or (N, 2) array of [x, y] sites
        bounds: (width, height) of the rectangle anchored at the origin

    Returns:
        CellGraph with polygons, neighbours, shared edges and zero heights
    """
    width, height = bounds
    points = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    n_points = len(points)

    logger.info("Building cell graph", points=n_points, width=width, height=height)

    if n_points < 3:
        if n_points:
            logger.warning("Too few points for a Voronoi diagram", points=n_points)
            warnings.warn(
                f"Only {n_points} points; cells get trivial boundaries",
                DegenerateGeometry,
                stacklevel=2,
            )
        return _degenerate_graph(points, width, height)

    all_points = np.vstack([points, mirror_points(points, width, height)])
    try:
        vor = Voronoi(all_points)
    except QhullError as e:
        logger.warning("Voronoi computation failed", error=str(e))
        warnings.warn(
            f"Voronoi computation failed ({e}); cells get trivial boundaries",
            DegenerateGeometry,
            stacklevel=2,
        )
        return _degenerate_graph(points, width, height)

    logger.info(
        "Voronoi diagram calculated",
        vertices=len(vor.vertices),
        ridges=len(vor.ridge_points),
    )

    vertices = vor.vertices.copy()
    vertices[:, 0] = np.clip(vertices[:, 0], 0, width)
    vertices[:, 1] = np.clip(vertices[:, 1], 0, height)

    cell_neighbors, edge_vertices = build_cell_connectivity(vor, n_points)
    polygons = build_cell_polygons(vor, points, vertices)

    graph = CellGraph(
        width=width,
        height=height,
        points=points,
        polygons=polygons,
        cell_neighbors=cell_neighbors,
        heights=np.zeros(n_points, dtype=np.float64),
        vertex_coordinates=vertices,
        edge_vertices=edge_vertices,
    )
    logger.info("Cell graph built", cells=n_points, edges=len(edge_vertices))
    return graph


def find_cell(graph: CellGraph, x: float, y: float) -> int:
    """
    Find the cell containing (x, y).

    A point belongs to the Voronoi cell of its nearest site, so this is a
    nearest-neighbour query against the cell seeds.

    Raises:
        OutOfRangeIndex: if the graph is empty or the point is outside the map
    """
    if graph.n_cells == 0:
        raise OutOfRangeIndex("Graph has no cells")
    if not (0 <= x <= graph.width and 0 <= y <= graph.height):
        raise OutOfRangeIndex(
            f"Point ({x}, {y}) outside map bounds {graph.width}x{graph.height}"
        )

    if graph._tree is None:
        graph._tree = cKDTree(graph.points)
    _, index = graph._tree.query([x, y])
    return int(index)
