"""FastAPI main application."""

import logging
import threading
import uuid
from collections import OrderedDict
from contextlib import contextmanager
from typing import Iterator, List, NamedTuple, Optional

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .. import __version__
from ..config import GenerationConfig, settings
from ..core.errors import InvalidConfiguration, OutOfRangeIndex
from ..core.heightmap_generator import MAX_SHARPNESS, BlobKind, GenerationMode
from ..core.map_generator import MapGenerator, TerrainMap


def configure_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Route structlog through stdlib logging with a JSON or console renderer."""
    logging.basicConfig(
        format="%(message)s", level=getattr(logging, level.upper(), logging.INFO)
    )
    if fmt == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging(settings.log_level, settings.log_format)

logger = structlog.get_logger()

# Initialize FastAPI app
app = FastAPI(
    title="Blob Map Generator API",
    description="Procedural island maps on a Voronoi cell graph",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class StoredMap(NamedTuple):
    generator: MapGenerator
    lock: threading.Lock


class MapStore:
    """In-memory store of map sessions, oldest evicted first.

    Each map carries its own lock so edits to one map never wait on another.
    """

    def __init__(self, capacity: int):
        self.capacity = capacity
        self._maps: "OrderedDict[str, StoredMap]" = OrderedDict()
        self._lock = threading.Lock()

    def add(self, generator: MapGenerator) -> str:
        map_id = str(uuid.uuid4())
        with self._lock:
            self._maps[map_id] = StoredMap(generator, threading.Lock())
            while len(self._maps) > self.capacity:
                evicted, _ = self._maps.popitem(last=False)
                logger.info("Map evicted from store", map_id=evicted)
        return map_id

    def entry(self, map_id: str) -> StoredMap:
        with self._lock:
            stored = self._maps.get(map_id)
        if stored is None:
            raise HTTPException(status_code=404, detail="Map not found")
        return stored

    @contextmanager
    def editing(self, map_id: str) -> Iterator[MapGenerator]:
        """Hold the map's lock while reading or editing it."""
        stored = self.entry(map_id)
        with stored.lock:
            yield stored.generator

    def clear(self) -> None:
        with self._lock:
            self._maps.clear()


store = MapStore(settings.max_stored_maps)


# Request/Response models
class MapGenerationRequest(BaseModel):
    """Request to generate a new map."""

    width: float = Field(gt=0, description="Map width")
    height: float = Field(gt=0, description="Map height")
    spacing: float = Field(gt=0, description="Minimum distance between cell seeds")
    sea_level: float = Field(description="Land/water height threshold")
    peak_height: float = Field(description="Height of the first blob")
    decay: float = Field(description="Height factor applied per ring of cells")
    sharpness: float = Field(description="Random height modulation strength")
    blob_count: int = Field(description="Number of blobs")
    mode: GenerationMode = Field(GenerationMode.SPREAD, description="spread or random_map")
    seed: Optional[str] = Field(None, description="Random seed; a fresh one is drawn when omitted")
    apply_margin: bool = Field(True, description="Keep cell seeds away from the map border")


class AddBlobRequest(BaseModel):
    """Request to raise a blob on an existing map."""

    x: Optional[float] = Field(None, description="X coordinate of the click")
    y: Optional[float] = Field(None, description="Y coordinate of the click")
    cell: Optional[int] = Field(None, description="Cell index, instead of a point")
    kind: Optional[BlobKind] = Field(None, description="island or hill; alternates when omitted")
    height: Optional[float] = Field(None, ge=0, le=1, description="Height added at the origin")
    decay: Optional[float] = Field(None, description="Height factor applied per step")
    sharpness: Optional[float] = Field(
        None, ge=0, le=MAX_SHARPNESS, description="Random height modulation strength"
    )


class CellResponse(BaseModel):
    index: int
    x: float
    y: float
    polygon: List[List[float]]
    height: float
    neighbors: List[int]
    feature_type: Optional[str]
    feature_number: int
    feature_name: Optional[str]
    shallow: bool


class FeatureResponse(BaseModel):
    type: str
    number: int
    name: str
    cells: int
    first_cell: int


class CoastlineResponse(BaseModel):
    feature_type: str
    feature_number: int
    closed: bool
    points: List[List[float]]


class MapResponse(BaseModel):
    """A generated map as plain data for the renderer."""

    id: str
    width: float
    height: float
    sea_level: float
    seed: Optional[str]
    mode: str
    cells_count: int
    margin: float
    blobs_added: int
    generation_time_seconds: Optional[float]
    features: List[FeatureResponse]
    coastlines: List[CoastlineResponse]
    cells: Optional[List[CellResponse]] = None


def _cell_response(terrain: TerrainMap, index: int) -> CellResponse:
    cell = terrain.graph.cell(index)
    return CellResponse(
        index=cell.index,
        x=cell.point[0],
        y=cell.point[1],
        polygon=cell.polygon.tolist(),
        height=cell.height,
        neighbors=list(cell.neighbors),
        feature_type=cell.feature_type.value if cell.feature_type else None,
        feature_number=cell.feature_number,
        feature_name=cell.feature_name,
        shallow=cell.shallow,
    )


def _map_response(map_id: str, terrain: TerrainMap, include_cells: bool) -> MapResponse:
    graph = terrain.graph
    features = [
        FeatureResponse(
            type=f.type.value,
            number=f.number,
            name=f.name,
            cells=f.cells,
            first_cell=f.first_cell,
        )
        for f in terrain.features
    ]
    coastlines = [
        CoastlineResponse(
            feature_type=key[0].value,
            feature_number=key[1],
            closed=loop.closed,
            points=loop.points.tolist(),
        )
        for key, loops in terrain.coastlines.items()
        for loop in loops
    ]
    cells = None
    if include_cells:
        cells = [_cell_response(terrain, i) for i in range(graph.n_cells)]

    return MapResponse(
        id=map_id,
        width=graph.width,
        height=graph.height,
        sea_level=terrain.config.sea_level,
        seed=terrain.config.seed,
        mode=terrain.config.mode.value,
        cells_count=graph.n_cells,
        margin=terrain.margin,
        blobs_added=terrain.blobs_added,
        generation_time_seconds=terrain.generation_time_seconds,
        features=features,
        coastlines=coastlines,
        cells=cells,
    )


@app.exception_handler(InvalidConfiguration)
async def invalid_configuration_handler(request: Request, exc: InvalidConfiguration):
    logger.warning("Invalid configuration", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=422, content={"detail": str(exc)})


# API endpoints
@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Blob Map Generator API",
        "version": __version__,
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.post("/maps", response_model=MapResponse, status_code=201)
def generate_map(request: MapGenerationRequest, include_cells: bool = True):
    """Generate a new map and keep it for interactive editing."""
    logger.info("Map generation requested", request=request.model_dump())

    if request.width > settings.max_map_width or request.height > settings.max_map_height:
        raise InvalidConfiguration(
            f"Map size {request.width}x{request.height} exceeds the "
            f"{settings.max_map_width}x{settings.max_map_height} limit"
        )
    estimated_cells = request.width * request.height / request.spacing ** 2
    if estimated_cells > settings.max_cells:
        raise InvalidConfiguration(
            f"Spacing {request.spacing} gives about {estimated_cells:.0f} cells, "
            f"over the {settings.max_cells} limit"
        )

    # Unseeded maps get their own PRNG instead of the shared one
    seed = request.seed or str(uuid.uuid4())[:8]
    config = GenerationConfig.create(**request.model_dump(exclude={"seed"}), seed=seed)
    generator = MapGenerator(config)
    terrain = generator.generate()
    map_id = store.add(generator)

    return _map_response(map_id, terrain.snapshot(), include_cells)


@app.get("/maps/{map_id}", response_model=MapResponse)
def get_map(map_id: str, include_cells: bool = True):
    """Return the current state of a map."""
    with store.editing(map_id) as generator:
        snapshot = generator.terrain.snapshot()
    return _map_response(map_id, snapshot, include_cells)


@app.get("/maps/{map_id}/cells/{cell_index}", response_model=CellResponse)
def get_cell(map_id: str, cell_index: int):
    """Return a single cell."""
    with store.editing(map_id) as generator:
        try:
            return _cell_response(generator.terrain, cell_index)
        except OutOfRangeIndex as e:
            raise HTTPException(status_code=404, detail=str(e))


@app.post("/maps/{map_id}/blobs", response_model=MapResponse)
def add_blob(map_id: str, request: AddBlobRequest, include_cells: bool = False):
    """Raise a blob at a point or cell, then reclassify the map."""
    point = None
    if request.x is not None or request.y is not None:
        if request.x is None or request.y is None:
            raise InvalidConfiguration("Both x and y are required for a point")
        point = (request.x, request.y)

    with store.editing(map_id) as generator:
        try:
            terrain = generator.add_blob_at(
                point=point,
                cell=request.cell,
                kind=request.kind,
                height=request.height,
                decay=request.decay,
                sharpness=request.sharpness,
            )
        except OutOfRangeIndex as e:
            status = 400 if point is not None else 404
            raise HTTPException(status_code=status, detail=str(e))
        snapshot = terrain.snapshot()

    return _map_response(map_id, snapshot, include_cells)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
