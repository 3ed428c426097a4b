import logging

from fastapi import APIRouter, Depends, HTTPException

from backend.models import (LoaderStatusResponse, MeshResponse, SkippedFeature,
                            TileCoordinateModel, TileRequest)
from backend.service import TileService, get_tile_service
from globetiles.extrude import VERTEX_STRIDE
from globetiles.models import TileCoordinate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tiles", tags=["tiles"])


def _coord_model(coord: TileCoordinate) -> TileCoordinateModel:
    return TileCoordinateModel(x=coord.x, y=coord.y, z=coord.z)


def _status(service: TileService) -> LoaderStatusResponse:
    loader = service.loader
    return LoaderStatusResponse(
        state=loader.state.value,
        current=_coord_model(loader.current) if loader.current else None,
        pending=[_coord_model(c) for c in loader.pending],
        cached=[_coord_model(c) for c, _ in loader.tiles()],
        error=service.last_error,
    )


@router.post("", response_model=LoaderStatusResponse, status_code=202)
async def request_tile(request: TileRequest,
                       service: TileService = Depends(get_tile_service)):
    """Queue a tile for loading.

    The fetch runs in a background task; poll ``GET /api/tiles`` or the mesh
    endpoint until the tile shows up.
    """
    try:
        service.request(request.x, request.y, request.z)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return _status(service)


@router.get("", response_model=LoaderStatusResponse)
async def loader_status(service: TileService = Depends(get_tile_service)):
    """Cached tiles, pending queue and loader state."""
    return _status(service)


@router.get("/{z}/{x}/{y}/mesh", response_model=MeshResponse)
async def get_tile_mesh(z: int, x: int, y: int,
                        service: TileService = Depends(get_tile_service)):
    """Extruded line mesh of a loaded tile, ready for GPU upload."""
    try:
        coord = TileCoordinate.create(x, y, z)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    mesh = service.mesh_for(coord)
    if mesh is None:
        raise HTTPException(status_code=404, detail=f"Tile {coord} is not loaded")

    vertices, indices = mesh.as_buffers()
    tile = service.loader.lookup(coord)
    return MeshResponse(
        x=coord.x, y=coord.y, z=coord.z,
        stride=VERTEX_STRIDE,
        vertex_count=mesh.vertex_count,
        vertices=vertices.tolist(),
        indices=indices.tolist(),
        skipped=[SkippedFeature(index=s.index, message=s.message)
                 for s in tile.skipped],
    )
