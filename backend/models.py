from pydantic import BaseModel, Field
from typing import List, Optional


class TileRequest(BaseModel):
    x: int = Field(ge=0)
    y: int = Field(ge=0)
    z: int = Field(ge=0, le=22)


class TileCoordinateModel(BaseModel):
    x: int
    y: int
    z: int


class LoaderStatusResponse(BaseModel):
    state: str
    current: Optional[TileCoordinateModel] = None
    pending: List[TileCoordinateModel]
    cached: List[TileCoordinateModel]
    error: Optional[str] = None


class SkippedFeature(BaseModel):
    index: int
    message: str


class MeshResponse(BaseModel):
    x: int
    y: int
    z: int
    stride: int
    vertex_count: int
    vertices: List[float]   # flat position(3) + normal(3) + side(1)
    indices: List[int]
    skipped: List[SkippedFeature] = []
