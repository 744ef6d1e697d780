"""Request/response models for the HTTP API"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .geometry import BoundingBox, Point


class CreateAreaRequest(BaseModel):
    name: str = Field(..., min_length=1, description="Area name")
    shapefile_id: int = Field(..., description="Shapefile the area geometry was imported from")
    srid: int = Field(..., ge=0, description="SRID of the geometry coordinates")
    geometry: Dict[str, Any] = Field(..., description="GeoJSON Polygon, MultiPolygon, Feature or FeatureCollection")
    cell_size: Optional[float] = Field(None, description="Index cell size; defaults to DEFAULT_CELL_SIZE")


class AreaResponse(BaseModel):
    id: int
    name: str
    srid: int
    shapefile_id: int
    bounding_box: Optional[BoundingBox] = None
    index: Optional[Dict[str, Any]] = Field(None, description="Containment index statistics")


class ContainsRequest(BaseModel):
    points: List[Point] = Field(default_factory=list, description="Points to test, in order")


class ContainsResponse(BaseModel):
    area_id: int
    results: List[bool] = Field(..., description="One result per input point, in input order")
    total_points: int
    fast_path: int = Field(..., description="Points decided by a Within cell")
    exact_tests: int = Field(..., description="Points decided by the exact polygon test")
    outside: int = Field(..., description="Points with no covering cell")


class EstimateResponse(BaseModel):
    area_id: int
    cell_size: float
    estimated_cells: int
    max_cells: int
    within_budget: bool


class DeleteShapefileResponse(BaseModel):
    shapefile_id: int
    deleted_area_ids: List[int]
