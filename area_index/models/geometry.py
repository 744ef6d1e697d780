"""Geometry primitives tagged with a spatial reference id (SRID)"""
from typing import Iterable, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from shapely.geometry import Point as ShapelyPoint
from shapely.geometry import Polygon as ShapelyPolygon
from shapely.geometry import box

Coordinate = Tuple[float, float]
Ring = Tuple[Coordinate, ...]


class Point(BaseModel):
    """Point in the coordinate system identified by ``srid``"""
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    srid: int = Field(..., ge=0, description="Spatial reference id")

    def to_shapely(self) -> ShapelyPoint:
        return ShapelyPoint(self.x, self.y)

    def __str__(self) -> str:
        return f"({self.x}, {self.y})@{self.srid}"


def _validate_ring(ring: Ring, label: str) -> Ring:
    if len(ring) < 4:
        raise ValueError(f"{label} ring needs at least 4 positions, got {len(ring)}")
    if ring[0] != ring[-1]:
        raise ValueError(f"{label} ring is not closed: first {ring[0]} != last {ring[-1]}")
    return ring


class Polygon(BaseModel):
    """Closed polygon ring (plus optional holes) sharing a single SRID.

    One polygon is one part of an area; the area is the union of its parts.
    """
    model_config = ConfigDict(frozen=True)

    srid: int = Field(..., ge=0)
    exterior: Ring
    interiors: Tuple[Ring, ...] = ()

    @field_validator("exterior")
    @classmethod
    def validate_exterior(cls, v):
        return _validate_ring(v, "exterior")

    @field_validator("interiors")
    @classmethod
    def validate_interiors(cls, v):
        for ring in v:
            _validate_ring(ring, "interior")
        return v

    @classmethod
    def from_points(cls, points: Sequence[Point], holes: Iterable[Sequence[Point]] = ()) -> "Polygon":
        """Build a polygon from SRID-tagged points; all points must share one SRID."""
        if not points:
            raise ValueError("polygon needs at least one point")
        srid = points[0].srid
        holes = [list(hole) for hole in holes]
        rings = [points, *holes]
        for ring in rings:
            for p in ring:
                if p.srid != srid:
                    raise ValueError(f"polygon mixes SRIDs {srid} and {p.srid}")
        return cls(
            srid=srid,
            exterior=tuple((p.x, p.y) for p in points),
            interiors=tuple(tuple((p.x, p.y) for p in hole) for hole in holes),
        )

    @classmethod
    def from_shapely(cls, polygon: ShapelyPolygon, srid: int) -> "Polygon":
        return cls(
            srid=srid,
            exterior=tuple((x, y) for x, y in polygon.exterior.coords),
            interiors=tuple(tuple((x, y) for x, y in ring.coords) for ring in polygon.interiors),
        )

    def to_shapely(self) -> ShapelyPolygon:
        return ShapelyPolygon(self.exterior, [list(r) for r in self.interiors])


class BoundingBox(BaseModel):
    """Axis-aligned rectangle; always derived from the geometry it bounds"""
    model_config = ConfigDict(frozen=True)

    left: float
    right: float
    bottom: float
    top: float
    srid: int = Field(..., ge=0)

    @model_validator(mode="after")
    def validate_order(self):
        if self.right < self.left:
            raise ValueError("right must be >= left")
        if self.top < self.bottom:
            raise ValueError("top must be >= bottom")
        return self

    @classmethod
    def from_polygons(cls, polygons: Sequence[Polygon], srid: Optional[int] = None) -> "BoundingBox":
        """Union bounding box over all polygon parts."""
        if not polygons:
            raise ValueError("cannot derive a bounding box from zero polygons")
        srid = polygons[0].srid if srid is None else srid
        left = bottom = float("inf")
        right = top = float("-inf")
        for polygon in polygons:
            if polygon.srid != srid:
                raise ValueError(f"polygon SRID {polygon.srid} does not match {srid}")
            xs = [c[0] for c in polygon.exterior]
            ys = [c[1] for c in polygon.exterior]
            left = min(left, min(xs))
            right = max(right, max(xs))
            bottom = min(bottom, min(ys))
            top = max(top, max(ys))
        return cls(left=left, right=right, bottom=bottom, top=top, srid=srid)

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.top - self.bottom

    def contains_point(self, point: Point) -> bool:
        return self.left <= point.x <= self.right and self.bottom <= point.y <= self.top

    def to_shapely(self) -> ShapelyPolygon:
        return box(self.left, self.bottom, self.right, self.top)
