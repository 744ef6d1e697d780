"""Cell and persisted index models"""
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from shapely.geometry import Polygon as ShapelyPolygon
from shapely.geometry import box


class Relationship(str, Enum):
    """How a grid cell relates to the area it was classified against"""
    # Cell lies entirely within the area (boundary included)
    WITHIN = "Within"
    # Cell straddles the area border; points in it need the exact test
    OVERLAPS = "Overlaps"


class Cell(BaseModel):
    """Square sub-region of an area's bounding box"""
    model_config = ConfigDict(frozen=True)

    left: float
    bottom: float
    size: float = Field(..., gt=0)
    relationship: Relationship

    @property
    def right(self) -> float:
        return self.left + self.size

    @property
    def top(self) -> float:
        return self.bottom + self.size

    def contains_xy(self, x: float, y: float) -> bool:
        return self.left <= x <= self.right and self.bottom <= y <= self.top

    def to_shapely(self) -> ShapelyPolygon:
        return box(self.left, self.bottom, self.right, self.top)


class CellRecord(BaseModel):
    """Row of the persisted index: rectangle bounds and relationship tag"""
    left: float
    bottom: float
    right: float
    top: float
    relationship: Relationship

    @model_validator(mode="after")
    def validate_extent(self):
        if self.right <= self.left or self.top <= self.bottom:
            raise ValueError("cell rectangle must have positive extent")
        return self

    @classmethod
    def from_cell(cls, cell: Cell) -> "CellRecord":
        return cls(left=cell.left, bottom=cell.bottom, right=cell.right, top=cell.top,
                   relationship=cell.relationship)

    def to_cell(self, size: Optional[float] = None) -> Cell:
        """Rebuild the cell; pass the index cell size to avoid float drift from right - left."""
        return Cell(left=self.left, bottom=self.bottom, size=size or (self.right - self.left),
                    relationship=self.relationship)


class ContainmentIndexRecord(BaseModel):
    """Serialisable form of one (area, srid) containment index"""
    area_id: int
    srid: int = Field(..., ge=0)
    cell_size: float = Field(..., gt=0)
    built_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    cells: List[CellRecord] = Field(default_factory=list)

    @property
    def table_name(self) -> str:
        return f"area_bounding_boxes_{self.srid}"
