from .geometry import Point, Polygon, BoundingBox
from .cells import Relationship, Cell, CellRecord, ContainmentIndexRecord
from .area import Area

__all__ = [
    "Point",
    "Polygon",
    "BoundingBox",
    "Relationship",
    "Cell",
    "CellRecord",
    "ContainmentIndexRecord",
    "Area",
]
