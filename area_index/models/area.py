"""Area model: named region made of one or more polygon parts in one SRID"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .geometry import BoundingBox


class Area(BaseModel):
    """Immutable area record. Equality and hashing follow the area id."""
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    srid: int = Field(..., ge=0)
    shapefile_id: int
    bounding_box: Optional[BoundingBox] = Field(
        None, description="Union bounding box of all parts; None for an area with no parts"
    )

    def __eq__(self, other) -> bool:
        if not isinstance(other, Area):
            return False
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __str__(self) -> str:
        return self.name

    def get_details(self, indent_level: int = 0) -> str:
        indent = "\t" * indent_level
        if self.bounding_box is None:
            bounds = "empty"
        else:
            b = self.bounding_box
            bounds = f"({b.left}, {b.bottom}) - ({b.right}, {b.top})"
        lines = [
            f"{indent}ID:  {self.id}",
            f"{indent}Name:  {self.name}",
            f"{indent}Bounding box:  {bounds}",
            f"{indent}Shapefile:  {self.shapefile_id}",
            f"{indent}SRID:  {self.srid}",
        ]
        return "\n".join(lines)
