"""
Containment Index

Read-only spatial lookup over the classified cells of one (area, srid) pair.
Backed by an STRtree (Sort-Tile-Recursive R-tree) so point and region
lookups are O(log N) in the number of cells instead of a linear scan.
"""

import logging
from enum import IntEnum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import shapely
from shapely.strtree import STRtree

from ..exceptions import SRIDMismatchError
from ..models.cells import Cell, CellRecord, ContainmentIndexRecord, Relationship
from ..models.geometry import BoundingBox, Point

logger = logging.getLogger(__name__)


class CellMatch(IntEnum):
    """Best relationship among the cells covering a point"""
    NONE = 0
    OVERLAPS = 1
    WITHIN = 2


_MATCH_FOR = {
    Relationship.WITHIN: CellMatch.WITHIN,
    Relationship.OVERLAPS: CellMatch.OVERLAPS,
}


class ContainmentIndex:
    """
    Immutable collection of Within/Overlaps cells for one area in one SRID.

    A point on an edge shared by several cells matches all of them; the
    strongest relationship wins (Within over Overlaps).
    """

    def __init__(self, area_id: int, srid: int, cell_size: float, cells: Iterable[Cell]):
        self._area_id = area_id
        self._srid = srid
        self._cell_size = cell_size
        self._cells: Tuple[Cell, ...] = tuple(cells)
        self._matches = np.array([_MATCH_FOR[c.relationship] for c in self._cells], dtype=np.int8)

        # STRtree rejects nothing but an empty tree is pointless to query
        self._tree: Optional[STRtree] = None
        if self._cells:
            self._tree = STRtree([c.to_shapely() for c in self._cells])

        logger.debug(f"ContainmentIndex for area {area_id} (SRID {srid}) holds {len(self._cells)} cells")

    @property
    def area_id(self) -> int:
        return self._area_id

    @property
    def srid(self) -> int:
        return self._srid

    @property
    def cell_size(self) -> float:
        return self._cell_size

    @property
    def cells(self) -> Tuple[Cell, ...]:
        return self._cells

    @property
    def is_empty(self) -> bool:
        return not self._cells

    def __len__(self) -> int:
        return len(self._cells)

    def _check_srid(self, srid: int, point_index: Optional[int] = None) -> None:
        if srid != self._srid:
            raise SRIDMismatchError(self._srid, srid, point_index=point_index, area_id=self._area_id)

    def cells_in_region(self, region: BoundingBox) -> List[Cell]:
        """Cells whose rectangle intersects ``region``."""
        self._check_srid(region.srid)
        if self._tree is None:
            return []
        hits = self._tree.query(region.to_shapely(), predicate="intersects")
        return [self._cells[i] for i in sorted(hits)]

    def cells_at(self, point: Point) -> List[Cell]:
        """Cells whose closed rectangle contains ``point``."""
        self._check_srid(point.srid)
        if self._tree is None:
            return []
        hits = self._tree.query(point.to_shapely(), predicate="intersects")
        return [self._cells[i] for i in sorted(hits)]

    def has_within_cell(self, point: Point) -> bool:
        return any(c.relationship is Relationship.WITHIN for c in self.cells_at(point))

    def has_overlaps_cell(self, point: Point) -> bool:
        return any(c.relationship is Relationship.OVERLAPS for c in self.cells_at(point))

    def classify(self, points: Sequence[Point]) -> np.ndarray:
        """
        Vectorised lookup for a batch of points.

        Returns:
            int8 array of CellMatch values, one per point, in input order

        Raises:
            SRIDMismatchError: on the first point whose SRID differs from the index
        """
        for i, point in enumerate(points):
            self._check_srid(point.srid, point_index=i)

        result = np.zeros(len(points), dtype=np.int8)
        if self._tree is None or not points:
            return result

        geometries = shapely.points([p.x for p in points], [p.y for p in points])
        point_idx, cell_idx = self._tree.query(geometries, predicate="intersects")
        # Within beats Overlaps when a point sits on a shared cell edge
        np.maximum.at(result, point_idx, self._matches[cell_idx])
        return result

    def get_stats(self) -> Dict[str, Any]:
        """Index statistics"""
        within = int(np.count_nonzero(self._matches == CellMatch.WITHIN))
        return {
            "area_id": self._area_id,
            "srid": self._srid,
            "cell_size": self._cell_size,
            "total_cells": len(self._cells),
            "within_cells": within,
            "overlaps_cells": len(self._cells) - within,
            "index_type": "STRtree (R-tree)",
        }

    def to_record(self) -> ContainmentIndexRecord:
        return ContainmentIndexRecord(
            area_id=self._area_id,
            srid=self._srid,
            cell_size=self._cell_size,
            cells=[CellRecord.from_cell(c) for c in self._cells],
        )

    @classmethod
    def from_record(cls, record: ContainmentIndexRecord) -> "ContainmentIndex":
        return cls(record.area_id, record.srid, record.cell_size, (r.to_cell(record.cell_size) for r in record.cells))
