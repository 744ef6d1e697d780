"""
Cell Classifier

Partitions an area's bounding box into a regular grid of square cells and
tags every cell against the union of the area's polygon parts:

- ``Within``: the area covers the whole cell (cell boundary included)
- ``Overlaps``: the cell's interior meets the area's interior but the cell is
  not covered
- anything else is discarded

Cells that merely touch the area along an edge or corner are discarded: every
boundary point of a valid area is also inside some cell whose interior
meets the area's interior, so the stored cells still cover the closed area.
"""

import logging
import math
import threading
import time
from typing import List, Optional, Sequence, Tuple

import numpy as np
import shapely
from shapely.ops import unary_union
from shapely.validation import explain_validity

from ..exceptions import (
    BuildCancelledError,
    CellBudgetExceededError,
    InvalidCellSizeError,
    MalformedGeometryError,
    SRIDMismatchError,
)
from ..logging_config import get_area_logger
from ..models.cells import Cell, Relationship
from ..models.geometry import BoundingBox, Polygon
from .exact_test import PreparedGeometry
from .thread_pool_service import ThreadPoolService

logger = logging.getLogger(__name__)


def grid_shape(bounding_box: BoundingBox, cell_size: float) -> Tuple[int, int]:
    """(columns, rows) of the grid covering ``bounding_box``; at least one of each."""
    columns = max(1, math.ceil(bounding_box.width / cell_size))
    rows = max(1, math.ceil(bounding_box.height / cell_size))
    return columns, rows


class CellClassifier:
    """Builds the classified cell list for one area"""

    def __init__(self, thread_pool: Optional[ThreadPoolService] = None,
                 row_batch: int = 64, max_cells: int = 2_000_000):
        """
        Args:
            thread_pool: Pool used to classify row batches concurrently; None builds on the caller's thread
            row_batch: Grid rows per batch; cancellation is checked between batches
            max_cells: Refuse grids estimated above this many cells
        """
        if row_batch <= 0:
            raise ValueError(f"row_batch must be > 0, got {row_batch}")
        self.thread_pool = thread_pool
        self.row_batch = row_batch
        self.max_cells = max_cells

    @staticmethod
    def estimate_cell_count(bounding_box: BoundingBox, cell_size: float) -> int:
        """Number of grid cells a build will classify (before discarding outside cells)."""
        if not cell_size > 0:
            raise InvalidCellSizeError(cell_size)
        columns, rows = grid_shape(bounding_box, cell_size)
        return columns * rows

    def build(
        self,
        polygons: Sequence[Polygon],
        bounding_box: Optional[BoundingBox],
        cell_size: float,
        cancel_event: Optional[threading.Event] = None,
        area_id: Optional[int] = None,
    ) -> List[Cell]:
        """
        Classify every grid cell of ``bounding_box`` against the union of ``polygons``.

        Returns:
            Within/Overlaps cells in row-major order (bottom row first)

        Raises:
            InvalidCellSizeError: cell_size <= 0 (checked before any geometry work)
            MalformedGeometryError: a polygon part is not a valid polygon
            SRIDMismatchError: a part's SRID differs from the bounding box SRID
            CellBudgetExceededError: the grid would exceed ``max_cells``
            BuildCancelledError: ``cancel_event`` was set between batches
        """
        if not cell_size > 0:
            raise InvalidCellSizeError(cell_size, area_id=area_id)

        if not polygons:
            logger.info(f"Area {area_id} has no polygon parts; producing an empty index")
            return []

        if bounding_box is None:
            bounding_box = BoundingBox.from_polygons(polygons)

        area_logger = get_area_logger(__name__, area_id, bounding_box.srid)
        union = self._union(polygons, bounding_box.srid, area_id)

        columns, rows = grid_shape(bounding_box, cell_size)
        estimated = columns * rows
        if estimated > self.max_cells:
            raise CellBudgetExceededError(estimated, self.max_cells, cell_size, area_id=area_id)

        area_logger.info(f"Classifying {estimated} cells ({columns}x{rows}) at cell size {cell_size}")
        start = time.perf_counter()

        geometry = PreparedGeometry(union)
        batches = [(r, min(r + self.row_batch, rows)) for r in range(0, rows, self.row_batch)]

        cells: List[Cell] = []

        def classify(batch):
            # Checked again per batch, on whichever thread runs it
            self._check_cancelled(cancel_event, cells, area_id)
            return self._classify_rows(geometry.get(), bounding_box, cell_size, columns, *batch)

        if self.thread_pool is None or len(batches) == 1:
            for batch in batches:
                cells.extend(classify(batch))
        else:
            futures = [self.thread_pool.cpu_pool.submit(classify, batch) for batch in batches]
            try:
                for future in futures:
                    self._check_cancelled(cancel_event, cells, area_id)
                    batch_cells = future.result()
                    self._check_cancelled(cancel_event, cells, area_id)
                    cells.extend(batch_cells)
            finally:
                for future in futures:
                    future.cancel()

        within = sum(1 for c in cells if c.relationship is Relationship.WITHIN)
        area_logger.info(
            f"Classified {estimated} cells: {within} within, {len(cells) - within} overlapping, "
            f"{estimated - len(cells)} discarded",
            extra={"cell_count": len(cells), "duration_ms": round((time.perf_counter() - start) * 1000, 1)},
        )
        return cells

    @staticmethod
    def _check_cancelled(cancel_event: Optional[threading.Event], cells: List[Cell],
                         area_id: Optional[int]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            logger.warning(f"Index build for area {area_id} cancelled")
            raise BuildCancelledError(len(cells), area_id=area_id)

    @staticmethod
    def _union(polygons: Sequence[Polygon], srid: int, area_id: Optional[int]):
        geometries = []
        for part_index, polygon in enumerate(polygons):
            if polygon.srid != srid:
                raise SRIDMismatchError(srid, polygon.srid, area_id=area_id)
            geometry = polygon.to_shapely()
            if not geometry.is_valid:
                raise MalformedGeometryError(part_index, explain_validity(geometry), area_id=area_id)
            geometries.append(geometry)
        return unary_union(geometries)

    @staticmethod
    def _classify_rows(area, bounding_box: BoundingBox, cell_size: float, columns: int,
                       row_start: int, row_end: int) -> List[Cell]:
        xs = bounding_box.left + np.arange(columns, dtype=float) * cell_size
        ys = bounding_box.bottom + np.arange(row_start, row_end, dtype=float) * cell_size
        lefts, bottoms = np.meshgrid(xs, ys)
        lefts = lefts.ravel()
        bottoms = bottoms.ravel()

        boxes = shapely.box(lefts, bottoms, lefts + cell_size, bottoms + cell_size)
        within = shapely.covers(area, boxes)
        overlaps = ~within & shapely.intersects(area, boxes) & ~shapely.touches(area, boxes)

        cells = []
        for i in np.flatnonzero(within | overlaps):
            relationship = Relationship.WITHIN if within[i] else Relationship.OVERLAPS
            cells.append(Cell(left=float(lefts[i]), bottom=float(bottoms[i]), size=cell_size,
                              relationship=relationship))
        return cells
