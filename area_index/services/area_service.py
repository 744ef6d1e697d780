"""
Area index service: ties the polygon store, classifier, index store and
query engine together behind the operations the rest of the application
calls (create an area, query a batch of points, discard a shapefile).
"""

import logging
import threading
from typing import Dict, List, Optional, Sequence, Tuple

from ..config import Settings
from ..exceptions import AreaIndexError, IndexNotFoundError, InvalidCellSizeError
from ..logging_config import get_area_logger
from ..models.area import Area
from ..models.geometry import Point, Polygon
from .area_store import AreaPolygonStore
from .cell_classifier import CellClassifier
from .containment_index import ContainmentIndex
from .exact_test import ExactTest
from .index_store import ContainmentIndexStore, InMemoryIndexStore, create_index_store
from .query_engine import BatchContainmentQueryEngine, ContainmentResult
from .srid_service import SRIDRegistry
from .thread_pool_service import ThreadPoolService

logger = logging.getLogger(__name__)


class AreaIndexService:
    """
    Owns the published containment index of every area.

    Indexes are built off to the side and swapped in under a lock, so
    queries in flight keep using the snapshot they started with and a failed
    build leaves the previous index authoritative.
    """

    def __init__(
        self,
        area_store: AreaPolygonStore,
        index_store: ContainmentIndexStore,
        classifier: CellClassifier,
        default_cell_size: float = 1000.0,
        srid_registry: Optional[SRIDRegistry] = None,
        exact_test: Optional[ExactTest] = None,
        chunk_size: int = 5000,
        exact_fallback_on_empty: bool = False,
    ):
        self.area_store = area_store
        self.index_store = index_store
        self.classifier = classifier
        self.default_cell_size = default_cell_size
        self.srid_registry = srid_registry
        self.query_engine = BatchContainmentQueryEngine(
            self, exact_test=exact_test, chunk_size=chunk_size,
            exact_fallback_on_empty=exact_fallback_on_empty,
        )
        self._lock = threading.Lock()
        self._published: Dict[int, ContainmentIndex] = {}
        # Serialises persist-then-publish per area
        self._area_locks: Dict[int, threading.Lock] = {}

        logger.info(f"AreaIndexService initialized (default cell size {default_cell_size})")

    @classmethod
    def from_settings(cls, settings: Settings, thread_pool: Optional[ThreadPoolService] = None,
                      exact_test: Optional[ExactTest] = None) -> "AreaIndexService":
        classifier = CellClassifier(
            thread_pool=thread_pool if settings.build_workers > 1 else None,
            row_batch=settings.BUILD_ROW_BATCH,
            max_cells=settings.MAX_CELL_COUNT,
        )
        return cls(
            area_store=AreaPolygonStore(),
            index_store=create_index_store(settings.INDEX_STORE, settings.INDEX_STORE_PATH),
            classifier=classifier,
            default_cell_size=settings.DEFAULT_CELL_SIZE,
            srid_registry=SRIDRegistry() if settings.VALIDATE_SRID else None,
            exact_test=exact_test,
            chunk_size=settings.QUERY_CHUNK_SIZE,
            exact_fallback_on_empty=settings.EMPTY_INDEX_EXACT_FALLBACK,
        )

    # -- lifecycle -----------------------------------------------------------

    def create_area(self, name: str, shapefile_id: int, srid: int, polygons: Sequence[Polygon],
                    cell_size: Optional[float] = None,
                    cancel_event: Optional[threading.Event] = None) -> Area:
        """
        Store the area's geometry and build, persist and publish its index.

        If any step fails the area is removed again and the error re-raised.
        """
        if self.srid_registry is not None:
            self.srid_registry.validate(srid)

        area = self.area_store.create(name, shapefile_id, srid, polygons)
        try:
            logger.info(f"Creating area bounding boxes for area {area.id}")
            self.build_index(area.id, cell_size, cancel_event)
        except Exception:
            logger.warning(f"Index build failed for area {area.id}; removing area", exc_info=True)
            self.area_store.delete(area.id)
            self.index_store.delete(area.id, srid)
            raise
        return area

    def build_index(self, area_id: int, cell_size: Optional[float] = None,
                    cancel_event: Optional[threading.Event] = None) -> ContainmentIndex:
        """Build the index from scratch, persist it, then publish it atomically."""
        area = self.area_store.get(area_id)
        cell_size = self.default_cell_size if cell_size is None else cell_size
        polygons = self.area_store.get_polygons(area_id, area.srid)

        cells = self.classifier.build(polygons, area.bounding_box, cell_size,
                                      cancel_event=cancel_event, area_id=area_id)
        index = ContainmentIndex(area_id, area.srid, cell_size, cells)
        with self._area_lock(area_id):
            self.index_store.save(index.to_record())
            with self._lock:
                self._published[area_id] = index

        get_area_logger(__name__, area_id, area.srid).info(
            f"Published index for area {area_id}: {len(index)} cells at cell size {cell_size}"
        )
        return index

    rebuild_index = build_index

    def _area_lock(self, area_id: int) -> threading.Lock:
        with self._lock:
            return self._area_locks.setdefault(area_id, threading.Lock())

    def delete_area(self, area_id: int) -> bool:
        area = self.area_store.get(area_id)
        with self._lock:
            self._published.pop(area_id, None)
            self._area_locks.pop(area_id, None)
        self.index_store.delete(area_id, area.srid)
        return self.area_store.delete(area_id)

    def delete_shapefile(self, shapefile_id: int) -> List[int]:
        """Discard every area of the shapefile together with its index."""
        removed = []
        for area in self.area_store.get_for_shapefile(shapefile_id):
            self.delete_area(area.id)
            removed.append(area.id)
        logger.info(f"Deleted shapefile {shapefile_id}: removed areas {removed}")
        return removed

    # -- lookups -------------------------------------------------------------

    def estimate(self, area_id: int, cell_size: Optional[float] = None) -> int:
        """Grid cells a build at ``cell_size`` would classify; 0 for an area without parts."""
        area = self.area_store.get(area_id)
        cell_size = self.default_cell_size if cell_size is None else cell_size
        if not cell_size > 0:
            raise InvalidCellSizeError(cell_size, area_id=area_id)
        if area.bounding_box is None:
            return 0
        return CellClassifier.estimate_cell_count(area.bounding_box, cell_size)

    def get_index(self, area_id: int) -> ContainmentIndex:
        """Published index, loading it from the index store on first use."""
        with self._lock:
            index = self._published.get(area_id)
        if index is not None:
            return index

        area = self.area_store.get(area_id)
        return self._publish_loaded(self.index_store.load(area_id, area.srid))

    async def load_index_async(self, area_id: int) -> ContainmentIndex:
        """Same as ``get_index`` but reads the index store without blocking the event loop."""
        with self._lock:
            index = self._published.get(area_id)
        if index is not None:
            return index

        area = self.area_store.get(area_id)
        return self._publish_loaded(await self.index_store.load_async(area_id, area.srid))

    def _publish_loaded(self, record) -> ContainmentIndex:
        index = ContainmentIndex.from_record(record)
        with self._lock:
            # A concurrent build may have published a newer index meanwhile
            return self._published.setdefault(record.area_id, index)

    def get_polygons(self, area_id: int, srid: int) -> Tuple[Polygon, ...]:
        return self.area_store.get_polygons(area_id, srid)

    def has_index(self, area_id: int) -> bool:
        try:
            self.get_index(area_id)
        except IndexNotFoundError:
            return False
        return True

    # -- queries -------------------------------------------------------------

    def contains(self, area_id: int, points: Sequence[Point]) -> List[bool]:
        """One boolean per point, in input order."""
        return self.query_engine.contains(area_id, points)

    def evaluate(self, area_id: int, points: Sequence[Point]) -> ContainmentResult:
        return self.query_engine.evaluate(area_id, points)

    def get_stats(self, area_id: int) -> dict:
        try:
            return self.get_index(area_id).get_stats()
        except AreaIndexError as e:
            return {"area_id": area_id, "error": e.message}


def create_in_memory_service(default_cell_size: float = 1000.0, **kwargs) -> AreaIndexService:
    """Single-threaded service with in-memory stores and no SRID registry lookups."""
    return AreaIndexService(
        area_store=AreaPolygonStore(),
        index_store=InMemoryIndexStore(),
        classifier=CellClassifier(),
        default_cell_size=default_cell_size,
        **kwargs,
    )
