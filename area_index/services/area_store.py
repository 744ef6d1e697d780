"""Area Polygon Store: authoritative polygon parts and bounding box per area"""

import itertools
import logging
import threading
from typing import Dict, List, Optional, Sequence, Tuple

from ..exceptions import AreaNotFoundError, SRIDMismatchError
from ..models.area import Area
from ..models.geometry import BoundingBox, Polygon

logger = logging.getLogger(__name__)


class AreaPolygonStore:
    """
    In-memory store of areas and their polygon parts.

    Areas are immutable once created; the only lifecycle events are
    creation and deletion (directly or by cascading from their shapefile).
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._areas: Dict[int, Area] = {}
        self._polygons: Dict[int, Tuple[Polygon, ...]] = {}
        self._ids = itertools.count(1)

    def create(self, name: str, shapefile_id: int, srid: int, polygons: Sequence[Polygon]) -> Area:
        """
        Store a new area.

        Raises:
            SRIDMismatchError: a polygon part is not in ``srid``
        """
        for polygon in polygons:
            if polygon.srid != srid:
                raise SRIDMismatchError(srid, polygon.srid)

        bounding_box = BoundingBox.from_polygons(polygons, srid) if polygons else None
        with self._lock:
            area = Area(id=next(self._ids), name=name, srid=srid, shapefile_id=shapefile_id,
                        bounding_box=bounding_box)
            self._areas[area.id] = area
            self._polygons[area.id] = tuple(polygons)

        logger.info(f"Stored area {area.id} '{name}' with {len(polygons)} polygon parts (SRID {srid})")
        return area

    def get(self, area_id: int) -> Area:
        with self._lock:
            area = self._areas.get(area_id)
        if area is None:
            raise AreaNotFoundError(area_id)
        return area

    def get_polygons(self, area_id: int, srid: int) -> Tuple[Polygon, ...]:
        """Polygon parts of the area; the same tuple object is returned on every call."""
        area = self.get(area_id)
        if area.srid != srid:
            raise SRIDMismatchError(area.srid, srid, area_id=area_id)
        with self._lock:
            polygons = self._polygons.get(area_id)
        if polygons is None:
            raise AreaNotFoundError(area_id)
        return polygons

    def get_bounding_box(self, area_id: int) -> Optional[BoundingBox]:
        return self.get(area_id).bounding_box

    def get_all(self) -> List[Area]:
        with self._lock:
            return sorted(self._areas.values(), key=lambda a: a.id)

    def get_for_srid(self, srid: int) -> List[Area]:
        if srid < 0:
            raise ValueError(f"Invalid SRID:  {srid}. Must be >= 0.")
        return [a for a in self.get_all() if a.srid == srid]

    def get_for_shapefile(self, shapefile_id: int) -> List[Area]:
        return [a for a in self.get_all() if a.shapefile_id == shapefile_id]

    def delete(self, area_id: int) -> bool:
        with self._lock:
            removed = self._areas.pop(area_id, None)
            self._polygons.pop(area_id, None)
        if removed is not None:
            logger.info(f"Deleted area {area_id}")
        return removed is not None

    def delete_for_shapefile(self, shapefile_id: int) -> List[int]:
        """Delete every area derived from ``shapefile_id``; returns the removed ids."""
        with self._lock:
            area_ids = [a.id for a in self.get_for_shapefile(shapefile_id)]
            for area_id in area_ids:
                self.delete(area_id)
        return area_ids
