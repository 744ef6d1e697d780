"""
Containment index persistence.

The schema is ``ContainmentIndexRecord``: area id, SRID, cell size and one
(left, bottom, right, top, relationship) row per cell. Stores only move
records around; they never build, infer or cascade anything.
"""

import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Protocol, Tuple, Union

import aiofiles
from pydantic import ValidationError

from ..exceptions import IndexNotFoundError
from ..models.cells import ContainmentIndexRecord

logger = logging.getLogger(__name__)


class ContainmentIndexStore(Protocol):
    def save(self, record: ContainmentIndexRecord) -> None: ...

    def load(self, area_id: int, srid: int) -> ContainmentIndexRecord: ...

    async def load_async(self, area_id: int, srid: int) -> ContainmentIndexRecord: ...

    def delete(self, area_id: int, srid: int) -> bool: ...

    def exists(self, area_id: int, srid: int) -> bool: ...


class InMemoryIndexStore:
    """Process-local store; indexes are lost on restart"""

    def __init__(self):
        self._lock = threading.Lock()
        self._records: Dict[Tuple[int, int], ContainmentIndexRecord] = {}

    def save(self, record: ContainmentIndexRecord) -> None:
        with self._lock:
            self._records[(record.area_id, record.srid)] = record.model_copy(deep=True)

    def load(self, area_id: int, srid: int) -> ContainmentIndexRecord:
        with self._lock:
            record = self._records.get((area_id, srid))
        if record is None:
            raise IndexNotFoundError(area_id, srid)
        return record.model_copy(deep=True)

    async def load_async(self, area_id: int, srid: int) -> ContainmentIndexRecord:
        return self.load(area_id, srid)

    def delete(self, area_id: int, srid: int) -> bool:
        with self._lock:
            return self._records.pop((area_id, srid), None) is not None

    def exists(self, area_id: int, srid: int) -> bool:
        with self._lock:
            return (area_id, srid) in self._records


class JsonFileIndexStore:
    """
    One JSON document per index at ``<base_dir>/area_bounding_boxes_<srid>/<area_id>.json``.

    Writes go to a temporary file in the same directory followed by
    ``os.replace`` so a reader sees either the old index or the new one.
    """

    def __init__(self, base_dir: Union[str, Path]):
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"JsonFileIndexStore using {self.base_dir.resolve()}")

    def _path(self, area_id: int, srid: int) -> Path:
        return self.base_dir / f"area_bounding_boxes_{srid}" / f"{area_id}.json"

    def save(self, record: ContainmentIndexRecord) -> None:
        path = self._path(record.area_id, record.srid)
        path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(prefix=f".{record.area_id}.", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(record.model_dump_json())
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.info(f"Saved index for area {record.area_id} ({len(record.cells)} cells) to {path}")

    def _parse(self, raw: str, path: Path) -> ContainmentIndexRecord:
        try:
            return ContainmentIndexRecord.model_validate_json(raw)
        except ValidationError as e:
            logger.error(f"Corrupt containment index file {path}: {e}")
            raise

    def load(self, area_id: int, srid: int) -> ContainmentIndexRecord:
        path = self._path(area_id, srid)
        if not path.exists():
            raise IndexNotFoundError(area_id, srid)
        return self._parse(path.read_text(encoding="utf-8"), path)

    async def load_async(self, area_id: int, srid: int) -> ContainmentIndexRecord:
        """Non-blocking load for use inside the API event loop."""
        path = self._path(area_id, srid)
        if not path.exists():
            raise IndexNotFoundError(area_id, srid)
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            raw = await f.read()
        return self._parse(raw, path)

    def delete(self, area_id: int, srid: int) -> bool:
        path = self._path(area_id, srid)
        if not path.exists():
            return False
        path.unlink()
        logger.info(f"Deleted index file {path}")
        return True

    def exists(self, area_id: int, srid: int) -> bool:
        return self._path(area_id, srid).exists()

    def list_indexes(self) -> Dict[int, list]:
        """SRID -> stored area ids, read from the directory layout."""
        found: Dict[int, list] = {}
        for table_dir in sorted(self.base_dir.glob("area_bounding_boxes_*")):
            srid = int(table_dir.name.rsplit("_", 1)[1])
            found[srid] = sorted(int(p.stem) for p in table_dir.glob("*.json"))
        return found


def create_index_store(kind: str, path: Union[str, Path] = "./indexes") -> ContainmentIndexStore:
    if kind == "memory":
        return InMemoryIndexStore()
    if kind == "json":
        return JsonFileIndexStore(path)
    raise ValueError(f"Unknown index store '{kind}'")
