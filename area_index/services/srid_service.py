"""SRID validation backed by the pyproj EPSG registry"""
from cachetools import LRUCache
from pyproj import CRS
from pyproj.exceptions import CRSError
import logging
import threading
from typing import Dict

from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# PostGIS convention for "no spatial reference"; accepted without lookup
UNKNOWN_SRID = 0


class SRIDRegistry:
    """Resolves SRIDs to EPSG coordinate reference systems, with caching

    The index never transforms coordinates; this only guards against areas
    being created in an SRID nobody can interpret.
    """

    def __init__(self, cache_size: int = 64):
        self._lock = threading.Lock()
        self._crs_cache: LRUCache = LRUCache(maxsize=cache_size)
        logger.info(f"SRIDRegistry initialized (cache size {cache_size})")

    def get_crs(self, srid: int) -> CRS:
        """Cached CRS for an EPSG code

        Raises:
            ConfigurationError: If the SRID is not a known EPSG code
        """
        with self._lock:
            crs = self._crs_cache.get(srid)
        if crs is not None:
            return crs
        try:
            crs = CRS.from_epsg(srid)
        except CRSError as e:
            logger.error(f"Unknown SRID {srid}: {e}")
            raise ConfigurationError("srid", f"{srid} is not a known EPSG code") from e
        with self._lock:
            self._crs_cache[srid] = crs
        logger.debug(f"Resolved SRID {srid} to {crs.name}")
        return crs

    def validate(self, srid: int) -> None:
        if srid < 0:
            raise ConfigurationError("srid", f"must be >= 0, got {srid}")
        if srid != UNKNOWN_SRID:
            self.get_crs(srid)

    def describe(self, srid: int) -> str:
        if srid == UNKNOWN_SRID:
            return "unknown"
        return self.get_crs(srid).name

    def get_cache_stats(self) -> Dict[str, object]:
        with self._lock:
            return {
                "cached_crs": len(self._crs_cache),
                "srids": sorted(self._crs_cache),
                "max_size": self._crs_cache.maxsize,
            }
