"""
Batch Containment Query Engine

Two-tier point-in-area test. The containment index sorts every point into
"inside" (covering Within cell), "outside" (no covering cell) or
"ambiguous" (covering Overlaps cell only); only the ambiguous points pay
for the exact polygon test.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence

from ..exceptions import SRIDMismatchError
from ..models.geometry import Point, Polygon
from .containment_index import CellMatch, ContainmentIndex
from .exact_test import ExactPolygonTest, ExactTest

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 5000


@dataclass
class ContainmentResult:
    """Per-point results plus how each point was decided"""
    results: List[bool] = field(default_factory=list)
    fast_path: int = 0
    exact_tests: int = 0
    outside: int = 0

    def __len__(self) -> int:
        return len(self.results)


def _check_srids(points: Sequence[Point], index: ContainmentIndex) -> None:
    # Whole batch is rejected before any point is evaluated
    for i, point in enumerate(points):
        if point.srid != index.srid:
            raise SRIDMismatchError(index.srid, point.srid, point_index=i, area_id=index.area_id)


def evaluate(
    points: Sequence[Point],
    index: ContainmentIndex,
    exact_polygon_test: ExactTest,
    polygons: Sequence[Polygon],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    exact_fallback_on_empty: bool = False,
) -> ContainmentResult:
    """
    Decide containment for every point, in input order.

    Args:
        points: Query points; all must carry the index SRID
        index: Containment index of the area
        exact_polygon_test: Exact predicate called for ambiguous points only
        polygons: Area polygon parts handed to the exact test
        chunk_size: Points classified per chunk (memory bound only; results are unaffected)
        exact_fallback_on_empty: When the index has no cells, run the exact test for
            every point instead of answering False

    Raises:
        SRIDMismatchError: any point's SRID differs from the index SRID
        ValueError: chunk_size <= 0
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be > 0, got {chunk_size}")

    if not isinstance(points, Sequence):
        points = list(points)

    result = ContainmentResult()
    if not points:
        return result

    _check_srids(points, index)
    start = time.perf_counter()

    if index.is_empty:
        if exact_fallback_on_empty:
            for point in points:
                result.results.append(bool(exact_polygon_test(point, polygons)))
            result.exact_tests = len(points)
        else:
            result.results.extend([False] * len(points))
            result.outside = len(points)
        return result

    for chunk_start in range(0, len(points), chunk_size):
        chunk = points[chunk_start:chunk_start + chunk_size]
        matches = index.classify(chunk)
        for point, match in zip(chunk, matches):
            if match == CellMatch.WITHIN:
                result.results.append(True)
                result.fast_path += 1
            elif match == CellMatch.OVERLAPS:
                result.results.append(bool(exact_polygon_test(point, polygons)))
                result.exact_tests += 1
            else:
                result.results.append(False)
                result.outside += 1

    logger.debug(
        f"Containment for {len(points)} points in area {index.area_id}: "
        f"{result.fast_path} fast path, {result.exact_tests} exact, {result.outside} outside",
        extra={"area_id": index.area_id, "point_count": len(points),
               "duration_ms": round((time.perf_counter() - start) * 1000, 1)},
    )
    return result


def test_containment(
    points: Sequence[Point],
    index: ContainmentIndex,
    exact_polygon_test: ExactTest,
    polygons: Sequence[Polygon],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    exact_fallback_on_empty: bool = False,
) -> List[bool]:
    """One boolean per input point, in input order (duplicates included)."""
    return evaluate(points, index, exact_polygon_test, polygons, chunk_size,
                    exact_fallback_on_empty).results


# Not a pytest test despite the name
test_containment.__test__ = False


class AreaIndexProvider(Protocol):
    def get_index(self, area_id: int) -> ContainmentIndex: ...

    def get_polygons(self, area_id: int, srid: int) -> Sequence[Polygon]: ...


class BatchContainmentQueryEngine:
    """Answers "which of these points are inside area N" for whole batches"""

    def __init__(self, provider: AreaIndexProvider, exact_test: Optional[ExactTest] = None,
                 chunk_size: int = DEFAULT_CHUNK_SIZE, exact_fallback_on_empty: bool = False):
        self.provider = provider
        self.exact_test = exact_test or ExactPolygonTest()
        self.chunk_size = chunk_size
        self.exact_fallback_on_empty = exact_fallback_on_empty

    def evaluate(self, area_id: int, points: Sequence[Point]) -> ContainmentResult:
        if not isinstance(points, Sequence):
            points = list(points)
        if not points:
            return ContainmentResult()
        index = self.provider.get_index(area_id)
        polygons = self.provider.get_polygons(area_id, index.srid)
        return evaluate(points, index, self.exact_test, polygons, self.chunk_size,
                        self.exact_fallback_on_empty)

    def contains(self, area_id: int, points: Sequence[Point]) -> List[bool]:
        return self.evaluate(area_id, points).results
