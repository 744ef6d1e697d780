from unittest.mock import MagicMock

import pytest

from area_index.exceptions import SRIDMismatchError
from area_index.models import Point
from area_index.services.cell_classifier import CellClassifier
from area_index.services.containment_index import ContainmentIndex
from area_index.services.exact_test import ExactPolygonTest, covers_exact_test
from area_index.services.query_engine import BatchContainmentQueryEngine, evaluate, test_containment

from conftest import TEST_SRID, pts


def build_index(polygons, cell_size=5, area_id=1):
    return ContainmentIndex(area_id, TEST_SRID, cell_size, CellClassifier().build(polygons, None, cell_size))


class TestFastPath:
    def test_within_cell_skips_exact_test(self, square, exact_spy):
        index = build_index([square])
        assert test_containment(pts((5, 5)), index, exact_spy, [square]) == [True]
        exact_spy.assert_not_called()

    def test_no_cell_is_outside_without_exact_test(self, square, exact_spy):
        index = build_index([square])
        assert test_containment(pts((-1, -1)), index, exact_spy, [square]) == [False]
        exact_spy.assert_not_called()

    def test_overlaps_cell_defers_to_exact_test(self, pentagon, exact_spy):
        index = build_index([pentagon])
        point = Point(x=9.9, y=9.9, srid=TEST_SRID)
        assert test_containment([point], index, exact_spy, [pentagon]) == [False]
        exact_spy.assert_called_once_with(point, [pentagon])

    def test_exact_answer_is_passed_through(self, pentagon):
        index = build_index([pentagon])
        exact = MagicMock(return_value=True)
        assert test_containment(pts((9.9, 9.9)), index, exact, [pentagon]) == [True]


class TestBatches:
    def test_empty_batch(self, square, exact_spy):
        assert test_containment([], build_index([square]), exact_spy, [square]) == []

    def test_results_follow_input_order(self, pentagon):
        index = build_index([pentagon])
        batch = pts((9.9, 9.9), (1, 1), (-3, 2), (8.5, 8.5), (1, 1), (9.9, 9.9))
        result = evaluate(batch, index, ExactPolygonTest(), [pentagon])
        assert result.results == [False, True, False, True, True, False]
        assert (result.fast_path, result.exact_tests, result.outside) == (2, 3, 1)

    def test_chunk_size_does_not_change_results(self, pentagon):
        index = build_index([pentagon], cell_size=2)
        batch = [Point(x=i * 0.37, y=(i * 7 % 23) * 0.5, srid=TEST_SRID) for i in range(60)]
        expected = test_containment(batch, index, ExactPolygonTest(), [pentagon])
        assert test_containment(batch, index, ExactPolygonTest(), [pentagon], chunk_size=7) == expected

    def test_generator_input(self, square, exact_spy):
        index = build_index([square])
        assert test_containment((p for p in pts((1, 1), (20, 20))), index, exact_spy, [square]) == [True, False]

    def test_matches_exact_test_everywhere(self, pentagon, two_islands):
        for polygons in ([pentagon], two_islands):
            index = build_index(polygons, cell_size=3)
            batch = [Point(x=i * 0.5 - 1, y=j * 0.5 - 1, srid=TEST_SRID) for i in range(34) for j in range(34)]
            expected = [covers_exact_test(p, polygons) for p in batch]
            assert test_containment(batch, index, ExactPolygonTest(), polygons) == expected

    def test_invalid_chunk_size(self, square, exact_spy):
        with pytest.raises(ValueError):
            test_containment(pts((1, 1)), build_index([square]), exact_spy, [square], chunk_size=0)


class TestSRIDGuard:
    def test_mismatch_rejects_whole_batch(self, square, exact_spy):
        batch = pts((1, 1), (9.9, 9.9)) + [Point(x=1, y=1, srid=4326)]
        with pytest.raises(SRIDMismatchError) as exc_info:
            test_containment(batch, build_index([square]), exact_spy, [square])
        assert "Area SRID (28356) does not match point SRID (4326)" in str(exc_info.value)
        exact_spy.assert_not_called()


class TestEmptyIndex:
    def test_everything_is_outside(self, exact_spy):
        index = ContainmentIndex(1, TEST_SRID, 5, [])
        assert test_containment(pts((0, 0), (1, 1)), index, exact_spy, []) == [False, False]
        exact_spy.assert_not_called()

    def test_exact_fallback(self, square):
        index = ContainmentIndex(1, TEST_SRID, 5, [])
        result = evaluate(pts((1, 1), (11, 1)), index, ExactPolygonTest(), [square], exact_fallback_on_empty=True)
        assert result.results == [True, False]
        assert result.exact_tests == 2


class TestExactPolygonTest:
    def test_boundary_is_inside(self, square):
        exact = ExactPolygonTest()
        assert exact(Point(x=10, y=5, srid=TEST_SRID), [square])
        assert exact(Point(x=0, y=0, srid=TEST_SRID), [square])

    def test_hole_is_outside(self):
        from conftest import make_polygon
        donut = make_polygon([(0, 0), (10, 0), (10, 10), (0, 10)], holes=[[(4, 4), (6, 4), (6, 6), (4, 6)]])
        exact = ExactPolygonTest()
        assert not exact(Point(x=5, y=5, srid=TEST_SRID), [donut])
        assert exact(Point(x=1, y=1, srid=TEST_SRID), [donut])

    def test_union_cached_per_parts_tuple(self, square, pentagon):
        exact = ExactPolygonTest()
        a, b = (square,), (pentagon,)
        point = Point(x=9.9, y=9.9, srid=TEST_SRID)
        for _ in range(10):
            assert exact(point, a)
            assert not exact(point, b)
        assert exact.union_count == 2

    def test_union_cache_is_bounded(self, square, pentagon):
        exact = ExactPolygonTest(max_areas=1)
        point = Point(x=1, y=1, srid=TEST_SRID)
        a, b = (square,), (pentagon,)
        for parts in [a, b, a]:
            assert exact(point, parts)
        assert exact.union_count == 3

    def test_no_parts(self):
        assert not ExactPolygonTest()(Point(x=0, y=0, srid=TEST_SRID), [])

    def test_srid_mismatch(self, square):
        with pytest.raises(SRIDMismatchError):
            ExactPolygonTest()(Point(x=1, y=1, srid=4326), [square])


class TestQueryEngine:
    def test_engine_uses_provider(self, square, exact_spy):
        provider = MagicMock()
        provider.get_index.return_value = build_index([square])
        provider.get_polygons.return_value = (square,)
        engine = BatchContainmentQueryEngine(provider, exact_test=exact_spy)

        assert engine.contains(1, pts((2, 2), (12, 2))) == [True, False]
        provider.get_index.assert_called_once_with(1)
        provider.get_polygons.assert_called_once_with(1, TEST_SRID)

    def test_empty_batch_skips_lookup(self, exact_spy):
        provider = MagicMock()
        engine = BatchContainmentQueryEngine(provider, exact_test=exact_spy)
        assert engine.contains(1, []) == []
        provider.get_index.assert_not_called()
