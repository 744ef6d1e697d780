import pytest
from pydantic import ValidationError

from area_index.models import Area, BoundingBox, Cell, CellRecord, Point, Polygon, Relationship
from area_index.models.cells import ContainmentIndexRecord

from conftest import TEST_SRID, make_polygon, pts


class TestPoint:
    def test_negative_srid_rejected(self):
        with pytest.raises(ValidationError):
            Point(x=1, y=2, srid=-1)

    def test_points_are_frozen(self):
        p = Point(x=1, y=2, srid=TEST_SRID)
        with pytest.raises(ValidationError):
            p.x = 5


class TestPolygon:
    def test_open_ring_rejected(self):
        with pytest.raises(ValidationError):
            Polygon(srid=TEST_SRID, exterior=((0, 0), (1, 0), (1, 1), (0, 1)))

    def test_too_few_positions_rejected(self):
        with pytest.raises(ValidationError):
            Polygon(srid=TEST_SRID, exterior=((0, 0), (1, 0), (0, 0)))

    def test_from_points_requires_single_srid(self):
        ring = pts((0, 0), (1, 0), (1, 1), (0, 0))
        ring[1] = Point(x=1, y=0, srid=4326)
        with pytest.raises(ValueError):
            Polygon.from_points(ring)

    def test_from_points_accepts_generator_holes(self):
        outer = pts((0, 0), (10, 0), (10, 10), (0, 10), (0, 0))
        hole = pts((2, 2), (4, 2), (4, 4), (2, 2))
        polygon = Polygon.from_points(outer, holes=(h for h in [hole]))
        assert len(polygon.interiors) == 1
        assert polygon.to_shapely().area == pytest.approx(100 - 2)

    def test_shapely_roundtrip_keeps_holes(self):
        polygon = make_polygon([(0, 0), (10, 0), (10, 10), (0, 10)], holes=[[(4, 4), (6, 4), (6, 6), (4, 6)]])
        again = Polygon.from_shapely(polygon.to_shapely(), TEST_SRID)
        assert again.to_shapely().equals(polygon.to_shapely())
        assert again.srid == TEST_SRID


class TestBoundingBox:
    def test_from_polygons_covers_all_parts(self, two_islands):
        bbox = BoundingBox.from_polygons(two_islands)
        assert (bbox.left, bbox.bottom, bbox.right, bbox.top) == (0, 0, 14, 14)
        assert bbox.srid == TEST_SRID

    def test_from_zero_polygons_fails(self):
        with pytest.raises(ValueError):
            BoundingBox.from_polygons([])

    def test_mixed_srids_fail(self, square):
        other = make_polygon([(0, 0), (1, 0), (1, 1)], srid=4326)
        with pytest.raises(ValueError):
            BoundingBox.from_polygons([square, other])

    def test_inverted_box_rejected(self):
        with pytest.raises(ValidationError):
            BoundingBox(left=5, right=0, bottom=0, top=1, srid=TEST_SRID)

    def test_contains_point_is_closed(self):
        bbox = BoundingBox(left=0, right=10, bottom=0, top=10, srid=TEST_SRID)
        assert bbox.contains_point(Point(x=10, y=10, srid=TEST_SRID))
        assert not bbox.contains_point(Point(x=10.01, y=5, srid=TEST_SRID))


class TestCells:
    def test_cell_extent(self):
        cell = Cell(left=5, bottom=10, size=5, relationship=Relationship.WITHIN)
        assert (cell.right, cell.top) == (10, 15)
        assert cell.contains_xy(10, 15)
        assert not cell.contains_xy(10.5, 15)

    def test_non_positive_cell_size_rejected(self):
        with pytest.raises(ValidationError):
            Cell(left=0, bottom=0, size=0, relationship=Relationship.OVERLAPS)

    def test_record_roundtrip_uses_index_cell_size(self):
        cell = Cell(left=0.1, bottom=0.2, size=0.3, relationship=Relationship.OVERLAPS)
        record = CellRecord.from_cell(cell)
        assert record.to_cell(0.3) == cell

    def test_record_rejects_empty_rectangle(self):
        with pytest.raises(ValidationError):
            CellRecord(left=1, bottom=0, right=1, top=1, relationship=Relationship.WITHIN)

    def test_relationship_serialises_by_name(self):
        record = CellRecord(left=0, bottom=0, right=1, top=1, relationship=Relationship.WITHIN)
        assert '"Within"' in record.model_dump_json()

    def test_index_record_table_name(self):
        record = ContainmentIndexRecord(area_id=3, srid=TEST_SRID, cell_size=5)
        assert record.table_name == f"area_bounding_boxes_{TEST_SRID}"


class TestArea:
    def test_identity_is_by_id(self):
        a = Area(id=1, name="Site A", srid=TEST_SRID, shapefile_id=7)
        b = Area(id=1, name="Renamed", srid=TEST_SRID, shapefile_id=7)
        assert a == b
        assert len({a, b}) == 1
        assert str(a) == "Site A"
