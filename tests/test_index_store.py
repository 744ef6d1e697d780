import json

import pytest
from pydantic import ValidationError

from area_index.exceptions import IndexNotFoundError
from area_index.models.cells import CellRecord, ContainmentIndexRecord, Relationship
from area_index.services.index_store import InMemoryIndexStore, JsonFileIndexStore, create_index_store

from conftest import TEST_SRID

# Enable async test support
pytest_plugins = ('pytest_asyncio',)


def make_record(area_id=1, srid=TEST_SRID, cells=2):
    return ContainmentIndexRecord(
        area_id=area_id,
        srid=srid,
        cell_size=5,
        cells=[
            CellRecord(left=i * 5, bottom=0, right=i * 5 + 5, top=5,
                       relationship=Relationship.WITHIN if i % 2 == 0 else Relationship.OVERLAPS)
            for i in range(cells)
        ],
    )


@pytest.fixture(params=["memory", "json"])
def store(request, tmp_path):
    return create_index_store(request.param, tmp_path / "indexes")


class TestStoreContract:
    def test_save_then_load(self, store):
        record = make_record()
        store.save(record)
        loaded = store.load(1, TEST_SRID)
        assert loaded.cells == record.cells
        assert loaded.cell_size == 5
        assert loaded.built_at == record.built_at
        assert loaded.built_at.utcoffset().total_seconds() == 0

    @pytest.mark.asyncio
    async def test_async_load_matches_load(self, store):
        store.save(make_record(cells=3))
        assert await store.load_async(1, TEST_SRID) == store.load(1, TEST_SRID)

    def test_missing_index(self, store):
        with pytest.raises(IndexNotFoundError):
            store.load(99, TEST_SRID)
        assert not store.exists(99, TEST_SRID)

    def test_save_replaces_previous_index(self, store):
        store.save(make_record(cells=4))
        store.save(make_record(cells=1))
        assert len(store.load(1, TEST_SRID).cells) == 1

    def test_indexes_are_keyed_by_srid(self, store):
        store.save(make_record(srid=TEST_SRID))
        assert not store.exists(1, 4326)

    def test_delete(self, store):
        store.save(make_record())
        assert store.delete(1, TEST_SRID)
        assert not store.delete(1, TEST_SRID)
        assert not store.exists(1, TEST_SRID)

    def test_loaded_record_is_a_copy(self, store):
        store.save(make_record())
        store.load(1, TEST_SRID).cells.clear()
        assert len(store.load(1, TEST_SRID).cells) == 2


class TestJsonFileIndexStore:
    def test_layout_follows_srid_tables(self, tmp_path):
        store = JsonFileIndexStore(tmp_path)
        store.save(make_record(area_id=7))
        path = tmp_path / f"area_bounding_boxes_{TEST_SRID}" / "7.json"
        assert path.exists()
        assert json.loads(path.read_text())["cells"][1]["relationship"] == "Overlaps"
        assert store.list_indexes() == {TEST_SRID: [7]}

    def test_no_temp_files_left_behind(self, tmp_path):
        store = JsonFileIndexStore(tmp_path)
        store.save(make_record())
        store.save(make_record())
        leftovers = [p.name for p in (tmp_path / f"area_bounding_boxes_{TEST_SRID}").iterdir()]
        assert leftovers == ["1.json"]

    def test_corrupt_file(self, tmp_path):
        store = JsonFileIndexStore(tmp_path)
        store.save(make_record())
        (tmp_path / f"area_bounding_boxes_{TEST_SRID}" / "1.json").write_text('{"area_id": 1}')
        with pytest.raises(ValidationError):
            store.load(1, TEST_SRID)

    @pytest.mark.asyncio
    async def test_async_load(self, tmp_path):
        store = JsonFileIndexStore(tmp_path)
        store.save(make_record(cells=3))
        record = await store.load_async(1, TEST_SRID)
        assert len(record.cells) == 3

    @pytest.mark.asyncio
    async def test_async_load_missing(self, tmp_path):
        with pytest.raises(IndexNotFoundError):
            await JsonFileIndexStore(tmp_path).load_async(5, TEST_SRID)


def test_unknown_store_kind():
    with pytest.raises(ValueError):
        create_index_store("postgres")


def test_memory_store_is_default_kind():
    assert isinstance(create_index_store("memory"), InMemoryIndexStore)
