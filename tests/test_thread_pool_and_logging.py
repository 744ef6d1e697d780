import json
import logging
import threading

import pytest

from area_index.config import Settings
from area_index.logging_config import StructuredJSONFormatter, get_area_logger, setup_logging_from_settings
from area_index.services.thread_pool_service import ThreadPoolService

# Enable async test support
pytest_plugins = ('pytest_asyncio',)


@pytest.mark.asyncio
class TestThreadPoolService:
    async def test_run_job_off_the_event_loop(self):
        pool = ThreadPoolService(cpu_workers=1, job_workers=1)
        try:
            name = await pool.run_job(lambda: threading.current_thread().name)
        finally:
            pool.close()
        assert name.startswith("area-index-job")

    async def test_run_job_passes_arguments(self):
        pool = ThreadPoolService(cpu_workers=1, job_workers=1)
        try:
            assert await pool.run_job(pow, 2, 10) == 1024
        finally:
            pool.close()

    async def test_job_errors_propagate(self):
        pool = ThreadPoolService(job_workers=1)

        def fail():
            raise ValueError("boom")

        try:
            with pytest.raises(ValueError):
                await pool.run_job(fail)
        finally:
            pool.close()


def test_pools_are_created_lazily():
    pool = ThreadPoolService(cpu_workers=2)
    stats = pool.get_pool_stats()
    assert stats["cpu_pool"] == {"max_workers": 2, "active": False}
    assert not stats["job_pool"]["active"]
    pool.close()


def test_json_formatter_carries_area_context():
    record = logging.LogRecord("area_index.test", logging.INFO, __file__, 1, "Built index", None, None)
    record.area_id = 3
    record.srid = 28356
    payload = json.loads(StructuredJSONFormatter().format(record))
    assert payload["message"] == "Built index"
    assert payload["area_id"] == 3
    assert payload["srid"] == 28356


def test_area_logger_adds_context(caplog):
    logging.disable(logging.NOTSET)
    with caplog.at_level(logging.INFO, logger="area_index.test"):
        get_area_logger("area_index.test", 5, 4326).info("hello")
    assert caplog.records[0].area_id == 5
    assert caplog.records[0].srid == 4326


def test_logging_follows_settings():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        setup_logging_from_settings(Settings(LOG_LEVEL="WARNING", LOG_FORMAT="json"))
        assert root.level == logging.WARNING
        assert isinstance(root.handlers[0].formatter, StructuredJSONFormatter)
        setup_logging_from_settings(Settings(LOG_LEVEL="DEBUG", LOG_FORMAT="development"))
        assert root.level == logging.DEBUG
        assert not isinstance(root.handlers[0].formatter, StructuredJSONFormatter)
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)


def test_json_timestamp_is_utc():
    record = logging.LogRecord("area_index.test", logging.INFO, __file__, 1, "tick", None, None)
    timestamp = json.loads(StructuredJSONFormatter().format(record))["timestamp"]
    assert timestamp.endswith("+00:00")
