"""
Shared test fixtures for the area index test suite.
Provides reusable areas, points and a service wired for in-process testing.
"""
import pytest
from unittest.mock import MagicMock
from fastapi.testclient import TestClient

from area_index.config import Settings
from area_index.dependencies import close_service_container, init_service_container
from area_index.models import Point, Polygon
from area_index.services.area_service import create_in_memory_service

# Arbitrary projected SRID used throughout (GDA94 / MGA zone 56)
TEST_SRID = 28356


def make_polygon(coords, srid=TEST_SRID, holes=()):
    """Polygon from (x, y) pairs; closes open rings."""
    def close(ring):
        ring = [tuple(c) for c in ring]
        return tuple(ring if ring[0] == ring[-1] else ring + [ring[0]])

    return Polygon(srid=srid, exterior=close(coords), interiors=tuple(close(h) for h in holes))


def pts(*coords, srid=TEST_SRID):
    return [Point(x=x, y=y, srid=srid) for x, y in coords]


@pytest.fixture
def srid():
    return TEST_SRID


@pytest.fixture
def square():
    """10 x 10 square with its lower-left corner on the origin."""
    return make_polygon([(0, 0), (10, 0), (10, 10), (0, 10)])


@pytest.fixture
def pentagon():
    """10 x 10 square with its top-right corner cut off along x + y = 18."""
    return make_polygon([(0, 0), (10, 0), (10, 8), (8, 10), (0, 10)])


@pytest.fixture
def two_islands():
    """Two disjoint squares forming one area."""
    return [
        make_polygon([(0, 0), (4, 0), (4, 4), (0, 4)]),
        make_polygon([(10, 10), (14, 10), (14, 14), (10, 14)]),
    ]


@pytest.fixture
def exact_spy():
    """Exact test stand-in that records calls and answers False."""
    return MagicMock(return_value=False)


@pytest.fixture
def service():
    """In-memory service with the real exact test."""
    return create_in_memory_service(default_cell_size=5.0)


@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        APP_ENV="development",
        DEFAULT_CELL_SIZE=5.0,
        INDEX_STORE="memory",
        INDEX_STORE_PATH=str(tmp_path / "indexes"),
        VALIDATE_SRID=False,
        BUILD_WORKERS=2,
        CONTAINS_RATE_LIMIT="1000/minute",
    )


@pytest.fixture
def test_client(test_settings):
    """FastAPI test client backed by a fresh in-process service container."""
    from area_index.main import app
    from area_index.api.v1.endpoints import limiter

    limiter.reset()
    init_service_container(test_settings)
    yield TestClient(app)
    # Container holds thread pools; close them between tests
    import asyncio
    asyncio.run(close_service_container())


@pytest.fixture(autouse=True)
def suppress_logging():
    """Suppress logging during tests to reduce noise."""
    import logging
    logging.disable(logging.CRITICAL)
    yield
    logging.disable(logging.NOTSET)


# Helper functions for tests
def square_geojson(x0=0.0, y0=0.0, size=10.0):
    return {
        "type": "Polygon",
        "coordinates": [[[x0, y0], [x0 + size, y0], [x0 + size, y0 + size], [x0, y0 + size], [x0, y0]]],
    }
