"""Grid-based containment index for batched point-in-area queries."""

from .exceptions import (
    AreaIndexError,
    AreaNotFoundError,
    BuildCancelledError,
    CellBudgetExceededError,
    ConfigurationError,
    IndexNotFoundError,
    InvalidCellSizeError,
    MalformedGeometryError,
    PreconditionError,
    ResourceExhaustionError,
    SRIDMismatchError,
)
from .models import Area, BoundingBox, Cell, Point, Polygon, Relationship
from .services import (
    AreaIndexService,
    CellClassifier,
    ContainmentIndex,
    ExactPolygonTest,
    create_in_memory_service,
)
from .services.query_engine import test_containment

__version__ = "1.0.0"

__all__ = [
    "AreaIndexError",
    "AreaNotFoundError",
    "BuildCancelledError",
    "CellBudgetExceededError",
    "ConfigurationError",
    "IndexNotFoundError",
    "InvalidCellSizeError",
    "MalformedGeometryError",
    "PreconditionError",
    "ResourceExhaustionError",
    "SRIDMismatchError",
    "Area",
    "BoundingBox",
    "Cell",
    "Point",
    "Polygon",
    "Relationship",
    "AreaIndexService",
    "CellClassifier",
    "ContainmentIndex",
    "ExactPolygonTest",
    "create_in_memory_service",
    "test_containment",
]
