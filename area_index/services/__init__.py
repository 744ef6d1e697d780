from .area_store import AreaPolygonStore
from .cell_classifier import CellClassifier
from .containment_index import CellMatch, ContainmentIndex
from .exact_test import ExactPolygonTest, covers_exact_test
from .index_store import InMemoryIndexStore, JsonFileIndexStore, create_index_store
from .query_engine import BatchContainmentQueryEngine, ContainmentResult, evaluate
from .area_service import AreaIndexService, create_in_memory_service

__all__ = [
    "AreaPolygonStore",
    "CellClassifier",
    "CellMatch",
    "ContainmentIndex",
    "ExactPolygonTest",
    "covers_exact_test",
    "InMemoryIndexStore",
    "JsonFileIndexStore",
    "create_index_store",
    "BatchContainmentQueryEngine",
    "ContainmentResult",
    "evaluate",
    "AreaIndexService",
    "create_in_memory_service",
]
