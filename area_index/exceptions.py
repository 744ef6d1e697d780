"""
Exception hierarchy for the area containment index.

Every error carries a ``retryable`` flag so callers can tell configuration
mistakes and caller bugs apart from resource exhaustion, which can be
retried with a coarser cell size or a smaller batch.
"""
from typing import Optional


class AreaIndexError(Exception):
    """Base exception for all area index errors"""

    def __init__(self, message: str, area_id: Optional[int] = None, retryable: bool = False):
        super().__init__(message)
        self.message = message
        self.area_id = area_id
        self.retryable = retryable


class ConfigurationError(AreaIndexError):
    """Raised when build or service configuration is invalid"""

    def __init__(self, config_field: str, reason: str, area_id: Optional[int] = None):
        message = f"Configuration error in {config_field}: {reason}"
        super().__init__(message, area_id=area_id)
        self.config_field = config_field
        self.reason = reason


class InvalidCellSizeError(ConfigurationError):
    """Raised when the requested cell size is not strictly positive"""

    def __init__(self, cell_size: float, area_id: Optional[int] = None):
        super().__init__("cell_size", f"must be > 0, got {cell_size}", area_id=area_id)
        self.cell_size = cell_size


class MalformedGeometryError(ConfigurationError):
    """Raised when an area polygon cannot be classified against (e.g. self-intersecting ring)"""

    def __init__(self, part_index: int, reason: str, area_id: Optional[int] = None):
        super().__init__("polygons", f"polygon part {part_index} is invalid: {reason}", area_id=area_id)
        self.part_index = part_index


class PreconditionError(AreaIndexError):
    """Raised when a caller violates an operation's contract"""
    pass


class SRIDMismatchError(PreconditionError):
    """Raised when a point's SRID differs from the SRID of the index or area"""

    def __init__(self, expected: int, actual: int, point_index: Optional[int] = None,
                 area_id: Optional[int] = None):
        message = f"Area SRID ({expected}) does not match point SRID ({actual})"
        if point_index is not None:
            message += f" at point {point_index}"
        super().__init__(message, area_id=area_id)
        self.expected = expected
        self.actual = actual
        self.point_index = point_index


class ResourceExhaustionError(AreaIndexError):
    """Raised when an operation would exceed memory/size limits; retry with coarser parameters"""

    def __init__(self, message: str, area_id: Optional[int] = None):
        super().__init__(message, area_id=area_id, retryable=True)


class CellBudgetExceededError(ResourceExhaustionError):
    """Raised when a grid would hold more cells than the configured budget"""

    def __init__(self, estimated_cells: int, max_cells: int, cell_size: float,
                 area_id: Optional[int] = None):
        message = (f"Cell grid of ~{estimated_cells} cells at cell size {cell_size} "
                   f"exceeds the limit of {max_cells}; choose a coarser cell size")
        super().__init__(message, area_id=area_id)
        self.estimated_cells = estimated_cells
        self.max_cells = max_cells
        self.cell_size = cell_size


class BuildCancelledError(AreaIndexError):
    """Raised when an index build is cancelled between cell batches"""

    def __init__(self, cells_classified: int, area_id: Optional[int] = None):
        super().__init__(f"Index build cancelled after {cells_classified} cells", area_id=area_id,
                         retryable=True)
        self.cells_classified = cells_classified


class AreaNotFoundError(AreaIndexError):
    """Raised when an area id is unknown to the polygon store"""

    def __init__(self, area_id: int):
        super().__init__(f"Area {area_id} not found", area_id=area_id)


class IndexNotFoundError(AreaIndexError):
    """Raised when no containment index has been built/persisted for an area"""

    def __init__(self, area_id: int, srid: int):
        super().__init__(f"No containment index for area {area_id} in SRID {srid}", area_id=area_id)
        self.srid = srid
