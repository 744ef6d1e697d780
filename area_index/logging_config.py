import logging
import json
import sys
from datetime import datetime, timezone
from typing import Optional
import os

_STANDARD_ATTRS = frozenset((
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
    'module', 'exc_info', 'exc_text', 'stack_info', 'lineno', 'funcName',
    'created', 'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'taskName', 'message', 'asctime',
    'area_id', 'srid', 'point_count', 'cell_count', 'duration_ms',
))


class StructuredJSONFormatter(logging.Formatter):
    """Structured JSON log lines for log aggregation stacks"""

    def __init__(self, service_name: str = "area-index"):
        super().__init__()
        self.service_name = service_name
        self.hostname = os.environ.get('HOSTNAME', 'localhost')

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "hostname": self.hostname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Area context stamped by get_area_logger() or passed via extra=
        for key in ('area_id', 'srid', 'point_count', 'cell_count', 'duration_ms'):
            if hasattr(record, key):
                log_entry[key] = getattr(record, key)

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info)
            }

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith('_'):
                log_entry.setdefault("extra", {})[key] = value

        return json.dumps(log_entry, default=str, separators=(',', ':'))


class DevelopmentFormatter(logging.Formatter):
    """Human-readable formatter for development"""

    def __init__(self):
        super().__init__(
            fmt='%(asctime)s | %(levelname)8s | %(name)20s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )


def setup_logging(
    level: str = "INFO",
    use_json: Optional[bool] = None,
    service_name: str = "area-index"
) -> None:
    """Setup logging configuration for the area index service"""

    if use_json is None:
        # Use JSON in production or when explicitly requested
        use_json = (
            os.environ.get('APP_ENV') == 'production' or
            os.environ.get('LOG_FORMAT', '').lower() == 'json'
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(StructuredJSONFormatter(service_name) if use_json else DevelopmentFormatter())
    root_logger.addHandler(console_handler)

    configure_area_loggers(level)

    logger = logging.getLogger(__name__)
    logger.info(
        "Logging configured",
        extra={
            "log_format": "json" if use_json else "development",
            "log_level": level,
            "service": service_name
        }
    )


def setup_logging_from_settings(settings, service_name: str = "area-index") -> None:
    """Re-apply logging once Settings are loaded (LOG_LEVEL, LOG_FORMAT, APP_ENV)"""
    setup_logging(
        level=settings.LOG_LEVEL,
        use_json=settings.LOG_FORMAT == "json" or settings.APP_ENV == "production",
        service_name=service_name,
    )


def configure_area_loggers(level: str) -> None:
    """Configure loggers for the index components"""
    for logger_name in (
        'area_index.services.cell_classifier',
        'area_index.services.containment_index',
        'area_index.services.query_engine',
        'area_index.services.area_service',
        'area_index.services.index_store',
        'area_index.config',
    ):
        logging.getLogger(logger_name).setLevel(getattr(logging, level.upper()))

    # Suppress noisy third-party loggers
    logging.getLogger('asyncio').setLevel(logging.WARNING)
    logging.getLogger('uvicorn.access').setLevel(logging.WARNING)


class AreaContextAdapter(logging.LoggerAdapter):
    """Adds area id and SRID to every record"""

    def process(self, msg, kwargs):
        extra = kwargs.get('extra', {})
        extra.update(self.extra)
        kwargs['extra'] = extra
        return msg, kwargs


def get_area_logger(name: str, area_id: Optional[int], srid: Optional[int]) -> logging.LoggerAdapter:
    """Get logger with area context"""
    return AreaContextAdapter(logging.getLogger(name), {'area_id': area_id, 'srid': srid})
