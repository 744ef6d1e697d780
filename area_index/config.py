from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal, Optional
import logging
import os
from dotenv import load_dotenv

# Explicitly load .env file to ensure environment variables are available
load_dotenv()

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    APP_ENV: Literal["production", "development"] = Field(
        default="production",
        description="Application environment"
    )

    # Cell classifier
    DEFAULT_CELL_SIZE: float = Field(
        default=1000.0,
        description="Side length of index cells in area SRID units (accuracy/cost knob)"
    )
    BUILD_ROW_BATCH: int = Field(
        default=64,
        description="Grid rows classified per batch; cancellation is checked between batches"
    )
    BUILD_WORKERS: Optional[int] = Field(
        default=None,
        description="Worker threads used to classify cell batches (default: CPU cores)"
    )
    MAX_CELL_COUNT: int = Field(
        default=2_000_000,
        description="Refuse to build grids estimated to exceed this many cells"
    )

    # Batch query engine
    QUERY_CHUNK_SIZE: int = Field(
        default=5000,
        description="Points classified per chunk; bounds peak memory of large batches"
    )
    EMPTY_INDEX_EXACT_FALLBACK: bool = Field(
        default=False,
        description="Run the exact polygon test for every point when an index has no cells"
    )

    # SRID handling
    VALIDATE_SRID: bool = Field(
        default=True,
        description="Reject areas whose SRID is not a known EPSG code"
    )

    # Index persistence
    INDEX_STORE: Literal["memory", "json"] = Field(
        default="memory",
        description="Where built containment indexes are persisted: memory, json (filesystem)"
    )
    INDEX_STORE_PATH: str = Field(
        default="./indexes",
        description="Directory for the json index store"
    )

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")
    LOG_FORMAT: Literal["json", "development"] = Field(default="development")

    # Server settings
    HOST: str = Field(default="0.0.0.0", description="Server host")
    PORT: int = Field(default=8001, description="Port for the Uvicorn server")
    CONTAINS_RATE_LIMIT: str = Field(default="120/minute", description="Rate limit for batch queries")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding='utf-8',
        extra="ignore"
    )

    @field_validator('EMPTY_INDEX_EXACT_FALLBACK', 'VALIDATE_SRID', mode='before')
    @classmethod
    def parse_boolean(cls, v):
        """Handle string boolean values from environment variables."""
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            return v.lower() in ('true', '1', 'yes', 'on', 't', 'y')
        return bool(v)

    @property
    def build_workers(self) -> int:
        return self.BUILD_WORKERS or os.cpu_count() or 1


def validate_environment_configuration(settings: Settings) -> None:
    """
    Validate configuration before any index is built or queried.

    Raises:
        ConfigurationError: For settings that would make builds or queries fail
    """
    from .exceptions import ConfigurationError

    critical_errors = []
    warnings = []

    if settings.DEFAULT_CELL_SIZE <= 0:
        critical_errors.append(f"DEFAULT_CELL_SIZE must be > 0, got {settings.DEFAULT_CELL_SIZE}")
    if settings.BUILD_ROW_BATCH <= 0:
        critical_errors.append(f"BUILD_ROW_BATCH must be > 0, got {settings.BUILD_ROW_BATCH}")
    if settings.BUILD_WORKERS is not None and settings.BUILD_WORKERS <= 0:
        critical_errors.append(f"BUILD_WORKERS must be > 0, got {settings.BUILD_WORKERS}")
    if settings.QUERY_CHUNK_SIZE <= 0:
        critical_errors.append(f"QUERY_CHUNK_SIZE must be > 0, got {settings.QUERY_CHUNK_SIZE}")
    if settings.MAX_CELL_COUNT <= 0:
        critical_errors.append(f"MAX_CELL_COUNT must be > 0, got {settings.MAX_CELL_COUNT}")

    if critical_errors:
        error_msg = "Critical configuration errors found:\n" + "\n".join(f"- {error}" for error in critical_errors)
        logger.error(error_msg)
        raise ConfigurationError("settings", error_msg)

    if settings.INDEX_STORE == "memory" and settings.APP_ENV == "production":
        warnings.append("INDEX_STORE=memory in production: indexes are rebuilt on every start")
    if settings.EMPTY_INDEX_EXACT_FALLBACK:
        warnings.append("EMPTY_INDEX_EXACT_FALLBACK enabled: empty indexes run the exact test for every point")

    for warning in warnings:
        logger.warning(warning)

    logger.info(
        "Configuration summary",
        extra={
            "default_cell_size": settings.DEFAULT_CELL_SIZE,
            "query_chunk_size": settings.QUERY_CHUNK_SIZE,
            "build_workers": settings.build_workers,
            "index_store": settings.INDEX_STORE,
        }
    )


def get_settings() -> Settings:
    """Dependency for getting settings with validation."""
    from .exceptions import ConfigurationError
    settings = Settings()

    try:
        validate_environment_configuration(settings)
    except ValueError as e:
        raise ConfigurationError("settings", str(e))

    return settings
