"""
Dependency Injection Container for the area index service.

Constructs the service graph once at startup and hands it to FastAPI
endpoints through small dependency functions, so tests can swap in their
own container.
"""

import logging
from typing import Optional

from .config import Settings
from .services.area_service import AreaIndexService
from .services.thread_pool_service import ThreadPoolService

logger = logging.getLogger(__name__)


class ServiceContainer:
    """Owns service lifecycle and dependencies"""

    def __init__(self, settings: Settings, area_service: Optional[AreaIndexService] = None):
        self.settings = settings
        self._thread_pool_service: Optional[ThreadPoolService] = None
        self._area_service: Optional[AreaIndexService] = area_service
        logger.info("ServiceContainer initialized")

    @property
    def thread_pool_service(self) -> ThreadPoolService:
        """Get or create the build and job thread pools."""
        if self._thread_pool_service is None:
            self._thread_pool_service = ThreadPoolService(cpu_workers=self.settings.build_workers)
        return self._thread_pool_service

    @property
    def area_service(self) -> AreaIndexService:
        """Get or create the area index service."""
        if self._area_service is None:
            self._area_service = AreaIndexService.from_settings(
                self.settings, thread_pool=self.thread_pool_service
            )
        return self._area_service

    async def close(self):
        """Clean up all resources."""
        if self._thread_pool_service is not None:
            self._thread_pool_service.close()
            self._thread_pool_service = None
        logger.info("ServiceContainer closed")


_service_container: Optional[ServiceContainer] = None


def get_service_container() -> ServiceContainer:
    """Get the global service container instance."""
    if _service_container is None:
        raise RuntimeError("Service container not initialized. Call init_service_container() first.")
    return _service_container


def init_service_container(settings: Settings, area_service: Optional[AreaIndexService] = None) -> ServiceContainer:
    """Initialize the global service container."""
    global _service_container
    _service_container = ServiceContainer(settings, area_service=area_service)
    logger.info("Service container initialized successfully")
    return _service_container


async def close_service_container():
    """Close the global service container and clean up all resources."""
    global _service_container
    if _service_container:
        await _service_container.close()
        _service_container = None
        logger.info("Service container closed and reset")


# FastAPI dependency functions
def get_settings_cached() -> Settings:
    """Get settings from the service container to ensure consistency."""
    return get_service_container().settings


def get_area_service() -> AreaIndexService:
    """FastAPI dependency to get the AreaIndexService singleton."""
    return get_service_container().area_service


def get_thread_pool_service() -> ThreadPoolService:
    """FastAPI dependency to get the ThreadPoolService singleton."""
    return get_service_container().thread_pool_service
