"""
Thread Pool Service

Dedicated thread pools so index builds never block the API event loop:

- the CPU pool classifies cell row batches in parallel
- the job pool runs whole request-level jobs (an area build, a batch query)

Jobs submit batches to the CPU pool and wait on them, so the two must stay
separate or concurrent builds could starve each other of workers.
"""

import asyncio
import logging
from typing import Optional, Callable, Any
from concurrent.futures import ThreadPoolExecutor
import functools
import os
import psutil

logger = logging.getLogger(__name__)


class ThreadPoolService:
    """
    Lazily created thread pools with explicit lifecycle management.

    Shapely 2 releases the GIL inside GEOS predicates, so classifying
    independent cell batches on several threads scales with cores.
    """

    def __init__(self, cpu_workers: Optional[int] = None, job_workers: Optional[int] = None):
        """
        Args:
            cpu_workers: Threads classifying cell batches (default: CPU cores)
            job_workers: Threads running request-level jobs (default: 4)
        """
        self.cpu_cores = os.cpu_count() or 4
        self.cpu_workers = cpu_workers or self.cpu_cores
        self.job_workers = job_workers or 4

        self._cpu_pool: Optional[ThreadPoolExecutor] = None
        self._job_pool: Optional[ThreadPoolExecutor] = None

        logger.info(f"ThreadPoolService configured: CPU workers={self.cpu_workers}, job workers={self.job_workers}")

    @property
    def cpu_pool(self) -> ThreadPoolExecutor:
        """Get or create the cell-classification thread pool"""
        if self._cpu_pool is None:
            self._cpu_pool = ThreadPoolExecutor(
                max_workers=self.cpu_workers,
                thread_name_prefix="area-index-cpu"
            )
            logger.info(f"CPU thread pool created with {self.cpu_workers} workers")
        return self._cpu_pool

    @property
    def job_pool(self) -> ThreadPoolExecutor:
        """Get or create the request-level job pool"""
        if self._job_pool is None:
            self._job_pool = ThreadPoolExecutor(
                max_workers=self.job_workers,
                thread_name_prefix="area-index-job"
            )
            logger.info(f"Job thread pool created with {self.job_workers} workers")
        return self._job_pool

    async def run_job(self, func: Callable, *args, **kwargs) -> Any:
        """
        Execute a blocking job (area build, large batch query) in the job pool.

        Returns:
            Result of func execution
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.job_pool, functools.partial(func, *args, **kwargs))

    def get_pool_stats(self) -> dict:
        """Get thread pool statistics for monitoring"""
        return {
            "cpu_pool": {
                "max_workers": self.cpu_workers,
                "active": self._cpu_pool is not None,
            },
            "job_pool": {
                "max_workers": self.job_workers,
                "active": self._job_pool is not None,
            },
            "system_info": {
                "cpu_cores": self.cpu_cores,
                "memory_gb": round(psutil.virtual_memory().total / (1024**3), 2),
            }
        }

    def close(self):
        """Shutdown thread pools and cleanup resources"""
        pools_closed = 0

        # Jobs first: they may still be waiting on CPU batches
        if self._job_pool is not None:
            self._job_pool.shutdown(wait=True, cancel_futures=False)
            self._job_pool = None
            pools_closed += 1
            logger.info("Job thread pool shutdown completed")

        if self._cpu_pool is not None:
            self._cpu_pool.shutdown(wait=True, cancel_futures=False)
            self._cpu_pool = None
            pools_closed += 1
            logger.info("CPU thread pool shutdown completed")

        if pools_closed > 0:
            logger.info(f"ThreadPoolService closed {pools_closed} thread pools")
