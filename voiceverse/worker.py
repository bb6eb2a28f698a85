"""
Pipeline Worker

Queue handoff between the entry points and the pipeline. Entry points
submit a job carrying a record id and return immediately; consumer tasks
pick jobs off the queue and run them to a terminal state.
"""

import asyncio
from dataclasses import dataclass
from typing import List, Optional, Union

import structlog

from .pipeline import BatchCoordinator, OperationPipeline

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class OperationJob:
    """Run a single operation."""

    operation_id: str


@dataclass(frozen=True)
class BatchJob:
    """Run every operation of a batch, sequentially."""

    batch_id: str


Job = Union[OperationJob, BatchJob]


class PipelineWorker:
    """
    Background consumer for pipeline jobs.

    ``concurrency`` consumers share one queue, so independent operations
    and batches may run side by side. Within a batch the coordinator still
    runs one operation at a time.
    """

    def __init__(
        self,
        pipeline: OperationPipeline,
        coordinator: BatchCoordinator,
        concurrency: int = 1,
    ):
        self.pipeline = pipeline
        self.coordinator = coordinator
        self.concurrency = max(1, concurrency)

        self._queue: asyncio.Queue = asyncio.Queue()
        self._running = False
        self._worker_tasks: List[asyncio.Task] = []

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def start(self) -> None:
        """Start the consumer tasks."""
        if self._running:
            return
        self._running = True
        self._worker_tasks = [
            asyncio.create_task(self._process_queue(index))
            for index in range(self.concurrency)
        ]
        logger.info("pipeline_worker_started", concurrency=self.concurrency)

    async def stop(self, drain: bool = True) -> None:
        """
        Stop the consumer tasks.

        Args:
            drain: Wait for queued jobs to finish before cancelling
        """
        if drain and self._running:
            await self.join()
        self._running = False
        for task in self._worker_tasks:
            task.cancel()
        for task in self._worker_tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._worker_tasks = []
        logger.info("pipeline_worker_stopped", pending=self._queue.qsize())

    async def submit(self, job: Job) -> None:
        """Queue a job for background processing."""
        await self._queue.put(job)
        logger.debug("pipeline_job_submitted", job=type(job).__name__, pending=self._queue.qsize())

    async def join(self) -> None:
        """Wait until every submitted job has been processed."""
        await self._queue.join()

    async def _process_queue(self, index: int) -> None:
        """Background consumer loop."""
        while self._running:
            try:
                job = await asyncio.wait_for(
                    self._queue.get(),
                    timeout=1.0,
                )
            except asyncio.TimeoutError:
                continue

            try:
                await self._run_job(job)
            except Exception:
                logger.exception("pipeline_job_error", job=repr(job), worker=index)
            finally:
                self._queue.task_done()

    async def _run_job(self, job: Job) -> Optional[object]:
        if isinstance(job, OperationJob):
            return await self.pipeline.run(job.operation_id)
        if isinstance(job, BatchJob):
            return await self.coordinator.run(job.batch_id)
        raise TypeError(f"Unsupported job: {job!r}")
