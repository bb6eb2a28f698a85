"""
Batch Pipeline Coordinator

Runs a batch's operations one at a time, in creation order, with a
pacing delay between them.
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional

import structlog

from ..config import PipelineConfig
from ..database import (
    BatchStatus,
    OperationStatus,
    RecordStore,
    VoiceTranslateBatch,
    utcnow,
)
from ..errors import NotFoundError
from .operation import STEP_INITIALIZATION, OperationPipeline, truncate_error

logger = structlog.get_logger(__name__)

Sleeper = Callable[[float], Awaitable[None]]


def rollup_status(completed: int, failed: int, total: int) -> BatchStatus:
    """Final batch status from its per-operation counts."""
    if failed == total:
        return BatchStatus.FAILED
    if completed == total:
        return BatchStatus.COMPLETED
    return BatchStatus.PARTIAL


class BatchCoordinator:
    """
    Sequential batch runner.

    One operation is in flight at a time; the next starts only after the
    previous reaches a terminal state and ``batch_delay_seconds`` elapses.
    A failing operation is counted and the batch moves on.
    """

    def __init__(
        self,
        store: RecordStore,
        pipeline: OperationPipeline,
        config: PipelineConfig,
        sleep: Optional[Sleeper] = None,
    ):
        self.store = store
        self.pipeline = pipeline
        self.config = config
        self._sleep = sleep or asyncio.sleep

    async def run(self, batch_id: str) -> VoiceTranslateBatch:
        start_time = time.monotonic()
        log = logger.bind(batch_id=batch_id)

        batch = await self.store.get_batch(batch_id)
        if batch is None:
            raise NotFoundError(
                f"Batch {batch_id} not found",
                resource="batch",
                resource_id=batch_id,
            )
        if batch.is_terminal:
            log.info("batch_already_finished", status=batch.status)
            return batch

        completed = 0
        failed = 0
        try:
            operations = await self.store.list_operations_for_batch(batch_id)
            total = len(operations)
            await self.store.update_batch(
                batch_id,
                status=BatchStatus.PROCESSING.value,
                total_files=total,
            )
            audio_files = {
                audio.id: audio
                for audio in await self.store.get_audio_files(
                    [op.source_audio_id for op in operations]
                )
            }
            log.info("batch_started", total_files=total)

            for index, operation in enumerate(operations):
                audio_file = audio_files.get(operation.source_audio_id)
                if operation.is_terminal:
                    # Finished by an earlier run of this batch
                    if operation.status == OperationStatus.COMPLETED.value:
                        completed += 1
                    else:
                        failed += 1
                    await self.store.update_batch(
                        batch_id,
                        completed_files=completed,
                        failed_files=failed,
                    )
                    continue

                if audio_file is None:
                    await self.store.update_operation(
                        operation.id,
                        status=OperationStatus.FAILED.value,
                        current_step=f"Failed at: {STEP_INITIALIZATION}",
                        error_message="Audio file not found",
                        processing_time=0.0,
                    )
                    log.warning(
                        "batch_operation_missing_audio",
                        operation_id=operation.id,
                        source_audio_id=operation.source_audio_id,
                    )
                    failed += 1
                else:
                    op_start = time.monotonic()
                    try:
                        await self.store.update_operation(
                            operation.id,
                            status=OperationStatus.PROCESSING.value,
                            current_step="Starting",
                        )
                        result = await self.pipeline.run(operation.id, audio_file=audio_file)
                    except Exception as e:
                        result = await self.pipeline.record_failure(
                            operation.id, STEP_INITIALIZATION, e, op_start
                        )

                    if result is not None and result.status == OperationStatus.COMPLETED.value:
                        completed += 1
                    else:
                        failed += 1

                await self.store.update_batch(
                    batch_id,
                    completed_files=completed,
                    failed_files=failed,
                )
                log.debug(
                    "batch_progress",
                    index=index,
                    completed_files=completed,
                    failed_files=failed,
                )

                if index < total - 1:
                    await self._sleep(self.config.batch_delay_seconds)

            status = rollup_status(completed, failed, total)
            processing_time = time.monotonic() - start_time
            finished = await self.store.update_batch(
                batch_id,
                status=status.value,
                processing_time=processing_time,
                completed_at=utcnow(),
            )
            log.info(
                "batch_completed",
                status=status.value,
                total_files=total,
                completed_files=completed,
                failed_files=failed,
                processing_time=round(processing_time, 3),
            )
            return finished

        except Exception as e:
            error_message = truncate_error(e, self.config.error_message_max_length)
            log.exception("batch_failed", error=error_message)
            return await self.store.update_batch(
                batch_id,
                status=BatchStatus.FAILED.value,
                error_message=error_message,
                processing_time=time.monotonic() - start_time,
                completed_at=utcnow(),
            )
