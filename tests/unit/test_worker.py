"""Unit tests for the background pipeline worker."""

import asyncio

import pytest
from structlog.testing import capture_logs

from voiceverse.worker import BatchJob, OperationJob, PipelineWorker


class FakePipeline:
    """Records runs; ``hooks`` maps an id to an async callable run first."""

    def __init__(self, hooks=None):
        self.runs = []
        self.hooks = hooks or {}

    async def run(self, record_id):
        hook = self.hooks.get(record_id)
        if hook is not None:
            await hook()
        self.runs.append(record_id)
        return record_id


@pytest.fixture
def pipeline():
    return FakePipeline()


@pytest.fixture
def coordinator():
    return FakePipeline()


async def finish(worker):
    await asyncio.wait_for(worker.join(), timeout=5)


class TestPipelineWorker:
    """Tests for PipelineWorker."""

    @pytest.mark.asyncio
    async def test_jobs_are_routed(self, pipeline, coordinator):
        worker = PipelineWorker(pipeline, coordinator)
        await worker.start()

        await worker.submit(OperationJob("op-1"))
        await worker.submit(BatchJob("batch-1"))
        await finish(worker)
        await worker.stop()

        assert pipeline.runs == ["op-1"]
        assert coordinator.runs == ["batch-1"]
        assert worker.is_running is False

    @pytest.mark.asyncio
    async def test_failed_job_does_not_stop_consumer(self, coordinator):
        async def explode():
            raise RuntimeError("boom")

        pipeline = FakePipeline(hooks={"bad": explode})
        worker = PipelineWorker(pipeline, coordinator)
        await worker.start()

        with capture_logs() as logs:
            await worker.submit(OperationJob("bad"))
            await worker.submit(OperationJob("good"))
            await finish(worker)
        await worker.stop()

        assert pipeline.runs == ["good"]
        errors = [entry for entry in logs if entry["event"] == "pipeline_job_error"]
        assert len(errors) == 1
        assert errors[0]["worker"] == 0

    @pytest.mark.asyncio
    async def test_unsupported_job_is_rejected(self, pipeline, coordinator):
        worker = PipelineWorker(pipeline, coordinator)

        with pytest.raises(TypeError):
            await worker._run_job("not-a-job")

    @pytest.mark.asyncio
    async def test_unsupported_job_is_logged_and_skipped(self, pipeline, coordinator):
        worker = PipelineWorker(pipeline, coordinator)
        await worker.start()

        with capture_logs() as logs:
            await worker.submit("not-a-job")
            await worker.submit(OperationJob("op-1"))
            await finish(worker)
        await worker.stop()

        assert pipeline.runs == ["op-1"]
        assert [entry["event"] for entry in logs].count("pipeline_job_error") == 1

    @pytest.mark.asyncio
    async def test_stop_without_drain_leaves_queued_jobs(self, coordinator):
        started = asyncio.Event()
        never = asyncio.Event()

        async def block():
            started.set()
            await never.wait()

        pipeline = FakePipeline(hooks={"slow": block})
        worker = PipelineWorker(pipeline, coordinator)
        await worker.start()
        await worker.submit(OperationJob("slow"))
        await asyncio.wait_for(started.wait(), timeout=5)
        await worker.submit(OperationJob("queued"))

        await asyncio.wait_for(worker.stop(drain=False), timeout=5)

        assert worker.is_running is False
        assert worker.pending == 1
        assert pipeline.runs == []

    @pytest.mark.asyncio
    async def test_stop_with_drain_finishes_queued_jobs(self, pipeline, coordinator):
        worker = PipelineWorker(pipeline, coordinator)
        await worker.start()
        for index in range(3):
            await worker.submit(OperationJob(f"op-{index}"))

        await asyncio.wait_for(worker.stop(), timeout=5)

        assert pipeline.runs == ["op-0", "op-1", "op-2"]
        assert worker.pending == 0

    @pytest.mark.asyncio
    async def test_consumers_run_side_by_side(self, coordinator):
        first_started = asyncio.Event()
        second_started = asyncio.Event()

        async def first():
            first_started.set()
            await second_started.wait()

        async def second():
            second_started.set()
            await first_started.wait()

        # Each job waits on the other, so this only finishes with two consumers
        pipeline = FakePipeline(hooks={"a": first, "b": second})
        worker = PipelineWorker(pipeline, coordinator, concurrency=2)
        await worker.start()

        await worker.submit(OperationJob("a"))
        await worker.submit(OperationJob("b"))
        await finish(worker)
        await worker.stop()

        assert sorted(pipeline.runs) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, pipeline, coordinator):
        worker = PipelineWorker(pipeline, coordinator, concurrency=2)

        await worker.start()
        tasks = list(worker._worker_tasks)
        await worker.start()

        assert worker._worker_tasks == tasks
        assert len(tasks) == 2
        await worker.stop()

    def test_concurrency_floor(self, pipeline, coordinator):
        assert PipelineWorker(pipeline, coordinator, concurrency=0).concurrency == 1
