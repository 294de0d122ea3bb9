import asyncio
import logging

import pytest

from modules.common import runtime


def test_scheduler_reports_task_errors(caplog: pytest.LogCaptureFixture) -> None:
    async def runner() -> None:
        scheduler = runtime.Scheduler()

        async def fail() -> None:
            raise RuntimeError("boom")

        caplog.set_level(logging.ERROR, logger="selfroles.runtime")

        task = scheduler.spawn(fail(), name="failing_job")
        await asyncio.gather(task, return_exceptions=True)
        await asyncio.sleep(0)
        await scheduler.shutdown()

    asyncio.run(runner())

    errors = [record for record in caplog.records if record.getMessage() == "scheduled task error"]
    assert errors and errors[0].task == "failing_job"


def test_scheduler_forgets_finished_tasks() -> None:
    async def runner() -> None:
        scheduler = runtime.Scheduler()

        async def quick() -> None:
            return None

        for _ in range(5):
            await scheduler.spawn(quick(), name="quick")
        blocker = asyncio.Event()
        scheduler.spawn(blocker.wait(), name="slow")

        assert len(scheduler._tasks) == 1
        assert scheduler.pending == 1

        await scheduler.shutdown()
        assert scheduler.pending == 0

    asyncio.run(runner())


def test_scheduler_shutdown_cancels_pending() -> None:
    async def runner() -> None:
        scheduler = runtime.Scheduler()
        started = asyncio.Event()

        async def forever() -> None:
            started.set()
            await asyncio.sleep(3600)

        task = scheduler.spawn(forever(), name="forever")
        await started.wait()
        await scheduler.shutdown()

        assert task.cancelled()

    asyncio.run(runner())
