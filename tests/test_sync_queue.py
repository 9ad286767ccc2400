import asyncio
import logging
from datetime import date
from types import SimpleNamespace

import pytest

from training_service.services.sync_service import SyncQueue, profile_payload, sync_test_result_to_user_profile


async def no_sleep(_seconds):
    return None


@pytest.mark.asyncio
async def test_failed_job_does_not_block_the_next():
    queue = SyncQueue(delay=0, sleep=no_sleep)
    log = []

    async def job_a():
        log.append("a")
        await asyncio.sleep(0.01)
        raise RuntimeError("user service unavailable")

    async def job_b():
        log.append("b")

    queue.add_task(job_a)
    queue.add_task(job_b)
    await queue.join()

    assert log == ["a", "b"]
    assert not queue.is_draining
    assert queue.pending == 0


@pytest.mark.asyncio
async def test_jobs_run_one_at_a_time_in_order():
    queue = SyncQueue(delay=0, sleep=no_sleep)
    running = 0
    peak = 0
    order = []

    async def job(n):
        nonlocal running, peak
        running += 1
        peak = max(peak, running)
        await asyncio.sleep(0)
        order.append(n)
        running -= 1

    for n in range(5):
        queue.add_task(job, n)
    await queue.join()

    assert order == [0, 1, 2, 3, 4]
    assert peak == 1


@pytest.mark.asyncio
async def test_state_goes_draining_then_idle():
    queue = SyncQueue(delay=0, sleep=no_sleep)
    release = asyncio.Event()

    async def blocked():
        await release.wait()

    async def quick():
        return None

    assert not queue.is_draining
    queue.add_task(blocked)
    queue.add_task(quick)
    assert queue.is_draining

    await asyncio.sleep(0)
    assert queue.pending == 1

    release.set()
    await queue.join()
    assert not queue.is_draining

    # An idle queue starts draining again on the next job
    queue.add_task(quick)
    assert queue.is_draining
    await queue.join()
    assert not queue.is_draining


@pytest.mark.asyncio
async def test_delay_between_jobs():
    slept = []

    async def record_sleep(seconds):
        slept.append(seconds)

    queue = SyncQueue(delay=0.25, sleep=record_sleep)

    async def job():
        return None

    queue.add_task(job)
    queue.add_task(job)
    await queue.join()

    assert slept == [0.25, 0.25]


@pytest.mark.asyncio
async def test_failed_job_is_logged(caplog):
    queue = SyncQueue(delay=0, sleep=no_sleep)

    async def broken():
        raise ValueError("boom")

    with caplog.at_level(logging.ERROR, logger="training_service.services.sync_service"):
        queue.add_task(broken)
        await queue.join()

    assert "Sync job broken failed" in caplog.text


@pytest.mark.asyncio
async def test_join_on_idle_queue_returns():
    await asyncio.wait_for(SyncQueue(delay=0).join(), timeout=1)


def test_profile_payload():
    row = SimpleNamespace(
        test_type="speed",
        test_date=date(2024, 5, 6),
        result=4.21,
        unit="sec",
        comparison_to_previous=-2.5,
    )

    assert profile_payload(row) == {
        "testResult": {"type": "speed", "date": "2024-05-06", "value": 4.21, "unit": "sec", "change": -2.5}
    }


@pytest.mark.asyncio
async def test_sync_pushes_to_user_stats(user_service):
    payload = {"testResult": {"type": "power", "date": "2024-05-06", "value": 250.0, "unit": "cm", "change": None}}

    await sync_test_result_to_user_profile(user_service, 12, payload, "tok")

    assert user_service.stats == [(12, payload, "tok")]
