# services/sync_service.py
"""
Best-effort propagation of test results to the user service.

Jobs run one at a time, in the order they were added, on the event loop
that added them. A failing job is logged and dropped; it never blocks or
reorders the jobs behind it. Nothing is persisted, so jobs still queued
when the process exits are lost.
"""
import os
import asyncio
import logging
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, Optional, Tuple

from dotenv import load_dotenv

from training_service.services.user_service_client import UserServiceClient

load_dotenv()
logger = logging.getLogger(__name__)

SYNC_QUEUE_DELAY_MS = int(os.getenv("SYNC_QUEUE_DELAY_MS", "100"))

Job = Callable[..., Awaitable[Any]]


class SyncQueue:
    def __init__(self, delay: float = SYNC_QUEUE_DELAY_MS / 1000, sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep):
        self.delay = delay
        self._sleep = sleep
        self._jobs: Deque[Tuple[Job, Tuple[Any, ...]]] = deque()
        self._draining = False
        self._task: Optional[asyncio.Task] = None
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def is_draining(self) -> bool:
        return self._draining

    @property
    def pending(self) -> int:
        return len(self._jobs)

    def add_task(self, job: Job, *args: Any) -> None:
        """Queue ``job(*args)``. Starts draining on the running loop if idle."""
        self._jobs.append((job, args))
        if not self._draining:
            self._draining = True
            self._idle.clear()
            self._task = asyncio.get_running_loop().create_task(self._drain())

    async def join(self) -> None:
        """Wait until every queued job has run."""
        await self._idle.wait()

    async def _drain(self) -> None:
        try:
            while self._jobs:
                job, args = self._jobs.popleft()
                name = getattr(job, "__name__", repr(job))
                try:
                    await job(*args)
                except Exception:
                    logger.exception(f"Sync job {name} failed; dropping it")

                await self._sleep(self.delay)
        finally:
            self._draining = False
            self._task = None
            self._idle.set()


def profile_payload(test_result) -> Dict[str, Any]:
    """The profile-facing fields of a committed test result."""
    return {
        "testResult": {
            "type": test_result.test_type,
            "date": test_result.test_date.isoformat(),
            "value": test_result.result,
            "unit": test_result.unit,
            "change": test_result.comparison_to_previous,
        }
    }


async def sync_test_result_to_user_profile(
    client: UserServiceClient,
    user_id: int,
    payload: Dict[str, Any],
    token: str,
) -> None:
    """Push one test result to the user's profile statistics."""
    await client.update_user_stats(user_id, payload, token)
    logger.info(f"Synced test result ({payload['testResult']['type']}, {payload['testResult']['date']}) for user {user_id}")
