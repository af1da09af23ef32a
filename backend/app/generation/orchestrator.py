"""Batch orchestrator: fans generation tasks out across eligible keys."""

import asyncio
import uuid
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from app.core.logging import get_logger
from app.generation.dispatcher import GeminiDispatcher
from app.generation.errors import CredentialsExhaustedError, NoCredentialsConfiguredError
from app.generation.key_pool import KeyPool

logger = get_logger(__name__)

# Floor for the wait between selection attempts when no key is eligible
MIN_POLL_INTERVAL = 0.05

BatchCallback = Callable[[int, int], None]  # (tasks_done, tasks_total)


@dataclass
class GenerationTask:
    id: str
    prompt: str


@dataclass
class TaskResult:
    id: str
    result: str | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def new_request_id(prefix: str = "req") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:9]}"


class BatchOrchestrator:
    """Runs tasks in batches sized to the number of currently eligible keys.

    Each batch is dispatched concurrently, one task per key, and the
    orchestrator waits for every call in the batch to settle before moving
    on. Failed tasks are reported, never retried.
    """

    def __init__(
        self,
        key_pool: KeyPool,
        dispatcher: GeminiDispatcher,
        *,
        batch_pause: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.key_pool = key_pool
        self.dispatcher = dispatcher
        self.batch_pause = batch_pause
        self._sleep = sleep

    def _ensure_configured(self) -> None:
        if not self.key_pool.is_configured:
            raise NoCredentialsConfiguredError()

    async def generate(self, prompt: str, request_id: str | None = None) -> str:
        """Send a single prompt with the least used eligible key.

        Raises:
            NoCredentialsConfiguredError: if the pool has no keys.
            CredentialsExhaustedError: if no key is eligible right now.
            GenerationError: if the call itself fails.
        """
        self._ensure_configured()
        request_id = request_id or new_request_id()

        key_ids = self.key_pool.select_eligible(1)
        if not key_ids:
            retry_after = self.key_pool.seconds_until_available() or 0.0
            logger.warning("No eligible key", request_id=request_id, retry_after=retry_after)
            raise CredentialsExhaustedError(retry_after)

        key_id = key_ids[0]
        self.key_pool.record_usage(key_id)
        return await self.dispatcher.dispatch(prompt, key_id, request_id=request_id)

    async def run(
        self,
        tasks: Sequence[GenerationTask],
        on_batch: BatchCallback | None = None,
    ) -> list[TaskResult]:
        """Attempt every task exactly once; results come back in task order.

        When no key is eligible the orchestrator sleeps until the earliest one
        frees up. Window caps and suspensions both expire, so every task is
        eventually dispatched.
        """
        self._ensure_configured()

        total = len(tasks)
        results: list[TaskResult] = []
        batch_number = 0

        while len(results) < total:
            remaining = total - len(results)
            key_ids = self.key_pool.select_eligible(remaining)

            if not key_ids:
                wait = max(self.key_pool.seconds_until_available() or 0.0, MIN_POLL_INTERVAL)
                logger.info("Waiting for an eligible key", remaining=remaining, wait=wait)
                await self._sleep(wait)
                continue

            batch_number += 1
            batch = tasks[len(results) : len(results) + len(key_ids)]
            for key_id in key_ids:
                self.key_pool.record_usage(key_id)

            logger.info("Dispatching batch", batch=batch_number, size=len(batch), remaining=remaining)
            outcomes = await asyncio.gather(
                *(
                    self.dispatcher.dispatch(task.prompt, key_id, request_id=task.id)
                    for task, key_id in zip(batch, key_ids)
                ),
                return_exceptions=True,
            )

            for task, outcome in zip(batch, outcomes):
                if isinstance(outcome, Exception):
                    results.append(TaskResult(id=task.id, error=outcome))
                elif isinstance(outcome, BaseException):
                    raise outcome
                else:
                    results.append(TaskResult(id=task.id, result=outcome))

            if on_batch is not None:
                on_batch(len(results), total)

            if len(results) < total:
                await self._sleep(self.batch_pause)

        failed = sum(1 for r in results if not r.ok)
        logger.info("Batch run finished", tasks=total, batches=batch_number, failed=failed)
        return results
