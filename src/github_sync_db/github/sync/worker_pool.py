"""Bounded pool of isolated workers for CPU- or IO-heavy sync jobs.

Each worker is a single-slot executor, so a worker runs exactly one job at
a time and never shares mutable state with another worker. Jobs wait in a
FIFO queue until a worker is idle.

Features:
- FIFO dispatch onto N single-thread or single-process executors
- Coroutine jobs run on a fresh event loop inside the worker
- Job failures come back as structured outcomes, never as stuck futures
"""

from __future__ import annotations

import asyncio
import inspect
import traceback
import uuid
from collections import deque
from collections.abc import Callable
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Generic, Literal, TypeVar

from github_sync_db.config import default_pool_size
from github_sync_db.exceptions import WorkerJobError
from github_sync_db.logging import get_logger

logger = get_logger(__name__)

P = TypeVar("P")
R = TypeVar("R")

WorkerMode = Literal["thread", "process"]


@dataclass
class JobError:
    """Failure reported by a worker."""

    message: str
    trace: str | None = None


@dataclass
class JobOutcome:
    """Completion message sent back from a worker, correlated by job id."""

    job_id: str
    result: Any = None
    error: JobError | None = None


def _execute(job: Callable[[Any], Any], job_id: str, payload: Any) -> JobOutcome:
    """Run one job inside a worker.

    Module-level so process workers can unpickle it.
    """
    try:
        result = job(payload)
        if inspect.iscoroutine(result):
            result = asyncio.run(result)
        return JobOutcome(job_id=job_id, result=result)
    except Exception as e:
        return JobOutcome(
            job_id=job_id,
            error=JobError(message=f"{type(e).__name__}: {e}", trace=traceback.format_exc()),
        )


class WorkerPool(Generic[P, R]):
    """Fixed-size pool that runs ``job(payload)`` on isolated workers.

    Usage:
        async with WorkerPool(fetch_repo_job, size=4) as pool:
            bundles = await asyncio.gather(*(pool.submit(p) for p in payloads))

    In process mode ``job`` and every payload/result must be picklable.
    """

    def __init__(
        self,
        job: Callable[[P], R],
        *,
        size: int | None = None,
        mode: WorkerMode = "thread",
    ) -> None:
        """Initialize the pool.

        Args:
            job: Sync or async callable executed for each payload
            size: Number of workers (default: CPU count bounded to 2-4)
            mode: "thread" or "process" isolation per worker
        """
        self._job = job
        self._size = size or default_pool_size()
        self._mode = mode

        executor_class: type[Executor] = (
            ProcessPoolExecutor if mode == "process" else ThreadPoolExecutor
        )
        self._workers: list[Executor] = [
            executor_class(max_workers=1) for _ in range(self._size)
        ]
        self._idle: deque[Executor] = deque(self._workers)

        # FIFO of jobs not yet handed to a worker
        self._queue: deque[tuple[P, asyncio.Future[R]]] = deque()
        # In-flight jobs by id, resolved when the worker reports back
        self._tasks: dict[str, asyncio.Future[R]] = {}
        self._running: set[asyncio.Task[None]] = set()  # Prevent task GC

        self._closed = False
        self._total_submitted = 0
        self._total_completed = 0
        self._total_failed = 0

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------
    async def __aenter__(self) -> WorkerPool[P, R]:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.shutdown(wait=exc_type is None)

    async def shutdown(self, *, wait: bool = True) -> None:
        """Stop the pool.

        Jobs still waiting in the queue are cancelled. In-flight jobs are
        awaited when ``wait`` is True, otherwise their futures are cancelled.

        Args:
            wait: If True, let in-flight jobs finish first
        """
        if self._closed:
            return
        self._closed = True

        while self._queue:
            _payload, future = self._queue.popleft()
            if not future.done():
                future.cancel()

        if wait and self._running:
            await asyncio.gather(*self._running, return_exceptions=True)

        for future in self._tasks.values():
            if not future.done():
                future.cancel()
        self._tasks.clear()

        for worker in self._workers:
            worker.shutdown(wait=False, cancel_futures=True)

        logger.debug(
            "Worker pool stopped (completed={completed}, failed={failed})",
            completed=self._total_completed,
            failed=self._total_failed,
        )

    @property
    def size(self) -> int:
        return self._size

    @property
    def is_closed(self) -> bool:
        return self._closed

    # -------------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------------
    async def submit(self, payload: P) -> R:
        """Queue a job and wait for its result.

        Args:
            payload: Argument passed to the job

        Returns:
            The job's return value

        Raises:
            WorkerJobError: If the job raised inside the worker
            RuntimeError: If the pool has been shut down
        """
        if self._closed:
            raise RuntimeError("Worker pool is shut down")

        future: asyncio.Future[R] = asyncio.get_running_loop().create_future()
        self._queue.append((payload, future))
        self._total_submitted += 1
        self._process_queue()
        return await future

    def _process_queue(self) -> None:
        """Hand queued jobs to idle workers, oldest first."""
        while not self._closed and self._idle and self._queue:
            payload, future = self._queue.popleft()
            if future.done():
                # Caller gave up while queued
                continue

            worker = self._idle.popleft()
            job_id = str(uuid.uuid4())
            self._tasks[job_id] = future

            logger.debug(
                "Dispatching job {job_id} (queued={queued}, idle={idle})",
                job_id=job_id[:8],
                queued=len(self._queue),
                idle=len(self._idle),
            )

            task = asyncio.ensure_future(self._run(worker, job_id, payload))
            self._running.add(task)
            task.add_done_callback(self._running.discard)

    async def _run(self, worker: Executor, job_id: str, payload: P) -> None:
        loop = asyncio.get_running_loop()
        try:
            outcome: JobOutcome = await loop.run_in_executor(
                worker, _execute, self._job, job_id, payload
            )
        except Exception as e:
            # The worker itself broke (pickling error, dead process)
            outcome = JobOutcome(
                job_id=job_id,
                error=JobError(message=f"{type(e).__name__}: {e}", trace=traceback.format_exc()),
            )
        finally:
            self._idle.append(worker)

        self._settle(outcome)
        self._process_queue()

    def _settle(self, outcome: JobOutcome) -> None:
        """Resolve or reject the submitter's future for a finished job."""
        future = self._tasks.pop(outcome.job_id, None)

        if outcome.error is not None:
            self._total_failed += 1
            logger.warning(
                "Job {job_id} failed: {error}",
                job_id=outcome.job_id[:8],
                error=outcome.error.message,
            )
        else:
            self._total_completed += 1

        if future is None or future.done():
            return
        if outcome.error is not None:
            future.set_exception(WorkerJobError(outcome.error.message, outcome.error.trace))
        else:
            future.set_result(outcome.result)

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------
    def get_stats(self) -> dict[str, int | str | bool]:
        """Get pool statistics.

        Returns:
            Dict with size, idle, queued, in_flight, completed and failed counts
        """
        return {
            "size": self._size,
            "mode": self._mode,
            "idle": len(self._idle),
            "queued": len(self._queue),
            "in_flight": len(self._tasks),
            "total_submitted": self._total_submitted,
            "total_completed": self._total_completed,
            "total_failed": self._total_failed,
            "is_closed": self._closed,
        }
