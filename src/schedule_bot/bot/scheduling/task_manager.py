"""
Single-lane periodic job scheduling.

A TimerLane runs several periodic jobs with fixed delays between runs.
Jobs on the same lane never overlap: each pass holds the lane's lock for
its whole duration. Separate lanes run independently of each other.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime

from .error_handling import ErrorClassifier
from .types import TaskStatus
from ...utils.time import utc_now

logger = logging.getLogger(__name__)

PassCallable = Callable[[], Awaitable[object]]


@dataclass
class JobState:
    """Bookkeeping of one periodic job."""

    name: str
    job: PassCallable
    interval: float
    initial_delay: float
    status: TaskStatus = TaskStatus.IDLE
    runs: int = 0
    failures: int = 0
    last_run: datetime | None = None
    last_error: str | None = None
    history: list[str] = field(default_factory=list)


class TimerLane:
    """
    Serial executor for periodic passes.

    Provides job registration, startup, graceful shutdown that lets a running
    pass finish, and per-job status for health reporting.
    """

    def __init__(self, name: str, shutdown_timeout: float = 60.0) -> None:
        """
        Initialize the lane.

        Args:
            name: Lane name used in log messages
            shutdown_timeout: How long stop() waits for a running pass
        """
        self.name: str = name
        self._lock: asyncio.Lock = asyncio.Lock()
        self._jobs: dict[str, JobState] = {}
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._shutdown_event: asyncio.Event = asyncio.Event()
        self._shutdown_timeout: float = shutdown_timeout

    def add_job(
        self, name: str, job: PassCallable, interval: float, initial_delay: float = 0.0
    ) -> None:
        """
        Register a periodic job; it starts running once the lane is started.

        Args:
            name: Unique job name
            job: Coroutine function performing one pass
            interval: Delay in seconds between the end of a pass and the next start
            initial_delay: Delay before the first pass
        """
        if name in self._jobs:
            raise ValueError(f"Job {name} already registered on lane {self.name}")
        self._jobs[name] = JobState(
            name=name, job=job, interval=interval, initial_delay=initial_delay
        )
        if self.is_running:
            self._spawn(self._jobs[name])

    @property
    def is_running(self) -> bool:
        return bool(self._tasks) and not self._shutdown_event.is_set()

    def _spawn(self, state: JobState) -> None:
        logger.info(
            f"Lane {self.name}: scheduling {state.name} every {state.interval:g}s "
            f"(first run in {state.initial_delay:g}s)"
        )
        self._tasks[state.name] = asyncio.create_task(
            self._run_periodic(state), name=f"{self.name}:{state.name}"
        )

    async def start(self) -> None:
        """Start every registered job."""
        if self.is_running:
            logger.warning(f"Lane {self.name} already running")
            return
        logger.info(f"Starting timer lane {self.name}")
        self._shutdown_event.clear()
        for state in self._jobs.values():
            self._spawn(state)

    async def stop(self) -> None:
        """Stop the lane, letting a pass that is already running complete."""
        logger.info(f"Stopping timer lane {self.name}")
        self._shutdown_event.set()
        tasks = list(self._tasks.values())
        if tasks:
            _, pending = await asyncio.wait(tasks, timeout=self._shutdown_timeout)
            for task in pending:
                logger.warning(f"Lane {self.name}: cancelling {task.get_name()} after shutdown timeout")
                _ = task.cancel()
            if pending:
                _ = await asyncio.gather(*pending, return_exceptions=True)
        self._tasks.clear()

    async def run_now(self, name: str) -> None:
        """Run one pass of a job immediately, serialized with the lane."""
        await self._run_pass(self._jobs[name])

    async def _run_periodic(self, state: JobState) -> None:
        await self._wait_with_shutdown_check(state.initial_delay)
        while not self._shutdown_event.is_set():
            await self._run_pass(state)
            await self._wait_with_shutdown_check(state.interval)
        logger.debug(f"Lane {self.name}: {state.name} stopped")

    async def _run_pass(self, state: JobState) -> None:
        async with self._lock:
            state.status = TaskStatus.RUNNING
            state.last_run = utc_now()
            state.runs += 1
            try:
                _ = await state.job()
                state.status = TaskStatus.IDLE
            except asyncio.CancelledError:
                state.status = TaskStatus.CANCELLED
                raise
            except Exception as e:
                error_type = ErrorClassifier.classify_error(e)
                state.status = TaskStatus.FAILED
                state.failures += 1
                state.last_error = f"{type(e).__name__}: {e}"
                logger.exception(
                    f"Lane {self.name}: pass {state.name} failed with {error_type.value} error "
                    f"(run {state.runs}, failures {state.failures}): {e}"
                )
            self._record(state)

    def _record(self, state: JobState) -> None:
        entry = f"{state.last_run.isoformat() if state.last_run else '-'} {state.status.value}"
        state.history.append(entry)
        # Keep the last 100 outcomes per job
        if len(state.history) > 100:
            _ = state.history.pop(0)

    async def _wait_with_shutdown_check(self, delay: float) -> None:
        """Wait for the delay, returning early when shutdown is requested."""
        if delay <= 0:
            return
        try:
            _ = await asyncio.wait_for(self._shutdown_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    def get_task_status(self, name: str) -> TaskStatus | None:
        state = self._jobs.get(name)
        return state.status if state else None

    def get_all_task_status(self) -> dict[str, dict[str, str | int | datetime | None]]:
        """Status of every job on the lane."""
        return {
            name: {
                "status": state.status.value,
                "runs": state.runs,
                "failures": state.failures,
                "last_run": state.last_run,
                "last_error": state.last_error,
            }
            for name, state in self._jobs.items()
        }
