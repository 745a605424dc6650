"""
Cron-driven job runner

Each background job gets one CronJobRunner that owns its asyncio task and stop
event. The runner runs the job once when started, then sleeps until the next
cron occurrence and repeats:

    IDLE -> RUNNING -> SUCCEEDED | FAILED -> SLEEPING -> IDLE ... -> STOPPED

A failing run is logged and reported to telemetry; the loop keeps going. When
the next occurrence cannot be computed the runner sleeps for its fallback
delay. stop() is observed while sleeping; a run in progress is given a grace
period and then cancelled.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone, tzinfo
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional
from uuid import uuid4

from croniter import croniter

from goal_tracker.telemetry import Events, track_event, track_operation

logger = logging.getLogger(__name__)


class JobState(Enum):
    """Lifecycle of a scheduled job"""
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SLEEPING = "sleeping"
    STOPPED = "stopped"


class CronJobRunner:
    """Runs one async job on a cron schedule until stopped"""

    def __init__(
        self,
        name: str,
        job: Callable[[], Awaitable[Any]],
        cron_expression: str,
        fallback_delay: timedelta,
        timezone_info: tzinfo = timezone.utc
    ):
        """
        Args:
            name: job name used in logs, telemetry and /health
            job: coroutine function run on every wake
            cron_expression: schedule, e.g. "0 0 */1 * *"
            fallback_delay: sleep used when the next occurrence cannot be computed
            timezone_info: zone the cron expression is evaluated in
        """
        self.name = name
        self.job = job
        self.cron_expression = cron_expression
        self.fallback_delay = fallback_delay
        self.timezone = timezone_info

        self.state = JobState.IDLE
        self.last_run_started: Optional[datetime] = None
        self.last_run_finished: Optional[datetime] = None
        self.last_error: Optional[str] = None
        self.last_result: Any = None
        self.next_run: Optional[datetime] = None
        self.run_count = 0
        self.failure_count = 0

        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def next_delay(self, now: Optional[datetime] = None) -> float:
        """Seconds until the next cron occurrence, or the fallback delay."""
        now = now or datetime.now(self.timezone)
        try:
            next_run = croniter(self.cron_expression, now).get_next(datetime)
            delay = (next_run - now).total_seconds()
        except Exception as e:
            logger.error(
                f"Could not compute next run of {self.name} from '{self.cron_expression}': {e}. "
                f"Using fallback delay of {self.fallback_delay}"
            )
            next_run = now + self.fallback_delay
            delay = self.fallback_delay.total_seconds()

        self.next_run = next_run
        return max(delay, 0.0)

    async def run_once(self) -> bool:
        """
        Run the job a single time.

        Returns:
            True when the run succeeded
        """
        run_id = str(uuid4())[:8]
        self.state = JobState.RUNNING
        self.last_run_started = datetime.now(timezone.utc)
        self.run_count += 1
        logger.info(f"[{run_id}] {self.name} run started")

        try:
            with track_operation(self.name, {"run_id": run_id}):
                self.last_result = await self.job()
        except Exception as e:
            self.state = JobState.FAILED
            self.failure_count += 1
            self.last_error = f"{type(e).__name__}: {e}"
            logger.error(f"[{run_id}] {self.name} run failed: {e}", exc_info=True)
            track_event(Events.JOB_RUN_FAILED, {"job": self.name, "run_id": run_id, "error": self.last_error})
            return False
        finally:
            self.last_run_finished = datetime.now(timezone.utc)

        self.state = JobState.SUCCEEDED
        self.last_error = None
        logger.info(f"[{run_id}] {self.name} run succeeded")
        track_event(Events.JOB_RUN_SUCCEEDED, {"job": self.name, "run_id": run_id})
        return True

    async def run_forever(self):
        """Run, sleep until the next occurrence, repeat until stop() is called."""
        logger.info(f"{self.name} scheduler started ({self.cron_expression})")
        try:
            while not self._stop_event.is_set():
                await self.run_once()
                if self._stop_event.is_set():
                    break

                delay = self.next_delay()
                self.state = JobState.SLEEPING
                logger.info(f"{self.name} sleeping {delay:.0f}s until {self.next_run}")

                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
                except asyncio.TimeoutError:
                    self.state = JobState.IDLE
        finally:
            self.state = JobState.STOPPED
            logger.info(f"{self.name} scheduler stopped")

    def start(self) -> asyncio.Task:
        """Start the loop in a background task; a running loop is left alone."""
        if self.is_running:
            return self._task

        self._stop_event.clear()
        self.state = JobState.IDLE
        self._task = asyncio.create_task(self.run_forever(), name=f"cron-{self.name}")
        return self._task

    async def stop(self, timeout: float = 30.0):
        """Signal the loop to stop and wait for it, cancelling after `timeout` seconds."""
        self._stop_event.set()
        if not self._task:
            self.state = JobState.STOPPED
            return

        try:
            await asyncio.wait_for(self._task, timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{self.name} did not stop within {timeout}s and was cancelled")
        except asyncio.CancelledError:
            logger.info(f"{self.name} cancelled")
        finally:
            self._task = None
            self.state = JobState.STOPPED

    def status(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "state": self.state.value,
            "cron_expression": self.cron_expression,
            "last_run_started": self.last_run_started.isoformat() if self.last_run_started else None,
            "last_run_finished": self.last_run_finished.isoformat() if self.last_run_finished else None,
            "next_run": self.next_run.isoformat() if self.next_run else None,
            "last_error": self.last_error,
            "run_count": self.run_count,
            "failure_count": self.failure_count,
        }
