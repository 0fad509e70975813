"""
Background credential rotation.

A single worker thread sleeps until the earliest pending job is due, then calls
the rotation callback with the job's kind. Jobs are computed from a session's
expiry timestamps minus a safety margin:

* ``REFRESH`` fires before the access token expires (refresh grant);
* ``REAUTHENTICATE`` fires before the refresh token expires (full login).

Jobs are single-shot. Whoever owns the scheduler decides whether to re-arm it
after a rotation.
"""

import heapq
import itertools
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, List, Optional

from .log_utils import LogEvent, LogRecord, debug, error, info
from .session import Session


class JobKind(str, Enum):
    REFRESH = "refresh"
    REAUTHENTICATE = "reauthenticate"


@dataclass(order=True)
class RotationJob:
    deadline: float  # time.monotonic() value
    sequence: int
    kind: JobKind = field(compare=False)
    due_at: datetime = field(compare=False)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RefreshScheduler:
    """Single-thread timer driving credential rotation."""

    def __init__(
        self,
        rotate: Callable[[JobKind], None],
        safety_margin: int = 300,
        clock: Callable[[], datetime] = _utcnow,
        name: str = "athena-token-refresher",
    ):
        self._rotate = rotate
        self._safety_margin = timedelta(seconds=safety_margin)
        self._clock = clock
        self._name = name

        self._jobs: List[RotationJob] = []
        self._sequence = itertools.count()
        self._condition = threading.Condition()
        self._thread: Optional[threading.Thread] = None
        self._stopped = False

    # ----- scheduling -----

    def make_job(self, kind: JobKind, expires_at: datetime) -> RotationJob:
        due_at = expires_at - self._safety_margin
        delay = max(0.0, (due_at - self._clock()).total_seconds())
        return RotationJob(
            deadline=time.monotonic() + delay,
            sequence=next(self._sequence),
            kind=kind,
            due_at=due_at,
        )

    def arm(self, session: Session) -> List[RotationJob]:
        """Schedule the refresh and re-authentication jobs for ``session``."""
        jobs = [
            self.make_job(JobKind.REFRESH, session.access_token_expires_at),
            self.make_job(JobKind.REAUTHENTICATE, session.refresh_token_expires_at),
        ]
        for job in jobs:
            self.schedule(job)
        return jobs

    def rearm(self, session: Session) -> List[RotationJob]:
        """Drop every pending job and arm again from ``session``."""
        self.cancel()
        return self.arm(session)

    def schedule(self, job: RotationJob) -> bool:
        with self._condition:
            if self._stopped:
                return False
            heapq.heappush(self._jobs, job)
            self._ensure_worker()
            self._condition.notify_all()

        info(LogRecord(
            event=LogEvent.ROTATION_SCHEDULED.value,
            message=f"Scheduled {job.kind.value} at {job.due_at.isoformat()}",
            data={"job_kind": job.kind.value, "due_at": job.due_at.isoformat()}
        ))
        return True

    def cancel(self, kind: Optional[JobKind] = None) -> int:
        """Remove pending jobs (all, or only those of ``kind``)."""
        with self._condition:
            before = len(self._jobs)
            if kind is None:
                self._jobs.clear()
            else:
                self._jobs = [job for job in self._jobs if job.kind is not kind]
                heapq.heapify(self._jobs)
            self._condition.notify_all()
            return before - len(self._jobs)

    def pending_jobs(self) -> List[RotationJob]:
        with self._condition:
            return sorted(self._jobs)

    # ----- lifecycle -----

    def stop(self) -> None:
        """Cancel pending jobs and tell the worker to exit. Does not wait."""
        with self._condition:
            if self._stopped:
                return
            self._stopped = True
            self._jobs.clear()
            self._condition.notify_all()
        debug(LogRecord(
            event=LogEvent.SCHEDULER_STOPPED.value,
            message="Token refresher stopped"
        ))

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the worker to exit; a no-op on the worker thread itself."""
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return
        thread.join(timeout)

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def is_worker_thread(self) -> bool:
        return self._thread is not None and self._thread is threading.current_thread()

    def _ensure_worker(self) -> None:
        # Caller holds the condition
        if self._thread is None:
            self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
            self._thread.start()

    def _next_due_job(self) -> Optional[RotationJob]:
        with self._condition:
            while not self._stopped:
                if not self._jobs:
                    self._condition.wait()
                    continue
                delay = self._jobs[0].deadline - time.monotonic()
                if delay <= 0:
                    return heapq.heappop(self._jobs)
                self._condition.wait(delay)
            return None

    def _run(self) -> None:
        while True:
            job = self._next_due_job()
            if job is None:
                return
            try:
                self._rotate(job.kind)
            except Exception as e:
                error(LogRecord(
                    event=LogEvent.SCHEDULER_JOB_ERROR.value,
                    message=f"Unhandled error in {job.kind.value} job",
                    data={"job_kind": job.kind.value}
                ), exc=e)
