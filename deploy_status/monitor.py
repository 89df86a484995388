"""Polling loop that keeps the deploy status message up to date.

One tick fetches the run attempt's jobs, folds them into a
:class:`~deploy_status.snapshot.Snapshot` and hands it to the notifier. Ticks
never overlap. Cancellation is cooperative: the token is checked at the top of
each iteration and right after each fetch, and the terminal message is sent
from the loop rather than from the signal handler.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from .errors import SelfJobNotFoundError
from .github_client import JobSource
from .notify import StatusNotifier
from .snapshot import (
    CANCELLED_LINE,
    REPORTER_FAILED_PREFIX,
    RenderOptions,
    Snapshot,
    build_snapshot,
    failure_snapshot,
    find_status_job,
    important_jobs,
)
from .timefmt import elapsed_seconds


class Outcome(str, Enum):
    COMPLETED_SUCCESS = "completed_success"
    COMPLETED_FAILURE = "completed_failure"
    CANCELLED = "cancelled"
    NO_JOBS = "no_jobs"


class CancellationToken:
    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, seconds: float) -> bool:
        """Sleep for ``seconds`` or until cancelled; True when cancelled."""

        return self._event.wait(max(0.0, seconds))


@dataclass(slots=True)
class MonitorOptions:
    run_id: int
    attempt: int
    step_identifier: str
    render: RenderOptions
    long_job_duration: float = 600.0
    republish_long_jobs: bool = True
    poll_interval: float = 10.0
    discovery_interval: float = 2.0
    discovery_grace: float = 60.0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StatusMonitor:
    def __init__(
        self,
        *,
        source: JobSource,
        notifier: StatusNotifier,
        options: MonitorOptions,
        logger,
        cancel: CancellationToken | None = None,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], object] | None = None,
    ) -> None:
        self.source = source
        self.notifier = notifier
        self.options = options
        self.logger = logger
        self.cancel = cancel or CancellationToken()
        self._clock = clock
        self._sleep = sleep or self.cancel.wait
        self._max_queued_seconds = 0.0
        self.last_snapshot: Optional[Snapshot] = None

    def run(self) -> Outcome:
        try:
            outcome = self._poll()
        except Exception as exc:
            self.logger.error("status_monitor_failed", error=str(exc), error_type=exc.__class__.__name__)
            self._report_failure(REPORTER_FAILED_PREFIX + str(exc))
            raise
        if outcome is Outcome.CANCELLED:
            self.logger.warn("status_monitor_cancelled")
            snapshot = failure_snapshot(
                self.last_snapshot,
                CANCELLED_LINE,
                options=self.options.render,
                now=self._clock(),
            )
            self.last_snapshot = snapshot
            self._publish(snapshot)
        return outcome

    def _poll(self) -> Outcome:
        started_at = self._clock()
        marker = self.options.step_identifier
        while True:
            if self.cancel.cancelled:
                return Outcome.CANCELLED

            jobs = self.source.list_jobs(self.options.run_id, self.options.attempt)
            if self.cancel.cancelled:
                return Outcome.CANCELLED

            status_job = find_status_job(jobs, marker)
            if status_job is None:
                waited = elapsed_seconds(started_at, self._clock())
                self.logger.warn(
                    "status_job_missing",
                    marker=marker,
                    waited=round(waited, 2),
                    jobs=jobs,
                )
                if waited < self.options.discovery_grace:
                    self._sleep(self.options.discovery_interval)
                    continue
                raise SelfJobNotFoundError(f"Could not find job with step identifier {marker}")

            if not important_jobs(jobs, status_job):
                self.logger.info("no_important_jobs", status_job=status_job.name)
                return Outcome.NO_JOBS

            now = self._clock()
            snapshot = build_snapshot(
                jobs,
                status_job,
                options=self.options.render,
                now=now,
                max_queued_seconds=self._max_queued_seconds,
            )
            self._max_queued_seconds = snapshot.max_queued_seconds
            self.last_snapshot = snapshot
            if snapshot.all_jobs_completed:
                self.logger.debug(
                    "important_jobs_completed",
                    jobs=important_jobs(jobs, status_job),
                )
            self.logger.info("status_tick", snapshot=snapshot)

            self._publish(snapshot, republish=self._should_republish(snapshot, now))
            if snapshot.all_jobs_completed:
                return Outcome.COMPLETED_SUCCESS if snapshot.all_succeeded else Outcome.COMPLETED_FAILURE

            self._sleep(self.options.poll_interval)

    def _should_republish(self, snapshot: Snapshot, now: datetime) -> bool:
        if not self.options.republish_long_jobs or not snapshot.all_jobs_completed:
            return False
        if snapshot.overall_started_at is None:
            return False
        return elapsed_seconds(snapshot.overall_started_at, now) > self.options.long_job_duration

    def _publish(self, snapshot: Snapshot, *, republish: bool = False) -> None:
        self.notifier.publish(snapshot, republish=republish)

    def _report_failure(self, reason: str) -> None:
        snapshot = failure_snapshot(self.last_snapshot, reason, options=self.options.render, now=self._clock())
        self.last_snapshot = snapshot
        try:
            self._publish(snapshot)
        except Exception as exc:  # noqa: BLE001 - the original error is re-raised by run()
            self.logger.error("failure_report_failed", error=str(exc), reason=reason)
