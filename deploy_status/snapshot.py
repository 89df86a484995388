"""Classification of a run attempt's jobs into a renderable snapshot.

Everything in this module is pure: given the fetched jobs, the options and the
current instant it derives one immutable :class:`Snapshot`. The polling loop in
:mod:`deploy_status.monitor` owns timing, retries and the notification handle.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable, Mapping, Optional, Sequence

from .models import Job
from .timefmt import clock_emoji, elapsed_seconds, format_duration
from .verbs import VerbForms, get_verb_forms, title_case

DEFAULT_STEP_EMOJI = ":hammer_and_wrench:"
CANCELLED_LINE = "⚠️ Deploy was cancelled"
REPORTER_FAILED_PREFIX = ":warning: Status reporter failed: "
QUEUED_NOTICE_SECONDS = 10

_NOT_STARTED = frozenset({"queued", "pending"})
_PASSING = frozenset({"success", "skipped"})


class Color(str, Enum):
    # Slack's named colours ("good", "warning", "danger") do not render on
    # block attachments, so explicit hex values are sent.
    GOOD = "#1a7f37"
    WARNING = "#f2c744"
    DANGER = "#cf222e"
    UNSET = ""

    @property
    def hex(self) -> Optional[str]:
        return self.value or None


def emoji_key(step_name: str) -> str:
    return step_name.replace(" ", "_").upper()


@dataclass(frozen=True, slots=True)
class RenderOptions:
    deploy_description: str
    important_steps: frozenset[str] = frozenset()
    verb_forms: VerbForms = field(default_factory=get_verb_forms)
    log_job_name: str = ""
    emoji_overrides: Mapping[str, str] = field(default_factory=dict)
    default_log_url: str = ""

    def step_emoji(self, step_name: str) -> str:
        return self.emoji_overrides.get(emoji_key(step_name)) or DEFAULT_STEP_EMOJI


@dataclass(frozen=True, slots=True)
class Snapshot:
    description: str
    active_lines: tuple[str, ...] = ()
    completed_lines: tuple[str, ...] = ()
    log_url: str = ""
    color: Color = Color.UNSET
    all_jobs_completed: bool = False
    all_succeeded: bool = True
    overall_started_at: Optional[datetime] = None
    important_started_at: Optional[datetime] = None
    max_queued_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.all_jobs_completed and self.all_succeeded


def find_status_job(jobs: Iterable[Job], marker: str) -> Optional[Job]:
    for job in jobs:
        if any(marker in step.name for step in job.steps):
            return job
    return None


def important_jobs(jobs: Iterable[Job], status_job: Job) -> list[Job]:
    return [job for job in jobs if job.id != status_job.id]


def select_log_url(jobs: Sequence[Job], log_job_name: str = "") -> str:
    """Pick the job whose logs the "Logs" button should open.

    Preference order: the job matching ``log_job_name``, the first running
    job, the first failed job, then simply the first job.
    """

    if not jobs:
        return ""
    chosen: Optional[Job] = None
    if log_job_name:
        chosen = next((job for job in jobs if log_job_name in job.name), None)
    if chosen is None:
        chosen = next((job for job in jobs if job.status == "in_progress"), None)
    if chosen is None:
        chosen = next((job for job in jobs if job.conclusion == "failure"), None)
    if chosen is None:
        chosen = jobs[0]
    return chosen.html_url


def _earliest(values: Iterable[Optional[datetime]]) -> Optional[datetime]:
    present = [value for value in values if value is not None]
    return min(present) if present else None


def fold_steps(
    jobs: Iterable[Job],
    *,
    options: RenderOptions,
    now: datetime,
) -> tuple[list[str], list[str]]:
    active: list[str] = []
    completed: list[str] = []
    for job in jobs:
        for step in job.steps:
            duration = format_duration(elapsed_seconds(step.started_at, step.completed_at or now))
            if step.status == "completed":
                if step.conclusion == "success":
                    if step.name not in options.important_steps:
                        continue
                    completed.append(f"{options.step_emoji(step.name)} {step.name} completed in {duration}")
                elif step.conclusion == "skipped":
                    continue
                else:
                    completed.append(f"{step.name} failed after {duration}")
            elif step.status == "in_progress":
                active.append(f"{options.step_emoji(step.name)} {step.name} running for {duration}...")
    return active, completed


def describe(
    *,
    options: RenderOptions,
    completed: bool,
    success: bool,
    important_started_at: Optional[datetime],
    max_queued_seconds: float,
    now: datetime,
) -> str:
    verbs = options.verb_forms
    if not completed:
        return f"⏳ {title_case(verbs.continuous)} {options.deploy_description}"

    if success:
        description = f":white_check_mark: {title_case(verbs.past)} {options.deploy_description}"
        preposition = "in"
    else:
        description = f":x: Failed to {verbs.base} {options.deploy_description}"
        preposition = "after"
    if important_started_at is not None:
        description += f" {preposition} {format_duration(elapsed_seconds(important_started_at, now))}"
        if max_queued_seconds > QUEUED_NOTICE_SECONDS:
            description += f" (queued {format_duration(max_queued_seconds)})"
    return description


def build_snapshot(
    jobs: Sequence[Job],
    status_job: Job,
    *,
    options: RenderOptions,
    now: datetime,
    max_queued_seconds: float = 0.0,
) -> Snapshot:
    """Derive the snapshot for one tick.

    ``max_queued_seconds`` is the longest queue time observed on earlier ticks;
    the returned snapshot carries the maximum including this tick.
    """

    important = important_jobs(jobs, status_job)
    active, completed = fold_steps(important, options=options, now=now)

    all_completed = all(job.status == "completed" for job in important)
    all_succeeded = all(job.conclusion in _PASSING for job in important)
    any_started = any(job.status not in _NOT_STARTED for job in important)
    pending = [job for job in important if job.status == "pending"]

    color = Color.UNSET
    if all_completed:
        color = Color.GOOD if all_succeeded else Color.DANGER
        # The jobs API occasionally reports in-progress steps on a job that
        # has already completed; those must not render as still running.
        active = []
    elif pending:
        for job in pending:
            waited = elapsed_seconds(job.queued_since, now)
            max_queued_seconds = max(max_queued_seconds, waited)
            active.append(f"{clock_emoji(waited)} {job.name} queued for {format_duration(waited)}...")
    elif any_started:
        color = Color.WARNING

    important_started_at = _earliest(job.started_at for job in important)
    description = describe(
        options=options,
        completed=all_completed,
        success=all_succeeded,
        important_started_at=important_started_at,
        max_queued_seconds=max_queued_seconds,
        now=now,
    )
    return Snapshot(
        description=description,
        active_lines=tuple(active),
        completed_lines=tuple(completed),
        log_url=select_log_url(important, options.log_job_name) or options.default_log_url,
        color=color,
        all_jobs_completed=all_completed,
        all_succeeded=all_succeeded,
        overall_started_at=_earliest(job.started_at for job in jobs),
        important_started_at=important_started_at,
        max_queued_seconds=max_queued_seconds,
    )


def failure_snapshot(
    previous: Optional[Snapshot],
    reason: str,
    *,
    options: RenderOptions,
    now: datetime,
) -> Snapshot:
    """Terminal failure snapshot used for cancellation and reporter errors."""

    important_started_at = previous.important_started_at if previous else None
    max_queued_seconds = previous.max_queued_seconds if previous else 0.0
    completed_lines = (previous.completed_lines if previous else ()) + (reason,)
    return Snapshot(
        description=describe(
            options=options,
            completed=True,
            success=False,
            important_started_at=important_started_at,
            max_queued_seconds=max_queued_seconds,
            now=now,
        ),
        active_lines=(),
        completed_lines=completed_lines,
        log_url=(previous.log_url if previous else "") or options.default_log_url,
        color=Color.DANGER,
        all_jobs_completed=True,
        all_succeeded=False,
        overall_started_at=previous.overall_started_at if previous else None,
        important_started_at=important_started_at,
        max_queued_seconds=max_queued_seconds,
    )
