from __future__ import annotations

from datetime import timedelta

import pytest

from deploy_status.models import Job
from deploy_status.snapshot import (
    CANCELLED_LINE,
    Color,
    RenderOptions,
    Snapshot,
    build_snapshot,
    emoji_key,
    failure_snapshot,
    find_status_job,
    fold_steps,
    important_jobs,
    select_log_url,
)
from tests.fixtures.status_helpers import MARKER, NOW, ago, make_job, make_status_job, make_step

DESCRIPTION = "shop from `main` (abc1234)"
RUN_URL = "https://github.com/acme/shop/actions/runs/1"


@pytest.fixture
def options() -> RenderOptions:
    return RenderOptions(
        deploy_description=DESCRIPTION,
        important_steps=frozenset({"Deploy", "Run migrations"}),
        emoji_overrides={"RUN_MIGRATIONS": ":floppy_disk:"},
        default_log_url=RUN_URL,
    )


def _deploy_job(status: str = "in_progress", conclusion: str | None = None) -> Job:
    return make_job(
        2,
        "deploy",
        status,
        conclusion,
        started=ago(100),
        steps=[
            make_step("Set up job", started=ago(100), completed=ago(98)),
            make_step("Run migrations", started=ago(98), completed=ago(90)),
            make_step("Lint", "completed", "skipped", started=ago(90), completed=ago(90)),
            make_step("Smoke test", "completed", "failure", started=ago(90), completed=ago(30)),
            make_step("Deploy", "in_progress", None, started=ago(30)),
            make_step("Post cleanup", "queued", None),
        ],
    )


def test_job_from_dict_parses_timestamps_and_nulls() -> None:
    job = Job.from_dict(
        {
            "id": 7,
            "name": "build",
            "status": "in_progress",
            "conclusion": None,
            "started_at": "2024-05-01T11:58:20Z",
            "html_url": "https://example.test/job/7",
            "steps": [{"name": "Checkout", "status": "in_progress", "started_at": "2024-05-01T11:58:21Z"}],
        }
    )
    assert job.started_at == NOW - timedelta(seconds=100)
    assert job.created_at is None
    assert job.conclusion is None
    assert job.steps[0].completed_at is None
    assert job.steps[0].started_at == NOW - timedelta(seconds=99)


def test_find_status_job_matches_marker_substring() -> None:
    status = make_status_job()
    other = _deploy_job()
    assert find_status_job([other, status], MARKER) is status
    assert find_status_job([other], MARKER) is None
    assert important_jobs([status, other], status) == [other]


def test_emoji_key_derivation() -> None:
    assert emoji_key("Run migrations") == "RUN_MIGRATIONS"
    assert emoji_key("deploy to prod") == "DEPLOY_TO_PROD"


def test_fold_steps_filters_by_status_and_importance(options: RenderOptions) -> None:
    active, completed = fold_steps([_deploy_job()], options=options, now=NOW)
    assert active == [":hammer_and_wrench: Deploy running for 30s..."]
    assert completed == [
        ":floppy_disk: Run migrations completed in 8s",
        "Smoke test failed after 1m0s",
    ]


def test_unimportant_success_is_hidden_but_failures_always_show() -> None:
    options = RenderOptions(deploy_description=DESCRIPTION, important_steps=frozenset())
    job = make_job(
        2,
        "deploy",
        steps=[
            make_step("Build", started=ago(50), completed=ago(40)),
            make_step("Upload", "completed", "cancelled", started=ago(40), completed=ago(39)),
            make_step("Verify", "completed", "timed_out", started=ago(39), completed=ago(20)),
        ],
    )
    _, completed = fold_steps([job], options=options, now=NOW)
    assert completed == ["Upload failed after 1s", "Verify failed after 19s"]


def test_running_snapshot_is_warning(options: RenderOptions) -> None:
    snapshot = build_snapshot([make_status_job(), _deploy_job()], make_status_job(), options=options, now=NOW)
    assert snapshot.color is Color.WARNING
    assert snapshot.description == f"⏳ Deploying {DESCRIPTION}"
    assert snapshot.all_jobs_completed is False
    assert snapshot.active_lines == (":hammer_and_wrench: Deploy running for 30s...",)
    assert snapshot.log_url.endswith("/job/2")


def test_completed_jobs_drop_stale_active_steps(options: RenderOptions) -> None:
    status = make_status_job()
    snapshot = build_snapshot([status, _deploy_job("completed", "success")], status, options=options, now=NOW)
    assert snapshot.all_jobs_completed is True
    assert snapshot.all_succeeded is True
    assert snapshot.active_lines == ()
    assert snapshot.color is Color.GOOD
    assert snapshot.description == f":white_check_mark: Deployed {DESCRIPTION} in 1m40s"


def test_skipped_jobs_count_as_passing(options: RenderOptions) -> None:
    status = make_status_job()
    skipped = make_job(3, "docs", "completed", "skipped", started=ago(10))
    snapshot = build_snapshot(
        [status, _deploy_job("completed", "success"), skipped], status, options=options, now=NOW
    )
    assert snapshot.color is Color.GOOD
    assert snapshot.succeeded


def test_failed_run_is_danger(options: RenderOptions) -> None:
    status = make_status_job()
    skipped = make_job(3, "docs", "completed", "skipped", started=ago(10))
    snapshot = build_snapshot(
        [status, _deploy_job("completed", "failure"), skipped], status, options=options, now=NOW
    )
    assert snapshot.color is Color.DANGER
    assert snapshot.all_succeeded is False
    assert snapshot.description == f":x: Failed to deploy {DESCRIPTION} after 1m40s"


def test_pending_jobs_render_queue_lines(options: RenderOptions) -> None:
    status = make_status_job()
    pending = make_job(2, "build", "pending", started=ago(25))
    running = make_job(3, "lint", "in_progress", started=ago(5))
    snapshot = build_snapshot([status, pending, running], status, options=options, now=NOW, max_queued_seconds=12)
    assert snapshot.color is Color.UNSET
    assert snapshot.active_lines == (":clock2: build queued for 25s...",)
    assert snapshot.max_queued_seconds == 25
    assert snapshot.description == f"⏳ Deploying {DESCRIPTION}"


def test_queue_time_keeps_previous_maximum_and_falls_back_to_created_at(options: RenderOptions) -> None:
    status = make_status_job()
    pending = make_job(2, "build", "pending", created=ago(15))
    snapshot = build_snapshot([status, pending], status, options=options, now=NOW, max_queued_seconds=40)
    assert snapshot.active_lines == (":clock130: build queued for 15s...",)
    assert snapshot.max_queued_seconds == 40


def test_jobs_not_yet_started_leave_color_unset(options: RenderOptions) -> None:
    status = make_status_job()
    snapshot = build_snapshot([status, make_job(2, "build", "queued")], status, options=options, now=NOW)
    assert snapshot.color is Color.UNSET
    assert snapshot.active_lines == ()


@pytest.mark.parametrize(("queued", "suffix"), [(42, " (queued 42s)"), (10, "")])
def test_completion_headline_mentions_long_queue(options: RenderOptions, queued: float, suffix: str) -> None:
    status = make_status_job()
    snapshot = build_snapshot(
        [status, _deploy_job("completed", "success")], status, options=options, now=NOW, max_queued_seconds=queued
    )
    assert snapshot.description == f":white_check_mark: Deployed {DESCRIPTION} in 1m40s{suffix}"


def test_start_times_distinguish_overall_and_important(options: RenderOptions) -> None:
    status = make_status_job(started=ago(300))
    snapshot = build_snapshot([status, _deploy_job()], status, options=options, now=NOW)
    assert snapshot.overall_started_at == NOW - timedelta(seconds=300)
    assert snapshot.important_started_at == NOW - timedelta(seconds=100)


def test_select_log_url_priority() -> None:
    failed = make_job(2, "build", "completed", "failure")
    running = make_job(3, "test", "in_progress")
    named = make_job(4, "Deploy production", "completed", "success")
    assert select_log_url([failed, running, named], "production") == named.html_url
    assert select_log_url([failed, running, named], "") == running.html_url
    assert select_log_url([failed, running, named], "missing") == running.html_url
    assert select_log_url([named, failed], "") == failed.html_url
    assert select_log_url([named], "") == named.html_url
    assert select_log_url([], "") == ""


def test_failure_snapshot_keeps_completed_lines_and_clears_active(options: RenderOptions) -> None:
    status = make_status_job()
    running = build_snapshot([status, _deploy_job()], status, options=options, now=NOW)
    failed = failure_snapshot(running, CANCELLED_LINE, options=options, now=NOW)
    assert failed.active_lines == ()
    assert failed.completed_lines == running.completed_lines + (CANCELLED_LINE,)
    assert failed.color is Color.DANGER
    assert failed.all_jobs_completed and not failed.all_succeeded
    assert failed.description == f":x: Failed to deploy {DESCRIPTION} after 1m40s"
    assert failed.log_url == running.log_url


def test_failure_snapshot_without_history(options: RenderOptions) -> None:
    failed = failure_snapshot(None, "boom", options=options, now=NOW)
    assert failed == Snapshot(
        description=f":x: Failed to deploy {DESCRIPTION}",
        completed_lines=("boom",),
        log_url=RUN_URL,
        color=Color.DANGER,
        all_jobs_completed=True,
        all_succeeded=False,
    )
