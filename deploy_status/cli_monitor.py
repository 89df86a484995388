from __future__ import annotations

import argparse
import signal
import sys
from pathlib import Path
from typing import Optional

from .config import Settings, get_settings, resolve_emoji_overrides
from .github_client import GitHubJobsClient
from .jsonlog import JsonLogger
from .monitor import CancellationToken, Outcome, StatusMonitor
from .notify import NotificationState, SlackTransport, StatusNotifier


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Report live CI run status to a Slack message")
    parser.add_argument("--log-file", type=Path, help="Optional JSON log output file")
    parser.add_argument("--quiet", action="store_true", help="Only emit WARN/ERROR logs to stdout")
    parser.add_argument("--verbose", action="store_true", help="Emit DEBUG logs to stdout")
    return parser.parse_args(argv)


def write_action_outputs(path: Optional[Path], state: NotificationState) -> None:
    if path is None or not state.has_message:
        return
    with path.open("a", encoding="utf-8") as handle:
        handle.write(f"slack-message-ts={state.message_ts}\n")
        handle.write(f"slack-channel-id={state.channel}\n")


def install_signal_handlers(cancel: CancellationToken, logger: JsonLogger) -> None:
    def handle_signal(signum, frame) -> None:  # pragma: no cover - signal handler
        logger.warn("received termination signal", signal=signum)
        cancel.cancel()

    signal.signal(signal.SIGTERM, handle_signal)
    signal.signal(signal.SIGINT, handle_signal)


def build_monitor(
    settings: Settings,
    *,
    logger: JsonLogger,
    cancel: CancellationToken,
) -> StatusMonitor:
    options = settings.build_monitor_options(resolve_emoji_overrides(settings))
    source = GitHubJobsClient(
        token=settings.github_token,
        repository=settings.github_repository,
        api_url=settings.github_api_url,
        logger=logger,
    )
    state = NotificationState(
        channel=settings.slack_channel_id,
        message_ts=settings.slack_message_ts or None,
    )
    notifier = StatusNotifier(
        transport=SlackTransport(bot_token=settings.slack_bot_token),
        state=state,
        logger=logger,
    )
    return StatusMonitor(source=source, notifier=notifier, options=options, logger=logger, cancel=cancel)


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    logger = JsonLogger(stdout_level="info", file_path=args.log_file)
    monitor: Optional[StatusMonitor] = None
    try:
        settings = get_settings()
        log_level = "info"
        if args.verbose or settings.debug_enabled:
            log_level = "debug"
        if args.quiet:
            log_level = "warn"
        logger.set_level(log_level)
        logger.bind(
            repository=settings.github_repository,
            run_id=settings.github_run_id,
            attempt=settings.github_run_attempt,
        )
        logger.debug(
            "settings_loaded",
            channel=settings.slack_channel_id,
            important_steps=settings.important_step_set,
        )

        cancel = CancellationToken()
        install_signal_handlers(cancel, logger)
        monitor = build_monitor(settings, logger=logger, cancel=cancel)
        outcome = monitor.run()
        logger.info("status_monitor_finished", outcome=outcome)
        if outcome is Outcome.CANCELLED:
            logger.warn("deploy cancelled; exiting")
        return 0
    except Exception as exc:  # noqa: BLE001 - reported as a workflow command below
        logger.error("unhandled error", error=str(exc), error_type=exc.__class__.__name__)
        print(f"::error::Unhandled error: {exc}", file=sys.stderr)
        return 1
    finally:
        if monitor is not None:
            write_action_outputs(settings.github_output, monitor.notifier.state)
            monitor.notifier.close()
            monitor.source.close()
        logger.close()


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
