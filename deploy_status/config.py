"""Settings for the status reporter.

Values come from the GitHub Action inputs (exposed to the process as
``INPUT_<NAME>`` environment variables) and the runner's ``GITHUB_*`` context.
"""

from __future__ import annotations

import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .monitor import MonitorOptions
from .snapshot import RenderOptions, emoji_key
from .verbs import VerbForms, get_verb_forms

_EMOJI_ENV_PATTERN = re.compile(r"^STATUS_(?P<key>.+)_EMOJI$")


class Settings(BaseSettings):
    """Runtime settings loaded from action inputs / environment."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Credentials / destination
    github_token: str = Field(alias="INPUT_GITHUB-TOKEN")
    slack_bot_token: str = Field(alias="INPUT_SLACK-BOT-TOKEN")
    slack_channel_id: str = Field(alias="INPUT_SLACK-CHANNEL-ID")
    slack_message_ts: str = Field(default="", alias="INPUT_SLACK-MESSAGE-TS")

    # Classification / rendering
    step_identifier: str = Field(alias="INPUT_STEP-IDENTIFIER")
    important_steps: str = Field(default="", alias="INPUT_IMPORTANT-STEPS")
    deploy_description: str = Field(default="", alias="INPUT_DEPLOY-DESCRIPTION")
    log_job_name: str = Field(default="", alias="INPUT_LOG-JOB-NAME")
    long_job_duration: float = Field(default=600.0, ge=0, alias="INPUT_LONG-JOB-DURATION")
    republish_long_jobs: str = Field(default="true", alias="INPUT_REPUBLISH-LONG-JOBS")
    verb: str = Field(default="deploy", alias="INPUT_VERB")
    verb_past: str = Field(default="", alias="INPUT_VERB-PAST")
    emoji_config: Optional[Path] = Field(default=None, alias="INPUT_EMOJI-CONFIG")
    debug: bool = Field(default=False, alias="INPUT_DEBUG")
    legacy_debug: bool = Field(default=False, alias="SLACK_ACTION_STATUS_DEBUG")

    # Runner context
    github_repository: str = Field(alias="GITHUB_REPOSITORY")
    github_run_id: int = Field(alias="GITHUB_RUN_ID")
    github_run_attempt: int = Field(default=1, ge=1, alias="GITHUB_RUN_ATTEMPT")
    github_ref_name: str = Field(default="", alias="GITHUB_REF_NAME")
    github_sha: str = Field(default="", alias="GITHUB_SHA")
    github_server_url: str = Field(default="https://github.com", alias="GITHUB_SERVER_URL")
    github_api_url: str = Field(default="https://api.github.com", alias="GITHUB_API_URL")
    github_output: Optional[Path] = Field(default=None, alias="GITHUB_OUTPUT")

    @model_validator(mode="before")
    @classmethod
    def _drop_blank_inputs(cls, data: Any) -> Any:
        # Actions exports every declared input, unset ones as empty strings.
        if not isinstance(data, dict):
            return data
        return {key: value for key, value in data.items() if not (isinstance(value, str) and not value.strip())}

    @property
    def important_step_set(self) -> frozenset[str]:
        return frozenset(part.strip() for part in self.important_steps.split(",") if part.strip())

    @property
    def republish_enabled(self) -> bool:
        return self.republish_long_jobs.strip().lower() != "false"

    @property
    def debug_enabled(self) -> bool:
        return self.debug or self.legacy_debug

    @property
    def run_url(self) -> str:
        return f"{self.github_server_url.rstrip('/')}/{self.github_repository}/actions/runs/{self.github_run_id}"

    def verb_forms(self) -> VerbForms:
        return get_verb_forms(self.verb, self.verb_past or None)

    def resolved_deploy_description(self) -> str:
        if self.deploy_description.strip():
            return self.deploy_description
        repo_name = self.github_repository.rsplit("/", 1)[-1]
        return f"{repo_name} from `{self.github_ref_name}` ({self.github_sha[:7]})"

    def build_render_options(self, emoji_overrides: Mapping[str, str] | None = None) -> RenderOptions:
        return RenderOptions(
            deploy_description=self.resolved_deploy_description(),
            important_steps=self.important_step_set,
            verb_forms=self.verb_forms(),
            log_job_name=self.log_job_name,
            emoji_overrides=dict(emoji_overrides or {}),
            default_log_url=self.run_url,
        )

    def build_monitor_options(self, emoji_overrides: Mapping[str, str] | None = None) -> MonitorOptions:
        return MonitorOptions(
            run_id=self.github_run_id,
            attempt=self.github_run_attempt,
            step_identifier=self.step_identifier,
            render=self.build_render_options(emoji_overrides),
            long_job_duration=self.long_job_duration,
            republish_long_jobs=self.republish_enabled,
        )


def load_emoji_overrides(environ: Mapping[str, str] | None = None) -> dict[str, str]:
    """Collect ``STATUS_<STEP_NAME>_EMOJI`` variables keyed by derived step name."""

    source = os.environ if environ is None else environ
    overrides: dict[str, str] = {}
    for name, value in source.items():
        match = _EMOJI_ENV_PATTERN.match(name)
        if match and value:
            overrides[match.group("key").upper()] = value
    return overrides


def load_emoji_config(path: Path) -> dict[str, str]:
    if not path.exists():
        raise FileNotFoundError(f"emoji config not found: {path}")
    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError("emoji config must be a mapping at the top level")
    emojis = raw.get("emojis", {}) or {}
    if not isinstance(emojis, dict):
        raise ValueError("'emojis' must be a mapping of step name to emoji")
    return {emoji_key(str(name)): str(value) for name, value in emojis.items() if value}


def resolve_emoji_overrides(settings: Settings, environ: Mapping[str, str] | None = None) -> dict[str, str]:
    overrides = load_emoji_overrides(environ)
    if settings.emoji_config is not None:
        overrides.update(load_emoji_config(settings.emoji_config))
    return overrides


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


__all__ = [
    "Settings",
    "get_settings",
    "load_emoji_config",
    "load_emoji_overrides",
    "resolve_emoji_overrides",
]
