from __future__ import annotations


class DeployStatusError(Exception):
    """Base error for the status reporter."""


class SelfJobNotFoundError(DeployStatusError):
    """Raised when the reporter's own job never shows up in the jobs listing."""


class GitHubApiError(DeployStatusError):
    """Raised when the jobs API request fails or returns an unexpected body."""


class SlackApiError(DeployStatusError):
    """Raised when a Slack Web API call fails after retries."""

    def __init__(self, method: str, error: str) -> None:
        super().__init__(f"Slack {method} failed: {error}")
        self.method = method
        self.error = error
