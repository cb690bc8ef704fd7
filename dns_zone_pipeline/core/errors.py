"""
Pipeline errors.

Fatal failures (init, apply, blocked gate) raise one of these. Recoverable
failures (fmt, plan, and validate on pull requests) are carried as
StepResults instead.
"""

from typing import List, Optional


class PipelineError(RuntimeError):
    """Base class for orchestration failures."""


class ConfigurationError(PipelineError):
    """Raised when configuration or credentials are missing or invalid."""


class ToolNotFoundError(PipelineError):
    """Raised when an external command-line tool is not installed."""

    def __init__(self, binary: str) -> None:
        self.binary = binary
        super().__init__(f"Required tool '{binary}' was not found on PATH")


class ToolCommandError(PipelineError):
    """Raised when an external command exits non-zero on a fatal path."""

    def __init__(
        self, command: List[str], exit_code: int, output: str, message: Optional[str] = None
    ) -> None:
        self.command = command
        self.exit_code = exit_code
        self.output = output
        super().__init__(
            message
            or f"Command {' '.join(command)} failed with code {exit_code}: {output.strip()}"
        )


class InitError(ToolCommandError):
    """Provisioning tool init failed."""


class ApplyError(ToolCommandError):
    """Provisioning tool apply or destroy failed."""


class GateBlockedError(PipelineError):
    """Raised when the approval gate has not been approved."""

    def __init__(self, environment: str) -> None:
        self.environment = environment
        super().__init__(f"Deployment to environment '{environment}' is awaiting approval")


class CommentAPIError(PipelineError):
    """Raised when the pull request comment API rejects or cannot be reached for a request."""

    def __init__(self, method: str, url: str, status_code: Optional[int], body: str) -> None:
        self.method = method
        self.url = url
        # None when the request never got a response
        self.status_code = status_code
        self.body = body
        if status_code is None:
            super().__init__(f"{method} {url} failed: {body[:200]}")
        else:
            super().__init__(f"{method} {url} returned {status_code}: {body[:200]}")
