"""Exception hierarchy shared across cfpages components."""

from __future__ import annotations


class CfPagesError(Exception):
    """Base class for errors that abort an invocation."""


class ConfigurationError(CfPagesError):
    """Invalid or missing invocation parameters."""


class ArtifactError(CfPagesError):
    """The build artifact directory is missing or unreadable."""


class DeployCommandError(CfPagesError):
    """The deploy primitive could not be run or exited non-zero."""

    def __init__(self, message: str, returncode: int | None = None, output: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.output = output


class FatalStepError(CfPagesError):
    """A fatal orchestrator step failed; the whole invocation is aborted."""

    def __init__(self, step: str, reason: str) -> None:
        super().__init__(f"{step} failed: {reason}")
        self.step = step
        self.reason = reason
