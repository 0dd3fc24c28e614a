"""Application errors and exit codes."""

from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    """Process exit codes (fixed contract).

    - 0: Success
    - 1: Blocked (user action required, e.g. git is not installed)
    - 2: Execution failure (invalid input / git failed)
    """

    SUCCESS = 0
    BLOCKED = 1
    EXEC_FAILURE = 2


class LooseGitError(Exception):
    """Base application error."""


class ExecFailureError(LooseGitError):
    """Execution failed due to invalid input or runtime failure."""


class ConfigError(ExecFailureError):
    """Invalid configuration (environment or arguments)."""


class ExternalToolError(LooseGitError):
    """The external tool failed or could not be run.

    `output` is the combined stdout/stderr text, verbatim.
    """

    def __init__(self, subcommand: str, output: str, message: str = "") -> None:
        self.subcommand = subcommand
        self.output = output
        text = message or output.strip() or f"`git {subcommand}` failed"
        super().__init__(text)


class ToolNotFoundError(ExternalToolError):
    """The external tool could not be launched."""
