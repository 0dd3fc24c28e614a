"""Loose wrapper around the `git` command-line tool."""

from .errors import (
    ConfigError,
    ExecFailureError,
    ExternalToolError,
    LooseGitError,
    ToolNotFoundError,
)
from .repo import CommandResult, GitRepo, clone_destination, split_listing

__all__ = [
    "CommandResult",
    "ConfigError",
    "ExecFailureError",
    "ExternalToolError",
    "GitRepo",
    "LooseGitError",
    "ToolNotFoundError",
    "clone_destination",
    "split_listing",
]
