"""Git CLI (`git`) wrapper.

Every operation is a thin pass-through to a `git` subprocess. Arguments are
handed to the process as a list; no shell is involved.

Operations that must run "inside" the repository launch git with
`cwd=<repo dir>`. The calling process never changes its own working
directory.
"""

from __future__ import annotations

import os
import re
import subprocess
from dataclasses import dataclass

from .errors import ConfigError, ExternalToolError, ToolNotFoundError


def _git_bin() -> str:
    return os.environ.get("LOOSE_GIT_BIN", "git")


def _git_timeout_s() -> float | None:
    raw = os.environ.get("LOOSE_GIT_TIMEOUT_S", "").strip()
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigError("LOOSE_GIT_TIMEOUT_S must be a number") from exc
    if value <= 0:
        raise ConfigError("LOOSE_GIT_TIMEOUT_S must be > 0")
    return value


def _as_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


# `git clone` options that consume the following token as their value.
_CLONE_VALUE_OPTS = frozenset(
    {
        "-b",
        "--branch",
        "-c",
        "--config",
        "-j",
        "--jobs",
        "-o",
        "--origin",
        "-u",
        "--upload-pack",
        "--bundle-uri",
        "--depth",
        "--filter",
        "--reference",
        "--reference-if-able",
        "--ref-format",
        "--revision",
        "--separate-git-dir",
        "--server-option",
        "--shallow-exclude",
        "--shallow-since",
        "--template",
    }
)


def _humanish_dir(source: str, *, bare: bool) -> str:
    """Directory name git picks when `clone` is given no destination."""

    s = source.rstrip("/\\")
    if s.endswith("/.git"):
        s = s[: -len("/.git")].rstrip("/\\")
    if s.endswith(".git"):
        s = s[: -len(".git")]
    name = re.split(r"[/\\:]", s)[-1]
    return f"{name}.git" if bare else name


def clone_destination(source: str, args: tuple[str, ...] | list[str]) -> str:
    """Return the directory `git clone <source> <args...>` clones into."""

    positional: list[str] = []
    bare = False
    i = 0
    while i < len(args):
        a = args[i]
        if a == "--":
            positional.extend(args[i + 1 :])
            break
        if a in ("--bare", "--mirror"):
            bare = True
        elif a in _CLONE_VALUE_OPTS:
            i += 1
        elif not a.startswith("-") or a == "-":
            positional.append(a)
        i += 1

    if positional:
        return positional[0]
    return _humanish_dir(source, bare=bare)


def split_listing(text: str) -> list[str]:
    """Split line-oriented listing output into paths.

    At most one trailing empty segment (left by the final newline) is dropped.
    """

    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return lines


@dataclass(frozen=True)
class CommandResult:
    """Combined stdout/stderr of one git invocation and whether it succeeded."""

    argv: tuple[str, ...]
    output: str
    ok: bool
    subcommand: str = ""


class GitRepo:
    """Handle on a directory that holds (or will hold) a git checkout.

    Construction does not touch the filesystem. `last_result` keeps the
    outcome of the most recent git invocation made through this handle,
    including failed ones.
    """

    def __init__(
        self,
        dir: str | os.PathLike[str],
        *,
        bin_path: str = "git",
        timeout_s: float | None = None,
    ) -> None:
        self._dir = os.fspath(dir)
        self.bin_path = bin_path
        self.timeout_s = timeout_s
        self.last_result: CommandResult | None = None

    @classmethod
    def from_env(cls, dir: str | os.PathLike[str]) -> "GitRepo":
        return cls(dir, bin_path=_git_bin(), timeout_s=_git_timeout_s())

    @property
    def dir(self) -> str:
        return self._dir

    def __repr__(self) -> str:
        return f"GitRepo({self._dir!r})"

    def _run(
        self,
        subcommand: str,
        args: list[str],
        *,
        cwd: str | None,
        config: tuple[str, ...] = (),
    ) -> CommandResult:
        # `config` entries become `-c <name=value>` before the subcommand.
        opts = [token for item in config for token in ("-c", item)]
        argv = (self.bin_path, *opts, subcommand, *args)
        self.last_result = None
        try:
            p = subprocess.run(
                list(argv),
                cwd=cwd,
                text=True,
                encoding="utf-8",
                errors="replace",
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                check=False,
                timeout=self.timeout_s,
            )
        except FileNotFoundError as exc:
            self.last_result = CommandResult(argv, "", False, subcommand)
            if cwd is not None and exc.filename == cwd:
                raise ExternalToolError(
                    subcommand, "", f"Repository directory not found: {cwd!r}"
                ) from exc
            raise ToolNotFoundError(
                subcommand,
                "",
                f"`{self.bin_path}` is required. Install git and ensure it is on PATH.",
            ) from exc
        except subprocess.TimeoutExpired as exc:
            output = _as_text(exc.output)
            self.last_result = CommandResult(argv, output, False, subcommand)
            raise ExternalToolError(
                subcommand,
                output,
                f"`git {subcommand}` timed out after {self.timeout_s}s",
            ) from exc
        except OSError as exc:
            self.last_result = CommandResult(argv, "", False, subcommand)
            raise ToolNotFoundError(
                subcommand, "", f"Failed to run `{self.bin_path}`: {exc}"
            ) from exc

        result = CommandResult(
            argv, p.stdout or "", p.returncode == 0, subcommand
        )
        self.last_result = result
        if not result.ok:
            raise ExternalToolError(subcommand, result.output)
        return result

    def _run_in_dir(
        self, subcommand: str, args: list[str], *, config: tuple[str, ...] = ()
    ) -> CommandResult:
        return self._run(subcommand, args, cwd=self._dir, config=config)

    def clone(self, *args: str) -> "GitRepo":
        """Clone this handle's directory; returns a handle on the clone.

        Runs `git clone <dir> <args...>` from the caller's working directory.
        """

        self._run("clone", [self._dir, *args], cwd=None)
        cloned = GitRepo(
            clone_destination(self._dir, args),
            bin_path=self.bin_path,
            timeout_s=self.timeout_s,
        )
        cloned.last_result = self.last_result
        return cloned

    def add(self, *paths: str) -> CommandResult:
        return self._run_in_dir("add", list(paths))

    def commit(self, message: str) -> CommandResult:
        return self._run_in_dir("commit", ["-m", message])

    def add_untracked(self) -> list[str]:
        """Stage every untracked file that is not ignored."""

        return self._add_listed("--others", "--exclude-standard")

    def add_modified(self) -> list[str]:
        """Stage every modified, unstaged file."""

        return self._add_listed("-m")

    def _add_listed(self, *ls_args: str) -> list[str]:
        # A failed listing raises here; nothing is staged. With quotePath off,
        # non-ASCII names come back verbatim and can be passed to `git add`.
        listing = self._run_in_dir(
            "ls-files", list(ls_args), config=("core.quotePath=false",)
        )
        paths = split_listing(listing.output)
        if paths:
            # Listed names may start with "-"; keep them out of option parsing.
            self._run_in_dir("add", ["--", *paths])
        return paths
