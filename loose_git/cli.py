"""CLI entrypoint for loose-git."""

from __future__ import annotations

import argparse
import json
import sys
import time
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, NoReturn

from .errors import (
    ExecFailureError,
    ExitCode,
    ExternalToolError,
    LooseGitError,
    ToolNotFoundError,
)
from .repo import GitRepo
from .validate.result_json import validate_result_json


def now_utc_z() -> str:
    """Return ISO 8601 UTC timestamp without milliseconds."""

    return (
        datetime.now(timezone.utc).replace(microsecond=0).strftime("%Y-%m-%dT%H:%M:%SZ")
    )


def _truncate(s: str, max_chars: int = 2000) -> str:
    if len(s) <= max_chars:
        return s
    return s[: max_chars - 20] + "... [truncated]"


@dataclass(frozen=True)
class ParserExit(Exception):
    code: int
    message: str = ""


class ThrowingArgumentParser(argparse.ArgumentParser):
    def exit(self, status: int = 0, message: str | None = None) -> NoReturn:  # type: ignore[override]
        if message:
            self._print_message(message, sys.stderr if status else sys.stdout)
        raise ParserExit(status, message or "")

    def error(self, message: str) -> NoReturn:  # type: ignore[override]
        self.print_usage(sys.stderr)
        self._print_message(f"{self.prog}: error: {message}\n", sys.stderr)
        raise ParserExit(2, f"{self.prog}: error: {message}\n")


def parse_message(value: str) -> str:
    if not value.strip():
        raise argparse.ArgumentTypeError("--message must not be empty")
    return value


def build_parser() -> ThrowingArgumentParser:
    parser = ThrowingArgumentParser(prog="loose-git")
    parser.add_argument(
        "-C",
        dest="dir",
        default=".",
        metavar="DIR",
        help="Repository directory (clone: the source). Default: current directory",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    clone = sub.add_parser(
        "clone",
        help="Clone DIR; extra args are passed to `git clone` as-is (put options after --)",
    )
    clone.add_argument("clone_args", nargs="*", metavar="ARG")
    clone.set_defaults(_handler=handle_clone)

    add = sub.add_parser("add", help="Stage the given paths")
    add.add_argument("paths", nargs="+", metavar="PATH")
    add.set_defaults(_handler=handle_add)

    commit = sub.add_parser("commit", help="Commit staged changes")
    commit.add_argument("-m", "--message", required=True, type=parse_message)
    commit.set_defaults(_handler=handle_commit)

    untracked = sub.add_parser(
        "add-untracked", help="Stage untracked files that are not ignored"
    )
    untracked.set_defaults(_handler=handle_add_untracked)

    modified = sub.add_parser("add-modified", help="Stage modified files")
    modified.set_defaults(_handler=handle_add_modified)

    return parser


def _last_output(repo: GitRepo) -> str:
    return repo.last_result.output if repo.last_result is not None else ""


def handle_clone(args: argparse.Namespace) -> dict[str, Any]:
    repo = GitRepo.from_env(args.dir)
    cloned = repo.clone(*args.clone_args)
    return {"action": "clone", "dest": cloned.dir, "output": _last_output(cloned)}


def handle_add(args: argparse.Namespace) -> dict[str, Any]:
    repo = GitRepo.from_env(args.dir)
    result = repo.add(*args.paths)
    return {"action": "add", "paths": list(args.paths), "output": result.output}


def handle_commit(args: argparse.Namespace) -> dict[str, Any]:
    repo = GitRepo.from_env(args.dir)
    result = repo.commit(args.message)
    return {"action": "commit", "output": result.output}


def handle_add_untracked(args: argparse.Namespace) -> dict[str, Any]:
    repo = GitRepo.from_env(args.dir)
    paths = repo.add_untracked()
    return {"action": "add-untracked", "paths": paths, "output": _last_output(repo)}


def handle_add_modified(args: argparse.Namespace) -> dict[str, Any]:
    repo = GitRepo.from_env(args.dir)
    paths = repo.add_modified()
    return {"action": "add-modified", "paths": paths, "output": _last_output(repo)}


def main(argv: Iterable[str] | None = None) -> int:
    argv_list = list(argv) if argv is not None else sys.argv[1:]
    started_at = now_utc_z()
    t0 = time.monotonic()

    exit_code: int = int(ExitCode.EXEC_FAILURE)
    status = "unknown"
    repo_dir = ""
    result: dict[str, Any] = {}
    error: dict[str, Any] | None = None

    try:
        parser = build_parser()
        args = parser.parse_args(argv_list)
        repo_dir = str(args.dir)
        handler = getattr(args, "_handler", None)
        if handler is None:
            raise ExecFailureError("No handler configured for this command")
        result = handler(args)
        status = "ok"
        exit_code = int(ExitCode.SUCCESS)
    except ParserExit as exc:
        # argparse already printed usage/help.
        status = "help" if exc.code == 0 else "invalid_args"
        exit_code = int(ExitCode.SUCCESS if exc.code == 0 else ExitCode.EXEC_FAILURE)
        if exc.message:
            error = {"message": exc.message.strip("\n")}
    except ToolNotFoundError as exc:
        status = "blocked"
        exit_code = int(ExitCode.BLOCKED)
        error = {"message": str(exc), "subcommand": exc.subcommand}
        print(f"[loose-git] BLOCKED: {exc}", file=sys.stderr)
    except ExternalToolError as exc:
        status = "exec_failure"
        exit_code = int(ExitCode.EXEC_FAILURE)
        error = {
            "message": str(exc),
            "subcommand": exc.subcommand,
            "output": exc.output,
        }
        print(f"[loose-git] ERROR: {_truncate(str(exc))}", file=sys.stderr)
    except LooseGitError as exc:
        status = "exec_failure"
        exit_code = int(ExitCode.EXEC_FAILURE)
        error = {"message": str(exc)}
        print(f"[loose-git] ERROR: {exc}", file=sys.stderr)
    except Exception as exc:  # noqa: BLE001
        status = "exec_failure"
        exit_code = int(ExitCode.EXEC_FAILURE)
        error = {"type": type(exc).__name__, "message": str(exc)}
        print(f"[loose-git] ERROR: {type(exc).__name__}: {exc}", file=sys.stderr)

    ended_at = now_utc_z()
    duration_ms = int((time.monotonic() - t0) * 1000)

    payload: dict[str, Any] = {
        "schema_version": 1,
        "started_at": started_at,
        "ended_at": ended_at,
        "duration_ms": duration_ms,
        "argv": argv_list,
        "dir": repo_dir,
        "status": status,
        "exit_code": exit_code,
        "result": result,
    }
    if error is not None:
        payload["error"] = error

    try:
        validate_result_json(payload)
    except ExecFailureError as exc:
        print(f"[loose-git] ERROR: invalid result payload: {exc}", file=sys.stderr)
        return int(ExitCode.EXEC_FAILURE)

    if status == "help":
        # argparse already wrote the help text to stdout.
        return exit_code

    sys.stdout.write(json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True))
    sys.stdout.write("\n")
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
