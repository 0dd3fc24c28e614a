from __future__ import annotations

import unittest
from typing import Any

from loose_git.errors import ExecFailureError
from loose_git.validate.result_json import validate_result_json


def _payload(**overrides: Any) -> dict[str, Any]:
    base: dict[str, Any] = {
        "schema_version": 1,
        "started_at": "2026-01-02T03:04:05Z",
        "ended_at": "2026-01-02T03:04:06Z",
        "duration_ms": 12,
        "argv": ["-C", "work", "add-modified"],
        "dir": "work",
        "status": "ok",
        "exit_code": 0,
        "result": {"action": "add-modified", "paths": ["a.txt"], "output": ""},
    }
    base.update(overrides)
    return base


class TestValidateResultJson(unittest.TestCase):
    def test_accepts_ok_payload(self) -> None:
        validate_result_json(_payload())

    def test_accepts_failure_payload(self) -> None:
        validate_result_json(
            _payload(
                status="exec_failure",
                exit_code=2,
                result={},
                error={
                    "message": "fatal: boom",
                    "subcommand": "commit",
                    "output": "fatal: boom\n",
                },
            )
        )

    def test_rejects_non_object(self) -> None:
        with self.assertRaises(ExecFailureError):
            validate_result_json(["not", "an", "object"])

    def test_rejects_missing_required_field(self) -> None:
        payload = _payload()
        del payload["status"]
        with self.assertRaises(ExecFailureError) as ctx:
            validate_result_json(payload)
        self.assertIn("status", str(ctx.exception))

    def test_rejects_unknown_action_with_path(self) -> None:
        payload = _payload(result={"action": "push", "output": ""})
        with self.assertRaises(ExecFailureError) as ctx:
            validate_result_json(payload)
        self.assertIn("$.result.action", str(ctx.exception))

    def test_rejects_ok_with_nonzero_exit_code(self) -> None:
        with self.assertRaises(ExecFailureError) as ctx:
            validate_result_json(_payload(exit_code=2))
        self.assertIn("exit_code must be 0", str(ctx.exception))

    def test_rejects_failure_without_error(self) -> None:
        with self.assertRaises(ExecFailureError) as ctx:
            validate_result_json(_payload(status="blocked", exit_code=1, result={}))
        self.assertIn("error is required", str(ctx.exception))


if __name__ == "__main__":
    raise SystemExit(unittest.main())
