from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema

from ..errors import ExecFailureError


def _package_root() -> Path:
    # loose_git/validate/result_json.py -> loose_git/
    return Path(__file__).resolve().parents[1]


def _load_schema(path: Path) -> dict[str, Any]:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ExecFailureError(f"Failed to read JSON schema: {str(path)!r}") from exc

    try:
        data = json.loads(raw)
    except Exception as exc:  # noqa: BLE001
        raise ExecFailureError(f"Invalid JSON schema: {str(path)!r}: {exc}") from exc

    if not isinstance(data, dict):
        raise ExecFailureError(
            f"Invalid JSON schema: {str(path)!r}: root must be object"
        )
    return data


def _format_path(error: jsonschema.ValidationError) -> str:
    if not error.path:
        return "$"
    parts = []
    for p in error.path:
        if isinstance(p, int):
            parts.append(f"[{p}]")
        else:
            parts.append("." + str(p))
    return "$" + "".join(parts)


def _validate_status_semantics(payload: dict[str, Any]) -> list[str]:
    errors: list[str] = []
    status = payload.get("status")
    exit_code = payload.get("exit_code")
    if status == "ok" and exit_code != 0:
        errors.append("exit_code must be 0 when status is ok")
    if status in ("blocked", "exec_failure", "invalid_args") and "error" not in payload:
        errors.append(f"error is required when status is {status}")
    return errors


def validate_result_json(payload: object) -> None:
    """Validate a CLI result payload against `schemas/result.schema.json`."""

    if not isinstance(payload, dict):
        raise ExecFailureError("Result JSON must be an object")

    schema_path = _package_root() / "schemas" / "result.schema.json"
    schema = _load_schema(schema_path)

    try:
        validator_cls = jsonschema.validators.validator_for(schema)
        validator_cls.check_schema(schema)
        validator = validator_cls(schema)
    except Exception as exc:  # noqa: BLE001
        raise ExecFailureError(f"Invalid JSON schema: {schema_path}: {exc}") from exc

    schema_errors = sorted(validator.iter_errors(payload), key=lambda e: list(e.path))
    if schema_errors:
        rendered = "; ".join(
            f"{_format_path(e)}: {e.message}" for e in schema_errors[:8]
        )
        more = "" if len(schema_errors) <= 8 else f" (+{len(schema_errors) - 8} more)"
        raise ExecFailureError(f"Result JSON validation failed: {rendered}{more}")

    semantic_errors = _validate_status_semantics(payload)
    if semantic_errors:
        raise ExecFailureError(
            f"Result JSON validation failed: {'; '.join(semantic_errors)}"
        )
