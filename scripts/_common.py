"""Shared argument and JSON helpers for the planner CLIs."""

from __future__ import annotations

import argparse
import json
from dataclasses import asdict, fields, is_dataclass
from pathlib import Path
from typing import Any

from dpr_planner.models.build import BuildConfiguration, build_from_dict
from dpr_planner.models.dpr import DPRConfiguration


def _parse_int_like(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("bool is not a valid integer value")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value.strip(), 0)
    raise ValueError(f"Expected integer-like value, got: {value!r}")


def _load_json_arg(raw_json: str | None, file_path: Path | None) -> dict[str, Any]:
    if raw_json is not None:
        payload = json.loads(raw_json)
    elif file_path is not None:
        payload = json.loads(file_path.read_text())
    else:
        return {}
    if not isinstance(payload, dict):
        raise ValueError("JSON payload must be an object")
    return payload


def _json_safe(value: Any) -> Any:
    """Recursively normalize values for JSON serialization."""
    if is_dataclass(value) and not isinstance(value, type):
        return _json_safe(asdict(value))
    if isinstance(value, dict):
        return {str(k): _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    if isinstance(value, (set, frozenset)):
        try:
            ordered = sorted(value)
        except TypeError:
            ordered = sorted(value, key=repr)
        return [_json_safe(v) for v in ordered]
    return value


def _add_json_pair(parser: argparse.ArgumentParser, name: str, label: str, required: bool) -> None:
    group = parser.add_mutually_exclusive_group(required=required)
    group.add_argument(f"--{name}-file", type=Path, help=f"Path to {label} JSON file.")
    group.add_argument(f"--{name}-json", type=str, help=f"Inline {label} JSON object.")


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--json", action="store_true", help="Emit machine-readable JSON output.")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default WARNING).")


def _load_build(raw_json: str | None, file_path: Path | None) -> BuildConfiguration:
    return build_from_dict(_load_json_arg(raw_json, file_path))


def _dpr_config_from_dict(data: dict[str, Any], build_id: str = "") -> DPRConfiguration:
    known = {f.name for f in fields(DPRConfiguration)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown DPR config field(s): {', '.join(unknown)}")
    kwargs: dict[str, Any] = {"build_id": str(data.get("build_id", build_id))}
    for key in ("ac_min", "ac_max", "ac_step"):
        if key in data:
            kwargs[key] = _parse_int_like(data[key])
    for key in ("round0_buffs_enabled", "greedy_resource_use", "auto_gwm_ss"):
        if key in data:
            kwargs[key] = bool(data[key])
    if "advantage_state" in data:
        kwargs["advantage_state"] = str(data["advantage_state"])
    return DPRConfiguration(**kwargs)
