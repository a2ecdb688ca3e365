from __future__ import annotations

import math
from typing import Any

SUPPORTED_SCHEMA_VERSIONS = {1}
REQUIRED_SNAPSHOT_FIELDS = {"schema_version", "overrides", "player", "mode", "snapshot_hash"}
VALID_OVERRIDE_KINDS = {"taken", "modified"}
VALID_MOVEMENT_MODES = {"discrete", "continuous"}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_finite_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _validate_override_row(row: Any, *, field_name: str) -> tuple[int, int]:
    if not isinstance(row, dict):
        raise ValueError(f"{field_name} must be an object")
    for axis in ("i", "j"):
        if not _is_int(row.get(axis)):
            raise ValueError(f"{field_name}.{axis} must be an integer")
    kind = row.get("kind")
    if kind not in VALID_OVERRIDE_KINDS:
        raise ValueError(f"{field_name}.kind must be one of {sorted(VALID_OVERRIDE_KINDS)}")
    if kind == "modified":
        value = row.get("value")
        if not _is_int(value) or value <= 0:
            raise ValueError(f"{field_name}.value must be an integer > 0")
    elif "value" in row:
        raise ValueError(f"{field_name}.value is not allowed for taken overrides")
    return (row["i"], row["j"])


def _validate_player(player: Any) -> None:
    if not isinstance(player, dict):
        raise ValueError("snapshot.player must be an object")
    for axis in ("lat", "lng"):
        if not _is_finite_number(player.get(axis)):
            raise ValueError(f"snapshot.player.{axis} must be a finite number")
    holding = player.get("holding")
    if holding is not None and (not _is_int(holding) or holding <= 0):
        raise ValueError("snapshot.player.holding must be null or an integer > 0")


def validate_snapshot_payload(payload: Any) -> None:
    if not isinstance(payload, dict):
        raise ValueError("snapshot payload must be an object")

    missing = REQUIRED_SNAPSHOT_FIELDS - set(payload.keys())
    if missing:
        raise ValueError(f"snapshot payload missing fields: {sorted(missing)}")

    schema_version = payload["schema_version"]
    if not _is_int(schema_version) or schema_version not in SUPPORTED_SCHEMA_VERSIONS:
        raise ValueError(f"unsupported snapshot schema_version: {schema_version}")

    overrides = payload["overrides"]
    if not isinstance(overrides, list):
        raise ValueError("snapshot.overrides must be a list")
    seen: set[tuple[int, int]] = set()
    for index, row in enumerate(overrides):
        key = _validate_override_row(row, field_name=f"snapshot.overrides[{index}]")
        if key in seen:
            raise ValueError(f"snapshot.overrides[{index}] duplicates cell {key}")
        seen.add(key)

    _validate_player(payload["player"])

    if payload["mode"] not in VALID_MOVEMENT_MODES:
        raise ValueError(f"snapshot.mode must be one of {sorted(VALID_MOVEMENT_MODES)}")

    if not isinstance(payload["snapshot_hash"], str) or not payload["snapshot_hash"]:
        raise ValueError("snapshot.snapshot_hash must be a non-empty string")
