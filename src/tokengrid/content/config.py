from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from tokengrid.sim.config import GameConfig, ValueDistribution, ValueTier
from tokengrid.sim.coords import Position

CONFIG_SCHEMA_VERSION = 1
KNOWN_CONFIG_FIELDS = {
    "schema_version",
    "cell_size",
    "interaction_radius",
    "win_threshold",
    "grid_extent",
    "distribution",
    "world_seed",
    "start_position",
    "max_visible_cells",
}


def load_game_config_json(path: str | Path) -> GameConfig:
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    return config_from_payload(payload)


def config_from_payload(payload: dict[str, Any]) -> GameConfig:
    if not isinstance(payload, dict):
        raise ValueError("config payload must be an object")

    schema_version = payload.get("schema_version")
    if not isinstance(schema_version, int):
        raise ValueError("config payload must contain integer field: schema_version")
    if schema_version != CONFIG_SCHEMA_VERSION:
        raise ValueError(f"unsupported config schema_version: {schema_version}")

    unknown = set(payload.keys()) - KNOWN_CONFIG_FIELDS
    if unknown:
        raise ValueError(f"unknown config fields: {sorted(unknown)}")

    kwargs: dict[str, Any] = {}
    for name in ("cell_size", "interaction_radius", "win_threshold", "world_seed", "max_visible_cells"):
        if name in payload:
            kwargs[name] = payload[name]

    if "grid_extent" in payload:
        extent = payload["grid_extent"]
        if not isinstance(extent, list) or len(extent) != 2:
            raise ValueError("config.grid_extent must be a two-element list")
        kwargs["grid_extent"] = (extent[0], extent[1])

    if "distribution" in payload:
        kwargs["distribution"] = _distribution_from_payload(payload["distribution"])

    if "start_position" in payload:
        start = payload["start_position"]
        if not isinstance(start, dict) or not {"lat", "lng"} <= start.keys():
            raise ValueError("config.start_position must be an object with lat and lng")
        kwargs["start_position"] = Position.from_dict(start)

    return GameConfig(**kwargs)


def _distribution_from_payload(rows: Any) -> ValueDistribution:
    if not isinstance(rows, list) or not rows:
        raise ValueError("config.distribution must be a non-empty list")
    tiers: list[ValueTier] = []
    for index, row in enumerate(rows):
        if not isinstance(row, dict):
            raise ValueError(f"config.distribution[{index}] must be an object")
        upper_bound = row.get("upper_bound")
        if isinstance(upper_bound, bool) or not isinstance(upper_bound, (int, float)):
            raise ValueError(f"config.distribution[{index}].upper_bound must be numeric")
        magnitude = row.get("magnitude")
        if isinstance(magnitude, bool) or not isinstance(magnitude, int):
            raise ValueError(f"config.distribution[{index}].magnitude must be an integer")
        tiers.append(ValueTier(upper_bound=float(upper_bound), magnitude=magnitude))
    return ValueDistribution(tiers=tuple(tiers))
