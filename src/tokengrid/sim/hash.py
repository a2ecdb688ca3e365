from __future__ import annotations

import hashlib
import json
from typing import Any

from tokengrid.sim.world import WorldState


def canonical_digest(payload: Any) -> str:
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


def snapshot_hash(payload: dict[str, Any]) -> str:
    hash_payload = {
        "schema_version": payload["schema_version"],
        "overrides": payload["overrides"],
        "player": payload["player"],
        "mode": payload["mode"],
    }
    return canonical_digest(hash_payload)


def world_hash(world: WorldState) -> str:
    """Digest of the durable state only; the intrinsic cache never contributes."""
    return canonical_digest(world.snapshot().to_dict())
