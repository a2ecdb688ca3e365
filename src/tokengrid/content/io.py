from __future__ import annotations

import json
import logging
from typing import Any

from tokengrid.content.schema import validate_snapshot_payload
from tokengrid.content.storage import KeyValueStore
from tokengrid.sim.hash import snapshot_hash
from tokengrid.sim.world import Snapshot, WorldState

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1
DEFAULT_SNAPSHOT_KEY = "tokengrid:snapshot"
CANONICAL_JSON_INDENT = 2
CANONICAL_JSON_SEPARATORS = (",", ": ")


def build_snapshot_payload(snapshot: Snapshot) -> dict[str, Any]:
    payload: dict[str, Any] = {"schema_version": SCHEMA_VERSION, **snapshot.to_dict()}
    payload["snapshot_hash"] = snapshot_hash(payload)
    return payload


def parse_snapshot_payload(payload: Any) -> Snapshot:
    validate_snapshot_payload(payload)
    expected_hash = payload["snapshot_hash"]
    actual_hash = snapshot_hash(payload)
    if expected_hash != actual_hash:
        raise ValueError(
            f"snapshot_hash mismatch while loading snapshot (stored={expected_hash}, recomputed={actual_hash})"
        )
    return Snapshot.from_dict(payload)


def _canonical_json(payload: dict[str, Any]) -> str:
    return json.dumps(
        payload,
        indent=CANONICAL_JSON_INDENT,
        separators=CANONICAL_JSON_SEPARATORS,
        sort_keys=True,
    )


class SnapshotStore:
    """Best-effort persistence of overrides, player and movement mode.

    Failures never reach gameplay: ``save`` reports False and ``load``
    reports None, both after logging the cause.
    """

    def __init__(self, store: KeyValueStore, key: str = DEFAULT_SNAPSHOT_KEY) -> None:
        self.store = store
        self.key = key

    def save(self, world: WorldState) -> bool:
        try:
            payload = build_snapshot_payload(world.snapshot())
            validate_snapshot_payload(payload)
            self.store.set(self.key, _canonical_json(payload))
        except Exception:
            logger.exception("snapshot save failed key=%s", self.key)
            return False
        logger.debug("snapshot saved key=%s overrides=%d", self.key, len(payload["overrides"]))
        return True

    def load(self) -> Snapshot | None:
        try:
            raw = self.store.get(self.key)
        except Exception:
            logger.exception("snapshot read failed key=%s", self.key)
            return None
        if raw is None:
            return None
        try:
            snapshot = parse_snapshot_payload(json.loads(raw))
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("snapshot rejected key=%s: %s", self.key, exc)
            return None
        logger.info("snapshot loaded key=%s overrides=%d", self.key, len(snapshot.overrides))
        return snapshot

    def load_into(self, world: WorldState) -> bool:
        snapshot = self.load()
        if snapshot is None:
            return False
        try:
            world.restore(snapshot)
        except (ValueError, OverflowError) as exc:
            logger.warning("snapshot rejected key=%s: %s", self.key, exc)
            return False
        return True

    def reset(self, world: WorldState) -> None:
        try:
            self.store.remove(self.key)
        except Exception:
            logger.exception("snapshot remove failed key=%s", self.key)
        world.reset()
        logger.info("snapshot reset key=%s", self.key)
