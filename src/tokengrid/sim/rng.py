from __future__ import annotations

import hashlib

# 53 bits keeps the quotient exactly representable and strictly below 1.0.
UNIT_BITS = 53
UNIT_DENOMINATOR = float(1 << UNIT_BITS)


def derive_stream_seed(master_seed: int, stream_name: str) -> int:
    """Derive a deterministic child RNG seed from (master_seed, stream_name)."""
    digest = hashlib.sha256(f"{master_seed}:{stream_name}".encode("utf-8")).digest()
    return int.from_bytes(digest[:8], byteorder="big", signed=False)


def cell_unit_value(stream_seed: int, i: int, j: int) -> float:
    """Stable pseudo-random value in [0.0, 1.0) keyed only by the seed and the cell."""
    digest = hashlib.sha256(f"{stream_seed}:{i},{j}".encode("utf-8")).digest()
    raw = int.from_bytes(digest[:8], byteorder="big", signed=False)
    return (raw >> (64 - UNIT_BITS)) / UNIT_DENOMINATOR
