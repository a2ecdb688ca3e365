from __future__ import annotations

from tokengrid.sim.config import GameConfig
from tokengrid.sim.coords import CellId, storage_index
from tokengrid.sim.rng import cell_unit_value, derive_stream_seed

RNG_WORLDGEN_STREAM_NAME = "rng_worldgen"
UNCOMPUTED = 0xFF


class ProceduralField:
    """Lazily memoized intrinsic value per cell.

    The backing store is a flat byte array with one slot per wrapped storage
    index. A slot holds the distribution tier index once the cell has been
    derived, or ``UNCOMPUTED`` before that. The cache never holds mutation
    state, so dropping it changes nothing observable.
    """

    def __init__(self, config: GameConfig) -> None:
        self.config = config
        self.distribution = config.distribution
        self.stream_seed = derive_stream_seed(master_seed=config.world_seed, stream_name=RNG_WORLDGEN_STREAM_NAME)
        self._slots = bytearray([UNCOMPUTED]) * (config.grid_i * config.grid_j)

    def get_intrinsic_value(self, i: int, j: int) -> int:
        slot = storage_index(i, j, self.config.grid_extent)
        tier = self._slots[slot]
        if tier == UNCOMPUTED:
            tier = self.distribution.tier_index(cell_unit_value(self.stream_seed, i, j))
            self._slots[slot] = tier
        return self.distribution.magnitude_for_tier(tier)

    def intrinsic(self, cell: CellId) -> int:
        return self.get_intrinsic_value(cell.i, cell.j)

    def is_materialized(self, cell: CellId) -> bool:
        return self._slots[storage_index(cell.i, cell.j, self.config.grid_extent)] != UNCOMPUTED

    def materialized_count(self) -> int:
        return len(self._slots) - self._slots.count(UNCOMPUTED)

    def discard_cache(self) -> None:
        self._slots = bytearray([UNCOMPUTED]) * len(self._slots)
