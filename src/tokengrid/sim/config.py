from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from tokengrid.sim.coords import Position

DEFAULT_CELL_SIZE = 0.0001
DEFAULT_INTERACTION_RADIUS = 3
DEFAULT_WIN_THRESHOLD = 16
DEFAULT_GRID_EXTENT = (1024, 1024)
DEFAULT_WORLD_SEED = 0
DEFAULT_MAX_VISIBLE_CELLS = 8000
DEFAULT_START_POSITION = Position(lat=36.99803803339612, lng=-122.05670161815607)
# Tier indices are stored in a byte cache whose 0xFF slot means "uncomputed".
MAX_DISTRIBUTION_TIERS = 254


@dataclass(frozen=True)
class ValueTier:
    upper_bound: float
    magnitude: int

    def to_dict(self) -> dict[str, Any]:
        return {"upper_bound": self.upper_bound, "magnitude": self.magnitude}


DEFAULT_TIERS: tuple[ValueTier, ...] = (
    ValueTier(upper_bound=0.55, magnitude=0),
    ValueTier(upper_bound=0.80, magnitude=2),
    ValueTier(upper_bound=0.93, magnitude=4),
    ValueTier(upper_bound=0.985, magnitude=8),
    ValueTier(upper_bound=1.0, magnitude=16),
)


@dataclass(frozen=True)
class ValueDistribution:
    """Cumulative thresholds over [0, 1) mapped to increasing token magnitudes.

    Tier ``k`` covers ``[tiers[k-1].upper_bound, tiers[k].upper_bound)``; the
    first tier starts at 0.0 and the last one must end at exactly 1.0.
    """

    tiers: tuple[ValueTier, ...] = DEFAULT_TIERS

    def __post_init__(self) -> None:
        if not self.tiers:
            raise ValueError("distribution.tiers must be non-empty")
        if len(self.tiers) > MAX_DISTRIBUTION_TIERS:
            raise ValueError(f"distribution.tiers must contain at most {MAX_DISTRIBUTION_TIERS} tiers")
        previous_bound = 0.0
        previous_magnitude = -1
        for index, tier in enumerate(self.tiers):
            if not isinstance(tier, ValueTier):
                raise ValueError(f"distribution.tiers[{index}] must be a ValueTier")
            if tier.upper_bound <= previous_bound:
                raise ValueError(f"distribution.tiers[{index}].upper_bound must be strictly increasing")
            if tier.upper_bound > 1.0:
                raise ValueError(f"distribution.tiers[{index}].upper_bound must be <= 1.0")
            if isinstance(tier.magnitude, bool) or not isinstance(tier.magnitude, int) or tier.magnitude < 0:
                raise ValueError(f"distribution.tiers[{index}].magnitude must be a non-negative integer")
            if tier.magnitude <= previous_magnitude:
                raise ValueError(f"distribution.tiers[{index}].magnitude must be strictly increasing")
            previous_bound = tier.upper_bound
            previous_magnitude = tier.magnitude
        if self.tiers[-1].upper_bound != 1.0:
            raise ValueError("distribution.tiers must end at upper_bound 1.0")

    def tier_index(self, unit: float) -> int:
        if unit < 0.0 or unit >= 1.0:
            raise ValueError(f"unit value must be within [0.0, 1.0): {unit}")
        for index, tier in enumerate(self.tiers):
            if unit < tier.upper_bound:
                return index
        return len(self.tiers) - 1

    def magnitude_for_tier(self, index: int) -> int:
        return self.tiers[index].magnitude

    def classify(self, unit: float) -> int:
        return self.magnitude_for_tier(self.tier_index(unit))

    def magnitudes(self) -> tuple[int, ...]:
        return tuple(tier.magnitude for tier in self.tiers)

    def to_list(self) -> list[dict[str, Any]]:
        return [tier.to_dict() for tier in self.tiers]


@dataclass(frozen=True)
class GameConfig:
    """Startup constants; never reconfigured while a session is running."""

    cell_size: float = DEFAULT_CELL_SIZE
    interaction_radius: int = DEFAULT_INTERACTION_RADIUS
    win_threshold: int = DEFAULT_WIN_THRESHOLD
    grid_extent: tuple[int, int] = DEFAULT_GRID_EXTENT
    distribution: ValueDistribution = field(default_factory=ValueDistribution)
    world_seed: int = DEFAULT_WORLD_SEED
    start_position: Position = DEFAULT_START_POSITION
    max_visible_cells: int = DEFAULT_MAX_VISIBLE_CELLS

    def __post_init__(self) -> None:
        if isinstance(self.cell_size, bool) or not isinstance(self.cell_size, (int, float)) or self.cell_size <= 0:
            raise ValueError("config.cell_size must be a positive number")
        if not _is_int(self.interaction_radius) or self.interaction_radius < 0:
            raise ValueError("config.interaction_radius must be a non-negative integer")
        if not _is_int(self.win_threshold) or self.win_threshold <= 0:
            raise ValueError("config.win_threshold must be a positive integer")
        if not isinstance(self.grid_extent, tuple) or len(self.grid_extent) != 2:
            raise ValueError("config.grid_extent must be a (grid_i, grid_j) pair")
        for axis, size in zip(("grid_i", "grid_j"), self.grid_extent):
            if not _is_int(size) or size <= 0:
                raise ValueError(f"config.grid_extent.{axis} must be a positive integer")
        if not isinstance(self.distribution, ValueDistribution):
            raise ValueError("config.distribution must be a ValueDistribution")
        if not _is_int(self.world_seed):
            raise ValueError("config.world_seed must be an integer")
        if not isinstance(self.start_position, Position):
            raise ValueError("config.start_position must be a Position")
        if not _is_int(self.max_visible_cells) or self.max_visible_cells <= 0:
            raise ValueError("config.max_visible_cells must be a positive integer")

    @property
    def grid_i(self) -> int:
        return self.grid_extent[0]

    @property
    def grid_j(self) -> int:
        return self.grid_extent[1]

    def to_dict(self) -> dict[str, Any]:
        return {
            "cell_size": self.cell_size,
            "interaction_radius": self.interaction_radius,
            "win_threshold": self.win_threshold,
            "grid_extent": list(self.grid_extent),
            "distribution": self.distribution.to_list(),
            "world_seed": self.world_seed,
            "start_position": self.start_position.to_dict(),
            "max_visible_cells": self.max_visible_cells,
        }


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
