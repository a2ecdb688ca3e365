from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from tokengrid.sim.config import GameConfig
from tokengrid.sim.coords import CellId, Position, cell_center, chebyshev_distance, snap_to_center, to_cell_id
from tokengrid.sim.field import ProceduralField
from tokengrid.sim.overrides import OverrideEntry, OverrideStore


class MovementMode(str, Enum):
    DISCRETE = "discrete"
    CONTINUOUS = "continuous"


DEFAULT_MOVEMENT_MODE = MovementMode.DISCRETE


@dataclass
class Player:
    position: Position
    holding: int | None = None

    def __post_init__(self) -> None:
        if self.holding is not None:
            if isinstance(self.holding, bool) or not isinstance(self.holding, int) or self.holding <= 0:
                raise ValueError("player.holding must be a positive integer or None")

    def to_dict(self) -> dict[str, Any]:
        return {
            "lat": self.position.lat,
            "lng": self.position.lng,
            "holding": self.holding,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Player":
        holding = data.get("holding")
        return cls(position=Position.from_dict(data), holding=holding)


@dataclass(frozen=True)
class Snapshot:
    overrides: tuple[OverrideEntry, ...]
    player: Player
    mode: MovementMode

    def to_dict(self) -> dict[str, Any]:
        return {
            "overrides": [entry.to_dict() for entry in self.overrides],
            "player": self.player.to_dict(),
            "mode": self.mode.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Snapshot":
        return cls(
            overrides=tuple(OverrideEntry.from_dict(dict(row)) for row in data.get("overrides", [])),
            player=Player.from_dict(dict(data["player"])),
            mode=MovementMode(str(data["mode"])),
        )


class WorldAccessor:
    """Read/write facade over the override store.

    ``set_value`` is the only mutation path gameplay code uses, which keeps
    taken and modified entries mutually exclusive at every call site.
    """

    def __init__(self, overrides: OverrideStore) -> None:
        self.overrides = overrides

    def value_at(self, cell: CellId) -> int:
        return self.overrides.resolve(cell)

    def set_value(self, cell: CellId, value: int) -> None:
        if value <= 0:
            self.overrides.record_taken(cell)
        else:
            self.overrides.record_modified(cell, value)


@dataclass
class WorldState:
    config: GameConfig
    field: ProceduralField
    overrides: OverrideStore
    accessor: WorldAccessor
    player: Player
    mode: MovementMode = DEFAULT_MOVEMENT_MODE

    @classmethod
    def create(cls, config: GameConfig | None = None) -> "WorldState":
        config = config or GameConfig()
        procedural = ProceduralField(config)
        overrides = OverrideStore(procedural)
        return cls(
            config=config,
            field=procedural,
            overrides=overrides,
            accessor=WorldAccessor(overrides),
            player=default_player(config),
        )

    def value_at(self, cell: CellId) -> int:
        return self.accessor.value_at(cell)

    def player_cell(self) -> CellId:
        return to_cell_id(self.player.position, self.config.cell_size)

    def is_near(self, cell: CellId) -> bool:
        return chebyshev_distance(cell, self.player_cell()) <= self.config.interaction_radius

    def place_player(self, cell: CellId) -> None:
        self.player.position = cell_center(cell, self.config.cell_size)

    def snapshot(self) -> Snapshot:
        return Snapshot(
            overrides=tuple(self.overrides.snapshot_entries()),
            player=Player(position=self.player.position, holding=self.player.holding),
            mode=self.mode,
        )

    def restore(self, snapshot: Snapshot) -> None:
        """Replace overrides, player and mode; raises before changing anything if the snapshot is unusable."""
        try:
            position = snap_to_center(snapshot.player.position, self.config.cell_size)
        except (OverflowError, ValueError) as exc:
            raise ValueError(f"snapshot.player position has no cell: {exc}") from exc
        player = Player(position=position, holding=snapshot.player.holding)
        self.overrides.restore_entries(snapshot.overrides)
        self.player = player
        self.mode = snapshot.mode

    def reset(self) -> None:
        self.overrides.clear_all()
        self.player = default_player(self.config)
        self.mode = DEFAULT_MOVEMENT_MODE


def default_player(config: GameConfig) -> Player:
    return Player(position=snap_to_center(config.start_position, config.cell_size), holding=None)
