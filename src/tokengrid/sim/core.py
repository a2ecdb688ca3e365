from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from tokengrid.content.io import SnapshotStore
from tokengrid.content.storage import KeyValueStore, MemoryKeyValueStore
from tokengrid.sim.config import GameConfig
from tokengrid.sim.coords import CellId, CellRange, Position, cell_center, snap_to_center, step_cell, visible_cell_range
from tokengrid.sim.inputs import Direction, InputBus, PositionFeed
from tokengrid.sim.interactions import InteractionEngine, InteractionOutcome
from tokengrid.sim.movement import ContinuousDeltaTracker, DiscreteStepper, MovementController, MovementSource
from tokengrid.sim.world import MovementMode, WorldState

logger = logging.getLogger(__name__)

NOTIFY_WIN = "win"
NOTIFY_POSITION_UNAVAILABLE = "position_unavailable"


@dataclass(frozen=True)
class Notification:
    kind: str
    message: str


NotificationListener = Callable[[Notification], None]


class GameSession:
    """Owns the world state and wires every collaborator around it.

    Movement sources push steps into the session, the interaction engine
    mutates the world through its accessor, and every state change is
    followed by a best-effort snapshot save.
    """

    def __init__(
        self,
        config: GameConfig | None = None,
        *,
        store: KeyValueStore | None = None,
        input_bus: InputBus | None = None,
        position_feed: PositionFeed | None = None,
    ) -> None:
        self.config = config or GameConfig()
        self.world = WorldState.create(self.config)
        self.snapshots = SnapshotStore(store if store is not None else MemoryKeyValueStore())
        self.input_bus = input_bus if input_bus is not None else InputBus()
        self.position_feed = position_feed
        self.notifications: list[Notification] = []
        self._listeners: list[NotificationListener] = []

        restored = self.snapshots.load_into(self.world)
        if not restored:
            logger.info("no snapshot restored; starting from defaults")

        self.interactions = InteractionEngine(
            self.world,
            on_state_change=self._on_interaction,
            on_win=self._on_win,
        )
        self.movement = MovementController(
            self.world,
            {
                MovementMode.DISCRETE: self._build_discrete_source,
                MovementMode.CONTINUOUS: self._build_continuous_source,
            },
        )
        self.movement.switch_to(self.world.mode)

    @property
    def player_cell(self) -> CellId:
        return self.world.player_cell()

    @property
    def active_source(self) -> MovementSource | None:
        return self.movement.active

    def add_listener(self, listener: NotificationListener) -> None:
        self._listeners.append(listener)

    def value_at(self, cell: CellId) -> int:
        return self.world.value_at(cell)

    def is_near(self, cell: CellId) -> bool:
        return self.world.is_near(cell)

    def move(self, direction: Direction) -> None:
        self.input_bus.emit(direction)

    def press_key(self, key: str) -> bool:
        return self.input_bus.press_key(key)

    def move_by(self, d_lat: float = 0.0, d_lng: float = 0.0) -> None:
        """Shift the raw position and snap to the resulting cell (developer helper)."""
        current = self.world.player.position
        shifted = Position(lat=current.lat + d_lat, lng=current.lng + d_lng)
        self.world.player.position = snap_to_center(shifted, self.config.cell_size)
        self._persist()

    def interact(self, cell: CellId) -> InteractionOutcome:
        return self.interactions.interact(cell)

    def switch_mode(self, mode: MovementMode) -> bool:
        attached = self.movement.switch_to(mode)
        self._persist()
        return attached

    def reset(self) -> None:
        self.snapshots.reset(self.world)
        self.movement.switch_to(self.world.mode)

    def visible_range(self, south: float, west: float, north: float, east: float) -> CellRange:
        return visible_cell_range(south, west, north, east, self.config.cell_size)

    def visible_cells(self, cell_range: CellRange) -> list[tuple[CellId, int, bool]]:
        return [
            (cell, self.world.value_at(cell), self.world.is_near(cell))
            for cell in cell_range.iter_cells(limit=self.config.max_visible_cells)
        ]

    def cell_center(self, cell: CellId) -> Position:
        return cell_center(cell, self.config.cell_size)

    def hud_text(self) -> str:
        position = self.world.player.position
        holding = self.world.player.holding
        holding_text = "-" if holding is None else str(holding)
        return (
            f"Player @ ({position.lat:.5f}, {position.lng:.5f}) | Holding: {holding_text} "
            f"| Mode: {self.world.mode.value}"
        )

    def apply_step(self, di: int, dj: int) -> None:
        self.world.place_player(step_cell(self.world.player_cell(), di, dj))
        self._persist()

    def teleport_to(self, cell: CellId) -> None:
        self.world.place_player(cell)
        self._persist()

    def _build_discrete_source(self) -> MovementSource:
        return DiscreteStepper(self, self.input_bus)

    def _build_continuous_source(self) -> MovementSource:
        return ContinuousDeltaTracker(
            self,
            self.position_feed,
            self.config.cell_size,
            notify=lambda message: self._notify(Notification(NOTIFY_POSITION_UNAVAILABLE, message)),
        )

    def _on_interaction(self, outcome: InteractionOutcome) -> None:
        self._persist()

    def _on_win(self, value: int) -> None:
        self._notify(Notification(NOTIFY_WIN, f"You win! Holding {value}."))

    def _notify(self, notification: Notification) -> None:
        self.notifications.append(notification)
        for listener in list(self._listeners):
            listener(notification)

    def _persist(self) -> None:
        self.snapshots.save(self.world)
