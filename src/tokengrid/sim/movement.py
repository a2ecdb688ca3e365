from __future__ import annotations

import logging
import math
from collections.abc import Callable, Mapping
from typing import Protocol

from tokengrid.sim.coords import CellId, Position, to_cell_id
from tokengrid.sim.inputs import Direction, InputBus, PositionFeed, PositionUnavailableError
from tokengrid.sim.world import MovementMode, WorldState

logger = logging.getLogger(__name__)


class StepSink(Protocol):
    def apply_step(self, di: int, dj: int) -> None: ...

    def teleport_to(self, cell: CellId) -> None: ...


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def cell_steps(previous: Position, current: Position, cell_size: float) -> tuple[int, int]:
    return (
        round_half_up((current.lat - previous.lat) / cell_size),
        round_half_up((current.lng - previous.lng) / cell_size),
    )


class MovementSource:
    """Attachable producer of grid-step events.

    ``detach`` is idempotent and, once it returns, no further events from
    the source reach the sink.
    """

    mode: MovementMode

    def __init__(self, sink: StepSink) -> None:
        self.sink = sink
        self._token: int | None = None

    @property
    def attached(self) -> bool:
        return self._token is not None

    def attach(self) -> bool:
        """Start delivering events; return False when the source stays inert."""
        raise NotImplementedError

    def detach(self) -> None:
        if self._token is None:
            return
        token = self._token
        self._token = None
        self._release(token)

    def _release(self, token: int) -> None:
        """Tear down the external subscription identified by ``token``."""


class DiscreteStepper(MovementSource):
    """One unit step per directional input event."""

    mode = MovementMode.DISCRETE

    def __init__(self, sink: StepSink, bus: InputBus) -> None:
        super().__init__(sink)
        self.bus = bus

    def attach(self) -> bool:
        if self._token is not None:
            return True
        token = self.bus.subscribe(lambda direction: self._on_direction(token, direction))
        self._token = token
        return True

    def _release(self, token: int) -> None:
        self.bus.unsubscribe(token)

    def _on_direction(self, token: int, direction: Direction) -> None:
        if token != self._token:
            return
        self.sink.apply_step(direction.di, direction.dj)


class ContinuousDeltaTracker(MovementSource):
    """Converts a stream of raw position readings into whole-cell steps.

    The first reading teleports the player onto that reading's cell. Every
    later reading is compared with the last reading that produced movement;
    sub-cell jitter that rounds to a zero step on both axes is absorbed
    without touching that reference, so repeated noise cannot drift it.
    """

    mode = MovementMode.CONTINUOUS

    def __init__(
        self,
        sink: StepSink,
        feed: PositionFeed | None,
        cell_size: float,
        *,
        notify: Callable[[str], None] | None = None,
    ) -> None:
        super().__init__(sink)
        self.feed = feed
        self.cell_size = cell_size
        self.notify = notify
        self.last_reading: Position | None = None

    def attach(self) -> bool:
        if self._token is not None:
            return True
        if self.feed is None:
            self._unavailable("position service is not available")
            return False
        try:
            token = self.feed.watch(
                lambda reading: self._on_reading(token, reading),
                lambda message: self._on_error(token, message),
            )
        except PositionUnavailableError as exc:
            self._unavailable(str(exc))
            return False
        self._token = token
        self.last_reading = None
        return True

    def _release(self, token: int) -> None:
        if self.feed is not None:
            self.feed.clear_watch(token)
        self.last_reading = None

    def _unavailable(self, message: str) -> None:
        logger.warning("continuous movement unavailable: %s", message)
        if self.notify is not None:
            self.notify(message)

    def _on_reading(self, token: int, reading: Position) -> None:
        if token != self._token:
            return
        previous = self.last_reading
        try:
            cell = to_cell_id(reading, self.cell_size)
            di, dj = cell_steps(previous, reading, self.cell_size) if previous is not None else (0, 0)
        except (OverflowError, ValueError) as exc:
            # Readings that map to no cell never move the player.
            logger.warning("position reading ignored lat=%r lng=%r: %s", reading.lat, reading.lng, exc)
            return
        if previous is None:
            self.last_reading = reading
            self.sink.teleport_to(cell)
            return
        if di == 0 and dj == 0:
            return
        self.last_reading = reading
        self.sink.apply_step(di, dj)

    def _on_error(self, token: int, message: str) -> None:
        if token != self._token:
            return
        logger.warning("position feed error ignored: %s", message)


SourceFactory = Callable[[], MovementSource]


class MovementController:
    """Owns the active movement source and swaps it on mode changes."""

    def __init__(self, world: WorldState, factories: Mapping[MovementMode, SourceFactory]) -> None:
        missing = [mode.value for mode in MovementMode if mode not in factories]
        if missing:
            raise ValueError(f"missing movement source factories: {missing}")
        self.world = world
        self._factories = dict(factories)
        self.active: MovementSource | None = None

    def detach_active(self) -> None:
        if self.active is not None:
            self.active.detach()
        self.active = None

    def switch_to(self, mode: MovementMode) -> bool:
        self.detach_active()
        source = self._factories[mode]()
        if source.mode != mode:
            raise ValueError(f"source for {mode.value} reports mode {source.mode.value}")
        attached = source.attach()
        self.active = source
        self.world.mode = source.mode
        logger.info("movement mode %s attached=%s", mode.value, attached)
        return attached
