from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import Protocol

from tokengrid.sim.coords import Position


class Direction(Enum):
    NORTH = (1, 0)
    SOUTH = (-1, 0)
    EAST = (0, 1)
    WEST = (0, -1)

    @property
    def di(self) -> int:
        return self.value[0]

    @property
    def dj(self) -> int:
        return self.value[1]


KEY_BINDINGS: dict[str, Direction] = {
    "ArrowUp": Direction.NORTH,
    "w": Direction.NORTH,
    "ArrowDown": Direction.SOUTH,
    "s": Direction.SOUTH,
    "ArrowLeft": Direction.WEST,
    "a": Direction.WEST,
    "ArrowRight": Direction.EAST,
    "d": Direction.EAST,
}


def direction_for_key(key: str) -> Direction | None:
    return KEY_BINDINGS.get(key)


DirectionHandler = Callable[[Direction], None]
ReadingHandler = Callable[[Position], None]
ErrorHandler = Callable[[str], None]


class PositionUnavailableError(RuntimeError):
    """The continuous position service is unsupported or was denied."""


class InputBus:
    """Synchronous fan-out of directional input events."""

    def __init__(self) -> None:
        self._handlers: dict[int, DirectionHandler] = {}
        self._next_token = 1

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)

    def subscribe(self, handler: DirectionHandler) -> int:
        token = self._next_token
        self._next_token += 1
        self._handlers[token] = handler
        return token

    def unsubscribe(self, token: int) -> None:
        self._handlers.pop(token, None)

    def emit(self, direction: Direction) -> None:
        for token in sorted(self._handlers):
            handler = self._handlers.get(token)
            if handler is not None:
                handler(direction)

    def press_key(self, key: str) -> bool:
        direction = direction_for_key(key)
        if direction is None:
            return False
        self.emit(direction)
        return True


class PositionFeed(Protocol):
    def watch(self, on_reading: ReadingHandler, on_error: ErrorHandler) -> int: ...

    def clear_watch(self, token: int) -> None: ...


class ManualPositionFeed:
    """Position service driven by explicit ``push`` calls.

    Front ends push readings from whatever they treat as a location source
    (typed coordinates, the mouse cursor); tests push scripted readings.
    """

    def __init__(self, *, supported: bool = True) -> None:
        self.supported = supported
        self._watchers: dict[int, tuple[ReadingHandler, ErrorHandler]] = {}
        self._next_token = 1

    @property
    def watcher_count(self) -> int:
        return len(self._watchers)

    def watch(self, on_reading: ReadingHandler, on_error: ErrorHandler) -> int:
        if not self.supported:
            raise PositionUnavailableError("position service is not available")
        token = self._next_token
        self._next_token += 1
        self._watchers[token] = (on_reading, on_error)
        return token

    def clear_watch(self, token: int) -> None:
        self._watchers.pop(token, None)

    def push(self, reading: Position) -> None:
        for token in sorted(self._watchers):
            watcher = self._watchers.get(token)
            if watcher is not None:
                watcher[0](reading)

    def fail(self, message: str) -> None:
        for token in sorted(self._watchers):
            watcher = self._watchers.get(token)
            if watcher is not None:
                watcher[1](message)
