import logging

import pytest

from tokengrid.sim.coords import CellId, Position, cell_center
from tokengrid.sim.core import NOTIFY_POSITION_UNAVAILABLE, GameSession
from tokengrid.sim.inputs import Direction, InputBus, ManualPositionFeed
from tokengrid.sim.movement import ContinuousDeltaTracker, DiscreteStepper, cell_steps, round_half_up
from tokengrid.sim.world import MovementMode

CELL = 0.0001


class _RecordingSink:
    def __init__(self) -> None:
        self.steps: list[tuple[int, int]] = []
        self.teleports: list[CellId] = []

    def apply_step(self, di: int, dj: int) -> None:
        self.steps.append((di, dj))

    def teleport_to(self, cell: CellId) -> None:
        self.teleports.append(cell)


class _LeakyFeed:
    """Keeps handlers after clear_watch so late deliveries can be simulated."""

    def __init__(self) -> None:
        self.handlers = []
        self.cleared: list[int] = []

    def watch(self, on_reading, on_error) -> int:
        self.handlers.append((on_reading, on_error))
        return len(self.handlers)

    def clear_watch(self, token: int) -> None:
        self.cleared.append(token)


def _build_session(feed: ManualPositionFeed | None = None) -> GameSession:
    return GameSession(position_feed=feed if feed is not None else ManualPositionFeed())


def test_round_half_up_matches_expected_tie_breaking() -> None:
    assert round_half_up(0.5) == 1
    assert round_half_up(1.49) == 1
    assert round_half_up(-0.5) == 0
    assert round_half_up(-1.5) == -1
    assert round_half_up(-1.51) == -2


def test_cell_steps_rounds_each_axis_independently() -> None:
    previous = Position(lat=0.0, lng=0.0)
    current = Position(lat=0.00026, lng=-0.00014)

    assert cell_steps(previous, current, CELL) == (3, -1)


def test_discrete_stepper_applies_one_step_per_event() -> None:
    sink = _RecordingSink()
    bus = InputBus()
    stepper = DiscreteStepper(sink, bus)
    stepper.attach()

    bus.emit(Direction.NORTH)
    bus.press_key("a")

    assert sink.steps == [(1, 0), (0, -1)]


def test_discrete_stepper_detach_is_idempotent_and_stops_events() -> None:
    sink = _RecordingSink()
    bus = InputBus()
    stepper = DiscreteStepper(sink, bus)
    stepper.attach()

    stepper.detach()
    stepper.detach()
    bus.emit(Direction.EAST)

    assert bus.subscriber_count == 0
    assert sink.steps == []


def test_first_reading_teleports_and_later_readings_step() -> None:
    sink = _RecordingSink()
    feed = ManualPositionFeed()
    tracker = ContinuousDeltaTracker(sink, feed, CELL)
    tracker.attach()
    origin = cell_center(CellId(10, -20), CELL)

    feed.push(origin)
    feed.push(Position(lat=origin.lat + 2 * CELL, lng=origin.lng - CELL))

    assert sink.teleports == [CellId(10, -20)]
    assert sink.steps == [(2, -1)]


def test_sub_cell_jitter_does_not_move_the_reference() -> None:
    sink = _RecordingSink()
    feed = ManualPositionFeed()
    tracker = ContinuousDeltaTracker(sink, feed, CELL)
    tracker.attach()
    origin = Position(lat=0.00005, lng=0.00005)

    feed.push(origin)
    feed.push(Position(lat=origin.lat + 0.4 * CELL, lng=origin.lng))
    feed.push(Position(lat=origin.lat + 0.8 * CELL, lng=origin.lng))

    assert sink.steps == [(1, 0)]
    assert tracker.last_reading == Position(lat=origin.lat + 0.8 * CELL, lng=origin.lng)


def test_readings_delivered_after_detach_are_dropped() -> None:
    sink = _RecordingSink()
    feed = _LeakyFeed()
    tracker = ContinuousDeltaTracker(sink, feed, CELL)
    tracker.attach()
    on_reading, on_error = feed.handlers[0]
    on_reading(Position(lat=0.0, lng=0.0))

    tracker.detach()
    on_reading(Position(lat=5 * CELL, lng=0.0))

    assert feed.cleared == [1]
    assert sink.steps == []
    assert tracker.last_reading is None


def test_reattached_tracker_ignores_the_previous_subscription() -> None:
    sink = _RecordingSink()
    feed = _LeakyFeed()
    tracker = ContinuousDeltaTracker(sink, feed, CELL)
    tracker.attach()
    stale_reading, _ = feed.handlers[0]
    tracker.detach()
    tracker.attach()

    stale_reading(Position(lat=0.0, lng=0.0))

    assert sink.teleports == []


def test_feed_errors_are_logged_and_ignored(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING, logger="tokengrid.sim.movement")
    sink = _RecordingSink()
    feed = ManualPositionFeed()
    tracker = ContinuousDeltaTracker(sink, feed, CELL)
    tracker.attach()

    feed.fail("permission denied")

    assert tracker.attached
    assert "position feed error ignored: permission denied" in caplog.text


def test_session_keys_move_the_player_one_cell() -> None:
    session = _build_session()
    start = session.player_cell

    assert session.press_key("w") is True
    assert session.press_key("ArrowRight") is True
    assert session.press_key("q") is False

    assert session.player_cell == CellId(start.i + 1, start.j + 1)


def test_session_move_goes_through_the_discrete_source() -> None:
    session = _build_session()
    start = session.player_cell

    session.move(Direction.SOUTH)
    session.switch_mode(MovementMode.CONTINUOUS)
    session.move(Direction.SOUTH)

    assert session.player_cell == CellId(start.i - 1, start.j)


def test_switching_modes_swaps_subscriptions() -> None:
    feed = ManualPositionFeed()
    session = _build_session(feed)

    assert session.switch_mode(MovementMode.CONTINUOUS) is True
    assert session.input_bus.subscriber_count == 0
    assert feed.watcher_count == 1
    assert session.world.mode == MovementMode.CONTINUOUS

    assert session.switch_mode(MovementMode.DISCRETE) is True
    assert session.input_bus.subscriber_count == 1
    assert feed.watcher_count == 0


def test_continuous_session_teleports_to_first_reading() -> None:
    feed = ManualPositionFeed()
    session = _build_session(feed)
    session.switch_mode(MovementMode.CONTINUOUS)

    feed.push(cell_center(CellId(100, 200), CELL))
    feed.push(cell_center(CellId(101, 198), CELL))

    assert session.player_cell == CellId(101, 198)


def test_unavailable_feed_notifies_and_keeps_mode_inert() -> None:
    session = _build_session(ManualPositionFeed(supported=False))
    start = session.player_cell

    attached = session.switch_mode(MovementMode.CONTINUOUS)
    session.press_key("w")

    assert attached is False
    assert session.world.mode == MovementMode.CONTINUOUS
    assert session.active_source is not None and not session.active_source.attached
    assert session.active_source.mode == MovementMode.CONTINUOUS
    assert [notification.kind for notification in session.notifications] == [NOTIFY_POSITION_UNAVAILABLE]
    assert session.player_cell == start


def test_missing_feed_is_reported_as_unavailable() -> None:
    session = GameSession()

    assert session.switch_mode(MovementMode.CONTINUOUS) is False
    assert session.notifications[-1].kind == NOTIFY_POSITION_UNAVAILABLE


def test_move_by_snaps_to_the_new_cell_center() -> None:
    session = _build_session()
    start = session.player_cell

    session.move_by(d_lat=2.4 * CELL, d_lng=-0.6 * CELL)

    assert session.player_cell == CellId(start.i + 2, start.j - 1)
    assert session.world.player.position == session.cell_center(session.player_cell)


@pytest.mark.parametrize(
    "bad_reading",
    [Position(lat=1e308, lng=0.0), Position(lat=float("nan"), lng=0.0), Position(lat=0.0, lng=float("inf"))],
)
def test_readings_without_a_cell_are_logged_and_ignored(
    bad_reading: Position, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.WARNING, logger="tokengrid.sim.movement")
    sink = _RecordingSink()
    feed = ManualPositionFeed()
    tracker = ContinuousDeltaTracker(sink, feed, CELL)
    tracker.attach()
    origin = cell_center(CellId(4, 4), CELL)

    feed.push(bad_reading)
    feed.push(origin)
    feed.push(bad_reading)
    feed.push(Position(lat=origin.lat + CELL, lng=origin.lng))

    assert "position reading ignored" in caplog.text
    assert sink.teleports == [CellId(4, 4)]
    assert sink.steps == [(1, 0)]
    assert tracker.attached


def test_session_survives_an_overflowing_reading() -> None:
    feed = ManualPositionFeed()
    session = _build_session(feed)
    session.switch_mode(MovementMode.CONTINUOUS)
    feed.push(cell_center(CellId(3, 3), CELL))

    feed.push(Position(lat=-1e308, lng=0.0))

    assert session.player_cell == CellId(3, 3)
