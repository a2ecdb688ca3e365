from tokengrid.sim.config import GameConfig, ValueDistribution, ValueTier
from tokengrid.sim.coords import CellId, cell_center
from tokengrid.sim.interactions import (
    OUTCOME_MERGE,
    OUTCOME_NOOP,
    OUTCOME_OUT_OF_RANGE,
    OUTCOME_PICKUP,
    OUTCOME_PLACE,
    InteractionEngine,
    InteractionOutcome,
)
from tokengrid.sim.world import WorldState


def _build_world() -> WorldState:
    # Every intrinsic cell holds a 2 so outcomes do not depend on the seed.
    config = GameConfig(
        distribution=ValueDistribution((ValueTier(1.0, 2),)),
        start_position=cell_center(CellId(0, 0), 0.0001),
        grid_extent=(16, 16),
    )
    return WorldState.create(config)


def _build_engine(world: WorldState) -> tuple[InteractionEngine, list[InteractionOutcome], list[int]]:
    changes: list[InteractionOutcome] = []
    wins: list[int] = []
    engine = InteractionEngine(world, on_state_change=changes.append, on_win=wins.append)
    return engine, changes, wins


def test_pickup_takes_the_token_and_empties_the_cell() -> None:
    world = _build_world()
    engine, changes, wins = _build_engine(world)

    outcome = engine.interact(CellId(1, 0))

    assert outcome.kind == OUTCOME_PICKUP
    assert outcome.value == 2
    assert world.player.holding == 2
    assert world.value_at(CellId(1, 0)) == 0
    assert changes == [outcome]
    assert wins == []


def test_matching_token_merges_into_double_value() -> None:
    world = _build_world()
    engine, changes, _ = _build_engine(world)
    engine.interact(CellId(1, 0))

    outcome = engine.interact(CellId(2, 0))

    assert outcome.kind == OUTCOME_MERGE
    assert outcome.value == 4
    assert world.value_at(CellId(2, 0)) == 4
    assert world.player.holding is None
    assert len(changes) == 2


def test_holding_token_is_placed_into_an_empty_cell() -> None:
    world = _build_world()
    engine, _, _ = _build_engine(world)
    engine.interact(CellId(0, 1))

    outcome = engine.interact(CellId(0, 1))

    assert outcome.kind == OUTCOME_PLACE
    assert world.value_at(CellId(0, 1)) == 2
    assert world.player.holding is None


def test_mismatched_merge_is_a_silent_noop() -> None:
    world = _build_world()
    engine, changes, _ = _build_engine(world)
    world.accessor.set_value(CellId(-1, -1), 4)
    engine.interact(CellId(1, 1))
    before = world.snapshot()

    outcome = engine.interact(CellId(-1, -1))

    assert outcome.kind == OUTCOME_NOOP
    assert world.snapshot() == before
    assert len(changes) == 1


def test_empty_hand_on_empty_cell_is_a_noop() -> None:
    world = _build_world()
    engine, changes, _ = _build_engine(world)
    world.accessor.set_value(CellId(2, 2), 0)

    outcome = engine.interact(CellId(2, 2))

    assert outcome.kind == OUTCOME_NOOP
    assert not outcome.changed_state
    assert changes == []


def test_cells_beyond_the_interaction_radius_are_ignored() -> None:
    world = _build_world()
    engine, changes, _ = _build_engine(world)

    outcome = engine.interact(CellId(4, 0))

    assert outcome.kind == OUTCOME_OUT_OF_RANGE
    assert world.player.holding is None
    assert world.value_at(CellId(4, 0)) == 2
    assert changes == []


def test_radius_boundary_is_inclusive() -> None:
    world = _build_world()
    engine, _, _ = _build_engine(world)

    assert engine.interact(CellId(3, -3)).kind == OUTCOME_PICKUP


def test_picking_up_a_threshold_token_wins() -> None:
    world = _build_world()
    engine, _, wins = _build_engine(world)
    world.accessor.set_value(CellId(0, 2), 16)

    outcome = engine.interact(CellId(0, 2))

    assert outcome.won is True
    assert wins == [16]
    assert world.player.holding == 16


def test_merging_up_to_the_threshold_does_not_win_until_pickup() -> None:
    world = _build_world()
    engine, _, wins = _build_engine(world)
    world.accessor.set_value(CellId(1, 0), 8)
    world.accessor.set_value(CellId(2, 0), 8)
    engine.interact(CellId(1, 0))

    merged = engine.interact(CellId(2, 0))

    assert merged.kind == OUTCOME_MERGE
    assert merged.value == 16
    assert merged.won is False
    assert wins == []

    engine.interact(CellId(2, 0))
    assert wins == [16]
