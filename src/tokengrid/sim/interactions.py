from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from tokengrid.sim.coords import CellId
from tokengrid.sim.world import WorldState

logger = logging.getLogger(__name__)

OUTCOME_OUT_OF_RANGE = "out_of_range"
OUTCOME_PICKUP = "pickup"
OUTCOME_PLACE = "place"
OUTCOME_MERGE = "merge"
OUTCOME_NOOP = "noop"
STATE_CHANGING_OUTCOMES = {OUTCOME_PICKUP, OUTCOME_PLACE, OUTCOME_MERGE}


@dataclass(frozen=True)
class InteractionOutcome:
    kind: str
    cell: CellId
    value: int = 0
    won: bool = False

    @property
    def changed_state(self) -> bool:
        return self.kind in STATE_CHANGING_OUTCOMES


class InteractionEngine:
    """Single-slot inventory state machine gated by player proximity.

    Transitions over ``(player.holding, cell value)``, first match wins:

    1. empty hand, occupied cell: pick the token up and mark the cell taken.
    2. holding ``v``, empty cell: place ``v`` into the cell.
    3. holding ``v``, cell holds ``v``: merge into ``2v`` in the cell.
    4. anything else: no-op.

    Interactions with cells outside the interaction radius are ignored.
    """

    def __init__(
        self,
        world: WorldState,
        *,
        on_state_change: Callable[[InteractionOutcome], None] | None = None,
        on_win: Callable[[int], None] | None = None,
    ) -> None:
        self.world = world
        self._on_state_change = on_state_change
        self._on_win = on_win

    def interact(self, cell: CellId) -> InteractionOutcome:
        if not self.world.is_near(cell):
            return InteractionOutcome(kind=OUTCOME_OUT_OF_RANGE, cell=cell)

        accessor = self.world.accessor
        player = self.world.player
        current = accessor.value_at(cell)
        holding = player.holding

        if holding is None:
            if current <= 0:
                return InteractionOutcome(kind=OUTCOME_NOOP, cell=cell)
            player.holding = current
            accessor.set_value(cell, 0)
            outcome = InteractionOutcome(
                kind=OUTCOME_PICKUP,
                cell=cell,
                value=current,
                won=current >= self.world.config.win_threshold,
            )
        elif current == 0:
            accessor.set_value(cell, holding)
            player.holding = None
            outcome = InteractionOutcome(kind=OUTCOME_PLACE, cell=cell, value=holding)
        elif current == holding and holding > 0:
            merged = holding * 2
            accessor.set_value(cell, merged)
            player.holding = None
            outcome = InteractionOutcome(kind=OUTCOME_MERGE, cell=cell, value=merged)
        else:
            return InteractionOutcome(kind=OUTCOME_NOOP, cell=cell)

        logger.debug("interaction %s at (%d,%d) value=%d", outcome.kind, cell.i, cell.j, outcome.value)
        if self._on_state_change is not None:
            self._on_state_change(outcome)
        if outcome.won and self._on_win is not None:
            self._on_win(outcome.value)
        return outcome
