from __future__ import annotations

import logging
from collections.abc import Callable

from tokengrid.sim.coords import CellId, CellRange, Position
from tokengrid.sim.core import GameSession, Notification
from tokengrid.sim.inputs import ManualPositionFeed
from tokengrid.sim.world import MovementMode

logger = logging.getLogger(__name__)

DEFAULT_VIEW_RADIUS = 5
HELP_TEXT = "Commands: w|a|s|d | take <i> <j> | mode discrete|continuous | gps <lat> <lng> | reset | show | quit"


class AsciiViewer:
    """Read-only projection of the session for terminal display.

    Rows run north to south, columns west to east. ``@`` marks the player,
    ``.`` an empty cell; near cells are wrapped in brackets.
    """

    def render(self, session: GameSession, radius: int = DEFAULT_VIEW_RADIUS) -> str:
        center = session.player_cell
        cell_range = CellRange(
            i_min=center.i - radius,
            i_max=center.i + radius + 1,
            j_min=center.j - radius,
            j_max=center.j + radius + 1,
        )
        lines = [session.hud_text()]
        for i in range(cell_range.i_max - 1, cell_range.i_min - 1, -1):
            row: list[str] = []
            for j in range(cell_range.j_min, cell_range.j_max):
                cell = CellId(i, j)
                if cell == center:
                    glyph = "@"
                else:
                    value = session.value_at(cell)
                    glyph = str(value) if value > 0 else "."
                row.append(f"[{glyph:>2}]" if session.is_near(cell) else f" {glyph:>2} ")
            lines.append(f"i={i:>8} " + "".join(row))
        lines.append(f"j={cell_range.j_min}..{cell_range.j_max - 1}")
        return "\n".join(lines)


class SessionController:
    """Parses terminal commands into session operations; does not own state."""

    def __init__(self, session: GameSession, feed: ManualPositionFeed) -> None:
        self.session = session
        self.feed = feed

    def handle(self, raw: str) -> str | None:
        parts = raw.split()
        if not parts:
            return None
        if len(parts) == 1 and self.session.press_key(parts[0]):
            return "moved"
        if len(parts) == 3 and parts[0] == "take":
            outcome = self.session.interact(CellId(int(parts[1]), int(parts[2])))
            return f"interaction {outcome.kind} value={outcome.value}"
        if len(parts) == 2 and parts[0] == "mode":
            mode = MovementMode(parts[1])
            attached = self.session.switch_mode(mode)
            return f"mode {mode.value} attached={attached}"
        if len(parts) == 3 and parts[0] == "gps":
            self.feed.push(Position(lat=float(parts[1]), lng=float(parts[2])))
            return "reading accepted"
        if parts == ["reset"]:
            self.session.reset()
            return "world reset"
        return "unknown command"


def run_demo(
    session: GameSession,
    feed: ManualPositionFeed,
    *,
    read_line: Callable[[str], str] = input,
    write: Callable[[str], None] = print,
) -> int:
    view = AsciiViewer()
    controller = SessionController(session, feed)

    def on_notification(notification: Notification) -> None:
        write(f"[tokengrid.viewer] {notification.kind}: {notification.message}")

    session.add_listener(on_notification)
    for notification in session.notifications:
        on_notification(notification)

    write(HELP_TEXT)
    write(view.render(session))

    while True:
        try:
            raw = read_line("> ").strip()
        except EOFError:
            break
        if raw in {"quit", "exit"}:
            break
        if raw == "show":
            write(view.render(session))
            continue
        try:
            message = controller.handle(raw)
        except ValueError as exc:
            logger.debug("rejected command %r: %s", raw, exc)
            write(f"invalid command: {exc}")
            continue
        if message is None:
            continue
        write(message)
        if message != "unknown command":
            write(view.render(session))
    return 0
