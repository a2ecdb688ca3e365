from __future__ import annotations

import importlib.metadata
import math
import os
import platform
import sys
from dataclasses import dataclass
from typing import Any

from tokengrid.sim.coords import CellId, Position, cell_center
from tokengrid.sim.core import GameSession, Notification
from tokengrid.sim.inputs import ManualPositionFeed
from tokengrid.sim.world import MovementMode

WINDOW_SIZE = (960, 720)
CELL_PIXELS = 40
HUD_HEIGHT = 64
FRAME_RATE = 60

BACKGROUND_COLOR = (17, 18, 25)
NEAR_BORDER_COLOR = (42, 122, 94)
FAR_BORDER_COLOR = (102, 102, 102)
NEAR_TEXT_COLOR = (240, 240, 240)
FAR_TEXT_COLOR = (130, 130, 130)
PLAYER_COLOR = (255, 243, 130)
HUD_TEXT_COLOR = (240, 240, 240)
TOKEN_COLORS: dict[int, tuple[int, int, int]] = {
    2: (70, 96, 140),
    4: (80, 130, 110),
    8: (150, 120, 60),
    16: (170, 70, 70),
}
DEFAULT_TOKEN_COLOR = (120, 60, 150)

# pygame key names that differ from the bindings understood by the input bus.
KEY_NAME_ALIASES = {
    "up": "ArrowUp",
    "down": "ArrowDown",
    "left": "ArrowLeft",
    "right": "ArrowRight",
}

pygame: Any | None = None


@dataclass
class ViewFrame:
    """Maps between window pixels and cells around an anchor cell.

    Rows grow northwards (up the screen) and columns grow eastwards.
    """

    anchor: CellId
    center_x: float
    center_y: float
    cell_pixels: int = CELL_PIXELS

    def cell_rect(self, cell: CellId) -> tuple[int, int, int, int]:
        left = self.center_x + (cell.j - self.anchor.j - 0.5) * self.cell_pixels
        top = self.center_y - (cell.i - self.anchor.i + 0.5) * self.cell_pixels
        return (int(left), int(top), self.cell_pixels, self.cell_pixels)

    def cell_at_pixel(self, pixel_x: float, pixel_y: float) -> CellId:
        dj = (pixel_x - self.center_x) / self.cell_pixels + 0.5
        di = (self.center_y - pixel_y) / self.cell_pixels + 0.5
        return CellId(self.anchor.i + math.floor(di), self.anchor.j + math.floor(dj))

    def position_at_pixel(self, pixel_x: float, pixel_y: float, cell_size: float) -> Position:
        origin = cell_center(self.anchor, cell_size)
        return Position(
            lat=origin.lat + (self.center_y - pixel_y) / self.cell_pixels * cell_size,
            lng=origin.lng + (pixel_x - self.center_x) / self.cell_pixels * cell_size,
        )

    def visible_cells(self, width: int, height: int) -> list[CellId]:
        half_cols = width // (2 * self.cell_pixels) + 1
        half_rows = height // (2 * self.cell_pixels) + 1
        return [
            CellId(self.anchor.i + di, self.anchor.j + dj)
            for di in range(-half_rows, half_rows + 1)
            for dj in range(-half_cols, half_cols + 1)
        ]


def key_binding_name(pygame_key_name: str) -> str:
    return KEY_NAME_ALIASES.get(pygame_key_name, pygame_key_name)


def toggled_mode(mode: MovementMode) -> MovementMode:
    return MovementMode.CONTINUOUS if mode == MovementMode.DISCRETE else MovementMode.DISCRETE


def _print_startup_banner() -> None:
    try:
        pygame_version = importlib.metadata.version("pygame")
    except importlib.metadata.PackageNotFoundError:
        pygame_version = "not-installed"
    print(
        "[tokengrid.viewer] startup "
        f"python={platform.python_version()} "
        f"pygame={pygame_version} "
        f"platform={platform.platform()}"
    )


def _ensure_pygame_imported() -> Any:
    global pygame
    if pygame is None:
        import pygame as pygame_module

        pygame = pygame_module
    return pygame


def _viewport_size() -> tuple[int, int]:
    return (WINDOW_SIZE[0], WINDOW_SIZE[1] - HUD_HEIGHT)


def _draw_world(screen: Any, session: GameSession, frame: ViewFrame, font: Any) -> None:
    width, height = _viewport_size()
    clip = pygame.Rect(0, HUD_HEIGHT, width, height)
    old_clip = screen.get_clip()
    screen.set_clip(clip)
    for cell in frame.visible_cells(width, height):
        rect = pygame.Rect(frame.cell_rect(cell))
        near = session.is_near(cell)
        value = session.value_at(cell)
        if value > 0:
            pygame.draw.rect(screen, TOKEN_COLORS.get(value, DEFAULT_TOKEN_COLOR), rect)
            text = font.render(str(value), True, NEAR_TEXT_COLOR if near else FAR_TEXT_COLOR)
            screen.blit(text, text.get_rect(center=rect.center))
        pygame.draw.rect(screen, NEAR_BORDER_COLOR if near else FAR_BORDER_COLOR, rect, 2 if near else 1)

    player_rect = pygame.Rect(frame.cell_rect(session.player_cell))
    pygame.draw.circle(screen, PLAYER_COLOR, player_rect.center, 8)
    pygame.draw.circle(screen, (15, 15, 15), player_rect.center, 8, 1)
    screen.set_clip(old_clip)


def _draw_hud(screen: Any, session: GameSession, font: Any, status_message: str | None) -> None:
    lines = [
        session.hud_text(),
        status_message or "WASD/arrows move | LMB interact | M mode | R reset | ESC quit",
    ]
    y = 8
    for line in lines:
        surface = font.render(line, True, HUD_TEXT_COLOR)
        screen.blit(surface, (12, y))
        y += 26


def run_pygame_viewer(session: GameSession, feed: ManualPositionFeed, *, headless: bool = False) -> int:
    if headless:
        os.environ["SDL_VIDEODRIVER"] = "dummy"
        print("[tokengrid.viewer] warning: headless mode active; no window will open.")

    _print_startup_banner()
    pygame_module = _ensure_pygame_imported()

    try:
        pygame_module.init()
    except Exception as exc:
        print(
            "[tokengrid.viewer] failed during pygame.init(): "
            f"{exc}. Hint: set SDL_VIDEODRIVER=dummy or pass --headless.",
            file=sys.stderr,
        )
        return 1

    try:
        pygame_module.display.set_caption("tokengrid")
        screen = pygame_module.display.set_mode(WINDOW_SIZE)
    except Exception as exc:
        print(f"[tokengrid.viewer] failed during pygame.display.set_mode(...): {exc}", file=sys.stderr)
        pygame_module.quit()
        return 1

    status_message: str | None = None

    def on_notification(notification: Notification) -> None:
        nonlocal status_message
        status_message = notification.message
        print(f"[tokengrid.viewer] {notification.kind}: {notification.message}")

    session.add_listener(on_notification)
    for notification in session.notifications:
        on_notification(notification)

    font = pygame_module.font.SysFont("consolas", 18)
    width, height = _viewport_size()
    frame = ViewFrame(anchor=session.player_cell, center_x=width / 2, center_y=HUD_HEIGHT + height / 2)
    clock = pygame_module.time.Clock()
    running = True

    while running:
        clock.tick(FRAME_RATE)
        for event in pygame_module.event.get():
            if event.type == pygame_module.QUIT:
                running = False
            elif event.type == pygame_module.KEYDOWN and event.key == pygame_module.K_ESCAPE:
                running = False
            elif event.type == pygame_module.KEYDOWN and event.key == pygame_module.K_m:
                mode = toggled_mode(session.world.mode)
                attached = session.switch_mode(mode)
                frame.anchor = session.player_cell
                status_message = f"mode {mode.value}" if attached else status_message
            elif event.type == pygame_module.KEYDOWN and event.key == pygame_module.K_r:
                session.reset()
                frame.anchor = session.player_cell
                status_message = "world reset"
            elif event.type == pygame_module.KEYDOWN:
                session.press_key(key_binding_name(pygame_module.key.name(event.key)))
            elif event.type == pygame_module.MOUSEBUTTONDOWN and event.button == 1:
                if event.pos[1] >= HUD_HEIGHT:
                    session.interact(frame.cell_at_pixel(*event.pos))
            elif event.type == pygame_module.MOUSEMOTION and session.world.mode == MovementMode.CONTINUOUS:
                if event.pos[1] >= HUD_HEIGHT:
                    feed.push(frame.position_at_pixel(event.pos[0], event.pos[1], session.config.cell_size))

        # The view follows the player for key input and stays put while the
        # cursor drives the position feed, so cursor pixels keep their meaning.
        if session.world.mode == MovementMode.DISCRETE:
            frame.anchor = session.player_cell

        screen.fill(BACKGROUND_COLOR)
        _draw_world(screen, session, frame, font)
        _draw_hud(screen, session, font, status_message)
        pygame_module.display.flip()

        if headless:
            running = False

    pygame_module.quit()
    return 0
