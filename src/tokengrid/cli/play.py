from __future__ import annotations

import argparse
import logging
from typing import Sequence

from tokengrid.cli.pygame_viewer import run_pygame_viewer
from tokengrid.cli.viewer import run_demo
from tokengrid.content.config import load_game_config_json
from tokengrid.content.storage import FileKeyValueStore
from tokengrid.sim.config import GameConfig
from tokengrid.sim.core import GameSession
from tokengrid.sim.inputs import ManualPositionFeed

DEFAULT_SAVE_DIR = "saves"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="python -m tokengrid.cli.play", description="tokengrid launcher.")
    parser.add_argument("--save-dir", default=DEFAULT_SAVE_DIR, help="Directory holding the persisted snapshot.")
    parser.add_argument("--config", default=None, help="Optional game config JSON path.")
    parser.add_argument("--ascii", action="store_true", help="Run the terminal front end instead of pygame.")
    parser.add_argument("--headless", action="store_true", help="Render a single pygame frame without a window.")
    parser.add_argument("--log-level", default="WARNING", help="Root logging level.")
    return parser


def build_session(*, save_dir: str, config_path: str | None) -> tuple[GameSession, ManualPositionFeed]:
    config = load_game_config_json(config_path) if config_path else GameConfig()
    feed = ManualPositionFeed()
    session = GameSession(config, store=FileKeyValueStore(save_dir), position_feed=feed)
    return session, feed


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format=LOG_FORMAT)
    session, feed = build_session(save_dir=args.save_dir, config_path=args.config)
    if args.ascii:
        return run_demo(session, feed)
    return run_pygame_viewer(session, feed, headless=args.headless)


if __name__ == "__main__":
    raise SystemExit(main())
