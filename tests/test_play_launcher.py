from pathlib import Path

from tokengrid.cli.play import DEFAULT_SAVE_DIR, _build_parser, main
from tokengrid.content.storage import FileKeyValueStore


def test_play_parser_defaults() -> None:
    args = _build_parser().parse_args([])

    assert args.save_dir == DEFAULT_SAVE_DIR
    assert args.config is None
    assert args.ascii is False
    assert args.headless is False


def test_play_launcher_runs_pygame_viewer_with_file_backed_session(tmp_path: Path, monkeypatch) -> None:
    captured = {}

    def fake_run(session, feed, **kwargs):
        captured["session"] = session
        captured["feed"] = feed
        captured.update(kwargs)
        return 0

    monkeypatch.setattr("tokengrid.cli.play.run_pygame_viewer", fake_run)

    result = main(["--headless", "--save-dir", str(tmp_path), "--config", "content/config/default_config.json"])

    assert result == 0
    assert captured["headless"] is True
    assert isinstance(captured["session"].snapshots.store, FileKeyValueStore)
    assert captured["session"].position_feed is captured["feed"]


def test_play_launcher_ascii_mode_uses_terminal_front_end(tmp_path: Path, monkeypatch) -> None:
    calls = []

    def fake_demo(session, feed):
        calls.append(session)
        session.press_key("w")
        return 0

    monkeypatch.setattr("tokengrid.cli.play.run_demo", fake_demo)
    monkeypatch.setattr("tokengrid.cli.play.run_pygame_viewer", lambda *args, **kwargs: 1)

    result = main(["--ascii", "--save-dir", str(tmp_path)])

    assert result == 0
    assert len(calls) == 1
    assert (tmp_path / "tokengrid_snapshot.json").exists()
