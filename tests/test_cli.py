"""Tests for the command-line entry point and its rich renderers."""

import asyncio
import sys

import pytest

from decktourney.__main__ import main, render_deck, render_history
from decktourney.config import load_config
from decktourney.tournament import TournamentEngine


def _argv(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["decktourney", *map(str, args)])


class TestRenderers:
    def test_render_deck_text(self):
        text = render_deck((1, 5, 9), played=1)
        assert text.plain == "1 5 9 "
        assert "strike" in str(text.spans[0].style)
        assert "strike" not in str(text.spans[1].style)

    def test_history_rows_newest_first(self, example_config_path, tmp_output):
        config = load_config(example_config_path)
        config.output_dir = tmp_output
        config.rounds = 2
        engine = TournamentEngine(config)
        asyncio.run(engine.run())
        table = render_history(engine.snapshot())
        assert table.row_count == 2
        assert list(table.columns[0].cells) == ["2", "1"]


class TestMain:
    def test_list_decks(self, monkeypatch, capsys, tmp_path, example_config_path):
        monkeypatch.chdir(tmp_path)
        _argv(monkeypatch, example_config_path, "--list-decks", "-o", tmp_path / "out")
        main()
        out = capsys.readouterr().out
        assert "Set 1" in out
        assert "Set 20" in out

    def test_full_run(self, monkeypatch, capsys, tmp_path, example_config_path):
        monkeypatch.chdir(tmp_path)
        _argv(monkeypatch, example_config_path, "-o", tmp_path / "out")
        main()
        out = capsys.readouterr().out
        assert "Round history" in out
        assert "Telemetry:" in out
        assert list((tmp_path / "out" / "telemetry").glob("*.jsonl"))

    def test_missing_config_exits(self, monkeypatch, tmp_path):
        _argv(monkeypatch, tmp_path / "nope.yaml")
        with pytest.raises(SystemExit) as exc:
            main()
        assert exc.value.code == 1
