"""Tests for TelemetryLogger — JSONL tournament logging."""

import json

import pytest

from decktourney.core.telemetry import TelemetryLogger
from decktourney.results import Outcome, ResultAggregator, RoundResult

from helpers import make_state


@pytest.fixture
def telemetry(tmp_path):
    return TelemetryLogger(output_dir=tmp_path, run_id="test-run-001", context={"seed": 42})


def _lines(tmp_path):
    text = (tmp_path / "test-run-001.jsonl").read_text().strip()
    return [json.loads(line) for line in text.split("\n")]


class TestTelemetryLogger:
    def test_log_state_writes_ply_record(self, telemetry, tmp_path):
        telemetry.log_state(3, 0, make_state(game_id="g7"))
        (record,) = _lines(tmp_path)
        assert record["record_type"] == "ply"
        assert record["round"] == 3
        assert record["ply"] == 0
        assert record["match_id"] == "g7"
        assert record["run_id"] == "test-run-001"
        assert "schema_version" in record
        assert "timestamp" in record

    def test_log_round(self, telemetry, tmp_path):
        result = RoundResult(3, "Set 3", "Set 13", Outcome.A)
        telemetry.log_round(result, make_state(game_id="g3", winner=0, over=True))
        (record,) = _lines(tmp_path)
        assert record["record_type"] == "round_summary"
        assert record["match_id"] == "g3"
        assert record["winner_id"] == 0
        assert record["round"] == 3
        assert record["deck_label_a"] == "Set 3"
        assert record["outcome"] == "A"

    def test_finalize_run_appends_summary(self, telemetry, tmp_path):
        aggregator = ResultAggregator()
        aggregator.record(RoundResult(1, "Set 1", "Set 11", Outcome.A))
        aggregator.record(RoundResult(2, "Set 2", "Set 12", Outcome.DRAW))
        telemetry.log_state(1, 0, make_state())
        telemetry.finalize_run(aggregator.snapshot(), run_state="tournament_complete")

        lines = _lines(tmp_path)
        assert len(lines) == 2
        summary = lines[-1]
        assert summary["record_type"] == "tournament_summary"
        assert summary["run_state"] == "tournament_complete"
        assert summary["error"] is None
        assert summary["rounds_played"] == 2
        assert summary["stats"]["wins_a"] == 1
        assert summary["stats"]["draws"] == 1
        assert "history" not in summary["stats"]
        assert [r["round"] for r in summary["results"]] == [1, 2]
        assert summary["seed"] == 42
        assert "engine_version" in summary

    def test_finalize_with_error(self, telemetry, tmp_path):
        telemetry.finalize_run(ResultAggregator().snapshot(), run_state="idle", error="boom")
        (summary,) = _lines(tmp_path)
        assert summary["error"] == "boom"
        assert summary["rounds_played"] == 0

    def test_creates_output_dir(self, tmp_path):
        nested = tmp_path / "a" / "b"
        telemetry = TelemetryLogger(output_dir=nested, run_id="r")
        assert nested.is_dir()
        assert telemetry.file_path == nested / "r.jsonl"
