"""Integration tests for TournamentEngine against the mock backend."""

import asyncio
import json

import pytest

from decktourney.config import (
    BackendConfig,
    DeckConfig,
    SkewConfig,
    TimingConfig,
    TournamentConfig,
    load_config,
)
from decktourney.core.backend import MockBackend
from decktourney.core.errors import TransportError
from decktourney.decks import FIXED_DECKS
from decktourney.scheduler import RunState
from decktourney.tournament import TournamentEngine

from helpers import ScriptedBackend


def _config(tmp_output, rounds=10, mode="fixed", swapped=False, **backend):
    return TournamentConfig(
        name="unit test",
        seed=7,
        rounds=rounds,
        backend=BackendConfig(provider="mock", **backend),
        decks=DeckConfig(mode=mode, swapped=swapped, skew=SkewConfig(first_round=2)),
        timing=TimingConfig(poll_interval_s=0.0, inter_round_pause_s=0.0),
        output_dir=tmp_output,
    )


def _read_jsonl(path):
    return [json.loads(line) for line in path.read_text().strip().split("\n")]


class TestEngineRun:
    def test_example_config_completes(self, example_config_path, tmp_output):
        config = load_config(example_config_path)
        config.output_dir = tmp_output
        engine = TournamentEngine(config)
        result = asyncio.run(engine.run())
        engine.close()

        assert result.completed
        stats = result.stats
        assert stats.rounds_played == 10
        assert stats.wins_a + stats.wins_b + stats.draws == len(stats.history)
        assert [r.round for r in stats.results] == list(range(1, 11))
        assert round(stats.win_rate_a, 1) == stats.win_rate_a

    def test_telemetry_written(self, tmp_output):
        engine = TournamentEngine(_config(tmp_output, rounds=2, plies_per_match=4))
        result = asyncio.run(engine.run())

        assert result.telemetry_path.parent == tmp_output / "telemetry"
        assert result.telemetry_path.name.startswith("unit-test-")
        records = _read_jsonl(result.telemetry_path)
        types = [r["record_type"] for r in records]
        assert types.count("round_summary") == 2
        assert types.count("ply") == 2 * 5
        assert types[-1] == "tournament_summary"
        summary = records[-1]
        assert summary["run_state"] == "tournament_complete"
        assert summary["tournament_name"] == "unit test"
        assert summary["deck_mode"] == "fixed"

    def test_fixed_decks_sent_in_order(self, tmp_output):
        backend = ScriptedBackend(winners=[0, 1, None])
        engine = TournamentEngine(_config(tmp_output, rounds=3), backend=backend)
        result = asyncio.run(engine.run())

        assert result.completed
        assert backend.started == [(FIXED_DECKS[i], FIXED_DECKS[10 + i]) for i in range(3)]
        assert [r.outcome.display for r in result.stats.results] == ["AI 1", "AI 2", "Draw"]

    def test_swapped_from_config(self, tmp_output):
        backend = ScriptedBackend(winners=[0])
        engine = TournamentEngine(_config(tmp_output, rounds=1, swapped=True), backend=backend)
        asyncio.run(engine.run())
        assert backend.started == [(FIXED_DECKS[10], FIXED_DECKS[0])]

    @pytest.mark.parametrize("mode", ["fair", "skewed"])
    def test_generated_modes_are_deterministic(self, tmp_output, mode):
        def decks_sent():
            backend = ScriptedBackend(winners=[0] * 3)
            engine = TournamentEngine(_config(tmp_output, rounds=3, mode=mode), backend=backend)
            asyncio.run(engine.run())
            return backend.started

        first = decks_sent()
        assert first == decks_sent()
        for deck_a, deck_b in first:
            assert len(deck_a) == len(deck_b) == 18

    def test_halt_reports_failure(self, tmp_output):
        class Unreachable(MockBackend):
            async def advance_match(self, match_id):
                raise TransportError("http://localhost:5000/ai_move unreachable: refused")

        engine = TournamentEngine(_config(tmp_output, rounds=3), backend=Unreachable())
        result = asyncio.run(engine.run())

        assert not result.completed
        assert result.state.run_state is RunState.IDLE
        assert result.state.status.startswith("AI move failed in round 1:")
        assert result.stats.rounds_played == 0
        summary = _read_jsonl(result.telemetry_path)[-1]
        assert summary["run_state"] == "idle"
        assert "unreachable" in summary["error"]


class TestEngineSurface:
    def test_initial_snapshot(self, tmp_output):
        engine = TournamentEngine(_config(tmp_output))
        snap = engine.snapshot()
        assert snap.run_state is RunState.IDLE
        assert snap.round_index == 0
        assert snap.total_rounds == 10
        assert snap.label_a is None
        assert snap.deck_a == ()
        assert snap.match is None
        assert snap.stats.rounds_played == 0
        assert snap.swapped is False
        assert snap.deck_mode == "fixed"

    def test_snapshot_after_run(self, tmp_output):
        engine = TournamentEngine(_config(tmp_output, rounds=2, plies_per_match=6))
        asyncio.run(engine.run())
        snap = engine.snapshot()
        assert snap.run_state is RunState.TOURNAMENT_COMPLETE
        assert snap.round_index == 2
        assert snap.label_a == "Set 2"
        assert snap.label_b == "Set 12"
        assert snap.match.game_over
        assert snap.status == "Tournament complete!"
        assert snap.error is None

    def test_toggle_via_engine(self, tmp_output):
        engine = TournamentEngine(_config(tmp_output))
        assert engine.toggle_deck_arrangement() is True
        snap = engine.snapshot()
        assert snap.swapped is True
        assert snap.status.startswith("Decks swapped. Ready.")

    def test_stop_when_idle_rejected(self, tmp_output):
        assert TournamentEngine(_config(tmp_output)).stop() is False

    def test_unknown_provider(self, tmp_output):
        config = _config(tmp_output)
        config.backend.provider = "carrier-pigeon"
        with pytest.raises(ValueError, match="Unsupported backend provider"):
            TournamentEngine(config)

    def test_unknown_strategy(self, tmp_output):
        with pytest.raises(ValueError, match="Unknown mock strategy"):
            TournamentEngine(_config(tmp_output, strategy="coin_flip"))

    def test_unknown_deck_mode(self, tmp_output):
        with pytest.raises(ValueError, match="Unknown deck mode"):
            TournamentEngine(_config(tmp_output, mode="random"))

    def test_http_provider_builds_http_backend(self, tmp_output):
        config = _config(tmp_output)
        config.backend = BackendConfig(provider="http", base_url="http://h:1", timeout_s=3.0)
        engine = TournamentEngine(config)
        assert engine.backend.base_url == "http://h:1"
        engine.close()
