"""TelemetryLogger — JSONL tournament logging.

One logger per tournament run. Writes one JSONL line per observed match
state, one per completed round, and a run summary as the final line. All
entries include schema version and run ID.
"""

import json
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path

import decktourney
from decktourney.core.state import MatchState
from decktourney.results import RoundResult, StatsSnapshot

_SCHEMA_VERSION = "1.0.0"


class TelemetryLogger:
    """Writes JSONL telemetry for a single tournament run."""

    def __init__(self, output_dir: Path, run_id: str, context: dict | None = None):
        self._output_dir = Path(output_dir)
        self._run_id = run_id
        self._output_dir.mkdir(parents=True, exist_ok=True)
        self._file_path = self._output_dir / f"{run_id}.jsonl"
        self._context = context or {}

    @property
    def file_path(self) -> Path:
        return self._file_path

    @property
    def run_id(self) -> str:
        return self._run_id

    def log_state(self, round_index: int, ply: int, state: MatchState) -> None:
        record = {"record_type": "ply", "round": round_index, "ply": ply}
        record.update(state.to_record())
        self._append(record)

    def log_round(self, result: RoundResult, final_state: MatchState) -> None:
        record = {
            "record_type": "round_summary",
            "match_id": final_state.match_id,
            "winner_id": final_state.winner,
        }
        record.update(result.to_record())
        self._append(record)

    def finalize_run(
        self,
        stats: StatsSnapshot,
        run_state: str,
        error: str | None = None,
    ) -> None:
        stats_record = asdict(stats)
        stats_record.pop("history")
        record = {
            "record_type": "tournament_summary",
            "run_state": run_state,
            "error": error,
            "rounds_played": stats.rounds_played,
            "stats": stats_record,
            "results": [r.to_record() for r in stats.results],
            "engine_version": decktourney.__version__,
        }
        record.update(self._context)
        self._append(record)

    def _append(self, record: dict) -> None:
        record["schema_version"] = _SCHEMA_VERSION
        record["run_id"] = self._run_id
        record["timestamp"] = datetime.now(timezone.utc).isoformat()
        with open(self._file_path, "a") as f:
            f.write(json.dumps(record, default=str) + "\n")
