"""TournamentEngine — wires backend, decks, driver, scheduler and results.

Builds the backend and deck policy from config, owns one RoundScheduler,
and exposes the presentation-facing surface: an immutable snapshot plus
the start / toggle / stop commands.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from decktourney.config import BackendConfig, DeckConfig, TournamentConfig
from decktourney.core.backend import STRATEGY_REGISTRY, MatchBackend, MockBackend
from decktourney.core.http_backend import HttpMatchBackend
from decktourney.core.seed import SeedManager
from decktourney.core.state import MatchState
from decktourney.core.telemetry import TelemetryLogger
from decktourney.decks import DeckAllocator, DeckPolicy, build_policy
from decktourney.driver import MatchDriver
from decktourney.results import ResultAggregator, StatsSnapshot
from decktourney.scheduler import RoundScheduler, RunState, SchedulerState


@dataclass(frozen=True)
class EngineSnapshot:
    """Everything a presentation layer needs, read-only."""

    run_state: RunState
    round_index: int
    total_rounds: int
    status: str
    label_a: str | None
    label_b: str | None
    deck_a: tuple[int, ...]
    deck_b: tuple[int, ...]
    swapped: bool
    deck_mode: str
    match: MatchState | None
    stats: StatsSnapshot
    error: str | None


@dataclass
class TournamentResult:
    """Outcome of one tournament run."""

    state: SchedulerState
    stats: StatsSnapshot
    telemetry_path: Path | None

    @property
    def completed(self) -> bool:
        return self.state.run_state is RunState.TOURNAMENT_COMPLETE


class TournamentEngine:
    """Runs tournaments defined by a TournamentConfig."""

    def __init__(
        self,
        config: TournamentConfig,
        backend: MatchBackend | None = None,
    ) -> None:
        self.config = config
        self.seed_mgr = SeedManager(config.seed)
        self.telemetry_dir = self._resolve_telemetry_dir()
        self.backend = backend or self._build_backend(config.backend)
        self.allocator = DeckAllocator(
            self._build_policy(config.decks),
            total_rounds=config.rounds,
            seeds=self.seed_mgr,
            swapped=config.decks.swapped,
        )
        self.aggregator = ResultAggregator()
        self.driver = MatchDriver(
            self.backend, poll_interval_s=config.timing.poll_interval_s
        )
        self.scheduler = RoundScheduler(
            self.allocator,
            self.driver,
            self.aggregator,
            inter_round_pause_s=config.timing.inter_round_pause_s,
            telemetry_factory=self._build_telemetry,
        )
        self._last_telemetry_path: Path | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def snapshot(self) -> EngineSnapshot:
        state = self.scheduler.state
        decks = state.decks
        return EngineSnapshot(
            run_state=state.run_state,
            round_index=state.round_index,
            total_rounds=state.total_rounds,
            status=state.status,
            label_a=decks.label_a if decks else None,
            label_b=decks.label_b if decks else None,
            deck_a=decks.deck_a if decks else (),
            deck_b=decks.deck_b if decks else (),
            swapped=self.allocator.swapped,
            deck_mode=self.allocator.mode,
            match=state.match,
            stats=self.aggregator.snapshot(),
            error=state.error,
        )

    def start_tournament(self) -> bool:
        """Start a run in the background. Must be called inside an event loop."""
        return self.scheduler.start_tournament()

    def toggle_deck_arrangement(self) -> bool:
        return self.scheduler.toggle_deck_arrangement()

    def stop(self) -> bool:
        return self.scheduler.stop()

    async def wait(self) -> TournamentResult:
        state = await self.scheduler.wait()
        return TournamentResult(
            state=state,
            stats=self.aggregator.snapshot(),
            telemetry_path=self._last_telemetry_path,
        )

    async def run(self) -> TournamentResult:
        """Execute a full tournament and return the result."""
        await self.scheduler.run_tournament()
        return await self.wait()

    def close(self) -> None:
        self.driver.stop()
        self.backend.close()

    # ------------------------------------------------------------------
    # Internal: setup
    # ------------------------------------------------------------------

    def _resolve_telemetry_dir(self) -> Path:
        """Create and return the telemetry output directory."""
        if self.config.output_dir:
            d = Path(self.config.output_dir) / "telemetry"
        else:
            d = Path("output") / "telemetry"
        d.mkdir(parents=True, exist_ok=True)
        return d

    def _build_backend(self, bcfg: BackendConfig) -> MatchBackend:
        """Map the backend config to a concrete backend."""
        if bcfg.provider == "mock":
            strategy_fn = STRATEGY_REGISTRY.get(bcfg.strategy)
            if strategy_fn is None:
                raise ValueError(
                    f"Unknown mock strategy: {bcfg.strategy!r}. "
                    f"Available: {list(STRATEGY_REGISTRY)}"
                )
            return MockBackend(strategy=strategy_fn, plies_per_match=bcfg.plies_per_match)
        if bcfg.provider == "http":
            return HttpMatchBackend(base_url=bcfg.base_url, timeout_s=bcfg.timeout_s)
        raise ValueError(f"Unsupported backend provider: {bcfg.provider!r}")

    def _build_policy(self, dcfg: DeckConfig) -> DeckPolicy:
        if dcfg.mode == "fixed":
            return build_policy("fixed", pool_a=dcfg.pool_a, pool_b=dcfg.pool_b)
        if dcfg.mode == "skewed":
            return build_policy(
                "skewed",
                side=dcfg.skew.side,
                first_round=dcfg.skew.first_round,
                last_round=dcfg.skew.last_round,
                weights=dcfg.skew.weights,
            )
        return build_policy(dcfg.mode)

    def _build_telemetry(self, run: int) -> TelemetryLogger:
        slug = re.sub(r"[^A-Za-z0-9_.-]+", "-", self.config.name).strip("-") or "tournament"
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
        telemetry = TelemetryLogger(
            self.telemetry_dir,
            run_id=f"{slug}-{stamp}-run{run:03d}",
            context={
                "tournament_name": self.config.name,
                "seed": self.config.seed,
                "deck_mode": self.allocator.mode,
                "swapped": self.allocator.swapped,
            },
        )
        self._last_telemetry_path = telemetry.file_path
        return telemetry
