"""RoundScheduler — sequences rounds 1..N through their lifecycle.

State machine::

    IDLE -> ROUND_STARTING -> ROUND_IN_PROGRESS -> ROUND_COMPLETE
         -> ROUND_STARTING (next round) | TOURNAMENT_COMPLETE

IDLE is reached again after a backend failure or an explicit stop. Toggling
the deck arrangement after a finished tournament also returns to IDLE.

The scheduler state is a frozen record. Every change goes through one of
the pure transition functions below, which raise InvalidStateError when
the current state does not allow it. Only RoundScheduler applies them.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable

from decktourney.core.errors import BackendError, InvalidStateError, TransportError
from decktourney.core.state import MatchState
from decktourney.core.telemetry import TelemetryLogger
from decktourney.decks import DeckAllocator, RoundDecks
from decktourney.driver import MatchDriver
from decktourney.results import Outcome, ResultAggregator, RoundResult

logger = logging.getLogger(__name__)

DEFAULT_INTER_ROUND_PAUSE_S = 1.0


class RunState(str, Enum):
    IDLE = "idle"
    ROUND_STARTING = "round_starting"
    ROUND_IN_PROGRESS = "round_in_progress"
    ROUND_COMPLETE = "round_complete"
    TOURNAMENT_COMPLETE = "tournament_complete"


_RUNNING = frozenset(
    {RunState.ROUND_STARTING, RunState.ROUND_IN_PROGRESS, RunState.ROUND_COMPLETE}
)


@dataclass(frozen=True)
class SchedulerState:
    """Tagged record of where the tournament is."""

    run_state: RunState
    round_index: int
    total_rounds: int
    status: str
    decks: RoundDecks | None = None
    match: MatchState | None = None
    error: str | None = None

    @property
    def running(self) -> bool:
        return self.run_state in _RUNNING


# ----------------------------------------------------------------------
# Pure transitions
# ----------------------------------------------------------------------


def _require(state: SchedulerState, command: str, *allowed: RunState) -> None:
    if state.run_state not in allowed:
        raise InvalidStateError(command, state.run_state.value)


def initial_state(total_rounds: int) -> SchedulerState:
    return SchedulerState(
        run_state=RunState.IDLE,
        round_index=0,
        total_rounds=total_rounds,
        status=f"Ready to start tournament ({total_rounds} rounds).",
    )


def start_tournament(state: SchedulerState) -> SchedulerState:
    _require(state, "start_tournament", RunState.IDLE, RunState.TOURNAMENT_COMPLETE)
    return replace(
        state,
        run_state=RunState.ROUND_STARTING,
        round_index=1,
        decks=None,
        match=None,
        error=None,
        status=f"Starting tournament ({state.total_rounds} rounds).",
    )


def begin_round(state: SchedulerState, decks: RoundDecks) -> SchedulerState:
    _require(state, "begin_round", RunState.ROUND_STARTING)
    return replace(
        state,
        decks=decks,
        match=None,
        status=(
            f"Starting round {state.round_index} / {state.total_rounds} "
            f"(P0: {decks.label_a}, P1: {decks.label_b})..."
        ),
    )


def round_started(state: SchedulerState, match: MatchState) -> SchedulerState:
    _require(state, "round_started", RunState.ROUND_STARTING)
    return replace(
        state,
        run_state=RunState.ROUND_IN_PROGRESS,
        match=match,
        status=(
            f"Round {state.round_index} / {state.total_rounds} started. "
            f"Turn P{match.current_player + 1}."
        ),
    )


def move_requested(state: SchedulerState, match: MatchState) -> SchedulerState:
    _require(state, "move_requested", RunState.ROUND_IN_PROGRESS)
    return replace(
        state,
        status=(
            f"Round {state.round_index} / {state.total_rounds}: "
            f"AI P{match.current_player + 1} is thinking..."
        ),
    )


def match_updated(state: SchedulerState, match: MatchState) -> SchedulerState:
    _require(state, "match_updated", RunState.ROUND_IN_PROGRESS)
    status = state.status
    if not match.game_over:
        status = (
            f"Round {state.round_index} / {state.total_rounds}: "
            f"turn P{match.current_player + 1}."
        )
    return replace(state, match=match, status=status)


def round_complete(
    state: SchedulerState, match: MatchState, outcome: Outcome
) -> SchedulerState:
    _require(state, "round_complete", RunState.ROUND_IN_PROGRESS)
    return replace(
        state,
        run_state=RunState.ROUND_COMPLETE,
        match=match,
        status=f"GAME OVER round {state.round_index}! Winner: {outcome.display}.",
    )


def next_round(state: SchedulerState) -> SchedulerState:
    _require(state, "next_round", RunState.ROUND_COMPLETE)
    if state.round_index >= state.total_rounds:
        raise InvalidStateError("next_round", "final round complete")
    return replace(
        state,
        run_state=RunState.ROUND_STARTING,
        round_index=state.round_index + 1,
        decks=None,
        match=None,
    )


def finish_tournament(state: SchedulerState) -> SchedulerState:
    _require(state, "finish_tournament", RunState.ROUND_COMPLETE)
    if state.round_index != state.total_rounds:
        raise InvalidStateError("finish_tournament", f"round {state.round_index}")
    return replace(state, run_state=RunState.TOURNAMENT_COMPLETE, status="Tournament complete!")


def fail(state: SchedulerState, message: str) -> SchedulerState:
    _require(state, "fail", *_RUNNING)
    return replace(state, run_state=RunState.IDLE, error=message, status=message)


def stop(state: SchedulerState) -> SchedulerState:
    _require(state, "stop", *_RUNNING)
    return replace(
        state,
        run_state=RunState.IDLE,
        status=f"Tournament stopped during round {state.round_index}.",
    )


def toggle_arrangement(state: SchedulerState, description: str) -> SchedulerState:
    _require(
        state, "toggle_deck_arrangement", RunState.IDLE, RunState.TOURNAMENT_COMPLETE
    )
    return replace(
        state,
        run_state=RunState.IDLE,
        round_index=0,
        decks=None,
        match=None,
        error=None,
        status=f"Decks swapped. Ready. {description}.",
    )


# ----------------------------------------------------------------------
# Scheduler
# ----------------------------------------------------------------------

TelemetryFactory = Callable[[int], "TelemetryLogger | None"]
StateObserver = Callable[[SchedulerState], None]


class RoundScheduler:
    """Runs rounds sequentially: decks, match, result, pause, next round.

    Commands return True when accepted and False when the current state
    does not allow them; a rejected command changes nothing.
    ``start_tournament`` must be called from inside a running event loop.
    """

    def __init__(
        self,
        allocator: DeckAllocator,
        driver: MatchDriver,
        aggregator: ResultAggregator,
        inter_round_pause_s: float = DEFAULT_INTER_ROUND_PAUSE_S,
        telemetry_factory: TelemetryFactory | None = None,
    ):
        self.allocator = allocator
        self.driver = driver
        self.aggregator = aggregator
        self.inter_round_pause_s = inter_round_pause_s
        self._telemetry_factory = telemetry_factory
        self._telemetry: TelemetryLogger | None = None
        self._state = initial_state(allocator.total_rounds)
        self._observers: list[StateObserver] = []
        self._task: asyncio.Task | None = None
        self._runs = 0
        self._ply = 0
        driver.on_state = self._on_match_state
        driver.on_request = self._on_move_request

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def telemetry(self) -> TelemetryLogger | None:
        return self._telemetry

    def subscribe(self, observer: StateObserver) -> None:
        self._observers.append(observer)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def start_tournament(self) -> bool:
        loop = asyncio.get_running_loop()
        try:
            new_state = start_tournament(self._state)
        except InvalidStateError as e:
            logger.debug("ignored: %s", e)
            return False
        self.aggregator.reset()
        self._runs += 1
        self.allocator.prepare(run=self._runs)
        self._telemetry = (
            self._telemetry_factory(self._runs) if self._telemetry_factory else None
        )
        self._set(new_state)
        self._task = loop.create_task(
            self._run(), name=f"tournament-run-{self._runs}"
        )
        return True

    def toggle_deck_arrangement(self) -> bool:
        description = self.allocator.describe(swapped=not self.allocator.swapped)
        try:
            new_state = toggle_arrangement(self._state, description)
        except InvalidStateError as e:
            logger.debug("ignored: %s", e)
            return False
        self.allocator.toggle_swap()
        self.aggregator.reset()
        self._set(new_state)
        return True

    def stop(self) -> bool:
        try:
            new_state = stop(self._state)
        except InvalidStateError as e:
            logger.debug("ignored: %s", e)
            return False
        self.driver.stop()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._set(new_state)
        self._finalize_telemetry()
        return True

    async def wait(self) -> SchedulerState:
        """Wait for the current run to end (complete, failed or stopped)."""
        task = self._task
        if task is not None:
            await asyncio.wait({task})
            if not task.cancelled():
                task.result()
        return self._state

    async def run_tournament(self) -> SchedulerState:
        """Start a tournament and wait for it to end."""
        if not self.start_tournament():
            raise InvalidStateError("start_tournament", self._state.run_state.value)
        return await self.wait()

    # ------------------------------------------------------------------
    # Internal: round loop
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        while await self._play_round():
            if self._state.round_index >= self._state.total_rounds:
                self._set(finish_tournament(self._state))
                logger.info("tournament complete: %s", self.aggregator.snapshot())
                self._finalize_telemetry()
                return
            await asyncio.sleep(self.inter_round_pause_s)
            self._set(next_round(self._state))

    async def _play_round(self) -> bool:
        """Play the current round. Returns False if the run was halted."""
        round_index = self._state.round_index
        decks = self.allocator.decks_for(round_index)
        self._ply = 0
        self._set(begin_round(self._state, decks))

        try:
            match = await self.driver.start(decks.deck_a, decks.deck_b)
        except (TransportError, BackendError) as e:
            self._halt(f"Failed to start round {round_index}: {e}")
            return False
        self._set(round_started(self._state, match))

        try:
            final = await self.driver.play()
        except (TransportError, BackendError) as e:
            self._halt(f"AI move failed in round {round_index}: {e}")
            return False

        outcome = Outcome.from_winner(final.winner)
        result = RoundResult(
            round=round_index,
            deck_label_a=decks.label_a,
            deck_label_b=decks.label_b,
            outcome=outcome,
        )
        self.aggregator.record(result)
        self._set(round_complete(self._state, final, outcome))
        if self._telemetry is not None:
            self._telemetry.log_round(result, final)
        return True

    def _halt(self, message: str) -> None:
        logger.error("tournament halted: %s", message)
        self.driver.stop()
        self._set(fail(self._state, message))
        self._finalize_telemetry()

    # ------------------------------------------------------------------
    # Internal: state plumbing
    # ------------------------------------------------------------------

    def _on_match_state(self, match: MatchState) -> None:
        if self._telemetry is not None:
            self._telemetry.log_state(self._state.round_index, self._ply, match)
        self._ply += 1
        if self._state.run_state is RunState.ROUND_IN_PROGRESS:
            self._set(match_updated(self._state, match))

    def _on_move_request(self, match: MatchState) -> None:
        if self._state.run_state is RunState.ROUND_IN_PROGRESS:
            self._set(move_requested(self._state, match))

    def _set(self, new_state: SchedulerState) -> None:
        old = self._state
        self._state = new_state
        if old.run_state is not new_state.run_state:
            logger.debug(
                "round %d: %s -> %s",
                new_state.round_index, old.run_state.value, new_state.run_state.value,
            )
        for observer in self._observers:
            observer(new_state)

    def _finalize_telemetry(self) -> None:
        telemetry, self._telemetry = self._telemetry, None
        if telemetry is not None:
            telemetry.finalize_run(
                self.aggregator.snapshot(),
                run_state=self._state.run_state.value,
                error=self._state.error,
            )
