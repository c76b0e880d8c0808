"""MatchDriver — drives one backend match from creation to game over.

The driver owns the only active MatchState. Polling is an explicit asyncio
task that sleeps ``poll_interval_s`` between plies and checks the stop flag
before every tick. ``advance()`` is single-flight: a call made while another
request is outstanding is dropped, as is any response that arrives after
the driver was stopped or moved on to a new match.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Sequence

from decktourney.core.backend import MatchBackend
from decktourney.core.state import MatchState

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_S = 0.05

StateListener = Callable[[MatchState], None]


class SingleFlight:
    """Compare-and-set guard allowing at most one holder at a time."""

    def __init__(self) -> None:
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def try_acquire(self) -> bool:
        if self._held:
            return False
        self._held = True
        return True

    def release(self) -> None:
        self._held = False


class MatchDriver:
    """Starts a match and polls the backend one ply at a time.

    ``on_request`` is called with the current state just before each
    advance request goes out.
    """

    def __init__(
        self,
        backend: MatchBackend,
        poll_interval_s: float = DEFAULT_POLL_INTERVAL_S,
        on_state: StateListener | None = None,
        on_game_over: StateListener | None = None,
        on_request: StateListener | None = None,
    ):
        self.backend = backend
        self.poll_interval_s = poll_interval_s
        self.on_state = on_state
        self.on_game_over = on_game_over
        self.on_request = on_request
        self._state: MatchState | None = None
        self._guard = SingleFlight()
        self._poll_task: asyncio.Task | None = None
        self._stopped = False
        self._finished = False
        self._generation = 0

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> MatchState | None:
        return self._state

    @property
    def in_flight(self) -> bool:
        return self._guard.held

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def active(self) -> bool:
        return (
            self._state is not None
            and not self._state.game_over
            and not self._stopped
        )

    # ------------------------------------------------------------------
    # Match lifecycle
    # ------------------------------------------------------------------

    async def start(self, deck_a: Sequence[int], deck_b: Sequence[int]) -> MatchState:
        """Create a new match. Backend errors propagate to the caller."""
        self.stop()
        self._generation += 1
        generation = self._generation
        self._state = None
        self._stopped = False
        self._finished = False

        state = await self.backend.start_match(deck_a, deck_b)
        if generation != self._generation:
            logger.debug("discarding start of superseded match %s", state.match_id)
            return state
        logger.info("match %s started, P%d to move", state.match_id, state.current_player + 1)
        self._accept(state)
        return state

    async def advance(self) -> MatchState | None:
        """Request one ply. Returns None when the call is ignored.

        The call is ignored when no match is active, the match is over,
        the driver is stopped, or another advance is still outstanding.
        """
        state = self._state
        if state is None or state.game_over or self._stopped:
            return None
        if not self._guard.try_acquire():
            logger.debug("advance for %s dropped: request outstanding", state.match_id)
            return None

        generation = self._generation
        try:
            if self.on_request is not None:
                self.on_request(state)
            new_state = await self.backend.advance_match(state.match_id)
        finally:
            self._guard.release()

        if self._stopped or generation != self._generation:
            logger.debug("discarding late state for abandoned match %s", state.match_id)
            return None
        self._accept(new_state)
        return new_state

    async def play(self) -> MatchState:
        """Poll until the backend reports game over and return the final state.

        Backend errors end polling and propagate. Stopping the driver
        cancels the polling task, which raises CancelledError here.
        """
        if self._state is None:
            raise RuntimeError("no match started")
        if self._poll_task is not None and not self._poll_task.done():
            raise RuntimeError("match is already being polled")
        self._poll_task = asyncio.create_task(
            self._poll_loop(), name=f"poll-{self._state.match_id}"
        )
        return await self._poll_task

    def stop(self) -> None:
        """Stop polling. An in-flight request completes and is discarded."""
        self._stopped = True
        task, self._poll_task = self._poll_task, None
        if task is not None and not task.done():
            task.cancel()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _poll_loop(self) -> MatchState:
        while not self._stopped:
            state = self._state
            if state is not None and state.game_over:
                return state
            await asyncio.sleep(self.poll_interval_s)
            if self._stopped:
                break
            await self.advance()
        raise asyncio.CancelledError()

    def _accept(self, state: MatchState) -> None:
        self._state = state
        if self.on_state is not None:
            self.on_state(state)
        if state.game_over and not self._finished:
            self._finished = True
            logger.info("match %s over, winner: %s", state.match_id, state.winner)
            if self.on_game_over is not None:
                self.on_game_over(state)
