"""MatchBackend — uniform interface to the external match service.

Provides ABC and concrete implementations:
- MockBackend: deterministic, in-process, for testing and offline runs
- HttpMatchBackend (http_backend.py): the real HTTP service
"""

from __future__ import annotations

import itertools
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Sequence

from decktourney.core.errors import BackendError
from decktourney.core.schemas import validate_match_state
from decktourney.core.state import BOARD_SIZE, DECK_SIZE, MatchState

logger = logging.getLogger(__name__)


class MatchBackend(ABC):
    """Abstract base for match backends.

    Both calls return the full authoritative match state. Implementations
    raise TransportError or BackendError, never library exceptions.
    """

    @abstractmethod
    async def start_match(
        self, deck_a: Sequence[int], deck_b: Sequence[int]
    ) -> MatchState:
        """Create a match from two 18-card decks."""

    @abstractmethod
    async def advance_match(self, match_id: str) -> MatchState:
        """Apply exactly one ply to the match and return the new state."""

    def close(self) -> None:
        """Release any held resources."""


# ----------------------------------------------------------------------
# Mock backend
# ----------------------------------------------------------------------

OutcomeStrategy = Callable[[list[int], list[int]], "int | None"]


def higher_sum_strategy(played_a: list[int], played_b: list[int]) -> int | None:
    """Larger total of played face values wins; equal totals draw."""
    total_a, total_b = sum(played_a), sum(played_b)
    if total_a > total_b:
        return 0
    if total_b > total_a:
        return 1
    return None


def always_a_strategy(played_a: list[int], played_b: list[int]) -> int | None:
    return 0


def always_b_strategy(played_a: list[int], played_b: list[int]) -> int | None:
    return 1


def always_draw_strategy(played_a: list[int], played_b: list[int]) -> int | None:
    return None


STRATEGY_REGISTRY: dict[str, OutcomeStrategy] = {
    "higher_sum": higher_sum_strategy,
    "always_a": always_a_strategy,
    "always_b": always_b_strategy,
    "always_draw": always_draw_strategy,
}

_HAND_SIZE = 3
_CENTER = BOARD_SIZE // 2

# Center first, then row-major over the remaining cells
_PLACEMENT_ORDER = [(_CENTER, _CENTER)] + [
    (r, c)
    for r in range(BOARD_SIZE)
    for c in range(BOARD_SIZE)
    if (r, c) != (_CENTER, _CENTER)
]


@dataclass
class _MockGame:
    game_id: str
    decks: list[list[int]]
    hands: list[list[int]]
    board: list[list[dict | None]] = field(
        default_factory=lambda: [[None] * BOARD_SIZE for _ in range(BOARD_SIZE)]
    )
    played: list[list[int]] = field(default_factory=lambda: [[], []])
    current: int = 0
    plies: int = 0
    winner: int | None = None
    over: bool = False


class MockBackend(MatchBackend):
    """Deterministic in-process backend.

    Each ply the current side plays the first card of its hand onto the
    board and draws from its deck. The match ends after ``plies_per_match``
    plies or when both sides are out of cards; the winner comes from the
    outcome strategy.
    """

    def __init__(
        self,
        strategy: OutcomeStrategy = higher_sum_strategy,
        plies_per_match: int = 2 * DECK_SIZE,
    ):
        if plies_per_match < 1:
            raise ValueError("plies_per_match must be positive")
        self._strategy = strategy
        self._plies_per_match = plies_per_match
        self._games: dict[str, _MockGame] = {}
        self._ids = itertools.count(1)
        self.start_calls = 0
        self.advance_calls = 0

    async def start_match(
        self, deck_a: Sequence[int], deck_b: Sequence[int]
    ) -> MatchState:
        self.start_calls += 1
        for deck in (deck_a, deck_b):
            if len(deck) != DECK_SIZE:
                raise BackendError("invalid deck size", status=400)
            if any(not 1 <= v <= 9 for v in deck):
                raise BackendError("invalid card value", status=400)

        decks = [list(deck_a), list(deck_b)]
        hands = [deck[:_HAND_SIZE] for deck in decks]
        decks = [deck[_HAND_SIZE:] for deck in decks]
        game = _MockGame(game_id=f"mock-{next(self._ids):04d}", decks=decks, hands=hands)
        self._games[game.game_id] = game
        logger.debug("mock match %s created", game.game_id)
        return self._state(game)

    async def advance_match(self, match_id: str) -> MatchState:
        self.advance_calls += 1
        game = self._games.get(match_id)
        if game is None:
            raise BackendError(f"game {match_id} not found", status=404)
        if not game.over:
            self._play_ply(game)
        return self._state(game)

    def _play_ply(self, game: _MockGame) -> None:
        pid = game.current
        card = game.hands[pid].pop(0)
        if game.decks[pid]:
            game.hands[pid].append(game.decks[pid].pop(0))
        r, c = _PLACEMENT_ORDER[game.plies % len(_PLACEMENT_ORDER)]
        game.board[r][c] = {"value": card, "player": pid}
        game.played[pid].append(card)
        game.plies += 1

        other = 1 - pid
        if game.hands[other]:
            game.current = other

        exhausted = not game.hands[0] and not game.hands[1]
        if game.plies >= self._plies_per_match or exhausted:
            game.over = True
            game.winner = self._strategy(game.played[0], game.played[1])

    def _state(self, game: _MockGame) -> MatchState:
        players = [
            {
                "id": pid,
                "name": f"AI {pid + 1}",
                "is_ai": True,
                "color_id": pid,
                "hand": list(game.hands[pid]),
                "deck_count": len(game.decks[pid]),
                "hand_count": len(game.hands[pid]),
                "total_cards": len(game.decks[pid]) + len(game.hands[pid]),
            }
            for pid in (0, 1)
        ]
        document = {
            "game_id": game.game_id,
            "board": [list(row) for row in game.board],
            "currentPlayerId": game.current,
            "winnerId": game.winner,
            "players": players,
            "gameOver": game.over,
        }
        return MatchState.from_document(validate_match_state(document))
