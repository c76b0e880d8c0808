"""Scripted backends and document builders shared by the tests."""

import asyncio

from decktourney.core.backend import MatchBackend
from decktourney.core.schemas import validate_match_state
from decktourney.core.state import MatchState

DECK = (1, 2, 3, 4, 5, 6, 7, 8, 9, 1, 2, 3, 4, 5, 6, 7, 8, 9)


def make_document(game_id="g1", current=0, winner=None, over=False, hand_count=3, deck_count=15):
    board = [[None] * 9 for _ in range(9)]
    return {
        "game_id": game_id,
        "board": board,
        "currentPlayerId": current,
        "winnerId": winner,
        "players": [
            {
                "id": pid,
                "name": f"AI {pid + 1}",
                "is_ai": True,
                "color_id": pid,
                "hand": [5] * hand_count,
                "deck_count": deck_count,
                "hand_count": hand_count,
                "total_cards": hand_count + deck_count,
            }
            for pid in (0, 1)
        ],
        "gameOver": over,
    }


def make_state(**kwargs) -> MatchState:
    return MatchState.from_document(validate_match_state(make_document(**kwargs)))


class ScriptedBackend(MatchBackend):
    """Match i (1-based) ends after ``plies`` advances with winners[i-1]."""

    def __init__(self, winners, plies=3):
        self.winners = list(winners)
        self.plies = plies
        self.started = []
        self.advance_calls = 0
        self._ply = {}

    async def start_match(self, deck_a, deck_b):
        self.started.append((tuple(deck_a), tuple(deck_b)))
        game_id = f"g{len(self.started)}"
        self._ply[game_id] = 0
        return make_state(game_id=game_id)

    async def advance_match(self, match_id):
        self.advance_calls += 1
        self._ply[match_id] += 1
        ply = self._ply[match_id]
        if ply >= self.plies:
            winner = self.winners[int(match_id[1:]) - 1]
            return make_state(game_id=match_id, current=ply % 2, winner=winner, over=True)
        return make_state(game_id=match_id, current=ply % 2)


class GatedBackend(ScriptedBackend):
    """Advance requests block until ``gate`` is set. Create inside a running loop."""

    def __init__(self, winners, plies=3):
        super().__init__(winners, plies)
        self.gate = asyncio.Event()
        self.in_flight = 0
        self.max_in_flight = 0

    async def advance_match(self, match_id):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await self.gate.wait()
        finally:
            self.in_flight -= 1
        return await super().advance_match(match_id)
