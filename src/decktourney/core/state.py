"""MatchState — immutable view of the backend's authoritative match document."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

DECK_SIZE = 18
BOARD_SIZE = 9


@dataclass(frozen=True)
class Cell:
    """A card placed on the board."""

    value: int
    player: int


@dataclass(frozen=True)
class PlayerState:
    """One side's remaining cards as reported by the backend."""

    id: int
    name: str
    is_ai: bool
    color_id: int
    hand: tuple[int, ...]
    deck_count: int
    hand_count: int
    total_cards: int

    @property
    def cards_remaining(self) -> int:
        return self.hand_count + self.deck_count

    @property
    def cards_played(self) -> int:
        """Cards of the 18-card deck already on the board."""
        return max(0, DECK_SIZE - self.cards_remaining)

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> PlayerState:
        hand = tuple(doc.get("hand", ()))
        return cls(
            id=doc["id"],
            name=doc.get("name", f"AI {doc['id'] + 1}"),
            is_ai=doc.get("is_ai", True),
            color_id=doc.get("color_id", doc["id"]),
            hand=hand,
            deck_count=doc["deck_count"],
            hand_count=doc.get("hand_count", len(hand)),
            total_cards=doc.get("total_cards", doc["deck_count"] + len(hand)),
        )


@dataclass(frozen=True)
class MatchState:
    """Full match snapshot returned by /start_ai_test and /ai_move."""

    match_id: str
    board: tuple[tuple[Cell | None, ...], ...]
    current_player: int
    winner: int | None
    players: tuple[PlayerState, ...]
    game_over: bool

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> MatchState:
        """Build from a schema-validated backend document."""
        board = tuple(
            tuple(
                Cell(value=cell["value"], player=cell["player"]) if cell else None
                for cell in row
            )
            for row in doc["board"]
        )
        return cls(
            match_id=doc["game_id"],
            board=board,
            current_player=doc["currentPlayerId"],
            winner=doc["winnerId"],
            players=tuple(PlayerState.from_document(p) for p in doc["players"]),
            game_over=doc["gameOver"],
        )

    def player(self, player_id: int) -> PlayerState:
        for p in self.players:
            if p.id == player_id:
                return p
        raise KeyError(player_id)

    def cards_on_board(self) -> int:
        return sum(1 for row in self.board for cell in row if cell is not None)

    def to_record(self) -> dict[str, Any]:
        """Compact summary used by telemetry (the board is reduced to a count)."""
        return {
            "match_id": self.match_id,
            "current_player": self.current_player,
            "winner": self.winner,
            "game_over": self.game_over,
            "cards_on_board": self.cards_on_board(),
            "players": {
                str(p.id): {
                    "hand": list(p.hand),
                    "deck_count": p.deck_count,
                    "hand_count": p.hand_count,
                    "cards_played": p.cards_played,
                }
                for p in self.players
            },
        }
