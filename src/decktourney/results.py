"""ResultAggregator — running tallies and round history for one tournament."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum


class Outcome(str, Enum):
    A = "A"
    B = "B"
    DRAW = "Draw"

    @classmethod
    def from_winner(cls, winner: int | None) -> Outcome:
        """Map the backend's winnerId (0, 1, or null) to an outcome."""
        if winner == 0:
            return cls.A
        if winner == 1:
            return cls.B
        return cls.DRAW

    @property
    def display(self) -> str:
        return {"A": "AI 1", "B": "AI 2", "Draw": "Draw"}[self.value]


@dataclass(frozen=True)
class RoundResult:
    """Outcome of one completed round."""

    round: int
    deck_label_a: str
    deck_label_b: str
    outcome: Outcome
    score: str = "N/A"  # the backend does not report a score

    def to_record(self) -> dict:
        record = asdict(self)
        record["outcome"] = self.outcome.value
        return record


@dataclass(frozen=True)
class StatsSnapshot:
    """Immutable view of the tallies. ``history`` is newest first."""

    wins_a: int
    wins_b: int
    draws: int
    win_rate_a: float
    win_rate_b: float
    history: tuple[RoundResult, ...]

    @property
    def rounds_played(self) -> int:
        return self.wins_a + self.wins_b + self.draws

    @property
    def results(self) -> tuple[RoundResult, ...]:
        """History in round order."""
        return tuple(reversed(self.history))


def win_rate(wins: int, played: int) -> float:
    """Percentage rounded to one decimal; 0.0 before any round is played."""
    if played == 0:
        return 0.0
    # half-up, so 6.25 shows as 6.3
    rate = Decimal(wins * 100) / Decimal(played)
    return float(rate.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


class ResultAggregator:
    """Accumulates round results. Reset only when a tournament starts."""

    def __init__(self) -> None:
        self._results: list[RoundResult] = []
        self._counts = {outcome: 0 for outcome in Outcome}

    def reset(self) -> None:
        self._results.clear()
        self._counts = {outcome: 0 for outcome in Outcome}

    def record(self, result: RoundResult) -> None:
        expected = len(self._results) + 1
        if result.round != expected:
            raise ValueError(
                f"round {result.round} recorded out of order, expected {expected}"
            )
        self._results.append(result)
        self._counts[result.outcome] += 1

    @property
    def results(self) -> tuple[RoundResult, ...]:
        return tuple(self._results)

    def snapshot(self) -> StatsSnapshot:
        played = len(self._results)
        wins_a = self._counts[Outcome.A]
        wins_b = self._counts[Outcome.B]
        return StatsSnapshot(
            wins_a=wins_a,
            wins_b=wins_b,
            draws=self._counts[Outcome.DRAW],
            win_rate_a=win_rate(wins_a, played),
            win_rate_b=win_rate(wins_b, played),
            history=tuple(reversed(self._results)),
        )
