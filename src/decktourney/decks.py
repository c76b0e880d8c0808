"""DeckAllocator — which 18-card deck each side plays in each round.

Three policies are available:
- fixed:  two disjoint pools of pre-defined sets, round i plays A[i] vs B[i]
- fair:   independent uniform shuffles of two copies of 1..9 per side
- skewed: like fair, but one side gets low-heavy decks for a range of rounds

The swap flag exchanges sides for every policy. Generated decks are built
once per run by ``prepare()`` and then held fixed, so ``decks_for`` is a
pure lookup.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence

from decktourney.core.seed import SeedManager
from decktourney.core.state import DECK_SIZE

CARD_VALUES = tuple(range(1, 10))
NO_LABEL = "N/A"

# The 20 tournament sets. Sets 1-10 feed side A and 11-20 side B by default.
FIXED_DECKS: tuple[tuple[int, ...], ...] = (
    (6, 1, 3, 8, 4, 2, 7, 6, 9, 2, 3, 4, 9, 5, 1, 5, 8, 7),
    (5, 1, 3, 7, 6, 8, 2, 3, 4, 8, 5, 9, 7, 9, 6, 1, 2, 4),
    (6, 2, 5, 6, 5, 4, 1, 3, 3, 2, 8, 7, 8, 9, 1, 4, 9, 7),
    (3, 7, 6, 4, 5, 7, 2, 6, 5, 4, 8, 1, 1, 9, 2, 9, 3, 8),
    (9, 6, 1, 3, 6, 4, 4, 8, 9, 5, 2, 3, 7, 1, 8, 7, 5, 2),
    (9, 2, 6, 1, 6, 3, 8, 7, 4, 2, 8, 9, 5, 3, 7, 5, 4, 1),
    (3, 7, 4, 5, 7, 6, 9, 3, 9, 5, 6, 2, 8, 2, 4, 1, 8, 1),
    (3, 7, 1, 5, 6, 1, 4, 2, 5, 9, 4, 8, 3, 8, 9, 2, 7, 6),
    (5, 6, 3, 8, 8, 9, 1, 5, 7, 4, 1, 7, 3, 9, 2, 6, 4, 2),
    (9, 5, 3, 2, 8, 6, 4, 3, 4, 2, 7, 1, 8, 1, 7, 9, 6, 5),
    (3, 1, 3, 2, 9, 6, 2, 8, 1, 7, 4, 8, 7, 4, 6, 5, 9, 5),
    (1, 6, 3, 4, 6, 4, 7, 7, 9, 3, 5, 5, 8, 2, 2, 1, 9, 8),
    (9, 8, 9, 3, 4, 6, 6, 7, 3, 1, 2, 5, 2, 4, 1, 8, 5, 7),
    (2, 6, 5, 9, 1, 6, 3, 7, 7, 2, 9, 1, 8, 8, 4, 3, 5, 4),
    (3, 4, 8, 9, 4, 7, 7, 6, 2, 5, 1, 1, 3, 6, 2, 5, 8, 9),
    (5, 1, 4, 9, 2, 9, 8, 6, 5, 8, 7, 3, 6, 1, 4, 7, 3, 2),
    (2, 8, 2, 3, 4, 7, 1, 8, 3, 6, 6, 5, 1, 4, 5, 9, 7, 9),
    (5, 9, 6, 7, 1, 3, 4, 4, 9, 5, 2, 8, 2, 3, 8, 1, 7, 6),
    (9, 1, 9, 4, 5, 5, 2, 2, 3, 8, 8, 7, 4, 3, 7, 1, 6, 6),
    (2, 4, 7, 1, 6, 2, 5, 3, 8, 3, 5, 7, 4, 8, 9, 1, 9, 6),
)

# Low cards dominate: 1-3 make up about two thirds of a skewed deck.
DEFAULT_SKEW_WEIGHTS: dict[int, int] = {
    1: 6, 2: 6, 3: 5, 4: 2, 5: 2, 6: 1, 7: 1, 8: 1, 9: 1,
}


@dataclass(frozen=True)
class RoundDecks:
    """Deck assignment for one round."""

    round_index: int
    deck_a: tuple[int, ...]
    deck_b: tuple[int, ...]
    label_a: str
    label_b: str

    def mirrored(self) -> RoundDecks:
        return RoundDecks(
            round_index=self.round_index,
            deck_a=self.deck_b,
            deck_b=self.deck_a,
            label_a=self.label_b,
            label_b=self.label_a,
        )


@dataclass(frozen=True)
class CatalogueEntry:
    """One known deck and the side currently playing it."""

    label: str
    deck: tuple[int, ...]
    side: str  # "A" or "B"


def validate_deck(deck: Sequence[int]) -> tuple[int, ...]:
    """Return the deck as a tuple, or raise ValueError if it is not 18 cards of 1..9."""
    cards = tuple(deck)
    if len(cards) != DECK_SIZE:
        raise ValueError(f"deck must have {DECK_SIZE} cards, got {len(cards)}")
    for v in cards:
        if not isinstance(v, int) or isinstance(v, bool) or not 1 <= v <= 9:
            raise ValueError(f"card value out of range 1..9: {v!r}")
    return cards


def fisher_yates(cards: Sequence[int], rng) -> list[int]:
    """Uniform in-place style shuffle on a copy of ``cards``."""
    out = list(cards)
    for i in range(len(out) - 1, 0, -1):
        j = rng.randint(0, i)
        out[i], out[j] = out[j], out[i]
    return out


def fair_deck(rng) -> tuple[int, ...]:
    """Two copies of 1..9 in uniformly random order."""
    return tuple(fisher_yates(CARD_VALUES * 2, rng))


def skewed_deck(rng, weights: dict[int, int] | None = None) -> tuple[int, ...]:
    """18 cards drawn independently with low-heavy weights."""
    weights = weights or DEFAULT_SKEW_WEIGHTS
    values = sorted(weights)
    return validate_deck(
        rng.choices(values, weights=[weights[v] for v in values], k=DECK_SIZE)
    )


class DeckPolicy(ABC):
    """Strategy that produces the unswapped assignment for a round."""

    name: str = ""

    def prepare(self, seeds: SeedManager, run: int, total_rounds: int) -> None:
        """Build per-run state. Fixed policies have none."""

    def capacity(self) -> int | None:
        """Maximum number of rounds the policy can serve, None if unbounded."""
        return None

    @abstractmethod
    def assign(self, round_index: int) -> RoundDecks:
        """Decks for an in-range round, side A first."""

    @abstractmethod
    def catalogue(self) -> list[CatalogueEntry]:
        """Every deck the policy currently knows about, side A first."""


class FixedPairingPolicy(DeckPolicy):
    """Round i plays pool_a[i-1] against pool_b[i-1]."""

    name = "fixed"

    def __init__(
        self,
        pool_a: Sequence[Sequence[int]] | None = None,
        pool_b: Sequence[Sequence[int]] | None = None,
    ):
        if pool_a is None and pool_b is None:
            half = len(FIXED_DECKS) // 2
            pool_a, pool_b = FIXED_DECKS[:half], FIXED_DECKS[half:]
        if pool_a is None or pool_b is None:
            raise ValueError("fixed pairing needs both pool_a and pool_b")
        self._pool_a = tuple(validate_deck(d) for d in pool_a)
        self._pool_b = tuple(validate_deck(d) for d in pool_b)

    @property
    def pool_sizes(self) -> tuple[int, int]:
        return len(self._pool_a), len(self._pool_b)

    def capacity(self) -> int:
        return min(self.pool_sizes)

    def _label_a(self, idx: int) -> str:
        return f"Set {idx + 1}"

    def _label_b(self, idx: int) -> str:
        return f"Set {len(self._pool_a) + idx + 1}"

    def assign(self, round_index: int) -> RoundDecks:
        idx = round_index - 1
        return RoundDecks(
            round_index=round_index,
            deck_a=self._pool_a[idx],
            deck_b=self._pool_b[idx],
            label_a=self._label_a(idx),
            label_b=self._label_b(idx),
        )

    def catalogue(self) -> list[CatalogueEntry]:
        entries = [
            CatalogueEntry(self._label_a(i), deck, "A")
            for i, deck in enumerate(self._pool_a)
        ]
        entries += [
            CatalogueEntry(self._label_b(i), deck, "B")
            for i, deck in enumerate(self._pool_b)
        ]
        return entries


class GeneratedFairPolicy(DeckPolicy):
    """Fresh fair shuffles for both sides, fixed for the whole run."""

    name = "fair"
    _label_prefix = "Fair"

    def __init__(self) -> None:
        self._rounds: dict[int, RoundDecks] = {}

    def _deck_for(self, seeds: SeedManager, run: int, round_index: int, side: str):
        return fair_deck(seeds.deck_rng(self.name, run, round_index, side))

    def prepare(self, seeds: SeedManager, run: int, total_rounds: int) -> None:
        self._rounds = {}
        for r in range(1, total_rounds + 1):
            self._rounds[r] = RoundDecks(
                round_index=r,
                deck_a=self._deck_for(seeds, run, r, "A"),
                deck_b=self._deck_for(seeds, run, r, "B"),
                label_a=self._label(r, "A"),
                label_b=self._label(r, "B"),
            )

    def _label(self, round_index: int, side: str) -> str:
        return f"{self._label_prefix} {round_index}{side}"

    def assign(self, round_index: int) -> RoundDecks:
        return self._rounds[round_index]

    def catalogue(self) -> list[CatalogueEntry]:
        entries = [CatalogueEntry(d.label_a, d.deck_a, "A") for d in self._rounds.values()]
        entries += [CatalogueEntry(d.label_b, d.deck_b, "B") for d in self._rounds.values()]
        return entries


class GeneratedSkewedPolicy(GeneratedFairPolicy):
    """One side plays low-heavy decks for rounds first_round..last_round."""

    name = "skewed"

    def __init__(
        self,
        side: str = "B",
        first_round: int = 1,
        last_round: int | None = None,
        weights: dict[int, int] | None = None,
    ):
        super().__init__()
        if side not in ("A", "B"):
            raise ValueError(f"skewed side must be 'A' or 'B', got {side!r}")
        if weights:
            bad = [v for v in weights if v not in CARD_VALUES]
            if bad or not any(weights.values()):
                raise ValueError(f"invalid skew weights: {weights!r}")
        self.side = side
        self.first_round = first_round
        self.last_round = last_round
        self.weights = dict(weights) if weights else dict(DEFAULT_SKEW_WEIGHTS)

    def is_skewed(self, round_index: int, side: str) -> bool:
        if side != self.side or round_index < self.first_round:
            return False
        return self.last_round is None or round_index <= self.last_round

    def _deck_for(self, seeds: SeedManager, run: int, round_index: int, side: str):
        rng = seeds.deck_rng(self.name, run, round_index, side)
        if self.is_skewed(round_index, side):
            return skewed_deck(rng, self.weights)
        return fair_deck(rng)

    def _label(self, round_index: int, side: str) -> str:
        kind = "Skewed" if self.is_skewed(round_index, side) else "Fair"
        return f"{kind} {round_index}{side}"


_POLICIES: dict[str, type[DeckPolicy]] = {
    FixedPairingPolicy.name: FixedPairingPolicy,
    GeneratedFairPolicy.name: GeneratedFairPolicy,
    GeneratedSkewedPolicy.name: GeneratedSkewedPolicy,
}


def build_policy(mode: str, **kwargs) -> DeckPolicy:
    """Instantiate a deck policy by name."""
    cls = _POLICIES.get(mode)
    if cls is None:
        raise ValueError(f"Unknown deck mode: {mode!r}. Available: {list(_POLICIES)}")
    return cls(**kwargs)


class DeckAllocator:
    """Maps round numbers to deck assignments under a policy and swap flag."""

    def __init__(
        self,
        policy: DeckPolicy,
        total_rounds: int,
        seeds: SeedManager | None = None,
        swapped: bool = False,
    ):
        if total_rounds < 1:
            raise ValueError("total_rounds must be positive")
        cap = policy.capacity()
        if cap is not None and cap < total_rounds:
            raise ValueError(
                f"{policy.name} policy has {cap} deck pairs, need {total_rounds}"
            )
        self.policy = policy
        self.total_rounds = total_rounds
        self.seeds = seeds or SeedManager(0)
        self._swapped = swapped
        self.prepare(run=0)

    @property
    def swapped(self) -> bool:
        return self._swapped

    @property
    def mode(self) -> str:
        return self.policy.name

    def toggle_swap(self) -> bool:
        self._swapped = not self._swapped
        return self._swapped

    def prepare(self, run: int) -> None:
        """Generate this run's decks (no-op for fixed pools)."""
        self.policy.prepare(self.seeds, run, self.total_rounds)

    def decks_for(self, round_index: int) -> RoundDecks:
        if not 1 <= round_index <= self.total_rounds:
            return RoundDecks(round_index, (), (), NO_LABEL, NO_LABEL)
        decks = self.policy.assign(round_index)
        return decks.mirrored() if self._swapped else decks

    def catalogue(self) -> list[CatalogueEntry]:
        entries = self.policy.catalogue()
        if not self._swapped:
            return entries
        flip = {"A": "B", "B": "A"}
        return [CatalogueEntry(e.label, e.deck, flip[e.side]) for e in entries]

    def describe(self, swapped: bool | None = None) -> str:
        """Which decks feed which side, for the current or a given swap flag."""
        if swapped is None:
            swapped = self._swapped
        if isinstance(self.policy, FixedPairingPolicy):
            na, nb = self.policy.pool_sizes
            first, second = f"1-{na}", f"{na + 1}-{na + nb}"
            if swapped:
                first, second = second, first
            return f"AI 1 uses Set {first}, AI 2 uses Set {second}"
        return f"{self.mode} decks" + (" (swapped)" if swapped else "")
