"""SeedManager — deterministic, HMAC-derived RNG per generated deck.

Seeds are derived via HMAC-SHA256 from (policy, run, round, side) so
changing the number of rounds never shifts the decks of other rounds.
"""

import hashlib
import hmac
import random


class SeedManager:
    """Produces deterministic, isolated Random instances for deck generation."""

    def __init__(self, tournament_seed: int):
        self._tournament_seed = tournament_seed

    @property
    def tournament_seed(self) -> int:
        return self._tournament_seed

    def get_deck_seed(self, policy: str, run: int, round_num: int, side: str) -> int:
        """Derive a deck seed via HMAC. Same inputs always produce the same seed."""
        key = self._tournament_seed.to_bytes(8, byteorder="big", signed=True)
        msg = f"{policy}:{run}:{round_num}:{side}".encode("utf-8")
        digest = hmac.new(key, msg, hashlib.sha256).digest()
        return int.from_bytes(digest[:8], byteorder="big")

    def get_rng(self, seed: int) -> random.Random:
        """Return an isolated Random instance. Never touches global state."""
        return random.Random(seed)

    def deck_rng(self, policy: str, run: int, round_num: int, side: str) -> random.Random:
        return self.get_rng(self.get_deck_seed(policy, run, round_num, side))
