"""Tournament configuration loader."""

import os
import yaml
from dataclasses import dataclass, field
from pathlib import Path

from decktourney.core.http_backend import DEFAULT_BASE_URL

API_URL_ENV = "DECKTOURNEY_API_URL"


@dataclass
class BackendConfig:
    provider: str = "http"  # "http" or "mock"
    base_url: str = DEFAULT_BASE_URL
    timeout_s: float | None = None  # None = wait forever
    strategy: str = "higher_sum"  # for mock provider
    plies_per_match: int = 36  # for mock provider


@dataclass
class SkewConfig:
    side: str = "B"
    first_round: int = 1
    last_round: int | None = None
    weights: dict[int, int] | None = None


@dataclass
class DeckConfig:
    mode: str = "fixed"  # "fixed", "fair", "skewed"
    swapped: bool = False
    pool_a: list[list[int]] | None = None
    pool_b: list[list[int]] | None = None
    skew: SkewConfig = field(default_factory=SkewConfig)


@dataclass
class TimingConfig:
    poll_interval_s: float = 0.05
    inter_round_pause_s: float = 1.0


@dataclass
class TournamentConfig:
    name: str
    seed: int
    rounds: int = 10
    backend: BackendConfig = field(default_factory=BackendConfig)
    decks: DeckConfig = field(default_factory=DeckConfig)
    timing: TimingConfig = field(default_factory=TimingConfig)
    output_dir: Path | None = None


def load_config(path: Path) -> TournamentConfig:
    """Load tournament config from YAML file.

    The backend URL can be overridden with the DECKTOURNEY_API_URL
    environment variable.
    """
    with open(path) as f:
        raw = yaml.safe_load(f)

    t = raw["tournament"]
    b = raw.get("backend", {})
    d = raw.get("decks", {})
    tm = raw.get("timing", {})

    backend = BackendConfig(
        provider=b.get("provider", "http"),
        base_url=os.environ.get(API_URL_ENV) or b.get("base_url", DEFAULT_BASE_URL),
        timeout_s=b.get("timeout_s"),
        strategy=b.get("strategy", "higher_sum"),
        plies_per_match=b.get("plies_per_match", 36),
    )

    skew_raw = d.get("skew", {})
    weights = skew_raw.get("weights")
    skew = SkewConfig(
        side=str(skew_raw.get("side", "B")).upper(),
        first_round=skew_raw.get("first_round", 1),
        last_round=skew_raw.get("last_round"),
        weights={int(v): w for v, w in weights.items()} if weights else None,
    )

    decks = DeckConfig(
        mode=d.get("mode", "fixed"),
        swapped=d.get("swapped", False),
        pool_a=d.get("pool_a"),
        pool_b=d.get("pool_b"),
        skew=skew,
    )

    timing = TimingConfig(
        poll_interval_s=tm.get("poll_interval_s", 0.05),
        inter_round_pause_s=tm.get("inter_round_pause_s", 1.0),
    )

    output_dir = raw.get("output_dir")

    return TournamentConfig(
        name=t["name"],
        seed=t["seed"],
        rounds=t.get("rounds", 10),
        backend=backend,
        decks=decks,
        timing=timing,
        output_dir=Path(output_dir) if output_dir else None,
    )
