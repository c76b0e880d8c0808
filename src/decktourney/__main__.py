"""CLI entry point: python -m decktourney <config.yaml>"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console, Group
from rich.live import Live
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from decktourney.config import load_config
from decktourney.results import Outcome
from decktourney.tournament import EngineSnapshot, TournamentEngine

REFRESH_RATE = 0.25

# AI 1 red, AI 2 green
SIDE_COLORS = {"A": "red", "B": "green"}
OUTCOME_STYLES = {Outcome.A: "red", Outcome.B: "green", Outcome.DRAW: "yellow"}


def _card_style(value: int) -> str:
    if value <= 3:
        return "red"
    if value >= 7:
        return "green"
    return "yellow"


def render_deck(deck, played: int = 0) -> Text:
    """Deck as coloured values; already-played cards are struck through."""
    text = Text()
    for i, v in enumerate(deck):
        style = _card_style(v)
        if i < played:
            style += " strike dim"
        text.append(f"{v} ", style=style)
    return text


def render_status(snap: EngineSnapshot) -> Panel:
    """Live panel: round, status line, both sides and the running tally."""
    table = Table(show_header=True, expand=True)
    table.add_column("Side", width=8)
    table.add_column("Deck", width=14)
    table.add_column("Cards", ratio=1)
    table.add_column("Hand", width=14)

    for side, label, deck in (
        ("A", snap.label_a, snap.deck_a),
        ("B", snap.label_b, snap.deck_b),
    ):
        pid = 0 if side == "A" else 1
        played, hand = 0, ""
        if snap.match is not None:
            player = snap.match.player(pid)
            played = player.cards_played
            hand = " ".join(str(v) for v in player.hand)
        table.add_row(
            Text(f"AI {pid + 1}", style=SIDE_COLORS[side]),
            label or "-",
            render_deck(deck, played),
            hand,
        )

    stats = snap.stats
    tally = Text.assemble(
        ("AI 1 ", "red"), f"{stats.wins_a} ({stats.win_rate_a}%)  ",
        ("AI 2 ", "green"), f"{stats.wins_b} ({stats.win_rate_b}%)  ",
        ("Draws ", "yellow"), str(stats.draws),
    )
    header = Text(
        f"Round {snap.round_index} / {snap.total_rounds}  [{snap.run_state.value}]",
        style="bold",
    )
    return Panel(
        Group(header, Text(snap.status), table, tally),
        title=f"decktourney ({snap.deck_mode}{', swapped' if snap.swapped else ''})",
    )


def render_history(snap: EngineSnapshot) -> Table:
    table = Table(title="Round history")
    table.add_column("Round", justify="right")
    table.add_column("AI 1 deck")
    table.add_column("AI 2 deck")
    table.add_column("Winner")
    table.add_column("Score")
    for result in snap.stats.history:
        table.add_row(
            str(result.round),
            result.deck_label_a,
            result.deck_label_b,
            Text(result.outcome.display, style=OUTCOME_STYLES[result.outcome]),
            result.score,
        )
    return table


def render_catalogue(engine: TournamentEngine) -> Table:
    table = Table(title=engine.allocator.describe())
    table.add_column("Set")
    table.add_column("Used by")
    table.add_column("Cards")
    for entry in engine.allocator.catalogue():
        pid = 1 if entry.side == "A" else 2
        table.add_row(
            entry.label,
            Text(f"AI {pid}", style=SIDE_COLORS[entry.side]),
            render_deck(entry.deck),
        )
    return table


async def _run_live(engine: TournamentEngine, console: Console):
    with Live(render_status(engine.snapshot()), console=console,
              refresh_per_second=4) as live:
        engine.start_tournament()
        waiter = asyncio.ensure_future(engine.wait())
        while not waiter.done():
            live.update(render_status(engine.snapshot()))
            await asyncio.wait({waiter}, timeout=REFRESH_RATE)
        live.update(render_status(engine.snapshot()))
    return waiter.result()


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="decktourney",
        description="Automated AI vs AI card tournament harness",
    )
    parser.add_argument(
        "config",
        type=Path,
        help="Path to tournament YAML config file",
    )
    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Output directory (default: output/)",
    )
    parser.add_argument(
        "--swap",
        action="store_true",
        default=False,
        help="Swap which deck pool feeds each side",
    )
    parser.add_argument(
        "--list-decks",
        action="store_true",
        default=False,
        help="Print the deck catalogue and exit",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        default=False,
        help="Debug logging",
    )
    args = parser.parse_args()

    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True)],
    )

    if not args.config.exists():
        print(f"Error: config file not found: {args.config}", file=sys.stderr)
        sys.exit(1)

    config = load_config(args.config)
    if args.output:
        config.output_dir = args.output
    if args.swap:
        config.decks.swapped = not config.decks.swapped

    console = Console()
    engine = TournamentEngine(config)
    try:
        if args.list_decks:
            console.print(render_catalogue(engine))
            return

        console.print(
            f"Tournament: {config.name} (seed={config.seed}, rounds={config.rounds}, "
            f"decks={config.decks.mode})"
        )
        console.print(f"Backend: {config.backend.provider} {config.backend.base_url}")
        console.print(engine.allocator.describe())
        console.print()

        result = asyncio.run(_run_live(engine, console))
    finally:
        engine.close()

    snap = engine.snapshot()
    console.print(render_history(snap))
    console.print()
    console.print(f"Telemetry: {result.telemetry_path}")
    if not result.completed:
        console.print(f"[red]Halted:[/red] {snap.status}")
        sys.exit(1)


if __name__ == "__main__":
    main()
