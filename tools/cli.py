#!/usr/bin/env python3
"""
PROBABILITY GAMES — Command Line

Usage:
    python -m tools.cli table plinko --risk high --rows 16
    python -m tools.cli table dice
    python -m tools.cli strategy
    python -m tools.cli simulate crash --eject-at 2 --rounds 100000
    python -m tools.cli simulate plinko --count 5000 --bet 10
    python -m tools.cli validate --rounds 50000
    python -m tools.cli stats
    python -m tools.cli reset
"""

import argparse
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config.settings import configure_logging
from controllers.base import GameSession
from core.rng import SeededRandom
from core.stats import calculate_level
from core.wallet import format_coins
from engines import dice, plinko
from engines.blackjack import strategy_chart
from tools import montecarlo

console = Console()

MOVE_STYLE = {"H": "red", "S": "green", "D": "bold yellow"}


def cmd_table(args) -> None:
    if args.game == "plinko":
        table = plinko.generate_multipliers(args.risk, args.rows)
        probs = plinko.bin_probabilities(len(table) - 1)
        t = Table(title=f"Plinko — {args.risk} / {len(table) - 1} rows")
        t.add_column("Bin", justify="right")
        t.add_column("Multiplier", justify="right")
        t.add_column("Probability", justify="right")
        for i, (m, p) in enumerate(zip(table, probs)):
            t.add_row(str(i), f"{m}x", f"{p * 100:.3f}%")
        console.print(t)
        rtp = plinko.expected_payout_ratio(table)
        console.print(f"Expected payout: [bold]{rtp * 100:.2f}%[/bold]  (house edge {(1 - rtp) * 100:.2f}%)")
        return

    t = Table(title="Dice — risk curve")
    for col in ("Risk", "Win chance", "Multiplier", "House edge"):
        t.add_column(col, justify="right")
    for risk in (1, 10, 25, 50, 75, 90, 99):
        t.add_row(f"{risk}%", f"{dice.win_probability(risk) * 100:.0f}%",
                  f"{dice.multiplier(risk):.4f}x", f"{dice.house_edge(risk) * 100:.1f}%")
    console.print(t)


def cmd_strategy(args) -> None:
    chart = strategy_chart()
    t = Table(title="Blackjack basic strategy (H = hit, S = stand, D = double)")
    t.add_column("Hand")
    ups = list(range(2, 12))
    for u in ups:
        t.add_column("A" if u == 11 else str(u), justify="center")
    for hand, row in chart.items():
        t.add_row(hand, *[f"[{MOVE_STYLE[row[u]]}]{row[u]}[/]" for u in ups])
    console.print(t)


def cmd_simulate(args) -> None:
    rng = SeededRandom(args.seed) if args.seed is not None else None

    if args.game == "plinko":
        sim = montecarlo.simulate_plinko(args.bet, args.risk, args.rows, args.count, rng=rng)
    elif args.game == "coinflip":
        sim = montecarlo.simulate_coinflip(args.bet, args.count, rng=rng)
    else:
        sim = montecarlo.simulate_crash(args.eject_at, args.rounds, rng=rng)

    if args.json:
        print(json.dumps(montecarlo.to_dict(sim), indent=2))
    else:
        console.print(Panel(sim.summary(), border_style="cyan"))


def cmd_validate(args) -> None:
    report = montecarlo.validate_all(rounds=args.rounds, seed=args.seed or 42)
    if args.json:
        print(report.to_json())
    else:
        console.print(report.summary())


def cmd_stats(args) -> None:
    session = GameSession.from_settings()
    summary = session.stats.summary()
    level = calculate_level(summary["total_bets"])

    console.print(Panel(
        f"Balance: [bold green]{format_coins(session.wallet.get_balance())}[/bold green] coins\n"
        f"Level {level['level']} — {level['title']}"
        + (f" (next at {format_coins(level['next'])} wagered)" if level["next"] else ""),
        title="Probability Games", border_style="cyan",
    ))

    t = Table(title="Lifetime")
    t.add_column("Metric")
    t.add_column("Value", justify="right")
    t.add_row("Games", f"{summary['total_games']:,}")
    t.add_row("Wagered", format_coins(summary["total_bets"]))
    t.add_row("Profit", format_coins(summary["total_profit"]))
    t.add_row("Win rate", f"{summary['win_rate']:.1f}%")
    t.add_row("Top game", summary["top_game"] or "—")
    console.print(t)

    a = Table(title="Achievements")
    a.add_column("")
    a.add_column("Title")
    a.add_column("Description")
    for ach in session.achievements.get_status():
        a.add_row("🏆" if ach["unlocked"] else "🔒", ach["title"], ach["description"])
    console.print(a)


def cmd_reset(args) -> None:
    session = GameSession.from_settings()
    if args.what in ("wallet", "all"):
        session.wallet.reset_balance()
    if args.what in ("stats", "all"):
        session.stats.reset_stats()
    if args.what in ("achievements", "all"):
        session.achievements.reset()
    console.print(f"[bold green]✅ Reset {args.what}[/bold green]")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Probability games tooling")
    parser.add_argument("--log-level", default=None)
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("table", help="Payout tables")
    p.add_argument("game", choices=["plinko", "dice"])
    p.add_argument("--risk", default="medium", choices=list(plinko.RISK_TIERS))
    p.add_argument("--rows", type=int, default=plinko.DEFAULT_ROWS)
    p.set_defaults(func=cmd_table)

    p = sub.add_parser("strategy", help="Blackjack basic-strategy chart")
    p.set_defaults(func=cmd_strategy)

    p = sub.add_parser("simulate", help="Bulk simulations")
    p.add_argument("game", choices=["plinko", "coinflip", "crash"])
    p.add_argument("--bet", type=float, default=1.0)
    p.add_argument("--count", type=int, default=1000)
    p.add_argument("--risk", default="medium", choices=list(plinko.RISK_TIERS))
    p.add_argument("--rows", type=int, default=plinko.DEFAULT_ROWS)
    p.add_argument("--eject-at", type=float, default=2.0)
    p.add_argument("--rounds", type=int, default=100_000)
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--json", action="store_true")
    p.set_defaults(func=cmd_simulate)

    p = sub.add_parser("validate", help="Measured vs theoretical house edge, all engines")
    p.add_argument("--rounds", type=int, default=50_000)
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--json", action="store_true")
    p.set_defaults(func=cmd_validate)

    p = sub.add_parser("stats", help="Balance, level, lifetime stats and achievements")
    p.set_defaults(func=cmd_stats)

    p = sub.add_parser("reset", help="Reset persisted state")
    p.add_argument("what", nargs="?", default="all", choices=["wallet", "stats", "achievements", "all"])
    p.set_defaults(func=cmd_reset)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    args.func(args)


if __name__ == "__main__":
    main()
