#!/usr/bin/env python3
"""
SCRATCHMATH — Command Line

Usage:
    python -m scratch_tools.cli resolve games/vault.json --seed round-0001
    python -m scratch_tools.cli resolve games/vault.json --seed 7 --forced-tier t100
    python -m scratch_tools.cli stats games/vault.json
    python -m scratch_tools.cli export games/vault.json --version 1.2.0 -o vault_rgs.json
    python -m scratch_tools.cli simulate games/vault.json --rounds 200000
    python -m scratch_tools.cli simulate games/vault.json --deck
    python -m scratch_tools.cli deck games/vault.json --seed deck-2025-01
    python -m scratch_tools.cli check games/vault.json
"""

import argparse
import json
import sys
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from scratch_config.settings import OUTPUT_DIR, EngineSettings, configure_logging
from scratch_engine.certification import transform_to_rgs
from scratch_engine.deck import build_deck, deck_summary
from scratch_engine.engine import resolve_round
from scratch_engine.stats import paytable_stats
from scratch_tools.config_loader import load_config, validate_config
from scratch_tools.montecarlo import MonteCarloValidator

console = Console()


def _seed(raw: str):
    return int(raw) if raw.lstrip("-").isdigit() else raw


def _render_grid(reveal_map, columns: int, prize: str = None) -> str:
    cells = [f"[bold green]{s}[/bold green]" if prize and s == prize else s for s in reveal_map]
    rows = [cells[i:i + columns] for i in range(0, len(cells), columns)]
    return "\n".join("  ".join(row) for row in rows)


# ═══════════════════════════════════════════════════════════════
# Commands
# ═══════════════════════════════════════════════════════════════

def cmd_resolve(args) -> int:
    config = load_config(args.config)
    outcome = resolve_round(config, _seed(args.seed), forced_tier_id=args.forced_tier)
    if args.json:
        print(json.dumps(outcome.to_payload(), indent=2))
        return 0

    status = "[bold green]WIN[/bold green]" if outcome.is_win else "[dim]LOSE[/dim]"
    body = (
        f"{_render_grid(outcome.reveal_map, config.columns, outcome.prize_symbol)}\n\n"
        f"Tier: {outcome.tier_id}   {status}   Prize: {outcome.final_prize:g}\n"
        f"Round: {outcome.round_id}   Presentation seed: {outcome.presentation_seed}"
    )
    if outcome.near_miss:
        body += "\n[yellow]near miss[/yellow]"
    console.print(Panel(body, title=f"{config.game_id} · seed {args.seed}"))
    return 0


def cmd_stats(args) -> int:
    config = load_config(args.config)
    stats = paytable_stats(config)
    table = Table(title=f"{config.game_id} ({config.math_mode.value})")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("RTP", f"{stats.rtp*100:.4f}%")
    table.add_row("House edge", f"{stats.house_edge*100:.4f}%")
    table.add_row("Hit rate", f"{stats.hit_rate*100:.4f}%")
    table.add_row("Variance", f"{stats.variance:.4f}")
    table.add_row("Std dev", f"{stats.standard_deviation:.4f}")
    table.add_row("Max win", f"{stats.max_win:g}x")
    console.print(table)
    return 0


def cmd_export(args) -> int:
    config = load_config(args.config)
    for w in validate_config(config):
        console.print(f"[yellow]⚠️  {w}[/yellow]")
    schema = transform_to_rgs(config, model_version=args.version)
    if args.output:
        out = Path(args.output)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(schema.to_json())
        console.print(f"✅ {config.game_id}: {out} ({out.stat().st_size:,} bytes)")
    else:
        print(schema.to_json())
    return 0


def cmd_simulate(args) -> int:
    config = load_config(args.config)
    mc = MonteCarloValidator(tolerance=args.tolerance, seed=args.seed)
    if args.deck:
        result = mc.validate_deck(config, n_rounds=args.rounds)
    else:
        result = mc.validate(config, n_rounds=args.rounds)
    console.print(result.summary())
    if args.report:
        OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
        path = OUTPUT_DIR / f"{config.game_id}_montecarlo.json"
        path.write_text(json.dumps(result.to_dict(), indent=2))
        console.print(f"Report: {path}")
    return 0 if result.passed else 1


def cmd_deck(args) -> int:
    config = load_config(args.config)
    try:
        deck = build_deck(config, seed=_seed(args.seed))
    except ValueError as e:
        console.print(f"[red]❌ {e}[/red]")
        return 1

    table = Table(title=f"{config.game_id} deck · {len(deck):,} tickets")
    table.add_column("Tier", style="cyan")
    table.add_column("Tickets", justify="right")
    for tier_id, count in deck_summary(deck).items():
        table.add_row(tier_id, f"{count:,}")
    console.print(table)
    preview = args.preview if args.preview is not None else EngineSettings.DECK_PREVIEW
    console.print("First tickets: " + ", ".join(deck[:preview]))
    if args.output:
        out = Path(args.output)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(json.dumps(list(deck)))
        console.print(f"✅ {config.game_id}: deck written to {out}")
    return 0


def cmd_check(args) -> int:
    config = load_config(args.config)
    warnings = validate_config(config)
    if not warnings:
        console.print(f"✅ {config.game_id}: no problems found")
        return 0
    console.print(f"\n⚠️  {config.game_id}: {len(warnings)} warning(s)")
    for w in warnings:
        console.print(f"  - {w}")
    return 1 if args.strict else 0


# ═══════════════════════════════════════════════════════════════
# Entry Point
# ═══════════════════════════════════════════════════════════════

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Scratch-card outcome & certification engine")
    parser.add_argument("--log-level", type=str, default=None, help="Override SCRATCHMATH_LOG_LEVEL")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("resolve", help="Resolve one round")
    p.add_argument("config")
    p.add_argument("--seed", type=str, default="0")
    p.add_argument("--forced-tier", "--force", dest="forced_tier", type=str, default=None,
                   help="Forced tier id (deck play)")
    p.add_argument("--json", action="store_true", help="Print the outcome payload")
    p.set_defaults(func=cmd_resolve)

    p = sub.add_parser("stats", help="Theoretical paytable statistics")
    p.add_argument("config")
    p.set_defaults(func=cmd_stats)

    p = sub.add_parser("export", help="RGS certification schema")
    p.add_argument("config")
    p.add_argument("--version", type=str, default="1.0.0", help="Model version")
    p.add_argument("-o", "--output", type=str, default=None)
    p.set_defaults(func=cmd_export)

    p = sub.add_parser("simulate", help="Monte Carlo validation")
    p.add_argument("config")
    p.add_argument("--rounds", type=int, default=None)
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--tolerance", type=float, default=None)
    p.add_argument("--deck", action="store_true", help="Deal a finite deck (POOL only)")
    p.add_argument("--report", action="store_true", help="Write a JSON report to the output dir")
    p.set_defaults(func=cmd_simulate)

    p = sub.add_parser("deck", help="Build and summarize a shuffled finite deck")
    p.add_argument("config")
    p.add_argument("--seed", type=str, default="0")
    p.add_argument("--preview", type=int, default=None)
    p.add_argument("-o", "--output", type=str, default=None, help="Write the deck as a JSON list")
    p.set_defaults(func=cmd_deck)

    p = sub.add_parser("check", help="Authoring checks")
    p.add_argument("config")
    p.add_argument("--strict", action="store_true", help="Exit 1 on any warning")
    p.set_defaults(func=cmd_check)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
