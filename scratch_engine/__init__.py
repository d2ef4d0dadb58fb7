"""
SCRATCHMATH — Scratch-Card Outcome & Certification Engine

Deterministic round resolution and paytable certification for scratch-card
mini-games. Each round is a pure function of a config and a seed.

Usage:
    from scratch_engine import resolve_round, transform_to_rgs, paytable_stats
    outcome = resolve_round(config, seed="round-0001")
    schema = transform_to_rgs(config)
    stats = paytable_stats(config)
"""

from scratch_engine.certification import classify_mechanic, transform_to_rgs
from scratch_engine.deck import build_deck, deck_summary
from scratch_engine.engine import ScratchMathEngine, coerce_config, resolve_round
from scratch_engine.grid import materialize, symbol_caps
from scratch_engine.resolver import resolve_tier, tier_probabilities
from scratch_engine.rng import SeededRNG
from scratch_engine.stats import PaytableStats, compute_stats, paytable_stats

__all__ = [
    "ScratchMathEngine",
    "SeededRNG",
    "PaytableStats",
    "build_deck",
    "classify_mechanic",
    "coerce_config",
    "compute_stats",
    "deck_summary",
    "materialize",
    "paytable_stats",
    "resolve_round",
    "resolve_tier",
    "symbol_caps",
    "tier_probabilities",
    "transform_to_rgs",
]
