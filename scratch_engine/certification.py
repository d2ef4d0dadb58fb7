"""
SCRATCHMATH — RGS Certification Schema Exporter

Builds the regulator-facing `RGSMathSchema` from a `GameMathConfig` snapshot.
The exported prize table is self-contained: RTP, hit rate and variance can be
re-derived from its rows alone.

    POOL       rows carry literal ticket counts (clipped to the deck in table
               order); a synthetic LOSE row holds the residual tickets so
               Σ weight == total_tickets
    UNLIMITED  rows carry probabilities (weight is an inferred display value);
               a synthetic LOSE row holds 1 − ΣP when the table sums below 1

The integrity hash is left as a placeholder; it is filled in by the
certification pipeline, not by this engine.

Usage:
    from scratch_engine.certification import transform_to_rgs
    schema = transform_to_rgs(config)
    print(schema.to_json())
"""

from __future__ import annotations

import logging

from scratch_config.schema import (
    INFERRED_WEIGHT_SCALE,
    LOSE_TIER_LABEL,
    GameMathConfig,
    RGSGridSize,
    RGSIntegrity,
    RGSMathSchema,
    RGSMechanic,
    RGSPrizeTier,
    RGSStats,
)
from scratch_engine.grid import winning_condition
from scratch_engine.resolver import tier_probabilities
from scratch_engine.stats import compute_stats

logger = logging.getLogger("scratchmath.certification")


def classify_mechanic(config: GameMathConfig) -> RGSMechanic:
    """Describe the win mechanic from the tiers' conditions."""
    grid = RGSGridSize(rows=config.rows, columns=config.columns)
    conditions = [winning_condition(t) for t in config.prize_table if t.is_win]

    has_find = any(c.type == "find_target" for c in conditions)
    match_counts = sorted({c.count for c in conditions if c.type == "match_n"})

    if has_find and match_counts:
        return RGSMechanic(type="hybrid", grid_size=grid, match_counts=tuple(match_counts))
    if has_find:
        return RGSMechanic(type="find_symbol", grid_size=grid, match_count=1)
    if len(match_counts) > 1:
        return RGSMechanic(type="match_n", grid_size=grid, match_counts=tuple(match_counts))

    count = match_counts[0] if match_counts else 3
    return RGSMechanic(type=f"match_{count}", grid_size=grid, match_count=count)


def _inferred_weight(probability: float) -> int:
    return round(probability * INFERRED_WEIGHT_SCALE)


def _pool_rows(config: GameMathConfig) -> list[RGSPrizeTier]:
    deck = config.total_tickets
    rows = []
    remaining = deck
    for t in config.prize_table:
        tickets = min(t.weight, remaining)
        remaining -= tickets
        rows.append(RGSPrizeTier(
            tier=t.id, multiplier=t.value, weight=tickets, probability=tickets / deck,
        ))

    assigned = sum(t.weight for t in config.prize_table)
    if assigned > deck:
        logger.warning(
            f"{config.game_id}: tier weights ({assigned:,}) exceed the deck "
            f"({deck:,}); trailing tiers clipped to the tickets left, "
            f"LOSE row holds 0"
        )
    rows.insert(0, RGSPrizeTier(
        tier=LOSE_TIER_LABEL, multiplier=0, weight=remaining, probability=remaining / deck,
    ))
    return rows


def _probability_rows(config: GameMathConfig) -> list[RGSPrizeTier]:
    probabilities = tier_probabilities(config)
    rows = [
        RGSPrizeTier(tier=t.id, multiplier=t.value, weight=_inferred_weight(p), probability=p)
        for t, p in zip(config.prize_table, probabilities)
    ]
    residual = 1.0 - sum(probabilities)
    if residual > 1e-12:
        rows.insert(0, RGSPrizeTier(
            tier=LOSE_TIER_LABEL, multiplier=0,
            weight=_inferred_weight(residual), probability=residual,
        ))
    return rows


def normalized_prize_table(config: GameMathConfig) -> list[RGSPrizeTier]:
    """Flattened certification rows, synthetic LOSE row first."""
    if config.has_mixed_variants():
        logger.warning(
            f"{config.game_id}: prize table mixes weight/probability tiers under "
            f"{config.math_mode.value} mode; mismatched tiers exported at their own odds"
        )
        return _probability_rows(config)
    if config.is_pool:
        return _pool_rows(config)
    return _probability_rows(config)


def transform_to_rgs(config: GameMathConfig, model_version: str = "1.0.0") -> RGSMathSchema:
    """Immutable certification snapshot of a config."""
    prize_table = normalized_prize_table(config)
    stats = compute_stats(prize_table)
    schema = RGSMathSchema(
        model_id=config.game_id,
        model_version=model_version,
        mechanic=classify_mechanic(config),
        math_mode=config.math_mode,
        win_logic=config.win_logic,
        prize_table=tuple(prize_table),
        stats=RGSStats(**stats.to_dict()),
        integrity=RGSIntegrity(),
    )
    logger.info(
        f"RGS schema for {config.game_id}: {len(prize_table)} rows, "
        f"RTP={stats.rtp*100:.4f}% hit={stats.hit_rate*100:.2f}%"
    )
    return schema
