"""
SCRATCHMATH — Outcome Resolver

Selects exactly one prize tier per round.

    WeightedTier     p(tier) = tier.weight / total_tickets
    ProbabilityTier  p(tier) = tier.probability

A tier whose variant does not match the math mode keeps its own odds; only
that tier is degraded, the rest of the table and its losing mass are left
alone (flagged by validate_config).

One roll in [0, 1) walks the tiers in table order; the first tier whose
cumulative probability exceeds the roll wins. Table order alone decides who
owns a boundary roll. Rolls past the cumulative total land on the implicit
losing tier carrying the residual mass. Once the cumulative total reaches 1,
every later tier is unreachable and its effective probability is 0.
"""

from __future__ import annotations

import logging
from typing import Optional

from scratch_config.schema import (
    DEFAULT_LOSE_ID,
    RESIDUAL_LOSE_ID,
    GameMathConfig,
    ProbabilityTier,
    WeightedTier,
)

logger = logging.getLogger("scratchmath.resolver")


def default_lose_tier() -> ProbabilityTier:
    """Tier returned for an empty paytable."""
    return ProbabilityTier(id=DEFAULT_LOSE_ID, value=0, probability=1.0, is_win=False)


def residual_lose_tier(probability: float) -> ProbabilityTier:
    """Implicit losing tier owning whatever the table leaves unassigned."""
    return ProbabilityTier(
        id=RESIDUAL_LOSE_ID, value=0,
        probability=min(1.0, max(0.0, probability)), is_win=False,
    )


def declared_probabilities(config: GameMathConfig) -> list[float]:
    """Each tier's own odds, before over-subscription is clipped."""
    if config.has_mixed_variants():
        logger.debug(
            f"{config.game_id}: prize table mixes weight/probability tiers under "
            f"{config.math_mode.value} mode; mismatched tiers keep their own odds"
        )
    return [
        t.weight / config.total_tickets if isinstance(t, WeightedTier) else t.probability
        for t in config.prize_table
    ]


def tier_probabilities(config: GameMathConfig) -> list[float]:
    """Mass the cumulative walk actually gives each tier, in table order."""
    effective = []
    reached = 0.0
    cumulative = 0.0
    for p in declared_probabilities(config):
        cumulative += p
        capped = min(cumulative, 1.0)
        effective.append(capped - reached)
        reached = capped
    return effective


def residual_probability(config: GameMathConfig) -> float:
    """Probability mass not owned by any tier (never negative)."""
    return max(0.0, 1.0 - sum(tier_probabilities(config)))


def resolve_tier(config: GameMathConfig, rng):
    """Draw one tier for a round. Never raises on an empty table."""
    tiers = config.prize_table
    if not tiers:
        return default_lose_tier()

    probabilities = tier_probabilities(config)
    roll = rng.next()
    cumulative = 0.0
    for tier, p in zip(tiers, probabilities):
        cumulative += p
        if roll < cumulative:
            return tier

    return residual_lose_tier(1.0 - cumulative)


def find_tier(config: GameMathConfig, tier_id: str):
    """Look up a tier by id, including the implicit losing tiers."""
    for tier in config.prize_table:
        if tier.id == tier_id:
            return tier
    if tier_id == RESIDUAL_LOSE_ID:
        return residual_lose_tier(residual_probability(config))
    if tier_id == DEFAULT_LOSE_ID and not config.prize_table:
        return default_lose_tier()
    return None


def forced_or_drawn_tier(config: GameMathConfig, rng, forced_tier_id: Optional[str] = None):
    """Use a forced tier (finite deck play) when known, else draw one."""
    if forced_tier_id is not None:
        tier = find_tier(config, forced_tier_id)
        if tier is not None:
            return tier
        logger.warning(
            f"{config.game_id}: forced tier '{forced_tier_id}' not in prize table; "
            f"falling back to RNG draw"
        )
    return resolve_tier(config, rng)
