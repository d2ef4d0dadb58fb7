"""
SCRATCHMATH — Finite Ticket Deck (pool mode)

A pool-mode game can be played from a pre-printed deck instead of per-round
weighted draws: every tier appears exactly `weight` times, the remaining
tickets are losers, and the whole deck is shuffled once from a seed.

The engine keeps no deck state. The caller owns the cursor and passes each
ticket's tier id to `resolve_round(..., forced_tier_id=...)`.

Usage:
    deck = build_deck(config, seed="deck-2025-01")
    outcome = resolve_round(config, seed=f"round-{i}", forced_tier_id=deck[i])
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Union

from scratch_config.schema import RESIDUAL_LOSE_ID, GameMathConfig
from scratch_engine.rng import SeededRNG

logger = logging.getLogger("scratchmath.deck")


def build_deck(config: GameMathConfig, seed: Union[int, str]) -> tuple[str, ...]:
    """Shuffled tuple of tier ids, exactly `total_tickets` long."""
    if not config.is_pool or config.has_mixed_variants():
        raise ValueError(
            f"{config.game_id}: finite decks need a POOL config with weighted tiers"
        )

    assigned = sum(t.weight for t in config.prize_table)
    if assigned > config.total_tickets:
        raise ValueError(
            f"{config.game_id}: tier weights ({assigned:,}) exceed total_tickets "
            f"({config.total_tickets:,})"
        )

    tickets: list[str] = []
    for tier in config.prize_table:
        tickets.extend([tier.id] * tier.weight)
    tickets.extend([RESIDUAL_LOSE_ID] * (config.total_tickets - assigned))

    SeededRNG(seed).shuffle(tickets)
    logger.info(
        f"Deck for {config.game_id}: {len(tickets):,} tickets, "
        f"{assigned:,} assigned to {len(config.prize_table)} tiers"
    )
    return tuple(tickets)


def deck_summary(deck) -> dict[str, int]:
    """Ticket count per tier id, in first-seen order."""
    return dict(Counter(deck))
