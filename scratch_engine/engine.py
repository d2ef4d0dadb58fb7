"""
SCRATCHMATH — Round Resolution

    resolve_round(config, seed)
        → SeededRNG(seed)
        → resolver draws a PrizeTier
        → grid materializer builds the reveal map
        → round id + presentation seed drawn last
        → ResolvedOutcome

Pure: the same config and seed always give a field-for-field identical
outcome, and concurrent calls share nothing but the read-only config.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Union

from pydantic import ValidationError

from scratch_config.schema import GameMathConfig, ResolvedOutcome, RGSMathSchema
from scratch_engine.certification import transform_to_rgs
from scratch_engine.grid import materialize
from scratch_engine.resolver import forced_or_drawn_tier
from scratch_engine.rng import SeededRNG
from scratch_engine.stats import PaytableStats, paytable_stats

logger = logging.getLogger("scratchmath.engine")

Seed = Union[int, str]

_TABLE_KEYS = ("prize_table", "prizeTable")


def coerce_config(config: Any) -> GameMathConfig:
    """Accept a GameMathConfig or a plain JSON-like mapping.

    A malformed prize table degrades to an empty one (every round loses);
    any other structural problem is an authoring error and is raised.
    """
    if isinstance(config, GameMathConfig):
        return config
    try:
        return GameMathConfig.model_validate(config)
    except ValidationError as e:
        errors = e.errors()
        table_errors = [err for err in errors if err["loc"] and err["loc"][0] in _TABLE_KEYS]
        if not table_errors or len(table_errors) != len(errors):
            raise
        logger.error(
            f"Malformed prize table ({len(table_errors)} errors, first: "
            f"{table_errors[0]['msg']}); resolving with an empty table"
        )
        stripped = {k: v for k, v in config.items() if k not in _TABLE_KEYS}
        return GameMathConfig.model_validate(stripped)


def resolve_round(
    config: Union[GameMathConfig, dict],
    seed: Seed,
    forced_tier_id: Optional[str] = None,
    rng_factory: Callable[[Seed], Any] = SeededRNG,
) -> ResolvedOutcome:
    """Resolve one round from a config and an explicit seed."""
    config = coerce_config(config)
    rng = rng_factory(seed)

    tier = forced_or_drawn_tier(config, rng, forced_tier_id)
    grid = materialize(config, tier, rng)

    round_id = f"rnd_{rng.next_u32():08x}{rng.next_u32():08x}"
    presentation_seed = rng.next_u32()

    return ResolvedOutcome(
        round_id=round_id,
        final_prize=tier.value * config.ticket_price,
        is_win=tier.is_win,
        tier_id=tier.id,
        reveal_map=grid.reveal_map,
        presentation_seed=presentation_seed,
        prize_symbol=grid.prize_symbol,
        near_miss=grid.near_miss,
    )


class ScratchMathEngine:
    """A read-only config bound to the engine's operations."""

    game_type = "scratch"
    display_name = "Scratch Card"

    def __init__(self, config: Union[GameMathConfig, dict]):
        self.config = coerce_config(config)

    def resolve(self, seed: Seed, forced_tier_id: Optional[str] = None) -> ResolvedOutcome:
        return resolve_round(self.config, seed, forced_tier_id=forced_tier_id)

    def stats(self) -> PaytableStats:
        return paytable_stats(self.config)

    def certification(self, model_version: str = "1.0.0") -> RGSMathSchema:
        return transform_to_rgs(self.config, model_version=model_version)

    def get_metadata(self) -> dict:
        """Game metadata for listings."""
        c = self.config
        return {
            "game_type": self.game_type,
            "display_name": self.display_name,
            "game_id": c.game_id,
            "grid": f"{c.rows}x{c.columns}",
            "math_mode": c.math_mode.value,
            "win_logic": c.win_logic.value,
            "tiers": len(c.prize_table),
        }
