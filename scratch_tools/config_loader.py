"""
SCRATCHMATH — Config Loading & Authoring Checks

Reads game math configs from JSON and reports authoring problems the engine
would otherwise absorb silently (it always degrades instead of failing).

Two JSON shapes are accepted:

  • flat GameMathConfig       {"rows": 3, "mathMode": "POOL", "prizeTable": [...]}
  • authoring-wizard export   {"gameId": ..., "scratch": {"layout": {...},
                                "symbols": {"win": [...], "lose": [...]},
                                "mechanic": {"type": "match_3"},
                                "math": {"mathMode": ..., "totalTickets": ...},
                                "prizes": [{"id", "payout", "weight", "probability"}]}}

Usage:
    from scratch_tools.config_loader import load_config, validate_config
    config = load_config("games/golden_vault.json")
    for warning in validate_config(config):
        print(warning)
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from pathlib import Path
from typing import Union

from scratch_config.schema import DEFAULT_TOTAL_TICKETS, MATCH_THRESHOLD, GameMathConfig
from scratch_engine.engine import coerce_config
from scratch_engine.grid import BASE_CAP, symbol_caps, winning_condition
from scratch_engine.resolver import declared_probabilities, tier_probabilities
from scratch_engine.stats import paytable_stats

logger = logging.getLogger("scratchmath.config")


# ═══════════════════════════════════════════════════════════════
# Loading
# ═══════════════════════════════════════════════════════════════

def _mechanic_condition(mechanic: dict) -> dict:
    mech_type = (mechanic or {}).get("type") or f"match_{MATCH_THRESHOLD}"
    if mech_type in ("find_symbol", "find_target"):
        return {"type": "find_target"}
    if mech_type.startswith("match_"):
        try:
            return {"type": "match_n", "count": int(mech_type.split("_", 1)[1])}
        except ValueError:
            pass
    return {"type": "match_n", "count": MATCH_THRESHOLD}


def _authoring_tier(prize: dict, default_condition: dict) -> dict:
    value = prize.get("payout", prize.get("value", 0))
    tier = {"id": prize.get("id") or str(value), "value": value}
    for key in ("weight", "probability", "kind"):
        if prize.get(key) is not None:
            tier[key] = prize[key]
    if prize.get("isWin") is not None:
        tier["is_win"] = prize["isWin"]

    condition = prize.get("condition") or prize.get("winCondition")
    if condition:
        tier["win_condition"] = condition
    elif isinstance(value, (int, float)) and value > 0:
        tier["win_condition"] = default_condition
    return tier


def from_authoring_payload(payload: dict) -> GameMathConfig:
    """Flatten an authoring-wizard export into a GameMathConfig."""
    s = payload.get("scratch") or payload
    layout = s.get("layout") or {}
    symbols = s.get("symbols") or {}
    math = s.get("math") or {}
    condition = _mechanic_condition(s.get("mechanic"))

    data = {
        "game_id": payload.get("gameId") or "scratch_game",
        "rows": layout.get("rows", 3),
        "columns": layout.get("columns", 3),
        "win_logic": math.get("winLogic") or s.get("winLogic") or "SINGLE_WIN",
        "math_mode": math.get("mathMode") or "POOL",
        "total_tickets": math.get("totalTickets") or DEFAULT_TOTAL_TICKETS,
        "prize_table": [_authoring_tier(p, condition) for p in s.get("prizes") or []],
    }
    if symbols.get("win"):
        data["win_symbols"] = symbols["win"]
    if symbols.get("lose"):
        data["lose_symbols"] = symbols["lose"]
    if math.get("ticketPrice"):
        data["ticket_price"] = math["ticketPrice"]
    if (s.get("features") or {}).get("nearMiss", {}).get("enabled"):
        data["near_miss"] = True
    return coerce_config(data)


def load_config(path: Union[str, Path]) -> GameMathConfig:
    """Load a config file in either supported shape."""
    payload = json.loads(Path(path).read_text())
    if "scratch" in payload or "prizes" in payload:
        config = from_authoring_payload(payload)
    else:
        config = coerce_config(payload)
    logger.info(f"Loaded {config.game_id} from {path} ({len(config.prize_table)} tiers)")
    return config


# ═══════════════════════════════════════════════════════════════
# Authoring Checks
# ═══════════════════════════════════════════════════════════════

def validate_config(config: GameMathConfig) -> list[str]:
    """Run sanity checks on a config and return a list of warnings."""
    warnings = []
    tiers = config.prize_table

    if not tiers:
        warnings.append("Prize table is empty; every round resolves to a loss")

    dupes = [tid for tid, n in Counter(config.tier_ids).items() if n > 1]
    if dupes:
        warnings.append(f"Duplicate tier ids {dupes}; forced and deck outcomes hit the first one only")

    if config.has_mixed_variants():
        expected = "weight" if config.is_pool else "probability"
        warnings.append(
            f"{config.math_mode.value} mode expects every tier to carry `{expected}`; "
            f"mismatched tiers are drawn at their own odds"
        )
    if config.is_pool and not config.has_mixed_variants():
        assigned = sum(t.weight for t in tiers)
        if assigned > config.total_tickets:
            warnings.append(
                f"Tier weights ({assigned:,}) exceed total_tickets ({config.total_tickets:,}); "
                f"trailing tiers are clipped or unreachable"
            )
    else:
        total_p = sum(declared_probabilities(config))
        if total_p > 1 + 1e-9:
            warnings.append(
                f"Tier probabilities sum to {total_p:.6f} (> 1); trailing tiers are clipped or unreachable"
            )

    for tier in tiers:
        if tier.is_win and tier.value <= 0:
            warnings.append(f"Tier '{tier.id}' is a win but pays 0")
        if not tier.is_win and tier.value > 0:
            warnings.append(f"Tier '{tier.id}' pays {tier.value:g}x but is marked as a loss")
        if not tier.is_win:
            continue
        cond = winning_condition(tier)
        if cond.match_count > config.grid_size:
            warnings.append(
                f"Tier '{tier.id}' needs {cond.match_count} matches on a "
                f"{config.grid_size}-cell grid; clamped to {config.grid_size}"
            )
        if cond.symbol_id and cond.symbol_id not in config.win_symbols:
            warnings.append(f"Tier '{tier.id}' targets '{cond.symbol_id}', which is not a win symbol")

    caps = symbol_caps(config)
    capacity = sum(caps.get(s, BASE_CAP) for s in config.symbol_pool)
    if capacity < config.grid_size:
        warnings.append(
            f"Symbol pools hold at most {capacity} non-winning cells but the grid has "
            f"{config.grid_size}; losing grids will fall back to '{config.lose_symbols[0]}' "
            f"and may show an accidental match"
        )

    stats = paytable_stats(config)
    if tiers and stats.rtp > 1.0:
        warnings.append(f"Theoretical RTP {stats.rtp*100:.2f}% pays out more than it takes in")
    if tiers and not any(p > 0 for p in tier_probabilities(config)):
        warnings.append("No tier has positive probability; every round resolves to a loss")

    return warnings
