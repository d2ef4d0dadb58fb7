"""
SCRATCHMATH — Grid Materializer

Turns a resolved tier into the concrete reveal map shown to the player.
A reveal map is consistent with, and only with, its tier:

  • losing grid   — no symbol reaches a winning count
  • winning grid  — the prize symbol appears exactly `match_count` times and,
                    under SINGLE_WIN, no other symbol reaches a winning count

"Winning count" is per symbol: the match-3 convention caps every symbol at 2,
and each winning tier lowers the cap for the symbols its condition can use
(a find-target tier caps its target at 0, a match-2 tier at 1).
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Optional

from scratch_config.schema import (
    MATCH_THRESHOLD,
    NEAR_MISS_RATE,
    GameMathConfig,
    MatchNCondition,
)

logger = logging.getLogger("scratchmath.grid")

BASE_CAP = MATCH_THRESHOLD - 1


@dataclass(frozen=True)
class GridResult:
    """A materialized reveal map plus what it was built around."""
    reveal_map: tuple[str, ...]
    prize_symbol: Optional[str] = None
    near_miss: bool = False


def winning_condition(tier):
    """Condition a winning tier is materialized with (match-3 when unset)."""
    if tier.win_condition is not None:
        return tier.win_condition
    return MatchNCondition(count=MATCH_THRESHOLD)


def symbol_caps(config: GameMathConfig) -> dict[str, int]:
    """Highest count each symbol may reach without forming a win."""
    caps = {s: BASE_CAP for s in config.symbol_pool}
    for tier in config.prize_table:
        if not tier.is_win:
            continue
        cond = winning_condition(tier)
        limit = max(0, cond.match_count - 1)
        targets = (cond.symbol_id,) if cond.symbol_id else config.win_symbols
        for symbol in targets:
            caps[symbol] = min(caps.get(symbol, BASE_CAP), limit)
    return caps


def accidental_matches(reveal_map, caps: dict[str, int], ignore: Optional[str] = None) -> dict[str, int]:
    """Symbols whose count exceeds their cap, excluding `ignore`."""
    counts = Counter(reveal_map)
    return {
        s: c for s, c in counts.items()
        if s != ignore and c > caps.get(s, BASE_CAP)
    }


# ═══════════════════════════════════════════════════════════════
# Losing Grid
# ═══════════════════════════════════════════════════════════════

def _least_used(candidates, counts: Counter, caps: dict[str, int], exclude: str) -> Optional[str]:
    eligible = [
        s for s in candidates
        if s != exclude and counts[s] < caps.get(s, BASE_CAP)
    ]
    if not eligible:
        return None
    return min(eligible, key=lambda s: counts[s])


def _break_matches(grid: list[str], config: GameMathConfig, caps: dict[str, int]) -> None:
    """Single corrective pass: trim every over-cap symbol left to right.

    Counts are kept live, so a replacement only ever lands on a symbol that
    is still below its cap and can never complete a new match.
    """
    counts = Counter(grid)
    candidates = config.symbol_pool
    fallback = config.lose_symbols[0]
    exhausted = False

    for symbol in list(dict.fromkeys(grid)):
        excess = counts[symbol] - caps.get(symbol, BASE_CAP)
        for i, cell in enumerate(grid):
            if excess <= 0:
                break
            if cell != symbol:
                continue
            replacement = _least_used(candidates, counts, caps, exclude=symbol)
            if replacement is None:
                exhausted = True
                if fallback == symbol:
                    break
                replacement = fallback
            grid[i] = replacement
            counts[symbol] -= 1
            counts[replacement] += 1
            excess -= 1

    if exhausted:
        logger.warning(
            f"{config.game_id}: symbol pools too small for a {config.rows}x{config.columns} "
            f"losing grid; fell back to '{fallback}'"
        )


def losing_grid(config: GameMathConfig, rng) -> GridResult:
    """Independent fill from the lose pool, then one corrective pass."""
    n = config.grid_size
    caps = symbol_caps(config)
    grid = [rng.pick(config.lose_symbols) for _ in range(n)]

    teased = False
    if config.near_miss and rng.chance(NEAR_MISS_RATE):
        teasers = [s for s in config.win_symbols if caps.get(s, BASE_CAP) >= 1]
        if teasers:
            tease = rng.pick(teasers)
            for pos in rng.sample(range(n), min(caps[tease], n)):
                grid[pos] = tease
            teased = True

    _break_matches(grid, config, caps)
    return GridResult(reveal_map=tuple(grid), near_miss=teased)


# ═══════════════════════════════════════════════════════════════
# Winning Grid
# ═══════════════════════════════════════════════════════════════

def winning_grid(config: GameMathConfig, tier, rng) -> GridResult:
    """Place the prize symbol `match_count` times, then fill around it."""
    cond = winning_condition(tier)
    n = config.grid_size
    prize = cond.symbol_id or rng.pick(config.win_symbols)
    match_count = min(cond.match_count, n)

    grid: list[Optional[str]] = [None] * n
    for pos in rng.sample(range(n), match_count):
        grid[pos] = prize

    caps = symbol_caps(config)
    counts = Counter({prize: match_count})
    allowed = [s for s in config.symbol_pool if s != prize]
    fallback = next((s for s in config.lose_symbols if s != prize), config.lose_symbols[0])

    for i in range(n):
        if grid[i] is not None:
            continue
        if config.is_single_win:
            candidates = [s for s in allowed if counts[s] < caps.get(s, BASE_CAP)]
        else:
            candidates = allowed
        value = rng.pick(candidates) if candidates else fallback
        grid[i] = value
        counts[value] += 1

    return GridResult(reveal_map=tuple(grid), prize_symbol=prize)


def materialize(config: GameMathConfig, tier, rng) -> GridResult:
    """Reveal map for a resolved tier."""
    if tier.is_win:
        return winning_grid(config, tier, rng)
    return losing_grid(config, rng)
