"""
SCRATCHMATH — Paytable Statistics

Theoretical long-run behaviour of a finalized prize table:

    RTP       = Σ(mult × P)
    Hit rate  = Σ P            over tiers with mult > 0
    Variance  = Σ P × (mult − RTP)²  + P_implicit × RTP²
    Max win   = max(mult)      over tiers with mult > 0

P_implicit is the mass the table leaves unassigned (1 − ΣP); it pays 0.
Every figure is a pure function of the table and is recomputed on demand.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

from scratch_config.schema import GameMathConfig
from scratch_engine.resolver import tier_probabilities


@dataclass(frozen=True)
class PaytableStats:
    rtp: float = 0.0
    hit_rate: float = 0.0
    variance: float = 0.0
    max_win: float = 0.0

    @property
    def standard_deviation(self) -> float:
        return math.sqrt(self.variance)

    @property
    def house_edge(self) -> float:
        return 1.0 - self.rtp

    def to_dict(self) -> dict:
        """Rounded for the certification schema."""
        return {
            "computed_rtp": round(self.rtp, 5),
            "hit_rate": round(self.hit_rate, 6),
            "variance": round(self.variance, 2),
            "max_win": self.max_win,
        }


def _pairs(entries: Iterable) -> list[tuple[float, float]]:
    pairs = []
    for e in entries:
        if isinstance(e, tuple):
            mult, p = e
        else:
            mult, p = e.multiplier, e.probability
        pairs.append((float(mult), float(p)))
    return pairs


def compute_stats(entries: Iterable) -> PaytableStats:
    """Stats from (multiplier, probability) pairs or RGS prize-table rows."""
    pairs = _pairs(entries)
    if not pairs:
        return PaytableStats()

    rtp = sum(m * p for m, p in pairs)
    hit_rate = sum(p for m, p in pairs if m > 0)
    max_win = max((m for m, _ in pairs if m > 0), default=0.0)

    variance = sum(p * (m - rtp) ** 2 for m, p in pairs)
    implicit_lose = 1.0 - sum(p for _, p in pairs)
    if implicit_lose > 0:
        variance += implicit_lose * rtp ** 2

    return PaytableStats(rtp=rtp, hit_rate=hit_rate, variance=variance, max_win=max_win)


def paytable_stats(config: GameMathConfig) -> PaytableStats:
    """Stats for a config's prize table under its math mode."""
    probabilities = tier_probabilities(config)
    return compute_stats(
        (tier.value, p) for tier, p in zip(config.prize_table, probabilities)
    )
