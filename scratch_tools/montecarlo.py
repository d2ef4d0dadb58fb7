"""
SCRATCHMATH — Monte Carlo Validator

Plays a config through the real engine (resolve_round, seed by seed) and checks:
  • Measured RTP within tolerance of the paytable's theoretical RTP
  • Hit frequency close to the theoretical hit rate
  • Every reveal map agrees with its tier (no accidental or missing matches)
  • RNG uniformity (chi-squared over 100 bins)

POOL configs can also be played as a finite deck, where every ticket is
dealt exactly once and the measured RTP must equal the theoretical one.

Usage:
    from scratch_tools.montecarlo import MonteCarloValidator
    mc = MonteCarloValidator()
    result = mc.validate(config, n_rounds=200_000)
    print(result.summary())

    report = mc.validate_all({"vault": vault_cfg, "lucky7": lucky_cfg})
    print(report.to_json())
"""

from __future__ import annotations

import json
import logging
import math
import statistics
import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Union

from scratch_config.schema import GameMathConfig
from scratch_config.settings import EngineSettings
from scratch_engine.deck import build_deck
from scratch_engine.engine import coerce_config, resolve_round
from scratch_engine.grid import accidental_matches, symbol_caps, winning_condition
from scratch_engine.resolver import find_tier
from scratch_engine.rng import SeededRNG
from scratch_engine.stats import paytable_stats

logger = logging.getLogger("scratchmath.montecarlo")


# ═══════════════════════════════════════════════════════════════
# Data Structures
# ═══════════════════════════════════════════════════════════════

@dataclass
class SimulationResult:
    """Results from one Monte Carlo run of a config."""
    game_id: str
    n_rounds: int
    theoretical_rtp: float
    measured_rtp: float
    rtp_delta: float                 # |measured - theoretical|
    rtp_pass: bool
    tolerance: float = 0.002
    mode: str = "draw"               # draw | deck

    theoretical_hit_rate: float = 0.0
    measured_std_dev: float = 0.0
    measured_hit_frequency: float = 0.0
    measured_max_win: float = 0.0
    measured_median_win: float = 0.0

    tier_counts: dict = field(default_factory=dict)
    win_distribution: dict = field(default_factory=dict)
    streak_analysis: dict = field(default_factory=dict)
    grid_violations: int = 0
    near_miss_rounds: int = 0
    chi_squared: float = 0.0
    chi_squared_pass: bool = True

    duration_seconds: float = 0.0
    rounds_per_second: float = 0.0
    seed: str = ""

    @property
    def grid_pass(self) -> bool:
        return self.grid_violations == 0

    @property
    def passed(self) -> bool:
        return self.rtp_pass and self.grid_pass and self.chi_squared_pass

    def summary(self) -> str:
        status = "✅ PASS" if self.rtp_pass else "❌ FAIL"
        grids = "✅ PASS" if self.grid_pass else f"❌ {self.grid_violations:,} violations"
        lines = [
            f"═══ Monte Carlo: {self.game_id} ({self.mode}) ═══",
            f"  Rounds:      {self.n_rounds:,}",
            f"  Theoretical: {self.theoretical_rtp*100:.4f}%",
            f"  Measured:    {self.measured_rtp*100:.4f}%",
            f"  Delta:       {self.rtp_delta*100:.4f}%  (±{self.tolerance*100:.2f}%)",
            f"  RTP Check:   {status}",
            f"  Grid Check:  {grids}",
            f"  Std Dev:     {self.measured_std_dev:.4f}",
            f"  Hit Freq:    {self.measured_hit_frequency*100:.2f}% "
            f"(theory {self.theoretical_hit_rate*100:.2f}%)",
            f"  Max Win:     {self.measured_max_win:.2f}x",
            f"  Speed:       {self.rounds_per_second:,.0f} rounds/sec",
            f"  Duration:    {self.duration_seconds:.2f}s",
        ]
        if self.streak_analysis:
            lines.append(f"  Max Loss Streak: {self.streak_analysis.get('max_loss_streak', 'N/A')}")
            lines.append(f"  Max Win Streak:  {self.streak_analysis.get('max_win_streak', 'N/A')}")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "game_id": self.game_id,
            "mode": self.mode,
            "n_rounds": self.n_rounds,
            "theoretical_rtp_pct": round(self.theoretical_rtp * 100, 4),
            "measured_rtp_pct": round(self.measured_rtp * 100, 4),
            "rtp_delta_pct": round(self.rtp_delta * 100, 4),
            "rtp_pass": self.rtp_pass,
            "tolerance_pct": round(self.tolerance * 100, 4),
            "volatility": {
                "std_dev": round(self.measured_std_dev, 4),
                "hit_frequency_pct": round(self.measured_hit_frequency * 100, 2),
                "theoretical_hit_rate_pct": round(self.theoretical_hit_rate * 100, 2),
                "max_win_mult": round(self.measured_max_win, 2),
                "median_win_mult": round(self.measured_median_win, 2),
            },
            "tier_counts": self.tier_counts,
            "distribution": self.win_distribution,
            "streak_analysis": self.streak_analysis,
            "grids": {
                "violations": self.grid_violations,
                "near_miss_rounds": self.near_miss_rounds,
                "pass": self.grid_pass,
            },
            "uniformity": {
                "chi_squared": round(self.chi_squared, 4),
                "pass": self.chi_squared_pass,
            },
            "performance": {
                "duration_s": round(self.duration_seconds, 2),
                "rounds_per_sec": int(self.rounds_per_second),
            },
            "seed": self.seed,
        }


@dataclass
class ValidationReport:
    """Validation report across several configs."""
    results: list[SimulationResult] = field(default_factory=list)
    overall_pass: bool = True
    generated_at: str = ""
    total_rounds: int = 0
    total_duration: float = 0.0

    def __post_init__(self):
        self.generated_at = datetime.now(timezone.utc).isoformat()

    def add(self, result: SimulationResult):
        self.results.append(result)
        if not result.passed:
            self.overall_pass = False
        self.total_rounds += result.n_rounds
        self.total_duration += result.duration_seconds

    def summary(self) -> str:
        lines = [
            "═══════════════════════════════════════════════════",
            "    MONTE CARLO VALIDATION REPORT",
            "═══════════════════════════════════════════════════",
            f"  Generated: {self.generated_at}",
            f"  Total Rounds: {self.total_rounds:,}",
            f"  Total Time: {self.total_duration:.1f}s",
            f"  Overall: {'✅ ALL PASS' if self.overall_pass else '❌ SOME FAILED'}",
            "",
        ]
        for r in self.results:
            status = "✅" if r.passed else "❌"
            lines.append(
                f"  {status} {r.game_id:16s} | "
                f"theory={r.theoretical_rtp*100:.2f}% "
                f"measured={r.measured_rtp*100:.2f}% "
                f"Δ={r.rtp_delta*100:.4f}% "
                f"hit={r.measured_hit_frequency*100:.1f}% "
                f"grids={r.grid_violations}"
            )
        return "\n".join(lines)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps({
            "report_type": "Monte Carlo Validation",
            "generator": "ScratchMath MonteCarloValidator v1.0",
            "generated_at": self.generated_at,
            "overall_pass": self.overall_pass,
            "total_rounds": self.total_rounds,
            "total_duration_s": round(self.total_duration, 2),
            "games": [r.to_dict() for r in self.results],
        }, indent=indent)


# ═══════════════════════════════════════════════════════════════
# Streak & Distribution Analysis
# ═══════════════════════════════════════════════════════════════

def _analyze_streaks(outcomes: list[float]) -> dict:
    """Win/loss streaks from a list of multiplier outcomes."""
    if not outcomes:
        return {}

    max_win = max_loss = cur_win = cur_loss = total_wins = 0
    for o in outcomes:
        if o > 0:
            total_wins += 1
            cur_win += 1
            cur_loss = 0
            max_win = max(max_win, cur_win)
        else:
            cur_loss += 1
            cur_win = 0
            max_loss = max(max_loss, cur_loss)

    return {
        "max_win_streak": max_win,
        "max_loss_streak": max_loss,
        "total_wins": total_wins,
        "total_losses": len(outcomes) - total_wins,
    }


_BUCKETS = (
    ("0-1x", 1), ("1-2x", 2), ("2-5x", 5), ("5-10x", 10),
    ("10-50x", 50), ("50-100x", 100), ("100-1000x", 1000),
)


def _win_distribution(outcomes: list[float]) -> dict:
    """Percentage of rounds per payout bucket."""
    buckets = {"0x": 0, **{name: 0 for name, _ in _BUCKETS}, "1000x+": 0}
    for o in outcomes:
        if o == 0:
            buckets["0x"] += 1
            continue
        for name, upper in _BUCKETS:
            if o < upper:
                buckets[name] += 1
                break
        else:
            buckets["1000x+"] += 1
    n = len(outcomes) or 1
    return {k: round(v / n * 100, 2) for k, v in buckets.items()}


def _chi_squared_uniformity(rng: SeededRNG, n_samples: int = 100_000,
                            n_bins: int = 100) -> tuple[float, bool]:
    """Chi-squared test of the engine RNG against a uniform distribution."""
    bins = [0] * n_bins
    for _ in range(n_samples):
        bins[min(int(rng.next() * n_bins), n_bins - 1)] += 1
    expected = n_samples / n_bins
    chi2 = sum((obs - expected) ** 2 / expected for obs in bins)
    # 99 degrees of freedom, α=0.01
    return chi2, chi2 < 135.8


def grid_consistent(config: GameMathConfig, outcome, caps: Optional[dict] = None) -> bool:
    """True when a reveal map shows exactly the result its tier claims."""
    caps = caps if caps is not None else symbol_caps(config)
    if not outcome.is_win:
        return not accidental_matches(outcome.reveal_map, caps)

    tier = find_tier(config, outcome.tier_id)
    if tier is None:
        return False
    expected = min(winning_condition(tier).match_count, config.grid_size)
    if outcome.reveal_map.count(outcome.prize_symbol) != expected:
        return False
    if config.is_single_win:
        return not accidental_matches(outcome.reveal_map, caps, ignore=outcome.prize_symbol)
    return True


# ═══════════════════════════════════════════════════════════════
# Monte Carlo Validator
# ═══════════════════════════════════════════════════════════════

class MonteCarloValidator:
    """Validates scratch-card configs by playing them through the engine."""

    def __init__(self, tolerance: float = None, seed: int = None, z_score: float = None):
        """
        Args:
            tolerance: Minimum allowed absolute RTP deviation (0.002 = ±0.2%)
            seed: Base seed for reproducibility
            z_score: Standard errors of slack granted to high-variance tables
        """
        self.tolerance = EngineSettings.MC_TOLERANCE if tolerance is None else tolerance
        self.base_seed = EngineSettings.MC_SEED if seed is None else seed
        self.z_score = EngineSettings.MC_Z_SCORE if z_score is None else z_score

    def _allowed_delta(self, variance: float, n_rounds: int) -> float:
        stderr = math.sqrt(variance / n_rounds) if n_rounds else 0.0
        return max(self.tolerance, self.z_score * stderr)

    def _run(self, config: GameMathConfig, n_rounds: int, mode: str,
             tickets: Optional[tuple] = None) -> SimulationResult:
        theory = paytable_stats(config)
        caps = symbol_caps(config)
        chi2, chi_pass = _chi_squared_uniformity(SeededRNG(f"{self.base_seed}:uniformity"))

        outcomes = []
        tier_counts = Counter()
        violations = 0
        near_misses = 0

        t0 = time.time()
        for i in range(n_rounds):
            forced = tickets[i] if tickets is not None else None
            outcome = resolve_round(
                config, f"{self.base_seed}:{config.game_id}:{i}", forced_tier_id=forced,
            )
            outcomes.append(outcome.final_prize / config.ticket_price)
            tier_counts[outcome.tier_id] += 1
            near_misses += outcome.near_miss
            if not grid_consistent(config, outcome, caps):
                violations += 1
        duration = time.time() - t0

        measured_rtp = sum(outcomes) / n_rounds if n_rounds else 0.0
        rtp_delta = abs(measured_rtp - theory.rtp)
        if mode == "deck":
            allowed = 1e-9 if n_rounds == config.total_tickets else self._allowed_delta(theory.variance, n_rounds)
        else:
            allowed = self._allowed_delta(theory.variance, n_rounds)
        wins = [o for o in outcomes if o > 0]

        if violations:
            logger.warning(f"{config.game_id}: {violations:,} reveal maps disagree with their tier")

        result = SimulationResult(
            game_id=config.game_id,
            n_rounds=n_rounds,
            theoretical_rtp=theory.rtp,
            measured_rtp=measured_rtp,
            rtp_delta=rtp_delta,
            rtp_pass=rtp_delta <= allowed,
            tolerance=allowed,
            mode=mode,
            theoretical_hit_rate=theory.hit_rate,
            measured_std_dev=statistics.pstdev(outcomes) if len(outcomes) > 1 else 0.0,
            measured_hit_frequency=len(wins) / n_rounds if n_rounds else 0.0,
            measured_max_win=max(outcomes, default=0.0),
            measured_median_win=statistics.median(wins) if wins else 0.0,
            tier_counts=dict(tier_counts),
            win_distribution=_win_distribution(outcomes),
            streak_analysis=_analyze_streaks(outcomes),
            grid_violations=violations,
            near_miss_rounds=near_misses,
            chi_squared=chi2,
            chi_squared_pass=chi_pass,
            duration_seconds=duration,
            rounds_per_second=n_rounds / duration if duration > 0 else 0,
            seed=f"{self.base_seed}:{config.game_id}",
        )
        logger.info(
            f"{config.game_id} [{mode}] {n_rounds:,} rounds: measured RTP "
            f"{measured_rtp*100:.4f}% vs {theory.rtp*100:.4f}% "
            f"({'pass' if result.rtp_pass else 'FAIL'})"
        )
        return result

    def validate(self, config: Union[GameMathConfig, dict],
                 n_rounds: int = None) -> SimulationResult:
        """Independent weighted draws, one seed per round."""
        config = coerce_config(config)
        n_rounds = n_rounds or EngineSettings.MC_ROUNDS
        return self._run(config, n_rounds, mode="draw")

    def validate_deck(self, config: Union[GameMathConfig, dict],
                      n_rounds: int = None) -> SimulationResult:
        """Deal a shuffled finite deck; the whole deck by default.

        Dealing the entire deck must reproduce the theoretical RTP exactly.
        """
        config = coerce_config(config)
        tickets = build_deck(config, seed=f"{self.base_seed}:{config.game_id}:deck")
        n_rounds = min(n_rounds or len(tickets), len(tickets))
        return self._run(config, n_rounds, mode="deck", tickets=tickets)

    def validate_all(self, configs: dict, n_rounds: int = None) -> ValidationReport:
        """Run `validate` on each named config."""
        report = ValidationReport()
        for name, config in configs.items():
            config = coerce_config(config)
            if config.game_id != name:
                config = config.model_copy(update={"game_id": name})
            report.add(self.validate(config, n_rounds=n_rounds))
        return report
