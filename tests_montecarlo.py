#!/usr/bin/env python3
"""
Tests for the Monte Carlo validator

Validates:
1.  Measured RTP converges on the theoretical RTP (POOL draws)
2.  Measured RTP converges on the theoretical RTP (UNLIMITED draws)
3.  Every simulated reveal map agrees with its tier
4.  Cramped symbol pools are reported as grid violations
5.  Dealing a full finite deck reproduces the theoretical RTP exactly
6.  Streak analysis and payout buckets
7.  grid_consistent rejects a map with an accidental match
8.  ValidationReport aggregates and serializes
9.  RNG uniformity statistic is in a sane range
"""

import json
import logging
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from scratch_config.schema import GameMathConfig, ProbabilityTier, ResolvedOutcome, WeightedTier
from scratch_engine.rng import SeededRNG
from scratch_tools.montecarlo import (
    MonteCarloValidator,
    _analyze_streaks,
    _chi_squared_uniformity,
    _win_distribution,
    grid_consistent,
)


def _pool():
    return GameMathConfig(
        game_id="vault",
        lose_symbols=("A", "B", "C", "D"),
        win_symbols=("GEM", "STAR", "BELL"),
        math_mode="POOL",
        total_tickets=1000,
        prize_table=[
            WeightedTier(id="t2", value=2, weight=100),
            WeightedTier(id="t5", value=5, weight=40),
            WeightedTier(id="t20", value=20, weight=10),
        ],
    )


def _unlimited():
    return GameMathConfig(
        game_id="lucky",
        lose_symbols=("A", "B", "C", "D"),
        win_symbols=("GEM", "STAR", "BELL"),
        math_mode="UNLIMITED",
        near_miss=True,
        prize_table=[
            ProbabilityTier(id="p1", value=1, probability=0.2),
            ProbabilityTier(id="p10", value=10, probability=0.03),
        ],
    )


# ============================================================
# Tests
# ============================================================

def test_pool_rtp_converges():
    """POOL draws land within 4 standard errors of Σ weight/total × value."""
    result = MonteCarloValidator(tolerance=0.0, z_score=4.0, seed=7).validate(_pool(), n_rounds=100_000)
    assert abs(result.theoretical_rtp - 0.6) < 1e-9
    assert result.rtp_pass, result.summary()
    assert abs(result.measured_hit_frequency - 0.15) < 0.01, result.measured_hit_frequency
    assert result.measured_max_win <= 20
    assert sum(result.tier_counts.values()) == 100_000
    print(f"✅ POOL measured {result.measured_rtp*100:.2f}% vs 60.00%")


def test_unlimited_rtp_converges():
    """UNLIMITED draws land within 4 standard errors of Σ p × value."""
    result = MonteCarloValidator(tolerance=0.0, z_score=4.0, seed=7).validate(_unlimited(), n_rounds=100_000)
    assert abs(result.theoretical_rtp - 0.5) < 1e-9
    assert result.rtp_pass, result.summary()
    assert abs(result.measured_hit_frequency - 0.23) < 0.01, result.measured_hit_frequency
    assert result.near_miss_rounds > 0
    print(f"✅ UNLIMITED measured {result.measured_rtp*100:.2f}% vs 50.00%")


def test_simulated_grids_are_consistent():
    """No reveal map disagrees with its tier when the pools have capacity."""
    mc = MonteCarloValidator(seed=3)
    for config in (_pool(), _unlimited()):
        result = mc.validate(config, n_rounds=3000)
        assert result.grid_violations == 0, f"{config.game_id}: {result.grid_violations}"
        assert result.grid_pass
    print("✅ 6,000 reveal maps consistent")


def test_cramped_pools_are_reported():
    """Two lose symbols + one win symbol cannot fill a 3×3 grid cleanly."""
    cramped = GameMathConfig(game_id="cramped", lose_symbols=("A", "B"), win_symbols=("WIN",))
    result = MonteCarloValidator(seed=1).validate(cramped, n_rounds=200)
    assert result.grid_violations == 200, result.grid_violations
    assert not result.passed
    print("✅ cramped pools flagged")


def test_full_deck_is_exact():
    """Dealing every ticket pays exactly the theoretical RTP."""
    config = _pool().model_copy(update={"total_tickets": 500})
    result = MonteCarloValidator(seed=11).validate_deck(config)
    assert result.mode == "deck"
    assert result.n_rounds == 500
    assert result.rtp_delta < 1e-9, result.rtp_delta
    assert result.rtp_pass
    assert result.tier_counts == {"t2": 100, "t5": 40, "t20": 10, "lose_pool": 350}, result.tier_counts
    print("✅ full deck RTP exact")


def test_streaks_and_buckets():
    streaks = _analyze_streaks([0, 1, 1, 0, 0, 0, 2])
    assert streaks == {"max_win_streak": 2, "max_loss_streak": 3, "total_wins": 3, "total_losses": 4}
    assert _analyze_streaks([]) == {}

    buckets = _win_distribution([0, 0.5, 10, 2000])
    assert buckets["0x"] == 25.0
    assert buckets["0-1x"] == 25.0
    assert buckets["10-50x"] == 25.0
    assert buckets["1000x+"] == 25.0
    assert buckets["2-5x"] == 0.0


def test_grid_consistent_rejects_accidental_match():
    config = _pool()
    bad = ResolvedOutcome(
        round_id="rnd_x", final_prize=0, is_win=False, tier_id="lose_pool",
        reveal_map=("A", "A", "A", "B", "B", "C", "C", "D", "D"), presentation_seed=1,
    )
    assert not grid_consistent(config, bad)

    short = ResolvedOutcome(
        round_id="rnd_y", final_prize=2, is_win=True, tier_id="t2", prize_symbol="GEM",
        reveal_map=("GEM", "GEM", "A", "B", "B", "C", "C", "D", "D"), presentation_seed=1,
    )
    assert not grid_consistent(config, short)


def test_report_aggregates():
    report = MonteCarloValidator(seed=5).validate_all(
        {"vault": _pool(), "lucky": _unlimited()}, n_rounds=1000,
    )
    assert len(report.results) == 2
    assert report.total_rounds == 2000
    data = json.loads(report.to_json())
    assert [g["game_id"] for g in data["games"]] == ["vault", "lucky"]
    assert "MONTE CARLO VALIDATION REPORT" in report.summary()


def test_uniformity_statistic():
    chi2, _ = _chi_squared_uniformity(SeededRNG("uniformity"), n_samples=50_000)
    # 99 dof: mean 99, anything past 200 means the stream is broken
    assert 40 < chi2 < 200, chi2


# ============================================================
# Run all tests
# ============================================================

if __name__ == "__main__":
    logging.disable(logging.WARNING)
    tests = [
        test_pool_rtp_converges,
        test_unlimited_rtp_converges,
        test_simulated_grids_are_consistent,
        test_cramped_pools_are_reported,
        test_full_deck_is_exact,
        test_streaks_and_buckets,
        test_grid_consistent_rejects_accidental_match,
        test_report_aggregates,
        test_uniformity_statistic,
    ]

    print(f"\n{'='*60}")
    print(f"Monte Carlo Validator Tests — {len(tests)} tests")
    print(f"{'='*60}\n")

    passed = 0
    failed = 0
    for test in tests:
        try:
            test()
            passed += 1
        except Exception as e:
            print(f"❌ {test.__name__}: {e}")
            failed += 1

    print(f"{'='*60}")
    print(f"Results: {passed} passed, {failed} failed, {passed + failed} total")
    print(f"{'='*60}")

    sys.exit(0 if failed == 0 else 1)
