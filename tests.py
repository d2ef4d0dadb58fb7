#!/usr/bin/env python3
"""
SCRATCHMATH — Unit & Integration Test Suite

Run: python tests.py
     python tests.py -v                # verbose
     python tests.py TestGridMaterializer

Test categories:
  TestSeededRNG         — determinism, ranges, sampling, seed hashing
  TestSchema            — tier tagging, camelCase payloads, frozen models
  TestOutcomeResolver   — weighted/probability draws, empty tables, forced tiers
  TestGridMaterializer  — match invariants, two-symbol lose pools, find-target
  TestRoundResolution   — resolve_round determinism, payouts, malformed input
  TestPaytableStats     — RTP / hit rate / variance formulas
  TestCertification     — RGS schema rows, ticket conservation, probability closure
  TestFiniteDeck        — deck length, per-tier counts, exact RTP over a full deal
  TestConfigLoader      — authoring payloads, file loading, authoring warnings
"""

import json
import logging
import sys
import tempfile
import unittest
from collections import Counter
from pathlib import Path

from pydantic import ValidationError

# ── Ensure project root is on sys.path ──
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from scratch_config.schema import (
    FindTargetCondition,
    GameMathConfig,
    MatchNCondition,
    ProbabilityTier,
    WeightedTier,
)
from scratch_engine.certification import classify_mechanic, transform_to_rgs
from scratch_engine.deck import build_deck, deck_summary
from scratch_engine.engine import ScratchMathEngine, coerce_config, resolve_round
from scratch_engine.grid import materialize, symbol_caps
from scratch_engine.resolver import find_tier, resolve_tier, tier_probabilities
from scratch_engine.rng import SeededRNG, fnv1a_32
from scratch_engine.stats import PaytableStats, compute_stats, paytable_stats
from scratch_tools.config_loader import from_authoring_payload, load_config, validate_config


LOSE_AB = ("A", "B")
WIN_GEMS = ("GEM", "STAR", "BELL")


def pool_config(**overrides) -> GameMathConfig:
    data = dict(
        game_id="vault",
        lose_symbols=("A", "B", "C", "D"),
        win_symbols=WIN_GEMS,
        math_mode="POOL",
        total_tickets=1000,
        prize_table=[
            WeightedTier(id="t2", value=2, weight=100),
            WeightedTier(id="t5", value=5, weight=40),
            WeightedTier(id="t20", value=20, weight=10),
        ],
    )
    data.update(overrides)
    return GameMathConfig(**data)


def unlimited_config(**overrides) -> GameMathConfig:
    data = dict(
        game_id="lucky",
        lose_symbols=("A", "B", "C", "D"),
        win_symbols=WIN_GEMS,
        math_mode="UNLIMITED",
        prize_table=[
            ProbabilityTier(id="p1", value=1, probability=0.2),
            ProbabilityTier(id="p10", value=10, probability=0.03),
        ],
    )
    data.update(overrides)
    return GameMathConfig(**data)


def max_count(reveal_map, ignore=None) -> int:
    counts = Counter(s for s in reveal_map if s != ignore)
    return max(counts.values(), default=0)


# ============================================================
# RNG Tests
# ============================================================

class TestSeededRNG(unittest.TestCase):

    def test_same_seed_same_sequence(self):
        a, b = SeededRNG("round-0001"), SeededRNG("round-0001")
        self.assertEqual([a.next_u32() for _ in range(50)], [b.next_u32() for _ in range(50)])

    def test_different_seeds_diverge(self):
        a, b = SeededRNG("round-0001"), SeededRNG("round-0002")
        self.assertNotEqual([a.next() for _ in range(10)], [b.next() for _ in range(10)])

    def test_next_in_unit_interval(self):
        rng = SeededRNG(7)
        for _ in range(10_000):
            x = rng.next()
            self.assertGreaterEqual(x, 0.0)
            self.assertLess(x, 1.0)

    def test_range_is_inclusive(self):
        rng = SeededRNG("dice")
        seen = {rng.range(1, 6) for _ in range(2000)}
        self.assertEqual(seen, {1, 2, 3, 4, 5, 6})

    def test_range_rejects_empty(self):
        with self.assertRaises(ValueError):
            SeededRNG(1).range(5, 4)

    def test_pick_empty_raises(self):
        with self.assertRaises(IndexError):
            SeededRNG(1).pick([])

    def test_sample_is_without_replacement(self):
        rng = SeededRNG("positions")
        for _ in range(200):
            picked = rng.sample(range(9), 4)
            self.assertEqual(len(set(picked)), 4)
            self.assertTrue(all(0 <= p < 9 for p in picked))

    def test_shuffle_is_permutation(self):
        items = list(range(100))
        SeededRNG("deck").shuffle(items)
        self.assertEqual(sorted(items), list(range(100)))
        self.assertNotEqual(items, list(range(100)))

    def test_fnv1a_known_values(self):
        self.assertEqual(fnv1a_32(""), 0x811C9DC5)
        self.assertEqual(fnv1a_32("a"), 0xE40C292C)

    def test_int_seed_masked_to_32_bits(self):
        self.assertEqual(SeededRNG(2**32 + 5).next_u32(), SeededRNG(5).next_u32())

    def test_bool_seed_rejected(self):
        with self.assertRaises(TypeError):
            SeededRNG(True)


# ============================================================
# Schema Tests
# ============================================================

class TestSchema(unittest.TestCase):

    def test_camel_case_payload(self):
        config = GameMathConfig.model_validate({
            "gameId": "camel",
            "mathMode": "unlimited",
            "winLogic": "multi-win",
            "prizeTable": [{"id": "a", "value": 5, "probability": 0.1}],
        })
        self.assertEqual(config.game_id, "camel")
        self.assertFalse(config.is_pool)
        self.assertFalse(config.is_single_win)
        self.assertIsInstance(config.prize_table[0], ProbabilityTier)
        self.assertTrue(config.prize_table[0].is_win)

    def test_untagged_tiers_follow_math_mode(self):
        config = GameMathConfig.model_validate({
            "mathMode": "POOL",
            "prizeTable": [{"id": "w", "value": 2, "weight": 10}, {"id": "lose", "value": 0, "weight": 5}],
        })
        self.assertTrue(all(isinstance(t, WeightedTier) for t in config.prize_table))
        self.assertFalse(config.prize_table[1].is_win)
        self.assertFalse(config.has_mixed_variants())

    def test_win_condition_union(self):
        config = GameMathConfig.model_validate({
            "prizeTable": [
                {"id": "m4", "value": 5, "weight": 1, "winCondition": {"type": "match_n", "count": 4}},
                {"id": "ft", "value": 9, "weight": 1, "winCondition": {"type": "find_target", "symbolId": "WIN"}},
            ],
        })
        m4, ft = config.prize_table
        self.assertIsInstance(m4.win_condition, MatchNCondition)
        self.assertEqual(m4.win_condition.match_count, 4)
        self.assertIsInstance(ft.win_condition, FindTargetCondition)
        self.assertEqual(ft.win_condition.match_count, 1)

    def test_config_is_frozen(self):
        config = pool_config()
        with self.assertRaises(ValidationError):
            config.rows = 5
        edited = config.model_copy(update={"rows": 4})
        self.assertEqual(edited.grid_size, 12)
        self.assertEqual(config.grid_size, 9)

    def test_structural_errors_raise(self):
        with self.assertRaises(ValidationError):
            GameMathConfig(rows=0)
        with self.assertRaises(ValidationError):
            GameMathConfig(lose_symbols=())
        with self.assertRaises(ValidationError):
            WeightedTier(id="bad", value=1, weight=-1)

    def test_symbol_pool_dedupes(self):
        config = GameMathConfig(lose_symbols=("A", "B"), win_symbols=("B", "WIN"))
        self.assertEqual(config.symbol_pool, ("A", "B", "WIN"))


# ============================================================
# Resolver Tests
# ============================================================

class TestOutcomeResolver(unittest.TestCase):

    def test_pool_win_rate_matches_weight(self):
        """1 tier, weight 5 of 100 tickets → ≈5% wins."""
        config = GameMathConfig(
            math_mode="POOL", total_tickets=100,
            prize_table=[WeightedTier(id="t10", value=10, weight=5)],
        )
        rng = SeededRNG("scenario-a")
        n = 100_000
        wins = sum(resolve_tier(config, rng).is_win for _ in range(n))
        self.assertAlmostEqual(wins / n, 0.05, delta=0.005)

    def test_empty_table_resolves_default_lose_without_draw(self):
        config = GameMathConfig()
        rng = SeededRNG(3)
        tier = resolve_tier(config, rng)
        self.assertEqual(tier.id, "default_lose")
        self.assertFalse(tier.is_win)
        self.assertEqual(rng.state, rng.seed)

    def test_residual_mass_lands_on_lose_pool(self):
        config = unlimited_config(prize_table=[ProbabilityTier(id="rare", value=100, probability=0.0)])
        tier = resolve_tier(config, SeededRNG(1))
        self.assertEqual(tier.id, "lose_pool")
        self.assertFalse(tier.is_win)

    def test_full_probability_always_wins(self):
        config = unlimited_config(prize_table=[ProbabilityTier(id="all", value=1, probability=1.0)])
        rng = SeededRNG("always")
        self.assertTrue(all(resolve_tier(config, rng).id == "all" for _ in range(500)))

    def test_pool_probabilities(self):
        self.assertEqual(tier_probabilities(pool_config()), [0.1, 0.04, 0.01])

    def test_mixed_table_keeps_each_tier_odds(self):
        config = pool_config(prize_table=[
            WeightedTier(id="t2", value=2, weight=100),
            ProbabilityTier(id="stray", value=50, probability=0.001),
        ])
        self.assertTrue(config.has_mixed_variants())
        probs = tier_probabilities(config)
        self.assertAlmostEqual(probs[0], 0.1)
        self.assertAlmostEqual(probs[1], 0.001)
        stats = paytable_stats(config)
        self.assertAlmostEqual(stats.rtp, 0.25)
        self.assertAlmostEqual(stats.hit_rate, 0.101)

    def test_oversubscribed_odds_are_clipped(self):
        config = unlimited_config(prize_table=[
            ProbabilityTier(id="p1", value=1, probability=0.7),
            ProbabilityTier(id="p2", value=2, probability=0.6),
        ])
        probs = tier_probabilities(config)
        self.assertAlmostEqual(probs[0], 0.7)
        self.assertAlmostEqual(probs[1], 0.3)
        self.assertAlmostEqual(sum(probs), 1.0)

        pool = pool_config(total_tickets=100, prize_table=[
            WeightedTier(id="t1", value=1, weight=80),
            WeightedTier(id="t10", value=10, weight=50),
            WeightedTier(id="t20", value=20, weight=5),
        ])
        probs = tier_probabilities(pool)
        self.assertAlmostEqual(probs[0], 0.8)
        self.assertAlmostEqual(probs[1], 0.2)
        self.assertEqual(probs[2], 0.0)

    def test_find_tier_handles_implicit_losers(self):
        config = pool_config()
        self.assertEqual(find_tier(config, "t5").value, 5)
        self.assertAlmostEqual(find_tier(config, "lose_pool").probability, 0.85)
        self.assertIsNone(find_tier(config, "nope"))
        self.assertEqual(find_tier(GameMathConfig(), "default_lose").id, "default_lose")


# ============================================================
# Grid Materializer Tests
# ============================================================

class TestGridMaterializer(unittest.TestCase):

    def test_two_symbol_lose_pool_seed_42(self):
        """3×3 with lose pool ['A','B'] never shows three of either."""
        config = GameMathConfig(lose_symbols=LOSE_AB, win_symbols=WIN_GEMS)
        outcome = resolve_round(config, 42)
        self.assertFalse(outcome.is_win)
        self.assertEqual(len(outcome.reveal_map), 9)
        counts = Counter(outcome.reveal_map)
        self.assertLess(counts["A"], 3)
        self.assertLess(counts["B"], 3)
        self.assertLess(max_count(outcome.reveal_map), 3)

    def test_two_symbol_lose_pool_property(self):
        config = GameMathConfig(
            lose_symbols=LOSE_AB, win_symbols=WIN_GEMS, math_mode="UNLIMITED",
            prize_table=[ProbabilityTier(id="w", value=5, probability=0.3)],
        )
        for seed in range(1500):
            outcome = resolve_round(config, seed)
            if outcome.is_win:
                self.assertEqual(outcome.reveal_map.count(outcome.prize_symbol), 3, seed)
                self.assertLess(max_count(outcome.reveal_map, ignore=outcome.prize_symbol), 3, seed)
            else:
                self.assertLess(max_count(outcome.reveal_map), 3, seed)

    def test_near_miss_never_completes_a_match(self):
        config = GameMathConfig(lose_symbols=("A", "B", "C"), win_symbols=WIN_GEMS, near_miss=True)
        teased = 0
        for seed in range(500):
            outcome = resolve_round(config, f"tease-{seed}")
            teased += outcome.near_miss
            self.assertLess(max_count(outcome.reveal_map), 3)
        self.assertGreater(teased, 100)

    def test_match_n_places_exactly_n(self):
        config = GameMathConfig(
            rows=4, columns=4, lose_symbols=("A", "B", "C", "D", "E", "F"), win_symbols=WIN_GEMS,
            math_mode="UNLIMITED",
            prize_table=[ProbabilityTier(
                id="m4", value=8, probability=1.0, win_condition=MatchNCondition(count=4),
            )],
        )
        for seed in range(300):
            outcome = resolve_round(config, seed)
            self.assertTrue(outcome.is_win)
            self.assertIn(outcome.prize_symbol, WIN_GEMS)
            self.assertEqual(outcome.reveal_map.count(outcome.prize_symbol), 4)
            self.assertLess(max_count(outcome.reveal_map, ignore=outcome.prize_symbol), 4)

    def test_find_target_shows_target_once(self):
        config = GameMathConfig(
            lose_symbols=("A", "B", "C", "D", "E"), win_symbols=("STAR",), math_mode="UNLIMITED",
            prize_table=[ProbabilityTier(
                id="star", value=3, probability=0.5,
                win_condition=FindTargetCondition(symbol_id="STAR"),
            )],
        )
        self.assertEqual(symbol_caps(config)["STAR"], 0)
        for seed in range(400):
            outcome = resolve_round(config, seed)
            expected = 1 if outcome.is_win else 0
            self.assertEqual(outcome.reveal_map.count("STAR"), expected)

    def test_tier_without_condition_is_match_3(self):
        config = GameMathConfig(lose_symbols=("A", "B", "C", "D"), win_symbols=("WIN",))
        tier = WeightedTier(id="t", value=2, weight=1)
        grid = materialize(config, tier, SeededRNG(9))
        self.assertEqual(grid.prize_symbol, "WIN")
        self.assertEqual(grid.reveal_map.count("WIN"), 3)

    def test_exhausted_pools_degrade_to_first_lose_symbol(self):
        config = GameMathConfig(lose_symbols=("A",), win_symbols=("WIN",))
        with self.assertLogs("scratchmath.grid", level="WARNING"):
            grid = materialize(config, find_tier(config, "default_lose"), SeededRNG(1))
        self.assertEqual(len(grid.reveal_map), 9)
        self.assertEqual(set(grid.reveal_map), {"A", "WIN"})


# ============================================================
# Round Resolution Tests
# ============================================================

class TestRoundResolution(unittest.TestCase):

    def test_same_seed_same_outcome(self):
        config = pool_config()
        for seed in ("alpha", "beta", 12345):
            self.assertEqual(resolve_round(config, seed), resolve_round(config, seed))

    def test_round_ids_differ_between_seeds(self):
        config = pool_config()
        ids = {resolve_round(config, i).round_id for i in range(200)}
        self.assertEqual(len(ids), 200)

    def test_empty_table_loses(self):
        outcome = resolve_round(GameMathConfig(), "anything")
        self.assertFalse(outcome.is_win)
        self.assertEqual(outcome.final_prize, 0)
        self.assertEqual(outcome.tier_id, "default_lose")
        self.assertIsNone(outcome.prize_symbol)

    def test_final_prize_scales_with_ticket_price(self):
        config = unlimited_config(
            ticket_price=2.0, prize_table=[ProbabilityTier(id="x", value=10, probability=1.0)],
        )
        outcome = resolve_round(config, 1)
        self.assertTrue(outcome.is_win)
        self.assertEqual(outcome.final_prize, 20.0)

    def test_malformed_prize_table_degrades_to_loss(self):
        payload = {"rows": 3, "columns": 3, "prizeTable": [{"id": "x", "value": -5, "weight": 1}]}
        with self.assertLogs("scratchmath.engine", level="ERROR"):
            outcome = resolve_round(payload, 1)
        self.assertEqual(outcome.tier_id, "default_lose")
        self.assertFalse(outcome.is_win)

    def test_other_structural_errors_raise(self):
        with self.assertRaises(ValidationError):
            coerce_config({"rows": 0, "prizeTable": "garbage"})

    def test_forced_tier_skips_the_draw(self):
        config = pool_config()
        outcome = resolve_round(config, 1, forced_tier_id="t20")
        self.assertEqual(outcome.tier_id, "t20")
        self.assertEqual(outcome.final_prize, 20)

    def test_unknown_forced_tier_falls_back(self):
        config = pool_config()
        with self.assertLogs("scratchmath.resolver", level="WARNING"):
            forced = resolve_round(config, 77, forced_tier_id="missing")
        self.assertEqual(forced, resolve_round(config, 77))

    def test_rng_factory_is_used(self):
        config = pool_config()
        outcome = resolve_round(config, "ignored", rng_factory=lambda _seed: SeededRNG("fixed"))
        self.assertEqual(outcome, resolve_round(config, "fixed"))

    def test_payload_is_camel_case(self):
        payload = resolve_round(pool_config(), 5).to_payload()
        for key in ("roundId", "finalPrize", "isWin", "tierId", "revealMap", "presentationSeed"):
            self.assertIn(key, payload)
        json.dumps(payload)

    def test_engine_wrapper(self):
        engine = ScratchMathEngine(pool_config().model_dump())
        self.assertEqual(engine.resolve(3), resolve_round(engine.config, 3))
        self.assertAlmostEqual(engine.stats().rtp, 0.6)
        self.assertEqual(engine.certification().model_id, "vault")
        meta = engine.get_metadata()
        self.assertEqual(meta["grid"], "3x3")
        self.assertEqual(meta["tiers"], 3)


# ============================================================
# Statistics Tests
# ============================================================

class TestPaytableStats(unittest.TestCase):

    def test_empty_table_is_zero(self):
        self.assertEqual(compute_stats([]), PaytableStats())
        self.assertEqual(paytable_stats(GameMathConfig()).rtp, 0.0)

    def test_formulas(self):
        stats = compute_stats([(0, 0.9), (10, 0.1)])
        self.assertAlmostEqual(stats.rtp, 1.0)
        self.assertAlmostEqual(stats.hit_rate, 0.1)
        self.assertAlmostEqual(stats.variance, 9.0)
        self.assertEqual(stats.max_win, 10)

    def test_implicit_lose_mass_counts_in_variance(self):
        self.assertAlmostEqual(compute_stats([(10, 0.1)]).variance, 9.0)

    def test_pool_config_stats(self):
        stats = paytable_stats(pool_config())
        self.assertAlmostEqual(stats.rtp, 0.6)
        self.assertAlmostEqual(stats.hit_rate, 0.15)
        self.assertEqual(stats.max_win, 20)
        self.assertAlmostEqual(stats.house_edge, 0.4)

    def test_rounding_for_certification(self):
        d = PaytableStats(rtp=0.9612345678, hit_rate=0.12345678, variance=12.3456, max_win=500).to_dict()
        self.assertEqual(d, {"computed_rtp": 0.96123, "hit_rate": 0.123457, "variance": 12.35, "max_win": 500})


# ============================================================
# Certification Tests
# ============================================================

class TestCertification(unittest.TestCase):

    def test_pool_rows_conserve_tickets(self):
        schema = transform_to_rgs(pool_config())
        rows = schema.prize_table
        self.assertEqual(rows[0].tier, "LOSE")
        self.assertEqual(rows[0].weight, 850)
        self.assertEqual(sum(r.weight for r in rows), 1000)
        self.assertAlmostEqual(sum(r.probability for r in rows), 1.0)
        self.assertEqual(schema.stats.computed_rtp, 0.6)
        self.assertEqual(schema.stats.hit_rate, 0.15)

    def test_pool_overflow_floors_lose_row(self):
        config = pool_config(total_tickets=100)
        with self.assertLogs("scratchmath.certification", level="WARNING"):
            schema = transform_to_rgs(config)
        self.assertEqual([r.weight for r in schema.prize_table], [0, 100, 0, 0])
        self.assertEqual(sum(r.weight for r in schema.prize_table), 100)

    def test_oversubscribed_tables_certify_what_rounds_pay(self):
        unlimited = unlimited_config(prize_table=[
            ProbabilityTier(id="p1", value=1, probability=0.7),
            ProbabilityTier(id="p2", value=2, probability=0.6),
        ])
        pool = pool_config(total_tickets=100, prize_table=[
            WeightedTier(id="t1", value=1, weight=80),
            WeightedTier(id="t10", value=10, weight=50),
        ])
        for config, rtp in ((unlimited, 1.3), (pool, 2.8)):
            stats = paytable_stats(config)
            self.assertAlmostEqual(stats.rtp, rtp)
            self.assertAlmostEqual(stats.hit_rate, 1.0)

            schema = transform_to_rgs(config)
            self.assertAlmostEqual(schema.stats.computed_rtp, rtp, places=4)
            self.assertAlmostEqual(schema.stats.hit_rate, 1.0, places=5)
            self.assertAlmostEqual(sum(r.probability for r in schema.prize_table), 1.0)

            n = 20_000
            paid = sum(resolve_round(config, f"over:{i}").final_prize for i in range(n)) / n
            self.assertLess(abs(paid - rtp), 0.15, f"{config.game_id}: paid {paid:.4f} vs {rtp}")

        rows = transform_to_rgs(pool).prize_table
        self.assertEqual([(r.tier, r.weight) for r in rows], [("LOSE", 0), ("t1", 80), ("t10", 20)])

    def test_unlimited_rows_close_probability(self):
        schema = transform_to_rgs(unlimited_config())
        rows = schema.prize_table
        self.assertEqual(rows[0].tier, "LOSE")
        self.assertAlmostEqual(rows[0].probability, 0.77)
        self.assertEqual(rows[0].weight, 770_000)
        self.assertAlmostEqual(sum(r.probability for r in rows), 1.0)

    def test_unlimited_full_table_has_no_lose_row(self):
        config = unlimited_config(prize_table=[
            ProbabilityTier(id="a", value=0, probability=0.5),
            ProbabilityTier(id="b", value=2, probability=0.5),
        ])
        tiers = [r.tier for r in transform_to_rgs(config).prize_table]
        self.assertEqual(tiers, ["a", "b"])

    def test_stats_rederivable_from_rows(self):
        schema = transform_to_rgs(unlimited_config())
        rederived = compute_stats(schema.prize_table)
        self.assertAlmostEqual(rederived.rtp, schema.stats.computed_rtp, places=5)
        self.assertAlmostEqual(rederived.hit_rate, schema.stats.hit_rate, places=6)

    def test_schema_envelope(self):
        d = transform_to_rgs(pool_config(), model_version="2.1.0").to_dict()
        self.assertEqual(d["schema_version"], 1)
        self.assertEqual(d["model_version"], "2.1.0")
        self.assertEqual(d["math_mode"], "POOL")
        self.assertEqual(d["integrity"], {"content_hash": "sha256:pending_certification"})
        self.assertEqual(d["mechanic"]["type"], "match_3")
        self.assertNotIn("match_counts", d["mechanic"])
        self.assertEqual(d["mechanic"]["grid_size"], {"rows": 3, "columns": 3})

    def test_mechanic_classification(self):
        mixed = pool_config(prize_table=[
            WeightedTier(id="m2", value=1, weight=1, win_condition=MatchNCondition(count=2)),
            WeightedTier(id="m3", value=5, weight=1),
        ])
        mech = classify_mechanic(mixed)
        self.assertEqual(mech.type, "match_n")
        self.assertEqual(mech.match_counts, (2, 3))

        hybrid = pool_config(prize_table=[
            WeightedTier(id="ft", value=1, weight=1, win_condition=FindTargetCondition()),
            WeightedTier(id="m3", value=5, weight=1),
        ])
        self.assertEqual(classify_mechanic(hybrid).type, "hybrid")

        find = pool_config(prize_table=[
            WeightedTier(id="ft", value=1, weight=1, win_condition=FindTargetCondition()),
        ])
        self.assertEqual(classify_mechanic(find).type, "find_symbol")

    def test_mixed_table_is_warned_and_exported_at_own_odds(self):
        config = GameMathConfig(
            math_mode="UNLIMITED",
            prize_table=[
                ProbabilityTier(id="p", value=2, probability=0.5),
                WeightedTier(id="w", value=4, weight=1),
            ],
        )
        with self.assertLogs("scratchmath.certification", level="WARNING"):
            schema = transform_to_rgs(config)
        rows = {r.tier: r for r in schema.prize_table}
        self.assertAlmostEqual(rows["p"].probability, 0.5)
        self.assertAlmostEqual(rows["w"].probability, 1 / config.total_tickets)
        self.assertAlmostEqual(rows["LOSE"].probability, 0.5 - 1 / config.total_tickets)
        self.assertAlmostEqual(sum(r.probability for r in schema.prize_table), 1.0)


# ============================================================
# Finite Deck Tests
# ============================================================

class TestFiniteDeck(unittest.TestCase):

    def test_deck_counts(self):
        deck = build_deck(pool_config(), seed="deck-1")
        self.assertEqual(len(deck), 1000)
        self.assertEqual(deck_summary(deck), {"t2": 100, "t5": 40, "t20": 10, "lose_pool": 850})

    def test_deck_is_seeded(self):
        config = pool_config()
        self.assertEqual(build_deck(config, "same"), build_deck(config, "same"))
        self.assertNotEqual(build_deck(config, "one"), build_deck(config, "two"))

    def test_deck_rejects_bad_configs(self):
        with self.assertRaises(ValueError):
            build_deck(unlimited_config(), seed=1)
        with self.assertRaises(ValueError):
            build_deck(pool_config(total_tickets=100), seed=1)

    def test_full_deal_pays_theoretical_rtp(self):
        config = pool_config(total_tickets=200, prize_table=[
            WeightedTier(id="t10", value=10, weight=5),
            WeightedTier(id="t2", value=2, weight=20),
        ])
        deck = build_deck(config, seed="deal")
        paid = sum(
            resolve_round(config, f"ticket-{i}", forced_tier_id=tier_id).final_prize
            for i, tier_id in enumerate(deck)
        )
        self.assertAlmostEqual(paid / config.total_tickets, paytable_stats(config).rtp)
        self.assertAlmostEqual(paid, 90.0)


# ============================================================
# Config Loader Tests
# ============================================================

AUTHORING_PAYLOAD = {
    "gameId": "golden_vault",
    "scratch": {
        "layout": {"rows": 3, "columns": 4},
        "symbols": {"win": ["GEM"], "lose": ["A", "B", "C", "D", "E"]},
        "mechanic": {"type": "match_3"},
        "math": {"mathMode": "UNLIMITED", "winLogic": "MULTI_WIN"},
        "prizes": [
            {"id": "p5", "payout": 5, "weight": 0, "probability": 0.1},
            {"id": "p50", "payout": 50, "probability": 0.01},
        ],
    },
}


class TestConfigLoader(unittest.TestCase):

    def test_authoring_payload_flattened(self):
        config = from_authoring_payload(AUTHORING_PAYLOAD)
        self.assertEqual(config.game_id, "golden_vault")
        self.assertEqual((config.rows, config.columns), (3, 4))
        self.assertEqual(config.win_symbols, ("GEM",))
        self.assertFalse(config.is_single_win)
        self.assertFalse(config.is_pool)
        self.assertEqual(config.tier_ids, ["p5", "p50"])
        self.assertTrue(all(isinstance(t, ProbabilityTier) for t in config.prize_table))
        self.assertEqual(config.prize_table[0].win_condition.match_count, 3)

    def test_find_symbol_mechanic(self):
        payload = json.loads(json.dumps(AUTHORING_PAYLOAD))
        payload["scratch"]["mechanic"] = {"type": "find_symbol"}
        config = from_authoring_payload(payload)
        self.assertIsInstance(config.prize_table[0].win_condition, FindTargetCondition)

    def test_load_both_shapes_from_disk(self):
        with tempfile.TemporaryDirectory() as tmp:
            authoring = Path(tmp) / "authoring.json"
            authoring.write_text(json.dumps(AUTHORING_PAYLOAD))
            flat = Path(tmp) / "flat.json"
            flat.write_text(pool_config().model_dump_json(by_alias=True))

            self.assertEqual(load_config(authoring).game_id, "golden_vault")
            self.assertEqual(load_config(flat).model_dump(), pool_config().model_dump())

    def test_clean_config_has_no_warnings(self):
        self.assertEqual(validate_config(unlimited_config()), [])
        self.assertEqual(validate_config(pool_config()), [])

    def test_warnings(self):
        over = unlimited_config(prize_table=[
            ProbabilityTier(id="a", value=1, probability=0.7),
            ProbabilityTier(id="b", value=2, probability=0.6),
        ])
        self.assertTrue(any("sum to 1.300000" in w for w in validate_config(over)))

        self.assertTrue(any("empty" in w for w in validate_config(GameMathConfig())))

        cramped = GameMathConfig(lose_symbols=LOSE_AB, win_symbols=("WIN",))
        self.assertTrue(any("at most 6" in w for w in validate_config(cramped)))

        zero_win = unlimited_config(prize_table=[
            ProbabilityTier(id="z", value=0, probability=0.1, is_win=True),
        ])
        self.assertTrue(any("pays 0" in w for w in validate_config(zero_win)))

        stray = unlimited_config(prize_table=[
            ProbabilityTier(id="s", value=3, probability=0.1,
                            win_condition=MatchNCondition(symbol_id="CHERRY")),
        ])
        self.assertTrue(any("CHERRY" in w for w in validate_config(stray)))

        too_many = unlimited_config(prize_table=[
            ProbabilityTier(id="m", value=3, probability=0.1, win_condition=MatchNCondition(count=12)),
        ])
        self.assertTrue(any("12 matches" in w for w in validate_config(too_many)))

        mixed = pool_config(prize_table=[ProbabilityTier(id="p", value=2, probability=0.1)])
        self.assertTrue(any("own odds" in w for w in validate_config(mixed)))

        overflow = pool_config(total_tickets=100)
        self.assertTrue(any("exceed total_tickets" in w for w in validate_config(overflow)))


# ============================================================
# Main
# ============================================================

if __name__ == "__main__":
    logging.disable(logging.INFO)
    unittest.main(verbosity=2)
