#!/usr/bin/env python3
"""
Tests for the scratch-math command line

Validates:
1.  resolve prints a camelCase outcome payload with --json
2.  resolve honours --forced-tier
3.  stats renders without error
4.  export writes a version-1 RGS schema file
5.  deck summarizes pool configs and rejects unlimited ones
6.  check --strict fails on authoring warnings
7.  simulate writes a JSON report
"""

import io
import json
import logging
import os
import sys
import tempfile
from contextlib import redirect_stdout
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from scratch_tools import cli


POOL_GAME = {
    "gameId": "vault",
    "loseSymbols": ["A", "B", "C", "D"],
    "winSymbols": ["GEM", "STAR", "BELL"],
    "mathMode": "POOL",
    "totalTickets": 1000,
    "prizeTable": [
        {"id": "t2", "value": 2, "weight": 100},
        {"id": "t20", "value": 20, "weight": 10},
    ],
}

UNLIMITED_GAME = {
    "gameId": "lucky",
    "loseSymbols": ["A", "B", "C", "D"],
    "winSymbols": ["GEM"],
    "mathMode": "UNLIMITED",
    "prizeTable": [{"id": "p5", "value": 5, "probability": 0.1}],
}


def _write(tmp: str, name: str, payload: dict) -> str:
    path = Path(tmp) / name
    path.write_text(json.dumps(payload))
    return str(path)


def _run(argv) -> tuple[int, str]:
    buf = io.StringIO()
    with redirect_stdout(buf):
        rc = cli.main(argv)
    return rc, buf.getvalue()


# ============================================================
# Tests
# ============================================================

def test_resolve_json():
    with tempfile.TemporaryDirectory() as tmp:
        path = _write(tmp, "vault.json", POOL_GAME)
        rc, out = _run(["resolve", path, "--seed", "round-0001", "--json"])
        assert rc == 0
        payload = json.loads(out)
        assert len(payload["revealMap"]) == 9
        assert payload["roundId"].startswith("rnd_")

        rc2, out2 = _run(["resolve", path, "--seed", "round-0001", "--json"])
        assert json.loads(out2) == payload, "same seed must replay the same round"


def test_resolve_forced_tier():
    with tempfile.TemporaryDirectory() as tmp:
        path = _write(tmp, "vault.json", POOL_GAME)
        rc, out = _run(["resolve", path, "--seed", "9", "--forced-tier", "t20", "--json"])
        assert rc == 0
        payload = json.loads(out)
        assert payload["tierId"] == "t20"
        assert payload["finalPrize"] == 20


def test_stats():
    with tempfile.TemporaryDirectory() as tmp:
        path = _write(tmp, "vault.json", POOL_GAME)
        rc, out = _run(["stats", path])
        assert rc == 0
        assert "40.0000%" in out, out


def test_export_file():
    with tempfile.TemporaryDirectory() as tmp:
        path = _write(tmp, "vault.json", POOL_GAME)
        out_path = Path(tmp) / "rgs" / "vault.json"
        rc, _ = _run(["export", path, "--version", "1.4.0", "-o", str(out_path)])
        assert rc == 0
        schema = json.loads(out_path.read_text())
        assert schema["schema_version"] == 1
        assert schema["model_version"] == "1.4.0"
        assert schema["prize_table"][0] == {"tier": "LOSE", "multiplier": 0.0, "weight": 890, "probability": 0.89}
        assert sum(row["weight"] for row in schema["prize_table"]) == 1000


def test_deck():
    with tempfile.TemporaryDirectory() as tmp:
        pool = _write(tmp, "vault.json", POOL_GAME)
        deck_path = Path(tmp) / "deck.json"
        rc, out = _run(["deck", pool, "--seed", "deck-1", "--preview", "5", "-o", str(deck_path)])
        assert rc == 0
        assert "lose_pool" in out
        deck = json.loads(deck_path.read_text())
        assert len(deck) == 1000
        assert deck.count("t20") == 10

        unlimited = _write(tmp, "lucky.json", UNLIMITED_GAME)
        rc, _ = _run(["deck", unlimited, "--seed", "deck-1"])
        assert rc == 1


def test_check_strict():
    with tempfile.TemporaryDirectory() as tmp:
        clean = _write(tmp, "vault.json", POOL_GAME)
        assert _run(["check", clean, "--strict"])[0] == 0

        cramped = _write(tmp, "cramped.json", {**POOL_GAME, "loseSymbols": ["A", "B"], "winSymbols": ["WIN"]})
        rc, out = _run(["check", cramped, "--strict"])
        assert rc == 1
        assert "warning" in out
        assert _run(["check", cramped])[0] == 0


def test_simulate_report():
    with tempfile.TemporaryDirectory() as tmp:
        path = _write(tmp, "lucky.json", UNLIMITED_GAME)
        old = cli.OUTPUT_DIR
        cli.OUTPUT_DIR = Path(tmp) / "out"
        try:
            rc, out = _run(["simulate", path, "--rounds", "500", "--seed", "3", "--report"])
        finally:
            cli.OUTPUT_DIR = old
        assert rc in (0, 1)
        assert "Monte Carlo: lucky" in out
        report = json.loads((Path(tmp) / "out" / "lucky_montecarlo.json").read_text())
        assert report["n_rounds"] == 500
        assert report["grids"]["violations"] == 0


# ============================================================
# Run all tests
# ============================================================

if __name__ == "__main__":
    logging.disable(logging.WARNING)
    os.environ.setdefault("SCRATCHMATH_LOG_LEVEL", "ERROR")
    tests = [
        test_resolve_json,
        test_resolve_forced_tier,
        test_stats,
        test_export_file,
        test_deck,
        test_check_strict,
        test_simulate_report,
    ]

    print(f"\n{'='*60}")
    print(f"CLI Tests — {len(tests)} tests")
    print(f"{'='*60}\n")

    passed = 0
    failed = 0
    for test in tests:
        try:
            test()
            passed += 1
            print(f"✅ {test.__name__}")
        except Exception as e:
            print(f"❌ {test.__name__}: {e}")
            failed += 1

    print(f"{'='*60}")
    print(f"Results: {passed} passed, {failed} failed, {passed + failed} total")
    print(f"{'='*60}")

    sys.exit(0 if failed == 0 else 1)
