"""
SCRATCHMATH — Tooling Settings & Logging

Environment-backed knobs for the Monte Carlo validator, the CLI and log output.
Values come from the process environment (optionally a local `.env` file).

Math constants that affect certified outcomes live in `scratch_config.schema`
and are never read from the environment: two machines with different `.env`
files must still resolve byte-identical rounds.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

OUTPUT_DIR = Path(os.getenv("SCRATCHMATH_OUTPUT_DIR", "./output"))

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%H:%M:%S"


class EngineSettings:

    # --- Logging ---
    LOG_LEVEL = os.getenv("SCRATCHMATH_LOG_LEVEL", "INFO").upper()

    # --- Monte Carlo validation ---
    MC_ROUNDS = int(os.getenv("SCRATCHMATH_MC_ROUNDS", "100000"))
    MC_SEED = int(os.getenv("SCRATCHMATH_MC_SEED", "42"))
    MC_TOLERANCE = float(os.getenv("SCRATCHMATH_MC_TOLERANCE", "0.002"))   # ±0.2% absolute RTP
    MC_Z_SCORE = float(os.getenv("SCRATCHMATH_MC_Z", "4.0"))               # stderr multiples

    # --- Finite deck export ---
    DECK_PREVIEW = int(os.getenv("SCRATCHMATH_DECK_PREVIEW", "20"))


def configure_logging(level: str = None) -> logging.Logger:
    """Attach one stream handler to the `scratchmath` logger tree."""
    logger = logging.getLogger("scratchmath")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
        logger.addHandler(handler)
    logger.setLevel((level or EngineSettings.LOG_LEVEL).upper())
    return logger
