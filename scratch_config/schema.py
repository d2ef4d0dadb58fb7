"""
SCRATCHMATH — Scratch-Card Math Configuration Schema

Every structure the engine reads or produces:

    GameMathConfig   — authored once per game version, read-only to the engine
    ResolvedOutcome  — one round's result, created fresh per round
    RGSMathSchema    — certification snapshot derived from a GameMathConfig

All models are frozen. Editing a config means building a new one
(`config.model_copy(update={...})`), never patching the one in flight.

Usage:
    from scratch_config.schema import GameMathConfig, WeightedTier, MatchNCondition
    config = GameMathConfig(
        math_mode="POOL", total_tickets=100,
        prize_table=[WeightedTier(id="t10", value=10, weight=5,
                                  win_condition=MatchNCondition(count=3))],
    )
    json_str = config.model_dump_json(indent=2)

Incoming payloads from the authoring UI are camelCase (`prizeTable`,
`mathMode`, `isWin` ...); both spellings are accepted.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, field_validator, model_validator
from pydantic.alias_generators import to_camel


# ═══════════════════════════════════════════════════════════════
# Math Constants (never environment-driven)
# ═══════════════════════════════════════════════════════════════

MATCH_THRESHOLD = 3                  # classic match-3 convention
DEFAULT_TOTAL_TICKETS = 1_000_000    # deck size when none is authored
NEAR_MISS_RATE = 0.4                 # share of losing rounds that tease a near miss
INFERRED_WEIGHT_SCALE = 1_000_000    # display weight for probability tiers

DEFAULT_LOSE_ID = "default_lose"     # empty paytable
RESIDUAL_LOSE_ID = "lose_pool"       # mass not owned by any tier
LOSE_TIER_LABEL = "LOSE"             # synthetic row in the certification table
PENDING_CONTENT_HASH = "sha256:pending_certification"

DEFAULT_WIN_SYMBOLS = ("WIN",)
DEFAULT_LOSE_SYMBOLS = ("LOSE1", "LOSE2", "LOSE3")


# ═══════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════

class MathMode(str, Enum):
    POOL = "POOL"
    UNLIMITED = "UNLIMITED"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            return cls.__members__.get(value.upper())
        return None


class WinLogic(str, Enum):
    SINGLE_WIN = "SINGLE_WIN"
    MULTI_WIN = "MULTI_WIN"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            return cls.__members__.get(value.upper().replace("-", "_"))
        return None


class _AuthoringModel(BaseModel):
    """Frozen model that accepts both snake_case and camelCase keys."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


# ═══════════════════════════════════════════════════════════════
# Win Conditions
# ═══════════════════════════════════════════════════════════════

class MatchNCondition(_AuthoringModel):
    """Reveal `count` copies of one symbol."""
    type: Literal["match_n"] = "match_n"
    count: int = Field(default=MATCH_THRESHOLD, ge=1)
    symbol_id: Optional[str] = None     # None = drawn from the win pool per round

    @property
    def match_count(self) -> int:
        return self.count


class FindTargetCondition(_AuthoringModel):
    """Reveal a single target symbol (match-1)."""
    type: Literal["find_target"] = "find_target"
    symbol_id: Optional[str] = None

    @property
    def match_count(self) -> int:
        return 1


WinCondition = Annotated[
    Union[MatchNCondition, FindTargetCondition],
    Field(discriminator="type"),
]


# ═══════════════════════════════════════════════════════════════
# Prize Tiers
# ═══════════════════════════════════════════════════════════════

class _TierBase(_AuthoringModel):
    id: str = Field(min_length=1)
    value: float = Field(default=0.0, ge=0)     # multiplier of the ticket price
    is_win: bool = False
    win_condition: Optional[WinCondition] = None

    @model_validator(mode="before")
    @classmethod
    def _default_is_win(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("is_win") is None and data.get("isWin") is None:
            value = data.get("value")
            data = {**data, "is_win": isinstance(value, (int, float)) and value > 0}
        return data


class WeightedTier(_TierBase):
    """Pool-mode tier: `weight` tickets out of the deck."""
    kind: Literal["weighted"] = "weighted"
    weight: int = Field(ge=0)

    @property
    def raw_odds(self) -> float:
        return float(self.weight)


class ProbabilityTier(_TierBase):
    """Unlimited-mode tier: fixed per-round probability."""
    kind: Literal["probability"] = "probability"
    probability: float = Field(ge=0, le=1)

    @property
    def raw_odds(self) -> float:
        return self.probability


def _tier_kind(data: Any) -> Optional[str]:
    if isinstance(data, dict):
        if data.get("kind"):
            return data["kind"]
        return "weighted" if data.get("weight") is not None else "probability"
    return getattr(data, "kind", None)


PrizeTier = Annotated[
    Union[
        Annotated[WeightedTier, Tag("weighted")],
        Annotated[ProbabilityTier, Tag("probability")],
    ],
    Discriminator(_tier_kind),
]


# ═══════════════════════════════════════════════════════════════
# Game Math Configuration
# ═══════════════════════════════════════════════════════════════

class GameMathConfig(_AuthoringModel):
    """Immutable per-game math input."""
    game_id: str = "scratch_game"
    rows: int = Field(default=3, ge=1)
    columns: int = Field(default=3, ge=1)
    win_symbols: tuple[str, ...] = Field(default=DEFAULT_WIN_SYMBOLS, min_length=1)
    lose_symbols: tuple[str, ...] = Field(default=DEFAULT_LOSE_SYMBOLS, min_length=1)
    win_logic: WinLogic = WinLogic.SINGLE_WIN
    math_mode: MathMode = MathMode.POOL
    total_tickets: int = Field(default=DEFAULT_TOTAL_TICKETS, gt=0)
    ticket_price: float = Field(default=1.0, gt=0)
    prize_table: tuple[PrizeTier, ...] = ()
    near_miss: bool = False

    @field_validator("math_mode", "win_logic", mode="before")
    @classmethod
    def _normalize_enum_spelling(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper().replace("-", "_")
        return v

    @model_validator(mode="before")
    @classmethod
    def _tag_tiers_by_mode(cls, data: Any) -> Any:
        """Untagged tiers take the variant their config's math mode expects."""
        if not isinstance(data, dict):
            return data
        key = "prize_table" if "prize_table" in data else "prizeTable"
        tiers = data.get(key)
        if not isinstance(tiers, (list, tuple)):
            return data
        mode = data.get("math_mode", data.get("mathMode", MathMode.POOL))
        try:
            pool = MathMode(mode) == MathMode.POOL
        except ValueError:
            return data

        tagged = []
        for tier in tiers:
            if isinstance(tier, dict) and not tier.get("kind"):
                has_weight = tier.get("weight") is not None
                has_prob = tier.get("probability") is not None
                if pool:
                    kind = "weighted" if has_weight or not has_prob else "probability"
                else:
                    kind = "probability" if has_prob or not has_weight else "weighted"
                tier = {**tier, "kind": kind}
            tagged.append(tier)
        return {**data, key: tagged}

    @property
    def grid_size(self) -> int:
        return self.rows * self.columns

    @property
    def is_single_win(self) -> bool:
        return self.win_logic == WinLogic.SINGLE_WIN

    @property
    def is_pool(self) -> bool:
        return self.math_mode == MathMode.POOL

    @property
    def symbol_pool(self) -> tuple[str, ...]:
        """Lose symbols then win symbols, first occurrence kept."""
        return tuple(dict.fromkeys(self.lose_symbols + self.win_symbols))

    @property
    def tier_ids(self) -> list[str]:
        return [t.id for t in self.prize_table]

    def has_mixed_variants(self) -> bool:
        """True when any tier's variant does not match the math mode."""
        expected = WeightedTier if self.is_pool else ProbabilityTier
        return any(not isinstance(t, expected) for t in self.prize_table)


# ═══════════════════════════════════════════════════════════════
# Round Result
# ═══════════════════════════════════════════════════════════════

class ResolvedOutcome(_AuthoringModel):
    """One resolved round. Consumers render it; they never alter it."""
    round_id: str
    final_prize: float
    is_win: bool
    tier_id: str
    reveal_map: tuple[str, ...]
    presentation_seed: int
    prize_symbol: Optional[str] = None
    near_miss: bool = False

    def to_payload(self) -> dict:
        """camelCase dict for the rendering layer."""
        return self.model_dump(mode="json", by_alias=True)


# ═══════════════════════════════════════════════════════════════
# RGS Certification Schema (v1)
# ═══════════════════════════════════════════════════════════════

class _RGSModel(BaseModel):
    model_config = ConfigDict(frozen=True, protected_namespaces=())


class RGSGridSize(_RGSModel):
    rows: int
    columns: int


class RGSMechanic(_RGSModel):
    type: str
    grid_size: RGSGridSize
    match_count: Optional[int] = None
    match_counts: Optional[tuple[int, ...]] = None


class RGSPrizeTier(_RGSModel):
    tier: str
    multiplier: float
    weight: int
    probability: float


class RGSStats(_RGSModel):
    computed_rtp: float
    hit_rate: float
    variance: float
    max_win: float


class RGSIntegrity(_RGSModel):
    content_hash: str = PENDING_CONTENT_HASH


class RGSMathSchema(_RGSModel):
    """Self-describing certification snapshot; regenerate on any config edit."""
    schema_version: int = 1
    model_id: str
    model_version: str = "1.0.0"
    mechanic: RGSMechanic
    math_mode: MathMode
    win_logic: WinLogic
    prize_table: tuple[RGSPrizeTier, ...]
    stats: RGSStats
    integrity: RGSIntegrity = Field(default_factory=RGSIntegrity)

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)

    def to_json(self, indent: int = 2) -> str:
        return self.model_dump_json(indent=indent, exclude_none=True)
