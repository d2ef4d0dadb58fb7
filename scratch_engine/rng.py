"""
SCRATCHMATH — Seeded Pseudorandom Generator

The only source of randomness in the engine. One instance per round, built
from an explicit seed, so identical seeds replay identical rounds on any
platform.

Algorithm:
    seed (str)  → 32-bit FNV-1a hash of its UTF-8 bytes
    seed (int)  → low 32 bits
    stream      → mulberry32, pure 32-bit integer arithmetic
    float       → uint32 / 2^32, always in [0, 1)

Usage:
    from scratch_engine.rng import SeededRNG
    rng = SeededRNG("round-0001")
    rng.next()            # 0.0 <= x < 1.0
    rng.range(1, 6)       # inclusive
    rng.pick(["A", "B"])
    rng.chance(0.25)
"""

from __future__ import annotations

from typing import MutableSequence, Sequence, TypeVar, Union

T = TypeVar("T")

MASK32 = 0xFFFFFFFF
FNV_OFFSET_BASIS = 0x811C9DC5
FNV_PRIME = 0x01000193
MULBERRY_INCREMENT = 0x6D2B79F5
TWO_POW_32 = 4294967296


def fnv1a_32(text: str) -> int:
    """32-bit FNV-1a hash of the UTF-8 encoding of `text`."""
    h = FNV_OFFSET_BASIS
    for byte in text.encode("utf-8"):
        h ^= byte
        h = (h * FNV_PRIME) & MASK32
    return h


def normalize_seed(seed: Union[int, str]) -> int:
    """Map an int or str seed onto the generator's uint32 state."""
    if isinstance(seed, bool):
        raise TypeError("seed must be an int or str, not bool")
    if isinstance(seed, int):
        return seed & MASK32
    if isinstance(seed, str):
        return fnv1a_32(seed)
    raise TypeError(f"seed must be an int or str, got {type(seed).__name__}")


def _imul(a: int, b: int) -> int:
    return (a * b) & MASK32


class SeededRNG:
    """mulberry32 stream over a normalized 32-bit seed."""

    def __init__(self, seed: Union[int, str] = 0):
        self.seed = normalize_seed(seed)
        self.state = self.seed

    def next_u32(self) -> int:
        """Next raw uint32 from the stream."""
        self.state = (self.state + MULBERRY_INCREMENT) & MASK32
        t = self.state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & MASK32
        return (t ^ (t >> 14)) & MASK32

    def next(self) -> float:
        """Float in [0, 1)."""
        return self.next_u32() / TWO_POW_32

    def range(self, lo: int, hi: int) -> int:
        """Integer in [lo, hi] inclusive."""
        if hi < lo:
            raise ValueError(f"empty range [{lo}, {hi}]")
        return lo + int(self.next() * (hi - lo + 1))

    def pick(self, seq: Sequence[T]) -> T:
        """Uniformly chosen element of a non-empty sequence."""
        if not seq:
            raise IndexError("cannot pick from an empty sequence")
        return seq[self.range(0, len(seq) - 1)]

    def chance(self, p: float) -> bool:
        """True with probability p."""
        return self.next() < p

    def sample(self, seq: Sequence[T], k: int) -> list[T]:
        """k distinct elements, drawn without replacement in draw order."""
        pool = list(seq)
        if k > len(pool):
            raise ValueError(f"sample larger than population ({k} > {len(pool)})")
        picked = []
        for _ in range(k):
            idx = int(self.next() * len(pool))
            picked.append(pool.pop(idx))
        return picked

    def shuffle(self, items: MutableSequence[T]) -> None:
        """In-place Fisher-Yates shuffle."""
        for i in range(len(items) - 1, 0, -1):
            j = self.range(0, i)
            items[i], items[j] = items[j], items[i]

    def __repr__(self) -> str:
        return f"SeededRNG(seed=0x{self.seed:08x}, state=0x{self.state:08x})"
