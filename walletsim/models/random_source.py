"""
Deterministic random sources for asset revaluation and yield accrual.

Every draw sequence is a pure function of the integer seed, so the same seed
replays identical shocks on any platform. The test vectors pinned in
``tests/test_random_source.py`` must not change.
"""

from typing import Callable, List, Protocol

MASK32 = 0xFFFFFFFF
TWO_POW_32 = 4294967296

# Seed mixing and fallback states for the two 16-bit lag generators
_GOLDEN_GAMMA = 0x9E3779B9
_Z_STATE_SALT = 987654321
_Z_FALLBACK = 362436069
_W_FALLBACK = 521288629


class RandomSource(Protocol):
    """Uniform draw source in [0, 1)."""

    def random(self) -> float:
        """Return the next uniform draw in [0, 1)."""
        ...


RandomSourceFactory = Callable[[int], RandomSource]


class MultiplyWithCarry:
    """Marsaglia multiply-with-carry generator keyed by a 32-bit seed."""

    def __init__(self, seed: int):
        """Initialize the generator state.

        Args:
            seed: Integer seed; negative or oversized seeds are masked to 32 bits
        """
        seed32 = seed & MASK32
        self._z = ((seed32 * _GOLDEN_GAMMA) ^ _Z_STATE_SALT) & MASK32 or _Z_FALLBACK
        self._w = seed32 or _W_FALLBACK

    def next_uint32(self) -> int:
        """Advance the generator and return the raw 32-bit output."""
        self._z = (36969 * (self._z & 0xFFFF) + (self._z >> 16)) & MASK32
        self._w = (18000 * (self._w & 0xFFFF) + (self._w >> 16)) & MASK32
        return ((self._z << 16) + self._w) & MASK32

    def random(self) -> float:
        """Return the next uniform draw in [0, 1)."""
        return self.next_uint32() / TWO_POW_32


def draw_sequence(seed: int, count: int) -> List[float]:
    """Draw ``count`` uniforms from a fresh generator (handy for replays)."""
    rng = MultiplyWithCarry(seed)
    return [rng.random() for _ in range(count)]
