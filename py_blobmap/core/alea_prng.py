"""
Seedable Alea pseudo-random generator.

Based on Johannes Baagøe's Alea algorithm. Every random draw in the
generation pipeline (point jitter, blob origins, height modulation and
feature names) goes through one instance of this class so a map can be
reproduced from its seed.
"""

from typing import Iterable, Sequence, TypeVar, Union

T = TypeVar("T")

SeedType = Union[str, int, float, Iterable]


def _uint32(n):
    """Convert to unsigned 32-bit integer."""
    return int(n) & 0xFFFFFFFF


class _Mash:
    """Alea's string hashing step, keeping its running state between calls."""

    def __init__(self):
        self.n = 0xEFC8249D

    def __call__(self, data) -> float:
        for char in str(data):
            self.n += ord(char)
            h = 0.02519603282416938 * self.n
            self.n = _uint32(h)
            h -= self.n
            h *= self.n
            self.n = _uint32(h)
            h -= self.n
            self.n += h * 0x100000000  # 2^32
        return _uint32(self.n) * 2.3283064365386963e-10  # 2^-32


class AleaPRNG:
    """Alea PRNG producing floats in [0, 1) plus the helpers the map needs."""

    def __init__(self, seed: SeedType = "default"):
        if hasattr(seed, "__iter__") and not isinstance(seed, str):
            args = list(seed)
        else:
            args = [seed]

        self.seed = seed
        self.call_count = 0

        mash = _Mash()
        self.s0 = mash(" ")
        self.s1 = mash(" ")
        self.s2 = mash(" ")
        self.c = 1

        for arg in args:
            self.s0 = (self.s0 - mash(arg)) % 1.0
            self.s1 = (self.s1 - mash(arg)) % 1.0
            self.s2 = (self.s2 - mash(arg)) % 1.0

    def random(self) -> float:
        """Generate next random number in [0, 1)."""
        self.call_count += 1
        t = 2091639 * self.s0 + self.c * 2.3283064365386963e-10  # 2^-32
        self.s0 = self.s1
        self.s1 = self.s2
        self.c = int(t)
        self.s2 = t - self.c
        return self.s2

    def uniform(self, low: float, high: float) -> float:
        """Random float in [low, high)."""
        return low + (high - low) * self.random()

    def randrange(self, stop: int) -> int:
        """Random integer in [0, stop)."""
        if stop <= 0:
            raise ValueError("randrange() requires a positive upper bound")
        return int(self.random() * stop)

    def choice(self, seq: Sequence[T]) -> T:
        """Choose a random element from a non-empty sequence."""
        if not seq:
            raise IndexError("Cannot choose from an empty sequence")
        return seq[self.randrange(len(seq))]
