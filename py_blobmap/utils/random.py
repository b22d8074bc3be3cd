"""
Process-wide random source.

Components take an explicit ``prng`` argument; when none is given they fall
back to the shared instance managed here. Tests fix the seed with
``set_random_seed`` to assert exact outputs.
"""

from typing import Optional

from ..core.alea_prng import AleaPRNG, SeedType

# Global PRNG instance
_prng = None


def set_random_seed(seed: SeedType) -> AleaPRNG:
    """
    Replace the shared PRNG with a freshly seeded one.

    Args:
        seed: Seed string or number

    Returns:
        The new shared AleaPRNG instance
    """
    global _prng
    _prng = AleaPRNG(seed)
    return _prng


def get_prng() -> AleaPRNG:
    """
    Get the shared Alea PRNG instance, creating a default-seeded one if needed.

    Returns:
        AleaPRNG instance
    """
    global _prng
    if _prng is None:
        _prng = AleaPRNG("default")
    return _prng


def resolve_prng(prng: Optional[AleaPRNG] = None) -> AleaPRNG:
    """Return ``prng`` if given, otherwise the shared instance."""
    return prng if prng is not None else get_prng()
