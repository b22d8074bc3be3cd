"""
Feature name generation.

Oceans, lakes and islands are named with a descriptive adjective drawn at
random from a fixed vocabulary. Repeats across features are allowed.
"""

from typing import Optional, Sequence

from .alea_prng import AleaPRNG
from ..utils.random import resolve_prng

ADJECTIVES = (
    "Ablaze", "Ablazing", "Accented", "Ashen", "Ashy", "Beaming", "Bi-Color",
    "Blazing", "Bleached", "Bleak", "Blended", "Blotchy", "Bold", "Brash",
    "Bright", "Brilliant", "Burnt", "Checkered", "Chromatic", "Classic",
    "Clean", "Colored", "Colorful", "Colorless", "Complementing",
    "Contrasting", "Cool", "Coordinating", "Crisp", "Dappled", "Dark",
    "Dayglo", "Deep", "Delicate", "Digital", "Dim", "Dirty", "Discolored",
    "Dotted", "Drab", "Dreary", "Dull", "Dusty", "Earth", "Electric",
    "Eye-Catching", "Faded", "Faint", "Festive", "Fiery", "Flashy",
    "Flattering", "Flecked", "Florescent", "Frosty", "Full-Toned",
    "Glistening", "Glittering", "Glowing", "Harsh", "Hazy", "Hot", "Hued",
    "Icy", "Illuminated", "Incandescent", "Intense", "Interwoven",
    "Iridescent", "Kaleidoscopic", "Lambent", "Light", "Loud", "Luminous",
    "Lusterless", "Lustrous", "Majestic", "Marbled", "Matte", "Medium",
    "Mellow", "Milky", "Mingled", "Mixed", "Monochromatic", "Motley",
    "Mottled", "Muddy", "Multicolored", "Multihued", "Murky", "Natural",
    "Neutral", "Opalescent", "Opaque", "Pale", "Pastel", "Patchwork",
    "Patchy", "Patterned", "Perfect", "Picturesque", "Plain", "Primary",
    "Prismatic", "Psychedelic", "Pure", "Radiant", "Reflective", "Rich",
    "Royal", "Ruddy", "Rustic", "Satiny", "Saturated", "Secondary", "Shaded",
    "Sheer", "Shining", "Shiny", "Shocking", "Showy", "Smoky", "Soft",
    "Solid", "Somber", "Soothing", "Sooty", "Sparkling", "Speckled",
    "Stained", "Streaked", "Streaky", "Striking", "Strong Neutral", "Subtle",
    "Sunny", "Swirling", "Tinged", "Tinted", "Tonal", "Toned", "Translucent",
    "Transparent", "Two-Tone", "Undiluted", "Uneven", "Uniform", "Vibrant",
    "Vivid", "Wan", "Warm", "Washed-Out", "Waxen", "Wild",
)


class FeatureNameGenerator:
    """Draws feature names from an adjective vocabulary."""

    def __init__(
        self,
        prng: Optional[AleaPRNG] = None,
        vocabulary: Sequence[str] = ADJECTIVES,
    ):
        if not vocabulary:
            raise ValueError("Name vocabulary must not be empty")
        self.prng = resolve_prng(prng)
        self.vocabulary = tuple(vocabulary)

    def generate(self) -> str:
        """Return a random adjective from the vocabulary."""
        return self.prng.choice(self.vocabulary)
