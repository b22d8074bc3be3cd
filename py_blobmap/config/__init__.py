"""
Configuration for the service and for map generation.
"""

from .config import Settings, settings
from .generation import GenerationConfig

__all__ = ["Settings", "settings", "GenerationConfig"]
