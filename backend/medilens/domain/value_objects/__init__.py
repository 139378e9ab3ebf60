"""
Value Objects

Immutable objects that represent domain concepts with no identity.
"""

from .image_data import ImageData
from .cooldown_window import CooldownWindow, cooldown_remaining_ms

__all__ = [
    "ImageData",
    "CooldownWindow",
    "cooldown_remaining_ms",
]
