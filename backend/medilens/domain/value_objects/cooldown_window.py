"""
Cooldown Window Value Object

The only durable artifact of the core: when the current cooldown ends.
Remaining time is always derived from ``(now, end_ms)``, never counted down.
"""

from dataclasses import dataclass
import math


def cooldown_remaining_ms(now_ms: int, end_ms: int) -> int:
    """Milliseconds left before ``end_ms``; never negative."""
    return max(0, end_ms - now_ms)


@dataclass(frozen=True)
class CooldownWindow:
    """
    Attributes:
        end_ms: Epoch milliseconds at which the cooldown expires
    """
    
    end_ms: int
    
    def remaining_ms(self, now_ms: int) -> int:
        return cooldown_remaining_ms(now_ms, self.end_ms)
    
    def remaining_seconds(self, now_ms: int) -> int:
        """Whole seconds left, rounded up so a countdown never shows 0 early."""
        return math.ceil(self.remaining_ms(now_ms) / 1000)
    
    def is_active(self, now_ms: int) -> bool:
        return now_ms < self.end_ms
    
    @classmethod
    def starting_at(cls, now_ms: int, duration_seconds: float) -> "CooldownWindow":
        """Arm a window of fixed duration beginning at ``now_ms``."""
        return cls(end_ms=now_ms + int(round(duration_seconds * 1000)))
