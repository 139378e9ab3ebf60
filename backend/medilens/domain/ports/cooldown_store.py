"""
Cooldown Store Port

Abstract interface for the persistent key-value store that keeps the
cooldown end timestamp across process restarts.
"""

from abc import ABC, abstractmethod
from typing import Optional


class CooldownStorePort(ABC):
    """
    Port (interface) for a durable integer key-value store.
    
    A single key holding epoch milliseconds is all the core needs.
    Multi-instance deployments must back this with a shared store.
    """
    
    @abstractmethod
    def get(self, key: str) -> Optional[int]:
        """Read an integer value, or None when absent/unreadable."""
        pass
    
    @abstractmethod
    def set(self, key: str, value: int) -> None:
        """Write an integer value."""
        pass
    
    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a key; absent keys are ignored."""
        pass
