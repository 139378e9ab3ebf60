"""
Storage Module

Cooldown persistence.
"""

from ...config.settings import AdmissionConfig
from ...domain.ports.cooldown_store import CooldownStorePort
from .cooldown_store import JsonFileCooldownStore, InMemoryCooldownStore


def create_cooldown_store(config: AdmissionConfig) -> CooldownStorePort:
    """Create the cooldown store selected by ``config.store``."""
    if config.store == "memory":
        return InMemoryCooldownStore()
    if config.store == "file":
        return JsonFileCooldownStore(config.store_path)
    raise ValueError(f"Unknown cooldown store: {config.store}")


__all__ = [
    "JsonFileCooldownStore",
    "InMemoryCooldownStore",
    "create_cooldown_store",
]
