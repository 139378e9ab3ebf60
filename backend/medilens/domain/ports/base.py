"""
External Service Port

Shared contract of every adapter that talks to an external service.
"""

from abc import ABC, abstractmethod
from typing import List


class ExternalServicePort(ABC):
    """
    Base port for adapters backed by an external service.
    
    Adapters must never block indefinitely: every call receives a
    ``timeout`` in seconds which the adapter passes to its client.
    """
    
    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Get the name of the underlying provider/model."""
        pass
    
    def missing_credentials(self) -> List[str]:
        """
        Names of required credentials that are not configured.
        
        Checked eagerly by the orchestrator before any stage is dispatched.
        """
        return []
