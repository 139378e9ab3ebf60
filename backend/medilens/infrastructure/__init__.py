"""
Infrastructure Layer

Concrete adapters implementing the domain ports.
"""

from .vision import OpenAIVisionAdapter, OllamaVisionAdapter, VisionFactory, VisionType
from .retrieval import ExaReferenceRetriever, RetrieverFactory, RetrieverType
from .llm import GroqFindingsInterpreter, GroqSynthesizer, LLMFactory, LLMType
from .storage import JsonFileCooldownStore, InMemoryCooldownStore, create_cooldown_store

__all__ = [
    "OpenAIVisionAdapter",
    "OllamaVisionAdapter",
    "VisionFactory",
    "VisionType",
    "ExaReferenceRetriever",
    "RetrieverFactory",
    "RetrieverType",
    "GroqFindingsInterpreter",
    "GroqSynthesizer",
    "LLMFactory",
    "LLMType",
    "JsonFileCooldownStore",
    "InMemoryCooldownStore",
    "create_cooldown_store",
]
