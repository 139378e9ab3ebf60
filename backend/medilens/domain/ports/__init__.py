"""
Ports (Interfaces)

Abstract interfaces defining the contracts for infrastructure adapters.
Following Hexagonal Architecture / Ports & Adapters pattern.
"""

from .base import ExternalServicePort
from .metadata_extractor import MetadataExtractorPort
from .reference_retriever import ReferenceRetrieverPort
from .findings_interpreter import FindingsInterpreterPort
from .visual_inspector import VisualInspectorPort
from .synthesizer import SynthesizerPort
from .cooldown_store import CooldownStorePort

__all__ = [
    "ExternalServicePort",
    "MetadataExtractorPort",
    "ReferenceRetrieverPort",
    "FindingsInterpreterPort",
    "VisualInspectorPort",
    "SynthesizerPort",
    "CooldownStorePort",
]
