"""
Retrieval Module

Reference document retrieval for ground-truth research.
"""

from .exa_retriever import ExaReferenceRetriever
from .factory import RetrieverFactory, RetrieverType

__all__ = [
    "ExaReferenceRetriever",
    "RetrieverFactory",
    "RetrieverType",
]
