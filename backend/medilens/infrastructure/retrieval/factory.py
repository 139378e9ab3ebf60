"""
Retriever Factory

Factory for creating reference retriever instances.
"""

from enum import Enum

from .exa_retriever import ExaReferenceRetriever
from ...config.settings import RetrievalConfig
from ...domain.ports.reference_retriever import ReferenceRetrieverPort


class RetrieverType(Enum):
    """Available retriever implementations."""

    EXA = "exa"


class RetrieverFactory:
    """
    Factory for creating reference retrievers.

    Usage:
        retriever = RetrieverFactory.create(RetrieverType.EXA, api_key="...")
    """

    @staticmethod
    def create(retriever_type: RetrieverType, **kwargs) -> ReferenceRetrieverPort:
        if retriever_type == RetrieverType.EXA:
            return ExaReferenceRetriever(
                api_key=kwargs.get("api_key"),
                base_url=kwargs.get("base_url", "https://api.exa.ai"),
            )
        raise ValueError(f"Unknown retriever type: {retriever_type}")

    @staticmethod
    def create_from_config(config: RetrievalConfig) -> ReferenceRetrieverPort:
        return RetrieverFactory.create(
            RetrieverType(config.type),
            api_key=config.api_key,
            base_url=config.base_url,
        )
