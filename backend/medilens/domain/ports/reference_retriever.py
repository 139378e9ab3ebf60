"""
Reference Retriever Port

Abstract interface for the retrieval service used by ground-truth research.
"""

from abc import abstractmethod
from typing import List, Optional, Sequence

from .base import ExternalServicePort
from ..entities.evidence import RetrievedDocument


class ReferenceRetrieverPort(ExternalServicePort):
    """
    Port (interface) for free-text document retrieval.
    
    Implementations may use:
    - Exa neural search
    - A local vector store over registry dumps
    """
    
    @abstractmethod
    def search(
        self,
        query: str,
        timeout: float,
        include_domains: Optional[Sequence[str]] = None,
        num_results: int = 3
    ) -> List[RetrievedDocument]:
        """
        Retrieve ranked documents for a query.
        
        Args:
            query: Free-text query
            timeout: Upper bound for the external call, in seconds
            include_domains: Optional domain allow-list
            num_results: Maximum number of documents
            
        Returns:
            Ranked documents, possibly empty
            
        Raises:
            RetrievalServiceError: If the service errors
        """
        pass
