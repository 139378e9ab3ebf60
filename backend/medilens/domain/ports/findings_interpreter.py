"""
Findings Interpreter Port

Abstract interface for the model that turns retrieved documents into
structured ground truth.
"""

from abc import abstractmethod
from typing import Sequence

from .base import ExternalServicePort
from ..entities.scan import DrugMetadata
from ..entities.evidence import RetrievedDocument, ResearchFindings


class FindingsInterpreterPort(ExternalServicePort):
    """
    Port (interface) for interpreting reference documents.
    
    Implementations must only report attributes the documents actually
    state; anything the documents are silent on stays None.
    """
    
    @abstractmethod
    def interpret(
        self,
        documents: Sequence[RetrievedDocument],
        metadata: DrugMetadata,
        timeout: float
    ) -> ResearchFindings:
        """
        Extract structured findings from documents.
        
        Args:
            documents: Retrieved reference documents
            metadata: Subject metadata from the extractor
            timeout: Upper bound for the external call, in seconds
            
        Returns:
            ResearchFindings (references are attached by the caller)
            
        Raises:
            MalformedInterpretationError: If the output does not fit the schema
            ResearchFailure: On any other service error
        """
        pass
