"""
Synthesizer Port

Abstract interface for delegating factor classification to a model.
"""

from abc import abstractmethod
from typing import Any, Dict, List

from .base import ExternalServicePort
from ..entities.scan import DrugMetadata
from ..entities.evidence import ResearchFindings, VisualFindings


class SynthesizerPort(ExternalServicePort):
    """
    Port (interface) for model-based synthesis.
    
    The output is free-text derived and untrusted: callers validate it
    against the FactorResult schema before use.
    """
    
    @abstractmethod
    def synthesize(
        self,
        metadata: DrugMetadata,
        research: ResearchFindings,
        visual: VisualFindings,
        timeout: float
    ) -> List[Dict[str, Any]]:
        """
        Classify the comparable factors.
        
        Returns:
            Raw factor dictionaries with ``factor``, ``status``, ``reason``
            and optional ``evidence_quote`` keys
            
        Raises:
            SynthesisFailure: If the model errors or returns non-JSON output
        """
        pass
