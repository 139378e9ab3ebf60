"""
Domain Entities

Core business entities of the medicine authenticity domain.
"""

from .scan import ScanRequest, DrugMetadata
from .evidence import (
    TrustTier,
    Reference,
    RetrievedDocument,
    Pharmacology,
    ResearchFindings,
    VisualFindings,
)
from .analysis_result import (
    PipelineStage,
    Factor,
    FactorStatus,
    Verdict,
    FactorResult,
    FailureReason,
    AnalysisResult,
    ScoredAnalysis,
    FailedAnalysis,
    DEFAULT_DISCLAIMER,
    new_scan_id,
)

__all__ = [
    "ScanRequest",
    "DrugMetadata",
    "TrustTier",
    "Reference",
    "RetrievedDocument",
    "Pharmacology",
    "ResearchFindings",
    "VisualFindings",
    "PipelineStage",
    "Factor",
    "FactorStatus",
    "Verdict",
    "FactorResult",
    "FailureReason",
    "AnalysisResult",
    "ScoredAnalysis",
    "FailedAnalysis",
    "DEFAULT_DISCLAIMER",
    "new_scan_id",
]
