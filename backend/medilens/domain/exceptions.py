"""
Domain Exceptions

Custom exceptions for the medicine authenticity domain.
Organized by pipeline stage so the orchestrator can normalize every
failure into a ``{stage, reason}`` pair.
"""

from typing import Optional, Dict, Any, List


class DomainException(Exception):
    """
    Base exception for all domain-level errors.
    
    Attributes:
        message: Human-readable error message
        details: Additional error details
        is_recoverable: Whether a later, explicit resubmission may succeed
    """
    
    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        is_recoverable: bool = True
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.is_recoverable = is_recoverable
    
    def __str__(self) -> str:
        return f"{self.__class__.__name__}: {self.message}"
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "is_recoverable": self.is_recoverable,
        }


# =============================================================================
# Extraction Exceptions
# =============================================================================

class ExtractionFailure(DomainException):
    """The vision-extraction service errored or returned nothing usable."""
    
    def __init__(
        self,
        message: str = "Failed to extract drug metadata from the image",
        provider: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        if provider:
            self.details["provider"] = provider


class EmptyMetadataError(ExtractionFailure):
    """Extraction succeeded but no field could be read from the packaging."""
    
    def __init__(
        self,
        message: str = "Identification failed. Please upload a clearer image showing the packaging.",
        **kwargs
    ):
        super().__init__(message, **kwargs)


# =============================================================================
# Research Exceptions
# =============================================================================

class ResearchFailure(DomainException):
    """Base exception for ground-truth research errors."""
    
    kind = "research_error"
    
    def __init__(self, message: str = "Ground-truth research failed", **kwargs):
        super().__init__(message, **kwargs)
        self.details.setdefault("kind", self.kind)


class RetrievalServiceError(ResearchFailure):
    """The retrieval service could not be reached or rejected the query."""
    
    kind = "retrieval_error"
    
    def __init__(
        self,
        message: str = "Retrieval service error",
        status_code: Optional[int] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        if status_code is not None:
            self.details["status_code"] = status_code


class NoDocumentsFoundError(ResearchFailure):
    """The retrieval query returned no reference documents."""
    
    kind = "no_documents"
    
    def __init__(
        self,
        query: str,
        message: Optional[str] = None,
        **kwargs
    ):
        message = message or f"No reference documents found for query: {query}"
        super().__init__(message, **kwargs)
        self.details["query"] = query


class MalformedInterpretationError(ResearchFailure):
    """The interpretation model returned output that does not fit the findings schema."""
    
    kind = "malformed_interpretation"
    
    def __init__(
        self,
        message: str = "Interpretation model returned malformed findings",
        raw_output: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        if raw_output:
            self.details["raw_output_preview"] = raw_output[:200]


# =============================================================================
# Inspection Exceptions
# =============================================================================

class InspectionFailure(DomainException):
    """The visual forensic model errored or returned unusable output."""
    
    def __init__(
        self,
        message: str = "Visual forensic inspection failed",
        provider: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        if provider:
            self.details["provider"] = provider


# =============================================================================
# Synthesis Exceptions
# =============================================================================

class SynthesisFailure(DomainException):
    """Delegated synthesis output failed schema or invariant validation."""
    
    def __init__(
        self,
        message: str = "Synthesis output could not be trusted",
        violations: Optional[List[str]] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        if violations:
            self.details["violations"] = violations


# =============================================================================
# Pipeline Exceptions
# =============================================================================

class ConfigurationFailure(DomainException):
    """Required components or external-service credentials are missing."""
    
    def __init__(
        self,
        message: str = "Pipeline is not properly configured",
        missing: Optional[List[str]] = None,
        **kwargs
    ):
        super().__init__(message, is_recoverable=False, **kwargs)
        self.missing = list(missing or [])
        if self.missing:
            self.details["missing"] = self.missing


class StageTimeoutError(DomainException):
    """A stage adapter did not finish within its bounded timeout."""
    
    def __init__(
        self,
        stage: str,
        timeout_seconds: float,
        message: Optional[str] = None,
        **kwargs
    ):
        message = message or f"Stage '{stage}' timed out after {timeout_seconds} seconds"
        super().__init__(message, **kwargs)
        self.details["stage"] = stage
        self.details["timeout_seconds"] = timeout_seconds


# =============================================================================
# Validation Exceptions
# =============================================================================

class InvalidImageError(DomainException):
    """Input image is invalid, empty or in an unsupported format."""
    
    def __init__(
        self,
        message: str = "Invalid or corrupted image",
        **kwargs
    ):
        super().__init__(message, is_recoverable=False, **kwargs)
