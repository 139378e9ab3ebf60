"""
Analysis Result Entity

Final output of one pipeline run. A result is either a ``ScoredAnalysis``
(score, verdict and five factor results) or a ``FailedAnalysis`` carrying
the stage and reason of the failure; never both.
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any, Tuple
from enum import Enum
from datetime import datetime, timezone

from .scan import DrugMetadata
from .evidence import Reference, Pharmacology


class PipelineStage(Enum):
    """Stages a failure can be attributed to."""

    CONFIGURATION = "configuration"
    EXTRACTION = "extraction"
    RESEARCH = "research"
    INSPECTION = "inspection"
    SYNTHESIS = "synthesis"
    SCORING = "scoring"


class Factor(Enum):
    """Attributes compared against ground truth."""

    IMPRINT = "imprint"
    COLOR = "color"
    SHAPE = "shape"
    GENERIC_IDENTITY = "genericIdentity"
    SOURCE_RELIABILITY = "sourceReliability"


class FactorStatus(Enum):
    """
    Outcome of comparing one factor.

    CONFLICT only when ground truth explicitly contradicts the observation;
    OMISSION only when ground truth is silent.
    """

    MATCH = "match"
    CONFLICT = "conflict"
    OMISSION = "omission"


class Verdict(Enum):
    """Verdict derived from the weighted score."""

    AUTHENTIC = "Authentic"
    INCONCLUSIVE = "Inconclusive"
    COUNTERFEIT_RISK = "Counterfeit Risk"


@dataclass(frozen=True)
class FactorResult:
    """
    Classification of a single factor.

    Attributes:
        factor: Which attribute was compared
        status: match / conflict / omission
        reason: Human-readable explanation
        evidence_quote: Verbatim ground-truth text backing the status
    """

    factor: Factor
    status: FactorStatus
    reason: str
    evidence_quote: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "factor": self.factor.value,
            "status": self.status.value,
            "match": self.status == FactorStatus.MATCH,
            "reason": self.reason,
        }
        if self.evidence_quote:
            data["evidence_quote"] = self.evidence_quote
        return data


@dataclass(frozen=True)
class FailureReason:
    """
    Structured failure of one pipeline run.

    Attributes:
        stage: Stage where the run failed
        reason: Human-readable message safe to show to a user
        error_type: Name of the underlying exception class
        details: Additional error details
    """

    stage: PipelineStage
    reason: str
    error_type: str = "PipelineFailure"
    details: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"[{self.stage.value}] {self.error_type}: {self.reason}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage.value,
            "reason": self.reason,
            "error_type": self.error_type,
            "details": self.details,
        }


DEFAULT_DISCLAIMER = (
    "Disclaimer: This analysis is performed by AI agents and is for informational "
    "purposes only. It corroborates the product against external evidence and does "
    "not establish authenticity. Consult a pharmacist or healthcare professional "
    "before consuming any medicine."
)


def new_scan_id(moment: Optional[datetime] = None, suffix: Optional[str] = None) -> str:
    """Scan identifier of the form ``scan_<epoch-millis>[_<suffix>]``."""
    moment = moment or datetime.now(timezone.utc)
    scan_id = f"scan_{int(moment.timestamp() * 1000)}"
    return f"{scan_id}_{suffix}" if suffix else scan_id


@dataclass(frozen=True)
class AnalysisResult:
    """
    Common part of every pipeline outcome.

    Owned by the caller once returned; the core never mutates it.
    """

    scan_id: str
    timestamp: datetime

    @property
    def is_failure(self) -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scan_id": self.scan_id,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class ScoredAnalysis(AnalysisResult):
    """
    Successful analysis with a weighted score and verdict.

    Attributes:
        score: Integer authenticity score in [0, 100]
        verdict: Verdict derived from the score
        factors: Exactly one result per Factor
        references: Trust-tiered references
        imprint: Observed imprint, "NONE" when nothing was read
        metadata: Metadata read from the packaging
        pharmacology: Educational summary from the references
        known_recalls: Recall notices found during research
        red_flags: Visual anomalies reported by the inspector
        quality_score: Packaging print-quality score in [0, 100]
        safety_disclaimer: Text shown alongside every verdict
        stage_durations_ms: Per-stage timings for debugging
    """

    score: int = 0
    verdict: Verdict = Verdict.COUNTERFEIT_RISK
    factors: Tuple[FactorResult, ...] = ()
    references: Tuple[Reference, ...] = ()
    imprint: str = "NONE"
    metadata: Optional[DrugMetadata] = None
    pharmacology: Optional[Pharmacology] = None
    known_recalls: Tuple[str, ...] = ()
    red_flags: Tuple[str, ...] = ()
    quality_score: Optional[int] = None
    safety_disclaimer: str = DEFAULT_DISCLAIMER
    stage_durations_ms: Dict[str, float] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        if not 0 <= self.score <= 100:
            raise ValueError(f"Score must be between 0 and 100, got {self.score}")

        seen = [f.factor for f in self.factors]
        if len(seen) != len(Factor) or set(seen) != set(Factor):
            raise ValueError(
                f"Expected exactly one result per factor, got {[f.value for f in seen]}"
            )

    @property
    def failure(self) -> None:
        return None

    def factor(self, factor: Factor) -> FactorResult:
        """Get the result for a specific factor."""
        for result in self.factors:
            if result.factor == factor:
                return result
        raise KeyError(factor)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "status": "scored",
            "score": self.score,
            "verdict": self.verdict.value,
            "imprint": self.imprint,
            "factors": [f.to_dict() for f in self.factors],
            "references": [r.to_dict() for r in self.references],
            "metadata": self.metadata.to_dict() if self.metadata else None,
            "pharmacology": self.pharmacology.to_dict() if self.pharmacology else None,
            "known_recalls": list(self.known_recalls),
            "red_flags": list(self.red_flags),
            "quality_score": self.quality_score,
            "safety_disclaimer": self.safety_disclaimer,
            "stage_durations_ms": dict(self.stage_durations_ms),
        })
        return data

    def __str__(self) -> str:
        return f"ScoredAnalysis({self.scan_id}: {self.score} {self.verdict.value})"


@dataclass(frozen=True)
class FailedAnalysis(AnalysisResult):
    """
    Analysis that could not be scored. Carries no score and no verdict.
    """

    failure: FailureReason = field(
        default_factory=lambda: FailureReason(
            stage=PipelineStage.SCORING, reason="Analysis failed"
        )
    )
    stage_durations_ms: Dict[str, float] = field(default_factory=dict, compare=False)

    @property
    def is_failure(self) -> bool:
        return True

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "status": "failed",
            "failure": self.failure.to_dict(),
            "stage_durations_ms": dict(self.stage_durations_ms),
        })
        return data

    def __str__(self) -> str:
        return f"FailedAnalysis({self.scan_id}: {self.failure})"

    @classmethod
    def from_exception(
        cls,
        stage: PipelineStage,
        error: Exception,
        scan_id: Optional[str] = None,
        timestamp: Optional[datetime] = None
    ) -> "FailedAnalysis":
        """Normalize any exception into a failed result."""
        from ..exceptions import DomainException

        timestamp = timestamp or datetime.now(timezone.utc)
        if isinstance(error, DomainException):
            reason, details = error.message, dict(error.details)
        else:
            reason, details = str(error) or error.__class__.__name__, {}

        return cls(
            scan_id=scan_id or new_scan_id(timestamp),
            timestamp=timestamp,
            failure=FailureReason(
                stage=stage,
                reason=reason,
                error_type=error.__class__.__name__,
                details=details,
            ),
        )
