"""
API Schemas

Request and response models of the scan API.
"""

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field
from typing_extensions import Annotated


class SubmitRequest(BaseModel):
    """Images as base64 strings or ``data:image/...;base64,`` URIs, in order."""

    images: List[str] = Field(min_length=1)


class AdmissionStateResponse(BaseModel):
    state: Literal["idle", "scanning", "analyzing", "results", "cooldown"]
    queue_length: int
    cooldown_remaining: int
    cooldown_remaining_ms: int
    run_in_flight: bool = False


class ActionResponse(BaseModel):
    """Outcome of a state-changing call; ``accepted`` is False on rejection."""

    accepted: bool
    snapshot: AdmissionStateResponse


class FactorModel(BaseModel):
    factor: Literal["imprint", "color", "shape", "genericIdentity", "sourceReliability"]
    status: Literal["match", "conflict", "omission"]
    match: bool
    reason: str
    evidence_quote: Optional[str] = None


class ReferenceModel(BaseModel):
    uri: str
    title: str = ""
    tier: int


class MetadataModel(BaseModel):
    name: Optional[str] = None
    strength: Optional[str] = None
    markings: Optional[str] = None
    manufacturer: Optional[str] = None


class PharmacologyModel(BaseModel):
    uses: Optional[str] = None
    how_it_works: Optional[str] = None
    indications: List[str] = Field(default_factory=list)


class ScoredResultModel(BaseModel):
    status: Literal["scored"]
    scan_id: str
    timestamp: str
    score: int = Field(ge=0, le=100)
    verdict: Literal["Authentic", "Inconclusive", "Counterfeit Risk"]
    imprint: str
    factors: List[FactorModel]
    references: List[ReferenceModel]
    metadata: Optional[MetadataModel] = None
    pharmacology: Optional[PharmacologyModel] = None
    known_recalls: List[str] = Field(default_factory=list)
    red_flags: List[str] = Field(default_factory=list)
    quality_score: Optional[int] = None
    safety_disclaimer: str
    stage_durations_ms: Dict[str, float] = Field(default_factory=dict)


class FailureModel(BaseModel):
    stage: Literal["configuration", "extraction", "research", "inspection", "synthesis", "scoring"]
    reason: str
    error_type: str
    details: Dict[str, Any] = Field(default_factory=dict)


class FailedResultModel(BaseModel):
    status: Literal["failed"]
    scan_id: str
    timestamp: str
    failure: FailureModel
    stage_durations_ms: Dict[str, float] = Field(default_factory=dict)


AnalysisResultModel = Annotated[
    Union[ScoredResultModel, FailedResultModel],
    Field(discriminator="status"),
]


class ResultResponse(BaseModel):
    """Latest completed analysis, or null before the first run."""

    result: Optional[AnalysisResultModel] = None


class HealthResponse(BaseModel):
    status: Literal["healthy", "degraded"]
    version: str
    missing_credentials: List[str] = Field(default_factory=list)
    scoring_mode: str
    admission: AdmissionStateResponse
