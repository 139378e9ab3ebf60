"""
Synthesis Validation

Delegated synthesis output is free-text derived. Before it is trusted it
must fit the FactorResult schema and respect the status invariants:
conflict only where the references assert a value, omission wherever
they are silent.
"""

from typing import Any, Dict, List, Literal, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ...domain.entities.scan import DrugMetadata
from ...domain.entities.evidence import ResearchFindings, VisualFindings
from ...domain.entities.analysis_result import Factor, FactorResult, FactorStatus
from ...domain.exceptions import SynthesisFailure
from ...domain.services.scoring import COMPARED_FACTORS, expected_value, observed_value


class SynthesizedFactor(BaseModel):
    """One factor classification as returned by the synthesis model."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    factor: Literal["imprint", "color", "shape", "genericIdentity"]
    status: Literal["match", "conflict", "omission"]
    reason: str = ""
    evidence_quote: Optional[str] = Field(default=None, alias="evidenceQuote")


def validate_synthesized_factors(
    raw: Sequence[Dict[str, Any]],
    metadata: DrugMetadata,
    research: ResearchFindings,
    visual: VisualFindings
) -> List[FactorResult]:
    """
    Validate raw synthesis output into four FactorResults.

    Args:
        raw: Factor dictionaries returned by the synthesizer
        metadata: Extractor output the model was given
        research: Ground truth the model was given
        visual: Inspector output the model was given

    Returns:
        Results for imprint, color, shape and genericIdentity, in that order

    Raises:
        SynthesisFailure: On schema errors or invariant violations
    """
    violations: List[str] = []
    parsed: Dict[Factor, SynthesizedFactor] = {}

    for index, item in enumerate(raw or []):
        try:
            entry = SynthesizedFactor.model_validate(item)
        except ValidationError as e:
            violations.append(f"entry {index}: {e.errors()[0]['msg']}")
            continue

        factor = Factor(entry.factor)
        if factor in parsed:
            violations.append(f"duplicate factor '{entry.factor}'")
            continue
        parsed[factor] = entry

    for factor in COMPARED_FACTORS:
        if factor not in parsed:
            violations.append(f"missing factor '{factor.value}'")
            continue

        status = FactorStatus(parsed[factor].status)
        if expected_value(factor, research) is None and status != FactorStatus.OMISSION:
            violations.append(
                f"'{factor.value}' is {status.value} but the references are silent on it"
            )
        if observed_value(factor, metadata, visual) is None and status == FactorStatus.CONFLICT:
            violations.append(f"'{factor.value}' is a conflict but nothing was observed")

    if violations:
        raise SynthesisFailure(
            message="Synthesis output failed validation",
            violations=violations,
        )

    return [
        FactorResult(
            factor=factor,
            status=FactorStatus(parsed[factor].status),
            reason=parsed[factor].reason or f"{factor.value}: {parsed[factor].status}",
            evidence_quote=parsed[factor].evidence_quote or None,
        )
        for factor in COMPARED_FACTORS
    ]
