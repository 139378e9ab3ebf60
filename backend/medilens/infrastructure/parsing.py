"""
Model Output Parsing

Pydantic schemas for the JSON returned by the vision, interpretation and
synthesis models, and the conversion into domain entities. Field aliases
accept both the snake_case names used in our prompts and the camelCase
names models tend to drift to.
"""

from typing import Any, Dict, List, Optional
import json
import re

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from ..domain.entities.scan import DrugMetadata
from ..domain.entities.evidence import Pharmacology, ResearchFindings, VisualFindings


_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def parse_json_object(text: Optional[str]) -> Dict[str, Any]:
    """
    Parse a model reply into a JSON object.

    Markdown code fences around the object are tolerated.

    Raises:
        ValueError: If the reply is empty or not a JSON object
    """
    if not text or not text.strip():
        raise ValueError("Empty model output")

    cleaned = _FENCE.sub("", text.strip())
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        # Some models wrap the object in prose
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start == -1 or end <= start:
            raise ValueError("Model output is not JSON")
        data = json.loads(cleaned[start:end + 1])

    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def _to_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        value = ", ".join(str(v) for v in value if v not in (None, ""))
    text = str(value).strip()
    return text or None


def _to_text_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    return [str(v).strip() for v in value if v is not None and str(v).strip()]


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# =============================================================================
# Extraction
# =============================================================================

class MetadataPayload(_Payload):
    """Metadata read off the packaging."""

    name: Optional[str] = Field(default=None, validation_alias=AliasChoices("name", "drugName", "drug_name"))
    strength: Optional[str] = Field(default=None, validation_alias=AliasChoices("strength", "dosage"))
    markings: Optional[str] = Field(default=None, validation_alias=AliasChoices("markings", "imprint"))
    manufacturer: Optional[str] = None

    @field_validator("name", "strength", "markings", "manufacturer", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Optional[str]:
        return _to_text(value)

    def to_metadata(self) -> DrugMetadata:
        return DrugMetadata(
            name=self.name,
            strength=self.strength,
            markings=self.markings,
            manufacturer=self.manufacturer,
        )


# =============================================================================
# Inspection
# =============================================================================

class VisualPayload(_Payload):
    """Visual forensic findings. ``quality_score`` is mandatory."""

    color: Optional[str] = None
    shape: Optional[str] = None
    surface_markings: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("surface_markings", "surfaceMarkings", "imprint", "markings"),
    )
    quality_score: float = Field(validation_alias=AliasChoices("quality_score", "qualityScore"))
    red_flags: List[str] = Field(default_factory=list, validation_alias=AliasChoices("red_flags", "redFlags"))

    @model_validator(mode="before")
    @classmethod
    def _flatten_physical_description(cls, data: Any) -> Any:
        if isinstance(data, dict):
            physical = data.get("physical_description") or data.get("physicalDesc")
            if isinstance(physical, dict):
                data = {**physical, **{k: v for k, v in data.items() if v is not None}}
        return data

    @field_validator("color", "shape", "surface_markings", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Optional[str]:
        return _to_text(value)

    @field_validator("red_flags", mode="before")
    @classmethod
    def _flags(cls, value: Any) -> List[str]:
        return _to_text_list(value)

    def to_findings(self) -> VisualFindings:
        return VisualFindings(
            color=self.color,
            shape=self.shape,
            surface_markings=self.surface_markings,
            quality_score=self.quality_score,
            red_flags=tuple(self.red_flags),
        )


# =============================================================================
# Interpretation
# =============================================================================

class PharmacologyPayload(_Payload):
    uses: Optional[str] = None
    how_it_works: Optional[str] = Field(default=None, validation_alias=AliasChoices("how_it_works", "howItWorks"))
    indications: List[str] = Field(default_factory=list)

    @field_validator("uses", "how_it_works", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Optional[str]:
        return _to_text(value)

    @field_validator("indications", mode="before")
    @classmethod
    def _list(cls, value: Any) -> List[str]:
        return _to_text_list(value)


class FindingsPayload(_Payload):
    """Structured ground truth extracted from reference documents."""

    official_description: str = Field(
        default="", validation_alias=AliasChoices("official_description", "officialDescription")
    )
    expected_imprint: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("expected_imprint", "expectedImprint", "imprint")
    )
    expected_color: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("expected_color", "expectedColor", "color")
    )
    expected_shape: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("expected_shape", "expectedShape", "shape")
    )
    generic_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("generic_name", "genericName")
    )
    brand_names: List[str] = Field(
        default_factory=list, validation_alias=AliasChoices("brand_names", "brandNames")
    )
    evidence: Dict[str, str] = Field(default_factory=dict)
    known_recalls: List[str] = Field(
        default_factory=list, validation_alias=AliasChoices("known_recalls", "knownRecalls")
    )
    pharmacology: PharmacologyPayload = Field(default_factory=PharmacologyPayload)

    @field_validator("official_description", mode="before")
    @classmethod
    def _description(cls, value: Any) -> str:
        return _to_text(value) or ""

    @field_validator("expected_imprint", "expected_color", "expected_shape", "generic_name", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Optional[str]:
        text = _to_text(value)
        # Models spell "the documents are silent" in many ways
        if text and text.lower() in {"null", "none", "n/a", "unknown", "not stated", "not specified"}:
            return None
        return text

    @field_validator("brand_names", "known_recalls", mode="before")
    @classmethod
    def _list(cls, value: Any) -> List[str]:
        return _to_text_list(value)

    @field_validator("evidence", mode="before")
    @classmethod
    def _evidence(cls, value: Any) -> Dict[str, str]:
        if not isinstance(value, dict):
            return {}
        return {str(k): str(v).strip() for k, v in value.items() if v and str(v).strip()}

    @field_validator("pharmacology", mode="before")
    @classmethod
    def _pharmacology(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else {}

    def to_findings(self) -> ResearchFindings:
        return ResearchFindings(
            official_description=self.official_description,
            expected_imprint=self.expected_imprint,
            expected_color=self.expected_color,
            expected_shape=self.expected_shape,
            generic_name=self.generic_name,
            brand_names=tuple(self.brand_names),
            evidence=dict(self.evidence),
            known_recalls=tuple(self.known_recalls),
            pharmacology=Pharmacology(
                uses=self.pharmacology.uses,
                how_it_works=self.pharmacology.how_it_works,
                indications=tuple(self.pharmacology.indications),
            ),
        )


# =============================================================================
# Synthesis
# =============================================================================

# Keys the original report format used for the compared factors
_CORE_RESULT_KEYS = {
    "imprint": "imprint",
    "color": "color",
    "shape": "shape",
    "generic": "genericIdentity",
    "genericIdentity": "genericIdentity",
}


def extract_factor_entries(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Pull the raw factor list out of a synthesis reply.

    Accepts ``{"factors": [...]}`` or a ``{"coreResults": {"imprint": {...}}}``
    mapping. Entries are returned unvalidated.
    """
    factors = data.get("factors")
    if isinstance(factors, list):
        return factors

    core = data.get("coreResults") or data.get("core_results")
    if isinstance(core, dict):
        entries = []
        for key, factor in _CORE_RESULT_KEYS.items():
            value = core.get(key)
            if isinstance(value, dict):
                entries.append({"factor": factor, **value})
        return entries

    raise ValueError("Synthesis output has no 'factors' list")
