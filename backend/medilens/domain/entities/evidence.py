"""
Evidence Entities

Ground truth gathered by the researcher and observations made by the
visual forensic inspector.
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Tuple, Any
from enum import IntEnum


class TrustTier(IntEnum):
    """Coarse reliability class of a reference, by source domain."""
    
    UNCLASSIFIED = 0
    AUTHORITATIVE = 1   # government and clinical registries
    GENERAL = 2         # any other resolvable domain


@dataclass(frozen=True)
class Reference:
    """
    A reference document. Identity is the URI alone.
    
    Attributes:
        uri: Document URI
        title: Document title
        trust_tier: Assigned by the source reliability classifier
    """
    
    uri: str
    title: str = field(default="", compare=False)
    trust_tier: TrustTier = field(default=TrustTier.UNCLASSIFIED, compare=False)
    
    def to_dict(self) -> Dict[str, Any]:
        return {"uri": self.uri, "title": self.title, "tier": int(self.trust_tier)}


@dataclass(frozen=True)
class RetrievedDocument:
    """A ranked document returned by the retrieval service."""
    
    uri: str
    title: str = ""
    snippet: str = ""
    
    def to_reference(self) -> Reference:
        return Reference(uri=self.uri, title=self.title)


@dataclass(frozen=True)
class Pharmacology:
    """Educational pharmacology summary taken from the reference documents."""
    
    uses: Optional[str] = None
    how_it_works: Optional[str] = None
    indications: Tuple[str, ...] = ()
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "uses": self.uses,
            "how_it_works": self.how_it_works,
            "indications": list(self.indications),
        }


@dataclass(frozen=True)
class ResearchFindings:
    """
    Authoritative description of what the product should look like.
    
    An ``expected_*`` attribute left as None means the references are
    silent on it; comparison against it yields an omission, never a conflict.
    
    Attributes:
        official_description: Physical description from official sources
        expected_imprint: Imprint/markings the references assert
        expected_color: Color the references assert
        expected_shape: Shape the references assert
        generic_name: Generic (INN) name of the active ingredient
        brand_names: Known trade names of the product
        evidence: Verbatim quotes backing each expected attribute
        known_recalls: Recall or falsified-medicine notices
        pharmacology: Uses / mechanism / indications
        references: Raw references, unclassified until scored
    """
    
    official_description: str = ""
    expected_imprint: Optional[str] = None
    expected_color: Optional[str] = None
    expected_shape: Optional[str] = None
    generic_name: Optional[str] = None
    brand_names: Tuple[str, ...] = ()
    evidence: Dict[str, str] = field(default_factory=dict)
    known_recalls: Tuple[str, ...] = ()
    pharmacology: Pharmacology = field(default_factory=Pharmacology)
    references: Tuple[Reference, ...] = ()
    
    def quote_for(self, attribute: str) -> Optional[str]:
        return self.evidence.get(attribute) or None


def clamp_quality_score(value: float) -> int:
    """Clamp a model-reported quality score into [0, 100]."""
    return int(round(min(100.0, max(0.0, float(value)))))


@dataclass(frozen=True)
class VisualFindings:
    """
    Observations made directly from the photograph.
    
    ``quality_score`` is clamped into [0, 100] on construction; an out of
    range value is normalized, not treated as an error.
    """
    
    color: Optional[str] = None
    shape: Optional[str] = None
    surface_markings: Optional[str] = None
    quality_score: int = 0
    red_flags: Tuple[str, ...] = ()
    
    def __post_init__(self) -> None:
        object.__setattr__(self, "quality_score", clamp_quality_score(self.quality_score))
