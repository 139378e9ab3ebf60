"""
Comparator & Scorer

Reconciles what was observed on the photograph against the researched
ground truth, classifies each factor as match / conflict / omission and
turns the classification into a weighted score and verdict.

The weighted formula is the only source of truth for the verdict: a
conflict on a heavy factor such as the imprint shows up purely as its
zero contribution, never as a short-circuit.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple
from datetime import datetime, timezone
import math
import re
import logging

from ..entities.scan import DrugMetadata
from ..entities.evidence import Reference, ResearchFindings, VisualFindings
from ..entities.analysis_result import (
    AnalysisResult,
    Factor,
    FactorStatus,
    FactorResult,
    FailedAnalysis,
    FailureReason,
    PipelineStage,
    ScoredAnalysis,
    Verdict,
    new_scan_id,
)


logger = logging.getLogger(__name__)


OMISSION_CREDIT = 0.5

COMPARED_FACTORS = (Factor.IMPRINT, Factor.COLOR, Factor.SHAPE, Factor.GENERIC_IDENTITY)


@dataclass(frozen=True)
class FactorWeights:
    """
    Fixed weight of every factor. Must sum to exactly 100.
    """

    imprint: int = 40
    color: int = 20
    generic_identity: int = 15
    shape: int = 10
    source_reliability: int = 15

    def __post_init__(self) -> None:
        if any(w < 0 for w in self.as_dict().values()):
            raise ValueError("Factor weights must be non-negative")
        if self.total != 100:
            raise ValueError(f"Factor weights must sum to 100, got {self.total}")

    def as_dict(self) -> Dict[Factor, int]:
        return {
            Factor.IMPRINT: self.imprint,
            Factor.COLOR: self.color,
            Factor.GENERIC_IDENTITY: self.generic_identity,
            Factor.SHAPE: self.shape,
            Factor.SOURCE_RELIABILITY: self.source_reliability,
        }

    @property
    def total(self) -> int:
        return sum(self.as_dict().values())

    def weight(self, factor: Factor) -> int:
        return self.as_dict()[factor]


@dataclass(frozen=True)
class VerdictThresholds:
    """
    score > authentic → Authentic; score > inconclusive → Inconclusive;
    anything else → Counterfeit Risk. Both boundaries are exclusive.
    """

    authentic: int = 85
    inconclusive: int = 65

    def __post_init__(self) -> None:
        if not 0 <= self.inconclusive < self.authentic <= 100:
            raise ValueError(
                f"Invalid verdict thresholds: inconclusive={self.inconclusive}, "
                f"authentic={self.authentic}"
            )

    def verdict_for(self, score: int) -> Verdict:
        if score > self.authentic:
            return Verdict.AUTHENTIC
        if score > self.inconclusive:
            return Verdict.INCONCLUSIVE
        return Verdict.COUNTERFEIT_RISK


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (42.5 → 43)."""
    return int(math.floor(value + 0.5))


# =============================================================================
# Normalization helpers
# =============================================================================

_ALTERNATIVE_SPLIT = re.compile(r"\s*(?:,|;|/|\bor\b)\s*", re.IGNORECASE)
_NON_ALNUM = re.compile(r"[^a-z0-9]+")

COLOR_SYNONYMS = {
    "grey": "gray",
    "off white": "white",
    "offwhite": "white",
    "ivory": "white",
    "colourless": "colorless",
    "clear": "colorless",
    "transparent": "colorless",
    "violet": "purple",
    "lavender": "purple",
    "beige": "tan",
    "peach": "orange",
}
COLOR_MODIFIERS = {"light", "dark", "pale", "bright", "deep", "colored", "coloured", "color", "colour"}

SHAPE_SYNONYMS = {
    "circular": "round",
    "circle": "round",
    "disc": "round",
    "disk": "round",
    "elliptical": "oval",
    "ellipsoid": "oval",
    "egg": "oval",
    "caplet": "oblong",
    "capsule shaped": "oblong",
    "elongated": "oblong",
    "rectangular": "rectangle",
    "triangular": "triangle",
    "diamond shaped": "diamond",
    "pentagonal": "pentagon",
    "hexagonal": "hexagon",
}
SHAPE_IGNORED = {"shaped", "shape", "tablet", "tablets", "pill", "pills", "biconvex", "flat", "film", "coated"}

NAME_IGNORED = {"tablet", "tablets", "tab", "tabs", "capsule", "capsules", "caplets", "mg", "mcg", "g", "ml",
                "film", "coated", "oral", "extended", "release", "er", "sr", "xr", "hcl"}


def _normalize(value: str) -> str:
    return _NON_ALNUM.sub(" ", value.lower()).strip()


def _compact(value: str) -> str:
    return _NON_ALNUM.sub("", value.lower())


def _alternatives(value: str) -> List[str]:
    return [part for part in _ALTERNATIVE_SPLIT.split(value) if part and part.strip()]


def _canonical_phrases(
    value: str,
    synonyms: Dict[str, str],
    ignored: Set[str]
) -> List[Set[str]]:
    """Token sets of every alternative, after synonym folding."""
    phrases = []
    for alternative in _alternatives(value):
        text = _normalize(alternative)
        for phrase, canonical in synonyms.items():
            text = re.sub(rf"\b{re.escape(phrase)}\b", canonical, text)
        tokens = {t for t in text.split() if t not in ignored}
        tokens = {synonyms.get(t, t) for t in tokens}
        if tokens:
            phrases.append(tokens)
    return phrases


def _categorical_match(
    observed: str,
    expected: str,
    synonyms: Dict[str, str],
    ignored: Set[str]
) -> bool:
    observed_phrases = _canonical_phrases(observed, synonyms, ignored)
    expected_phrases = _canonical_phrases(expected, synonyms, ignored)
    for obs in observed_phrases:
        for exp in expected_phrases:
            if obs <= exp or exp <= obs:
                return True
    return False


def imprints_match(observed: str, expected: str) -> bool:
    """
    Case- and separator-insensitive imprint comparison.

    "M 367", "m-367" and "M367" are equivalent. An expected imprint found
    inside longer observed packaging text also matches.
    """
    observed_compact = _compact(observed)
    if not observed_compact:
        return False
    for alternative in _alternatives(expected):
        expected_compact = _compact(alternative)
        if not expected_compact:
            continue
        if observed_compact == expected_compact:
            return True
        if len(expected_compact) >= 3 and expected_compact in observed_compact:
            return True
    return False


def comparable_value(factor: Factor, value: Optional[str]) -> Optional[str]:
    """
    The value if it states something comparable for ``factor``, else None.

    "Tablet" names no shape and "colored" no color; such values are
    treated as silent so they can only ever yield an omission.
    """
    if not value:
        return None
    if factor == Factor.IMPRINT:
        comparable = any(_compact(a) for a in _alternatives(value))
    elif factor == Factor.COLOR:
        comparable = bool(_canonical_phrases(value, COLOR_SYNONYMS, COLOR_MODIFIERS))
    elif factor == Factor.SHAPE:
        comparable = bool(_canonical_phrases(value, SHAPE_SYNONYMS, SHAPE_IGNORED))
    else:
        comparable = any(t not in NAME_IGNORED and not t.isdigit() for t in _normalize(value).split())
    return value if comparable else None


def expected_names_of(research: ResearchFindings) -> List[str]:
    """Generic and brand names that actually name a product."""
    names = (research.generic_name, *research.brand_names)
    return [n for n in names if comparable_value(Factor.GENERIC_IDENTITY, n)]


def expected_value(factor: Factor, research: ResearchFindings) -> Optional[str]:
    """What the references assert for ``factor``; None when they are silent."""
    if factor == Factor.IMPRINT:
        return comparable_value(factor, research.expected_imprint)
    if factor == Factor.COLOR:
        return comparable_value(factor, research.expected_color)
    if factor == Factor.SHAPE:
        return comparable_value(factor, research.expected_shape)
    return " / ".join(expected_names_of(research)) or None


def observed_value(factor: Factor, metadata: DrugMetadata, visual: VisualFindings) -> Optional[str]:
    """What was read off the photograph for ``factor``; None when nothing was."""
    if factor == Factor.IMPRINT:
        value = comparable_value(factor, metadata.markings) or visual.surface_markings
    elif factor == Factor.COLOR:
        value = visual.color
    elif factor == Factor.SHAPE:
        value = visual.shape
    else:
        value = metadata.name
    return comparable_value(factor, value)


def colors_match(observed: str, expected: str) -> bool:
    return _categorical_match(observed, expected, COLOR_SYNONYMS, COLOR_MODIFIERS)


def shapes_match(observed: str, expected: str) -> bool:
    return _categorical_match(observed, expected, SHAPE_SYNONYMS, SHAPE_IGNORED)


def names_match(observed: str, expected_names: Iterable[str]) -> bool:
    """True when the observed product name names any of the expected names."""
    observed_tokens = {
        t for t in _normalize(observed).split()
        if t not in NAME_IGNORED and not t.isdigit()
    }
    if not observed_tokens:
        return False
    observed_compact = _compact(observed)
    for name in expected_names:
        if not name:
            continue
        if _compact(name) == observed_compact:
            return True
        expected_tokens = {t for t in _normalize(name).split() if t not in NAME_IGNORED}
        if expected_tokens and (expected_tokens <= observed_tokens or observed_tokens <= expected_tokens):
            return True
    return False


# =============================================================================
# Scorer
# =============================================================================

class AuthenticityScorer:
    """
    Comparator & scorer.

    Usage:
        scorer = AuthenticityScorer()
        result = scorer.score(metadata, research, visual, source_factor)
    """

    def __init__(
        self,
        weights: Optional[FactorWeights] = None,
        thresholds: Optional[VerdictThresholds] = None
    ):
        self.weights = weights or FactorWeights()
        self.thresholds = thresholds or VerdictThresholds()
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    # -------------------------------------------------------------------------
    # Comparison
    # -------------------------------------------------------------------------

    def _classify(
        self,
        factor: Factor,
        label: str,
        observed: Optional[str],
        expected: Optional[str],
        matches: bool,
        quote: Optional[str]
    ) -> FactorResult:
        if not expected:
            return FactorResult(
                factor=factor,
                status=FactorStatus.OMISSION,
                reason=f"Reference sources do not state the {label}",
            )
        if not observed:
            # Nothing was observed, so the references cannot contradict anything.
            return FactorResult(
                factor=factor,
                status=FactorStatus.OMISSION,
                reason=f"No {label} could be observed; references state '{expected}'",
                evidence_quote=quote,
            )
        if matches:
            return FactorResult(
                factor=factor,
                status=FactorStatus.MATCH,
                reason=f"Observed {label} '{observed}' matches references ('{expected}')",
                evidence_quote=quote,
            )
        return FactorResult(
            factor=factor,
            status=FactorStatus.CONFLICT,
            reason=f"Observed {label} '{observed}' but references state '{expected}'",
            evidence_quote=quote,
        )

    def compare(
        self,
        metadata: DrugMetadata,
        research: ResearchFindings,
        visual: VisualFindings
    ) -> List[FactorResult]:
        """
        Classify imprint, color, shape and generic identity.

        Returns:
            Four factor results in a fixed order
        """
        observed = {f: observed_value(f, metadata, visual) for f in COMPARED_FACTORS}
        expected = {f: expected_value(f, research) for f in COMPARED_FACTORS}
        expected_names = expected_names_of(research)

        imprint = self._classify(
            Factor.IMPRINT,
            "imprint",
            observed[Factor.IMPRINT],
            expected[Factor.IMPRINT],
            bool(observed[Factor.IMPRINT] and expected[Factor.IMPRINT]
                 and imprints_match(observed[Factor.IMPRINT], expected[Factor.IMPRINT])),
            research.quote_for("imprint"),
        )
        color = self._classify(
            Factor.COLOR,
            "color",
            observed[Factor.COLOR],
            expected[Factor.COLOR],
            bool(observed[Factor.COLOR] and expected[Factor.COLOR]
                 and colors_match(observed[Factor.COLOR], expected[Factor.COLOR])),
            research.quote_for("color"),
        )
        shape = self._classify(
            Factor.SHAPE,
            "shape",
            observed[Factor.SHAPE],
            expected[Factor.SHAPE],
            bool(observed[Factor.SHAPE] and expected[Factor.SHAPE]
                 and shapes_match(observed[Factor.SHAPE], expected[Factor.SHAPE])),
            research.quote_for("shape"),
        )
        generic = self._classify(
            Factor.GENERIC_IDENTITY,
            "product identity",
            observed[Factor.GENERIC_IDENTITY],
            expected[Factor.GENERIC_IDENTITY],
            bool(observed[Factor.GENERIC_IDENTITY] and expected_names
                 and names_match(observed[Factor.GENERIC_IDENTITY], expected_names)),
            research.quote_for("genericIdentity") or research.quote_for("generic"),
        )
        return [imprint, color, shape, generic]

    # -------------------------------------------------------------------------
    # Scoring
    # -------------------------------------------------------------------------

    def contribution(self, result: FactorResult) -> float:
        """Points a single factor contributes."""
        weight = self.weights.weight(result.factor)
        if result.status == FactorStatus.MATCH:
            return float(weight)
        if result.status == FactorStatus.OMISSION:
            return weight * OMISSION_CREDIT
        return 0.0

    def score_factors(self, factors: Sequence[FactorResult]) -> int:
        """Weighted score, rounded half-up and clamped to [0, 100]."""
        total = sum(self.contribution(f) for f in factors)
        return max(0, min(100, round_half_up(total)))

    def verdict_for(self, score: int) -> Verdict:
        return self.thresholds.verdict_for(score)

    def build_result(
        self,
        factors: Sequence[FactorResult],
        metadata: DrugMetadata,
        research: ResearchFindings,
        visual: VisualFindings,
        references: Sequence[Reference] = (),
        scan_id: Optional[str] = None,
        timestamp: Optional[datetime] = None
    ) -> ScoredAnalysis:
        """Assemble a scored result from already classified factors."""
        timestamp = timestamp or datetime.now(timezone.utc)
        score = self.score_factors(factors)
        verdict = self.verdict_for(score)

        self.logger.info(
            f"Scored {metadata}: {score} → {verdict.value} "
            f"({', '.join(f'{f.factor.value}={f.status.value}' for f in factors)})"
        )

        return ScoredAnalysis(
            scan_id=scan_id or new_scan_id(timestamp),
            timestamp=timestamp,
            score=score,
            verdict=verdict,
            factors=tuple(factors),
            references=tuple(references),
            imprint=metadata.markings or visual.surface_markings or "NONE",
            metadata=metadata,
            pharmacology=research.pharmacology,
            known_recalls=tuple(research.known_recalls),
            red_flags=tuple(visual.red_flags),
            quality_score=visual.quality_score,
        )

    def score(
        self,
        metadata: DrugMetadata,
        research: Optional[ResearchFindings],
        visual: Optional[VisualFindings],
        source_factor: FactorResult,
        references: Sequence[Reference] = (),
        scan_id: Optional[str] = None,
        timestamp: Optional[datetime] = None
    ) -> AnalysisResult:
        """
        Compare, score and judge.

        Without ground truth no factor is fabricated: a missing
        ResearchFindings (or VisualFindings) yields a FailedAnalysis.
        """
        timestamp = timestamp or datetime.now(timezone.utc)

        if research is None or visual is None:
            missing = "research findings" if research is None else "visual findings"
            return FailedAnalysis(
                scan_id=scan_id or new_scan_id(timestamp),
                timestamp=timestamp,
                failure=FailureReason(
                    stage=PipelineStage.SCORING,
                    reason=f"Cannot score without {missing}",
                    error_type="MissingGroundTruth",
                ),
            )

        factors = self.compare(metadata, research, visual) + [source_factor]
        return self.build_result(
            factors, metadata, research, visual,
            references=references, scan_id=scan_id, timestamp=timestamp,
        )
