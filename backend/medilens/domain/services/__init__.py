"""
Domain Services

Pure, deterministic domain logic: source reliability classification and
the comparator & scorer.
"""

from .source_reliability import SourceReliabilityClassifier, classify, extract_host
from .scoring import (
    AuthenticityScorer,
    FactorWeights,
    VerdictThresholds,
    round_half_up,
    imprints_match,
    colors_match,
    shapes_match,
    names_match,
)

__all__ = [
    "SourceReliabilityClassifier",
    "classify",
    "extract_host",
    "AuthenticityScorer",
    "FactorWeights",
    "VerdictThresholds",
    "round_half_up",
    "imprints_match",
    "colors_match",
    "shapes_match",
    "names_match",
]
