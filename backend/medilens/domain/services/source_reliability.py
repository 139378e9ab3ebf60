"""
Source Reliability Classifier

Assigns a trust tier to every reference by allow-list match against its
host, and derives the ``sourceReliability`` factor. Deterministic and
total: no external calls, every input yields a result.
"""

from typing import Iterable, Optional, Tuple, FrozenSet
from urllib.parse import urlparse
import logging

from ..entities.evidence import Reference, TrustTier
from ..entities.analysis_result import Factor, FactorStatus, FactorResult


logger = logging.getLogger(__name__)


# Government regulators and major clinical registries
AUTHORITATIVE_DOMAINS: FrozenSet[str] = frozenset({
    "fda.gov",
    "nih.gov",
    "nlm.nih.gov",
    "dailymed.nlm.nih.gov",
    "medlineplus.gov",
    "clinicaltrials.gov",
    "cdc.gov",
    "who.int",
    "ema.europa.eu",
    "gov.uk",
    "mhra.gov.uk",
    "nhs.uk",
    "tga.gov.au",
    "canada.ca",
    "hc-sc.gc.ca",
    "pmda.go.jp",
    "cdsco.gov.in",
    "titck.gov.tr",
    "nafdac.gov.ng",
    "swissmedic.ch",
    "bfarm.de",
    "ansm.sante.fr",
})

# Public-sector second-level domains; any host under them is authoritative
AUTHORITATIVE_SUFFIXES: Tuple[str, ...] = (
    ".gov",
    ".gov.uk",
    ".gov.au",
    ".gov.in",
    ".gov.tr",
    ".gov.ng",
    ".go.jp",
    ".gc.ca",
    ".gouv.fr",
    ".europa.eu",
)


def extract_host(uri: str) -> Optional[str]:
    """
    Get the lower-cased host of a URI, or None when it is not resolvable.

    Only http(s) URIs with a dotted host count as resolvable.
    """
    try:
        parsed = urlparse(uri.strip())
    except (ValueError, AttributeError):
        return None

    if parsed.scheme not in ("http", "https"):
        return None

    host = (parsed.hostname or "").rstrip(".")
    if "." not in host:
        return None
    return host


class SourceReliabilityClassifier:
    """
    Classifies references into trust tiers.

    Scoring of the resulting factor:
    - any tier-1 reference → match (full weight)
    - otherwise any reference at all → omission (partial weight)
    - no reference → conflict (zero weight); no corroboration is a risk signal
    """

    def __init__(
        self,
        authoritative_domains: Optional[Iterable[str]] = None,
        authoritative_suffixes: Optional[Iterable[str]] = None
    ):
        self._domains = frozenset(
            d.lower() for d in (authoritative_domains or AUTHORITATIVE_DOMAINS)
        )
        self._suffixes = tuple(authoritative_suffixes or AUTHORITATIVE_SUFFIXES)

    def tier_for(self, uri: str) -> TrustTier:
        """Get the trust tier for a single URI."""
        host = extract_host(uri)
        if host is None:
            return TrustTier.UNCLASSIFIED

        if host.startswith("www."):
            host = host[4:]

        if host in self._domains or any(host.endswith("." + d) for d in self._domains):
            return TrustTier.AUTHORITATIVE
        if host.endswith(self._suffixes):
            return TrustTier.AUTHORITATIVE
        return TrustTier.GENERAL

    def classify(
        self,
        references: Iterable[Reference]
    ) -> Tuple[Tuple[Reference, ...], FactorResult]:
        """
        Tier every reference and derive the source reliability factor.

        Args:
            references: References in any order, possibly with duplicate URIs

        Returns:
            Tuple of (unique tiered references, sourceReliability factor).
            References are ordered authoritative first, for display only.
        """
        unique = {}
        for ref in references:
            if ref.uri not in unique:
                unique[ref.uri] = Reference(
                    uri=ref.uri,
                    title=ref.title,
                    trust_tier=self.tier_for(ref.uri)
                )

        order = {TrustTier.AUTHORITATIVE: 0, TrustTier.GENERAL: 1, TrustTier.UNCLASSIFIED: 2}
        tiered = tuple(sorted(unique.values(), key=lambda r: order[r.trust_tier]))

        authoritative = [r for r in tiered if r.trust_tier == TrustTier.AUTHORITATIVE]

        if authoritative:
            hosts = sorted({extract_host(r.uri) for r in authoritative})
            factor = FactorResult(
                factor=Factor.SOURCE_RELIABILITY,
                status=FactorStatus.MATCH,
                reason=(
                    f"Corroborated by {len(authoritative)} authoritative source(s): "
                    f"{', '.join(hosts)}"
                ),
                evidence_quote=authoritative[0].title or None,
            )
        elif tiered:
            factor = FactorResult(
                factor=Factor.SOURCE_RELIABILITY,
                status=FactorStatus.OMISSION,
                reason=(
                    f"{len(tiered)} reference(s) found, none from a government "
                    "or clinical registry"
                ),
            )
        else:
            factor = FactorResult(
                factor=Factor.SOURCE_RELIABILITY,
                status=FactorStatus.CONFLICT,
                reason="No corroborating reference source was found",
            )

        logger.debug(
            f"Classified {len(tiered)} references "
            f"({len(authoritative)} authoritative): {factor.status.value}"
        )
        return tiered, factor


_default_classifier = SourceReliabilityClassifier()


def classify(references: Iterable[Reference]) -> Tuple[Tuple[Reference, ...], FactorResult]:
    """Classify references with the default allow-list."""
    return _default_classifier.classify(references)
