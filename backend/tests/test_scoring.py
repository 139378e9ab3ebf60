"""
Comparator & scorer tests.
"""

from dataclasses import replace
import itertools

import pytest

from medilens.domain.entities.analysis_result import (
    Factor,
    FactorResult,
    FactorStatus,
    PipelineStage,
    ScoredAnalysis,
    Verdict,
)
from medilens.domain.entities.evidence import ResearchFindings, VisualFindings
from medilens.domain.entities.scan import DrugMetadata
from medilens.domain.services.scoring import (
    AuthenticityScorer,
    FactorWeights,
    VerdictThresholds,
    colors_match,
    comparable_value,
    imprints_match,
    names_match,
    round_half_up,
    shapes_match,
)
from medilens.domain.services.source_reliability import classify

from tests.fakes import (
    FDA_DOCUMENTS,
    METFORMIN,
    METFORMIN_RESEARCH,
    METFORMIN_VISUAL,
)


def _score(metadata=METFORMIN, research=METFORMIN_RESEARCH, visual=METFORMIN_VISUAL, references=None):
    if references is None:
        references = [doc.to_reference() for doc in FDA_DOCUMENTS]
    tiered, source_factor = classify(references)
    return AuthenticityScorer().score(metadata, research, visual, source_factor, references=tiered)


def test_default_weights_sum_to_100():
    weights = FactorWeights()
    assert weights.total == 100
    assert weights.weight(Factor.IMPRINT) == 40
    assert weights.weight(Factor.COLOR) == 20
    assert weights.weight(Factor.GENERIC_IDENTITY) == 15
    assert weights.weight(Factor.SHAPE) == 10
    assert weights.weight(Factor.SOURCE_RELIABILITY) == 15


def test_weights_not_summing_to_100_are_rejected():
    with pytest.raises(ValueError):
        FactorWeights(imprint=50)


def test_thresholds_must_be_ordered():
    with pytest.raises(ValueError):
        VerdictThresholds(authentic=60, inconclusive=70)


@pytest.mark.parametrize("score,verdict", [
    (100, Verdict.AUTHENTIC),
    (86, Verdict.AUTHENTIC),
    (85, Verdict.INCONCLUSIVE),
    (66, Verdict.INCONCLUSIVE),
    (65, Verdict.COUNTERFEIT_RISK),
    (0, Verdict.COUNTERFEIT_RISK),
])
def test_verdict_boundaries_are_exclusive(score, verdict):
    assert VerdictThresholds().verdict_for(score) == verdict


def test_round_half_up():
    assert round_half_up(42.5) == 43
    assert round_half_up(84.5) == 85
    assert round_half_up(84.4) == 84


def test_perfect_match_scores_100():
    result = _score()

    assert isinstance(result, ScoredAnalysis)
    assert result.score == 100
    assert result.verdict == Verdict.AUTHENTIC
    assert all(f.status == FactorStatus.MATCH for f in result.factors)
    assert result.imprint == "M 367"
    assert result.quality_score == 92


def test_every_factor_reported_exactly_once():
    result = _score()
    assert sorted(f.factor.value for f in result.factors) == sorted(f.value for f in Factor)


def test_all_omission_without_references_is_counterfeit_risk():
    result = _score(research=ResearchFindings(), references=[])

    statuses = {f.factor: f.status for f in result.factors}
    assert statuses[Factor.SOURCE_RELIABILITY] == FactorStatus.CONFLICT
    for factor in (Factor.IMPRINT, Factor.COLOR, Factor.SHAPE, Factor.GENERIC_IDENTITY):
        assert statuses[factor] == FactorStatus.OMISSION

    # 85 * 0.5 = 42.5, rounded half-up
    assert result.score == 43
    assert result.verdict == Verdict.COUNTERFEIT_RISK


def test_imprint_conflict_costs_its_full_weight():
    metadata = replace(METFORMIN, markings="L 484")
    result = _score(metadata=metadata)

    assert result.factor(Factor.IMPRINT).status == FactorStatus.CONFLICT
    assert result.score == 60
    assert result.verdict == Verdict.COUNTERFEIT_RISK


def test_unobserved_attribute_is_omission_not_conflict():
    metadata = replace(METFORMIN, markings=None)
    visual = replace(METFORMIN_VISUAL, surface_markings=None)
    result = _score(metadata=metadata, visual=visual)

    imprint = result.factor(Factor.IMPRINT)
    assert imprint.status == FactorStatus.OMISSION
    assert result.score == 80
    assert result.verdict == Verdict.INCONCLUSIVE
    assert result.imprint == "NONE"


def test_silent_research_never_yields_conflict():
    research = replace(METFORMIN_RESEARCH, expected_color=None)
    visual = replace(METFORMIN_VISUAL, color="Purple")
    result = _score(research=research, visual=visual)

    assert result.factor(Factor.COLOR).status == FactorStatus.OMISSION


def test_reference_value_without_a_shape_or_color_is_silent():
    research = replace(METFORMIN_RESEARCH, expected_shape="Tablet", expected_color="colored")
    result = _score(research=research)

    assert result.factor(Factor.COLOR).status == FactorStatus.OMISSION
    assert result.factor(Factor.SHAPE).status == FactorStatus.OMISSION
    # 40 + 10 + 5 + 15 + 15
    assert result.score == 85
    assert result.verdict == Verdict.INCONCLUSIVE


@pytest.mark.parametrize("factor,value", [
    (Factor.SHAPE, "film-coated tablet"),
    (Factor.SHAPE, "Tablet"),
    (Factor.COLOR, "colored"),
    (Factor.COLOR, "light"),
    (Factor.IMPRINT, " - "),
    (Factor.GENERIC_IDENTITY, "500 mg tablets"),
])
def test_values_naming_nothing_are_not_comparable(factor, value):
    assert comparable_value(factor, value) is None


def test_comparable_values_are_kept():
    assert comparable_value(Factor.SHAPE, "round biconvex tablet") == "round biconvex tablet"
    assert comparable_value(Factor.COLOR, "light blue") == "light blue"
    assert comparable_value(Factor.IMPRINT, "M 367") == "M 367"


def test_imprint_falls_back_to_visual_markings():
    metadata = replace(METFORMIN, markings=None)
    result = _score(metadata=metadata)

    assert result.factor(Factor.IMPRINT).status == FactorStatus.MATCH
    assert result.imprint == "M 367"


def test_missing_ground_truth_yields_failure_not_score():
    _, source_factor = classify([])
    result = AuthenticityScorer().score(METFORMIN, None, METFORMIN_VISUAL, source_factor)

    assert result.is_failure
    assert result.failure.stage == PipelineStage.SCORING
    assert not hasattr(result, "score")


def test_evidence_quote_is_carried_through():
    result = _score()
    assert result.factor(Factor.IMPRINT).evidence_quote == "debossed with M 367 on one side"


def test_scored_analysis_requires_all_factors():
    with pytest.raises(ValueError):
        ScoredAnalysis(
            scan_id="scan_1",
            timestamp=_score().timestamp,
            score=50,
            factors=(FactorResult(Factor.IMPRINT, FactorStatus.MATCH, "ok"),),
        )


def test_custom_weights_and_thresholds():
    scorer = AuthenticityScorer(
        weights=FactorWeights(imprint=20, color=20, generic_identity=20, shape=20, source_reliability=20),
        thresholds=VerdictThresholds(authentic=70, inconclusive=50),
    )
    _, source_factor = classify([])
    result = scorer.score(METFORMIN, METFORMIN_RESEARCH, METFORMIN_VISUAL, source_factor)

    assert result.score == 80
    assert result.verdict == Verdict.AUTHENTIC


def test_imprint_matching_ignores_case_and_separators():
    assert imprints_match("M 367", "m-367")
    assert imprints_match("m367", "M 367")
    assert imprints_match("Front: M 367 Back: blank", "M367")
    assert not imprints_match("M 366", "M 367")


def test_color_and_shape_synonyms():
    assert colors_match("Off-White", "white")
    assert colors_match("light blue", "blue")
    assert not colors_match("blue", "white")
    assert shapes_match("caplet", "oblong")
    assert shapes_match("Round tablet", "circular")
    assert not shapes_match("oval", "round")


def test_generic_identity_matches_brand_or_generic():
    assert names_match("Glucophage 500mg", ["metformin", "Glucophage"])
    assert names_match("Metformin HCl", ["metformin"])
    assert not names_match("Lisinopril", ["metformin", "Glucophage"])


def test_result_serializes_with_wire_names():
    data = _score().to_dict()
    assert data["status"] == "scored"
    assert data["verdict"] == "Authentic"
    assert {f["factor"] for f in data["factors"]} == {
        "imprint", "color", "shape", "genericIdentity", "sourceReliability"
    }
    assert all(f["match"] for f in data["factors"])
    assert data["safety_disclaimer"]
    assert VisualFindings(quality_score=140).quality_score == 100
    assert DrugMetadata(name="N/A").is_empty


SCORED_FACTORS = (Factor.IMPRINT, Factor.COLOR, Factor.GENERIC_IDENTITY, Factor.SHAPE, Factor.SOURCE_RELIABILITY)


@pytest.mark.parametrize("statuses", list(itertools.product(FactorStatus, repeat=len(SCORED_FACTORS))))
def test_score_stays_in_range_for_every_status_combination(statuses):
    scorer = AuthenticityScorer()
    factors = [
        FactorResult(factor, status, "combination")
        for factor, status in zip(SCORED_FACTORS, statuses)
    ]

    result = scorer.build_result(factors, METFORMIN, METFORMIN_RESEARCH, METFORMIN_VISUAL)

    expected = sum(
        scorer.weights.weight(f.factor) * {"match": 1.0, "omission": 0.5, "conflict": 0.0}[f.status.value]
        for f in factors
    )
    assert 0 <= result.score <= 100
    assert result.score == round_half_up(expected)
    assert result.verdict == scorer.verdict_for(result.score)
