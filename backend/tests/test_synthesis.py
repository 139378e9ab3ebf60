"""
Delegated synthesis validation tests.
"""

from dataclasses import replace

import pytest

from medilens.application.pipeline.synthesis import validate_synthesized_factors
from medilens.domain.entities.analysis_result import Factor, FactorStatus
from medilens.domain.exceptions import SynthesisFailure
from medilens.infrastructure.parsing import extract_factor_entries

from tests.fakes import METFORMIN, METFORMIN_RESEARCH, METFORMIN_VISUAL


def _entries(**overrides):
    entries = {
        "imprint": {"factor": "imprint", "status": "match", "reason": "M 367 on both"},
        "color": {"factor": "color", "status": "match", "reason": "white"},
        "shape": {"factor": "shape", "status": "match", "reason": "round"},
        "genericIdentity": {"factor": "genericIdentity", "status": "match", "reason": "metformin"},
    }
    for key, value in overrides.items():
        entries[key] = value
    return [e for e in entries.values() if e is not None]


def test_valid_output_is_accepted_in_fixed_order():
    raw = list(reversed(_entries()))
    factors = validate_synthesized_factors(raw, METFORMIN, METFORMIN_RESEARCH, METFORMIN_VISUAL)

    assert [f.factor for f in factors] == [
        Factor.IMPRINT, Factor.COLOR, Factor.SHAPE, Factor.GENERIC_IDENTITY
    ]
    assert all(f.status == FactorStatus.MATCH for f in factors)


def test_camel_case_evidence_quote_is_accepted():
    raw = _entries(imprint={
        "factor": "imprint", "status": "match", "reason": "ok", "evidenceQuote": "debossed M 367"
    })
    factors = validate_synthesized_factors(raw, METFORMIN, METFORMIN_RESEARCH, METFORMIN_VISUAL)
    assert factors[0].evidence_quote == "debossed M 367"


def test_missing_factor_is_rejected():
    raw = _entries(shape=None)
    with pytest.raises(SynthesisFailure) as exc_info:
        validate_synthesized_factors(raw, METFORMIN, METFORMIN_RESEARCH, METFORMIN_VISUAL)
    assert "missing factor 'shape'" in exc_info.value.details["violations"]


def test_duplicate_factor_is_rejected():
    raw = _entries() + [{"factor": "color", "status": "conflict", "reason": "blue"}]
    with pytest.raises(SynthesisFailure):
        validate_synthesized_factors(raw, METFORMIN, METFORMIN_RESEARCH, METFORMIN_VISUAL)


def test_unknown_status_is_rejected():
    raw = _entries(color={"factor": "color", "status": "probably", "reason": "?"})
    with pytest.raises(SynthesisFailure):
        validate_synthesized_factors(raw, METFORMIN, METFORMIN_RESEARCH, METFORMIN_VISUAL)


def test_conflict_where_references_are_silent_is_rejected():
    research = replace(METFORMIN_RESEARCH, expected_color=None)
    raw = _entries(color={"factor": "color", "status": "conflict", "reason": "not white"})

    with pytest.raises(SynthesisFailure) as exc_info:
        validate_synthesized_factors(raw, METFORMIN, research, METFORMIN_VISUAL)
    assert any("silent" in v for v in exc_info.value.details["violations"])


def test_conflict_without_observation_is_rejected():
    visual = replace(METFORMIN_VISUAL, shape=None)
    raw = _entries(shape={"factor": "shape", "status": "conflict", "reason": "?"})

    with pytest.raises(SynthesisFailure):
        validate_synthesized_factors(raw, METFORMIN, METFORMIN_RESEARCH, visual)


def test_core_results_mapping_is_flattened():
    data = {"coreResults": {
        "imprint": {"status": "match", "reason": "a"},
        "color": {"status": "match", "reason": "b"},
        "shape": {"status": "match", "reason": "c"},
        "generic": {"status": "omission", "reason": "d"},
    }}
    entries = extract_factor_entries(data)

    assert [e["factor"] for e in entries] == ["imprint", "color", "shape", "genericIdentity"]


def test_reply_without_factors_is_rejected():
    with pytest.raises(ValueError):
        extract_factor_entries({"verdict": "Authentic"})


def test_conflict_on_a_reference_value_naming_no_shape_is_rejected():
    research = replace(METFORMIN_RESEARCH, expected_shape="film-coated tablet")
    raw = _entries(shape={"factor": "shape", "status": "conflict", "reason": "not a tablet"})

    with pytest.raises(SynthesisFailure) as exc_info:
        validate_synthesized_factors(raw, METFORMIN, research, METFORMIN_VISUAL)
    assert "'shape' is conflict but the references are silent on it" in exc_info.value.details["violations"]


def test_omission_on_a_reference_value_naming_no_color_is_accepted():
    research = replace(METFORMIN_RESEARCH, expected_color="colored")
    raw = _entries(color={"factor": "color", "status": "omission", "reason": "no specific color"})

    factors = validate_synthesized_factors(raw, METFORMIN, research, METFORMIN_VISUAL)
    assert factors[1].status == FactorStatus.OMISSION
