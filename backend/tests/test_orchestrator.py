"""
Pipeline orchestrator tests.
"""

from dataclasses import replace
import threading

import pytest

from medilens.application.pipeline import PipelineBuilder, PipelineOrchestrator
from medilens.application.services import GroundTruthResearcher
from medilens.config.settings import PipelineConfig
from medilens.domain.entities.analysis_result import (
    Factor,
    FactorStatus,
    PipelineStage,
    Verdict,
)
from medilens.domain.entities.scan import DrugMetadata
from medilens.domain.exceptions import (
    ConfigurationFailure,
    ExtractionFailure,
    InspectionFailure,
    RetrievalServiceError,
)

from tests.fakes import (
    FakeExtractor,
    FakeInspector,
    FakeInterpreter,
    FakeRetriever,
    FakeSynthesizer,
    METFORMIN_RESEARCH,
    make_request,
)


def _pipeline(
    extractor=None,
    retriever=None,
    interpreter=None,
    inspector=None,
    synthesizer=None,
    config=None
):
    extractor = extractor or FakeExtractor()
    retriever = retriever or FakeRetriever()
    interpreter = interpreter or FakeInterpreter()
    inspector = inspector or FakeInspector()
    orchestrator = PipelineOrchestrator(
        extractor=extractor,
        researcher=GroundTruthResearcher(retriever, interpreter),
        inspector=inspector,
        synthesizer=synthesizer,
        config=config,
    )
    return orchestrator, extractor, retriever, interpreter, inspector


@pytest.mark.asyncio
async def test_successful_run_is_scored():
    orchestrator, *_ = _pipeline()
    request = make_request()

    result = await orchestrator.run(request)

    assert not result.is_failure
    assert result.score == 100
    assert result.verdict == Verdict.AUTHENTIC
    assert result.scan_id.startswith("scan_")
    assert result.scan_id.endswith(request.request_id[:8])
    assert set(result.stage_durations_ms) == {"extraction", "research", "inspection", "scoring"}


@pytest.mark.asyncio
async def test_extraction_failure_skips_research_and_inspection():
    extractor = FakeExtractor(error=ExtractionFailure("vision service down"))
    orchestrator, _, retriever, interpreter, inspector = _pipeline(extractor=extractor)

    result = await orchestrator.run(make_request())

    assert result.is_failure
    assert result.failure.stage == PipelineStage.EXTRACTION
    assert result.failure.reason == "vision service down"
    assert retriever.calls == 0
    assert interpreter.calls == 0
    assert inspector.calls == 0


@pytest.mark.asyncio
async def test_empty_metadata_is_an_extraction_failure():
    orchestrator, _, retriever, _, inspector = _pipeline(extractor=FakeExtractor(DrugMetadata()))

    result = await orchestrator.run(make_request())

    assert result.failure.stage == PipelineStage.EXTRACTION
    assert result.failure.error_type == "EmptyMetadataError"
    assert retriever.calls == 0
    assert inspector.calls == 0


@pytest.mark.asyncio
async def test_research_and_inspection_run_concurrently():
    retriever = FakeRetriever()
    inspector = FakeInspector()
    # Each side blocks until the other has started; a sequential join
    # would break the barrier after its timeout.
    barrier = threading.Barrier(2, timeout=5)
    retriever.barrier = barrier
    inspector.barrier = barrier
    orchestrator, *_ = _pipeline(retriever=retriever, inspector=inspector)

    result = await orchestrator.run(make_request())

    assert not result.is_failure
    assert retriever.calls == 1
    assert inspector.calls == 1


@pytest.mark.asyncio
async def test_inspection_still_runs_when_research_fails():
    retriever = FakeRetriever(error=RetrievalServiceError("HTTP 500", status_code=500))
    orchestrator, _, _, interpreter, inspector = _pipeline(retriever=retriever)

    result = await orchestrator.run(make_request())

    assert result.failure.stage == PipelineStage.RESEARCH
    assert result.failure.details["status_code"] == 500
    assert inspector.calls == 1
    assert interpreter.calls == 0


@pytest.mark.asyncio
async def test_research_failure_outranks_inspection_failure():
    retriever = FakeRetriever(error=RetrievalServiceError("HTTP 503"))
    inspector = FakeInspector(error=InspectionFailure("model refused"))
    orchestrator, *_ = _pipeline(retriever=retriever, inspector=inspector)

    result = await orchestrator.run(make_request())

    assert result.failure.stage == PipelineStage.RESEARCH


@pytest.mark.asyncio
async def test_inspection_failure_alone_is_reported():
    inspector = FakeInspector(error=InspectionFailure("model refused"))
    orchestrator, *_ = _pipeline(inspector=inspector)

    result = await orchestrator.run(make_request())

    assert result.failure.stage == PipelineStage.INSPECTION
    assert result.failure.error_type == "InspectionFailure"


@pytest.mark.asyncio
async def test_no_documents_is_a_research_failure():
    orchestrator, _, _, interpreter, _ = _pipeline(retriever=FakeRetriever(documents=[]))

    result = await orchestrator.run(make_request())

    assert result.failure.stage == PipelineStage.RESEARCH
    assert result.failure.error_type == "NoDocumentsFoundError"
    assert result.failure.details["kind"] == "no_documents"
    assert interpreter.calls == 0


@pytest.mark.asyncio
async def test_unexpected_adapter_error_is_normalized():
    inspector = FakeInspector(error=KeyError("choices"))
    orchestrator, *_ = _pipeline(inspector=inspector)

    result = await orchestrator.run(make_request())

    assert result.failure.stage == PipelineStage.INSPECTION
    assert result.failure.error_type == "InspectionFailure"
    assert result.failure.details["cause"] == "KeyError"


@pytest.mark.asyncio
async def test_missing_credentials_fail_before_any_stage():
    extractor = FakeExtractor(missing=["OPENAI_API_KEY"])
    retriever = FakeRetriever(missing=["EXA_API_KEY"])
    orchestrator, _, _, interpreter, inspector = _pipeline(extractor=extractor, retriever=retriever)

    result = await orchestrator.run(make_request())

    assert result.failure.stage == PipelineStage.CONFIGURATION
    assert result.failure.details["missing"] == ["OPENAI_API_KEY", "EXA_API_KEY"]
    assert extractor.calls == 0
    assert retriever.calls == 0
    assert inspector.calls == 0


@pytest.mark.asyncio
async def test_slow_stage_times_out():
    extractor = FakeExtractor(delay=1.0)
    config = PipelineConfig(extraction_timeout=0.05)
    orchestrator, _, retriever, _, _ = _pipeline(extractor=extractor, config=config)

    result = await orchestrator.run(make_request())

    assert result.failure.stage == PipelineStage.EXTRACTION
    assert result.failure.error_type == "StageTimeoutError"
    assert result.failure.details["timeout_seconds"] == 0.05
    assert retriever.calls == 0


@pytest.mark.asyncio
async def test_research_query_degrades_to_physical_description():
    retriever = FakeRetriever()
    extractor = FakeExtractor(DrugMetadata(markings="M 367"))
    orchestrator, *_ = _pipeline(extractor=extractor, retriever=retriever)

    await orchestrator.run(make_request())

    assert retriever.queries == [
        "pill identification imprint M 367 color shape physical description"
    ]


@pytest.mark.asyncio
async def test_delegated_synthesis_result_is_used():
    synthesizer = FakeSynthesizer([
        {"factor": "imprint", "status": "match", "reason": "same imprint"},
        {"factor": "color", "status": "conflict", "reason": "observed blue"},
        {"factor": "shape", "status": "match", "reason": "round"},
        {"factor": "genericIdentity", "status": "match", "reason": "metformin"},
    ])
    orchestrator, *_ = _pipeline(synthesizer=synthesizer)

    result = await orchestrator.run(make_request())

    assert synthesizer.calls == 1
    assert result.factor(Factor.COLOR).status == FactorStatus.CONFLICT
    assert result.score == 80
    assert "synthesis" in result.stage_durations_ms


@pytest.mark.asyncio
async def test_invalid_delegated_synthesis_fails_the_run():
    synthesizer = FakeSynthesizer([
        {"factor": "imprint", "status": "conflict", "reason": "made up"},
        {"factor": "color", "status": "match", "reason": "white"},
        {"factor": "shape", "status": "match", "reason": "round"},
        {"factor": "genericIdentity", "status": "match", "reason": "metformin"},
    ])
    interpreter = FakeInterpreter(replace(METFORMIN_RESEARCH, expected_imprint=None))
    orchestrator, *_ = _pipeline(interpreter=interpreter, synthesizer=synthesizer)

    result = await orchestrator.run(make_request())

    assert result.is_failure
    assert result.failure.stage == PipelineStage.SYNTHESIS
    assert result.failure.error_type == "SynthesisFailure"


def test_builder_requires_components():
    with pytest.raises(ConfigurationFailure) as exc_info:
        PipelineBuilder().with_vision(FakeExtractor()).build()
    assert "retriever" in exc_info.value.missing


def test_builder_wires_researcher_from_parts():
    vision = FakeInspector()
    orchestrator = (
        PipelineBuilder()
        .with_extractor(FakeExtractor())
        .with_inspector(vision)
        .with_retriever(FakeRetriever(), include_domains=["fda.gov"], num_results=5)
        .with_interpreter(FakeInterpreter())
        .build()
    )

    assert orchestrator.stage_names == [
        "Metadata Extraction", "Ground-Truth Research", "Visual Inspection", "Scoring"
    ]
    assert orchestrator.validate_configuration()
