"""
Pipeline Context

Carries the state of one orchestrated run through the pipeline stages.
A context is created per ScanRequest and discarded once the run's
AnalysisResult has been produced.
"""

from dataclasses import dataclass, field, replace
from typing import Optional, Dict, List, Tuple
from datetime import datetime, timezone
from enum import Enum
import time

from ...domain.entities.scan import ScanRequest, DrugMetadata
from ...domain.entities.evidence import Reference, ResearchFindings, VisualFindings
from ...domain.entities.analysis_result import (
    AnalysisResult,
    FactorResult,
    FailedAnalysis,
    PipelineStage,
    new_scan_id,
)


class PipelineState(Enum):
    """Execution state of a single run. No state is re-entered."""

    IDLE = "idle"
    EXTRACTING_METADATA = "extracting_metadata"
    RESEARCHING_AND_INSPECTING = "researching_and_inspecting"
    SYNTHESIZING = "synthesizing"
    SCORING = "scoring"
    DONE = "done"


_TRANSITIONS = {
    PipelineState.IDLE: {PipelineState.EXTRACTING_METADATA, PipelineState.DONE},
    PipelineState.EXTRACTING_METADATA: {PipelineState.RESEARCHING_AND_INSPECTING, PipelineState.DONE},
    PipelineState.RESEARCHING_AND_INSPECTING: {
        PipelineState.SYNTHESIZING,
        PipelineState.SCORING,
        PipelineState.DONE,
    },
    PipelineState.SYNTHESIZING: {PipelineState.SCORING, PipelineState.DONE},
    PipelineState.SCORING: {PipelineState.DONE},
    PipelineState.DONE: set(),
}

# When both concurrent stages fail, the earlier stage in this order is reported
FAILURE_PRIORITY = (
    PipelineStage.CONFIGURATION,
    PipelineStage.EXTRACTION,
    PipelineStage.RESEARCH,
    PipelineStage.INSPECTION,
    PipelineStage.SYNTHESIS,
    PipelineStage.SCORING,
)


class InvalidTransitionError(RuntimeError):
    """Raised on a programming error in the orchestrator's sequencing."""


@dataclass
class StageMetrics:
    """
    Timing of a single stage execution.

    Attributes:
        stage: The pipeline stage
        started: perf_counter value at start
        duration_ms: Total execution time in milliseconds
    """

    stage: PipelineStage
    started: Optional[float] = None
    duration_ms: float = 0.0

    def start(self) -> None:
        self.started = time.perf_counter()

    def finish(self) -> None:
        if self.started is not None:
            self.duration_ms = (time.perf_counter() - self.started) * 1000


@dataclass
class PipelineContext:
    """
    Context object that carries state through the pipeline.

    Each stage reads what it needs and writes its results here. The
    research and inspection stages run concurrently on the same context
    but write disjoint attributes.

    Attributes:
        request: The ScanRequest this run owns exclusively
        state: Current PipelineState
        metadata: Extractor output
        research: Researcher output
        visual: Inspector output
        compared_factors: Factor results from delegated synthesis, if any
        references: Trust-tiered references
        result: Scored result once the scoring stage has run
        failures: Stage failures, keyed by stage
        stage_metrics: Execution metrics per stage
    """

    request: ScanRequest
    state: PipelineState = PipelineState.IDLE

    metadata: Optional[DrugMetadata] = None
    research: Optional[ResearchFindings] = None
    visual: Optional[VisualFindings] = None
    compared_factors: Optional[List[FactorResult]] = None
    references: Tuple[Reference, ...] = ()
    result: Optional[AnalysisResult] = None

    failures: Dict[PipelineStage, Exception] = field(default_factory=dict)
    stage_metrics: Dict[PipelineStage, StageMetrics] = field(default_factory=dict)

    @classmethod
    def create(cls, request: ScanRequest) -> "PipelineContext":
        return cls(request=request)

    @property
    def scan_id(self) -> str:
        return new_scan_id(self.request.created_at, self.request.request_id[:8])

    def transition(self, target: PipelineState) -> None:
        """Move to ``target``; only forward transitions are legal."""
        if target not in _TRANSITIONS[self.state]:
            raise InvalidTransitionError(
                f"Illegal pipeline transition {self.state.value} -> {target.value}"
            )
        self.state = target

    def add_failure(self, stage: PipelineStage, error: Exception) -> None:
        """Record the failure of a stage; the first failure per stage wins."""
        self.failures.setdefault(stage, error)

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)

    def first_failure(self) -> Optional[Tuple[PipelineStage, Exception]]:
        """The failure to report, by fixed stage priority."""
        for stage in FAILURE_PRIORITY:
            if stage in self.failures:
                return stage, self.failures[stage]
        return None

    def start_stage(self, stage: PipelineStage) -> None:
        self.stage_metrics[stage] = StageMetrics(stage=stage)
        self.stage_metrics[stage].start()

    def finish_stage(self, stage: PipelineStage) -> None:
        if stage in self.stage_metrics:
            self.stage_metrics[stage].finish()

    @property
    def stage_durations_ms(self) -> Dict[str, float]:
        return {
            stage.value: round(metrics.duration_ms, 2)
            for stage, metrics in self.stage_metrics.items()
        }

    def to_analysis_result(self) -> AnalysisResult:
        """
        Convert the context into the run's final AnalysisResult.

        A recorded failure always wins over a partial result, so a
        FailedAnalysis never carries a score.
        """
        failure = self.first_failure()
        if failure is not None:
            stage, error = failure
            failed = FailedAnalysis.from_exception(
                stage,
                error,
                scan_id=self.scan_id,
                timestamp=datetime.now(timezone.utc),
            )
            return replace(failed, stage_durations_ms=self.stage_durations_ms)

        if self.result is None:
            return FailedAnalysis.from_exception(
                PipelineStage.SCORING,
                RuntimeError("Pipeline finished without a result"),
                scan_id=self.scan_id,
            )

        return replace(self.result, stage_durations_ms=self.stage_durations_ms)

    def __str__(self) -> str:
        return (
            f"PipelineContext(id={self.request.request_id[:8]}, state={self.state.value}, "
            f"failures={[s.value for s in self.failures]})"
        )
