"""
Pipeline Orchestrator

Sequences the analysis of one ScanRequest:

    EXTRACTION → (RESEARCH ∥ INSPECTION) → [SYNTHESIS] → SCORING

Extraction gates everything else. Research and inspection run as
concurrent tasks and are joined before scoring. Every failure path ends
in a FailedAnalysis; ``run`` never raises.
"""

from typing import List, Optional, Sequence
import asyncio
import logging
import time

from .context import PipelineContext, PipelineState
from .stages import (
    PipelineStageExecutor,
    StageConfig,
    ExtractionStage,
    ResearchStage,
    InspectionStage,
    SynthesisStage,
    ScoringStage,
)
from ..services.researcher import GroundTruthResearcher
from ...config.settings import PipelineConfig
from ...domain.entities.scan import ScanRequest
from ...domain.entities.analysis_result import AnalysisResult, PipelineStage
from ...domain.ports.metadata_extractor import MetadataExtractorPort
from ...domain.ports.visual_inspector import VisualInspectorPort
from ...domain.ports.reference_retriever import ReferenceRetrieverPort
from ...domain.ports.findings_interpreter import FindingsInterpreterPort
from ...domain.ports.synthesizer import SynthesizerPort
from ...domain.services.scoring import AuthenticityScorer
from ...domain.services.source_reliability import SourceReliabilityClassifier
from ...domain.exceptions import ConfigurationFailure


logger = logging.getLogger(__name__)


# Stage a crash is attributed to when it escapes the stage executors
_STAGE_FOR_STATE = {
    PipelineState.IDLE: PipelineStage.CONFIGURATION,
    PipelineState.EXTRACTING_METADATA: PipelineStage.EXTRACTION,
    PipelineState.RESEARCHING_AND_INSPECTING: PipelineStage.RESEARCH,
    PipelineState.SYNTHESIZING: PipelineStage.SYNTHESIS,
    PipelineState.SCORING: PipelineStage.SCORING,
    PipelineState.DONE: PipelineStage.SCORING,
}


class PipelineOrchestrator:
    """
    Main pipeline orchestrator for medicine authenticity analysis.

    Features:
    - Eager credential check before any stage is dispatched
    - Fail-fast on extraction
    - Concurrent research and inspection, joined without cancelling
      the sibling when one fails
    - Optional delegated synthesis, validated before use
    - Per-stage timings on the result

    Usage:
        orchestrator = PipelineOrchestrator(
            extractor=openai_vision,
            researcher=GroundTruthResearcher(exa, groq_interpreter),
            inspector=openai_vision,
        )

        result = await orchestrator.run(ScanRequest(image=image))
    """

    def __init__(
        self,
        extractor: MetadataExtractorPort,
        researcher: GroundTruthResearcher,
        inspector: VisualInspectorPort,
        scorer: Optional[AuthenticityScorer] = None,
        classifier: Optional[SourceReliabilityClassifier] = None,
        synthesizer: Optional[SynthesizerPort] = None,
        config: Optional[PipelineConfig] = None
    ):
        """
        Initialize the pipeline orchestrator.

        Args:
            extractor: Vision-extraction implementation
            researcher: Ground-truth research service
            inspector: Visual forensic implementation
            scorer: Comparator & scorer (default weights and thresholds)
            classifier: Source reliability classifier (default allow-list)
            synthesizer: Set to delegate factor classification to a model
            config: Per-stage timeouts
        """
        self.config = config or PipelineConfig()
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

        self._extractor = extractor
        self._researcher = researcher
        self._inspector = inspector
        self._synthesizer = synthesizer

        self._extraction = ExtractionStage(
            extractor, StageConfig(timeout_seconds=self.config.extraction_timeout)
        )
        self._research = ResearchStage(
            researcher, StageConfig(timeout_seconds=self.config.research_timeout)
        )
        self._inspection = InspectionStage(
            inspector, StageConfig(timeout_seconds=self.config.inspection_timeout)
        )
        self._synthesis = (
            SynthesisStage(synthesizer, StageConfig(timeout_seconds=self.config.synthesis_timeout))
            if synthesizer is not None else None
        )
        self._scoring = ScoringStage(scorer=scorer, classifier=classifier)

        self.logger.info(
            f"Pipeline initialized with {self.stage_count} stages "
            f"({'delegated' if synthesizer else 'local'} scoring)"
        )

    @property
    def stages(self) -> List[PipelineStageExecutor]:
        stages = [self._extraction, self._research, self._inspection]
        if self._synthesis is not None:
            stages.append(self._synthesis)
        stages.append(self._scoring)
        return stages

    @property
    def stage_count(self) -> int:
        return len(self.stages)

    @property
    def stage_names(self) -> List[str]:
        return [s.name for s in self.stages]

    def missing_credentials(self) -> List[str]:
        """Credentials required by the wired adapters but not configured."""
        names = (
            self._extractor.missing_credentials()
            + self._researcher.missing_credentials()
            + self._inspector.missing_credentials()
        )
        if self._synthesizer is not None:
            names += self._synthesizer.missing_credentials()
        return list(dict.fromkeys(names))

    def validate_configuration(self) -> bool:
        """
        Validate that the pipeline can run.

        Raises:
            ConfigurationFailure: If any required credential is missing
        """
        missing = self.missing_credentials()
        if missing:
            raise ConfigurationFailure(
                message=f"Missing required credentials: {', '.join(missing)}",
                missing=missing,
            )
        return True

    async def run(self, request: ScanRequest) -> AnalysisResult:
        """
        Run the complete pipeline on one request.

        Args:
            request: The request; owned exclusively by this run

        Returns:
            ScoredAnalysis on success, FailedAnalysis otherwise
        """
        started = time.perf_counter()
        context = PipelineContext.create(request)
        self.logger.info(f"Starting pipeline execution (request_id={request.request_id})")

        try:
            await self._execute(context)
        except Exception as e:
            stage = _STAGE_FOR_STATE[context.state]
            self.logger.error(f"Pipeline crashed during {stage.value}: {e}", exc_info=True)
            context.add_failure(stage, e)

        result = context.to_analysis_result()

        elapsed = (time.perf_counter() - started) * 1000
        if result.is_failure:
            self.logger.warning(f"Pipeline failed after {elapsed:.1f}ms: {result.failure}")
        else:
            self.logger.info(f"Pipeline completed in {elapsed:.1f}ms: {result}")
        return result

    async def _execute(self, context: PipelineContext) -> None:
        try:
            self.validate_configuration()
        except ConfigurationFailure as e:
            context.add_failure(PipelineStage.CONFIGURATION, e)
            context.transition(PipelineState.DONE)
            return

        context.transition(PipelineState.EXTRACTING_METADATA)
        if not await self._extraction.run(context):
            context.transition(PipelineState.DONE)
            return

        context.transition(PipelineState.RESEARCHING_AND_INSPECTING)
        outcomes = await asyncio.gather(
            self._research.run(context),
            self._inspection.run(context),
            return_exceptions=True,
        )
        for stage, outcome in zip((PipelineStage.RESEARCH, PipelineStage.INSPECTION), outcomes):
            if isinstance(outcome, BaseException):
                context.add_failure(stage, outcome)
        if context.has_failures:
            context.transition(PipelineState.DONE)
            return

        if self._synthesis is not None:
            context.transition(PipelineState.SYNTHESIZING)
            if not await self._synthesis.run(context):
                context.transition(PipelineState.DONE)
                return

        context.transition(PipelineState.SCORING)
        await self._scoring.run(context)
        context.transition(PipelineState.DONE)


class PipelineBuilder:
    """
    Builder for constructing pipeline orchestrators.

    Usage:
        pipeline = (
            PipelineBuilder()
            .with_vision(openai_vision)
            .with_retriever(exa_retriever)
            .with_interpreter(groq_interpreter)
            .with_config(pipeline_config)
            .build()
        )
    """

    def __init__(self):
        self._extractor: Optional[MetadataExtractorPort] = None
        self._inspector: Optional[VisualInspectorPort] = None
        self._researcher: Optional[GroundTruthResearcher] = None
        self._retriever: Optional[ReferenceRetrieverPort] = None
        self._interpreter: Optional[FindingsInterpreterPort] = None
        self._synthesizer: Optional[SynthesizerPort] = None
        self._scorer: Optional[AuthenticityScorer] = None
        self._classifier: Optional[SourceReliabilityClassifier] = None
        self._include_domains: Optional[Sequence[str]] = None
        self._num_results: int = 3
        self._config: Optional[PipelineConfig] = None

    def with_extractor(self, extractor: MetadataExtractorPort) -> "PipelineBuilder":
        self._extractor = extractor
        return self

    def with_inspector(self, inspector: VisualInspectorPort) -> "PipelineBuilder":
        self._inspector = inspector
        return self

    def with_vision(self, adapter) -> "PipelineBuilder":
        """Use one adapter for both extraction and inspection."""
        self._extractor = adapter
        self._inspector = adapter
        return self

    def with_researcher(self, researcher: GroundTruthResearcher) -> "PipelineBuilder":
        self._researcher = researcher
        return self

    def with_retriever(
        self,
        retriever: ReferenceRetrieverPort,
        include_domains: Optional[Sequence[str]] = None,
        num_results: int = 3
    ) -> "PipelineBuilder":
        self._retriever = retriever
        self._include_domains = include_domains
        self._num_results = num_results
        return self

    def with_interpreter(self, interpreter: FindingsInterpreterPort) -> "PipelineBuilder":
        self._interpreter = interpreter
        return self

    def with_synthesizer(self, synthesizer: Optional[SynthesizerPort]) -> "PipelineBuilder":
        self._synthesizer = synthesizer
        return self

    def with_scorer(self, scorer: AuthenticityScorer) -> "PipelineBuilder":
        self._scorer = scorer
        return self

    def with_classifier(self, classifier: SourceReliabilityClassifier) -> "PipelineBuilder":
        self._classifier = classifier
        return self

    def with_config(self, config: PipelineConfig) -> "PipelineBuilder":
        self._config = config
        return self

    def build(self) -> PipelineOrchestrator:
        """
        Build the pipeline orchestrator.

        Raises:
            ConfigurationFailure: If required components are missing
        """
        researcher = self._researcher
        if researcher is None and self._retriever is not None and self._interpreter is not None:
            researcher = GroundTruthResearcher(
                self._retriever,
                self._interpreter,
                include_domains=self._include_domains,
                num_results=self._num_results,
            )

        missing = []
        if self._extractor is None:
            missing.append("extractor")
        if self._inspector is None:
            missing.append("inspector")
        if researcher is None:
            if self._retriever is None:
                missing.append("retriever")
            if self._interpreter is None:
                missing.append("interpreter")

        if missing:
            raise ConfigurationFailure(
                message=f"Cannot build pipeline, missing: {', '.join(missing)}",
                missing=missing,
            )

        return PipelineOrchestrator(
            extractor=self._extractor,
            researcher=researcher,
            inspector=self._inspector,
            scorer=self._scorer,
            classifier=self._classifier,
            synthesizer=self._synthesizer,
            config=self._config,
        )
