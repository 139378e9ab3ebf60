"""
Pipeline Stage Definitions

Defines individual pipeline stages and their execution logic.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Callable, Any, Type
import asyncio
import logging

from .context import PipelineContext
from .synthesis import validate_synthesized_factors
from ..services.researcher import GroundTruthResearcher
from ...domain.entities.analysis_result import PipelineStage
from ...domain.ports.metadata_extractor import MetadataExtractorPort
from ...domain.ports.visual_inspector import VisualInspectorPort
from ...domain.ports.synthesizer import SynthesizerPort
from ...domain.services.scoring import AuthenticityScorer
from ...domain.services.source_reliability import SourceReliabilityClassifier
from ...domain.exceptions import (
    DomainException,
    EmptyMetadataError,
    ExtractionFailure,
    InspectionFailure,
    ResearchFailure,
    StageTimeoutError,
    SynthesisFailure,
)


logger = logging.getLogger(__name__)


@dataclass
class StageConfig:
    """
    Configuration for a pipeline stage.

    Attributes:
        timeout_seconds: Upper bound for the stage's external calls
    """

    timeout_seconds: float = 30.0


class PipelineStageExecutor(ABC):
    """
    Abstract base class for pipeline stage executors.

    Each stage:
    - Reads what it needs from the context
    - Calls its adapter off the event loop, bounded by the stage timeout
    - Writes its result back to the context
    - Records its failure in the context instead of raising

    Nothing is retried; a new run is an explicit new submission.
    """

    # Exception type used to wrap errors the adapter did not interpret
    failure_type: Type[DomainException] = DomainException

    def __init__(self, config: Optional[StageConfig] = None):
        self.config = config or StageConfig()
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    @abstractmethod
    def stage(self) -> PipelineStage:
        """Get the pipeline stage this executor handles."""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Get human-readable stage name."""
        pass

    @abstractmethod
    async def execute(self, context: PipelineContext) -> None:
        """Execute the stage logic and store results in the context."""
        pass

    async def call(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """
        Run a blocking adapter call in a worker thread under the stage timeout.

        The adapter receives the same timeout, so an abandoned worker
        thread ends on its own shortly after.

        Raises:
            StageTimeoutError: If the call does not finish in time
        """
        timeout = self.config.timeout_seconds
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(func, *args, timeout=timeout, **kwargs),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            raise StageTimeoutError(stage=self.stage.value, timeout_seconds=timeout)

    def _normalize(self, error: Exception) -> DomainException:
        if isinstance(error, DomainException):
            return error
        return self.failure_type(
            message=f"{self.name} failed: {error}",
            details={"cause": error.__class__.__name__},
        )

    async def run(self, context: PipelineContext) -> bool:
        """
        Run the stage with error handling.

        Returns:
            True if the stage completed successfully
        """
        context.start_stage(self.stage)
        self.logger.info(f"Executing stage {self.name}")

        try:
            await self.execute(context)
        except Exception as e:
            error = self._normalize(e)
            if error is e:
                self.logger.warning(f"Stage {self.name} failed: {error}")
            else:
                self.logger.error(f"Unexpected error in stage {self.name}: {e}", exc_info=True)
            context.add_failure(self.stage, error)
            return False
        finally:
            context.finish_stage(self.stage)

        self.logger.info(
            f"Stage {self.name} completed in "
            f"{context.stage_metrics[self.stage].duration_ms:.1f}ms"
        )
        return True


# =============================================================================
# Concrete Stage Executors
# =============================================================================

class ExtractionStage(PipelineStageExecutor):
    """
    Metadata Extraction Stage Executor.

    Reads drug metadata off the packaging. Metadata with no populated
    field at all is a failure.
    """

    failure_type = ExtractionFailure

    def __init__(
        self,
        extractor: MetadataExtractorPort,
        config: Optional[StageConfig] = None
    ):
        super().__init__(config)
        self.extractor = extractor

    @property
    def stage(self) -> PipelineStage:
        return PipelineStage.EXTRACTION

    @property
    def name(self) -> str:
        return "Metadata Extraction"

    async def execute(self, context: PipelineContext) -> None:
        metadata = await self.call(self.extractor.extract, context.request.image)

        if metadata is None or metadata.is_empty:
            raise EmptyMetadataError(provider=self.extractor.provider_name)

        context.metadata = metadata
        self.logger.info(f"Extracted metadata: {metadata}")


class ResearchStage(PipelineStageExecutor):
    """
    Ground-Truth Research Stage Executor.

    Runs concurrently with inspection; writes only ``context.research``.
    """

    failure_type = ResearchFailure

    def __init__(
        self,
        researcher: GroundTruthResearcher,
        config: Optional[StageConfig] = None
    ):
        super().__init__(config)
        self.researcher = researcher

    @property
    def stage(self) -> PipelineStage:
        return PipelineStage.RESEARCH

    @property
    def name(self) -> str:
        return "Ground-Truth Research"

    async def execute(self, context: PipelineContext) -> None:
        context.research = await self.call(self.researcher.research, context.metadata)


class InspectionStage(PipelineStageExecutor):
    """
    Visual Forensic Inspection Stage Executor.

    Depends only on the original image; writes only ``context.visual``.
    """

    failure_type = InspectionFailure

    def __init__(
        self,
        inspector: VisualInspectorPort,
        config: Optional[StageConfig] = None
    ):
        super().__init__(config)
        self.inspector = inspector

    @property
    def stage(self) -> PipelineStage:
        return PipelineStage.INSPECTION

    @property
    def name(self) -> str:
        return "Visual Inspection"

    async def execute(self, context: PipelineContext) -> None:
        visual = await self.call(self.inspector.inspect, context.request.image)
        if visual is None:
            raise InspectionFailure(
                message="Visual inspection returned no findings",
                provider=self.inspector.provider_name,
            )
        context.visual = visual

        if visual.red_flags:
            self.logger.info(f"Inspector reported {len(visual.red_flags)} red flag(s)")


class SynthesisStage(PipelineStageExecutor):
    """
    Delegated Synthesis Stage Executor.

    Asks a model to classify the four compared factors and validates the
    answer before it is trusted. Only used in delegated scoring mode.
    """

    failure_type = SynthesisFailure

    def __init__(
        self,
        synthesizer: SynthesizerPort,
        config: Optional[StageConfig] = None
    ):
        super().__init__(config)
        self.synthesizer = synthesizer

    @property
    def stage(self) -> PipelineStage:
        return PipelineStage.SYNTHESIS

    @property
    def name(self) -> str:
        return "Synthesis"

    async def execute(self, context: PipelineContext) -> None:
        raw = await self.call(
            self.synthesizer.synthesize,
            context.metadata,
            context.research,
            context.visual,
        )
        context.compared_factors = validate_synthesized_factors(
            raw, context.metadata, context.research, context.visual
        )


class ScoringStage(PipelineStageExecutor):
    """
    Scoring Stage Executor.

    Classifies reference trust tiers, compares observations against the
    ground truth (unless synthesis already did) and applies the weighted
    formula. Pure and local; no adapter call.
    """

    def __init__(
        self,
        scorer: Optional[AuthenticityScorer] = None,
        classifier: Optional[SourceReliabilityClassifier] = None,
        config: Optional[StageConfig] = None
    ):
        super().__init__(config)
        self.scorer = scorer or AuthenticityScorer()
        self.classifier = classifier or SourceReliabilityClassifier()

    @property
    def stage(self) -> PipelineStage:
        return PipelineStage.SCORING

    @property
    def name(self) -> str:
        return "Scoring"

    async def execute(self, context: PipelineContext) -> None:
        references, source_factor = self.classifier.classify(
            context.research.references if context.research else ()
        )
        context.references = references

        if context.compared_factors is None:
            result = self.scorer.score(
                context.metadata,
                context.research,
                context.visual,
                source_factor,
                references=references,
                scan_id=context.scan_id,
            )
        else:
            result = self.scorer.build_result(
                list(context.compared_factors) + [source_factor],
                context.metadata,
                context.research,
                context.visual,
                references=references,
                scan_id=context.scan_id,
            )

        if result.is_failure:
            raise DomainException(
                message=result.failure.reason,
                details={"error_type": result.failure.error_type},
            )
        context.result = result
