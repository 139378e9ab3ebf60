"""
Pipeline Module

Orchestration of one analysis run: context, stages and orchestrator.
"""

from .context import PipelineContext, PipelineState, StageMetrics
from .stages import (
    PipelineStageExecutor,
    StageConfig,
    ExtractionStage,
    ResearchStage,
    InspectionStage,
    SynthesisStage,
    ScoringStage,
)
from .synthesis import validate_synthesized_factors
from .orchestrator import PipelineOrchestrator, PipelineBuilder

__all__ = [
    "PipelineContext",
    "PipelineState",
    "StageMetrics",
    "PipelineStageExecutor",
    "StageConfig",
    "ExtractionStage",
    "ResearchStage",
    "InspectionStage",
    "SynthesisStage",
    "ScoringStage",
    "validate_synthesized_factors",
    "PipelineOrchestrator",
    "PipelineBuilder",
]
