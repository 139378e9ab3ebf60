"""
Application Layer

Use cases built on the domain: the analysis pipeline, the ground-truth
researcher and the admission controller.
"""

from .pipeline import PipelineOrchestrator, PipelineBuilder, PipelineContext, PipelineState
from .services import GroundTruthResearcher
from .admission import AdmissionController, AdmissionSnapshot, AdmissionState

__all__ = [
    "PipelineOrchestrator",
    "PipelineBuilder",
    "PipelineContext",
    "PipelineState",
    "GroundTruthResearcher",
    "AdmissionController",
    "AdmissionSnapshot",
    "AdmissionState",
]
