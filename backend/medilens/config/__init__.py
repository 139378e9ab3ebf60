"""
Configuration Module

Application settings and configuration management.
"""

from .settings import (
    AppConfig,
    VisionConfig,
    RetrievalConfig,
    InterpretationConfig,
    ScoringConfig,
    PipelineConfig,
    AdmissionConfig,
    LoggingConfig,
    get_default_config,
)

__all__ = [
    "AppConfig",
    "VisionConfig",
    "RetrievalConfig",
    "InterpretationConfig",
    "ScoringConfig",
    "PipelineConfig",
    "AdmissionConfig",
    "LoggingConfig",
    "get_default_config",
]
