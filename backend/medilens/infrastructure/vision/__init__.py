"""
Vision Module

Multimodal model adapters for metadata extraction and visual inspection.
"""

from .openai_vision import OpenAIVisionAdapter
from .ollama_vision import OllamaVisionAdapter
from .factory import VisionFactory, VisionType

__all__ = [
    "OpenAIVisionAdapter",
    "OllamaVisionAdapter",
    "VisionFactory",
    "VisionType",
]
