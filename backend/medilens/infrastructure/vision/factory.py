"""
Vision Factory

Factory for creating vision adapters (extraction + inspection).
Supports both cloud (OpenAI) and local (Ollama) models.
"""

from typing import Union
from enum import Enum

from .openai_vision import OpenAIVisionAdapter
from .ollama_vision import OllamaVisionAdapter
from ...config.settings import VisionConfig


class VisionType(Enum):
    """Available vision implementations."""

    OPENAI = "openai"
    OLLAMA = "ollama"


class VisionFactory:
    """
    Factory for creating vision adapter instances.

    Usage:
        vision = VisionFactory.create(VisionType.OPENAI, api_key="sk-...")
        vision = VisionFactory.create(VisionType.OLLAMA, model="llava:7b")
    """

    @staticmethod
    def create(
        vision_type: VisionType,
        **kwargs
    ) -> Union[OpenAIVisionAdapter, OllamaVisionAdapter]:
        """
        Create a vision adapter.

        Args:
            vision_type: Type of adapter to create
            **kwargs: Configuration options
                For OpenAI:
                - api_key: API key for the service
                - model: Model name (default: gpt-4o-mini)
                For Ollama:
                - base_url: Ollama API URL (default: http://localhost:11434)
                - model: Model name (default: llava:7b)
                Common:
                - temperature: Sampling temperature
        """
        if vision_type == VisionType.OPENAI:
            return OpenAIVisionAdapter(
                api_key=kwargs.get("api_key"),
                model=kwargs.get("model", "gpt-4o-mini"),
                temperature=kwargs.get("temperature", 0.1),
                max_tokens=kwargs.get("max_tokens", 800),
            )

        elif vision_type == VisionType.OLLAMA:
            return OllamaVisionAdapter(
                base_url=kwargs.get("base_url", "http://localhost:11434"),
                model=kwargs.get("model", "llava:7b"),
                temperature=kwargs.get("temperature", 0.1),
            )

        else:
            raise ValueError(f"Unknown vision type: {vision_type}")

    @staticmethod
    def create_from_config(config: VisionConfig) -> Union[OpenAIVisionAdapter, OllamaVisionAdapter]:
        """Create an adapter from the vision configuration section."""
        vision_type = VisionType(config.type)

        if vision_type == VisionType.OLLAMA:
            return VisionFactory.create(
                vision_type,
                base_url=config.ollama_base_url,
                model=config.ollama_model,
                temperature=config.temperature,
            )

        return VisionFactory.create(
            vision_type,
            api_key=config.api_key,
            model=config.model,
            temperature=config.temperature,
        )
