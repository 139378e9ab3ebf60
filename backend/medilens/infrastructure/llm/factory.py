"""
LLM Factory

Factory for creating the text-model adapters: findings interpretation
and delegated synthesis.
"""

from typing import Optional
from enum import Enum

from .groq_interpreter import GroqFindingsInterpreter
from .groq_synthesizer import GroqSynthesizer
from ...config.settings import InterpretationConfig, ScoringConfig
from ...domain.ports.findings_interpreter import FindingsInterpreterPort
from ...domain.ports.synthesizer import SynthesizerPort


class LLMType(Enum):
    """Available LLM implementations."""

    GROQ = "groq"


class LLMFactory:
    """
    Factory for creating LLM adapters.

    Usage:
        interpreter = LLMFactory.create_interpreter(LLMType.GROQ, api_key="gsk_...")
        synthesizer = LLMFactory.create_synthesizer(LLMType.GROQ, api_key="gsk_...")
    """

    @staticmethod
    def create_interpreter(llm_type: LLMType, **kwargs) -> FindingsInterpreterPort:
        if llm_type == LLMType.GROQ:
            return GroqFindingsInterpreter(
                api_key=kwargs.get("api_key"),
                model=kwargs.get("model", "llama-3.3-70b-versatile"),
                temperature=kwargs.get("temperature", 0.1),
            )
        raise ValueError(f"Unknown LLM type: {llm_type}")

    @staticmethod
    def create_synthesizer(llm_type: LLMType, **kwargs) -> SynthesizerPort:
        if llm_type == LLMType.GROQ:
            return GroqSynthesizer(
                api_key=kwargs.get("api_key"),
                model=kwargs.get("model", "llama-3.3-70b-versatile"),
                temperature=kwargs.get("temperature", 0.1),
            )
        raise ValueError(f"Unknown LLM type: {llm_type}")

    @staticmethod
    def create_from_config(config: InterpretationConfig) -> FindingsInterpreterPort:
        return LLMFactory.create_interpreter(
            LLMType(config.type),
            api_key=config.api_key,
            model=config.model,
            temperature=config.temperature,
        )

    @staticmethod
    def create_synthesizer_from_config(
        config: InterpretationConfig,
        scoring: ScoringConfig
    ) -> Optional[SynthesizerPort]:
        """A synthesizer in delegated scoring mode, None for local scoring."""
        if scoring.mode != "delegated":
            return None
        return LLMFactory.create_synthesizer(
            LLMType(config.type),
            api_key=config.api_key,
            model=config.model,
            temperature=config.temperature,
        )
