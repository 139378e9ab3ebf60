"""
LLM Module

Text-model adapters for findings interpretation and delegated synthesis.
"""

from .groq_client import GroqChatClient
from .groq_interpreter import GroqFindingsInterpreter
from .groq_synthesizer import GroqSynthesizer
from .factory import LLMFactory, LLMType

__all__ = [
    "GroqChatClient",
    "GroqFindingsInterpreter",
    "GroqSynthesizer",
    "LLMFactory",
    "LLMType",
]
