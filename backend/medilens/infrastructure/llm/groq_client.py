"""
Groq Chat Client

Shared lazy client and JSON-mode completion call for the Groq-backed
interpretation and synthesis adapters.
"""

from typing import Optional, List
import logging
import os
import time

from ...domain.exceptions import ConfigurationFailure


class GroqChatClient:
    """
    Mixin holding a lazily created Groq client.

    Attributes:
        api_key: Groq API key
        model: Chat model to use
        temperature: Sampling temperature
        max_tokens: Maximum reply length
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "llama-3.3-70b-versatile",
        temperature: float = 0.1,
        max_tokens: int = 1500,
        client=None
    ):
        self._api_key = api_key or os.environ.get("GROQ_API_KEY")
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._client = client

        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def provider_name(self) -> str:
        return f"Groq ({self._model})"

    def missing_credentials(self) -> List[str]:
        if self._client is None and not self._api_key:
            return ["GROQ_API_KEY"]
        return []

    def _initialize(self) -> None:
        """Lazy initialization of Groq client."""
        if self._client is not None:
            return

        if not self._api_key:
            raise ConfigurationFailure(
                "Groq API key not provided. Set GROQ_API_KEY or pass api_key parameter.",
                missing=["GROQ_API_KEY"],
            )

        from groq import Groq

        self._client = Groq(api_key=self._api_key)
        self.logger.info(f"Groq client initialized with model={self._model}")

    def _complete_json(self, system_prompt: str, user_prompt: str, timeout: float) -> str:
        """Run one JSON-mode chat completion and return the raw reply."""
        self._initialize()

        start_time = time.time()
        response = self._client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            response_format={"type": "json_object"},
            temperature=self._temperature,
            max_tokens=self._max_tokens,
            timeout=timeout,
        )
        self.logger.debug(f"Groq replied in {(time.time() - start_time) * 1000:.0f}ms")
        return response.choices[0].message.content
