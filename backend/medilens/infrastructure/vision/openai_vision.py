"""
OpenAI Vision Adapter

Metadata extraction and visual forensic inspection using OpenAI
multimodal chat models.
"""

from typing import Optional, List
import logging
import os
import time

from pydantic import ValidationError

from .prompts import SYSTEM_PROMPT, EXTRACTION_PROMPT, INSPECTION_PROMPT
from ..parsing import parse_json_object, MetadataPayload, VisualPayload
from ...domain.ports.metadata_extractor import MetadataExtractorPort
from ...domain.ports.visual_inspector import VisualInspectorPort
from ...domain.value_objects.image_data import ImageData
from ...domain.entities.scan import DrugMetadata
from ...domain.entities.evidence import VisualFindings
from ...domain.exceptions import (
    DomainException,
    ConfigurationFailure,
    EmptyMetadataError,
    ExtractionFailure,
    InspectionFailure,
)


logger = logging.getLogger(__name__)


class OpenAIVisionAdapter(MetadataExtractorPort, VisualInspectorPort):
    """
    Vision adapter backed by the OpenAI chat completions API.

    The image is sent inline as a data URI and the model is forced into
    JSON mode. One instance serves both the extraction and the
    inspection stage.

    Attributes:
        api_key: OpenAI API key
        model: Multimodal model to use
        temperature: Sampling temperature
        max_tokens: Maximum reply length
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        temperature: float = 0.1,
        max_tokens: int = 800,
        client=None
    ):
        """
        Initialize the OpenAI vision adapter.

        Args:
            api_key: OpenAI API key (or set OPENAI_API_KEY env var)
            model: Model name
            temperature: Sampling temperature
            max_tokens: Maximum reply tokens
            client: Pre-built OpenAI client, mainly for tests
        """
        self._api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._client = client

        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def provider_name(self) -> str:
        return f"OpenAI ({self._model})"

    def missing_credentials(self) -> List[str]:
        if self._client is None and not self._api_key:
            return ["OPENAI_API_KEY"]
        return []

    def _initialize(self) -> None:
        """Lazy initialization of OpenAI client."""
        if self._client is not None:
            return

        if not self._api_key:
            raise ConfigurationFailure(
                "OpenAI API key not provided. Set OPENAI_API_KEY or pass api_key parameter.",
                missing=["OPENAI_API_KEY"],
            )

        from openai import OpenAI

        self._client = OpenAI(api_key=self._api_key)
        self.logger.info(f"OpenAI client initialized with model={self._model}")

    def _complete(self, prompt: str, image: ImageData, timeout: float) -> str:
        self._initialize()

        start_time = time.time()
        response = self._client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {"type": "image_url", "image_url": {"url": image.data_uri}},
                    ],
                },
            ],
            response_format={"type": "json_object"},
            temperature=self._temperature,
            max_tokens=self._max_tokens,
            timeout=timeout,
        )
        self.logger.debug(f"OpenAI replied in {(time.time() - start_time) * 1000:.0f}ms")
        return response.choices[0].message.content

    def extract(self, image: ImageData, timeout: float) -> DrugMetadata:
        try:
            text = self._complete(EXTRACTION_PROMPT, image, timeout)
            metadata = MetadataPayload.model_validate(parse_json_object(text)).to_metadata()
        except DomainException:
            raise
        except (ValueError, ValidationError) as e:
            raise ExtractionFailure(f"Unparsable extraction output: {e}", provider=self.provider_name)
        except Exception as e:
            self.logger.warning(f"OpenAI extraction failed: {e}")
            raise ExtractionFailure(f"OpenAI extraction failed: {e}", provider=self.provider_name)

        if metadata.is_empty:
            raise EmptyMetadataError(provider=self.provider_name)
        return metadata

    def inspect(self, image: ImageData, timeout: float) -> VisualFindings:
        try:
            text = self._complete(INSPECTION_PROMPT, image, timeout)
            return VisualPayload.model_validate(parse_json_object(text)).to_findings()
        except DomainException:
            raise
        except (ValueError, ValidationError) as e:
            raise InspectionFailure(f"Unusable inspection output: {e}", provider=self.provider_name)
        except Exception as e:
            self.logger.warning(f"OpenAI inspection failed: {e}")
            raise InspectionFailure(f"OpenAI inspection failed: {e}", provider=self.provider_name)
