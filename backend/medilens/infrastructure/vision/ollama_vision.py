"""
Ollama Vision Adapter

Local metadata extraction and visual inspection using an Ollama-served
multimodal model (llava, qwen2.5vl, gemma3, ...).
"""

from typing import Optional, List
import logging
import time

import requests
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
    EmptyMetadataError,
    ExtractionFailure,
    InspectionFailure,
)


logger = logging.getLogger(__name__)


class OllamaVisionAdapter(MetadataExtractorPort, VisualInspectorPort):
    """
    Vision adapter using Ollama's ``/api/generate`` endpoint.

    Needs no credentials. The image is sent base64-encoded in ``images``
    and the reply is constrained with ``format="json"``.

    Attributes:
        base_url: Ollama API base URL (default: http://localhost:11434)
        model: Multimodal model name (e.g., "llava:7b")
        temperature: Sampling temperature
    """

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "llava:7b",
        temperature: float = 0.1,
        session: Optional[requests.Session] = None
    ):
        self._base_url = base_url.rstrip('/')
        self._model = model
        self._temperature = temperature
        self._session = session

        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def provider_name(self) -> str:
        return f"Ollama ({self._model})"

    def _init_session(self) -> None:
        """Initialize HTTP session."""
        self._session = requests.Session()
        self._session.headers.update({
            'Content-Type': 'application/json',
        })

    def is_available(self) -> bool:
        """Check if Ollama is running and the model is pulled."""
        if not self._session:
            self._init_session()

        try:
            response = self._session.get(f"{self._base_url}/api/tags", timeout=5)
            response.raise_for_status()
        except requests.RequestException as e:
            self.logger.error(f"Ollama connection failed: {e}")
            return False

        model_names = [m.get('name', '') for m in response.json().get('models', [])]
        model_base = self._model.split(':')[0]
        return self._model in model_names or any(model_base in name for name in model_names)

    def _call_ollama(self, prompt: str, image: ImageData, timeout: float) -> str:
        """Call Ollama API and get the raw reply."""
        if not self._session:
            self._init_session()

        payload = {
            "model": self._model,
            "system": SYSTEM_PROMPT,
            "prompt": prompt,
            "images": [image.base64_string],
            "format": "json",
            "stream": False,
            "options": {
                "temperature": self._temperature,
            },
        }

        start_time = time.time()
        self.logger.info(f"Calling Ollama with model {self._model}...")
        response = self._session.post(
            f"{self._base_url}/api/generate",
            json=payload,
            timeout=timeout,
        )
        response.raise_for_status()

        self.logger.debug(f"Ollama replied in {(time.time() - start_time) * 1000:.0f}ms")
        return response.json().get("response", "")

    def extract(self, image: ImageData, timeout: float) -> DrugMetadata:
        try:
            text = self._call_ollama(EXTRACTION_PROMPT, image, timeout)
            metadata = MetadataPayload.model_validate(parse_json_object(text)).to_metadata()
        except DomainException:
            raise
        except requests.RequestException as e:
            self.logger.warning(f"Ollama extraction request failed: {e}")
            raise ExtractionFailure(f"Ollama request failed: {e}", provider=self.provider_name)
        except (ValueError, ValidationError) as e:
            raise ExtractionFailure(f"Unparsable extraction output: {e}", provider=self.provider_name)

        if metadata.is_empty:
            raise EmptyMetadataError(provider=self.provider_name)
        return metadata

    def inspect(self, image: ImageData, timeout: float) -> VisualFindings:
        try:
            text = self._call_ollama(INSPECTION_PROMPT, image, timeout)
            return VisualPayload.model_validate(parse_json_object(text)).to_findings()
        except DomainException:
            raise
        except requests.RequestException as e:
            self.logger.warning(f"Ollama inspection request failed: {e}")
            raise InspectionFailure(f"Ollama request failed: {e}", provider=self.provider_name)
        except (ValueError, ValidationError) as e:
            raise InspectionFailure(f"Unusable inspection output: {e}", provider=self.provider_name)
