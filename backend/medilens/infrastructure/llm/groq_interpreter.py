"""
Groq Findings Interpreter

Turns retrieved reference documents into structured ground truth using
a Groq-hosted chat model.
"""

from typing import Sequence

from pydantic import ValidationError

from .groq_client import GroqChatClient
from ..parsing import parse_json_object, FindingsPayload
from ...domain.ports.findings_interpreter import FindingsInterpreterPort
from ...domain.entities.scan import DrugMetadata
from ...domain.entities.evidence import RetrievedDocument, ResearchFindings
from ...domain.exceptions import (
    DomainException,
    MalformedInterpretationError,
    ResearchFailure,
)


SYSTEM_PROMPT = """You are a pharmaceutical reference analyst. You read search results from
official sources and report what they say about a medicine. You never add knowledge that is
not in the documents. Answer with a single JSON object."""

USER_TEMPLATE = """Based on the following search results for {subject}, provide a structured
interpretation of its official physical characteristics and pharmacological data.

Packaging read from the photograph:
{metadata}

Search Results:
{context}

Answer with this JSON object and nothing else:
{{
  "official_description": "physical description stated by the sources",
  "expected_imprint": "imprint the sources state, or null",
  "expected_color": "color the sources state, or null",
  "expected_shape": "shape the sources state, or null",
  "generic_name": "generic (INN) name of the active ingredient, or null",
  "brand_names": ["trade names named by the sources"],
  "evidence": {{"imprint": "verbatim quote", "color": "verbatim quote", "shape": "verbatim quote",
               "genericIdentity": "verbatim quote"}},
  "known_recalls": ["batch recalls or falsified-medicine alerts named by the sources"],
  "pharmacology": {{"uses": "...", "how_it_works": "...", "indications": ["..."]}}
}}
Use null for every attribute the sources do not state, and omit its evidence entry."""


class GroqFindingsInterpreter(GroqChatClient, FindingsInterpreterPort):
    """
    Findings interpreter backed by Groq chat completions.

    Usage:
        interpreter = GroqFindingsInterpreter(api_key="gsk_...")
        findings = interpreter.interpret(documents, metadata, timeout=30)
    """

    MAX_SNIPPET_CHARS = 1200

    def _build_prompt(self, documents: Sequence[RetrievedDocument], metadata: DrugMetadata) -> str:
        context = "\n\n".join(
            f"Source: {doc.title or doc.uri} ({doc.uri})\nContent: {doc.snippet[:self.MAX_SNIPPET_CHARS]}"
            for doc in documents
        )
        metadata_lines = "\n".join(
            f"- {key}: {value}" for key, value in metadata.to_dict().items() if value
        )
        return USER_TEMPLATE.format(
            subject=metadata.name or "the pictured medicine",
            metadata=metadata_lines or "- nothing legible",
            context=context,
        )

    def interpret(
        self,
        documents: Sequence[RetrievedDocument],
        metadata: DrugMetadata,
        timeout: float
    ) -> ResearchFindings:
        text = None
        try:
            text = self._complete_json(SYSTEM_PROMPT, self._build_prompt(documents, metadata), timeout)
            return FindingsPayload.model_validate(parse_json_object(text)).to_findings()
        except DomainException:
            raise
        except (ValueError, ValidationError) as e:
            self.logger.warning(f"Malformed interpretation output: {e}")
            raise MalformedInterpretationError(
                f"Interpretation output does not fit the findings schema: {e}",
                raw_output=text,
            )
        except Exception as e:
            self.logger.warning(f"Groq interpretation failed: {e}")
            raise ResearchFailure(f"Groq interpretation failed: {e}")
