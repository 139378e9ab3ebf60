"""
Groq Synthesizer

Delegated factor classification. The model only classifies the four
compared factors; the application validates its answer and computes the
score itself.
"""

from typing import Any, Dict, List
import json

from .groq_client import GroqChatClient
from ..parsing import parse_json_object, extract_factor_entries
from ...domain.ports.synthesizer import SynthesizerPort
from ...domain.entities.scan import DrugMetadata
from ...domain.entities.evidence import ResearchFindings, VisualFindings
from ...domain.exceptions import DomainException, SynthesisFailure


SYSTEM_PROMPT = """You are a lead pharmaceutical forensic analyst. You compare what was observed
on a medicine against what official references state. Answer with a single JSON object."""

USER_TEMPLATE = """Compare the observations against the reference findings.

Observed on the packaging: {metadata}
Observed by visual inspection: {visual}
Reference findings: {research}

Classify each factor: imprint, color, shape, genericIdentity.
- "match": the observation agrees with what the references state
- "conflict": the references state a specific value that differs from the observation
- "omission": the references do not state this attribute, or nothing was observed

Answer with this JSON object and nothing else:
{{"factors": [{{"factor": "imprint", "status": "match|conflict|omission",
               "reason": "one sentence", "evidence_quote": "verbatim reference text or null"}}]}}"""


class GroqSynthesizer(GroqChatClient, SynthesizerPort):
    """Synthesizer backed by Groq chat completions."""

    def _build_prompt(
        self,
        metadata: DrugMetadata,
        research: ResearchFindings,
        visual: VisualFindings
    ) -> str:
        research_view = {
            "official_description": research.official_description,
            "expected_imprint": research.expected_imprint,
            "expected_color": research.expected_color,
            "expected_shape": research.expected_shape,
            "generic_name": research.generic_name,
            "brand_names": list(research.brand_names),
            "evidence": research.evidence,
        }
        visual_view = {
            "color": visual.color,
            "shape": visual.shape,
            "surface_markings": visual.surface_markings,
        }
        return USER_TEMPLATE.format(
            metadata=json.dumps(metadata.to_dict()),
            visual=json.dumps(visual_view),
            research=json.dumps(research_view),
        )

    def synthesize(
        self,
        metadata: DrugMetadata,
        research: ResearchFindings,
        visual: VisualFindings,
        timeout: float
    ) -> List[Dict[str, Any]]:
        try:
            text = self._complete_json(SYSTEM_PROMPT, self._build_prompt(metadata, research, visual), timeout)
            return extract_factor_entries(parse_json_object(text))
        except DomainException:
            raise
        except ValueError as e:
            raise SynthesisFailure(f"Synthesis output is not usable: {e}")
        except Exception as e:
            self.logger.warning(f"Groq synthesis failed: {e}")
            raise SynthesisFailure(f"Groq synthesis failed: {e}")
