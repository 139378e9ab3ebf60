"""
Infrastructure adapter tests with mocked clients and HTTP sessions.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock
import json

import pytest
import requests

from medilens.domain.entities.evidence import RetrievedDocument
from medilens.domain.exceptions import (
    ConfigurationFailure,
    EmptyMetadataError,
    ExtractionFailure,
    InspectionFailure,
    MalformedInterpretationError,
    ResearchFailure,
    RetrievalServiceError,
    SynthesisFailure,
)
from medilens.infrastructure.llm import GroqFindingsInterpreter, GroqSynthesizer
from medilens.infrastructure.parsing import parse_json_object
from medilens.infrastructure.retrieval import ExaReferenceRetriever
from medilens.infrastructure.vision import (
    OllamaVisionAdapter,
    OpenAIVisionAdapter,
    VisionFactory,
    VisionType,
)

from tests.fakes import METFORMIN, METFORMIN_RESEARCH, METFORMIN_VISUAL, make_image


def _chat_client(content):
    """Mock of an OpenAI-compatible client returning ``content``."""
    client = MagicMock()
    if isinstance(content, Exception):
        client.chat.completions.create.side_effect = content
    else:
        message = SimpleNamespace(content=content)
        client.chat.completions.create.return_value = SimpleNamespace(
            choices=[SimpleNamespace(message=message)]
        )
    return client


def _http_response(status_code=200, payload=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    response.json.return_value = payload or {}
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"HTTP {status_code}")
    return response


# =============================================================================
# Parsing
# =============================================================================

def test_parse_json_object_strips_fences_and_prose():
    assert parse_json_object('```json\n{"a": 1}\n```') == {"a": 1}
    assert parse_json_object('Here you go: {"a": 2} hope it helps') == {"a": 2}


@pytest.mark.parametrize("text", ["", "   ", "[1, 2]", "no json here"])
def test_parse_json_object_rejects_non_objects(text):
    with pytest.raises(ValueError):
        parse_json_object(text)


# =============================================================================
# OpenAI vision
# =============================================================================

def test_openai_extract_accepts_camel_case():
    client = _chat_client('{"drugName": "Glucophage", "dosage": "500 mg", "imprint": "M 367", "manufacturer": null}')
    adapter = OpenAIVisionAdapter(api_key="sk-test", client=client)

    metadata = adapter.extract(make_image(), timeout=10)

    assert metadata.name == "Glucophage"
    assert metadata.strength == "500 mg"
    assert metadata.markings == "M 367"
    assert metadata.manufacturer is None

    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["timeout"] == 10
    assert kwargs["response_format"] == {"type": "json_object"}
    image_part = kwargs["messages"][1]["content"][1]
    assert image_part["image_url"]["url"].startswith("data:image/png;base64,")


def test_openai_extract_with_nothing_legible_is_empty_metadata():
    adapter = OpenAIVisionAdapter(api_key="sk-test", client=_chat_client('{"name": "N/A", "strength": ""}'))
    with pytest.raises(EmptyMetadataError):
        adapter.extract(make_image(), timeout=10)


def test_openai_extract_wraps_service_errors():
    adapter = OpenAIVisionAdapter(api_key="sk-test", client=_chat_client(RuntimeError("rate limited")))
    with pytest.raises(ExtractionFailure) as exc_info:
        adapter.extract(make_image(), timeout=10)
    assert exc_info.value.details["provider"] == "OpenAI (gpt-4o-mini)"


def test_openai_inspect_flattens_physical_description_and_clamps_quality():
    reply = json.dumps({
        "physicalDesc": {"color": "white", "shape": "round", "imprint": "M 367"},
        "qualityScore": 140,
        "redFlags": ["blurred lot number"],
    })
    adapter = OpenAIVisionAdapter(api_key="sk-test", client=_chat_client(reply))

    visual = adapter.inspect(make_image(), timeout=10)

    assert visual.color == "white"
    assert visual.shape == "round"
    assert visual.surface_markings == "M 367"
    assert visual.quality_score == 100
    assert visual.red_flags == ("blurred lot number",)


def test_openai_inspect_requires_quality_score():
    adapter = OpenAIVisionAdapter(api_key="sk-test", client=_chat_client('{"color": "white"}'))
    with pytest.raises(InspectionFailure):
        adapter.inspect(make_image(), timeout=10)


def test_openai_without_key_reports_missing_credential(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    adapter = OpenAIVisionAdapter()

    assert adapter.missing_credentials() == ["OPENAI_API_KEY"]
    with pytest.raises(ConfigurationFailure):
        adapter.extract(make_image(), timeout=10)


# =============================================================================
# Ollama vision
# =============================================================================

def test_ollama_inspect_posts_generate_request():
    session = MagicMock()
    session.post.return_value = _http_response(payload={
        "response": '{"color": "white", "shape": "oval", "quality_score": 80, "red_flags": []}'
    })
    adapter = OllamaVisionAdapter(base_url="http://ollama:11434/", session=session)

    visual = adapter.inspect(make_image(), timeout=20)

    assert visual.shape == "oval"
    assert adapter.missing_credentials() == []
    url = session.post.call_args.args[0]
    payload = session.post.call_args.kwargs["json"]
    assert url == "http://ollama:11434/api/generate"
    assert payload["model"] == "llava:7b"
    assert payload["format"] == "json"
    assert payload["stream"] is False
    assert payload["images"] == [make_image().base64_string]
    assert session.post.call_args.kwargs["timeout"] == 20


def test_ollama_connection_error_is_extraction_failure():
    session = MagicMock()
    session.post.side_effect = requests.ConnectionError("refused")
    adapter = OllamaVisionAdapter(session=session)

    with pytest.raises(ExtractionFailure):
        adapter.extract(make_image(), timeout=5)


def test_vision_factory_creates_adapters():
    assert isinstance(VisionFactory.create(VisionType.OPENAI, api_key="sk"), OpenAIVisionAdapter)
    assert isinstance(VisionFactory.create(VisionType.OLLAMA), OllamaVisionAdapter)


# =============================================================================
# Exa retrieval
# =============================================================================

def test_exa_search_sends_allow_list_and_maps_results():
    session = MagicMock()
    session.post.return_value = _http_response(payload={"results": [
        {"url": "https://www.fda.gov/a", "title": "FDA", "highlights": ["white round M 367"]},
        {"url": "https://www.drugs.com/b", "title": "Drugs.com", "text": "Full text " * 10},
        {"title": "no url"},
    ]})
    retriever = ExaReferenceRetriever(api_key="exa-test", session=session)

    documents = retriever.search("metformin", timeout=15, include_domains=["fda.gov"], num_results=3)

    assert documents == [
        RetrievedDocument(uri="https://www.fda.gov/a", title="FDA", snippet="white round M 367"),
        RetrievedDocument(uri="https://www.drugs.com/b", title="Drugs.com", snippet=("Full text " * 10)),
    ]
    payload = session.post.call_args.kwargs["json"]
    assert payload["query"] == "metformin"
    assert payload["numResults"] == 3
    assert payload["includeDomains"] == ["fda.gov"]
    assert payload["contents"]["highlights"] is True
    assert session.post.call_args.kwargs["timeout"] == 15


def test_exa_http_error_keeps_status_code():
    session = MagicMock()
    session.post.return_value = _http_response(status_code=401, text="invalid key")
    retriever = ExaReferenceRetriever(api_key="exa-test", session=session)

    with pytest.raises(RetrievalServiceError) as exc_info:
        retriever.search("metformin", timeout=15)
    assert exc_info.value.details["status_code"] == 401
    assert exc_info.value.details["kind"] == "retrieval_error"


def test_exa_network_error_is_retrieval_error():
    session = MagicMock()
    session.post.side_effect = requests.Timeout("read timed out")
    retriever = ExaReferenceRetriever(api_key="exa-test", session=session)

    with pytest.raises(RetrievalServiceError):
        retriever.search("metformin", timeout=15)


def test_exa_without_key(monkeypatch):
    monkeypatch.delenv("EXA_API_KEY", raising=False)
    retriever = ExaReferenceRetriever()

    assert retriever.missing_credentials() == ["EXA_API_KEY"]
    with pytest.raises(ConfigurationFailure):
        retriever.search("metformin", timeout=15)


# =============================================================================
# Groq interpretation and synthesis
# =============================================================================

DOCUMENTS = [RetrievedDocument(uri="https://www.fda.gov/a", title="FDA", snippet="white round M 367")]


def test_groq_interpreter_maps_silence_to_none():
    reply = json.dumps({
        "official_description": "White round tablet",
        "expected_imprint": "M 367",
        "expected_color": "white",
        "expected_shape": "not stated",
        "genericName": "metformin",
        "brand_names": "Glucophage",
        "evidence": {"imprint": "debossed M 367", "color": ""},
        "knownRecalls": [],
        "pharmacology": {"uses": "Type 2 diabetes", "howItWorks": "Lowers glucose", "indications": ["T2DM"]},
    })
    interpreter = GroqFindingsInterpreter(api_key="gsk-test", client=_chat_client(reply))

    findings = interpreter.interpret(DOCUMENTS, METFORMIN, timeout=30)

    assert findings.expected_imprint == "M 367"
    assert findings.expected_shape is None
    assert findings.generic_name == "metformin"
    assert findings.brand_names == ("Glucophage",)
    assert findings.evidence == {"imprint": "debossed M 367"}
    assert findings.pharmacology.how_it_works == "Lowers glucose"
    assert findings.references == ()


def test_groq_interpreter_malformed_output():
    interpreter = GroqFindingsInterpreter(api_key="gsk-test", client=_chat_client("I cannot help with that"))

    with pytest.raises(MalformedInterpretationError) as exc_info:
        interpreter.interpret(DOCUMENTS, METFORMIN, timeout=30)
    assert exc_info.value.details["raw_output_preview"] == "I cannot help with that"


def test_groq_interpreter_service_error():
    interpreter = GroqFindingsInterpreter(api_key="gsk-test", client=_chat_client(RuntimeError("503")))

    with pytest.raises(ResearchFailure):
        interpreter.interpret(DOCUMENTS, METFORMIN, timeout=30)


def test_groq_synthesizer_returns_raw_entries():
    reply = json.dumps({"factors": [{"factor": "imprint", "status": "match", "reason": "same"}]})
    synthesizer = GroqSynthesizer(api_key="gsk-test", client=_chat_client(reply))

    entries = synthesizer.synthesize(METFORMIN, METFORMIN_RESEARCH, METFORMIN_VISUAL, timeout=30)

    assert entries == [{"factor": "imprint", "status": "match", "reason": "same"}]


def test_groq_synthesizer_without_factors_fails():
    synthesizer = GroqSynthesizer(api_key="gsk-test", client=_chat_client('{"verdict": "Authentic"}'))

    with pytest.raises(SynthesisFailure):
        synthesizer.synthesize(METFORMIN, METFORMIN_RESEARCH, METFORMIN_VISUAL, timeout=30)
