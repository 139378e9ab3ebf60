"""
Exa Reference Retriever

Neural web search over an allow-list of pharmaceutical reference domains
using the Exa ``/search`` endpoint with highlighted contents.
"""

from typing import Optional, List, Sequence
import logging
import os

import requests

from ...domain.ports.reference_retriever import ReferenceRetrieverPort
from ...domain.entities.evidence import RetrievedDocument
from ...domain.exceptions import ConfigurationFailure, RetrievalServiceError


logger = logging.getLogger(__name__)


class ExaReferenceRetriever(ReferenceRetrieverPort):
    """
    Reference retriever backed by Exa search.

    Attributes:
        api_key: Exa API key
        base_url: Exa API base URL
        max_characters: Upper bound of full text used when no highlight exists
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = "https://api.exa.ai",
        max_characters: int = 1500,
        session: Optional[requests.Session] = None
    ):
        self._api_key = api_key or os.environ.get("EXA_API_KEY")
        self._base_url = base_url.rstrip('/')
        self._max_characters = max_characters
        self._session = session

        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def provider_name(self) -> str:
        return "Exa"

    def missing_credentials(self) -> List[str]:
        return [] if self._api_key else ["EXA_API_KEY"]

    def _init_session(self) -> None:
        """Initialize HTTP session."""
        if not self._api_key:
            raise ConfigurationFailure(
                "Exa API key not provided. Set EXA_API_KEY or pass api_key parameter.",
                missing=["EXA_API_KEY"],
            )
        self._session = requests.Session()
        self._session.headers.update({
            'Content-Type': 'application/json',
            'x-api-key': self._api_key,
        })

    def search(
        self,
        query: str,
        timeout: float,
        include_domains: Optional[Sequence[str]] = None,
        num_results: int = 3
    ) -> List[RetrievedDocument]:
        if not self._session:
            self._init_session()

        payload = {
            "query": query,
            "numResults": num_results,
            "contents": {
                "highlights": True,
                "text": {"maxCharacters": self._max_characters},
            },
        }
        if include_domains:
            payload["includeDomains"] = list(include_domains)

        try:
            response = self._session.post(
                f"{self._base_url}/search",
                json=payload,
                timeout=timeout,
            )
        except requests.RequestException as e:
            self.logger.warning(f"Exa request failed: {e}")
            raise RetrievalServiceError(f"Exa request failed: {e}")

        if response.status_code != 200:
            self.logger.warning(f"Exa returned HTTP {response.status_code}")
            raise RetrievalServiceError(
                f"Exa search failed with HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            results = response.json().get("results") or []
        except ValueError as e:
            raise RetrievalServiceError(f"Exa returned invalid JSON: {e}")

        documents = []
        for item in results:
            uri = item.get("url") or item.get("id")
            if not uri:
                continue
            highlights = [h for h in (item.get("highlights") or []) if h]
            snippet = "\n".join(highlights) or (item.get("text") or "")[:self._max_characters]
            documents.append(RetrievedDocument(
                uri=uri,
                title=item.get("title") or "",
                snippet=snippet,
            ))

        self.logger.info(f"Exa returned {len(documents)} document(s) for '{query}'")
        return documents
