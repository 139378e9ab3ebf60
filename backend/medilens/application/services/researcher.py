"""
Ground-Truth Researcher

Composes the retrieval service and the interpretation model into the
``research(metadata)`` operation: build a query from whatever metadata
was read, retrieve reference documents, interpret them into structured
findings and pass the raw references through for trust scoring.
"""

from dataclasses import replace
from typing import List, Optional, Sequence
import logging
import time

from ...domain.entities.scan import DrugMetadata
from ...domain.entities.evidence import ResearchFindings
from ...domain.ports.reference_retriever import ReferenceRetrieverPort
from ...domain.ports.findings_interpreter import FindingsInterpreterPort
from ...domain.exceptions import NoDocumentsFoundError, StageTimeoutError


class GroundTruthResearcher:
    """
    Ground-truth research service.

    Usage:
        researcher = GroundTruthResearcher(exa_retriever, groq_interpreter)
        findings = researcher.research(metadata, timeout=45)
    """

    def __init__(
        self,
        retriever: ReferenceRetrieverPort,
        interpreter: FindingsInterpreterPort,
        include_domains: Optional[Sequence[str]] = None,
        num_results: int = 3
    ):
        self.retriever = retriever
        self.interpreter = interpreter
        self.include_domains = list(include_domains) if include_domains else None
        self.num_results = num_results
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def missing_credentials(self) -> List[str]:
        return self.retriever.missing_credentials() + self.interpreter.missing_credentials()

    @staticmethod
    def build_query(metadata: DrugMetadata) -> str:
        """
        Build the retrieval query.

        With a product name the query asks for the official product
        details. Without one it degrades to a physical-description query
        built from the imprint and whatever else was read.
        """
        if metadata.name:
            subject = " ".join(
                p for p in (metadata.name, metadata.strength, metadata.manufacturer) if p
            )
            return f"official product details, pill imprint, and packaging for {subject}"

        descriptors = []
        if metadata.markings:
            descriptors.append(f"imprint {metadata.markings}")
        if metadata.strength:
            descriptors.append(metadata.strength)
        if metadata.manufacturer:
            descriptors.append(f"by {metadata.manufacturer}")
        return f"pill identification {' '.join(descriptors)} color shape physical description"

    def research(self, metadata: DrugMetadata, timeout: float) -> ResearchFindings:
        """
        Research ground truth for the given metadata.

        Args:
            metadata: Extractor output, possibly partial
            timeout: Budget shared by retrieval and interpretation, in seconds

        Returns:
            ResearchFindings with the retrieved references attached

        Raises:
            NoDocumentsFoundError: If retrieval returned nothing
            MalformedInterpretationError: If interpretation output is unusable
            ResearchFailure: On any other service error
        """
        deadline = time.monotonic() + timeout
        query = self.build_query(metadata)
        self.logger.info(f"Researching '{metadata}' (query: {query})")

        documents = self.retriever.search(
            query,
            timeout=timeout,
            include_domains=self.include_domains,
            num_results=self.num_results,
        )
        if not documents:
            raise NoDocumentsFoundError(query=query)

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise StageTimeoutError(stage="research", timeout_seconds=timeout)

        findings = self.interpreter.interpret(documents, metadata, timeout=remaining)
        self.logger.info(f"Interpreted {len(documents)} documents for '{metadata}'")

        return replace(
            findings,
            references=tuple(doc.to_reference() for doc in documents),
        )
