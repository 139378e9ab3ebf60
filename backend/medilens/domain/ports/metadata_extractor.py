"""
Metadata Extractor Port

Abstract interface for vision-extraction implementations.
"""

from abc import abstractmethod

from .base import ExternalServicePort
from ..value_objects.image_data import ImageData
from ..entities.scan import DrugMetadata


class MetadataExtractorPort(ExternalServicePort):
    """
    Port (interface) for reading drug metadata off packaging.
    
    Responsible for extracting:
    - Drug name
    - Strength / dosage
    - Imprint and packaging markings
    - Manufacturer
    """
    
    @abstractmethod
    def extract(self, image: ImageData, timeout: float) -> DrugMetadata:
        """
        Extract structured metadata from an image.
        
        Args:
            image: Photograph of the packaging or pill
            timeout: Upper bound for the external call, in seconds
            
        Returns:
            DrugMetadata with at least one populated field
            
        Raises:
            ExtractionFailure: If the service errors, times out, or returns
                empty/unparsable output
        """
        pass
