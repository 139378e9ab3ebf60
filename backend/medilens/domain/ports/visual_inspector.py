"""
Visual Inspector Port

Abstract interface for visual forensic inspection.
"""

from abc import abstractmethod

from .base import ExternalServicePort
from ..value_objects.image_data import ImageData
from ..entities.evidence import VisualFindings


class VisualInspectorPort(ExternalServicePort):
    """
    Port (interface) for inspecting print/packaging quality and the
    pill's observed physical traits.
    
    Depends only on the image, so it can run concurrently with research.
    """
    
    @abstractmethod
    def inspect(self, image: ImageData, timeout: float) -> VisualFindings:
        """
        Inspect an image.
        
        Args:
            image: Photograph of the packaging or pill
            timeout: Upper bound for the external call, in seconds
            
        Returns:
            VisualFindings (quality score already clamped to [0, 100])
            
        Raises:
            InspectionFailure: If the model errors or returns unusable output
        """
        pass
