"""
Scan Entities

The request owned by the admission controller and the metadata the
extractor reads off the packaging.
"""

from dataclasses import dataclass, field
from typing import Optional, Dict
from datetime import datetime, timezone
import uuid

from ..value_objects.image_data import ImageData


@dataclass(frozen=True)
class ScanRequest:
    """
    One submitted photograph, immutable once enqueued.
    
    Attributes:
        image: The photograph to analyze
        created_at: Submission time (UTC)
        request_id: Unique identifier for log correlation
    """
    
    image: ImageData
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    
    def __str__(self) -> str:
        return f"ScanRequest(id={self.request_id[:8]}, {self.image})"


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    if not value or value.upper() in {"N/A", "NONE", "UNKNOWN", "NULL"}:
        return None
    return value


@dataclass(frozen=True)
class DrugMetadata:
    """
    Structured metadata read from the packaging.
    
    All fields are optional; blank and placeholder values ("N/A", "none")
    are normalized to None.
    """
    
    name: Optional[str] = None
    strength: Optional[str] = None
    markings: Optional[str] = None
    manufacturer: Optional[str] = None
    
    def __post_init__(self) -> None:
        for attr in ("name", "strength", "markings", "manufacturer"):
            object.__setattr__(self, attr, _clean(getattr(self, attr)))
    
    @property
    def is_empty(self) -> bool:
        """True when nothing at all could be read."""
        return not any((self.name, self.strength, self.markings, self.manufacturer))
    
    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "name": self.name,
            "strength": self.strength,
            "markings": self.markings,
            "manufacturer": self.manufacturer,
        }
    
    def __str__(self) -> str:
        parts = [p for p in (self.name, self.strength, self.manufacturer) if p]
        return " ".join(parts) or f"imprint {self.markings or '?'}"
