"""
Image Data Value Object

Represents the photograph passed through the pipeline.
"""

from dataclasses import dataclass, field
from typing import Optional
from pathlib import Path
import base64
import binascii


FORMAT_TO_MIME = {
    "jpeg": "image/jpeg",
    "jpg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "bmp": "image/bmp",
    "webp": "image/webp",
}

EXTENSION_TO_FORMAT = {
    ".jpg": "jpeg",
    ".jpeg": "jpeg",
    ".png": "png",
    ".gif": "gif",
    ".bmp": "bmp",
    ".webp": "webp",
}


def _sniff_format(data: bytes) -> Optional[str]:
    """Guess the image format from magic bytes."""
    if data.startswith(b"\xff\xd8\xff"):
        return "jpeg"
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "png"
    if data[:6] in (b"GIF87a", b"GIF89a"):
        return "gif"
    if data.startswith(b"BM"):
        return "bmp"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "webp"
    return None


@dataclass(frozen=True)
class ImageData:
    """
    Immutable value object holding raw image bytes.
    
    Attributes:
        data: Raw image bytes
        format: Image format (e.g., "jpeg", "png")
        source: Optional source identifier (file path, upload name)
    """
    
    data: bytes = field(repr=False)
    format: Optional[str] = None
    source: Optional[str] = None
    
    def __post_init__(self) -> None:
        if not self.data:
            raise ValueError("ImageData requires non-empty bytes")
    
    @property
    def mime_type(self) -> str:
        """MIME type sent to vision services, defaulting to JPEG."""
        return FORMAT_TO_MIME.get((self.format or "").lower(), "image/jpeg")
    
    @property
    def base64_string(self) -> str:
        """Base64 encoded image string."""
        return base64.b64encode(self.data).decode("utf-8")
    
    @property
    def data_uri(self) -> str:
        """Data URI in the form ``data:<mime>;base64,<payload>``."""
        return f"data:{self.mime_type};base64,{self.base64_string}"
    
    def __len__(self) -> int:
        return len(self.data)
    
    def __str__(self) -> str:
        return f"ImageData({len(self.data)} bytes, {self.format or 'unknown format'})"
    
    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        format: Optional[str] = None,
        source: Optional[str] = None
    ) -> "ImageData":
        """Create ImageData from raw bytes, sniffing the format when not given."""
        return cls(data=data, format=format or _sniff_format(data), source=source)
    
    @classmethod
    def from_file(cls, file_path: str) -> "ImageData":
        """Create ImageData from a file path."""
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Image file not found: {file_path}")
        
        return cls(
            data=path.read_bytes(),
            format=EXTENSION_TO_FORMAT.get(path.suffix.lower()),
            source=str(path.absolute())
        )
    
    @classmethod
    def from_base64(
        cls,
        base64_string: str,
        format: Optional[str] = None,
        source: Optional[str] = None
    ) -> "ImageData":
        """
        Create ImageData from a base64 string or a data URI.
        
        Raises:
            ValueError: If the payload is not valid base64
        """
        if base64_string.startswith("data:"):
            header, base64_string = base64_string.split(",", 1)
            if "image/" in header:
                format = header.split("image/")[1].split(";")[0]
        
        try:
            data = base64.b64decode(base64_string, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"Invalid base64 image payload: {e}")
        
        return cls.from_bytes(data, format=format, source=source)
