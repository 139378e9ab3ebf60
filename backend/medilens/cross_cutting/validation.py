"""
Input Validation

Validation of submitted photographs before they are queued.
"""

from io import BytesIO
from typing import Optional, Tuple

from PIL import Image as PILImage, UnidentifiedImageError

from ..domain.value_objects.image_data import ImageData
from ..domain.exceptions import InvalidImageError


# Supported image formats
SUPPORTED_FORMATS = {"jpeg", "png", "webp", "gif", "bmp"}

# Maximum image dimensions
MAX_IMAGE_DIMENSION = 8192

# Maximum file size (10 MB)
MAX_FILE_SIZE = 10 * 1024 * 1024


def validate_image(image: ImageData) -> Tuple[bool, Optional[str]]:
    """
    Validate image data.

    Args:
        image: ImageData to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if len(image.data) > MAX_FILE_SIZE:
        return False, f"Image size exceeds maximum ({MAX_FILE_SIZE / 1024 / 1024:.1f} MB)"

    try:
        pil_image = PILImage.open(BytesIO(image.data))
        pil_image.verify()

        # Reopen because verify() can only be called once
        pil_image = PILImage.open(BytesIO(image.data))
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        return False, f"Invalid image data: {e}"

    width, height = pil_image.size
    if width > MAX_IMAGE_DIMENSION or height > MAX_IMAGE_DIMENSION:
        return False, f"Image dimensions exceed maximum ({MAX_IMAGE_DIMENSION}x{MAX_IMAGE_DIMENSION})"

    img_format = pil_image.format.lower() if pil_image.format else "unknown"
    if img_format not in SUPPORTED_FORMATS:
        return False, f"Unsupported image format: {img_format}"

    return True, None


def load_image(data: bytes, source: Optional[str] = None) -> ImageData:
    """
    Build a validated ImageData from uploaded bytes.

    Raises:
        InvalidImageError: If the bytes are empty or not a supported image
    """
    if not data:
        raise InvalidImageError("Uploaded image is empty", details={"source": source})

    image = ImageData.from_bytes(data, source=source)
    is_valid, message = validate_image(image)
    if not is_valid:
        raise InvalidImageError(message, details={"source": source})
    return image


def load_base64_image(payload: str, source: Optional[str] = None) -> ImageData:
    """
    Build a validated ImageData from a base64 string or data URI.

    Raises:
        InvalidImageError: If the payload is not valid base64 or not an image
    """
    try:
        image = ImageData.from_base64(payload.strip(), source=source)
    except ValueError as e:
        raise InvalidImageError(str(e), details={"source": source})

    is_valid, message = validate_image(image)
    if not is_valid:
        raise InvalidImageError(message, details={"source": source})
    return image
