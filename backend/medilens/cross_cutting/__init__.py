"""
Cross-Cutting Concerns

Logging, error handling and input validation.
"""

from .logging import setup_logging, get_logger
from .error_handling import ErrorHandler, status_code_for, error_payload
from .validation import validate_image, load_image, load_base64_image

__all__ = [
    "setup_logging",
    "get_logger",
    "ErrorHandler",
    "status_code_for",
    "error_payload",
    "validate_image",
    "load_image",
    "load_base64_image",
]
