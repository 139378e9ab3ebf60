"""
Error Handling

Centralized mapping of domain exceptions onto HTTP responses and
consistent error logging for the HTTP front.
"""

from typing import Any, Dict, Optional
import logging
import traceback

from ..domain.exceptions import (
    DomainException,
    ConfigurationFailure,
    InvalidImageError,
)


logger = logging.getLogger(__name__)


def status_code_for(error: Exception) -> int:
    """HTTP status code for an exception raised at the API boundary."""
    if isinstance(error, InvalidImageError):
        return 400
    if isinstance(error, ConfigurationFailure):
        return 503
    if isinstance(error, DomainException):
        return 422 if error.is_recoverable else 500
    return 500


def error_payload(error: Exception) -> Dict[str, Any]:
    """Serializable error body; never includes tracebacks."""
    if isinstance(error, DomainException):
        return error.to_dict()
    return {
        "type": error.__class__.__name__,
        "message": "Internal server error",
        "details": {},
        "is_recoverable": False,
    }


class ErrorHandler:
    """
    Context manager that logs an exception once, with its details.

    Exceptions always propagate; the handler only records and logs them.

    Usage:
        with ErrorHandler(logger, "submit") as handler:
            image = decode(payload)
    """

    def __init__(self, logger: logging.Logger, context: str = ""):
        self.logger = logger
        self.context = context
        self.error: Optional[Exception] = None

    def __enter__(self) -> "ErrorHandler":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if isinstance(exc_val, Exception):
            self.error = exc_val
            prefix = f"[{self.context}] " if self.context else ""

            if isinstance(exc_val, DomainException):
                self.logger.warning(f"{prefix}{exc_val}")
                if exc_val.details:
                    self.logger.debug(f"Details: {exc_val.details}")
            else:
                self.logger.error(f"{prefix}{exc_val}")
                self.logger.debug(traceback.format_exc())

        return False

    @property
    def has_error(self) -> bool:
        return self.error is not None

    @property
    def is_recoverable(self) -> bool:
        if self.error is None:
            return True
        if isinstance(self.error, DomainException):
            return self.error.is_recoverable
        return False
