"""
HTTP API

FastAPI router exposing the admission controller.
"""

from .router import router, get_controller

__all__ = ["router", "get_controller"]
