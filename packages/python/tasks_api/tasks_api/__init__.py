"""Expose the team tasks FastAPI router."""

from .errors import install_error_handlers
from .router import router

__all__ = ["router", "install_error_handlers"]
