"""
Change Control REST API

FastAPI adapter over the workflow coordinator.
"""

from .server import create_app, ERROR_STATUS_CODES

__all__ = [
    "create_app",
    "ERROR_STATUS_CODES"
]
