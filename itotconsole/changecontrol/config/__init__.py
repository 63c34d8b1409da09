"""
Configuration

Provides:
- Console settings (defaults, YAML, environment)
- Store factory
- Logging setup
"""

from .settings import (
    Environment,
    StorageBackend,
    ConsoleSettings,
    load_settings,
    build_store,
    setup_logging
)

__all__ = [
    "Environment",
    "StorageBackend",
    "ConsoleSettings",
    "load_settings",
    "build_store",
    "setup_logging"
]
