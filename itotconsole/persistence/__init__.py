"""
Persistence Module for the ITOT Console

Provides storage backends for change-control modifications.
"""

from .storage import (
    ModificationStore,
    InMemoryModificationStore,
    JsonFileModificationStore,
    get_default_storage_path,
    ensure_storage_dirs
)

__all__ = [
    "ModificationStore",
    "InMemoryModificationStore",
    "JsonFileModificationStore",
    "get_default_storage_path",
    "ensure_storage_dirs"
]
