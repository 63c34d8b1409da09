"""
Change-Control Workflows

Provides:
- Workflow coordinator
- Per-modification locks
- Filters, statistics, pagination and export
"""

from .locks import KeyedLock
from .queries import (
    ModificationFilters,
    ModificationStats,
    Page,
    filter_modifications,
    compute_statistics,
    paginate
)
from .export import ExportFormat, export_modifications
from .coordinator import WorkflowCoordinator, ReviewDecision

__all__ = [
    # Locks
    "KeyedLock",
    # Queries
    "ModificationFilters",
    "ModificationStats",
    "filter_modifications",
    "compute_statistics",
    "Page",
    "paginate",
    # Export
    "ExportFormat",
    "export_modifications",
    # Coordinator
    "WorkflowCoordinator",
    "ReviewDecision"
]
