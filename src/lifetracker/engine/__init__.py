"""Progress, status and analytics engine.

Pure functions over loaded entities; nothing here reads or writes storage.
"""

from .progress import entity_progress, linked_progress, page_progress, step_progress
from .status import (
    StatusPolicy,
    StatusResult,
    apply_explicit_status,
    apply_lifecycle,
    assess,
    derive_status,
)
from .timeline import time_metrics

__all__ = [
    "entity_progress",
    "linked_progress",
    "page_progress",
    "step_progress",
    "StatusPolicy",
    "StatusResult",
    "apply_explicit_status",
    "apply_lifecycle",
    "assess",
    "derive_status",
    "time_metrics",
]
