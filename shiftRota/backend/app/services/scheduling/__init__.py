"""
Scheduling service package.

Only the pure building blocks are exported here; the database-backed
modules (store, reconciler, availability, cascade) are imported directly:

    from app.services.scheduling import ScheduleKey, normalize
    from app.services.scheduling.reconciler import reconcile_confirm
"""

from .types import (
    ShiftDay,
    ShiftTemplate,
    ScheduleKey,
    Assignee,
    ConfirmOutcome,
    RetractOutcome,
)
from .dates import normalize, month_range, is_last_minute
from .catalog import SHIFT_CATALOG, find_template, templates_for_day

__all__ = [
    # Types
    "ShiftDay",
    "ShiftTemplate",
    "ScheduleKey",
    "Assignee",
    "ConfirmOutcome",
    "RetractOutcome",
    # Calendar
    "normalize",
    "month_range",
    "is_last_minute",
    # Catalog
    "SHIFT_CATALOG",
    "find_template",
    "templates_for_day",
]
