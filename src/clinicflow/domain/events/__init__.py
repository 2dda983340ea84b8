"""
Domain events package.
"""

from .visit_events import (
    BillingCommitted,
    LabResultRecorded,
    MedicationsDispensed,
    VisitCheckedIn,
    VisitCompleted,
    VisitEvent,
    VisitStageChanged,
)

__all__ = [
    "VisitEvent",
    "VisitCheckedIn",
    "VisitStageChanged",
    "LabResultRecorded",
    "BillingCommitted",
    "MedicationsDispensed",
    "VisitCompleted",
]
