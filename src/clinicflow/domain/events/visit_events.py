"""
Visit lifecycle events emitted by the workflow engine after each commit.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..enums.workflow import VisitPriority, VisitStage


@dataclass(frozen=True)
class VisitEvent:
    """Base class for visit events."""

    visit_id: str
    patient_id: str
    occurred_at: datetime

    @property
    def event_type(self) -> str:
        return type(self).__name__

    def to_payload(self) -> Dict[str, Any]:
        """Flatten to JSON-friendly values for audit logging."""
        payload: Dict[str, Any] = {}
        for key, value in self.__dict__.items():
            if isinstance(value, datetime):
                payload[key] = value.isoformat()
            elif isinstance(value, (VisitStage, VisitPriority)):
                payload[key] = value.value
            else:
                payload[key] = value
        return payload


@dataclass(frozen=True)
class VisitCheckedIn(VisitEvent):
    queue_number: int = 0
    priority: VisitPriority = VisitPriority.NORMAL
    stage: VisitStage = VisitStage.CHECK_IN


@dataclass(frozen=True)
class VisitStageChanged(VisitEvent):
    from_stage: VisitStage = VisitStage.CHECK_IN
    to_stage: VisitStage = VisitStage.CHECK_IN


@dataclass(frozen=True)
class LabResultRecorded(VisitEvent):
    lab_order_id: str = ""
    test_name: str = ""


@dataclass(frozen=True)
class BillingCommitted(VisitEvent):
    total_bill: Any = 0
    routed_to: VisitStage = VisitStage.CLEARANCE


@dataclass(frozen=True)
class MedicationsDispensed(VisitEvent):
    # One entry per prescription line: inventory_id, requested, decremented, shortfall
    lines: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def has_shortfall(self) -> bool:
        return any(line.get("shortfall", 0) > 0 for line in self.lines)


@dataclass(frozen=True)
class VisitCompleted(VisitEvent):
    summary: str = ""
    diagnosis: Optional[str] = None
