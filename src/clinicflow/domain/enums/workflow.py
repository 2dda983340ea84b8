"""
Stage, priority and status enums for the visit workflow.
"""

from enum import Enum


class VisitStage(str, Enum):
    """Departmental stage a visit currently occupies."""

    CHECK_IN = "Check-In"
    VITALS = "Vitals"
    CONSULTATION = "Consultation"
    LAB = "Lab"
    BILLING = "Billing"
    PHARMACY = "Pharmacy"
    CLEARANCE = "Clearance"
    COMPLETED = "Completed"

    @property
    def is_terminal(self) -> bool:
        return self is VisitStage.COMPLETED


class VisitPriority(str, Enum):
    """Triage urgency set at check-in."""

    NORMAL = "Normal"
    URGENT = "Urgent"
    EMERGENCY = "Emergency"

    @property
    def rank(self) -> int:
        """Queue rank; higher is served first."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    VisitPriority.NORMAL: 1,
    VisitPriority.URGENT: 2,
    VisitPriority.EMERGENCY: 3,
}


class PaymentStatus(str, Enum):
    PENDING = "Pending"
    PAID = "Paid"


class LabOrderStatus(str, Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"


class StockPolicy(str, Enum):
    """What dispensing does when inventory cannot cover a line."""

    CLAMP = "clamp"    # Floor stock at zero and report the shortfall
    REJECT = "reject"  # Refuse the dispense, nothing changes


class Department(str, Enum):
    """Staff views over the stage queues."""

    RECEPTION = "reception"
    TRIAGE = "triage"
    DOCTOR = "doctor"
    LAB = "lab"
    CASHIER = "cashier"
    PHARMACY = "pharmacy"
    CLEARANCE = "clearance"
    DASHBOARD = "dashboard"


DEPARTMENT_STAGES = {
    Department.RECEPTION: (VisitStage.CHECK_IN,),
    Department.TRIAGE: (VisitStage.VITALS,),
    Department.DOCTOR: (VisitStage.CONSULTATION,),
    Department.LAB: (VisitStage.LAB,),
    Department.CASHIER: (VisitStage.BILLING,),
    Department.PHARMACY: (VisitStage.PHARMACY,),
    Department.CLEARANCE: (VisitStage.CLEARANCE,),
    Department.DASHBOARD: (VisitStage.VITALS, VisitStage.CONSULTATION),
}
