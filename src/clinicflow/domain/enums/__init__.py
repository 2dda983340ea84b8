"""
Domain enums package.
"""

from .workflow import (
    DEPARTMENT_STAGES,
    Department,
    LabOrderStatus,
    PaymentStatus,
    StockPolicy,
    VisitPriority,
    VisitStage,
)

__all__ = [
    "VisitStage",
    "VisitPriority",
    "PaymentStatus",
    "LabOrderStatus",
    "StockPolicy",
    "Department",
    "DEPARTMENT_STAGES",
]
