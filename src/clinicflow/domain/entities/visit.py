"""Visit domain entity representing one clinical encounter.

The visit owns its stage-specific data. Every mutator checks that the visit is
in the stage that owns the field and raises ``StageMismatchError`` otherwise;
which stage comes next is decided by ``clinicflow.domain.workflow.routing``.
"""

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Union

from ..enums.workflow import LabOrderStatus, PaymentStatus, VisitPriority, VisitStage
from ..errors import (
    AlreadyDispensedError,
    InvalidTransitionError,
    InvalidVisitDataError,
    LabOrderNotFoundError,
    StageMismatchError,
)
from ..value_objects.visit_id import VisitId

Amount = Union[int, float, Decimal]


def _validate_amount(field_name: str, value: Amount) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise InvalidVisitDataError(field_name, value, "must be a number")
    finite = value.is_finite() if isinstance(value, Decimal) else math.isfinite(value)
    if not finite:
        raise InvalidVisitDataError(field_name, str(value), "must be a finite number")
    if value < 0:
        raise InvalidVisitDataError(field_name, value, "must not be negative")


@dataclass
class Vitals:
    """Vitals as entered by the nurse (free text, may be blank)."""

    bp: str = ""
    heart_rate: str = ""
    temp: str = ""
    weight: str = ""


@dataclass(frozen=True)
class Insurance:
    """Insurance cover captured at check-in."""

    provider: str
    member_number: str


@dataclass
class LabOrder:
    """Lab test ordered during consultation."""

    id: str
    test_id: str
    test_name: str
    price: Amount
    ordered_at: datetime
    status: LabOrderStatus = LabOrderStatus.PENDING
    result: Optional[str] = None
    completed_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        _validate_amount("lab_order.price", self.price)

    @classmethod
    def create(cls, test_id: str, test_name: str, price: Amount, ordered_at: datetime) -> "LabOrder":
        """Create a new pending order with a fresh id."""
        return cls(
            id=f"LAB-{uuid.uuid4().hex[:8].upper()}",
            test_id=test_id,
            test_name=test_name,
            price=price,
            ordered_at=ordered_at,
        )

    @property
    def is_pending(self) -> bool:
        return self.status == LabOrderStatus.PENDING

    def complete(self, result: str, completed_at: datetime) -> None:
        """Attach a result; Pending -> Completed only, never back."""
        if not self.is_pending:
            raise InvalidVisitDataError("lab_order.status", self.status.value, "result already recorded")
        if not result or not result.strip():
            raise InvalidVisitDataError("lab_order.result", result, "result must not be empty")
        self.result = result.strip()
        self.status = LabOrderStatus.COMPLETED
        self.completed_at = completed_at


@dataclass
class PrescriptionItem:
    """One prescribed medication line; price is per unit."""

    inventory_id: str
    name: str
    dosage: str
    quantity: int
    price: Amount

    def __post_init__(self) -> None:
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int) or self.quantity <= 0:
            raise InvalidVisitDataError("prescription.quantity", self.quantity, "must be a positive integer")
        _validate_amount("prescription.price", self.price)

    @property
    def line_total(self) -> Amount:
        return self.price * self.quantity


@dataclass
class Visit:
    """Visit domain entity."""

    visit_id: VisitId
    patient_id: str
    patient_name: str  # Display copy cached at check-in
    stage: VisitStage
    start_time: datetime
    stage_start_time: datetime
    queue_number: int
    priority: VisitPriority = VisitPriority.NORMAL
    consultation_fee: Amount = 0
    total_bill: Amount = 0
    payment_status: PaymentStatus = PaymentStatus.PENDING
    insurance: Optional[Insurance] = None
    skip_vitals: bool = False

    # Vitals stage
    vitals: Optional[Vitals] = None

    # Consultation stage
    chief_complaint: Optional[str] = None
    diagnosis: Optional[str] = None
    doctor_notes: Optional[str] = None
    lab_orders: List[LabOrder] = field(default_factory=list)
    prescription: List[PrescriptionItem] = field(default_factory=list)

    # Pharmacy stage
    medications_dispensed: bool = False

    completed_at: Optional[datetime] = None
    version: int = 0
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not isinstance(self.stage, VisitStage):
            try:
                self.stage = VisitStage(self.stage)
            except ValueError:
                raise InvalidVisitDataError("stage", self.stage, "unknown stage")
        if not isinstance(self.priority, VisitPriority):
            try:
                self.priority = VisitPriority(self.priority)
            except ValueError:
                raise InvalidVisitDataError("priority", self.priority, "unknown priority")
        _validate_amount("consultation_fee", self.consultation_fee)
        if self.stage_start_time < self.start_time:
            raise InvalidVisitDataError(
                "stage_start_time", self.stage_start_time.isoformat(), "must not precede start_time"
            )
        if self.updated_at is None:
            self.updated_at = self.start_time

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        return not self.stage.is_terminal

    @property
    def pending_lab_orders(self) -> List[LabOrder]:
        return [order for order in self.lab_orders if order.is_pending]

    def has_pending_lab_orders(self) -> bool:
        return any(order.is_pending for order in self.lab_orders)

    def find_lab_order(self, lab_order_id: str) -> LabOrder:
        for order in self.lab_orders:
            if order.id == lab_order_id:
                return order
        raise LabOrderNotFoundError(self.visit_id.value, lab_order_id)

    def history_summary(self) -> str:
        """One-line summary appended to the patient's history on discharge."""
        diagnosis_text = f"Dx: {self.diagnosis}" if self.diagnosis else "No Diagnosis"
        notes_text = f"Notes: {self.doctor_notes}" if self.doctor_notes else ""
        return f"[{self.start_time.date().isoformat()}] {diagnosis_text}. {notes_text}".strip()

    # ------------------------------------------------------------------
    # Stage-owned mutations
    # ------------------------------------------------------------------

    def require_stage(self, stage: VisitStage, action: str) -> None:
        if self.stage != stage:
            raise StageMismatchError(self.visit_id.value, self.stage.value, stage.value, action)

    def record_vitals(self, vitals: Vitals, at: datetime) -> None:
        """Store vitals; only the Vitals stage owns them."""
        self.require_stage(VisitStage.VITALS, "record vitals")
        self.vitals = vitals
        self.updated_at = at

    def update_clinical_notes(
        self,
        at: datetime,
        chief_complaint: Optional[str] = None,
        diagnosis: Optional[str] = None,
        doctor_notes: Optional[str] = None,
    ) -> None:
        """Replace whichever consultation notes are provided."""
        self.require_stage(VisitStage.CONSULTATION, "update clinical notes")
        if chief_complaint is not None:
            self.chief_complaint = chief_complaint
        if diagnosis is not None:
            self.diagnosis = diagnosis
        if doctor_notes is not None:
            self.doctor_notes = doctor_notes
        self.updated_at = at

    def add_lab_order(self, order: LabOrder, at: datetime) -> None:
        self.require_stage(VisitStage.CONSULTATION, "order lab tests")
        if any(existing.id == order.id for existing in self.lab_orders):
            raise InvalidVisitDataError("lab_order.id", order.id, "duplicate lab order id")
        self.lab_orders.append(order)
        self.updated_at = at

    def _require_prescription_editable(self, action: str) -> None:
        if self.medications_dispensed:
            raise AlreadyDispensedError(self.visit_id.value)
        self.require_stage(VisitStage.CONSULTATION, action)

    def replace_prescription(self, items: List[PrescriptionItem], at: datetime) -> None:
        self._require_prescription_editable("change prescription")
        self.prescription = list(items)
        self.updated_at = at

    def add_prescription_item(self, item: PrescriptionItem, at: datetime) -> None:
        self._require_prescription_editable("add prescription item")
        self.prescription.append(item)
        self.updated_at = at

    def remove_prescription_item(self, inventory_id: str, at: datetime) -> None:
        self._require_prescription_editable("remove prescription item")
        remaining = [item for item in self.prescription if item.inventory_id != inventory_id]
        if len(remaining) == len(self.prescription):
            raise InvalidVisitDataError("prescription.inventory_id", inventory_id, "not on prescription")
        self.prescription = remaining
        self.updated_at = at

    def record_lab_result(self, lab_order_id: str, result: str, at: datetime) -> LabOrder:
        self.require_stage(VisitStage.LAB, "record lab result")
        order = self.find_lab_order(lab_order_id)
        order.complete(result, at)
        self.updated_at = at
        return order

    def mark_paid(self, total: Amount, at: datetime) -> None:
        self.require_stage(VisitStage.BILLING, "commit billing")
        self.total_bill = total
        self.payment_status = PaymentStatus.PAID
        self.updated_at = at

    def mark_dispensed(self, at: datetime) -> None:
        if self.medications_dispensed:
            raise AlreadyDispensedError(self.visit_id.value)
        self.require_stage(VisitStage.PHARMACY, "dispense medication")
        self.medications_dispensed = True
        self.updated_at = at

    # ------------------------------------------------------------------
    # Stage movement (edges are validated by the routing policy)
    # ------------------------------------------------------------------

    def move_to(self, stage: VisitStage, at: datetime) -> None:
        """Enter ``stage`` and restart the in-stage timer."""
        if not isinstance(stage, VisitStage):
            raise InvalidTransitionError(self.visit_id.value, self.stage.value, str(stage), "unknown stage")
        self.stage = stage
        # Never earlier than the visit itself, even with a skewed clock
        self.stage_start_time = max(at, self.start_time)
        if stage.is_terminal:
            self.completed_at = self.stage_start_time
        self.updated_at = at
