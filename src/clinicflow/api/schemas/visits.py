"""
Visit workflow API schemas.
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ...core.utils.datetime_utils import format_duration
from ...domain.entities.visit import Visit
from ...domain.enums.workflow import VisitPriority, VisitStage
from ...domain.workflow import billing, timing


# ============================================================================
# REQUESTS
# ============================================================================


class InsuranceSchema(BaseModel):
    """Insurance cover captured at check-in."""

    provider: str = Field(..., min_length=1, description="Insurance provider")
    member_number: str = Field(..., min_length=1, description="Member number")


class VitalsSchema(BaseModel):
    """Vitals as entered by the nurse."""

    bp: str = Field("", description="Blood pressure, e.g. 120/80")
    heart_rate: str = Field("", description="Heart rate (bpm)")
    temp: str = Field("", description="Temperature (C)")
    weight: str = Field("", description="Weight (kg)")


class CheckInRequest(BaseModel):
    patient_id: str = Field(..., min_length=1, description="Patient ID from the directory")
    priority: VisitPriority = Field(VisitPriority.NORMAL, description="Normal, Urgent or Emergency")
    insurance: Optional[InsuranceSchema] = Field(None, description="Insurance cover, if any")
    skip_vitals: bool = Field(False, description="Send the patient straight to consultation")
    consultation_fee: Optional[Decimal] = Field(None, ge=0, description="Override the default consultation fee")


class CompleteVitalsRequest(BaseModel):
    vitals: Optional[VitalsSchema] = Field(None, description="Vitals to record before moving on")


class LabOrderDraftSchema(BaseModel):
    test_id: str = Field(..., min_length=1, description="Catalog test ID")
    test_name: str = Field(..., min_length=1, description="Test name")
    price: Decimal = Field(..., ge=0, description="Test price")


class PrescriptionItemSchema(BaseModel):
    inventory_id: str = Field(..., min_length=1, description="Inventory item ID")
    name: str = Field(..., min_length=1, description="Medication name")
    dosage: str = Field("", description="Dosage instructions, e.g. 1x3")
    quantity: int = Field(..., gt=0, description="Units to dispense")
    price: Decimal = Field(..., ge=0, description="Unit price")


class ClinicalDataRequest(BaseModel):
    """Consultation update; omitted fields are left as they are."""

    chief_complaint: Optional[str] = Field(None, description="Chief complaint")
    diagnosis: Optional[str] = Field(None, description="Diagnosis")
    doctor_notes: Optional[str] = Field(None, description="Doctor notes")
    lab_orders: Optional[List[LabOrderDraftSchema]] = Field(None, description="Lab tests to order")
    prescription: Optional[List[PrescriptionItemSchema]] = Field(None, description="Replaces the prescription")


class OrderLabTestRequest(BaseModel):
    test_id: str = Field(..., min_length=1, description="Catalog test ID")


class AddPrescriptionItemRequest(BaseModel):
    inventory_id: str = Field(..., min_length=1, description="Inventory item ID")
    dosage: str = Field("", description="Dosage instructions")
    quantity: int = Field(..., gt=0, description="Units to dispense")


class LabResultRequest(BaseModel):
    result: str = Field(..., min_length=1, description="Result text")


class AdvanceRequest(BaseModel):
    target: Optional[VisitStage] = Field(None, description="Destination stage; routing decides when omitted")
    expected_stage: Optional[VisitStage] = Field(
        None, description="Stage the caller last saw; rejected if the visit has moved on"
    )


# ============================================================================
# RESPONSES
# ============================================================================


class LabOrderSchema(BaseModel):
    id: str
    test_id: str
    test_name: str
    price: Decimal
    status: str
    ordered_at: datetime
    result: Optional[str] = None
    completed_at: Optional[datetime] = None


class PrescriptionLineSchema(BaseModel):
    inventory_id: str
    name: str
    dosage: str
    quantity: int
    price: Decimal


class VisitSchema(BaseModel):
    """Full visit as seen by department screens."""

    visit_id: str = Field(..., description="Visit ID")
    patient_id: str = Field(..., description="Patient ID")
    patient_name: str = Field(..., description="Patient name")
    stage: VisitStage = Field(..., description="Current stage")
    priority: VisitPriority = Field(..., description="Triage priority")
    queue_number: int = Field(..., description="Queue number assigned at check-in")
    start_time: datetime
    stage_start_time: datetime
    completed_at: Optional[datetime] = None
    consultation_fee: Decimal
    total_bill: Decimal
    payment_status: str
    insurance: Optional[InsuranceSchema] = None
    skip_vitals: bool = False
    vitals: Optional[VitalsSchema] = None
    chief_complaint: Optional[str] = None
    diagnosis: Optional[str] = None
    doctor_notes: Optional[str] = None
    lab_orders: List[LabOrderSchema] = Field(default_factory=list)
    prescription: List[PrescriptionLineSchema] = Field(default_factory=list)
    medications_dispensed: bool = False
    version: int = Field(..., description="Store version, bumped on each commit")
    wait_time: str = Field(..., description="Time in current stage, e.g. 12m")

    @classmethod
    def from_domain(cls, visit: Visit, now: datetime) -> "VisitSchema":
        return cls(
            visit_id=visit.visit_id.value,
            patient_id=visit.patient_id,
            patient_name=visit.patient_name,
            stage=visit.stage,
            priority=visit.priority,
            queue_number=visit.queue_number,
            start_time=visit.start_time,
            stage_start_time=visit.stage_start_time,
            completed_at=visit.completed_at,
            consultation_fee=visit.consultation_fee,
            total_bill=visit.total_bill,
            payment_status=visit.payment_status.value,
            insurance=(
                InsuranceSchema(provider=visit.insurance.provider, member_number=visit.insurance.member_number)
                if visit.insurance
                else None
            ),
            skip_vitals=visit.skip_vitals,
            vitals=(
                VitalsSchema(
                    bp=visit.vitals.bp,
                    heart_rate=visit.vitals.heart_rate,
                    temp=visit.vitals.temp,
                    weight=visit.vitals.weight,
                )
                if visit.vitals
                else None
            ),
            chief_complaint=visit.chief_complaint,
            diagnosis=visit.diagnosis,
            doctor_notes=visit.doctor_notes,
            lab_orders=[
                LabOrderSchema(
                    id=order.id,
                    test_id=order.test_id,
                    test_name=order.test_name,
                    price=order.price,
                    status=order.status.value,
                    ordered_at=order.ordered_at,
                    result=order.result,
                    completed_at=order.completed_at,
                )
                for order in visit.lab_orders
            ],
            prescription=[
                PrescriptionLineSchema(
                    inventory_id=item.inventory_id,
                    name=item.name,
                    dosage=item.dosage,
                    quantity=item.quantity,
                    price=item.price,
                )
                for item in visit.prescription
            ],
            medications_dispensed=visit.medications_dispensed,
            version=visit.version,
            wait_time=format_duration(timing.wait_in_stage(visit, now).total_seconds()),
        )


class BillSchema(BaseModel):
    visit_id: str
    payment_status: str
    consultation_fee: Decimal
    medications: Decimal
    lab_tests: Decimal
    total: Decimal

    @classmethod
    def from_domain(cls, visit: Visit) -> "BillSchema":
        breakdown = billing.bill_breakdown(visit)
        return cls(visit_id=visit.visit_id.value, payment_status=visit.payment_status.value, **breakdown)


class AvailableStepsSchema(BaseModel):
    visit_id: str
    current_stage: VisitStage
    available_steps: List[VisitStage]


class VisitTimingSchema(BaseModel):
    visit_id: str
    stage: VisitStage
    wait_in_stage_seconds: float
    total_duration_seconds: float
    wait_time: str
    total_duration: str


class StageStatsSchema(BaseModel):
    count: int
    has_emergency: bool


class QueueSchema(BaseModel):
    """Ordered queues keyed by stage."""

    queues: Dict[str, List[VisitSchema]]


class QueueStatsSchema(BaseModel):
    stats: Dict[str, StageStatsSchema]
