"""
MongoDB Beanie models used by the persistence layer.

Money is stored as decimal strings so amounts read back exactly as written.
"""

from datetime import datetime
from typing import List, Optional

from beanie import Document
from pydantic import BaseModel, Field


class VitalsMongo(BaseModel):
    """Embedded vitals."""
    bp: str = ""
    heart_rate: str = ""
    temp: str = ""
    weight: str = ""


class InsuranceMongo(BaseModel):
    """Embedded insurance cover."""
    provider: str = Field(..., description="Insurance provider")
    member_number: str = Field(..., description="Member number")


class LabOrderMongo(BaseModel):
    """Embedded lab order."""
    id: str = Field(..., description="Lab order ID")
    test_id: str = Field(..., description="Catalog test ID")
    test_name: str = Field(..., description="Test name")
    price: str = Field(..., description="Price as decimal string")
    ordered_at: datetime
    status: str = Field(default="Pending", description="Pending or Completed")
    result: Optional[str] = None
    completed_at: Optional[datetime] = None


class PrescriptionItemMongo(BaseModel):
    """Embedded prescription line."""
    inventory_id: str = Field(..., description="Inventory item ID")
    name: str = Field(..., description="Medication name")
    dosage: str = Field(default="", description="Dosage instructions")
    quantity: int = Field(..., description="Units prescribed")
    price: str = Field(..., description="Unit price as decimal string")


class VisitMongo(Document):
    """MongoDB model for visit."""
    visit_id: str = Field(..., description="Visit ID")
    patient_id: str = Field(..., description="Patient ID reference")
    patient_name: str = Field(..., description="Patient name cached at check-in")
    stage: str = Field(..., description="Current workflow stage")
    start_time: datetime
    stage_start_time: datetime
    queue_number: int = Field(..., description="Queue number assigned at check-in")
    priority: str = Field(default="Normal", description="Normal, Urgent or Emergency")
    consultation_fee: str = Field(default="0", description="Consultation fee as decimal string")
    total_bill: str = Field(default="0", description="Total bill as decimal string")
    payment_status: str = Field(default="Pending", description="Pending or Paid")
    insurance: Optional[InsuranceMongo] = None
    skip_vitals: bool = False

    vitals: Optional[VitalsMongo] = None

    chief_complaint: Optional[str] = None
    diagnosis: Optional[str] = None
    doctor_notes: Optional[str] = None
    lab_orders: List[LabOrderMongo] = Field(default_factory=list)
    prescription: List[PrescriptionItemMongo] = Field(default_factory=list)

    medications_dispensed: bool = False

    completed_at: Optional[datetime] = None
    version: int = Field(default=1, description="Optimistic concurrency counter")
    updated_at: Optional[datetime] = None

    class Settings:
        name = "visits"
        indexes = [
            "visit_id",
            "patient_id",
            "stage",
            [("patient_id", 1), ("start_time", -1)],  # Patient visit history, newest first
            [("stage", 1), ("stage_start_time", 1)],  # Stage queues
        ]
