"""
Patient API schemas.
"""

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field

from ...domain.entities.patient import Patient


class PatientSchema(BaseModel):
    patient_id: str = Field(..., description="Patient ID")
    name: str = Field(..., description="Patient name")
    phone: str = Field("", description="Phone number")
    last_visit: Optional[date] = Field(None, description="Date of the last completed visit")
    history: List[str] = Field(default_factory=list, description="Visit summaries, newest first")

    @classmethod
    def from_domain(cls, patient: Patient) -> "PatientSchema":
        return cls(
            patient_id=patient.patient_id,
            name=patient.name,
            phone=patient.phone,
            last_visit=patient.last_visit,
            history=list(patient.history),
        )
