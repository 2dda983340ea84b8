"""
Patient directory interface (external master-record store).
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional

from ....domain.entities.patient import Patient


class PatientDirectory(ABC):
    """Read access to patients plus the history append done on discharge."""

    @abstractmethod
    async def find_by_id(self, patient_id: str) -> Optional[Patient]:
        """Find a patient by ID."""
        pass

    @abstractmethod
    async def append_visit_summary(self, patient_id: str, summary: str, visit_date: date) -> bool:
        """Prepend a visit summary to the patient's history; False if unknown."""
        pass
