"""
In-process patient directory.
"""

import copy
import logging
from datetime import date
from typing import Dict, Iterable, Optional

from ...application.ports.repositories.patient_repo import PatientDirectory
from ...domain.entities.patient import Patient

logger = logging.getLogger("clinicflow")


class InMemoryPatientDirectory(PatientDirectory):
    """Dict-backed patient directory."""

    def __init__(self, patients: Optional[Iterable[Patient]] = None):
        self._patients: Dict[str, Patient] = {}
        for patient in patients or []:
            self._patients[patient.patient_id] = copy.deepcopy(patient)

    async def find_by_id(self, patient_id: str) -> Optional[Patient]:
        patient = self._patients.get(patient_id)
        return copy.deepcopy(patient) if patient is not None else None

    async def append_visit_summary(self, patient_id: str, summary: str, visit_date: date) -> bool:
        patient = self._patients.get(patient_id)
        if patient is None:
            logger.warning(f"Cannot append visit summary: patient {patient_id} not found")
            return False
        patient.record_visit(summary, visit_date)
        return True
