from .patient_repo import PatientDirectory
from .visit_repo import VisitRepository

__all__ = ["PatientDirectory", "VisitRepository"]
