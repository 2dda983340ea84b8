"""
Domain entities package.
"""

from .patient import Patient
from .visit import Insurance, LabOrder, PrescriptionItem, Visit, Vitals

__all__ = [
    "Patient",
    "Visit",
    "Vitals",
    "Insurance",
    "LabOrder",
    "PrescriptionItem",
]
