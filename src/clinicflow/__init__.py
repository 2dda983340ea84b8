"""
ClinicFlow: patient-visit workflow engine for outpatient clinics.
"""

__version__ = "0.1.0"
