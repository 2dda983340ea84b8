from .inventory import InMemoryInventoryService
from .lab_catalog import StaticLabCatalog
from .patient_directory import InMemoryPatientDirectory

__all__ = ["InMemoryInventoryService", "InMemoryPatientDirectory", "StaticLabCatalog"]
