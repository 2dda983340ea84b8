"""FastAPI dependency providers.

Each collaborator is built once per process; ``reset_dependencies`` drops the
cached instances (tests use it to get a clean store).
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from ..adapters.collaborators import InMemoryInventoryService, InMemoryPatientDirectory, StaticLabCatalog
from ..adapters.collaborators.seed_data import default_inventory, default_lab_tests, default_patients
from ..adapters.db.memory import InMemoryVisitRepository
from ..adapters.events import InProcessEventBus, PatientHistorySubscriber
from ..application.ports.repositories.patient_repo import PatientDirectory
from ..application.ports.repositories.visit_repo import VisitRepository
from ..application.ports.services.event_publisher import EventPublisher
from ..application.ports.services.inventory_service import InventoryService
from ..application.ports.services.lab_catalog import LabCatalog
from ..application.use_cases.department_queue import DepartmentQueueService
from ..application.use_cases.visit_workflow import VisitWorkflowEngine
from ..core.config import get_settings
from ..domain.events.visit_events import VisitCompleted


@lru_cache()
def get_visit_repository() -> VisitRepository:
    """Get visit repository instance for the configured store."""
    if get_settings().workflow.store == "mongo":
        from ..adapters.db.mongo.repositories.visit_repository import MongoVisitRepository

        return MongoVisitRepository()
    return InMemoryVisitRepository()


@lru_cache()
def get_patient_directory() -> PatientDirectory:
    return InMemoryPatientDirectory(default_patients())


@lru_cache()
def get_inventory_service() -> InventoryService:
    return InMemoryInventoryService(default_inventory())


@lru_cache()
def get_lab_catalog() -> LabCatalog:
    return StaticLabCatalog(default_lab_tests())


@lru_cache()
def get_event_publisher() -> EventPublisher:
    """Event bus with the patient-history subscriber attached."""
    bus = InProcessEventBus()
    bus.subscribe(PatientHistorySubscriber(get_patient_directory()), VisitCompleted)
    return bus


@lru_cache()
def get_workflow_engine() -> VisitWorkflowEngine:
    return VisitWorkflowEngine(
        visit_repository=get_visit_repository(),
        patient_directory=get_patient_directory(),
        inventory_service=get_inventory_service(),
        lab_catalog=get_lab_catalog(),
        event_publisher=get_event_publisher(),
        settings=get_settings().workflow,
    )


@lru_cache()
def get_queue_service() -> DepartmentQueueService:
    return DepartmentQueueService(get_visit_repository())


def reset_dependencies() -> None:
    for provider in (
        get_visit_repository,
        get_patient_directory,
        get_inventory_service,
        get_lab_catalog,
        get_event_publisher,
        get_workflow_engine,
        get_queue_service,
    ):
        provider.cache_clear()


WorkflowEngineDep = Annotated[VisitWorkflowEngine, Depends(get_workflow_engine)]
QueueServiceDep = Annotated[DepartmentQueueService, Depends(get_queue_service)]
InventoryServiceDep = Annotated[InventoryService, Depends(get_inventory_service)]
LabCatalogDep = Annotated[LabCatalog, Depends(get_lab_catalog)]
PatientDirectoryDep = Annotated[PatientDirectory, Depends(get_patient_directory)]
