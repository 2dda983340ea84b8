"""
Shared fixtures: a controllable clock and an engine wired to in-memory adapters.
"""

from datetime import datetime, timedelta, timezone

import pytest

from clinicflow.adapters.collaborators import InMemoryInventoryService, InMemoryPatientDirectory, StaticLabCatalog
from clinicflow.adapters.collaborators.seed_data import default_inventory, default_lab_tests, default_patients
from clinicflow.adapters.db.memory import InMemoryVisitRepository
from clinicflow.adapters.events import InProcessEventBus, PatientHistorySubscriber
from clinicflow.application.ports.services.inventory_service import InventoryItem
from clinicflow.application.ports.services.lab_catalog import LabTest
from clinicflow.application.use_cases.visit_workflow import VisitWorkflowEngine
from clinicflow.core.config import WorkflowSettings
from clinicflow.domain.events.visit_events import VisitCompleted

CLINIC_OPENS = datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = CLINIC_OPENS):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


class EventRecorder:
    def __init__(self):
        self.events = []

    async def __call__(self, event):
        self.events.append(event)

    def of_type(self, event_type):
        return [e for e in self.events if isinstance(e, event_type)]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def visit_repository():
    return InMemoryVisitRepository()


@pytest.fixture
def patient_directory():
    return InMemoryPatientDirectory(default_patients())


@pytest.fixture
def inventory():
    items = default_inventory() + [
        InventoryItem("INV001", "Paracetamol", 100, "Tablets", "Medicine", 300),
        InventoryItem("INV002", "Amoxicillin", 3, "Capsules", "Medicine", 150),
    ]
    return InMemoryInventoryService(items)


@pytest.fixture
def lab_catalog():
    return StaticLabCatalog(default_lab_tests() + [LabTest("LT500", "Malaria Smear", 500, "Microbiology")])


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture
def event_bus(patient_directory, recorder):
    bus = InProcessEventBus()
    bus.subscribe(PatientHistorySubscriber(patient_directory), VisitCompleted)
    bus.subscribe(recorder)
    return bus


@pytest.fixture
def make_engine(visit_repository, patient_directory, inventory, lab_catalog, event_bus, clock):
    """Build an engine over the shared fixtures; keyword args override workflow settings."""

    def _make(**overrides):
        settings = WorkflowSettings(**overrides)
        return VisitWorkflowEngine(
            visit_repository=visit_repository,
            patient_directory=patient_directory,
            inventory_service=inventory,
            lab_catalog=lab_catalog,
            event_publisher=event_bus,
            settings=settings,
            clock=clock,
        )

    return _make


@pytest.fixture
def engine(make_engine):
    return make_engine(default_consultation_fee=500)
