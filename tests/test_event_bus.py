"""
In-process event bus and patient history subscriber tests.
"""

from datetime import date, datetime, timezone

import pytest

from clinicflow.adapters.collaborators import InMemoryPatientDirectory
from clinicflow.adapters.collaborators.seed_data import default_patients
from clinicflow.adapters.events import InProcessEventBus, PatientHistorySubscriber
from clinicflow.domain.enums.workflow import VisitStage
from clinicflow.domain.events.visit_events import LabResultRecorded, VisitCompleted, VisitStageChanged

AT = datetime(2024, 3, 1, 11, 30, tzinfo=timezone.utc)
VISIT = "VISIT-20240301-0000ABCD"


def stage_changed():
    return VisitStageChanged(
        visit_id=VISIT,
        patient_id="P001",
        occurred_at=AT,
        from_stage=VisitStage.VITALS,
        to_stage=VisitStage.CONSULTATION,
    )


@pytest.mark.asyncio
async def test_handlers_receive_only_their_type():
    bus = InProcessEventBus()
    everything, completions = [], []

    async def on_any(event):
        everything.append(event)

    async def on_completed(event):
        completions.append(event)

    bus.subscribe(on_any)
    bus.subscribe(on_completed, VisitCompleted)

    await bus.publish(stage_changed())
    await bus.publish(VisitCompleted(visit_id=VISIT, patient_id="P001", occurred_at=AT, summary="done"))

    assert [e.event_type for e in everything] == ["VisitStageChanged", "VisitCompleted"]
    assert [e.summary for e in completions] == ["done"]


@pytest.mark.asyncio
async def test_failing_handler_does_not_stop_others():
    bus = InProcessEventBus()
    received = []

    async def broken(event):
        raise RuntimeError("boom")

    async def working(event):
        received.append(event)

    bus.subscribe(broken)
    bus.subscribe(working)

    await bus.publish(stage_changed())
    assert len(received) == 1


def test_payload_is_json_friendly():
    payload = stage_changed().to_payload()
    assert payload["from_stage"] == "Vitals"
    assert payload["to_stage"] == "Consultation"
    assert payload["occurred_at"] == AT.isoformat()


@pytest.mark.asyncio
async def test_history_subscriber_prepends_summary():
    directory = InMemoryPatientDirectory(default_patients())
    subscriber = PatientHistorySubscriber(directory)

    await subscriber(
        VisitCompleted(visit_id=VISIT, patient_id="P002", occurred_at=AT, summary="[2024-03-01] Dx: Sprain.")
    )

    patient = await directory.find_by_id("P002")
    assert patient.history == ["[2024-03-01] Dx: Sprain.", "Fracture treatment (Sep 2023)"]
    assert patient.last_visit == date(2024, 3, 1)


@pytest.mark.asyncio
async def test_history_subscriber_ignores_other_events_and_unknown_patients():
    directory = InMemoryPatientDirectory(default_patients())
    subscriber = PatientHistorySubscriber(directory)

    await subscriber(
        LabResultRecorded(visit_id=VISIT, patient_id="P001", occurred_at=AT, lab_order_id="LAB-1", test_name="CBC")
    )
    await subscriber(VisitCompleted(visit_id=VISIT, patient_id="P404", occurred_at=AT, summary="x"))

    patient = await directory.find_by_id("P001")
    assert len(patient.history) == 2
