"""
Priority queue ordering and department view tests.
"""

from datetime import datetime, timedelta, timezone

import pytest

from clinicflow.adapters.db.memory import InMemoryVisitRepository
from clinicflow.application.use_cases.department_queue import DepartmentQueueService
from clinicflow.domain.entities.visit import Visit
from clinicflow.domain.enums.workflow import Department, VisitPriority, VisitStage
from clinicflow.domain.errors import InvalidVisitDataError
from clinicflow.domain.value_objects.visit_id import VisitId
from clinicflow.domain.workflow import queue

T0 = datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)


def make_visit(stage, priority=VisitPriority.NORMAL, waited_from=0, number=1):
    stage_start = T0 + timedelta(minutes=waited_from)
    return Visit(
        visit_id=VisitId.generate(T0),
        patient_id=f"P{number:03d}",
        patient_name=f"Patient {number}",
        stage=stage,
        start_time=T0,
        stage_start_time=stage_start,
        queue_number=number,
        priority=priority,
    )


def test_emergency_first_then_longest_wait():
    early_normal = make_visit(VisitStage.CONSULTATION, waited_from=0, number=1)
    late_emergency = make_visit(VisitStage.CONSULTATION, VisitPriority.EMERGENCY, waited_from=30, number=2)
    early_urgent = make_visit(VisitStage.CONSULTATION, VisitPriority.URGENT, waited_from=10, number=3)
    late_normal = make_visit(VisitStage.CONSULTATION, waited_from=20, number=4)
    elsewhere = make_visit(VisitStage.LAB, VisitPriority.EMERGENCY, number=5)

    ordered = queue.visits_in_stage(
        [late_normal, early_normal, elsewhere, early_urgent, late_emergency], VisitStage.CONSULTATION
    )

    assert [v.queue_number for v in ordered] == [2, 3, 1, 4]


def test_department_queue_only_shows_its_stages():
    visits = [
        make_visit(VisitStage.VITALS, number=1),
        make_visit(VisitStage.CONSULTATION, number=2),
        make_visit(VisitStage.BILLING, number=3),
    ]

    view = queue.department_queue(visits, [VisitStage.VITALS, VisitStage.CONSULTATION])

    assert list(view) == [VisitStage.VITALS, VisitStage.CONSULTATION]
    assert [v.queue_number for v in view[VisitStage.VITALS]] == [1]
    assert [v.queue_number for v in view[VisitStage.CONSULTATION]] == [2]


def test_stats_cover_every_stage():
    visits = [
        make_visit(VisitStage.LAB, VisitPriority.EMERGENCY, number=1),
        make_visit(VisitStage.LAB, number=2),
        make_visit(VisitStage.BILLING, number=3),
    ]

    stats = queue.queue_stats(visits)

    assert set(stats) == set(VisitStage)
    assert stats[VisitStage.LAB] == {"count": 2, "has_emergency": True}
    assert stats[VisitStage.BILLING] == {"count": 1, "has_emergency": False}
    assert stats[VisitStage.PHARMACY] == {"count": 0, "has_emergency": False}


@pytest.mark.asyncio
async def test_queue_service_reads_from_the_store():
    repository = InMemoryVisitRepository()
    for visit in (
        make_visit(VisitStage.VITALS, number=1),
        make_visit(VisitStage.VITALS, VisitPriority.URGENT, waited_from=5, number=2),
        make_visit(VisitStage.CONSULTATION, number=3),
        make_visit(VisitStage.COMPLETED, number=4),
    ):
        await repository.add(visit)
    service = DepartmentQueueService(repository)

    triage = await service.get_department_queue(Department.TRIAGE)
    assert [v.queue_number for v in triage[VisitStage.VITALS]] == [2, 1]

    dashboard = await service.get_department_queue("dashboard")
    assert set(dashboard) == {VisitStage.VITALS, VisitStage.CONSULTATION}

    stats = await service.get_queue_stats()
    assert stats[VisitStage.VITALS]["count"] == 2
    assert stats[VisitStage.COMPLETED]["count"] == 0

    assert [v.queue_number for v in await service.get_stage_queue("Consultation")] == [3]


@pytest.mark.asyncio
async def test_unknown_department_or_stage_is_rejected():
    service = DepartmentQueueService(InMemoryVisitRepository())
    with pytest.raises(InvalidVisitDataError):
        await service.get_department_queue("radiology")
    with pytest.raises(InvalidVisitDataError):
        await service.get_stage_queue("Radiology")
