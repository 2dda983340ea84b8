"""
MongoDB visit store tests.

These run against a live server named by CLINICFLOW_TEST_MONGO_URI and are
skipped when it is not set. Each test gets its own throwaway database.
"""

import os
import uuid
from datetime import datetime, timezone
from decimal import Decimal

import pytest
import pytest_asyncio

from clinicflow.domain.entities.visit import LabOrder, PrescriptionItem, Visit
from clinicflow.domain.enums.workflow import VisitStage
from clinicflow.domain.errors import ConcurrentModificationError, InvalidVisitDataError, VisitNotFoundError
from clinicflow.domain.value_objects.visit_id import VisitId

MONGO_URI = os.getenv("CLINICFLOW_TEST_MONGO_URI")

pytestmark = pytest.mark.skipif(not MONGO_URI, reason="CLINICFLOW_TEST_MONGO_URI not set")

T0 = datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def repository():
    from beanie import init_beanie
    from pymongo import AsyncMongoClient

    from clinicflow.adapters.db.mongo.models.visit_m import VisitMongo
    from clinicflow.adapters.db.mongo.repositories.visit_repository import MongoVisitRepository

    client = AsyncMongoClient(MONGO_URI, serverSelectionTimeoutMS=5000, tz_aware=True)
    db_name = f"clinicflow_test_{uuid.uuid4().hex[:8]}"
    await init_beanie(database=client[db_name], document_models=[VisitMongo])
    try:
        yield MongoVisitRepository()
    finally:
        await client.drop_database(db_name)
        await client.close()


def make_visit(stage=VisitStage.CONSULTATION):
    return Visit(
        visit_id=VisitId.generate(T0),
        patient_id="P001",
        patient_name="Wanjiku Kamau",
        stage=stage,
        start_time=T0,
        stage_start_time=T0,
        queue_number=1,
        consultation_fee=Decimal("500.50"),
    )


@pytest.mark.asyncio
async def test_add_and_read_back(repository):
    visit = make_visit()
    visit.lab_orders.append(LabOrder.create("T001", "Full Hemogram (CBC)", 800, T0))
    visit.prescription.append(PrescriptionItem("I001", "Paracetamol 500mg", "1x3", 2, Decimal("5.25")))

    stored = await repository.add(visit)
    assert stored.version == 1

    loaded = await repository.find_by_id(visit.visit_id)
    assert loaded.stage == VisitStage.CONSULTATION
    assert loaded.consultation_fee == Decimal("500.50")
    assert loaded.prescription[0].price == Decimal("5.25")
    assert loaded.lab_orders[0].price == Decimal("800")
    assert loaded.start_time == T0
    assert loaded.start_time.tzinfo is not None

    with pytest.raises(InvalidVisitDataError):
        await repository.add(visit)


@pytest.mark.asyncio
async def test_save_bumps_version_and_rejects_stale_copy(repository):
    visit = await repository.add(make_visit())

    first = await repository.find_by_id(visit.visit_id)
    second = await repository.find_by_id(visit.visit_id)

    first.diagnosis = "Malaria"
    saved = await repository.save(first)
    assert saved.version == 2

    second.diagnosis = "lost update"
    with pytest.raises(ConcurrentModificationError):
        await repository.save(second)

    current = await repository.find_by_id(visit.visit_id)
    assert current.diagnosis == "Malaria"
    assert current.version == 2


@pytest.mark.asyncio
async def test_save_unknown_visit(repository):
    with pytest.raises(VisitNotFoundError):
        await repository.save(make_visit())


@pytest.mark.asyncio
async def test_stage_and_patient_lookups(repository):
    await repository.add(make_visit(VisitStage.LAB))
    await repository.add(make_visit(VisitStage.COMPLETED))

    assert [v.stage for v in await repository.find_by_stage(VisitStage.LAB)] == [VisitStage.LAB]
    assert await repository.count_active() == 1
    assert len(await repository.find_by_patient_id("P001")) == 2
