"""
In-memory visit store and inventory tests.
"""

import asyncio
from datetime import datetime, timezone

import pytest

from clinicflow.adapters.collaborators import InMemoryInventoryService, StaticLabCatalog
from clinicflow.adapters.collaborators.seed_data import default_lab_tests
from clinicflow.adapters.db.memory import InMemoryVisitRepository
from clinicflow.application.ports.services.inventory_service import InventoryItem
from clinicflow.domain.entities.visit import Visit
from clinicflow.domain.enums.workflow import VisitStage
from clinicflow.domain.errors import (
    CatalogItemNotFoundError,
    ConcurrentModificationError,
    InsufficientStockError,
    InvalidVisitDataError,
    VisitNotFoundError,
)
from clinicflow.domain.value_objects.visit_id import VisitId

T0 = datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)


def make_inventory():
    return InMemoryInventoryService(
        [
            InventoryItem("I001", "Paracetamol 500mg", 1500, "Tablets", "Medicine", 5),
            InventoryItem("I002", "Amoxicillin 250mg", 400, "Tablets", "Medicine", 15),
            InventoryItem("I003", "Cotton Wool", 400, "Rolls", "Supply", 150),
            InventoryItem("I004", "Malaria Test Kit", 200, "Kits", "Lab", 200),
        ]
    )


def make_visit(stage=VisitStage.VITALS):
    return Visit(
        visit_id=VisitId.generate(T0),
        patient_id="P001",
        patient_name="Wanjiku Kamau",
        stage=stage,
        start_time=T0,
        stage_start_time=T0,
        queue_number=1,
    )


class TestInMemoryVisitRepository:
    @pytest.mark.asyncio
    async def test_add_starts_at_version_one(self):
        repository = InMemoryVisitRepository()
        stored = await repository.add(make_visit())
        assert stored.version == 1

        with pytest.raises(InvalidVisitDataError):
            await repository.add(stored)

    @pytest.mark.asyncio
    async def test_reads_are_independent_copies(self):
        repository = InMemoryVisitRepository()
        visit = await repository.add(make_visit())

        loaded = await repository.find_by_id(visit.visit_id)
        loaded.diagnosis = "changed locally"

        again = await repository.find_by_id(visit.visit_id)
        assert again.diagnosis is None

    @pytest.mark.asyncio
    async def test_save_rejects_stale_version(self):
        repository = InMemoryVisitRepository()
        visit = await repository.add(make_visit())

        first = await repository.find_by_id(visit.visit_id)
        second = await repository.find_by_id(visit.visit_id)

        first.stage = VisitStage.CONSULTATION
        saved = await repository.save(first)
        assert saved.version == 2

        second.diagnosis = "lost update"
        with pytest.raises(ConcurrentModificationError):
            await repository.save(second)

        current = await repository.find_by_id(visit.visit_id)
        assert current.stage == VisitStage.CONSULTATION
        assert current.diagnosis is None

    @pytest.mark.asyncio
    async def test_save_unknown_visit(self):
        with pytest.raises(VisitNotFoundError):
            await InMemoryVisitRepository().save(make_visit())

    @pytest.mark.asyncio
    async def test_active_and_stage_lookups(self):
        repository = InMemoryVisitRepository()
        await repository.add(make_visit(VisitStage.VITALS))
        await repository.add(make_visit(VisitStage.LAB))
        await repository.add(make_visit(VisitStage.COMPLETED))

        assert await repository.count_active() == 2
        assert len(await repository.find_active()) == 2
        assert [v.stage for v in await repository.find_by_stage(VisitStage.LAB)] == [VisitStage.LAB]
        assert len(await repository.find_by_patient_id("P001")) == 3
        assert await repository.find_by_patient_id("P404") == []


class TestInMemoryInventory:
    @pytest.mark.asyncio
    async def test_clamp_floors_at_zero(self):
        inventory = make_inventory()

        outcome = await inventory.decrement_stock("I001", 1600, allow_partial=True)

        assert outcome.decremented == 1500
        assert outcome.shortfall == 100
        assert outcome.remaining == 0
        assert (await inventory.get_item("I001")).stock == 0

    @pytest.mark.asyncio
    async def test_reject_leaves_stock(self):
        inventory = make_inventory()

        with pytest.raises(InsufficientStockError):
            await inventory.decrement_stock("I002", 401, allow_partial=False)
        assert (await inventory.get_item("I002")).stock == 400

    @pytest.mark.asyncio
    async def test_unknown_item_and_bad_quantity(self):
        inventory = make_inventory()

        with pytest.raises(CatalogItemNotFoundError):
            await inventory.decrement_stock("I999", 1)
        with pytest.raises(InvalidVisitDataError):
            await inventory.decrement_stock("I001", 0)
        with pytest.raises(InvalidVisitDataError):
            await inventory.restock("I001", -3)

    @pytest.mark.asyncio
    async def test_restock_returns_new_level(self):
        inventory = make_inventory()
        await inventory.decrement_stock("I003", 10)
        assert await inventory.restock("I003", 4) == 394

    @pytest.mark.asyncio
    async def test_concurrent_decrements_never_oversell(self):
        inventory = make_inventory()

        outcomes = await asyncio.gather(*(inventory.decrement_stock("I004", 30) for _ in range(10)))

        assert sum(o.decremented for o in outcomes) == 200
        assert (await inventory.get_item("I004")).stock == 0


@pytest.mark.asyncio
async def test_lab_catalog_lookup():
    catalog = StaticLabCatalog(default_lab_tests())
    assert (await catalog.find_test("T006")).name == "X-Ray (Chest)"
    assert await catalog.find_test("T999") is None
    assert len(await catalog.list_tests()) == 6
