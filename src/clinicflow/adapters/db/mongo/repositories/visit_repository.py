"""
MongoDB implementation of VisitRepository.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from beanie.operators import Set

from clinicflow.application.ports.repositories.visit_repo import VisitRepository
from clinicflow.domain.entities.visit import Amount, Insurance, LabOrder, PrescriptionItem, Visit, Vitals
from clinicflow.domain.enums.workflow import LabOrderStatus, PaymentStatus, VisitStage
from clinicflow.domain.errors import ConcurrentModificationError, InvalidVisitDataError, VisitNotFoundError
from clinicflow.domain.value_objects.visit_id import VisitId

from ..models.visit_m import (
    InsuranceMongo,
    LabOrderMongo,
    PrescriptionItemMongo,
    VisitMongo,
    VitalsMongo,
)

logger = logging.getLogger("clinicflow")


def _money_to_str(amount: Amount) -> str:
    return str(amount)


def _str_to_money(value: str) -> Decimal:
    return Decimal(value)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Mongo hands back naive datetimes that are already UTC
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class MongoVisitRepository(VisitRepository):
    """MongoDB implementation of VisitRepository."""

    async def add(self, visit: Visit) -> Visit:
        """Insert a new visit."""
        existing = await VisitMongo.find_one(VisitMongo.visit_id == visit.visit_id.value)
        if existing:
            raise InvalidVisitDataError("visit_id", visit.visit_id.value, "visit already exists")

        visit_mongo = self._domain_to_mongo(visit)
        visit_mongo.version = 1
        await visit_mongo.insert()
        logger.info(f"Visit {visit.visit_id.value} inserted with ID: {visit_mongo.id}")
        return self._mongo_to_domain(visit_mongo)

    async def save(self, visit: Visit) -> Visit:
        """Write the visit back if nobody else committed since it was read."""
        key = visit.visit_id.value
        document = self._domain_to_mongo(visit).model_dump(exclude={"id", "revision_id"})
        document["version"] = visit.version + 1

        result = await VisitMongo.find_one(
            VisitMongo.visit_id == key,
            VisitMongo.version == visit.version,
        ).update(Set(document))

        if not result.matched_count:
            if await VisitMongo.find_one(VisitMongo.visit_id == key) is None:
                raise VisitNotFoundError(key)
            raise ConcurrentModificationError(key, visit.version)

        stored = await VisitMongo.find_one(VisitMongo.visit_id == key)
        return self._mongo_to_domain(stored)

    async def find_by_id(self, visit_id: VisitId) -> Optional[Visit]:
        """Find a visit by ID."""
        visit_mongo = await VisitMongo.find_one(VisitMongo.visit_id == visit_id.value)
        if not visit_mongo:
            return None
        return self._mongo_to_domain(visit_mongo)

    async def find_active(self) -> List[Visit]:
        visits_mongo = await VisitMongo.find(VisitMongo.stage != VisitStage.COMPLETED.value).to_list()
        return [self._mongo_to_domain(visit_mongo) for visit_mongo in visits_mongo]

    async def find_by_stage(self, stage: VisitStage) -> List[Visit]:
        visits_mongo = await VisitMongo.find(VisitMongo.stage == VisitStage(stage).value).to_list()
        return [self._mongo_to_domain(visit_mongo) for visit_mongo in visits_mongo]

    async def find_by_patient_id(self, patient_id: str) -> List[Visit]:
        """Find all visits for a specific patient, newest first."""
        visits_mongo = await VisitMongo.find(
            VisitMongo.patient_id == patient_id
        ).sort([("start_time", -1)]).to_list()
        return [self._mongo_to_domain(visit_mongo) for visit_mongo in visits_mongo]

    async def count_active(self) -> int:
        return await VisitMongo.find(VisitMongo.stage != VisitStage.COMPLETED.value).count()

    def _domain_to_mongo(self, visit: Visit) -> VisitMongo:
        """Convert domain entity to MongoDB model."""
        vitals_mongo = None
        if visit.vitals:
            vitals_mongo = VitalsMongo(
                bp=visit.vitals.bp,
                heart_rate=visit.vitals.heart_rate,
                temp=visit.vitals.temp,
                weight=visit.vitals.weight,
            )

        insurance_mongo = None
        if visit.insurance:
            insurance_mongo = InsuranceMongo(
                provider=visit.insurance.provider,
                member_number=visit.insurance.member_number,
            )

        lab_orders_mongo = [
            LabOrderMongo(
                id=order.id,
                test_id=order.test_id,
                test_name=order.test_name,
                price=_money_to_str(order.price),
                ordered_at=order.ordered_at,
                status=order.status.value,
                result=order.result,
                completed_at=order.completed_at,
            )
            for order in visit.lab_orders
        ]

        prescription_mongo = [
            PrescriptionItemMongo(
                inventory_id=item.inventory_id,
                name=item.name,
                dosage=item.dosage,
                quantity=item.quantity,
                price=_money_to_str(item.price),
            )
            for item in visit.prescription
        ]

        return VisitMongo(
            visit_id=visit.visit_id.value,
            patient_id=visit.patient_id,
            patient_name=visit.patient_name,
            stage=visit.stage.value,
            start_time=visit.start_time,
            stage_start_time=visit.stage_start_time,
            queue_number=visit.queue_number,
            priority=visit.priority.value,
            consultation_fee=_money_to_str(visit.consultation_fee),
            total_bill=_money_to_str(visit.total_bill),
            payment_status=visit.payment_status.value,
            insurance=insurance_mongo,
            skip_vitals=visit.skip_vitals,
            vitals=vitals_mongo,
            chief_complaint=visit.chief_complaint,
            diagnosis=visit.diagnosis,
            doctor_notes=visit.doctor_notes,
            lab_orders=lab_orders_mongo,
            prescription=prescription_mongo,
            medications_dispensed=visit.medications_dispensed,
            completed_at=visit.completed_at,
            version=visit.version,
            updated_at=visit.updated_at,
        )

    def _mongo_to_domain(self, visit_mongo: VisitMongo) -> Visit:
        """Convert MongoDB model to domain entity."""
        vitals = None
        if visit_mongo.vitals:
            vitals = Vitals(
                bp=visit_mongo.vitals.bp,
                heart_rate=visit_mongo.vitals.heart_rate,
                temp=visit_mongo.vitals.temp,
                weight=visit_mongo.vitals.weight,
            )

        insurance = None
        if visit_mongo.insurance:
            insurance = Insurance(
                provider=visit_mongo.insurance.provider,
                member_number=visit_mongo.insurance.member_number,
            )

        lab_orders = [
            LabOrder(
                id=order.id,
                test_id=order.test_id,
                test_name=order.test_name,
                price=_str_to_money(order.price),
                ordered_at=_as_utc(order.ordered_at),
                status=LabOrderStatus(order.status),
                result=order.result,
                completed_at=_as_utc(order.completed_at),
            )
            for order in visit_mongo.lab_orders
        ]

        prescription = [
            PrescriptionItem(
                inventory_id=item.inventory_id,
                name=item.name,
                dosage=item.dosage,
                quantity=item.quantity,
                price=_str_to_money(item.price),
            )
            for item in visit_mongo.prescription
        ]

        return Visit(
            visit_id=VisitId(visit_mongo.visit_id),
            patient_id=visit_mongo.patient_id,
            patient_name=visit_mongo.patient_name,
            stage=VisitStage(visit_mongo.stage),
            start_time=_as_utc(visit_mongo.start_time),
            stage_start_time=_as_utc(visit_mongo.stage_start_time),
            queue_number=visit_mongo.queue_number,
            priority=visit_mongo.priority,
            consultation_fee=_str_to_money(visit_mongo.consultation_fee),
            total_bill=_str_to_money(visit_mongo.total_bill),
            payment_status=PaymentStatus(visit_mongo.payment_status),
            insurance=insurance,
            skip_vitals=visit_mongo.skip_vitals,
            vitals=vitals,
            chief_complaint=visit_mongo.chief_complaint,
            diagnosis=visit_mongo.diagnosis,
            doctor_notes=visit_mongo.doctor_notes,
            lab_orders=lab_orders,
            prescription=prescription,
            medications_dispensed=visit_mongo.medications_dispensed,
            completed_at=_as_utc(visit_mongo.completed_at),
            version=visit_mongo.version,
            updated_at=_as_utc(visit_mongo.updated_at),
        )
