"""Visit workflow engine: every state change a visit goes through.

Mutations of one visit are serialised behind a per-visit lock, applied to a
private copy loaded from the store and made visible only by ``save``. Guards
are evaluated against the stored state inside the lock, never against what a
department screen read earlier. Each mutation runs under ``asyncio.shield`` so
a cancelled caller cannot leave a half-applied change behind.
"""

import asyncio
import logging
import weakref
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Dict, List, Optional

from ...core.config import WorkflowSettings
from ...core.utils.datetime_utils import get_current_timestamp
from ...domain.entities.visit import Amount, Insurance, LabOrder, PrescriptionItem, Visit, Vitals
from ...domain.enums.workflow import StockPolicy, VisitPriority, VisitStage
from ...domain.errors import (
    AlreadyDispensedError,
    CatalogItemNotFoundError,
    DomainError,
    InsufficientStockError,
    InvalidVisitDataError,
    PatientNotFoundError,
    StageMismatchError,
    VisitNotFoundError,
)
from ...domain.events.visit_events import (
    BillingCommitted,
    LabResultRecorded,
    MedicationsDispensed,
    VisitCheckedIn,
    VisitCompleted,
    VisitEvent,
    VisitStageChanged,
)
from ...domain.value_objects.visit_id import VisitId
from ...domain.workflow import billing, routing, timing
from ...observability.metrics import (
    record_check_in,
    record_error,
    record_stock_shortfall,
    record_transition,
)
from ...observability.tracing import add_span_attribute, set_span_status, trace_operation
from ..ports.repositories.patient_repo import PatientDirectory
from ..ports.repositories.visit_repo import VisitRepository
from ..ports.services.event_publisher import EventPublisher
from ..ports.services.inventory_service import InventoryService, StockDecrement
from ..ports.services.lab_catalog import LabCatalog

logger = logging.getLogger(__name__)

Mutator = Callable[[Visit, datetime], Awaitable[List[VisitEvent]]]
Compensation = Callable[[], Awaitable[None]]


class LabOrderDraft:
    """Lab order as entered by the doctor, before it gets an id."""

    def __init__(self, test_id: str, test_name: str, price: Amount):
        self.test_id = test_id
        self.test_name = test_name
        self.price = price


class ClinicalDataUpdate:
    """Consultation-stage changes.

    Notes replace the stored value when given. ``lab_orders`` are appended as
    new pending orders; ``prescription`` replaces the whole list.
    """

    def __init__(
        self,
        chief_complaint: Optional[str] = None,
        diagnosis: Optional[str] = None,
        doctor_notes: Optional[str] = None,
        lab_orders: Optional[List[LabOrderDraft]] = None,
        prescription: Optional[List[PrescriptionItem]] = None,
    ):
        self.chief_complaint = chief_complaint
        self.diagnosis = diagnosis
        self.doctor_notes = doctor_notes
        self.lab_orders = lab_orders
        self.prescription = prescription


class VisitWorkflowEngine:
    """Orchestrates check-in, stage transitions, billing and dispensing."""

    def __init__(
        self,
        visit_repository: VisitRepository,
        patient_directory: PatientDirectory,
        inventory_service: InventoryService,
        lab_catalog: LabCatalog,
        event_publisher: EventPublisher,
        settings: Optional[WorkflowSettings] = None,
        clock: Callable[[], datetime] = get_current_timestamp,
    ):
        self._visit_repository = visit_repository
        self._patient_directory = patient_directory
        self._inventory_service = inventory_service
        self._lab_catalog = lab_catalog
        self._event_publisher = event_publisher
        self._settings = settings or WorkflowSettings()
        self._clock = clock
        # A lock lives as long as someone holds or waits on it
        self._visit_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()
        self._check_in_lock = asyncio.Lock()

    @property
    def settings(self) -> WorkflowSettings:
        return self._settings

    def now(self) -> datetime:
        return self._clock()

    # ------------------------------------------------------------------
    # Check-in
    # ------------------------------------------------------------------

    async def check_in(
        self,
        patient_id: str,
        priority: VisitPriority = VisitPriority.NORMAL,
        insurance: Optional[Insurance] = None,
        skip_vitals: bool = False,
        consultation_fee: Optional[Amount] = None,
    ) -> Visit:
        """Create a visit for a known patient and queue it."""
        with trace_operation("workflow.check_in", {"patient_id": patient_id}):
            try:
                visit = await self._check_in(patient_id, priority, insurance, skip_vitals, consultation_fee)
            except DomainError as e:
                self._record_rejection("check_in", patient_id, e)
                raise

        record_check_in(visit.priority.value, visit.stage.value)
        logger.info(
            f"Checked in patient {patient_id} as visit {visit.visit_id.value} "
            f"(queue #{visit.queue_number}, {visit.priority.value}, stage {visit.stage.value})"
        )
        await self._publish(
            [
                VisitCheckedIn(
                    visit_id=visit.visit_id.value,
                    patient_id=visit.patient_id,
                    occurred_at=visit.start_time,
                    queue_number=visit.queue_number,
                    priority=visit.priority,
                    stage=visit.stage,
                )
            ]
        )
        return visit

    async def _check_in(
        self,
        patient_id: str,
        priority,
        insurance: Optional[Insurance],
        skip_vitals: bool,
        consultation_fee: Optional[Amount],
    ) -> Visit:
        patient = await self._patient_directory.find_by_id(patient_id)
        if patient is None:
            raise PatientNotFoundError(patient_id)

        try:
            priority = VisitPriority(priority)
        except ValueError:
            raise InvalidVisitDataError("priority", priority, "unknown priority")

        fee = self._settings.default_consultation_fee if consultation_fee is None else consultation_fee

        stage = VisitStage.CHECK_IN
        if self._settings.auto_route_check_in:
            stage = VisitStage.CONSULTATION if skip_vitals else VisitStage.VITALS

        # Queue numbers come from the active count, so check-ins are serialised
        async with self._check_in_lock:
            now = self._clock()
            queue_number = await self._visit_repository.count_active() + 1
            visit = Visit(
                visit_id=VisitId.generate(now),
                patient_id=patient.patient_id,
                patient_name=patient.name,
                stage=stage,
                start_time=now,
                stage_start_time=now,
                queue_number=queue_number,
                priority=priority,
                consultation_fee=fee,
                total_bill=fee,
                insurance=insurance,
                skip_vitals=skip_vitals,
            )
            return await self._visit_repository.add(visit)

    # ------------------------------------------------------------------
    # Vitals
    # ------------------------------------------------------------------

    async def record_vitals(self, visit_id: str, vitals: Vitals) -> Visit:
        async def apply(visit: Visit, now: datetime) -> List[VisitEvent]:
            visit.record_vitals(vitals, now)
            return []

        return await self._mutate(visit_id, "record_vitals", apply)

    async def complete_vitals(self, visit_id: str, vitals: Optional[Vitals] = None) -> Visit:
        """Record vitals (if given) and send the patient to the doctor."""

        async def apply(visit: Visit, now: datetime) -> List[VisitEvent]:
            if vitals is not None:
                visit.record_vitals(vitals, now)
            else:
                visit.require_stage(VisitStage.VITALS, "complete vitals")
            return [self._transition(visit, VisitStage.CONSULTATION, now)]

        return await self._mutate(visit_id, "complete_vitals", apply)

    # ------------------------------------------------------------------
    # Consultation
    # ------------------------------------------------------------------

    async def update_clinical_data(self, visit_id: str, update: ClinicalDataUpdate) -> Visit:
        async def apply(visit: Visit, now: datetime) -> List[VisitEvent]:
            visit.require_stage(VisitStage.CONSULTATION, "update clinical data")
            visit.update_clinical_notes(
                now,
                chief_complaint=update.chief_complaint,
                diagnosis=update.diagnosis,
                doctor_notes=update.doctor_notes,
            )
            for draft in update.lab_orders or []:
                visit.add_lab_order(LabOrder.create(draft.test_id, draft.test_name, draft.price, now), now)
            if update.prescription is not None:
                visit.replace_prescription(update.prescription, now)
            return []

        return await self._mutate(visit_id, "update_clinical_data", apply)

    async def order_lab_test(self, visit_id: str, test_id: str) -> Visit:
        """Order a catalog lab test for the visit."""
        test = await self._lab_catalog.find_test(test_id)
        if test is None:
            error = CatalogItemNotFoundError("Lab test", test_id)
            self._record_rejection("order_lab_test", visit_id, error)
            raise error

        async def apply(visit: Visit, now: datetime) -> List[VisitEvent]:
            visit.add_lab_order(LabOrder.create(test.test_id, test.name, test.price, now), now)
            return []

        return await self._mutate(visit_id, "order_lab_test", apply)

    async def add_prescription_item(self, visit_id: str, inventory_id: str, dosage: str, quantity: int) -> Visit:
        """Prescribe an inventory item at its catalog unit price."""
        item = await self._inventory_service.get_item(inventory_id)
        if item is None:
            error = CatalogItemNotFoundError("Inventory", inventory_id)
            self._record_rejection("add_prescription_item", visit_id, error)
            raise error

        async def apply(visit: Visit, now: datetime) -> List[VisitEvent]:
            line = PrescriptionItem(
                inventory_id=item.inventory_id,
                name=item.name,
                dosage=dosage,
                quantity=quantity,
                price=item.price,
            )
            visit.add_prescription_item(line, now)
            return []

        return await self._mutate(visit_id, "add_prescription_item", apply)

    async def remove_prescription_item(self, visit_id: str, inventory_id: str) -> Visit:
        async def apply(visit: Visit, now: datetime) -> List[VisitEvent]:
            visit.remove_prescription_item(inventory_id, now)
            return []

        return await self._mutate(visit_id, "remove_prescription_item", apply)

    # ------------------------------------------------------------------
    # Lab
    # ------------------------------------------------------------------

    async def record_lab_result(self, visit_id: str, lab_order_id: str, result: str) -> Visit:
        async def apply(visit: Visit, now: datetime) -> List[VisitEvent]:
            order = visit.record_lab_result(lab_order_id, result, now)
            return [
                LabResultRecorded(
                    visit_id=visit.visit_id.value,
                    patient_id=visit.patient_id,
                    occurred_at=now,
                    lab_order_id=order.id,
                    test_name=order.test_name,
                )
            ]

        return await self._mutate(visit_id, "record_lab_result", apply)

    # ------------------------------------------------------------------
    # Billing
    # ------------------------------------------------------------------

    async def commit_billing(self, visit_id: str) -> Visit:
        """Total the bill, mark it paid and route to Pharmacy or Clearance."""

        async def apply(visit: Visit, now: datetime) -> List[VisitEvent]:
            visit.require_stage(VisitStage.BILLING, "commit billing")
            return self._settle_bill(visit, None, now)

        return await self._mutate(visit_id, "commit_billing", apply)

    def _settle_bill(self, visit: Visit, target: Optional[VisitStage], now: datetime) -> List[VisitEvent]:
        # Payment, total and destination are applied to the same copy and
        # committed by a single save
        destination = routing.validate_transition(visit, target or routing.next_stage(visit))
        total = billing.compute_total(visit)
        visit.mark_paid(total, now)
        stage_changed = self._transition(visit, destination, now)
        return [
            BillingCommitted(
                visit_id=visit.visit_id.value,
                patient_id=visit.patient_id,
                occurred_at=now,
                total_bill=total,
                routed_to=destination,
            ),
            stage_changed,
        ]

    # ------------------------------------------------------------------
    # Pharmacy
    # ------------------------------------------------------------------

    async def dispense_medication(self, visit_id: str) -> Visit:
        """Dispense every prescription line once and send the visit to Clearance."""
        applied: List[StockDecrement] = []

        async def apply(visit: Visit, now: datetime) -> List[VisitEvent]:
            if visit.medications_dispensed:
                raise AlreadyDispensedError(visit.visit_id.value)
            visit.require_stage(VisitStage.PHARMACY, "dispense medication")

            lines = await self._take_stock(visit, applied)
            visit.mark_dispensed(now)
            stage_changed = self._transition(visit, VisitStage.CLEARANCE, now)
            return [
                MedicationsDispensed(
                    visit_id=visit.visit_id.value,
                    patient_id=visit.patient_id,
                    occurred_at=now,
                    lines=lines,
                ),
                stage_changed,
            ]

        async def give_back() -> None:
            await self._restock(applied)

        return await self._mutate(visit_id, "dispense_medication", apply, compensate=give_back)

    async def _take_stock(self, visit: Visit, applied: List[StockDecrement]) -> List[Dict[str, object]]:
        policy = self._settings.stock_policy
        allow_partial = policy == StockPolicy.CLAMP

        if not allow_partial:
            await self._ensure_stock_available(visit)

        lines: List[Dict[str, object]] = []
        try:
            for item in visit.prescription:
                try:
                    outcome = await self._inventory_service.decrement_stock(
                        item.inventory_id, item.quantity, allow_partial=allow_partial
                    )
                except CatalogItemNotFoundError:
                    if not allow_partial:
                        raise
                    logger.warning(
                        f"Item {item.inventory_id} on visit {visit.visit_id.value} is not in inventory; "
                        f"dispensed without a stock change"
                    )
                    outcome = StockDecrement(item.inventory_id, item.quantity, 0, 0)
                else:
                    applied.append(outcome)

                if outcome.shortfall:
                    logger.warning(
                        f"Stock shortfall dispensing {item.name} for visit {visit.visit_id.value}: "
                        f"requested {outcome.requested}, took {outcome.decremented}"
                    )
                    record_stock_shortfall(item.inventory_id, outcome.shortfall)
                lines.append(
                    {
                        "inventory_id": item.inventory_id,
                        "requested": outcome.requested,
                        "decremented": outcome.decremented,
                        "shortfall": outcome.shortfall,
                    }
                )
        except DomainError:
            await self._restock(applied)
            applied.clear()
            raise
        return lines

    async def _ensure_stock_available(self, visit: Visit) -> None:
        required: Dict[str, int] = {}
        for item in visit.prescription:
            required[item.inventory_id] = required.get(item.inventory_id, 0) + item.quantity

        for inventory_id, quantity in required.items():
            stock_item = await self._inventory_service.get_item(inventory_id)
            if stock_item is None:
                raise CatalogItemNotFoundError("Inventory", inventory_id)
            if stock_item.stock < quantity:
                raise InsufficientStockError(inventory_id, quantity, stock_item.stock)

    async def _restock(self, applied: List[StockDecrement]) -> None:
        for outcome in applied:
            if outcome.decremented:
                await self._inventory_service.restock(outcome.inventory_id, outcome.decremented)
                logger.info(f"Returned {outcome.decremented} unit(s) of {outcome.inventory_id} to stock")

    # ------------------------------------------------------------------
    # Clearance / generic transitions
    # ------------------------------------------------------------------

    async def discharge(self, visit_id: str) -> Visit:
        """Clearance -> Completed."""

        async def apply(visit: Visit, now: datetime) -> List[VisitEvent]:
            return self._complete(visit, now)

        return await self._mutate(visit_id, "discharge", apply)

    def _complete(self, visit: Visit, now: datetime) -> List[VisitEvent]:
        stage_changed = self._transition(visit, VisitStage.COMPLETED, now)
        return [
            stage_changed,
            VisitCompleted(
                visit_id=visit.visit_id.value,
                patient_id=visit.patient_id,
                occurred_at=now,
                summary=visit.history_summary(),
                diagnosis=visit.diagnosis,
            ),
        ]

    async def advance(
        self,
        visit_id: str,
        target: Optional[VisitStage] = None,
        expected_stage: Optional[VisitStage] = None,
    ) -> Visit:
        """Move a visit along the transition table.

        Without ``target`` the routing policy picks the destination. Passing
        ``expected_stage`` (the stage the caller's screen showed) rejects the
        request if the visit has moved on since it was read.
        """

        async def apply(visit: Visit, now: datetime) -> List[VisitEvent]:
            if expected_stage is not None:
                expected = routing.coerce_stage(visit, expected_stage)
                if visit.stage != expected:
                    raise StageMismatchError(visit.visit_id.value, visit.stage.value, expected.value, "advance")
            if visit.stage == VisitStage.BILLING:
                return self._settle_bill(visit, target, now)

            destination = target if target is not None else routing.next_stage(visit)
            if routing.validate_transition(visit, destination) == VisitStage.COMPLETED:
                return self._complete(visit, now)
            return [self._transition(visit, destination, now)]

        return await self._mutate(visit_id, "advance", apply)

    def _transition(self, visit: Visit, target: VisitStage, now: datetime) -> VisitStageChanged:
        from_stage = routing.apply_transition(visit, target, now)
        return VisitStageChanged(
            visit_id=visit.visit_id.value,
            patient_id=visit.patient_id,
            occurred_at=now,
            from_stage=from_stage,
            to_stage=visit.stage,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_visit(self, visit_id: str) -> Visit:
        return await self._load(visit_id)

    async def list_active_visits(self) -> List[Visit]:
        return await self._visit_repository.find_active()

    async def list_patient_visits(self, patient_id: str) -> List[Visit]:
        return await self._visit_repository.find_by_patient_id(patient_id)

    async def allowed_transitions(self, visit_id: str) -> List[VisitStage]:
        visit = await self._load(visit_id)
        return routing.allowed_transitions(visit)

    async def wait_in_stage(self, visit_id: str) -> timedelta:
        visit = await self._load(visit_id)
        return timing.wait_in_stage(visit, self._clock())

    async def total_visit_duration(self, visit_id: str) -> timedelta:
        visit = await self._load(visit_id)
        return timing.total_visit_duration(visit, self._clock())

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    async def _load(self, visit_id: str) -> Visit:
        try:
            key = VisitId(visit_id)
        except ValueError:
            raise VisitNotFoundError(visit_id)
        visit = await self._visit_repository.find_by_id(key)
        if visit is None:
            raise VisitNotFoundError(visit_id)
        return visit

    def _lock_for(self, visit_id: str) -> asyncio.Lock:
        lock = self._visit_locks.get(visit_id)
        if lock is None:
            lock = asyncio.Lock()
            self._visit_locks[visit_id] = lock
        return lock

    async def _mutate(
        self,
        visit_id: str,
        operation: str,
        mutator: Mutator,
        compensate: Optional[Compensation] = None,
    ) -> Visit:
        return await asyncio.shield(self._apply(visit_id, operation, mutator, compensate))

    async def _apply(
        self,
        visit_id: str,
        operation: str,
        mutator: Mutator,
        compensate: Optional[Compensation],
    ) -> Visit:
        with trace_operation(f"workflow.{operation}", {"visit_id": visit_id}) as span:
            lock = self._lock_for(visit_id)
            try:
                async with lock:
                    visit = await self._load(visit_id)
                    try:
                        events = await mutator(visit, self._clock())
                        saved = await self._visit_repository.save(visit)
                    except Exception:
                        if compensate is not None:
                            await compensate()
                        raise
            except DomainError as e:
                set_span_status(span, False, e.error_code)
                self._record_rejection(operation, visit_id, e)
                raise
            add_span_attribute(span, "visit.stage", saved.stage.value)
            set_span_status(span, True)

        for event in events:
            if isinstance(event, VisitStageChanged):
                record_transition(event.from_stage.value, event.to_stage.value)
                logger.info(
                    f"Visit {visit_id} moved {event.from_stage.value} -> {event.to_stage.value}"
                )
        await self._publish(events)
        return saved

    def _record_rejection(self, operation: str, subject_id: str, error: DomainError) -> None:
        record_error(error.error_code or type(error).__name__, operation)
        logger.warning(f"Rejected {operation} for {subject_id}: {error.message}")

    async def _publish(self, events: List[VisitEvent]) -> None:
        for event in events:
            await self._event_publisher.publish(event)
