"""Visit workflow endpoints: one per engine operation plus department queues."""

from typing import List

from fastapi import APIRouter, Request, status

from ...application.use_cases.visit_workflow import ClinicalDataUpdate, LabOrderDraft
from ...core.utils.datetime_utils import format_duration
from ...domain.entities.visit import Insurance, PrescriptionItem, Visit, Vitals
from ...domain.enums.workflow import Department, VisitStage
from ...domain.errors import PatientNotFoundError
from ..deps import PatientDirectoryDep, QueueServiceDep, WorkflowEngineDep
from ..schemas.common import ApiResponse, ErrorResponse
from ..schemas.patients import PatientSchema
from ..schemas.visits import (
    AddPrescriptionItemRequest,
    AdvanceRequest,
    AvailableStepsSchema,
    BillSchema,
    CheckInRequest,
    ClinicalDataRequest,
    CompleteVitalsRequest,
    LabResultRequest,
    OrderLabTestRequest,
    QueueSchema,
    QueueStatsSchema,
    StageStatsSchema,
    VisitSchema,
    VisitTimingSchema,
    VitalsSchema,
)
from ..utils.responses import ok

router = APIRouter(prefix="/workflow", tags=["workflow"])

_NOT_FOUND = {404: {"model": ErrorResponse, "description": "Visit not found"}}
_MUTATION_ERRORS = {
    **_NOT_FOUND,
    409: {"model": ErrorResponse, "description": "Transition or stage rule violated"},
    422: {"model": ErrorResponse, "description": "Invalid visit data"},
}


def _vitals(schema: VitalsSchema) -> Vitals:
    return Vitals(bp=schema.bp, heart_rate=schema.heart_rate, temp=schema.temp, weight=schema.weight)


def _visit_data(engine, visit: Visit) -> VisitSchema:
    return VisitSchema.from_domain(visit, engine.now())


# ----------------------------------------------------------------------------
# Check-in and reads
# ----------------------------------------------------------------------------


@router.post(
    "/check-in",
    response_model=ApiResponse[VisitSchema],
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse, "description": "Patient not found"}},
)
async def check_in(http_request: Request, request: CheckInRequest, engine: WorkflowEngineDep):
    """Create a visit for a known patient and place it in the queue."""
    insurance = None
    if request.insurance:
        insurance = Insurance(provider=request.insurance.provider, member_number=request.insurance.member_number)

    visit = await engine.check_in(
        request.patient_id,
        priority=request.priority,
        insurance=insurance,
        skip_vitals=request.skip_vitals,
        consultation_fee=request.consultation_fee,
    )
    return ok(http_request, data=_visit_data(engine, visit), message="Patient checked in")


@router.get("/visits", response_model=ApiResponse[List[VisitSchema]])
async def list_active_visits(request: Request, engine: WorkflowEngineDep):
    """All visits not yet completed."""
    visits = await engine.list_active_visits()
    return ok(request, data=[_visit_data(engine, visit) for visit in visits])


@router.get("/visits/{visit_id}", response_model=ApiResponse[VisitSchema], responses=_NOT_FOUND)
async def get_visit(request: Request, visit_id: str, engine: WorkflowEngineDep):
    visit = await engine.get_visit(visit_id)
    return ok(request, data=_visit_data(engine, visit))


@router.get(
    "/patients/{patient_id}",
    response_model=ApiResponse[PatientSchema],
    responses={404: {"model": ErrorResponse, "description": "Patient not found"}},
)
async def get_patient(request: Request, patient_id: str, patients: PatientDirectoryDep):
    """Patient record including the visit history written on discharge."""
    patient = await patients.find_by_id(patient_id)
    if patient is None:
        raise PatientNotFoundError(patient_id)
    return ok(request, data=PatientSchema.from_domain(patient))


@router.get("/patients/{patient_id}/visits", response_model=ApiResponse[List[VisitSchema]])
async def list_patient_visits(request: Request, patient_id: str, engine: WorkflowEngineDep):
    """Every visit for a patient, newest first."""
    visits = await engine.list_patient_visits(patient_id)
    return ok(request, data=[_visit_data(engine, visit) for visit in visits])


@router.get("/visits/{visit_id}/available-steps", response_model=ApiResponse[AvailableStepsSchema], responses=_NOT_FOUND)
async def get_available_steps(request: Request, visit_id: str, engine: WorkflowEngineDep):
    """Stages the visit may move to right now."""
    visit = await engine.get_visit(visit_id)
    steps = await engine.allowed_transitions(visit_id)
    return ok(
        request,
        data=AvailableStepsSchema(visit_id=visit_id, current_stage=visit.stage, available_steps=steps),
    )


@router.get("/visits/{visit_id}/timing", response_model=ApiResponse[VisitTimingSchema], responses=_NOT_FOUND)
async def get_visit_timing(request: Request, visit_id: str, engine: WorkflowEngineDep):
    visit = await engine.get_visit(visit_id)
    wait = await engine.wait_in_stage(visit_id)
    duration = await engine.total_visit_duration(visit_id)
    return ok(
        request,
        data=VisitTimingSchema(
            visit_id=visit_id,
            stage=visit.stage,
            wait_in_stage_seconds=wait.total_seconds(),
            total_duration_seconds=duration.total_seconds(),
            wait_time=format_duration(wait.total_seconds()),
            total_duration=format_duration(duration.total_seconds()),
        ),
    )


@router.get("/visits/{visit_id}/bill", response_model=ApiResponse[BillSchema], responses=_NOT_FOUND)
async def get_bill(request: Request, visit_id: str, engine: WorkflowEngineDep):
    """Itemised bill as it would be committed now."""
    visit = await engine.get_visit(visit_id)
    return ok(request, data=BillSchema.from_domain(visit))


# ----------------------------------------------------------------------------
# Stage operations
# ----------------------------------------------------------------------------


@router.put("/visits/{visit_id}/vitals", response_model=ApiResponse[VisitSchema], responses=_MUTATION_ERRORS)
async def record_vitals(request: Request, visit_id: str, vitals: VitalsSchema, engine: WorkflowEngineDep):
    visit = await engine.record_vitals(visit_id, _vitals(vitals))
    return ok(request, data=_visit_data(engine, visit), message="Vitals recorded")


@router.post("/visits/{visit_id}/vitals/complete", response_model=ApiResponse[VisitSchema], responses=_MUTATION_ERRORS)
async def complete_vitals(
    request: Request, visit_id: str, body: CompleteVitalsRequest, engine: WorkflowEngineDep
):
    """Record vitals (optional) and send the patient to the doctor."""
    vitals = _vitals(body.vitals) if body.vitals else None
    visit = await engine.complete_vitals(visit_id, vitals)
    return ok(request, data=_visit_data(engine, visit), message="Vitals completed")


@router.put("/visits/{visit_id}/clinical-data", response_model=ApiResponse[VisitSchema], responses=_MUTATION_ERRORS)
async def update_clinical_data(
    request: Request, visit_id: str, body: ClinicalDataRequest, engine: WorkflowEngineDep
):
    update = ClinicalDataUpdate(
        chief_complaint=body.chief_complaint,
        diagnosis=body.diagnosis,
        doctor_notes=body.doctor_notes,
        lab_orders=(
            [LabOrderDraft(o.test_id, o.test_name, o.price) for o in body.lab_orders]
            if body.lab_orders is not None
            else None
        ),
        prescription=(
            [
                PrescriptionItem(
                    inventory_id=p.inventory_id,
                    name=p.name,
                    dosage=p.dosage,
                    quantity=p.quantity,
                    price=p.price,
                )
                for p in body.prescription
            ]
            if body.prescription is not None
            else None
        ),
    )
    visit = await engine.update_clinical_data(visit_id, update)
    return ok(request, data=_visit_data(engine, visit), message="Clinical data updated")


@router.post("/visits/{visit_id}/lab-orders", response_model=ApiResponse[VisitSchema], responses=_MUTATION_ERRORS)
async def order_lab_test(request: Request, visit_id: str, body: OrderLabTestRequest, engine: WorkflowEngineDep):
    visit = await engine.order_lab_test(visit_id, body.test_id)
    return ok(request, data=_visit_data(engine, visit), message="Lab test ordered")


@router.post(
    "/visits/{visit_id}/lab-orders/{lab_order_id}/result",
    response_model=ApiResponse[VisitSchema],
    responses=_MUTATION_ERRORS,
)
async def record_lab_result(
    request: Request, visit_id: str, lab_order_id: str, body: LabResultRequest, engine: WorkflowEngineDep
):
    visit = await engine.record_lab_result(visit_id, lab_order_id, body.result)
    return ok(request, data=_visit_data(engine, visit), message="Lab result recorded")


@router.post("/visits/{visit_id}/prescription", response_model=ApiResponse[VisitSchema], responses=_MUTATION_ERRORS)
async def add_prescription_item(
    request: Request, visit_id: str, body: AddPrescriptionItemRequest, engine: WorkflowEngineDep
):
    visit = await engine.add_prescription_item(visit_id, body.inventory_id, body.dosage, body.quantity)
    return ok(request, data=_visit_data(engine, visit), message="Prescription item added")


@router.delete(
    "/visits/{visit_id}/prescription/{inventory_id}",
    response_model=ApiResponse[VisitSchema],
    responses=_MUTATION_ERRORS,
)
async def remove_prescription_item(request: Request, visit_id: str, inventory_id: str, engine: WorkflowEngineDep):
    visit = await engine.remove_prescription_item(visit_id, inventory_id)
    return ok(request, data=_visit_data(engine, visit), message="Prescription item removed")


@router.post("/visits/{visit_id}/billing/commit", response_model=ApiResponse[VisitSchema], responses=_MUTATION_ERRORS)
async def commit_billing(request: Request, visit_id: str, engine: WorkflowEngineDep):
    """Record payment and route to Pharmacy or Clearance."""
    visit = await engine.commit_billing(visit_id)
    return ok(request, data=_visit_data(engine, visit), message="Payment recorded")


@router.post("/visits/{visit_id}/dispense", response_model=ApiResponse[VisitSchema], responses=_MUTATION_ERRORS)
async def dispense_medication(request: Request, visit_id: str, engine: WorkflowEngineDep):
    visit = await engine.dispense_medication(visit_id)
    return ok(request, data=_visit_data(engine, visit), message="Medications dispensed")


@router.post("/visits/{visit_id}/discharge", response_model=ApiResponse[VisitSchema], responses=_MUTATION_ERRORS)
async def discharge(request: Request, visit_id: str, engine: WorkflowEngineDep):
    visit = await engine.discharge(visit_id)
    return ok(request, data=_visit_data(engine, visit), message="Visit completed")


@router.post("/visits/{visit_id}/advance", response_model=ApiResponse[VisitSchema], responses=_MUTATION_ERRORS)
async def advance(request: Request, visit_id: str, body: AdvanceRequest, engine: WorkflowEngineDep):
    """Move along the workflow; routing picks the stage when no target is given."""
    visit = await engine.advance(visit_id, target=body.target, expected_stage=body.expected_stage)
    return ok(request, data=_visit_data(engine, visit), message=f"Visit moved to {visit.stage.value}")


# ----------------------------------------------------------------------------
# Queues
# ----------------------------------------------------------------------------


@router.get("/queues/stats", response_model=ApiResponse[QueueStatsSchema])
async def get_queue_stats(request: Request, queues: QueueServiceDep):
    """Count per stage and whether an emergency is waiting there."""
    stats = await queues.get_queue_stats()
    return ok(
        request,
        data=QueueStatsSchema(
            stats={stage.value: StageStatsSchema(**entry) for stage, entry in stats.items()}
        ),
    )


@router.get("/queues/stage/{stage}", response_model=ApiResponse[List[VisitSchema]])
async def get_stage_queue(request: Request, stage: VisitStage, queues: QueueServiceDep, engine: WorkflowEngineDep):
    visits = await queues.get_stage_queue(stage)
    return ok(request, data=[_visit_data(engine, visit) for visit in visits])


@router.get("/queues/{department}", response_model=ApiResponse[QueueSchema])
async def get_department_queue(
    request: Request, department: Department, queues: QueueServiceDep, engine: WorkflowEngineDep
):
    """Queues restricted to the stages a department works on."""
    grouped = await queues.get_department_queue(department)
    return ok(
        request,
        data=QueueSchema(
            queues={
                stage.value: [_visit_data(engine, visit) for visit in visits]
                for stage, visits in grouped.items()
            }
        ),
    )
