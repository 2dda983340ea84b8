"""
Transition table and guard tests.
"""

from datetime import datetime, timedelta, timezone

import pytest

from clinicflow.domain.entities.visit import LabOrder, PrescriptionItem, Visit
from clinicflow.domain.enums.workflow import PaymentStatus, VisitStage
from clinicflow.domain.errors import InvalidTransitionError
from clinicflow.domain.value_objects.visit_id import VisitId
from clinicflow.domain.workflow import routing

T0 = datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)


def make_visit(stage=VisitStage.CONSULTATION, **kwargs):
    return Visit(
        visit_id=VisitId.generate(T0),
        patient_id="P001",
        patient_name="Wanjiku Kamau",
        stage=stage,
        start_time=T0,
        stage_start_time=T0,
        queue_number=1,
        consultation_fee=500,
        **kwargs,
    )


def pending_order():
    return LabOrder.create("T002", "Malaria Smear", 300, T0)


def test_every_stage_has_a_row():
    assert set(routing.TRANSITIONS) == set(VisitStage)
    assert routing.TRANSITIONS[VisitStage.COMPLETED] == {}


@pytest.mark.parametrize(
    "stage,target",
    [
        (VisitStage.CHECK_IN, VisitStage.LAB),
        (VisitStage.VITALS, VisitStage.BILLING),
        (VisitStage.LAB, VisitStage.BILLING),
        (VisitStage.CONSULTATION, VisitStage.PHARMACY),
        (VisitStage.CLEARANCE, VisitStage.CONSULTATION),
        (VisitStage.COMPLETED, VisitStage.CHECK_IN),
    ],
)
def test_edges_outside_the_table_are_rejected(stage, target):
    visit = make_visit(stage)
    with pytest.raises(InvalidTransitionError) as exc_info:
        routing.validate_transition(visit, target)
    assert exc_info.value.details["reason"] == "edge not in workflow"


def test_unknown_target_is_rejected():
    with pytest.raises(InvalidTransitionError):
        routing.validate_transition(make_visit(), "Radiology")


def test_consultation_branches_on_pending_labs():
    visit = make_visit()
    assert routing.next_stage(visit) == VisitStage.BILLING

    visit.lab_orders.append(pending_order())
    assert routing.next_stage(visit) == VisitStage.LAB
    assert routing.allowed_transitions(visit) == [VisitStage.LAB]


def test_consultation_to_lab_requires_an_order():
    with pytest.raises(InvalidTransitionError) as exc_info:
        routing.validate_transition(make_visit(), VisitStage.LAB)
    assert exc_info.value.details["reason"] == "no pending lab orders"


def test_lab_returns_once_results_are_in():
    order = pending_order()
    visit = make_visit(VisitStage.LAB, lab_orders=[order])
    assert routing.allowed_transitions(visit) == []

    order.complete("Negative", T0 + timedelta(minutes=30))
    assert routing.next_stage(visit) == VisitStage.CONSULTATION
    assert routing.validate_transition(visit, VisitStage.CONSULTATION) == VisitStage.CONSULTATION


def test_billing_branches_on_prescription():
    visit = make_visit(VisitStage.BILLING)
    assert routing.next_stage(visit) == VisitStage.CLEARANCE

    visit.prescription.append(PrescriptionItem("I001", "Paracetamol", "1x3", 2, 5))
    assert routing.next_stage(visit) == VisitStage.PHARMACY
    with pytest.raises(InvalidTransitionError):
        routing.validate_transition(visit, VisitStage.CLEARANCE)


def test_check_in_skip_vitals_edge():
    visit = make_visit(VisitStage.CHECK_IN)
    assert routing.next_stage(visit) == VisitStage.VITALS
    with pytest.raises(InvalidTransitionError):
        routing.validate_transition(visit, VisitStage.CONSULTATION)

    skipping = make_visit(VisitStage.CHECK_IN, skip_vitals=True)
    assert routing.next_stage(skipping) == VisitStage.CONSULTATION
    assert set(routing.allowed_transitions(skipping)) == {VisitStage.VITALS, VisitStage.CONSULTATION}


def test_pharmacy_requires_dispense():
    visit = make_visit(VisitStage.PHARMACY, payment_status=PaymentStatus.PAID)
    with pytest.raises(InvalidTransitionError):
        routing.validate_transition(visit, VisitStage.CLEARANCE)

    visit.medications_dispensed = True
    assert routing.next_stage(visit) == VisitStage.CLEARANCE


def test_completed_has_no_next_stage():
    with pytest.raises(InvalidTransitionError):
        routing.next_stage(make_visit(VisitStage.COMPLETED))


def test_apply_transition_moves_and_restarts_timer():
    visit = make_visit(VisitStage.VITALS)
    later = T0 + timedelta(minutes=7)

    left = routing.apply_transition(visit, VisitStage.CONSULTATION, later)

    assert left == VisitStage.VITALS
    assert visit.stage == VisitStage.CONSULTATION
    assert visit.stage_start_time == later
    assert visit.updated_at == later


def test_apply_transition_refuses_unpaid_entry_to_clearance():
    visit = make_visit(VisitStage.BILLING)
    with pytest.raises(InvalidTransitionError) as exc_info:
        routing.apply_transition(visit, VisitStage.CLEARANCE, T0)
    assert exc_info.value.details["reason"] == "payment not recorded"
    assert visit.stage == VisitStage.BILLING


def test_stage_start_never_precedes_check_in():
    visit = make_visit(VisitStage.VITALS)
    routing.apply_transition(visit, VisitStage.CONSULTATION, T0 - timedelta(minutes=5))
    assert visit.stage_start_time == T0


def test_completion_stamps_completed_at():
    visit = make_visit(VisitStage.CLEARANCE, payment_status=PaymentStatus.PAID)
    done = T0 + timedelta(hours=2)
    routing.apply_transition(visit, VisitStage.COMPLETED, done)
    assert visit.completed_at == done
    assert not visit.is_active
