"""
Stage transition table and routing decisions for the visit workflow.

Each edge carries a guard returning ``None`` when the edge may be taken or a
short reason when it may not. Consultation (Lab vs Billing) and Billing
(Pharmacy vs Clearance) are the only conditional branch points.
"""

from datetime import datetime
from typing import Callable, Dict, List, Optional

from ..entities.visit import Visit
from ..enums.workflow import PaymentStatus, VisitStage
from ..errors import InvalidTransitionError

Guard = Callable[[Visit], Optional[str]]


def _always(visit: Visit) -> Optional[str]:
    return None


def _skip_vitals_requested(visit: Visit) -> Optional[str]:
    if not visit.skip_vitals:
        return "vitals were not skipped at check-in"
    return None


def _has_pending_lab_orders(visit: Visit) -> Optional[str]:
    if not visit.has_pending_lab_orders():
        return "no pending lab orders"
    return None


def _no_pending_lab_orders(visit: Visit) -> Optional[str]:
    pending = len(visit.pending_lab_orders)
    if pending:
        return f"{pending} lab order(s) still pending"
    return None


def _has_prescription(visit: Visit) -> Optional[str]:
    if not visit.prescription:
        return "prescription is empty"
    return None


def _no_prescription(visit: Visit) -> Optional[str]:
    if visit.prescription:
        return "prescription must be dispensed in pharmacy"
    return None


def _medications_dispensed(visit: Visit) -> Optional[str]:
    if not visit.medications_dispensed:
        return "medications have not been dispensed"
    return None


TRANSITIONS: Dict[VisitStage, Dict[VisitStage, Guard]] = {
    VisitStage.CHECK_IN: {
        VisitStage.VITALS: _always,
        VisitStage.CONSULTATION: _skip_vitals_requested,
    },
    VisitStage.VITALS: {
        VisitStage.CONSULTATION: _always,
    },
    VisitStage.CONSULTATION: {
        VisitStage.LAB: _has_pending_lab_orders,
        VisitStage.BILLING: _no_pending_lab_orders,
    },
    VisitStage.LAB: {
        VisitStage.CONSULTATION: _no_pending_lab_orders,
    },
    VisitStage.BILLING: {
        VisitStage.PHARMACY: _has_prescription,
        VisitStage.CLEARANCE: _no_prescription,
    },
    VisitStage.PHARMACY: {
        VisitStage.CLEARANCE: _medications_dispensed,
    },
    VisitStage.CLEARANCE: {
        VisitStage.COMPLETED: _always,
    },
    VisitStage.COMPLETED: {},
}

# Stages that may only be entered once the bill is paid
PAID_ENTRY_STAGES = frozenset({VisitStage.PHARMACY, VisitStage.CLEARANCE})


def coerce_stage(visit: Visit, target) -> VisitStage:
    """Parse a stage name, rejecting unknown names as an invalid transition."""
    if isinstance(target, VisitStage):
        return target
    try:
        return VisitStage(target)
    except ValueError:
        raise InvalidTransitionError(visit.visit_id.value, visit.stage.value, str(target), "unknown stage")


def next_stage(visit: Visit) -> VisitStage:
    """Decide the destination when the caller does not name one."""
    stage = visit.stage
    if stage == VisitStage.CHECK_IN:
        return VisitStage.CONSULTATION if visit.skip_vitals else VisitStage.VITALS
    if stage == VisitStage.CONSULTATION:
        return VisitStage.LAB if visit.has_pending_lab_orders() else VisitStage.BILLING
    if stage == VisitStage.BILLING:
        return VisitStage.PHARMACY if visit.prescription else VisitStage.CLEARANCE

    edges = TRANSITIONS.get(stage, {})
    if len(edges) != 1:
        raise InvalidTransitionError(visit.visit_id.value, stage.value, None, "no further stage")
    return next(iter(edges))


def validate_transition(visit: Visit, target) -> VisitStage:
    """Check ``target`` against the table and its guard; return it as a stage."""
    to_stage = coerce_stage(visit, target)
    edges = TRANSITIONS.get(visit.stage)
    if edges is None or to_stage not in edges:
        raise InvalidTransitionError(
            visit.visit_id.value, visit.stage.value, to_stage.value, "edge not in workflow"
        )

    reason = edges[to_stage](visit)
    if reason:
        raise InvalidTransitionError(visit.visit_id.value, visit.stage.value, to_stage.value, reason)
    return to_stage


def allowed_transitions(visit: Visit) -> List[VisitStage]:
    """Destinations whose guards pass for the visit as it stands."""
    edges = TRANSITIONS.get(visit.stage, {})
    return [stage for stage, guard in edges.items() if guard(visit) is None]


def apply_transition(visit: Visit, target, at: datetime) -> VisitStage:
    """Validate and move the visit; returns the stage it left."""
    to_stage = validate_transition(visit, target)
    if to_stage in PAID_ENTRY_STAGES and visit.payment_status != PaymentStatus.PAID:
        raise InvalidTransitionError(
            visit.visit_id.value, visit.stage.value, to_stage.value, "payment not recorded"
        )
    from_stage = visit.stage
    visit.move_to(to_stage, at)
    return from_stage
