"""
Bill computation tests.
"""

import random
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from clinicflow.domain.entities.visit import LabOrder, PrescriptionItem, Visit
from clinicflow.domain.enums.workflow import VisitStage
from clinicflow.domain.value_objects.visit_id import VisitId
from clinicflow.domain.workflow import billing

T0 = datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)


def make_visit(fee, prescription=(), lab_orders=()):
    return Visit(
        visit_id=VisitId.generate(T0),
        patient_id="P001",
        patient_name="Wanjiku Kamau",
        stage=VisitStage.BILLING,
        start_time=T0,
        stage_start_time=T0,
        queue_number=1,
        consultation_fee=fee,
        prescription=list(prescription),
        lab_orders=list(lab_orders),
    )


def test_consultation_only():
    assert billing.compute_total(make_visit(500)) == 500


def test_zero_fee_with_nothing_ordered():
    assert billing.compute_total(make_visit(0)) == 0


def test_prescription_and_labs():
    visit = make_visit(
        500,
        prescription=[PrescriptionItem("I001", "Paracetamol", "1x3", 2, 300)],
        lab_orders=[LabOrder.create("T002", "Malaria Smear", 500, T0)],
    )
    assert billing.medication_total(visit) == 600
    assert billing.lab_total(visit) == 500
    assert billing.compute_total(visit) == 1600


def test_decimal_amounts_stay_exact():
    visit = make_visit(
        Decimal("499.99"),
        prescription=[PrescriptionItem("I005", "Cough Syrup", "10ml", 3, Decimal("0.10"))],
    )
    total = billing.compute_total(visit)
    assert total == Decimal("500.29")
    assert isinstance(total, Decimal)


def test_float_price_with_decimal_fee():
    visit = make_visit(
        Decimal("500"),
        prescription=[PrescriptionItem("I001", "Paracetamol", "1x3", 1, 0.1)],
    )
    assert billing.compute_total(visit) == Decimal("500.1")


def test_breakdown_adds_up():
    visit = make_visit(
        350,
        prescription=[
            PrescriptionItem("I001", "Paracetamol", "1x3", 4, 5),
            PrescriptionItem("I005", "Cough Syrup", "10ml", 1, 350),
        ],
        lab_orders=[LabOrder.create("T001", "CBC", 800, T0), LabOrder.create("T004", "RBS", 200, T0)],
    )
    assert billing.bill_breakdown(visit) == {
        "consultation_fee": 350,
        "medications": 370,
        "lab_tests": 1000,
        "total": 1720,
    }


@pytest.mark.parametrize("seed", range(10))
def test_total_matches_line_sum(seed):
    rng = random.Random(seed)
    fee = rng.randint(0, 2000)
    items = [
        PrescriptionItem(f"I{n:03d}", f"Item {n}", "1x1", rng.randint(1, 20), rng.randint(0, 500))
        for n in range(rng.randint(0, 5))
    ]
    labs = [LabOrder.create(f"T{n:03d}", f"Test {n}", rng.randint(0, 1500), T0) for n in range(rng.randint(0, 4))]

    expected = fee + sum(i.price * i.quantity for i in items) + sum(o.price for o in labs)
    assert billing.compute_total(make_visit(fee, items, labs)) == expected
