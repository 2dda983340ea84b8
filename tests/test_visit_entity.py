"""
Visit entity tests: stage ownership of fields and value validation.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from clinicflow.domain.entities.visit import LabOrder, PrescriptionItem, Visit, Vitals
from clinicflow.domain.enums.workflow import LabOrderStatus, VisitStage
from clinicflow.domain.errors import (
    AlreadyDispensedError,
    InvalidVisitDataError,
    LabOrderNotFoundError,
    StageMismatchError,
)
from clinicflow.domain.value_objects.visit_id import VisitId

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
        **kwargs,
    )


class TestVisitId:
    def test_generate_uses_date(self):
        visit_id = VisitId.generate(T0)
        assert visit_id.value.startswith("VISIT-20240301-")

    @pytest.mark.parametrize("value", ["", "VISIT-2024-ABC", "visit-20240301-0000abcd", "P001"])
    def test_rejects_malformed(self, value):
        with pytest.raises(ValueError):
            VisitId(value)

    def test_equality_by_value(self):
        assert VisitId("VISIT-20240301-0000ABCD") == VisitId("VISIT-20240301-0000ABCD")
        assert VisitId("VISIT-20240301-0000ABCD") != "VISIT-20240301-0000ABCD"


class TestConstruction:
    def test_stage_string_is_coerced(self):
        assert make_visit("Lab").stage == VisitStage.LAB

    def test_unknown_stage(self):
        with pytest.raises(InvalidVisitDataError):
            make_visit("Radiology")

    def test_negative_fee(self):
        with pytest.raises(InvalidVisitDataError):
            make_visit(consultation_fee=-1)

    def test_stage_start_before_check_in(self):
        with pytest.raises(InvalidVisitDataError):
            Visit(
                visit_id=VisitId.generate(T0),
                patient_id="P001",
                patient_name="Wanjiku Kamau",
                stage=VisitStage.VITALS,
                start_time=T0,
                stage_start_time=T0 - timedelta(seconds=1),
                queue_number=1,
            )

    @pytest.mark.parametrize("quantity", [0, -2, 1.5, True])
    def test_prescription_quantity_must_be_positive_int(self, quantity):
        with pytest.raises(InvalidVisitDataError):
            PrescriptionItem("I001", "Paracetamol", "1x3", quantity, 5)

    def test_prescription_line_total(self):
        assert PrescriptionItem("I001", "Paracetamol", "1x3", 3, Decimal("2.50")).line_total == Decimal("7.50")

    def test_lab_price_must_be_numeric(self):
        with pytest.raises(InvalidVisitDataError):
            LabOrder.create("T001", "CBC", "800", T0)

    @pytest.mark.parametrize("price", [float("nan"), float("-inf"), Decimal("sNaN"), Decimal("Infinity")])
    def test_prices_must_be_finite(self, price):
        with pytest.raises(InvalidVisitDataError):
            LabOrder.create("T001", "CBC", price, T0)
        with pytest.raises(InvalidVisitDataError):
            PrescriptionItem("I001", "Paracetamol", "1x3", 1, price)
        with pytest.raises(InvalidVisitDataError):
            make_visit(consultation_fee=price)


class TestStageOwnership:
    def test_vitals_only_in_vitals(self):
        visit = make_visit(VisitStage.VITALS)
        visit.record_vitals(Vitals(bp="120/80"), T0)
        assert visit.vitals.bp == "120/80"

        with pytest.raises(StageMismatchError):
            make_visit(VisitStage.CONSULTATION).record_vitals(Vitals(), T0)

    def test_clinical_notes_keep_unset_fields(self):
        visit = make_visit()
        visit.update_clinical_notes(T0, chief_complaint="Fever", diagnosis="Malaria")
        visit.update_clinical_notes(T0, doctor_notes="Review in 3 days")

        assert visit.chief_complaint == "Fever"
        assert visit.diagnosis == "Malaria"
        assert visit.doctor_notes == "Review in 3 days"

    def test_lab_orders_only_in_consultation(self):
        with pytest.raises(StageMismatchError):
            make_visit(VisitStage.LAB).add_lab_order(LabOrder.create("T001", "CBC", 800, T0), T0)

    def test_duplicate_lab_order_id(self):
        visit = make_visit()
        order = LabOrder.create("T001", "CBC", 800, T0)
        visit.add_lab_order(order, T0)
        with pytest.raises(InvalidVisitDataError):
            visit.add_lab_order(order, T0)

    def test_lab_result_lifecycle(self):
        order = LabOrder.create("T001", "CBC", 800, T0)
        visit = make_visit(VisitStage.LAB, lab_orders=[order])

        visit.record_lab_result(order.id, "  Normal  ", T0)
        assert order.status == LabOrderStatus.COMPLETED
        assert order.result == "Normal"

        with pytest.raises(InvalidVisitDataError):
            visit.record_lab_result(order.id, "Abnormal", T0)
        with pytest.raises(LabOrderNotFoundError):
            visit.record_lab_result("LAB-00000000", "Normal", T0)

    def test_blank_lab_result(self):
        order = LabOrder.create("T001", "CBC", 800, T0)
        visit = make_visit(VisitStage.LAB, lab_orders=[order])
        with pytest.raises(InvalidVisitDataError):
            visit.record_lab_result(order.id, "   ", T0)
        assert order.is_pending

    def test_remove_missing_prescription_item(self):
        visit = make_visit()
        with pytest.raises(InvalidVisitDataError):
            visit.remove_prescription_item("I001", T0)

    def test_dispensed_prescription_is_frozen(self):
        visit = make_visit(medications_dispensed=True)
        with pytest.raises(AlreadyDispensedError):
            visit.replace_prescription([], T0)

    def test_mark_dispensed_once(self):
        visit = make_visit(VisitStage.PHARMACY)
        visit.mark_dispensed(T0)
        with pytest.raises(AlreadyDispensedError):
            visit.mark_dispensed(T0)

    def test_mark_paid_only_in_billing(self):
        with pytest.raises(StageMismatchError):
            make_visit(VisitStage.PHARMACY).mark_paid(500, T0)


class TestHistorySummary:
    def test_with_diagnosis_and_notes(self):
        visit = make_visit(diagnosis="Malaria", doctor_notes="Rest")
        assert visit.history_summary() == "[2024-03-01] Dx: Malaria. Notes: Rest"

    def test_without_diagnosis(self):
        assert make_visit().history_summary() == "[2024-03-01] No Diagnosis."
