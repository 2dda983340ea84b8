"""
Bill computation for a visit.

Amounts are summed as given; no rounding is applied so integer and Decimal
inputs come back unchanged in kind. A float meeting a Decimal is converted
through its repr so the sum stays a Decimal.
"""

from decimal import Decimal
from typing import Dict, Iterable

from ..entities.visit import Amount, Visit


def _accumulate(amounts: Iterable[Amount]) -> Amount:
    total: Amount = 0
    for amount in amounts:
        if isinstance(total, Decimal) and isinstance(amount, float):
            amount = Decimal(repr(amount))
        elif isinstance(amount, Decimal) and isinstance(total, float):
            total = Decimal(repr(total))
        total += amount
    return total


def medication_total(visit: Visit) -> Amount:
    return _accumulate(item.line_total for item in visit.prescription)


def lab_total(visit: Visit) -> Amount:
    return _accumulate(order.price for order in visit.lab_orders)


def compute_total(visit: Visit) -> Amount:
    """consultation fee + sum(price x quantity) + sum(lab price)."""
    return _accumulate([visit.consultation_fee, medication_total(visit), lab_total(visit)])


def bill_breakdown(visit: Visit) -> Dict[str, Amount]:
    """Itemised subtotals for the cashier view."""
    medications = medication_total(visit)
    labs = lab_total(visit)
    return {
        "consultation_fee": visit.consultation_fee,
        "medications": medications,
        "lab_tests": labs,
        "total": _accumulate([visit.consultation_fee, medications, labs]),
    }
