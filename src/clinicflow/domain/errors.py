"""
Domain-specific error types for workflow rule violations.
"""

from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base domain error."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class PatientNotFoundError(DomainError):
    """Patient not found."""

    def __init__(self, patient_id: str) -> None:
        message = f"Patient with ID '{patient_id}' not found"
        super().__init__(message, "PATIENT_NOT_FOUND", {"patient_id": patient_id})


class VisitNotFoundError(DomainError):
    """Visit not found."""

    def __init__(self, visit_id: str) -> None:
        message = f"Visit with ID '{visit_id}' not found"
        super().__init__(message, "VISIT_NOT_FOUND", {"visit_id": visit_id})


class LabOrderNotFoundError(DomainError):
    """Lab order not found on the visit."""

    def __init__(self, visit_id: str, lab_order_id: str) -> None:
        message = f"Lab order '{lab_order_id}' not found on visit '{visit_id}'"
        super().__init__(
            message,
            "LAB_ORDER_NOT_FOUND",
            {"visit_id": visit_id, "lab_order_id": lab_order_id},
        )


class CatalogItemNotFoundError(DomainError):
    """Lab test or inventory item missing from its catalog."""

    def __init__(self, catalog: str, item_id: str) -> None:
        message = f"{catalog} item '{item_id}' not found"
        super().__init__(
            message, "CATALOG_ITEM_NOT_FOUND", {"catalog": catalog, "item_id": item_id}
        )


class InvalidTransitionError(DomainError):
    """Requested stage edge is not in the table or its guard is unmet."""

    def __init__(self, visit_id: str, from_stage: str, to_stage: Optional[str], reason: str) -> None:
        target = to_stage or "<none>"
        message = f"Cannot move visit '{visit_id}' from {from_stage} to {target}: {reason}"
        super().__init__(
            message,
            "INVALID_TRANSITION",
            {
                "visit_id": visit_id,
                "from_stage": from_stage,
                "to_stage": to_stage,
                "reason": reason,
            },
        )


class StageMismatchError(DomainError):
    """Field update attempted while the visit is outside the owning stage."""

    def __init__(self, visit_id: str, current_stage: str, required_stage: str, action: str) -> None:
        message = (
            f"Cannot {action} for visit '{visit_id}': visit is in {current_stage}, "
            f"action requires {required_stage}"
        )
        super().__init__(
            message,
            "STAGE_MISMATCH",
            {
                "visit_id": visit_id,
                "current_stage": current_stage,
                "required_stage": required_stage,
                "action": action,
            },
        )


class AlreadyDispensedError(DomainError):
    """Medications for the visit were already dispensed."""

    def __init__(self, visit_id: str) -> None:
        message = f"Medications already dispensed for visit: {visit_id}"
        super().__init__(message, "ALREADY_DISPENSED", {"visit_id": visit_id})


class InsufficientStockError(DomainError):
    """Inventory cannot cover a prescription line."""

    def __init__(self, inventory_id: str, requested: int, available: int) -> None:
        message = (
            f"Insufficient stock for item '{inventory_id}'. "
            f"Requested: {requested}, Available: {available}"
        )
        super().__init__(
            message,
            "INSUFFICIENT_STOCK",
            {"inventory_id": inventory_id, "requested": requested, "available": available},
        )


class InvalidVisitDataError(DomainError):
    """Invalid visit data."""

    def __init__(self, field: str, value: Any, reason: str = "") -> None:
        message = f"Invalid visit data. Field: {field}, Value: {value}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(
            message, "INVALID_VISIT_DATA", {"field": field, "value": value, "reason": reason}
        )


class ConcurrentModificationError(DomainError):
    """Visit was committed by another writer since it was read."""

    def __init__(self, visit_id: str, expected_version: int) -> None:
        message = f"Visit '{visit_id}' was modified concurrently (expected version {expected_version})"
        super().__init__(
            message,
            "CONCURRENT_MODIFICATION",
            {"visit_id": visit_id, "expected_version": expected_version},
        )
