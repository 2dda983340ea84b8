"""
Custom workflow metrics using OpenTelemetry.
"""
import logging
from typing import Optional

from opentelemetry import metrics
from opentelemetry.metrics import Counter

logger = logging.getLogger(__name__)

meter = metrics.get_meter("clinicflow")

# Initialize custom metrics (lazy initialization)
_metrics_initialized = False
_transition_counter: Optional[Counter] = None
_check_in_counter: Optional[Counter] = None
_error_counter: Optional[Counter] = None
_stock_shortfall_counter: Optional[Counter] = None


def _initialize_metrics() -> None:
    """Initialize custom metrics instruments."""
    global _metrics_initialized, _transition_counter, _check_in_counter
    global _error_counter, _stock_shortfall_counter

    if _metrics_initialized:
        return

    _transition_counter = meter.create_counter(
        name="clinicflow.visits.transitions",
        description="Committed visit stage transitions",
        unit="1",
    )
    _check_in_counter = meter.create_counter(
        name="clinicflow.visits.check_ins",
        description="Visits checked in",
        unit="1",
    )
    _error_counter = meter.create_counter(
        name="clinicflow.errors",
        description="Rejected workflow operations and subscriber failures",
        unit="1",
    )
    _stock_shortfall_counter = meter.create_counter(
        name="clinicflow.inventory.shortfall",
        description="Units prescribed but not available when dispensing",
        unit="1",
    )
    _metrics_initialized = True
    logger.debug("Workflow metrics initialized")


def record_transition(from_stage: str, to_stage: str) -> None:
    """Record a committed stage transition."""
    _initialize_metrics()
    _transition_counter.add(1, {"from_stage": from_stage, "to_stage": to_stage})


def record_check_in(priority: str, stage: str) -> None:
    """Record a check-in and the stage it landed in."""
    _initialize_metrics()
    _check_in_counter.add(1, {"priority": priority, "stage": stage})


def record_error(error_type: str, operation: Optional[str] = None) -> None:
    """Record a rejected operation (error code) or an internal failure."""
    _initialize_metrics()
    attributes = {"type": error_type}
    if operation:
        attributes["operation"] = operation
    _error_counter.add(1, attributes)


def record_stock_shortfall(inventory_id: str, units: int) -> None:
    """Record units that could not be taken from stock."""
    if units <= 0:
        return
    _initialize_metrics()
    _stock_shortfall_counter.add(units, {"inventory_id": inventory_id})
