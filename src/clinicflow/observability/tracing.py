"""
OpenTelemetry tracing helpers for workflow operations.
"""
from contextlib import contextmanager
from typing import Any, Optional

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

tracer = trace.get_tracer("clinicflow")


@contextmanager
def trace_operation(operation_name: str, attributes: Optional[dict] = None):
    """
    Context manager for creating custom tracing spans.

    Example:
        with trace_operation("workflow.commit_billing", {"visit_id": visit_id}):
            visit = await engine.commit_billing(visit_id)

    Exceptions raised inside the block are recorded on the span and re-raised.
    """
    with tracer.start_as_current_span(operation_name) as span:
        if attributes:
            for key, value in attributes.items():
                span.set_attribute(key, str(value))
        yield span


def set_span_status(span, success: bool, error_message: Optional[str] = None) -> None:
    """Set the status of a tracing span."""
    if span is None:
        return
    if success:
        span.set_status(Status(StatusCode.OK))
    else:
        span.set_status(Status(StatusCode.ERROR, error_message or "Operation failed"))


def add_span_attribute(span, key: str, value: Any) -> None:
    """Add an attribute to a tracing span (value stored as string)."""
    if span is None:
        return
    span.set_attribute(key, str(value))
