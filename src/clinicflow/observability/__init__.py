"""
Observability module for audit logging, tracing, and metrics.
"""

from .audit import audit_log_event
from .metrics import record_check_in, record_error, record_stock_shortfall, record_transition
from .tracing import add_span_attribute, set_span_status, trace_operation

__all__ = [
    # Audit
    "audit_log_event",
    # Tracing
    "trace_operation",
    "set_span_status",
    "add_span_attribute",
    # Metrics
    "record_transition",
    "record_check_in",
    "record_error",
    "record_stock_shortfall",
]
