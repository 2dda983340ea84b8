"""
Derived wait-time values. Computed on demand, never stored.
"""

from datetime import datetime, timedelta

from ..entities.visit import Visit


def wait_in_stage(visit: Visit, now: datetime) -> timedelta:
    """Time spent in the current stage."""
    return now - visit.stage_start_time


def total_visit_duration(visit: Visit, now: datetime) -> timedelta:
    """Time since check-in; completed visits stop the clock at discharge."""
    end = visit.completed_at if visit.completed_at is not None else now
    return end - visit.start_time
