"""
Value objects package for domain layer.
"""

from .visit_id import VisitId

__all__ = [
    "VisitId",
]
