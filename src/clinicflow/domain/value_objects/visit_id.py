"""
Visit ID value object for type-safe visit identification.
Format: VISIT-YYYYMMDD-XXXXXXXX
"""

import re
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

_VISIT_ID_PATTERN = re.compile(r"^VISIT-\d{8}-[0-9A-F]{8}$")


@dataclass(frozen=True)
class VisitId:
    """Immutable visit identifier value object."""

    value: str

    def __post_init__(self) -> None:
        """Validate visit ID format."""
        if not self.value:
            raise ValueError("Visit ID cannot be empty")

        if not isinstance(self.value, str):
            raise ValueError("Visit ID must be a string")

        if not _VISIT_ID_PATTERN.match(self.value):
            raise ValueError("Visit ID must follow format: VISIT-YYYYMMDD-XXXXXXXX")

    def __str__(self) -> str:
        return self.value

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, VisitId):
            return False
        return self.value == other.value

    def __hash__(self) -> int:
        return hash(self.value)

    @classmethod
    def generate(cls, date: Optional[datetime] = None) -> "VisitId":
        """Generate a new visit ID for the given day."""
        if date is None:
            date = datetime.now()

        date_str = date.strftime("%Y%m%d")
        suffix = uuid.uuid4().hex[:8].upper()

        return cls(f"VISIT-{date_str}-{suffix}")
