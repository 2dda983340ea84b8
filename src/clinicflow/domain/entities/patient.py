"""Patient read model as seen by the visit workflow.

The patient master record lives in an external directory; the engine only reads
it at check-in and appends a summary line to its history on discharge.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional


@dataclass
class Patient:
    """Patient domain entity."""

    patient_id: str
    name: str
    phone: str = ""
    last_visit: Optional[date] = None
    history: List[str] = field(default_factory=list)  # Newest first

    def record_visit(self, summary: str, visit_date: date) -> None:
        """Prepend a visit summary and bump the last-visit date."""
        self.history.insert(0, summary)
        self.last_visit = visit_date
