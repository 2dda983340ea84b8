"""
Writes the discharge summary into the patient's history.
"""

import logging

from ...application.ports.repositories.patient_repo import PatientDirectory
from ...domain.events.visit_events import VisitCompleted, VisitEvent

logger = logging.getLogger("clinicflow")


class PatientHistorySubscriber:
    """On ``VisitCompleted``, prepend the summary and bump ``last_visit``."""

    def __init__(self, patient_directory: PatientDirectory):
        self._patient_directory = patient_directory

    async def __call__(self, event: VisitEvent) -> None:
        if not isinstance(event, VisitCompleted):
            return
        appended = await self._patient_directory.append_visit_summary(
            event.patient_id, event.summary, event.occurred_at.date()
        )
        if appended:
            logger.info(f"Appended visit {event.visit_id} summary to patient {event.patient_id} history")
