from .in_process_bus import InProcessEventBus
from .patient_history import PatientHistorySubscriber

__all__ = ["InProcessEventBus", "PatientHistorySubscriber"]
