"""
Visit repository interface for the keyed visit store.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from ....domain.entities.visit import Visit
from ....domain.enums.workflow import VisitStage
from ....domain.value_objects.visit_id import VisitId


class VisitRepository(ABC):
    """Repository interface for in-flight and completed visits.

    Implementations hand out independent copies: mutating a returned visit has
    no effect until it is passed back to ``save``.
    """

    @abstractmethod
    async def add(self, visit: Visit) -> Visit:
        """Store a new visit (version 1)."""
        pass

    @abstractmethod
    async def save(self, visit: Visit) -> Visit:
        """Commit changes to an existing visit.

        ``visit.version`` must equal the stored version; the stored copy gets
        ``version + 1``. Raises ``ConcurrentModificationError`` when another
        writer committed first and ``VisitNotFoundError`` for unknown visits.
        """
        pass

    @abstractmethod
    async def find_by_id(self, visit_id: VisitId) -> Optional[Visit]:
        """Find a visit by ID."""
        pass

    @abstractmethod
    async def find_active(self) -> List[Visit]:
        """Find every visit not yet Completed."""
        pass

    @abstractmethod
    async def find_by_stage(self, stage: VisitStage) -> List[Visit]:
        """Find visits currently in a stage (unordered)."""
        pass

    @abstractmethod
    async def find_by_patient_id(self, patient_id: str) -> List[Visit]:
        """Find all visits for a patient, newest first."""
        pass

    @abstractmethod
    async def count_active(self) -> int:
        """Count visits not yet Completed."""
        pass
