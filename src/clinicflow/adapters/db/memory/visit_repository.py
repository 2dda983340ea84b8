"""
In-process implementation of VisitRepository.
"""

import asyncio
import copy
from typing import Dict, List, Optional

from ....application.ports.repositories.visit_repo import VisitRepository
from ....domain.entities.visit import Visit
from ....domain.enums.workflow import VisitStage
from ....domain.errors import ConcurrentModificationError, InvalidVisitDataError, VisitNotFoundError
from ....domain.value_objects.visit_id import VisitId


class InMemoryVisitRepository(VisitRepository):
    """Dict-backed visit store.

    Stored visits are never handed out directly; every read returns a deep
    copy and every write stores one.
    """

    def __init__(self) -> None:
        self._visits: Dict[str, Visit] = {}
        self._lock = asyncio.Lock()

    async def add(self, visit: Visit) -> Visit:
        async with self._lock:
            key = visit.visit_id.value
            if key in self._visits:
                raise InvalidVisitDataError("visit_id", key, "visit already exists")
            stored = copy.deepcopy(visit)
            stored.version = 1
            self._visits[key] = stored
            return copy.deepcopy(stored)

    async def save(self, visit: Visit) -> Visit:
        async with self._lock:
            key = visit.visit_id.value
            current = self._visits.get(key)
            if current is None:
                raise VisitNotFoundError(key)
            if current.version != visit.version:
                raise ConcurrentModificationError(key, visit.version)
            stored = copy.deepcopy(visit)
            stored.version = current.version + 1
            self._visits[key] = stored
            return copy.deepcopy(stored)

    async def find_by_id(self, visit_id: VisitId) -> Optional[Visit]:
        visit = self._visits.get(visit_id.value)
        return copy.deepcopy(visit) if visit is not None else None

    async def find_active(self) -> List[Visit]:
        return [copy.deepcopy(v) for v in self._visits.values() if v.is_active]

    async def find_by_stage(self, stage: VisitStage) -> List[Visit]:
        return [copy.deepcopy(v) for v in self._visits.values() if v.stage == stage]

    async def find_by_patient_id(self, patient_id: str) -> List[Visit]:
        visits = [v for v in self._visits.values() if v.patient_id == patient_id]
        visits.sort(key=lambda v: v.start_time, reverse=True)
        return [copy.deepcopy(v) for v in visits]

    async def count_active(self) -> int:
        return sum(1 for v in self._visits.values() if v.is_active)
