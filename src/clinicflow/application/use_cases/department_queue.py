"""Department work queues and dashboard statistics."""

from typing import Dict, List, Sequence, Union

from ...domain.entities.visit import Visit
from ...domain.enums.workflow import DEPARTMENT_STAGES, Department, VisitStage
from ...domain.errors import InvalidVisitDataError
from ...domain.workflow import queue
from ..ports.repositories.visit_repo import VisitRepository


class DepartmentQueueService:
    """Read-side views over the active visits, recomputed on every call."""

    def __init__(self, visit_repository: VisitRepository):
        self._visit_repository = visit_repository

    async def get_stage_queue(self, stage: Union[VisitStage, str]) -> List[Visit]:
        """Visits waiting in one stage, in service order."""
        try:
            stage = VisitStage(stage)
        except ValueError:
            raise InvalidVisitDataError("stage", stage, "unknown stage")
        visits = await self._visit_repository.find_by_stage(stage)
        return queue.visits_in_stage(visits, stage)

    async def get_department_queue(self, department: Union[Department, str]) -> Dict[VisitStage, List[Visit]]:
        """Queues for the stages a department is allowed to see."""
        try:
            stages = DEPARTMENT_STAGES[Department(department)]
        except ValueError:
            raise InvalidVisitDataError("department", department, "unknown department")
        return await self.get_queues_for_stages(stages)

    async def get_queues_for_stages(self, stages: Sequence[VisitStage]) -> Dict[VisitStage, List[Visit]]:
        visits = await self._visit_repository.find_active()
        return queue.department_queue(visits, stages)

    async def get_queue_stats(self) -> Dict[VisitStage, Dict[str, object]]:
        """Per-stage count and emergency flag over active visits."""
        visits = await self._visit_repository.find_active()
        return queue.queue_stats(visits)
