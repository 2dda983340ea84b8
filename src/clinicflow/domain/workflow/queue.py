"""
Priority-ordered work queues over the current visit list.

Nothing here is cached: ``stage_start_time`` changes on every transition, so
the order is recomputed on each read.
"""

from typing import Dict, Iterable, List, Sequence, Tuple

from ..entities.visit import Visit
from ..enums.workflow import VisitPriority, VisitStage


def queue_sort_key(visit: Visit) -> Tuple[int, object]:
    # Highest priority first, then longest waiting in the stage
    return (-visit.priority.rank, visit.stage_start_time)


def visits_in_stage(visits: Iterable[Visit], stage: VisitStage) -> List[Visit]:
    """Visits currently in ``stage`` in service order."""
    return sorted((visit for visit in visits if visit.stage == stage), key=queue_sort_key)


def department_queue(visits: Iterable[Visit], stages: Sequence[VisitStage]) -> Dict[VisitStage, List[Visit]]:
    """Per-stage queues for a department restricted to ``stages``.

    The visit list is filtered to the department's stages first; each stage is
    then ordered exactly as ``visits_in_stage`` would order it.
    """
    allowed = [VisitStage(stage) for stage in stages]
    relevant = [visit for visit in visits if visit.stage in allowed]
    return {stage: visits_in_stage(relevant, stage) for stage in allowed}


def queue_stats(visits: Iterable[Visit]) -> Dict[VisitStage, Dict[str, object]]:
    """Count and emergency flag for every stage."""
    stats: Dict[VisitStage, Dict[str, object]] = {
        stage: {"count": 0, "has_emergency": False} for stage in VisitStage
    }
    for visit in visits:
        entry = stats[visit.stage]
        entry["count"] += 1
        if visit.priority == VisitPriority.EMERGENCY:
            entry["has_emergency"] = True
    return stats
