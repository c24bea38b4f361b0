from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends

from skillmap.api.v2.dependencies import get_skillmap_service, to_http_error
from skillmap.core.exceptions import SkillMapError
from skillmap.core.notifier import notify_safely
from skillmap.schemas import learner_schema
from skillmap.services.skillmap_service import SkillMapService

router = APIRouter()


@router.post("/{user_id}/exam-results", response_model=learner_schema.ExamProcessingOut)
def submit_exam_results(
    user_id: str,
    payload: learner_schema.ExamResultsIn,
    background_tasks: BackgroundTasks,
    service: SkillMapService = Depends(get_skillmap_service),
):
    try:
        result = service.verification.process_exam_results(user_id, payload, notify=False)
    except SkillMapError as exc:
        raise to_http_error(exc) from exc

    background_tasks.add_task(
        notify_safely,
        service.notifier.notify_gap_analysis,
        user_id,
        result["gap"],
        mode=result["gap_mode"],
        course_name=payload.course_name,
        exam_status=payload.exam_status,
    )
    return result
