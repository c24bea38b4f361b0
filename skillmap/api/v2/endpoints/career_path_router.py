from __future__ import annotations

from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, Response, status

from skillmap.api.v2.dependencies import get_skillmap_service, to_http_error
from skillmap.core.exceptions import SkillMapError
from skillmap.schemas import learner_schema
from skillmap.services.skillmap_service import SkillMapService

router = APIRouter()


@router.get("/{user_id}/career-path", response_model=List[learner_schema.CareerPathRead])
def list_career_path(user_id: str, service: SkillMapService = Depends(get_skillmap_service)):
    return service.career_paths.list_career_path(user_id)


@router.post(
    "/{user_id}/career-path",
    response_model=learner_schema.CareerPathRead,
    status_code=status.HTTP_201_CREATED,
)
def add_career_path(
    user_id: str,
    payload: learner_schema.CareerPathIn,
    background_tasks: BackgroundTasks,
    service: SkillMapService = Depends(get_skillmap_service),
):
    try:
        entry = service.career_paths.add_career_path(
            user_id,
            competency_id=payload.competency_id,
            competency_name=payload.competency_name,
        )
        # The gap is computed while the session is open; delivery happens after the response.
        service.career_paths.sync_downstream(user_id, schedule=background_tasks.add_task)
    except SkillMapError as exc:
        raise to_http_error(exc) from exc
    return entry


@router.delete("/{user_id}/career-path/{competency_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_career_path(user_id: str, competency_id: str, service: SkillMapService = Depends(get_skillmap_service)):
    try:
        service.career_paths.remove_career_path(user_id, competency_id)
    except SkillMapError as exc:
        raise to_http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
