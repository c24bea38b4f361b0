from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from skillmap.api.v2.dependencies import get_skillmap_service, to_http_error
from skillmap.core.exceptions import SkillMapError
from skillmap.models.learner_model import UserCompetency
from skillmap.schemas import learner_schema
from skillmap.services.gap_analysis_service import GapMode
from skillmap.services.skillmap_service import SkillMapService

router = APIRouter()


def _user_competency_payload(service: SkillMapService, row: UserCompetency) -> learner_schema.UserCompetencyRead:
    competency = service.store.find_by_id(row.competency_id)
    payload = learner_schema.UserCompetencyRead.model_validate(row)
    payload.competency_name = competency.name if competency else None
    return payload


@router.get("/{user_id}/competencies", response_model=List[learner_schema.UserCompetencyRead])
def list_user_competencies(user_id: str, service: SkillMapService = Depends(get_skillmap_service)):
    return [_user_competency_payload(service, row) for row in service.learners.list_user_competencies(user_id)]


@router.put("/{user_id}/competencies/{competency_id}", response_model=learner_schema.CoverageOut)
def upsert_user_competency(
    user_id: str,
    competency_id: str,
    payload: learner_schema.EvidenceUpsertIn,
    service: SkillMapService = Depends(get_skillmap_service),
):
    try:
        result = service.upsert_user_competency_evidence(user_id, competency_id, payload.verified_skills)
    except SkillMapError as exc:
        raise to_http_error(exc) from exc
    row = result.user_competency
    return learner_schema.CoverageOut(
        user_id=row.user_id,
        competency_id=row.competency_id,
        coverage_percentage=row.coverage_percentage,
        proficiency_level=row.proficiency_level,
        required_mgs_count=row.required_mgs_count,
        verified_mgs_count=row.verified_mgs_count,
        propagated_to=result.propagated_to,
    )


@router.get("/{user_id}/gap", response_model=learner_schema.GapOut)
def get_user_gap(
    user_id: str,
    mode: GapMode = Query(GapMode.BROAD),
    competency_ids: Optional[List[str]] = Query(None),
    service: SkillMapService = Depends(get_skillmap_service),
):
    try:
        gap = service.compute_gap(user_id, mode, competency_ids)
    except SkillMapError as exc:
        raise to_http_error(exc) from exc
    return {"user_id": user_id, "mode": mode.value, "gap": gap}


@router.get("/{user_id}/baseline-skills", response_model=List[learner_schema.BaselineCompetencyOut])
def get_baseline_skills(user_id: str, service: SkillMapService = Depends(get_skillmap_service)):
    return service.verification.build_baseline_mapping(user_id)
