from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query, Response, status

from skillmap.api.v2.dependencies import get_skillmap_service, to_http_error
from skillmap.core.exceptions import SkillMapError
from skillmap.schemas import competency_schema, skill_schema
from skillmap.services.skillmap_service import SkillMapService

router = APIRouter()


def _mgs_payload(competency, skills) -> competency_schema.RequiredMgsOut:
    return competency_schema.RequiredMgsOut(
        competency_id=competency.id,
        competency_name=competency.name,
        mgs_count=len(skills),
        mgs=[skill_schema.SkillRead.model_validate(skill) for skill in skills],
    )


@router.get("", response_model=List[competency_schema.CompetencyRead])
def list_competencies(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    service: SkillMapService = Depends(get_skillmap_service),
):
    return service.competencies.list_competencies(limit=limit, offset=offset)


@router.post("", response_model=competency_schema.CompetencyRead, status_code=status.HTTP_201_CREATED)
def create_competency(
    payload: competency_schema.CompetencyCreateIn,
    service: SkillMapService = Depends(get_skillmap_service),
):
    try:
        return service.competencies.create_competency(
            payload.name,
            description=payload.description,
            source=payload.source,
            parent_id=payload.parent_competency_id,
        )
    except SkillMapError as exc:
        raise to_http_error(exc) from exc


@router.post("/hierarchy", response_model=competency_schema.HierarchyStatsOut, status_code=status.HTTP_201_CREATED)
def build_competency_hierarchy(
    payload: competency_schema.HierarchyBuildIn,
    service: SkillMapService = Depends(get_skillmap_service),
):
    try:
        stats = service.build_hierarchy(payload.topic)
    except SkillMapError as exc:
        raise to_http_error(exc) from exc
    return stats.as_dict()


@router.post("/resolve", response_model=competency_schema.CompetencyResolveOut)
def resolve_competency(
    payload: competency_schema.CompetencyResolveIn,
    service: SkillMapService = Depends(get_skillmap_service),
):
    try:
        result = service.resolve_or_create_competency(
            payload.name,
            description=payload.description,
            source=payload.source,
        )
    except SkillMapError as exc:
        raise to_http_error(exc) from exc
    return competency_schema.CompetencyResolveOut(
        competency=competency_schema.CompetencyRead.model_validate(result.competency),
        created=result.created,
        strategy=result.strategy,
        alias_registered=result.alias_registered,
    )


@router.post("/normalize", response_model=List[competency_schema.NormalizedNameOut])
def normalize_names(
    payload: competency_schema.NormalizeNamesIn,
    service: SkillMapService = Depends(get_skillmap_service),
):
    return service.normalize_extracted_names(payload.names)


@router.get("/search", response_model=List[competency_schema.CompetencyRead])
def search_competencies(
    q: str = Query(..., min_length=1),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: SkillMapService = Depends(get_skillmap_service),
):
    try:
        return service.competencies.search(q, limit=limit, offset=offset)
    except SkillMapError as exc:
        raise to_http_error(exc) from exc


@router.get("/by-name/{name}/mgs", response_model=competency_schema.RequiredMgsOut)
def get_required_mgs_by_name(name: str, service: SkillMapService = Depends(get_skillmap_service)):
    try:
        skills = service.get_required_mgs(name=name)
        competency = service.resolver.lookup(name)
    except SkillMapError as exc:
        raise to_http_error(exc) from exc
    return _mgs_payload(competency, skills)


@router.get("/{competency_id}", response_model=competency_schema.CompetencyRead)
def get_competency(competency_id: str, service: SkillMapService = Depends(get_skillmap_service)):
    try:
        return service.competencies.get_competency(competency_id)
    except SkillMapError as exc:
        raise to_http_error(exc) from exc


@router.put("/{competency_id}", response_model=competency_schema.CompetencyRead)
def update_competency(
    competency_id: str,
    payload: competency_schema.CompetencyUpdateIn,
    service: SkillMapService = Depends(get_skillmap_service),
):
    try:
        return service.competencies.update_competency(competency_id, **payload.model_dump(exclude_unset=True))
    except SkillMapError as exc:
        raise to_http_error(exc) from exc


@router.delete("/{competency_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_competency(competency_id: str, service: SkillMapService = Depends(get_skillmap_service)):
    try:
        service.competencies.delete_competency(competency_id)
    except SkillMapError as exc:
        raise to_http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{competency_id}/mgs", response_model=competency_schema.RequiredMgsOut)
def get_required_mgs(competency_id: str, service: SkillMapService = Depends(get_skillmap_service)):
    try:
        competency = service.competencies.get_competency(competency_id)
        skills = service.get_required_mgs(competency_id)
    except SkillMapError as exc:
        raise to_http_error(exc) from exc
    return _mgs_payload(competency, skills)


@router.get("/{competency_id}/tree", response_model=competency_schema.CompetencyTreeOut)
def get_competency_tree(competency_id: str, service: SkillMapService = Depends(get_skillmap_service)):
    try:
        tree = service.competencies.get_competency_tree(competency_id)
    except SkillMapError as exc:
        raise to_http_error(exc) from exc
    return competency_schema.CompetencyTreeOut.model_validate(tree, from_attributes=True)


@router.get("/{competency_id}/skills", response_model=List[skill_schema.SkillRead])
def get_linked_skills(competency_id: str, service: SkillMapService = Depends(get_skillmap_service)):
    try:
        return service.competencies.get_linked_skills(competency_id)
    except SkillMapError as exc:
        raise to_http_error(exc) from exc


@router.post("/{competency_id}/skills", response_model=List[skill_schema.SkillRead])
def link_skills(
    competency_id: str,
    payload: competency_schema.LinkSkillsIn,
    service: SkillMapService = Depends(get_skillmap_service),
):
    try:
        return service.competencies.link_skills(
            competency_id,
            skill_ids=payload.skill_ids,
            skill_names=payload.skill_names,
        )
    except SkillMapError as exc:
        raise to_http_error(exc) from exc


@router.delete("/{competency_id}/skills/{skill_id}", status_code=status.HTTP_204_NO_CONTENT)
def unlink_skill(competency_id: str, skill_id: str, service: SkillMapService = Depends(get_skillmap_service)):
    try:
        service.competencies.unlink_skill(competency_id, skill_id)
    except SkillMapError as exc:
        raise to_http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{competency_id}/subcompetencies/{child_id}")
def link_subcompetency(competency_id: str, child_id: str, service: SkillMapService = Depends(get_skillmap_service)):
    try:
        created = service.competencies.link_subcompetency(competency_id, child_id)
    except SkillMapError as exc:
        raise to_http_error(exc) from exc
    return {"parent_competency_id": competency_id, "child_competency_id": child_id, "created": created}


@router.delete("/{competency_id}/subcompetencies/{child_id}", status_code=status.HTTP_204_NO_CONTENT)
def unlink_subcompetency(competency_id: str, child_id: str, service: SkillMapService = Depends(get_skillmap_service)):
    try:
        service.competencies.unlink_subcompetency(competency_id, child_id)
    except SkillMapError as exc:
        raise to_http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
