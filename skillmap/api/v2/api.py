# Fichier: skillmap/api/v2/api.py
from fastapi import APIRouter
from .endpoints import (
    competency_router,
    user_competency_router,
    career_path_router,
    assessment_router,
)

api_router = APIRouter()

api_router.include_router(competency_router.router, prefix="/competencies", tags=["Competencies"])
api_router.include_router(user_competency_router.router, prefix="/users", tags=["User Competencies"])
api_router.include_router(career_path_router.router, prefix="/users", tags=["Career Path"])
api_router.include_router(assessment_router.router, prefix="/users", tags=["Assessments"])
