from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from skillmap.models.learner_model import ProficiencyLevel
from skillmap.schemas.skill_schema import MissingSkill


class VerifiedSkill(BaseModel):
    """Evidence that a user has (or has not) demonstrated one MGS."""

    skill_id: str
    skill_name: Optional[str] = None
    verified: bool = True
    score: Optional[float] = None


class UserCompetencyRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    competency_id: str
    competency_name: Optional[str] = None
    coverage_percentage: float
    proficiency_level: ProficiencyLevel
    verified_skills: List[VerifiedSkill] = Field(default_factory=list)
    required_mgs_count: int = 0
    verified_mgs_count: int = 0
    updated_at: Optional[datetime] = None


class EvidenceUpsertIn(BaseModel):
    verified_skills: List[VerifiedSkill] = Field(default_factory=list)


class CoverageOut(BaseModel):
    user_id: str
    competency_id: str
    coverage_percentage: float
    proficiency_level: ProficiencyLevel
    required_mgs_count: int
    verified_mgs_count: int
    propagated_to: List[str] = Field(default_factory=list)


class CareerPathIn(BaseModel):
    competency_id: Optional[str] = None
    competency_name: Optional[str] = None

    @model_validator(mode="after")
    def _require_target(self) -> "CareerPathIn":
        if not (self.competency_id or (self.competency_name and self.competency_name.strip())):
            raise ValueError("competency_id or competency_name is required")
        return self


class CareerPathRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    competency_id: str
    competency_name: Optional[str] = None
    created_at: Optional[datetime] = None


class ExamSkillResult(BaseModel):
    skill_id: str
    skill_name: Optional[str] = None
    status: Optional[str] = None
    passed: Optional[bool] = None
    score: Optional[float] = None

    @property
    def is_passed(self) -> bool:
        if self.status is not None:
            return self.status.strip().lower() == "pass"
        return bool(self.passed)


class ExamResultsIn(BaseModel):
    exam_type: Literal["baseline", "post-course", "postcourse"] = "baseline"
    exam_status: Optional[Literal["pass", "fail"]] = None
    course_name: Optional[str] = None
    skills: List[ExamSkillResult] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _accept_legacy_payload(cls, data):
        # Older assessment payloads sent the list under ``verified_skills``.
        if isinstance(data, dict) and "skills" not in data and "verified_skills" in data:
            data = {**data, "skills": data["verified_skills"]}
        return data


GapMapping = Dict[str, List[MissingSkill]]


class ExamProcessingOut(BaseModel):
    user_id: str
    updated_competencies: List[str]
    verified_skills_count: int
    gap_mode: str
    gap: GapMapping


class GapOut(BaseModel):
    user_id: str
    mode: str
    gap: GapMapping


class BaselineCompetencyOut(BaseModel):
    competency_id: str
    competency_name: str
    mgs: List[MissingSkill]
