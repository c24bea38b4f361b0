from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from skillmap.schemas.skill_schema import SkillRead, SkillTreeOut


class CompetencyRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: Optional[str] = None
    parent_competency_id: Optional[str] = None
    source: Optional[str] = None
    created_at: Optional[datetime] = None


class CompetencyCreateIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    source: Optional[str] = "manual"
    parent_competency_id: Optional[str] = None


class CompetencyUpdateIn(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=500)
    description: Optional[str] = None
    source: Optional[str] = None


class CompetencyResolveIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    source: Optional[str] = None


class CompetencyResolveOut(BaseModel):
    competency: CompetencyRead
    created: bool
    strategy: str
    alias_registered: bool = False


class HierarchyBuildIn(BaseModel):
    topic: str = Field(..., min_length=1, max_length=500)


class HierarchyStatsOut(BaseModel):
    competenciesCreated: int = 0
    competenciesExisting: int = 0
    relationshipsCreated: int = 0
    relationshipsExisting: int = 0
    skipped: int = 0
    root_competency_id: Optional[str] = None


class RequiredMgsOut(BaseModel):
    competency_id: str
    competency_name: str
    mgs_count: int
    mgs: List[SkillRead]


class LinkSkillsIn(BaseModel):
    skill_ids: List[str] = Field(default_factory=list)
    skill_names: List[str] = Field(default_factory=list)


class CompetencyTreeOut(BaseModel):
    competency: CompetencyRead
    skills: List[SkillTreeOut] = Field(default_factory=list)
    children: List["CompetencyTreeOut"] = Field(default_factory=list)


class NormalizedNameOut(BaseModel):
    name: str
    normalized_name: str
    competency_id: Optional[str] = None
    found_in_taxonomy: bool = False


class NormalizeNamesIn(BaseModel):
    names: List[str]
