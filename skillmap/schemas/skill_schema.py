from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SkillRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: Optional[str] = None
    source: Optional[str] = None


class MissingSkill(BaseModel):
    skill_id: str
    skill_name: str


class SkillTreeOut(BaseModel):
    skill: SkillRead
    children: List["SkillTreeOut"] = Field(default_factory=list)
