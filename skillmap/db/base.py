"""Declares every SQLAlchemy model so ``Base.metadata`` knows all tables."""

from skillmap.db.base_class import Base

# Taxonomy
from skillmap.models.competency_model import (
    Competency,
    CompetencyAlias,
    CompetencySkill,
    CompetencySubcompetency,
)
from skillmap.models.skill_model import Skill, SkillSubskill

# Learner ledger
from skillmap.models.learner_model import UserCareerPath, UserCompetency

__all__ = (
    "Base",
    "Competency",
    "CompetencyAlias",
    "CompetencySkill",
    "CompetencySubcompetency",
    "Skill",
    "SkillSubskill",
    "UserCareerPath",
    "UserCompetency",
)
