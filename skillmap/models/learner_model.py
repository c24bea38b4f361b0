# Fichier: skillmap/models/learner_model.py

import enum
from datetime import datetime

from sqlalchemy import (
    JSON,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from skillmap.db.base_class import Base


class ProficiencyLevel(str, enum.Enum):
    UNDEFINED = "UNDEFINED"
    BEGINNER = "BEGINNER"
    INTERMEDIATE = "INTERMEDIATE"
    ADVANCED = "ADVANCED"
    EXPERT = "EXPERT"


class UserCompetency(Base):
    """A user's ledger row for one competency."""

    __tablename__ = "user_competencies"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    competency_id: Mapped[str] = mapped_column(String(36), ForeignKey("competencies.id"), primary_key=True)
    coverage_percentage: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    proficiency_level: Mapped[ProficiencyLevel] = mapped_column(
        Enum(ProficiencyLevel, name="proficiency_level"),
        nullable=False,
        default=ProficiencyLevel.UNDEFINED,
    )
    # [{"skill_id", "skill_name", "verified", "score"}], MGS only.
    verified_skills: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    # Counts behind coverage_percentage; parents read them when aggregating.
    required_mgs_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    verified_mgs_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )


class UserCareerPath(Base):
    __tablename__ = "user_career_paths"
    __table_args__ = (
        UniqueConstraint("user_id", "competency_id", name="uq_user_career_path"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    competency_id: Mapped[str] = mapped_column(String(36), ForeignKey("competencies.id"), index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
