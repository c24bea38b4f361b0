# Fichier: skillmap/models/skill_model.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from skillmap.db.base_class import Base


class Skill(Base):
    __tablename__ = "skills"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    normalized_name: Mapped[str] = mapped_column(String(500), nullable=False, unique=True, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Deprecated single-parent cache, same contract as Competency.parent_competency_id.
    parent_skill_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("skills.id"), nullable=True)
    source: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Skill(id={self.id}, name='{self.name}')>"


class SkillSubskill(Base):
    __tablename__ = "skill_subskill"
    __table_args__ = (
        UniqueConstraint("parent_skill_id", "child_skill_id", name="uq_skill_subskill"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    parent_skill_id: Mapped[str] = mapped_column(String(36), ForeignKey("skills.id"), index=True)
    child_skill_id: Mapped[str] = mapped_column(String(36), ForeignKey("skills.id"), index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
