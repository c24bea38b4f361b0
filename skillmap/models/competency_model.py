# Fichier: skillmap/models/competency_model.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from skillmap.db.base_class import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class Competency(Base):
    __tablename__ = "competencies"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    # Lowercase, separator-collapsed form; uniqueness is enforced here.
    normalized_name: Mapped[str] = mapped_column(String(500), nullable=False, unique=True, index=True)
    # Normalized name with every space removed ("react js" -> "reactjs").
    compact_name: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Deprecated single-parent cache; traversal always uses competency_subcompetency.
    parent_competency_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("competencies.id"), nullable=True
    )
    source: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    aliases: Mapped[List["CompetencyAlias"]] = relationship(
        back_populates="competency",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Competency(id={self.id}, name='{self.name}')>"


class CompetencyAlias(Base):
    __tablename__ = "competency_aliases"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    competency_id: Mapped[str] = mapped_column(String(36), ForeignKey("competencies.id"), index=True)
    alias_name: Mapped[str] = mapped_column(String(500), nullable=False, unique=True, index=True)
    compact_name: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    competency: Mapped[Competency] = relationship(back_populates="aliases")

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<CompetencyAlias(alias='{self.alias_name}', competency_id={self.competency_id})>"


class CompetencySubcompetency(Base):
    __tablename__ = "competency_subcompetency"
    __table_args__ = (
        UniqueConstraint("parent_competency_id", "child_competency_id", name="uq_competency_subcompetency"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    parent_competency_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("competencies.id"), index=True, nullable=False
    )
    child_competency_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("competencies.id"), index=True, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class CompetencySkill(Base):
    __tablename__ = "competency_skill"
    __table_args__ = (
        UniqueConstraint("competency_id", "skill_id", name="uq_competency_skill"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    competency_id: Mapped[str] = mapped_column(String(36), ForeignKey("competencies.id"), index=True)
    skill_id: Mapped[str] = mapped_column(String(36), ForeignKey("skills.id"), index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
