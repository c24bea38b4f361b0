# Fichier: skillmap/crud/sql_store.py
from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from skillmap.core.exceptions import DuplicateError, NotFoundError
from skillmap.crud.taxonomy_store import LearnerStore, TaxonomyStore
from skillmap.models.competency_model import (
    Competency,
    CompetencyAlias,
    CompetencySkill,
    CompetencySubcompetency,
)
from skillmap.models.learner_model import ProficiencyLevel, UserCareerPath, UserCompetency
from skillmap.models.skill_model import Skill, SkillSubskill
from skillmap.utils.name_utils import compact_name, normalize_name

logger = logging.getLogger(__name__)


class SqlStore(TaxonomyStore, LearnerStore):
    """SQLAlchemy backed store. Every mutation commits on its own."""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Competencies
    # ------------------------------------------------------------------
    def find_by_id(self, competency_id: str) -> Optional[Competency]:
        return self.db.get(Competency, competency_id)

    def find_by_name(self, name: str) -> Optional[Competency]:
        normalized = normalize_name(name)
        if not normalized:
            return None
        competency = (
            self.db.query(Competency).filter(Competency.normalized_name == normalized).first()
        )
        if competency is not None:
            return competency
        return (
            self.db.query(Competency)
            .join(CompetencyAlias, CompetencyAlias.competency_id == Competency.id)
            .filter(CompetencyAlias.alias_name == normalized)
            .first()
        )

    def find_by_compact_name(self, compact: str) -> Optional[Competency]:
        if not compact:
            return None
        competency = (
            self.db.query(Competency)
            .filter(Competency.compact_name == compact)
            .order_by(Competency.created_at.asc())
            .first()
        )
        if competency is not None:
            return competency
        return (
            self.db.query(Competency)
            .join(CompetencyAlias, CompetencyAlias.competency_id == Competency.id)
            .filter(CompetencyAlias.compact_name == compact)
            .first()
        )

    def create(
        self,
        name: str,
        *,
        description: Optional[str] = None,
        source: Optional[str] = None,
        parent_competency_id: Optional[str] = None,
    ) -> Competency:
        competency = Competency(
            name=name.strip(),
            normalized_name=normalize_name(name),
            compact_name=compact_name(name),
            description=description,
            source=source,
            parent_competency_id=parent_competency_id,
        )
        self.db.add(competency)
        self._commit_or_duplicate(f"competency '{name}'")
        self.db.refresh(competency)
        return competency

    def update(self, competency_id: str, **fields) -> Competency:
        competency = self.find_by_id(competency_id)
        if competency is None:
            raise NotFoundError(message=f"competency {competency_id} not found")
        if "name" in fields and fields["name"]:
            fields["normalized_name"] = normalize_name(fields["name"])
            fields["compact_name"] = compact_name(fields["name"])
        for key, value in fields.items():
            setattr(competency, key, value)
        self._commit_or_duplicate(f"competency '{competency.name}'")
        self.db.refresh(competency)
        return competency

    def delete(self, competency_id: str) -> bool:
        competency = self.find_by_id(competency_id)
        if competency is None:
            return False

        self.db.execute(
            delete(CompetencySubcompetency).where(
                or_(
                    CompetencySubcompetency.parent_competency_id == competency_id,
                    CompetencySubcompetency.child_competency_id == competency_id,
                )
            )
        )
        self.db.execute(delete(CompetencySkill).where(CompetencySkill.competency_id == competency_id))
        self.db.execute(delete(UserCompetency).where(UserCompetency.competency_id == competency_id))
        self.db.execute(delete(UserCareerPath).where(UserCareerPath.competency_id == competency_id))
        self.db.query(Competency).filter(Competency.parent_competency_id == competency_id).update(
            {Competency.parent_competency_id: None}, synchronize_session=False
        )
        self.db.delete(competency)
        self.db.commit()
        return True

    def search(self, query: str, *, limit: int = 20, offset: int = 0) -> List[Competency]:
        normalized = normalize_name(query)
        stmt = self.db.query(Competency)
        if normalized:
            stmt = stmt.filter(Competency.normalized_name.contains(normalized, autoescape=True))
        return stmt.order_by(Competency.name.asc()).offset(offset).limit(limit).all()

    def find_similar_candidates(self, fragments: Sequence[str], *, limit: int) -> List[Tuple[str, Competency]]:
        terms = [fragment for fragment in fragments if fragment]
        if not terms:
            return []

        name_rows = (
            self.db.query(Competency)
            .filter(or_(*(Competency.normalized_name.contains(term, autoescape=True) for term in terms)))
            .limit(limit)
            .all()
        )
        alias_rows = (
            self.db.query(CompetencyAlias, Competency)
            .join(Competency, CompetencyAlias.competency_id == Competency.id)
            .filter(or_(*(CompetencyAlias.alias_name.contains(term, autoescape=True) for term in terms)))
            .limit(limit)
            .all()
        )
        candidates = [(row.normalized_name, row) for row in name_rows]
        candidates.extend((alias.alias_name, competency) for alias, competency in alias_rows)
        return candidates

    def register_alias(self, competency_id: str, alias: str) -> bool:
        normalized = normalize_name(alias)
        if not normalized:
            return False
        competency = self.find_by_id(competency_id)
        if competency is None:
            raise NotFoundError(message=f"competency {competency_id} not found")
        if competency.normalized_name == normalized:
            return False
        existing = (
            self.db.query(CompetencyAlias).filter(CompetencyAlias.alias_name == normalized).first()
        )
        if existing is not None:
            if existing.competency_id != competency_id:
                logger.warning(
                    "Alias '%s' already points to competency %s, not re-pointing to %s",
                    normalized,
                    existing.competency_id,
                    competency_id,
                )
            return False

        self.db.add(
            CompetencyAlias(
                competency_id=competency_id,
                alias_name=normalized,
                compact_name=compact_name(alias),
            )
        )
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return False
        return True

    def get_aliases(self, competency_id: str) -> List[str]:
        rows = (
            self.db.query(CompetencyAlias.alias_name)
            .filter(CompetencyAlias.competency_id == competency_id)
            .order_by(CompetencyAlias.alias_name.asc())
            .all()
        )
        return [row.alias_name for row in rows]

    # ------------------------------------------------------------------
    # Competency hierarchy
    # ------------------------------------------------------------------
    def find_children(self, competency_id: str) -> List[Competency]:
        return (
            self.db.query(Competency)
            .join(CompetencySubcompetency, CompetencySubcompetency.child_competency_id == Competency.id)
            .filter(CompetencySubcompetency.parent_competency_id == competency_id)
            .order_by(Competency.name.asc())
            .all()
        )

    def link_subcompetency(self, parent_id: str, child_id: str) -> bool:
        if self._subcompetency_link(parent_id, child_id) is not None:
            return False
        self.db.add(CompetencySubcompetency(parent_competency_id=parent_id, child_competency_id=child_id))
        return self._commit_link()

    def unlink_subcompetency(self, parent_id: str, child_id: str) -> bool:
        link = self._subcompetency_link(parent_id, child_id)
        if link is None:
            return False
        self.db.delete(link)
        self.db.commit()
        return True

    def get_subcompetency_links(self, competency_id: str) -> List[CompetencySubcompetency]:
        return (
            self.db.query(CompetencySubcompetency)
            .filter(CompetencySubcompetency.parent_competency_id == competency_id)
            .all()
        )

    def get_parent_competencies(self, competency_id: str) -> List[Competency]:
        return (
            self.db.query(Competency)
            .join(CompetencySubcompetency, CompetencySubcompetency.parent_competency_id == Competency.id)
            .filter(CompetencySubcompetency.child_competency_id == competency_id)
            .all()
        )

    # ------------------------------------------------------------------
    # Skills
    # ------------------------------------------------------------------
    def find_skill_by_id(self, skill_id: str) -> Optional[Skill]:
        return self.db.get(Skill, skill_id)

    def find_skill_by_name(self, name: str) -> Optional[Skill]:
        normalized = normalize_name(name)
        if not normalized:
            return None
        return self.db.query(Skill).filter(Skill.normalized_name == normalized).first()

    def create_skill(
        self,
        name: str,
        *,
        description: Optional[str] = None,
        source: Optional[str] = None,
        parent_skill_id: Optional[str] = None,
    ) -> Skill:
        skill = Skill(
            name=name.strip(),
            normalized_name=normalize_name(name),
            description=description,
            source=source,
            parent_skill_id=parent_skill_id,
        )
        self.db.add(skill)
        self._commit_or_duplicate(f"skill '{name}'")
        self.db.refresh(skill)
        return skill

    def delete_skill(self, skill_id: str) -> bool:
        skill = self.find_skill_by_id(skill_id)
        if skill is None:
            return False
        self.db.execute(
            delete(SkillSubskill).where(
                or_(SkillSubskill.parent_skill_id == skill_id, SkillSubskill.child_skill_id == skill_id)
            )
        )
        self.db.execute(delete(CompetencySkill).where(CompetencySkill.skill_id == skill_id))
        self.db.query(Skill).filter(Skill.parent_skill_id == skill_id).update(
            {Skill.parent_skill_id: None}, synchronize_session=False
        )
        self.db.delete(skill)
        self.db.commit()
        return True

    def link_skill(self, competency_id: str, skill_id: str) -> bool:
        exists = (
            self.db.query(CompetencySkill)
            .filter(CompetencySkill.competency_id == competency_id, CompetencySkill.skill_id == skill_id)
            .first()
        )
        if exists is not None:
            return False
        self.db.add(CompetencySkill(competency_id=competency_id, skill_id=skill_id))
        return self._commit_link()

    def unlink_skill(self, competency_id: str, skill_id: str) -> bool:
        deleted = (
            self.db.query(CompetencySkill)
            .filter(CompetencySkill.competency_id == competency_id, CompetencySkill.skill_id == skill_id)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return bool(deleted)

    def get_linked_skills(self, competency_id: str) -> List[Skill]:
        return (
            self.db.query(Skill)
            .join(CompetencySkill, CompetencySkill.skill_id == Skill.id)
            .filter(CompetencySkill.competency_id == competency_id)
            .order_by(Skill.name.asc())
            .all()
        )

    def link_subskill(self, parent_skill_id: str, child_skill_id: str) -> bool:
        exists = (
            self.db.query(SkillSubskill)
            .filter(
                SkillSubskill.parent_skill_id == parent_skill_id,
                SkillSubskill.child_skill_id == child_skill_id,
            )
            .first()
        )
        if exists is not None:
            return False
        self.db.add(SkillSubskill(parent_skill_id=parent_skill_id, child_skill_id=child_skill_id))
        return self._commit_link()

    def get_subskills(self, skill_id: str) -> List[Skill]:
        return (
            self.db.query(Skill)
            .join(SkillSubskill, SkillSubskill.child_skill_id == Skill.id)
            .filter(SkillSubskill.parent_skill_id == skill_id)
            .order_by(Skill.name.asc())
            .all()
        )

    def get_skill_parents(self, skill_id: str) -> List[Skill]:
        return (
            self.db.query(Skill)
            .join(SkillSubskill, SkillSubskill.parent_skill_id == Skill.id)
            .filter(SkillSubskill.child_skill_id == skill_id)
            .all()
        )

    def find_competencies_by_skills(self, skill_ids: Iterable[str]) -> List[Competency]:
        ids = list(dict.fromkeys(skill_ids))
        if not ids:
            return []
        return (
            self.db.query(Competency)
            .join(CompetencySkill, CompetencySkill.competency_id == Competency.id)
            .filter(CompetencySkill.skill_id.in_(ids))
            .distinct()
            .all()
        )

    # ------------------------------------------------------------------
    # Learner ledger
    # ------------------------------------------------------------------
    def get_user_competency(self, user_id: str, competency_id: str) -> Optional[UserCompetency]:
        return self.db.get(UserCompetency, (user_id, competency_id))

    def list_user_competencies(self, user_id: str) -> List[UserCompetency]:
        return (
            self.db.query(UserCompetency)
            .filter(UserCompetency.user_id == user_id)
            .order_by(UserCompetency.created_at.asc())
            .all()
        )

    def create_user_competency(self, user_id: str, competency_id: str) -> UserCompetency:
        existing = self.get_user_competency(user_id, competency_id)
        if existing is not None:
            return existing
        row = UserCompetency(
            user_id=user_id,
            competency_id=competency_id,
            coverage_percentage=0.0,
            proficiency_level=ProficiencyLevel.UNDEFINED,
            verified_skills=[],
            required_mgs_count=0,
            verified_mgs_count=0,
        )
        self.db.add(row)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            existing = self.get_user_competency(user_id, competency_id)
            if existing is None:
                raise
            return existing
        self.db.refresh(row)
        return row

    def update_user_competency(self, user_id: str, competency_id: str, **fields) -> UserCompetency:
        row = self.get_user_competency(user_id, competency_id)
        if row is None:
            raise NotFoundError(message=f"user competency {user_id}/{competency_id} not found")
        for key, value in fields.items():
            setattr(row, key, value)
        self.db.commit()
        self.db.refresh(row)
        return row

    def delete_user_competency(self, user_id: str, competency_id: str) -> bool:
        row = self.get_user_competency(user_id, competency_id)
        if row is None:
            return False
        self.db.delete(row)
        self.db.commit()
        return True

    def list_career_path(self, user_id: str) -> List[UserCareerPath]:
        return (
            self.db.query(UserCareerPath)
            .filter(UserCareerPath.user_id == user_id)
            .order_by(UserCareerPath.created_at.asc(), UserCareerPath.id.asc())
            .all()
        )

    def add_career_path(self, user_id: str, competency_id: str) -> Tuple[UserCareerPath, bool]:
        existing = self._career_path_entry(user_id, competency_id)
        if existing is not None:
            return existing, False
        entry = UserCareerPath(user_id=user_id, competency_id=competency_id)
        self.db.add(entry)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            existing = self._career_path_entry(user_id, competency_id)
            if existing is None:
                raise
            return existing, False
        self.db.refresh(entry)
        return entry, True

    def remove_career_path(self, user_id: str, competency_id: str) -> bool:
        entry = self._career_path_entry(user_id, competency_id)
        if entry is None:
            return False
        self.db.delete(entry)
        self.db.commit()
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _commit_or_duplicate(self, label: str) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise DuplicateError(message=f"{label} already exists") from exc

    def _commit_link(self) -> bool:
        try:
            self.db.commit()
        except IntegrityError:
            # A concurrent writer created the same link.
            self.db.rollback()
            return False
        return True

    def _subcompetency_link(self, parent_id: str, child_id: str) -> Optional[CompetencySubcompetency]:
        return self.db.execute(
            select(CompetencySubcompetency).where(
                CompetencySubcompetency.parent_competency_id == parent_id,
                CompetencySubcompetency.child_competency_id == child_id,
            )
        ).scalar_one_or_none()

    def _career_path_entry(self, user_id: str, competency_id: str) -> Optional[UserCareerPath]:
        return (
            self.db.query(UserCareerPath)
            .filter(UserCareerPath.user_id == user_id, UserCareerPath.competency_id == competency_id)
            .first()
        )
