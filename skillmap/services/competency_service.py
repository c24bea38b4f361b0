# Fichier: skillmap/services/competency_service.py
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Set

from skillmap.core.exceptions import NotFoundError, ValidationError
from skillmap.crud.taxonomy_store import TaxonomyStore
from skillmap.models.competency_model import Competency
from skillmap.models.skill_model import Skill

logger = logging.getLogger(__name__)

MANUAL_SOURCE = "manual"
UPDATABLE_FIELDS = ("name", "description", "source")


class CompetencyService:
    """Administrative operations on the taxonomy graph."""

    def __init__(self, store: TaxonomyStore):
        self.store = store

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def get_competency(self, competency_id: str) -> Competency:
        competency = self.store.find_by_id(competency_id)
        if competency is None:
            raise NotFoundError(message=f"competency {competency_id} not found")
        return competency

    def list_competencies(self, *, limit: int = 100, offset: int = 0) -> List[Competency]:
        # An empty query matches every competency, ordered by name.
        return self.store.search("", limit=limit, offset=offset)

    def create_competency(
        self,
        name: str,
        *,
        description: Optional[str] = None,
        source: Optional[str] = MANUAL_SOURCE,
        parent_id: Optional[str] = None,
    ) -> Competency:
        """Create a competency, optionally as a child of ``parent_id``.

        Raises ``DuplicateError`` when the normalized name is already taken.
        """
        if not name or not name.strip():
            raise ValidationError(message="competency name must not be empty")
        parent = self.get_competency(parent_id) if parent_id else None

        competency = self.store.create(
            name,
            description=description,
            source=source,
            parent_competency_id=parent.id if parent else None,
        )
        if parent is not None:
            self.store.link_subcompetency(parent.id, competency.id)
            logger.info("Created competency '%s' under '%s'", competency.name, parent.name)
        return competency

    def update_competency(self, competency_id: str, **fields: Any) -> Competency:
        self.get_competency(competency_id)
        changes = {key: value for key, value in fields.items() if key in UPDATABLE_FIELDS}
        if "name" in changes and (not changes["name"] or not changes["name"].strip()):
            raise ValidationError(message="competency name must not be empty")
        if not changes:
            return self.get_competency(competency_id)
        return self.store.update(competency_id, **changes)

    def get_linked_skills(self, competency_id: str) -> List[Skill]:
        self.get_competency(competency_id)
        return self.store.get_linked_skills(competency_id)

    def search(self, query: str, *, limit: int = 20, offset: int = 0) -> List[Competency]:
        if not query or not query.strip():
            raise ValidationError(message="search query must not be empty")
        return self.store.search(query, limit=limit, offset=offset)

    def delete_competency(self, competency_id: str) -> None:
        if not self.store.delete(competency_id):
            raise NotFoundError(message=f"competency {competency_id} not found")
        logger.info("Deleted competency %s with its links and user rows", competency_id)

    def link_skills(
        self,
        competency_id: str,
        *,
        skill_ids: Iterable[str] = (),
        skill_names: Iterable[str] = (),
    ) -> List[Skill]:
        self.get_competency(competency_id)

        skills: List[Skill] = []
        for skill_id in skill_ids:
            skill = self.store.find_skill_by_id(skill_id)
            if skill is None:
                raise NotFoundError(message=f"skill {skill_id} not found")
            skills.append(skill)
        for name in skill_names:
            if not name or not name.strip():
                continue
            skill, _ = self.store.get_or_create_skill(name, source=MANUAL_SOURCE)
            skills.append(skill)

        for skill in skills:
            self.store.link_skill(competency_id, skill.id)
        return self.store.get_linked_skills(competency_id)

    def unlink_skill(self, competency_id: str, skill_id: str) -> None:
        if not self.store.unlink_skill(competency_id, skill_id):
            raise NotFoundError(message=f"skill {skill_id} is not linked to competency {competency_id}")

    def link_subcompetency(self, parent_id: str, child_id: str) -> bool:
        self.get_competency(parent_id)
        self.get_competency(child_id)
        if self.store.would_create_cycle(parent_id, child_id):
            raise ValidationError(message=f"linking {child_id} under {parent_id} would create a cycle")
        return self.store.link_subcompetency(parent_id, child_id)

    def unlink_subcompetency(self, parent_id: str, child_id: str) -> None:
        if not self.store.unlink_subcompetency(parent_id, child_id):
            raise NotFoundError(message=f"{child_id} is not a sub-competency of {parent_id}")

    def get_competency_tree(self, competency_id: str) -> Dict[str, Any]:
        """Nested competencies with their skill trees, each node expanded once."""
        root = self.get_competency(competency_id)
        return self._competency_node(root, visited=set())

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _competency_node(self, competency: Competency, *, visited: Set[str]) -> Dict[str, Any]:
        visited.add(competency.id)
        children = []
        for child in self.store.find_children(competency.id):
            if child.id in visited:
                logger.warning("Competency '%s' reached twice in tree view; not expanded", child.name)
                continue
            children.append(self._competency_node(child, visited=visited))
        return {
            "competency": competency,
            "skills": [
                self._skill_node(skill)
                for skill in self.store.get_linked_skills(competency.id)
            ],
            "children": children,
        }

    def _skill_node(self, skill: Skill, ancestors: Optional[Set[str]] = None) -> Dict[str, Any]:
        ancestors = (ancestors or set()) | {skill.id}
        children = []
        for child in self.store.get_subskills(skill.id):
            if child.id in ancestors:
                logger.warning("Cycle in skill hierarchy at '%s'; not expanded", child.name)
                continue
            children.append(self._skill_node(child, ancestors))
        return {"skill": skill, "children": children}
