"""Storage contracts used by the taxonomy services.

Services never talk to SQLAlchemy directly: they receive a ``TaxonomyStore``
(and a ``LearnerStore`` for user data) so the same logic runs against the
SQL backend in production and the in-memory backend in tests or scripts.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import deque
from typing import Iterable, List, Optional, Sequence, Tuple

from skillmap.core.exceptions import DuplicateError
from skillmap.models.competency_model import Competency, CompetencySubcompetency
from skillmap.models.learner_model import UserCareerPath, UserCompetency
from skillmap.models.skill_model import Skill

logger = logging.getLogger(__name__)


class TaxonomyStore(ABC):
    # ------------------------------------------------------------------
    # Competencies
    # ------------------------------------------------------------------
    @abstractmethod
    def find_by_id(self, competency_id: str) -> Optional[Competency]: ...

    @abstractmethod
    def find_by_name(self, name: str) -> Optional[Competency]:
        """Match on the normalized name, then on registered aliases."""

    @abstractmethod
    def find_by_compact_name(self, compact: str) -> Optional[Competency]:
        """Match on the separator-free form of names and aliases."""

    @abstractmethod
    def create(
        self,
        name: str,
        *,
        description: Optional[str] = None,
        source: Optional[str] = None,
        parent_competency_id: Optional[str] = None,
    ) -> Competency:
        """Insert a competency. Raises ``DuplicateError`` on a name clash."""

    @abstractmethod
    def update(self, competency_id: str, **fields) -> Competency: ...

    @abstractmethod
    def delete(self, competency_id: str) -> bool:
        """Delete a competency with its links, aliases, user rows and career path entries."""

    @abstractmethod
    def search(self, query: str, *, limit: int = 20, offset: int = 0) -> List[Competency]: ...

    @abstractmethod
    def find_similar_candidates(self, fragments: Sequence[str], *, limit: int) -> List[Tuple[str, Competency]]:
        """Return ``(normalized label, competency)`` pairs whose label contains a fragment."""

    @abstractmethod
    def register_alias(self, competency_id: str, alias: str) -> bool: ...

    @abstractmethod
    def get_aliases(self, competency_id: str) -> List[str]: ...

    # ------------------------------------------------------------------
    # Competency hierarchy
    # ------------------------------------------------------------------
    @abstractmethod
    def find_children(self, competency_id: str) -> List[Competency]: ...

    @abstractmethod
    def link_subcompetency(self, parent_id: str, child_id: str) -> bool:
        """Create the link if absent; ``True`` when a row was inserted."""

    @abstractmethod
    def unlink_subcompetency(self, parent_id: str, child_id: str) -> bool: ...

    @abstractmethod
    def get_subcompetency_links(self, competency_id: str) -> List[CompetencySubcompetency]: ...

    @abstractmethod
    def get_parent_competencies(self, competency_id: str) -> List[Competency]: ...

    # ------------------------------------------------------------------
    # Skills
    # ------------------------------------------------------------------
    @abstractmethod
    def find_skill_by_id(self, skill_id: str) -> Optional[Skill]: ...

    @abstractmethod
    def find_skill_by_name(self, name: str) -> Optional[Skill]: ...

    @abstractmethod
    def create_skill(
        self,
        name: str,
        *,
        description: Optional[str] = None,
        source: Optional[str] = None,
        parent_skill_id: Optional[str] = None,
    ) -> Skill: ...

    @abstractmethod
    def delete_skill(self, skill_id: str) -> bool: ...

    @abstractmethod
    def link_skill(self, competency_id: str, skill_id: str) -> bool: ...

    @abstractmethod
    def unlink_skill(self, competency_id: str, skill_id: str) -> bool: ...

    @abstractmethod
    def get_linked_skills(self, competency_id: str) -> List[Skill]: ...

    @abstractmethod
    def link_subskill(self, parent_skill_id: str, child_skill_id: str) -> bool: ...

    @abstractmethod
    def get_subskills(self, skill_id: str) -> List[Skill]: ...

    @abstractmethod
    def get_skill_parents(self, skill_id: str) -> List[Skill]: ...

    @abstractmethod
    def find_competencies_by_skills(self, skill_ids: Iterable[str]) -> List[Competency]:
        """Competencies that link at least one of ``skill_ids`` directly."""

    # ------------------------------------------------------------------
    # Derived helpers
    # ------------------------------------------------------------------
    def is_leaf_skill(self, skill_id: str) -> bool:
        return not self.get_subskills(skill_id)

    def find_skill_parent(self, skill_id: str) -> Optional[Skill]:
        parents = self.get_skill_parents(skill_id)
        return parents[0] if parents else None

    def find_skill_mgs(self, skill_id: str, visited: Optional[set[str]] = None) -> List[Skill]:
        """Leaf descendants of ``skill_id`` (the skill itself when it is a leaf)."""
        visited = visited if visited is not None else set()
        leaves: dict[str, Skill] = {}
        stack = [skill_id]
        while stack:
            current_id = stack.pop()
            if current_id in visited:
                continue
            visited.add(current_id)

            children = self.get_subskills(current_id)
            if not children:
                skill = self.find_skill_by_id(current_id)
                if skill is not None:
                    leaves[skill.id] = skill
                continue
            stack.extend(child.id for child in children)
        return list(leaves.values())

    def get_or_create_skill(self, name: str, *, source: Optional[str] = None) -> Tuple[Skill, bool]:
        existing = self.find_skill_by_name(name)
        if existing is not None:
            return existing, False
        try:
            return self.create_skill(name, source=source), True
        except DuplicateError:
            # Another writer inserted the same name in between.
            existing = self.find_skill_by_name(name)
            if existing is None:
                raise
            return existing, False

    def get_ancestor_competencies(self, competency_id: str) -> List[Competency]:
        """All ancestors reachable through the link table, nearest first."""
        ancestors: List[Competency] = []
        visited = {competency_id}
        queue = deque([competency_id])
        while queue:
            current = queue.popleft()
            for parent in self.get_parent_competencies(current):
                if parent.id in visited:
                    continue
                visited.add(parent.id)
                ancestors.append(parent)
                queue.append(parent.id)
        return ancestors

    def would_create_cycle(self, parent_id: str, child_id: str) -> bool:
        if parent_id == child_id:
            return True
        return any(ancestor.id == child_id for ancestor in self.get_ancestor_competencies(parent_id))


class LearnerStore(ABC):
    @abstractmethod
    def get_user_competency(self, user_id: str, competency_id: str) -> Optional[UserCompetency]: ...

    @abstractmethod
    def list_user_competencies(self, user_id: str) -> List[UserCompetency]: ...

    @abstractmethod
    def create_user_competency(self, user_id: str, competency_id: str) -> UserCompetency:
        """Return the existing row or insert one with zero coverage."""

    @abstractmethod
    def update_user_competency(self, user_id: str, competency_id: str, **fields) -> UserCompetency: ...

    @abstractmethod
    def delete_user_competency(self, user_id: str, competency_id: str) -> bool: ...

    @abstractmethod
    def list_career_path(self, user_id: str) -> List[UserCareerPath]: ...

    @abstractmethod
    def add_career_path(self, user_id: str, competency_id: str) -> Tuple[UserCareerPath, bool]: ...

    @abstractmethod
    def remove_career_path(self, user_id: str, competency_id: str) -> bool: ...
