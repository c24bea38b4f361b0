"""Dictionary backed store used by tests, scripts and offline tooling."""

from __future__ import annotations

import itertools
import uuid
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from skillmap.core.exceptions import DuplicateError, NotFoundError
from skillmap.crud.taxonomy_store import LearnerStore, TaxonomyStore
from skillmap.models.competency_model import Competency, CompetencySubcompetency
from skillmap.models.learner_model import ProficiencyLevel, UserCareerPath, UserCompetency
from skillmap.models.skill_model import Skill
from skillmap.utils.name_utils import compact_name, normalize_name


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryStore(TaxonomyStore, LearnerStore):
    def __init__(self) -> None:
        self.competencies: Dict[str, Competency] = {}
        self.aliases: Dict[str, str] = {}  # normalized alias -> competency id
        self.subcompetency_links: List[Tuple[str, str]] = []
        self.competency_skills: List[Tuple[str, str]] = []
        self.skills: Dict[str, Skill] = {}
        self.subskill_links: List[Tuple[str, str]] = []
        self.user_competencies: Dict[Tuple[str, str], UserCompetency] = {}
        self.career_paths: List[UserCareerPath] = []
        self._career_path_ids = itertools.count(1)

    # ------------------------------------------------------------------
    # Competencies
    # ------------------------------------------------------------------
    def find_by_id(self, competency_id: str) -> Optional[Competency]:
        return self.competencies.get(competency_id)

    def find_by_name(self, name: str) -> Optional[Competency]:
        normalized = normalize_name(name)
        if not normalized:
            return None
        for competency in self.competencies.values():
            if competency.normalized_name == normalized:
                return competency
        competency_id = self.aliases.get(normalized)
        return self.competencies.get(competency_id) if competency_id else None

    def find_by_compact_name(self, compact: str) -> Optional[Competency]:
        if not compact:
            return None
        for competency in self.competencies.values():
            if competency.compact_name == compact:
                return competency
        for alias, competency_id in self.aliases.items():
            if alias.replace(" ", "") == compact:
                return self.competencies.get(competency_id)
        return None

    def create(
        self,
        name: str,
        *,
        description: Optional[str] = None,
        source: Optional[str] = None,
        parent_competency_id: Optional[str] = None,
    ) -> Competency:
        normalized = normalize_name(name)
        if any(c.normalized_name == normalized for c in self.competencies.values()):
            raise DuplicateError(message=f"competency '{name}' already exists")
        now = _utcnow()
        competency = Competency(
            id=str(uuid.uuid4()),
            name=name.strip(),
            normalized_name=normalized,
            compact_name=compact_name(name),
            description=description,
            source=source,
            parent_competency_id=parent_competency_id,
            created_at=now,
            updated_at=now,
        )
        self.competencies[competency.id] = competency
        return competency

    def update(self, competency_id: str, **fields) -> Competency:
        competency = self.find_by_id(competency_id)
        if competency is None:
            raise NotFoundError(message=f"competency {competency_id} not found")
        if fields.get("name"):
            normalized = normalize_name(fields["name"])
            clash = next(
                (c for c in self.competencies.values() if c.normalized_name == normalized and c.id != competency_id),
                None,
            )
            if clash is not None:
                raise DuplicateError(message=f"competency '{fields['name']}' already exists")
            fields["normalized_name"] = normalized
            fields["compact_name"] = compact_name(fields["name"])
        for key, value in fields.items():
            setattr(competency, key, value)
        competency.updated_at = _utcnow()
        return competency

    def delete(self, competency_id: str) -> bool:
        if self.competencies.pop(competency_id, None) is None:
            return False
        self.subcompetency_links = [
            link for link in self.subcompetency_links if competency_id not in link
        ]
        self.competency_skills = [link for link in self.competency_skills if link[0] != competency_id]
        self.aliases = {alias: cid for alias, cid in self.aliases.items() if cid != competency_id}
        self.user_competencies = {
            key: row for key, row in self.user_competencies.items() if key[1] != competency_id
        }
        self.career_paths = [entry for entry in self.career_paths if entry.competency_id != competency_id]
        for competency in self.competencies.values():
            if competency.parent_competency_id == competency_id:
                competency.parent_competency_id = None
        return True

    def search(self, query: str, *, limit: int = 20, offset: int = 0) -> List[Competency]:
        normalized = normalize_name(query)
        matches = [
            c for c in self.competencies.values() if not normalized or normalized in c.normalized_name
        ]
        matches.sort(key=lambda c: c.name)
        return matches[offset : offset + limit]

    def find_similar_candidates(self, fragments: Sequence[str], *, limit: int) -> List[Tuple[str, Competency]]:
        terms = [fragment for fragment in fragments if fragment]
        if not terms:
            return []
        candidates: List[Tuple[str, Competency]] = []
        names = [c for c in self.competencies.values() if any(t in c.normalized_name for t in terms)]
        candidates.extend((c.normalized_name, c) for c in names[:limit])
        aliases = [(a, cid) for a, cid in self.aliases.items() if any(t in a for t in terms)]
        candidates.extend((alias, self.competencies[cid]) for alias, cid in aliases[:limit])
        return candidates

    def register_alias(self, competency_id: str, alias: str) -> bool:
        normalized = normalize_name(alias)
        if not normalized:
            return False
        competency = self.find_by_id(competency_id)
        if competency is None:
            raise NotFoundError(message=f"competency {competency_id} not found")
        if competency.normalized_name == normalized or normalized in self.aliases:
            return False
        self.aliases[normalized] = competency_id
        return True

    def get_aliases(self, competency_id: str) -> List[str]:
        return sorted(alias for alias, cid in self.aliases.items() if cid == competency_id)

    # ------------------------------------------------------------------
    # Competency hierarchy
    # ------------------------------------------------------------------
    def find_children(self, competency_id: str) -> List[Competency]:
        children = [
            self.competencies[child]
            for parent, child in self.subcompetency_links
            if parent == competency_id and child in self.competencies
        ]
        return sorted(children, key=lambda c: c.name)

    def link_subcompetency(self, parent_id: str, child_id: str) -> bool:
        if (parent_id, child_id) in self.subcompetency_links:
            return False
        self.subcompetency_links.append((parent_id, child_id))
        return True

    def unlink_subcompetency(self, parent_id: str, child_id: str) -> bool:
        if (parent_id, child_id) not in self.subcompetency_links:
            return False
        self.subcompetency_links.remove((parent_id, child_id))
        return True

    def get_subcompetency_links(self, competency_id: str) -> List[CompetencySubcompetency]:
        return [
            CompetencySubcompetency(parent_competency_id=parent, child_competency_id=child)
            for parent, child in self.subcompetency_links
            if parent == competency_id
        ]

    def get_parent_competencies(self, competency_id: str) -> List[Competency]:
        return [
            self.competencies[parent]
            for parent, child in self.subcompetency_links
            if child == competency_id and parent in self.competencies
        ]

    # ------------------------------------------------------------------
    # Skills
    # ------------------------------------------------------------------
    def find_skill_by_id(self, skill_id: str) -> Optional[Skill]:
        return self.skills.get(skill_id)

    def find_skill_by_name(self, name: str) -> Optional[Skill]:
        normalized = normalize_name(name)
        if not normalized:
            return None
        return next((s for s in self.skills.values() if s.normalized_name == normalized), None)

    def create_skill(
        self,
        name: str,
        *,
        description: Optional[str] = None,
        source: Optional[str] = None,
        parent_skill_id: Optional[str] = None,
    ) -> Skill:
        if self.find_skill_by_name(name) is not None:
            raise DuplicateError(message=f"skill '{name}' already exists")
        now = _utcnow()
        skill = Skill(
            id=str(uuid.uuid4()),
            name=name.strip(),
            normalized_name=normalize_name(name),
            description=description,
            source=source,
            parent_skill_id=parent_skill_id,
            created_at=now,
            updated_at=now,
        )
        self.skills[skill.id] = skill
        return skill

    def delete_skill(self, skill_id: str) -> bool:
        if self.skills.pop(skill_id, None) is None:
            return False
        self.subskill_links = [link for link in self.subskill_links if skill_id not in link]
        self.competency_skills = [link for link in self.competency_skills if link[1] != skill_id]
        for skill in self.skills.values():
            if skill.parent_skill_id == skill_id:
                skill.parent_skill_id = None
        return True

    def link_skill(self, competency_id: str, skill_id: str) -> bool:
        if (competency_id, skill_id) in self.competency_skills:
            return False
        self.competency_skills.append((competency_id, skill_id))
        return True

    def unlink_skill(self, competency_id: str, skill_id: str) -> bool:
        if (competency_id, skill_id) not in self.competency_skills:
            return False
        self.competency_skills.remove((competency_id, skill_id))
        return True

    def get_linked_skills(self, competency_id: str) -> List[Skill]:
        skills = [
            self.skills[sid] for cid, sid in self.competency_skills if cid == competency_id and sid in self.skills
        ]
        return sorted(skills, key=lambda s: s.name)

    def link_subskill(self, parent_skill_id: str, child_skill_id: str) -> bool:
        if (parent_skill_id, child_skill_id) in self.subskill_links:
            return False
        self.subskill_links.append((parent_skill_id, child_skill_id))
        return True

    def get_subskills(self, skill_id: str) -> List[Skill]:
        children = [
            self.skills[child] for parent, child in self.subskill_links if parent == skill_id and child in self.skills
        ]
        return sorted(children, key=lambda s: s.name)

    def get_skill_parents(self, skill_id: str) -> List[Skill]:
        return [
            self.skills[parent] for parent, child in self.subskill_links if child == skill_id and parent in self.skills
        ]

    def find_competencies_by_skills(self, skill_ids: Iterable[str]) -> List[Competency]:
        wanted = set(skill_ids)
        ids = dict.fromkeys(cid for cid, sid in self.competency_skills if sid in wanted)
        return [self.competencies[cid] for cid in ids if cid in self.competencies]

    # ------------------------------------------------------------------
    # Learner ledger
    # ------------------------------------------------------------------
    def get_user_competency(self, user_id: str, competency_id: str) -> Optional[UserCompetency]:
        return self.user_competencies.get((user_id, competency_id))

    def list_user_competencies(self, user_id: str) -> List[UserCompetency]:
        return [row for (uid, _), row in self.user_competencies.items() if uid == user_id]

    def create_user_competency(self, user_id: str, competency_id: str) -> UserCompetency:
        existing = self.get_user_competency(user_id, competency_id)
        if existing is not None:
            return existing
        now = _utcnow()
        row = UserCompetency(
            user_id=user_id,
            competency_id=competency_id,
            coverage_percentage=0.0,
            proficiency_level=ProficiencyLevel.UNDEFINED,
            verified_skills=[],
            required_mgs_count=0,
            verified_mgs_count=0,
            created_at=now,
            updated_at=now,
        )
        self.user_competencies[(user_id, competency_id)] = row
        return row

    def update_user_competency(self, user_id: str, competency_id: str, **fields) -> UserCompetency:
        row = self.get_user_competency(user_id, competency_id)
        if row is None:
            raise NotFoundError(message=f"user competency {user_id}/{competency_id} not found")
        for key, value in fields.items():
            setattr(row, key, value)
        row.updated_at = _utcnow()
        return row

    def delete_user_competency(self, user_id: str, competency_id: str) -> bool:
        return self.user_competencies.pop((user_id, competency_id), None) is not None

    def list_career_path(self, user_id: str) -> List[UserCareerPath]:
        return [entry for entry in self.career_paths if entry.user_id == user_id]

    def add_career_path(self, user_id: str, competency_id: str) -> Tuple[UserCareerPath, bool]:
        for entry in self.career_paths:
            if entry.user_id == user_id and entry.competency_id == competency_id:
                return entry, False
        entry = UserCareerPath(
            id=next(self._career_path_ids),
            user_id=user_id,
            competency_id=competency_id,
            created_at=_utcnow(),
        )
        self.career_paths.append(entry)
        return entry, True

    def remove_career_path(self, user_id: str, competency_id: str) -> bool:
        before = len(self.career_paths)
        self.career_paths = [
            entry
            for entry in self.career_paths
            if not (entry.user_id == user_id and entry.competency_id == competency_id)
        ]
        return len(self.career_paths) != before
