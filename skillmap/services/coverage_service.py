"""Per-user coverage, proficiency and upward propagation.

Coverage is the share of a competency's required MGS the user has verified.
Ancestors aggregate the required and verified counts of their direct
children, so a change on a deep competency is visible on every parent,
grandparent and so on after a single call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple, Union

from skillmap.core.exceptions import NotFoundError
from skillmap.crud.taxonomy_store import LearnerStore, TaxonomyStore
from skillmap.models.competency_model import Competency
from skillmap.models.learner_model import ProficiencyLevel, UserCompetency
from skillmap.schemas.learner_schema import VerifiedSkill
from skillmap.services.skill_aggregator import SkillAggregator

logger = logging.getLogger(__name__)

EvidenceInput = Union[VerifiedSkill, Mapping[str, Any]]


def map_coverage_to_proficiency(coverage: float) -> ProficiencyLevel:
    if coverage >= 80:
        return ProficiencyLevel.EXPERT
    if coverage >= 60:
        return ProficiencyLevel.ADVANCED
    if coverage >= 40:
        return ProficiencyLevel.INTERMEDIATE
    return ProficiencyLevel.BEGINNER


def calculate_coverage(required_count: int, verified_count: int) -> float:
    if required_count <= 0:
        return 0.0
    return round(verified_count / required_count * 100, 2)


def count_verified(evidence: Iterable[Mapping[str, Any]], required_ids: Set[str]) -> int:
    """Distinct verified skill ids that belong to ``required_ids``."""
    verified = {
        entry.get("skill_id")
        for entry in evidence or []
        if entry.get("verified") is True and entry.get("skill_id") in required_ids
    }
    return len(verified)


@dataclass
class CoverageResult:
    user_competency: UserCompetency
    propagated_to: List[str] = field(default_factory=list)


class CoverageService:
    def __init__(self, store: TaxonomyStore, learners: LearnerStore, aggregator: SkillAggregator):
        self.store = store
        self.learners = learners
        self.aggregator = aggregator

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def upsert_user_competency_evidence(
        self,
        user_id: str,
        competency_id: str,
        evidence: Iterable[EvidenceInput],
        *,
        replace: bool = False,
    ) -> CoverageResult:
        """Merge ``evidence`` into the user's row, recompute it and propagate upward."""
        competency = self._require_competency(competency_id)
        row = self.learners.create_user_competency(user_id, competency.id)

        current = [] if replace else list(row.verified_skills or [])
        merged = self._merge_evidence(current, evidence)
        row = self.learners.update_user_competency(user_id, competency.id, verified_skills=merged)

        row = self.recompute(user_id, competency)
        propagated = self.propagate(user_id, competency.id)
        return CoverageResult(user_competency=row, propagated_to=propagated)

    def recompute(self, user_id: str, competency: Competency) -> UserCompetency:
        """Recompute one row; the same counting rule applies as during propagation."""
        self.learners.create_user_competency(user_id, competency.id)
        required, verified = self._aggregate_children(user_id, competency.id)
        return self._store_counts(user_id, competency.id, required, verified)

    def propagate(self, user_id: str, competency_id: str) -> List[str]:
        """Refresh every ancestor of ``competency_id``, children before parents."""
        updated: List[str] = []
        for ancestor in self._ancestors_bottom_up(competency_id):
            try:
                self.learners.create_user_competency(user_id, ancestor.id)
                required, verified = self._aggregate_children(user_id, ancestor.id)
                self._store_counts(user_id, ancestor.id, required, verified)
                updated.append(ancestor.id)
            except Exception:
                logger.exception(
                    "Coverage propagation to '%s' (%s) failed for user %s; skipped",
                    ancestor.name,
                    ancestor.id,
                    user_id,
                )
        if updated:
            logger.info("Propagated coverage of %s to %s ancestors for user %s", competency_id, len(updated), user_id)
        return updated

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _require_competency(self, competency_id: str) -> Competency:
        competency = self.store.find_by_id(competency_id)
        if competency is None:
            raise NotFoundError(message=f"competency {competency_id} not found")
        return competency

    def _merge_evidence(self, current: List[Dict[str, Any]], incoming: Iterable[EvidenceInput]) -> List[Dict[str, Any]]:
        by_skill: Dict[str, Dict[str, Any]] = {
            entry["skill_id"]: dict(entry) for entry in current if entry.get("skill_id")
        }
        for item in incoming:
            entry = VerifiedSkill.model_validate(item).model_dump()
            skill = self.store.find_skill_by_id(entry["skill_id"])
            if skill is None:
                logger.warning("Evidence for unknown skill %s dropped", entry["skill_id"])
                continue
            if not self.store.is_leaf_skill(skill.id):
                logger.warning("Evidence for non-leaf skill '%s' dropped; only MGS are tracked", skill.name)
                continue
            entry["skill_name"] = entry.get("skill_name") or skill.name
            by_skill[skill.id] = entry
        return list(by_skill.values())

    def _store_counts(self, user_id: str, competency_id: str, required: int, verified: int) -> UserCompetency:
        coverage = calculate_coverage(required, verified)
        return self.learners.update_user_competency(
            user_id,
            competency_id,
            coverage_percentage=coverage,
            proficiency_level=map_coverage_to_proficiency(coverage),
            required_mgs_count=required,
            verified_mgs_count=verified,
        )

    def _aggregate_children(self, user_id: str, competency_id: str) -> Tuple[int, int]:
        """Required and verified MGS counts for one competency.

        A leaf competency is counted from its own evidence against its full MGS
        set. A competency with sub-competencies sums its direct children and adds
        the leaves of its own linked skills that no child already requires,
        counted against its own evidence.
        """
        row = self.learners.get_user_competency(user_id, competency_id)
        own_evidence = row.verified_skills if row is not None else []

        children = self.store.find_children(competency_id)
        if not children:
            required_ids = {skill.id for skill in self.aggregator.get_required_mgs(competency_id)}
            return len(required_ids), count_verified(own_evidence, required_ids)

        total_required = 0
        total_verified = 0
        required_by_children: Set[str] = set()
        for child in children:
            child_required = {
                skill.id for skill in self.aggregator.get_required_mgs(child.id, generate_missing=False)
            }
            required_by_children |= child_required
            child_row = self.learners.get_user_competency(user_id, child.id)
            if self.store.find_children(child.id) and child_row is not None:
                total_required += child_row.required_mgs_count
                total_verified += child_row.verified_mgs_count
                continue

            total_required += len(child_required)
            if child_row is not None:
                total_verified += count_verified(child_row.verified_skills, child_required)

        own_ids = {skill.id for skill in self.aggregator.get_direct_mgs(competency_id)} - required_by_children
        total_required += len(own_ids)
        total_verified += count_verified(own_evidence, own_ids)
        return total_required, total_verified

    def _ancestors_bottom_up(self, competency_id: str) -> List[Competency]:
        ancestors = self.store.get_ancestor_competencies(competency_id)
        ids = {ancestor.id for ancestor in ancestors}
        waiting_on: Dict[str, Set[str]] = {
            ancestor.id: {child.id for child in self.store.find_children(ancestor.id) if child.id in ids}
            for ancestor in ancestors
        }

        ordered: List[Competency] = []
        remaining = list(ancestors)
        while remaining:
            ready = [ancestor for ancestor in remaining if not waiting_on[ancestor.id]]
            if not ready:
                logger.warning(
                    "Cycle among ancestors of %s; propagating the rest in discovery order", competency_id
                )
                ordered.extend(remaining)
                break
            for ancestor in ready:
                ordered.append(ancestor)
                remaining.remove(ancestor)
                for pending in waiting_on.values():
                    pending.discard(ancestor.id)
        return ordered
