"""Entry point bundling the taxonomy services around one store."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from skillmap.core.notifier import NullNotifier, Notifier
from skillmap.core.tree_generator import TreeGenerator
from skillmap.crud.taxonomy_store import LearnerStore, TaxonomyStore
from skillmap.models.skill_model import Skill
from skillmap.services.alias_resolver import AliasResolver, Resolution
from skillmap.services.career_path_service import CareerPathService
from skillmap.services.competency_service import CompetencyService
from skillmap.services.coverage_service import CoverageResult, CoverageService
from skillmap.services.gap_analysis_service import GapAnalysisService, GapMode
from skillmap.services.hierarchy_builder import HierarchyBuilder, HierarchyStats
from skillmap.services.normalization_service import normalize_extracted_names
from skillmap.services.skill_aggregator import SkillAggregator
from skillmap.services.verification_service import VerificationService

logger = logging.getLogger(__name__)


class SkillMapService:
    def __init__(
        self,
        store: TaxonomyStore,
        learners: Optional[LearnerStore] = None,
        *,
        generator: Optional[TreeGenerator] = None,
        notifier: Optional[Notifier] = None,
    ):
        if learners is None:
            if not isinstance(store, LearnerStore):
                raise TypeError("a LearnerStore is required when the taxonomy store does not provide one")
            learners = store

        self.store = store
        self.learners = learners
        self.notifier = notifier or NullNotifier()

        self.resolver = AliasResolver(store)
        self.aggregator = SkillAggregator(store, generator, self.resolver)
        self.builder = HierarchyBuilder(store, generator, self.resolver) if generator else None
        self.coverage = CoverageService(store, learners, self.aggregator)
        self.gaps = GapAnalysisService(store, learners, self.aggregator)
        self.verification = VerificationService(
            store, learners, self.aggregator, self.coverage, self.gaps, self.notifier
        )
        self.career_paths = CareerPathService(store, learners, self.gaps, self.resolver, self.notifier)
        self.competencies = CompetencyService(store)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def build_hierarchy(self, topic: str) -> HierarchyStats:
        if self.builder is None:
            raise RuntimeError("build_hierarchy needs a tree generator")
        return self.builder.build_hierarchy(topic)

    def get_required_mgs(
        self,
        competency_id: Optional[str] = None,
        *,
        name: Optional[str] = None,
    ) -> List[Skill]:
        if competency_id:
            return self.aggregator.get_required_mgs(competency_id)
        if name:
            return self.aggregator.get_required_mgs_by_name(name)
        raise ValueError("competency_id or name is required")

    def upsert_user_competency_evidence(
        self,
        user_id: str,
        competency_id: str,
        evidence: Iterable[Mapping[str, Any]],
    ) -> CoverageResult:
        return self.coverage.upsert_user_competency_evidence(user_id, competency_id, evidence)

    def compute_gap(
        self,
        user_id: str,
        mode: GapMode | str = GapMode.BROAD,
        competency_ids: Optional[Iterable[str]] = None,
    ) -> Dict[str, List[Dict[str, str]]]:
        return self.gaps.compute_gap(user_id, mode, competency_ids)

    def resolve_or_create_competency(self, name: str, **fields) -> Resolution:
        return self.resolver.resolve_or_create(name, **fields)

    def normalize_extracted_names(self, names: Iterable[str]) -> List[Dict[str, Any]]:
        return normalize_extracted_names(names, self.resolver)
