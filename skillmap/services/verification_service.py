"""Turns assessment results into ledger evidence and a follow-up gap analysis."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from skillmap.core.notifier import NullNotifier, Notifier, notify_safely
from skillmap.crud.taxonomy_store import LearnerStore, TaxonomyStore
from skillmap.schemas.learner_schema import ExamResultsIn
from skillmap.services.coverage_service import CoverageService
from skillmap.services.gap_analysis_service import GapAnalysisService, GapMode, select_gap_mode
from skillmap.services.skill_aggregator import SkillAggregator

logger = logging.getLogger(__name__)


class VerificationService:
    def __init__(
        self,
        store: TaxonomyStore,
        learners: LearnerStore,
        aggregator: SkillAggregator,
        coverage: CoverageService,
        gaps: GapAnalysisService,
        notifier: Optional[Notifier] = None,
    ):
        self.store = store
        self.learners = learners
        self.aggregator = aggregator
        self.coverage = coverage
        self.gaps = gaps
        self.notifier = notifier or NullNotifier()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def process_exam_results(
        self,
        user_id: str,
        exam: Union[ExamResultsIn, Mapping[str, Any]],
        *,
        notify: bool = True,
    ) -> Dict[str, Any]:
        exam = ExamResultsIn.model_validate(exam)
        logger.info(
            "Processing %s exam for user %s (%s skills, status=%s, course=%s)",
            exam.exam_type,
            user_id,
            len(exam.skills),
            exam.exam_status,
            exam.course_name,
        )

        evidence_by_competency: Dict[str, List[Dict[str, Any]]] = {}
        touched: Dict[str, None] = {}
        kept = 0

        for result in exam.skills:
            skill = self.store.find_skill_by_id(result.skill_id)
            if skill is None:
                logger.warning("Exam result for unknown skill %s ignored", result.skill_id)
                continue

            requiring = self.aggregator.find_competencies_requiring_skill(skill.id)
            for competency in requiring:
                touched[competency.id] = None

            if not result.is_passed:
                continue
            if not self.store.is_leaf_skill(skill.id):
                logger.info("Skill '%s' is not an MGS; exam result not stored", skill.name)
                continue

            kept += 1
            entry = {
                "skill_id": skill.id,
                "skill_name": result.skill_name or skill.name,
                "verified": True,
                "score": result.score,
            }
            for competency in requiring:
                evidence_by_competency.setdefault(competency.id, []).append(entry)

        updated: List[str] = []
        for competency_id, entries in evidence_by_competency.items():
            self.coverage.upsert_user_competency_evidence(user_id, competency_id, entries)
            updated.append(competency_id)

        mode = select_gap_mode(exam.exam_type, exam.exam_status)
        gap = self.gaps.compute_gap(
            user_id,
            mode,
            competency_ids=list(touched) if mode is GapMode.NARROW else None,
        )

        if notify:
            notify_safely(
                self.notifier.notify_gap_analysis,
                user_id,
                gap,
                mode=mode.value,
                course_name=exam.course_name,
                exam_status=exam.exam_status,
            )

        return {
            "user_id": user_id,
            "updated_competencies": updated,
            "verified_skills_count": kept,
            "gap_mode": mode.value,
            "gap": gap,
        }

    def build_baseline_mapping(self, user_id: str) -> List[Dict[str, Any]]:
        """MGS to examine for every leaf competency the user owns."""
        mapping: List[Dict[str, Any]] = []
        for row in self.learners.list_user_competencies(user_id):
            if self.store.find_children(row.competency_id):
                continue
            competency = self.store.find_by_id(row.competency_id)
            if competency is None:
                continue
            mgs = self.aggregator.get_required_mgs(competency.id)
            if not mgs:
                continue
            mapping.append(
                {
                    "competency_id": competency.id,
                    "competency_name": competency.name,
                    "mgs": [{"skill_id": skill.id, "skill_name": skill.name} for skill in mgs],
                }
            )
        return mapping
