# Fichier: skillmap/services/gap_analysis_service.py
from __future__ import annotations

import enum
import logging
from typing import Dict, Iterable, List, Optional, Set

from skillmap.core.exceptions import NotFoundError
from skillmap.crud.taxonomy_store import LearnerStore, TaxonomyStore
from skillmap.services.skill_aggregator import SkillAggregator

logger = logging.getLogger(__name__)

GapResult = Dict[str, List[Dict[str, str]]]


class GapMode(str, enum.Enum):
    BROAD = "broad"
    NARROW = "narrow"


def select_gap_mode(exam_type: Optional[str], exam_status: Optional[str]) -> GapMode:
    """Baseline exams and passed follow-ups get a broad analysis, failed follow-ups a narrow one."""
    normalized_type = (exam_type or "baseline").strip().lower().replace("_", "-")
    if normalized_type == "baseline":
        return GapMode.BROAD
    if (exam_status or "").strip().lower() == "fail":
        return GapMode.NARROW
    return GapMode.BROAD


class GapAnalysisService:
    def __init__(self, store: TaxonomyStore, learners: LearnerStore, aggregator: SkillAggregator):
        self.store = store
        self.learners = learners
        self.aggregator = aggregator

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def compute_gap(
        self,
        user_id: str,
        mode: GapMode | str = GapMode.BROAD,
        competency_ids: Optional[Iterable[str]] = None,
    ) -> GapResult:
        mode = GapMode(mode)
        if mode is GapMode.BROAD:
            targets = [entry.competency_id for entry in self.learners.list_career_path(user_id)]
            if not targets:
                logger.info("User %s has no career path; broad gap is empty", user_id)
                return {}
        else:
            targets = list(dict.fromkeys(competency_ids or []))
            if not targets:
                logger.info("Narrow gap requested for %s without competencies; gap is empty", user_id)
                return {}

        verified_ids = self.verified_skill_ids(user_id)
        gap: GapResult = {}
        for competency_id in targets:
            competency = self.store.find_by_id(competency_id)
            if competency is None:
                if mode is GapMode.NARROW:
                    raise NotFoundError(message=f"competency {competency_id} not found")
                logger.warning("Career path of %s references missing competency %s", user_id, competency_id)
                continue

            missing = [
                {"skill_id": skill.id, "skill_name": skill.name}
                for skill in self.aggregator.get_required_mgs(competency.id)
                if skill.id not in verified_ids
            ]
            if not missing:
                continue
            gap.setdefault(competency.name, [])
            known = {item["skill_id"] for item in gap[competency.name]}
            gap[competency.name].extend(item for item in missing if item["skill_id"] not in known)

        for name in gap:
            gap[name].sort(key=lambda item: (item["skill_name"].lower(), item["skill_id"]))

        logger.info(
            "Gap analysis (%s) for %s: %s competencies, %s missing skills",
            mode.value,
            user_id,
            len(gap),
            sum(len(items) for items in gap.values()),
        )
        return gap

    def verified_skill_ids(self, user_id: str) -> Set[str]:
        verified: Set[str] = set()
        for row in self.learners.list_user_competencies(user_id):
            for entry in row.verified_skills or []:
                if entry.get("verified") is not False and entry.get("skill_id"):
                    verified.add(entry["skill_id"])
        return verified
