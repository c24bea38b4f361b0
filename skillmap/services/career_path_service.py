# Fichier: skillmap/services/career_path_service.py
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from skillmap.core.exceptions import NotFoundError, ValidationError
from skillmap.core.notifier import NullNotifier, Notifier, notify_safely
from skillmap.crud.taxonomy_store import LearnerStore, TaxonomyStore
from skillmap.models.competency_model import Competency
from skillmap.services.alias_resolver import AliasResolver
from skillmap.services.gap_analysis_service import GapAnalysisService, GapMode

logger = logging.getLogger(__name__)


class CareerPathService:
    """A user's target competencies, and the broad gap derived from them."""

    def __init__(
        self,
        store: TaxonomyStore,
        learners: LearnerStore,
        gaps: GapAnalysisService,
        resolver: Optional[AliasResolver] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.store = store
        self.learners = learners
        self.gaps = gaps
        self.resolver = resolver or AliasResolver(store)
        self.notifier = notifier or NullNotifier()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def list_career_path(self, user_id: str) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        for entry in self.learners.list_career_path(user_id):
            competency = self.store.find_by_id(entry.competency_id)
            items.append(
                {
                    "user_id": entry.user_id,
                    "competency_id": entry.competency_id,
                    "competency_name": competency.name if competency else None,
                    "created_at": entry.created_at,
                }
            )
        return items

    def add_career_path(
        self,
        user_id: str,
        *,
        competency_id: Optional[str] = None,
        competency_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        competency = self._resolve_target(competency_id, competency_name)
        entry, created = self.learners.add_career_path(user_id, competency.id)
        if created:
            logger.info("Added '%s' to the career path of %s", competency.name, user_id)
        return {
            "user_id": entry.user_id,
            "competency_id": competency.id,
            "competency_name": competency.name,
            "created_at": entry.created_at,
        }

    def remove_career_path(self, user_id: str, competency_id: str) -> None:
        if not self.learners.remove_career_path(user_id, competency_id):
            raise NotFoundError(message=f"competency {competency_id} is not on the career path of {user_id}")
        logger.info("Removed %s from the career path of %s", competency_id, user_id)

    def sync_downstream(
        self,
        user_id: str,
        *,
        schedule: Optional[Callable[..., Any]] = None,
    ) -> Dict[str, List[Dict[str, str]]]:
        """Compute the broad gap and push it, with the career path, to downstream services.

        Both payloads are built here. With ``schedule`` (for instance
        ``BackgroundTasks.add_task``) only the delivery is deferred.
        """
        gap = self.gaps.compute_gap(user_id, GapMode.BROAD)
        summary = self.career_path_summary(user_id)
        if schedule is None:
            self.notify_downstream(user_id, gap, summary)
        else:
            schedule(self.notify_downstream, user_id, gap, summary)
        return gap

    def career_path_summary(self, user_id: str) -> List[Dict[str, Any]]:
        return [
            {"competency_id": item["competency_id"], "competency_name": item["competency_name"]}
            for item in self.list_career_path(user_id)
        ]

    def notify_downstream(
        self,
        user_id: str,
        gap: Dict[str, List[Dict[str, str]]],
        competencies: List[Dict[str, Any]],
    ) -> None:
        notify_safely(self.notifier.notify_gap_analysis, user_id, gap, mode=GapMode.BROAD.value)
        notify_safely(self.notifier.notify_career_path, user_id, competencies)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _resolve_target(self, competency_id: Optional[str], competency_name: Optional[str]) -> Competency:
        if competency_id:
            competency = self.store.find_by_id(competency_id)
            if competency is None:
                raise NotFoundError(message=f"competency {competency_id} not found")
            return competency
        if competency_name and competency_name.strip():
            competency = self.resolver.lookup(competency_name)
            if competency is None:
                raise NotFoundError(message=f"competency '{competency_name}' not found")
            return competency
        raise ValidationError(message="competency_id or competency_name is required")
