"""Resolve free-text names to a single competency.

Strategies run in order and the first hit wins:

1. ``exact``      normalized name, or a registered alias;
2. ``compact``    separator-free form (``react.js`` -> ``reactjs``);
3. ``similarity`` best candidate scoring at least the configured threshold;
4. otherwise a new competency is created.

Strategies 2 and 3 register the incoming name as an alias so the next lookup
is an exact hit.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Union

from skillmap.core.config import settings
from skillmap.core.exceptions import DuplicateError, ValidationError
from skillmap.crud.taxonomy_store import TaxonomyStore
from skillmap.models.competency_model import Competency
from skillmap.utils.name_utils import compact_name, normalize_name

logger = logging.getLogger(__name__)

# Names shorter than this only score on character overlap ("R" vs "React").
MIN_CONTAINMENT_LENGTH = 3


@dataclass
class Found:
    competency: Competency
    strategy: str
    alias_registered: bool = False
    created: bool = False


@dataclass
class Created:
    competency: Competency
    strategy: str = "created"
    alias_registered: bool = False
    created: bool = True


Resolution = Union[Found, Created]


def similarity_score(left: str, right: str) -> float:
    """Score two normalized names on a 0-100 scale.

    100 for equality, 80 when one contains the other and the shorter one has
    at least ``MIN_CONTAINMENT_LENGTH`` characters, otherwise the share of
    common characters scaled to at most 60.
    """
    if not left or not right:
        return 0.0
    if left == right:
        return 100.0
    if min(len(left), len(right)) >= MIN_CONTAINMENT_LENGTH and (left in right or right in left):
        return 80.0
    common = sum((Counter(left) & Counter(right)).values())
    return round(common / max(len(left), len(right)) * 60, 2)


class AliasResolver:
    def __init__(
        self,
        store: TaxonomyStore,
        *,
        threshold: Optional[float] = None,
        candidate_limit: Optional[int] = None,
    ):
        self.store = store
        self.threshold = settings.ALIAS_SIMILARITY_THRESHOLD if threshold is None else threshold
        self.candidate_limit = settings.ALIAS_CANDIDATE_LIMIT if candidate_limit is None else candidate_limit
        self.strategies: List[tuple[str, Callable[[str], Optional[Competency]]]] = [
            ("exact", self._match_exact),
            ("compact", self._match_compact),
            ("similarity", self._match_similar),
        ]

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def resolve_or_create(
        self,
        name: str,
        *,
        description: Optional[str] = None,
        source: Optional[str] = None,
        parent_competency_id: Optional[str] = None,
    ) -> Resolution:
        normalized = normalize_name(name)
        if not normalized:
            raise ValidationError(message="competency name is empty")

        found = self._run_strategies(name)
        if found is not None:
            return found

        try:
            competency = self.store.create(
                name,
                description=description,
                source=source,
                parent_competency_id=parent_competency_id,
            )
        except DuplicateError:
            existing = self.store.find_by_name(name)
            if existing is None:
                raise
            logger.info("Competency '%s' was created concurrently; reusing %s", name, existing.id)
            return Found(competency=existing, strategy="exact")

        logger.info("Created competency '%s' (%s)", competency.name, competency.id)
        return Created(competency=competency)

    def lookup(self, name: str) -> Optional[Competency]:
        """Exact and compact matching only. Never creates or registers anything."""
        competency = self._match_exact(name)
        if competency is None:
            competency = self.store.find_by_compact_name(compact_name(name))
        return competency

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _run_strategies(self, name: str) -> Optional[Found]:
        for strategy, matcher in self.strategies:
            competency = matcher(name)
            if competency is None:
                continue
            registered = False
            if strategy != "exact":
                registered = self.store.register_alias(competency.id, name)
                logger.info(
                    "'%s' resolved to '%s' via %s match%s",
                    name,
                    competency.name,
                    strategy,
                    " (alias registered)" if registered else "",
                )
            return Found(competency=competency, strategy=strategy, alias_registered=registered)
        return None

    def _match_exact(self, name: str) -> Optional[Competency]:
        return self.store.find_by_name(name)

    def _match_compact(self, name: str) -> Optional[Competency]:
        compact = compact_name(name)
        if not compact:
            return None
        return self.store.find_by_compact_name(compact)

    def _match_similar(self, name: str) -> Optional[Competency]:
        normalized = normalize_name(name)
        candidates = self.store.find_similar_candidates(
            self._candidate_fragments(normalized), limit=self.candidate_limit
        )

        best: Optional[Competency] = None
        best_score = 0.0
        for label, competency in candidates:
            score = max(
                similarity_score(normalized, label),
                similarity_score(normalized.replace(" ", ""), label.replace(" ", "")),
            )
            if score > best_score:
                best, best_score = competency, score

        if best is not None and best_score >= self.threshold:
            return best
        return None

    @staticmethod
    def _candidate_fragments(normalized: str) -> Sequence[str]:
        # Word prefixes, so "reactjs" still surfaces "react".
        words = [word for word in normalized.split(" ") if len(word) >= 3] or [normalized]
        return list(dict.fromkeys(word[:4] for word in words))
