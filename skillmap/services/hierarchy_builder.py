# Fichier: skillmap/services/hierarchy_builder.py
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, List, Optional

from skillmap.core.exceptions import ValidationError
from skillmap.core.tree_generator import TreeGenerator
from skillmap.crud.taxonomy_store import TaxonomyStore
from skillmap.schemas.tree_schema import TreeNode, parse_tree, validate_node
from skillmap.services.alias_resolver import AliasResolver

logger = logging.getLogger(__name__)

HIERARCHY_SOURCE = "career_path_ai"
CORE_DESCRIPTION = "Core competency (high-level skill)"


@dataclass
class HierarchyStats:
    competenciesCreated: int = 0
    competenciesExisting: int = 0
    relationshipsCreated: int = 0
    relationshipsExisting: int = 0
    skipped: int = 0
    root_competency_id: Optional[str] = None

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class FlatNode:
    name: str
    parent_index: Optional[int]
    is_core: bool


def _subtree_size(node: TreeNode) -> int:
    return 1 + sum(_subtree_size(child) for child in node.children)


class HierarchyBuilder:
    """Persists generated competency trees into the taxonomy store."""

    def __init__(
        self,
        store: TaxonomyStore,
        generator: TreeGenerator,
        resolver: Optional[AliasResolver] = None,
        *,
        source: str = HIERARCHY_SOURCE,
    ):
        self.store = store
        self.generator = generator
        self.resolver = resolver or AliasResolver(store)
        self.source = source

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def build_hierarchy(self, topic: str) -> HierarchyStats:
        logger.info("Building competency hierarchy for '%s'", topic)
        # TreeGenerationError propagates: the generation is the operation here.
        raw_tree = self.generator.generate_hierarchy(topic)
        stats = self.persist_tree(raw_tree)
        logger.info("Hierarchy for '%s' persisted: %s", topic, stats.as_dict())
        return stats

    def persist_tree(self, raw_tree: Any) -> HierarchyStats:
        stats = HierarchyStats()
        try:
            tree = parse_tree(raw_tree)
        except ValidationError as exc:
            logger.warning("Rejected hierarchy payload: %s", exc)
            return stats

        nodes = self.flatten(tree, stats)
        if not nodes:
            logger.warning("Hierarchy root is invalid; nothing persisted (%s nodes skipped)", stats.skipped)
            return stats

        ids = self._resolve_nodes(nodes, stats)
        stats.root_competency_id = ids[0]
        self._link_nodes(nodes, ids, stats)
        return stats

    def flatten(self, tree: TreeNode, stats: Optional[HierarchyStats] = None) -> List[FlatNode]:
        """Pre-order list of valid nodes; an invalid node drops its whole subtree."""
        stats = stats if stats is not None else HierarchyStats()
        flat: List[FlatNode] = []

        def walk(node: TreeNode, parent_index: Optional[int]) -> None:
            try:
                validate_node(node)
            except ValidationError as exc:
                dropped = _subtree_size(node)
                stats.skipped += dropped
                logger.warning("Skipping hierarchy node (%s nodes dropped): %s", dropped, exc)
                return
            flat.append(FlatNode(name=node.name, parent_index=parent_index, is_core=node.is_core))
            index = len(flat) - 1
            for child in node.children:
                walk(child, index)

        walk(tree, None)
        return flat

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _resolve_nodes(self, nodes: List[FlatNode], stats: HierarchyStats) -> List[str]:
        ids: List[str] = []
        for node in nodes:
            parent_id = ids[node.parent_index] if node.parent_index is not None else None
            result = self.resolver.resolve_or_create(
                node.name,
                description=CORE_DESCRIPTION if node.is_core else None,
                source=self.source,
                parent_competency_id=parent_id,
            )
            if result.created:
                stats.competenciesCreated += 1
            else:
                stats.competenciesExisting += 1
            ids.append(result.competency.id)
        return ids

    def _link_nodes(self, nodes: List[FlatNode], ids: List[str], stats: HierarchyStats) -> None:
        for index, node in enumerate(nodes):
            if node.parent_index is None:
                continue
            parent_id, child_id = ids[node.parent_index], ids[index]
            if parent_id == child_id:
                logger.warning("'%s' resolved to its own parent; link skipped", node.name)
                continue

            existing = {link.child_competency_id for link in self.store.get_subcompetency_links(parent_id)}
            if child_id in existing:
                stats.relationshipsExisting += 1
                continue
            if self.store.would_create_cycle(parent_id, child_id):
                logger.warning("Link %s -> %s would create a cycle; skipped", parent_id, child_id)
                continue

            if self.store.link_subcompetency(parent_id, child_id):
                stats.relationshipsCreated += 1
            else:
                stats.relationshipsExisting += 1
