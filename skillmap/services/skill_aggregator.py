# Fichier: skillmap/services/skill_aggregator.py
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Set

from skillmap.core.exceptions import NotFoundError, SkillMapError, ValidationError
from skillmap.core.tree_generator import TreeGenerator
from skillmap.crud.taxonomy_store import TaxonomyStore
from skillmap.models.competency_model import Competency
from skillmap.models.skill_model import Skill
from skillmap.schemas.tree_schema import TreeNode, parse_tree, validate_node
from skillmap.services.alias_resolver import AliasResolver

logger = logging.getLogger(__name__)

SKILL_TREE_SOURCE = "skill_tree_ai"


class SkillAggregator:
    """Computes the most granular skills (MGS) a competency requires.

    A competency's MGS set is the union of the leaf skills under its linked
    skills and the MGS sets of its sub-competencies. Competencies with
    neither get a skill tree generated on first access.
    """

    def __init__(
        self,
        store: TaxonomyStore,
        generator: Optional[TreeGenerator] = None,
        resolver: Optional[AliasResolver] = None,
    ):
        self.store = store
        self.generator = generator
        self.resolver = resolver or AliasResolver(store)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def get_required_mgs(self, competency_id: str, *, generate_missing: bool = True) -> List[Skill]:
        competency = self.store.find_by_id(competency_id)
        if competency is None:
            raise NotFoundError(message=f"competency {competency_id} not found")

        collected: Dict[str, Skill] = {}
        self._collect(
            competency,
            collected,
            visited=set(),
            path=set(),
            visited_skills=set(),
            generate_missing=generate_missing,
        )
        return sorted(collected.values(), key=lambda skill: (skill.name.lower(), skill.id))

    def get_required_mgs_by_name(self, name: str, *, generate_missing: bool = True) -> List[Skill]:
        competency = self.resolver.lookup(name)
        if competency is None:
            raise NotFoundError(message=f"competency '{name}' not found")
        return self.get_required_mgs(competency.id, generate_missing=generate_missing)

    def get_direct_mgs(self, competency_id: str) -> List[Skill]:
        """Leaf skills under the skills linked to ``competency_id`` itself, sub-competencies excluded."""
        collected: Dict[str, Skill] = {}
        visited_skills: Set[str] = set()
        for skill in self.store.get_linked_skills(competency_id):
            for leaf in self._leaf_skills(skill, visited_skills):
                collected[leaf.id] = leaf
        return sorted(collected.values(), key=lambda skill: (skill.name.lower(), skill.id))

    def count_required_mgs(self, competency_id: str, *, generate_missing: bool = True) -> int:
        return len(self.get_required_mgs(competency_id, generate_missing=generate_missing))

    def find_competencies_requiring_skill(self, skill_id: str) -> List[Competency]:
        """Competencies whose linked skills contain ``skill_id`` somewhere below them."""
        skill_ids: Set[str] = set()
        stack = [skill_id]
        while stack:
            current = stack.pop()
            if current in skill_ids:
                continue
            skill_ids.add(current)
            stack.extend(parent.id for parent in self.store.get_skill_parents(current))
        return self.store.find_competencies_by_skills(skill_ids)

    def generate_skills_for(self, competency: Competency) -> int:
        """Generate and persist a skill tree for ``competency``; returns new links."""
        if self.generator is None:
            logger.info("No tree generator configured; '%s' keeps an empty MGS set", competency.name)
            return 0
        try:
            raw_tree = self.generator.generate_skill_tree(competency.name)
            tree = parse_tree(raw_tree)
        except SkillMapError as exc:
            logger.warning("Skill tree generation failed for '%s': %s", competency.name, exc)
            return 0

        # Another request may have populated the competency meanwhile; merge into it.
        already_linked = {skill.id for skill in self.store.get_linked_skills(competency.id)}
        created_links = 0
        for top_level in tree.children:
            skill = self._persist_skill_node(top_level, visited=set())
            if skill is None or skill.id in already_linked:
                continue
            if self.store.link_skill(competency.id, skill.id):
                created_links += 1
            already_linked.add(skill.id)

        logger.info("Linked %s generated skills to '%s'", created_links, competency.name)
        return created_links

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _collect(
        self,
        competency: Competency,
        collected: Dict[str, Skill],
        *,
        visited: Set[str],
        path: Set[str],
        visited_skills: Set[str],
        generate_missing: bool,
    ) -> None:
        if competency.id in path:
            logger.warning("Cycle detected at competency '%s' (%s); not expanded", competency.name, competency.id)
            return
        if competency.id in visited:
            # Shared sub-competency already merged through another branch.
            return
        visited.add(competency.id)
        path.add(competency.id)

        children = self.store.find_children(competency.id)
        linked_skills = self.store.get_linked_skills(competency.id)

        if not children and not linked_skills and generate_missing:
            if self.generate_skills_for(competency):
                linked_skills = self.store.get_linked_skills(competency.id)

        for skill in linked_skills:
            for leaf in self._leaf_skills(skill, visited_skills):
                collected[leaf.id] = leaf

        for child in children:
            self._collect(
                child,
                collected,
                visited=visited,
                path=path,
                visited_skills=visited_skills,
                generate_missing=generate_missing,
            )
        path.discard(competency.id)

    def _leaf_skills(self, skill: Skill, visited_skills: Set[str]) -> List[Skill]:
        leaves: List[Skill] = []
        stack = [(skill, frozenset())]
        while stack:
            current, ancestors = stack.pop()
            if current.id in ancestors:
                logger.warning("Cycle detected in skill hierarchy at '%s' (%s)", current.name, current.id)
                continue
            if current.id in visited_skills:
                continue
            visited_skills.add(current.id)

            subskills = self.store.get_subskills(current.id)
            if not subskills:
                leaves.append(current)
                continue
            branch = ancestors | {current.id}
            stack.extend((child, branch) for child in subskills)
        return leaves

    def _persist_skill_node(self, node: TreeNode, *, visited: Set[str]) -> Optional[Skill]:
        try:
            validate_node(node, allow_core_children=True)
        except ValidationError as exc:
            logger.warning("Skipping generated skill subtree: %s", exc)
            return None

        skill, _ = self.store.get_or_create_skill(node.name, source=SKILL_TREE_SOURCE)
        if skill.id in visited:
            logger.warning("Generated skill tree repeats '%s'; subtree ignored", skill.name)
            return None
        visited.add(skill.id)

        for child_node in node.children:
            child = self._persist_skill_node(child_node, visited=visited)
            if child is None or child.id == skill.id:
                continue
            self.store.link_subskill(skill.id, child.id)
        return skill
