import logging

import pytest

from skillmap.core.exceptions import NotFoundError
from skillmap.core.tree_generator import StaticTreeGenerator
from skillmap.services.skill_aggregator import SkillAggregator
from tests.utils import SAMPLE_SKILL_TREES, build_learning_tree, make_competency, make_skill


def _names(skills):
    return [skill.name for skill in skills]


def test_required_mgs_is_union_of_leaf_skills(store):
    tree = build_learning_tree(store)
    aggregator = SkillAggregator(store)

    mgs = aggregator.get_required_mgs(tree["web"].id)

    assert _names(mgs) == ["Closures", "Flexbox", "Grid", "Promises", "Routing"]
    # Non-leaf skills never count as MGS.
    assert tree["js_core"].id not in {skill.id for skill in mgs}


def test_shared_skill_is_counted_once(store):
    tree = build_learning_tree(store)
    store.link_skill(tree["backend"].id, tree["flexbox"].id)
    aggregator = SkillAggregator(store)

    mgs = aggregator.get_required_mgs(tree["web"].id)

    assert len(mgs) == len({skill.id for skill in mgs}) == 5
    assert aggregator.count_required_mgs(tree["backend"].id) == 2


def test_cycle_in_links_terminates_and_is_logged(store, caplog):
    tree = build_learning_tree(store)
    # Bypass the cycle guard of the service layer to simulate corrupted data.
    store.link_subcompetency(tree["styling"].id, tree["web"].id)
    aggregator = SkillAggregator(store)

    with caplog.at_level(logging.WARNING):
        mgs = aggregator.get_required_mgs(tree["web"].id)

    assert len(mgs) == 5
    assert "Cycle detected" in caplog.text


def test_missing_skills_are_generated_once(store):
    react = make_competency(store, "React")
    generator = StaticTreeGenerator(skill_trees=SAMPLE_SKILL_TREES)
    aggregator = SkillAggregator(store, generator)

    first = aggregator.get_required_mgs(react.id)
    second = aggregator.get_required_mgs(react.id)

    assert _names(first) == ["Props", "State", "useEffect", "useMemo"]
    assert [s.id for s in second] == [s.id for s in first]
    assert generator.calls == [("skills", "React")]
    assert _names(store.get_linked_skills(react.id)) == ["Components", "Hooks"]


def test_concurrent_generation_merges_into_existing_links(store):
    react = make_competency(store, "React")
    aggregator = SkillAggregator(store, StaticTreeGenerator(skill_trees=SAMPLE_SKILL_TREES))

    assert aggregator.generate_skills_for(react) == 2
    assert aggregator.generate_skills_for(react) == 0

    assert len(store.get_linked_skills(react.id)) == 2
    assert len(aggregator.get_required_mgs(react.id)) == 4


def test_generation_failure_yields_empty_set(store, caplog):
    lonely = make_competency(store, "Underwater Welding")
    aggregator = SkillAggregator(store, StaticTreeGenerator())

    with caplog.at_level(logging.WARNING):
        assert aggregator.get_required_mgs(lonely.id) == []
    assert "Skill tree generation failed" in caplog.text


def test_generation_can_be_disabled(store):
    react = make_competency(store, "React")
    generator = StaticTreeGenerator(skill_trees=SAMPLE_SKILL_TREES)
    aggregator = SkillAggregator(store, generator)

    assert aggregator.get_required_mgs(react.id, generate_missing=False) == []
    assert generator.calls == []


def test_invalid_generated_nodes_are_skipped(store):
    competency = make_competency(store, "Cooking")
    tree = {
        "competency": "Cooking",
        "skills": [
            {"skill": "Knife Work", "subskills": [{"subskills": [{"skill": "Hidden"}]}, {"skill": "Dicing"}]},
            42,
        ],
    }
    aggregator = SkillAggregator(store, StaticTreeGenerator(skill_trees={"Cooking": tree}))

    mgs = aggregator.get_required_mgs(competency.id)

    assert _names(mgs) == ["Dicing"]
    assert store.find_skill_by_name("Hidden") is None


def test_required_mgs_by_name(store):
    tree = build_learning_tree(store)
    aggregator = SkillAggregator(store)

    assert _names(aggregator.get_required_mgs_by_name("styling")) == ["Flexbox", "Grid"]
    with pytest.raises(NotFoundError):
        aggregator.get_required_mgs_by_name("Pottery")
    assert store.find_by_name("Pottery") is None
    assert tree["styling"].name == "Styling"


def test_unknown_competency_raises(store):
    with pytest.raises(NotFoundError):
        SkillAggregator(store).get_required_mgs("missing-id")


def test_competencies_requiring_skill_walk_up_the_skill_tree(store):
    tree = build_learning_tree(store)
    other = make_competency(store, "Async Programming")
    store.link_skill(other.id, tree["promises"].id)
    make_skill(store, "Unused")
    aggregator = SkillAggregator(store)

    requiring = aggregator.find_competencies_requiring_skill(tree["promises"].id)

    assert sorted(c.name for c in requiring) == ["Async Programming", "Scripting"]


def test_direct_mgs_excludes_sub_competencies(store):
    tree = build_learning_tree(store)
    aggregator = SkillAggregator(store)
    make_skill(store, "Web Vitals", competency=tree["frontend"])

    assert _names(aggregator.get_direct_mgs(tree["frontend"].id)) == ["Web Vitals"]
    assert _names(aggregator.get_direct_mgs(tree["scripting"].id)) == ["Closures", "Promises"]
    assert aggregator.get_direct_mgs(tree["web"].id) == []
