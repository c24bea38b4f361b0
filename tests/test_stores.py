import pytest

from skillmap.core.exceptions import DuplicateError, NotFoundError
from skillmap.models.learner_model import ProficiencyLevel
from tests.utils import build_learning_tree, make_competency, make_skill


def test_competency_names_are_unique_after_normalization(store):
    store.create("Machine Learning")

    with pytest.raises(DuplicateError):
        store.create("  machine-learning ")

    # The store is still usable after the failed insert.
    assert store.find_by_name("MACHINE LEARNING").name == "Machine Learning"
    assert store.find_by_compact_name("machinelearning") is not None


def test_aliases_resolve_by_exact_and_compact_name(store):
    react = make_competency(store, "React")

    assert store.register_alias(react.id, "React.js") is True
    assert store.register_alias(react.id, "react js") is False
    assert store.register_alias(react.id, "React") is False

    assert store.find_by_name("react-js").id == react.id
    assert store.find_by_compact_name("reactjs").id == react.id
    assert store.get_aliases(react.id) == ["react js"]
    with pytest.raises(NotFoundError):
        store.register_alias("missing", "whatever")


def test_alias_owned_by_another_competency_is_kept(store):
    react = make_competency(store, "React")
    preact = make_competency(store, "Preact")
    store.register_alias(react.id, "react lib")

    assert store.register_alias(preact.id, "react lib") is False
    assert store.find_by_name("react lib").id == react.id


def test_similar_candidates_include_aliases(store):
    react = make_competency(store, "React")
    store.register_alias(react.id, "reactjs framework")
    make_competency(store, "Rust")

    labels = {label for label, _ in store.find_similar_candidates(["reac"], limit=10)}

    assert labels == {"react", "reactjs framework"}
    assert store.find_similar_candidates([], limit=10) == []


def test_links_are_idempotent(store):
    parent = make_competency(store, "Parent")
    child = make_competency(store, "Child")
    skill = make_skill(store, "Skill")
    leaf = make_skill(store, "Leaf")

    assert store.link_subcompetency(parent.id, child.id) is True
    assert store.link_subcompetency(parent.id, child.id) is False
    assert store.link_skill(child.id, skill.id) is True
    assert store.link_skill(child.id, skill.id) is False
    assert store.link_subskill(skill.id, leaf.id) is True
    assert store.link_subskill(skill.id, leaf.id) is False

    assert [link.child_competency_id for link in store.get_subcompetency_links(parent.id)] == [child.id]
    assert store.find_skill_parent(leaf.id).id == skill.id
    assert store.is_leaf_skill(leaf.id) and not store.is_leaf_skill(skill.id)


def test_skill_mgs_and_get_or_create(store):
    tree = build_learning_tree(store)

    assert sorted(s.name for s in store.find_skill_mgs(tree["js_core"].id)) == ["Closures", "Promises"]
    assert [s.name for s in store.find_skill_mgs(tree["routing"].id)] == ["Routing"]

    existing, created = store.get_or_create_skill("routing")
    assert (existing.id, created) == (tree["routing"].id, False)
    fresh, created = store.get_or_create_skill("Middleware", source="manual")
    assert created is True and fresh.source == "manual"


def test_get_or_create_skill_recovers_from_concurrent_insert(store, monkeypatch):
    make_skill(store, "Caching")
    original = store.find_skill_by_name
    misses = [True]

    def stale_first_lookup(name):
        # The first lookup misses, as if another writer inserted in between.
        if misses:
            misses.pop()
            return None
        return original(name)

    monkeypatch.setattr(store, "find_skill_by_name", stale_first_lookup)

    skill, created = store.get_or_create_skill("caching")

    assert created is False
    assert skill.name == "Caching"


def test_delete_skill_removes_links(store):
    tree = build_learning_tree(store)

    assert store.delete_skill(tree["js_core"].id) is True

    assert store.get_linked_skills(tree["scripting"].id) == []
    assert store.get_skill_parents(tree["closures"].id) == []
    assert store.delete_skill(tree["js_core"].id) is False


def test_ancestors_and_cycle_detection(store):
    tree = build_learning_tree(store)

    names = [c.name for c in store.get_ancestor_competencies(tree["styling"].id)]
    assert names == ["Frontend", "Web Platform"]
    assert store.would_create_cycle(tree["styling"].id, tree["web"].id) is True
    assert store.would_create_cycle(tree["backend"].id, tree["styling"].id) is False
    assert store.would_create_cycle(tree["web"].id, tree["web"].id) is True


def test_competencies_by_skills_are_distinct(store):
    tree = build_learning_tree(store)
    store.link_skill(tree["styling"].id, tree["routing"].id)

    found = store.find_competencies_by_skills([tree["flexbox"].id, tree["routing"].id, tree["grid"].id])

    assert sorted(c.name for c in found) == ["Backend", "Styling"]
    assert store.find_competencies_by_skills([]) == []


def test_user_competency_rows(store):
    competency = make_competency(store, "Testing")

    row = store.create_user_competency("u1", competency.id)
    assert row.proficiency_level == ProficiencyLevel.UNDEFINED
    assert row.verified_skills == []
    assert store.create_user_competency("u1", competency.id).competency_id == competency.id
    assert len(store.list_user_competencies("u1")) == 1

    updated = store.update_user_competency("u1", competency.id, coverage_percentage=42.5)
    assert updated.coverage_percentage == 42.5
    with pytest.raises(NotFoundError):
        store.update_user_competency("u2", competency.id, coverage_percentage=1.0)

    assert store.delete_user_competency("u1", competency.id) is True
    assert store.delete_user_competency("u1", competency.id) is False


def test_career_path_entries(store):
    first = make_competency(store, "First")
    second = make_competency(store, "Second")

    entry, created = store.add_career_path("u1", first.id)
    assert created is True and entry.id is not None
    assert store.add_career_path("u1", first.id)[1] is False
    store.add_career_path("u1", second.id)

    assert [e.competency_id for e in store.list_career_path("u1")] == [first.id, second.id]
    assert store.remove_career_path("u1", first.id) is True
    assert store.remove_career_path("u1", first.id) is False
    assert store.list_career_path("u2") == []
