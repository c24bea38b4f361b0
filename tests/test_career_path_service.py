import pytest

from skillmap.core.exceptions import NotFoundError, ValidationError
from skillmap.services.skillmap_service import SkillMapService
from tests.utils import RecordingNotifier, build_learning_tree

USER = "user-42"


def test_add_by_id_and_by_name(store, service):
    tree = build_learning_tree(store)

    by_id = service.career_paths.add_career_path(USER, competency_id=tree["backend"].id)
    by_name = service.career_paths.add_career_path(USER, competency_name="  web platform ")

    assert by_id["competency_name"] == "Backend"
    assert by_name["competency_id"] == tree["web"].id
    names = sorted(item["competency_name"] for item in service.career_paths.list_career_path(USER))
    assert names == ["Backend", "Web Platform"]


def test_adding_twice_keeps_one_entry(store, service):
    tree = build_learning_tree(store)

    service.career_paths.add_career_path(USER, competency_id=tree["web"].id)
    service.career_paths.add_career_path(USER, competency_id=tree["web"].id)

    assert len(service.career_paths.list_career_path(USER)) == 1


def test_unknown_target_is_not_created(store, service):
    with pytest.raises(NotFoundError):
        service.career_paths.add_career_path(USER, competency_name="Quantum Basket Weaving")
    with pytest.raises(NotFoundError):
        service.career_paths.add_career_path(USER, competency_id="missing")
    with pytest.raises(ValidationError):
        service.career_paths.add_career_path(USER, competency_name="   ")

    assert store.find_by_name("Quantum Basket Weaving") is None
    assert service.career_paths.list_career_path(USER) == []


def test_remove_entry(store, service):
    tree = build_learning_tree(store)
    service.career_paths.add_career_path(USER, competency_id=tree["web"].id)

    service.career_paths.remove_career_path(USER, tree["web"].id)

    assert service.career_paths.list_career_path(USER) == []
    with pytest.raises(NotFoundError):
        service.career_paths.remove_career_path(USER, tree["web"].id)


def test_sync_downstream_sends_gap_and_career_path(store, service, notifier):
    tree = build_learning_tree(store)
    service.career_paths.add_career_path(USER, competency_id=tree["backend"].id)

    gap = service.career_paths.sync_downstream(USER)

    assert list(gap) == ["Backend"]
    assert notifier.gap_calls[0]["mode"] == "broad"
    assert notifier.gap_calls[0]["gap"] == gap
    assert notifier.career_path_calls == [
        {
            "user_id": USER,
            "competencies": [{"competency_id": tree["backend"].id, "competency_name": "Backend"}],
        }
    ]


def test_sync_downstream_survives_notifier_failure(store, generator):
    service = SkillMapService(store, generator=generator, notifier=RecordingNotifier(fail=True))
    tree = build_learning_tree(store)
    service.career_paths.add_career_path(USER, competency_id=tree["backend"].id)

    assert "Backend" in service.career_paths.sync_downstream(USER)


def test_sync_downstream_can_defer_delivery(store, service, notifier):
    tree = build_learning_tree(store)
    service.career_paths.add_career_path(USER, competency_id=tree["backend"].id)
    scheduled = []

    gap = service.career_paths.sync_downstream(USER, schedule=lambda fn, *args: scheduled.append((fn, args)))

    assert notifier.gap_calls == [] and notifier.career_path_calls == []
    assert len(scheduled) == 1
    fn, args = scheduled[0]
    fn(*args)
    assert notifier.gap_calls[0]["gap"] == gap
    assert notifier.career_path_calls[0]["competencies"][0]["competency_name"] == "Backend"
