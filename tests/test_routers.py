import pytest
from fastapi.testclient import TestClient

from skillmap.api.v2.dependencies import get_skillmap_service
from skillmap.main import app
from skillmap.services.skillmap_service import SkillMapService

API = "/api/v2"


@pytest.fixture()
def api_service(memory_store, generator, notifier) -> SkillMapService:
    return SkillMapService(memory_store, generator=generator, notifier=notifier)


@pytest.fixture()
def client(api_service):
    app.dependency_overrides[get_skillmap_service] = lambda: api_service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _build(client, topic="Full Stack Development"):
    response = client.post(f"{API}/competencies/hierarchy", json={"topic": topic})
    assert response.status_code == 201, response.text
    return response.json()


def test_build_hierarchy_and_read_mgs(client):
    stats = _build(client)
    assert stats["competenciesCreated"] == 7
    assert stats["relationshipsCreated"] == 6

    response = client.get(f"{API}/competencies/by-name/react/mgs")
    assert response.status_code == 200
    body = response.json()
    assert body["competency_name"] == "React"
    assert body["mgs_count"] == 4
    assert [skill["name"] for skill in body["mgs"]] == ["Props", "State", "useEffect", "useMemo"]


def test_generation_failure_maps_to_bad_gateway(client):
    response = client.post(f"{API}/competencies/hierarchy", json={"topic": "Underwater Welding"})

    assert response.status_code == 502
    assert response.json()["detail"]["code"] == "tree_generation_failed"


def test_unknown_competency_is_404(client):
    response = client.get(f"{API}/competencies/does-not-exist")

    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "not_found"


def test_resolve_search_and_normalize(client):
    created = client.post(f"{API}/competencies/resolve", json={"name": "React"}).json()
    assert created["created"] is True

    resolved = client.post(f"{API}/competencies/resolve", json={"name": "React.js"}).json()
    assert resolved["created"] is False
    assert resolved["strategy"] == "similarity"
    assert resolved["competency"]["id"] == created["competency"]["id"]

    search = client.get(f"{API}/competencies/search", params={"q": "rea"})
    assert [item["name"] for item in search.json()] == ["React"]

    normalized = client.post(f"{API}/competencies/normalize", json={"names": ["react-js", "Vue"]}).json()
    assert [item["found_in_taxonomy"] for item in normalized] == [True, False]


def test_competency_tree_and_admin_links(client):
    _build(client)
    root = client.post(f"{API}/competencies/resolve", json={"name": "Full Stack Development"}).json()
    root_id = root["competency"]["id"]
    frontend_id = client.post(f"{API}/competencies/resolve", json={"name": "Frontend Engineering"}).json()[
        "competency"
    ]["id"]

    linked = client.post(f"{API}/competencies/{frontend_id}/skills", json={"skill_names": ["Accessibility"]})
    assert [skill["name"] for skill in linked.json()] == ["Accessibility"]

    tree = client.get(f"{API}/competencies/{root_id}/tree").json()
    assert tree["competency"]["name"] == "Full Stack Development"
    frontend = next(child for child in tree["children"] if child["competency"]["id"] == frontend_id)
    assert [node["skill"]["name"] for node in frontend["skills"]] == ["Accessibility"]

    cycle = client.post(f"{API}/competencies/{frontend_id}/subcompetencies/{root_id}")
    assert cycle.status_code == 422

    removed = client.delete(f"{API}/competencies/{root_id}/subcompetencies/{frontend_id}")
    assert removed.status_code == 204


def test_evidence_upsert_and_gap(client, api_service):
    _build(client)
    react = api_service.resolver.lookup("React")
    mgs = client.get(f"{API}/competencies/{react.id}/mgs").json()["mgs"]
    props = mgs[0]

    response = client.put(
        f"{API}/users/u1/competencies/{react.id}",
        json={"verified_skills": [{"skill_id": props["id"], "verified": True}]},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["coverage_percentage"] == 25.0
    assert body["proficiency_level"] == "BEGINNER"
    assert len(body["propagated_to"]) == 2

    rows = client.get(f"{API}/users/u1/competencies").json()
    assert any(row["competency_name"] == "React" for row in rows)

    gap = client.get(f"{API}/users/u1/gap", params={"mode": "narrow", "competency_ids": [react.id]}).json()
    assert gap["mode"] == "narrow"
    assert [item["skill_name"] for item in gap["gap"]["React"]] == ["State", "useEffect", "useMemo"]

    baseline = client.get(f"{API}/users/u1/baseline-skills").json()
    assert [item["competency_name"] for item in baseline] == ["React"]


def test_career_path_flow_notifies_in_background(client, notifier):
    _build(client)

    response = client.post(f"{API}/users/u1/career-path", json={"competency_name": "frontend engineering"})
    assert response.status_code == 201
    assert response.json()["competency_name"] == "Frontend Engineering"

    assert len(notifier.career_path_calls) == 1
    assert notifier.career_path_calls[0]["competencies"][0]["competency_name"] == "Frontend Engineering"
    assert set(notifier.gap_calls[0]["gap"]) == {"Frontend Engineering"}

    listed = client.get(f"{API}/users/u1/career-path").json()
    assert [item["competency_name"] for item in listed] == ["Frontend Engineering"]

    competency_id = listed[0]["competency_id"]
    assert client.delete(f"{API}/users/u1/career-path/{competency_id}").status_code == 204
    assert client.delete(f"{API}/users/u1/career-path/{competency_id}").status_code == 404


def test_career_path_requires_a_target(client):
    assert client.post(f"{API}/users/u1/career-path", json={}).status_code == 422


def test_exam_results_endpoint(client, api_service, notifier):
    _build(client)
    react = api_service.resolver.lookup("React")
    skills = api_service.get_required_mgs(react.id)

    response = client.post(
        f"{API}/users/u1/exam-results",
        json={
            "exam_type": "post-course",
            "exam_status": "fail",
            "course_name": "React Basics",
            "skills": [
                {"skill_id": skills[0].id, "status": "pass"},
                {"skill_id": skills[1].id, "status": "fail"},
            ],
        },
    )

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["gap_mode"] == "narrow"
    assert body["verified_skills_count"] == 1
    assert [item["skill_name"] for item in body["gap"]["React"]] == ["State", "useEffect", "useMemo"]
    assert notifier.gap_calls[0]["course_name"] == "React Basics"


def test_root_route():
    with TestClient(app) as client:
        assert client.get("/").json() == {"message": "Welcome to SkillMap API V2!"}


def test_competency_crud_routes(client):
    parent = client.post(f"{API}/competencies", json={"name": "Cloud", "description": "Infra"})
    assert parent.status_code == 201, parent.text
    parent_id = parent.json()["id"]
    assert parent.json()["source"] == "manual"

    child = client.post(f"{API}/competencies", json={"name": "Terraform", "parent_competency_id": parent_id})
    assert child.status_code == 201
    child_id = child.json()["id"]

    duplicate = client.post(f"{API}/competencies", json={"name": "cloud"})
    assert duplicate.status_code == 409
    assert client.post(f"{API}/competencies", json={"name": "Helm", "parent_competency_id": "nope"}).status_code == 404

    listed = client.get(f"{API}/competencies").json()
    assert [item["name"] for item in listed] == ["Cloud", "Terraform"]
    assert [item["name"] for item in client.get(f"{API}/competencies", params={"offset": 1}).json()] == ["Terraform"]

    renamed = client.put(f"{API}/competencies/{child_id}", json={"name": "Infrastructure as Code"})
    assert renamed.status_code == 200
    assert renamed.json()["name"] == "Infrastructure as Code"
    assert renamed.json()["description"] is None
    assert client.put(f"{API}/competencies/missing", json={"name": "X"}).status_code == 404

    client.post(f"{API}/competencies/{child_id}/skills", json={"skill_names": ["Modules", "State Files"]})
    skills = client.get(f"{API}/competencies/{child_id}/skills")
    assert skills.status_code == 200
    assert [skill["name"] for skill in skills.json()] == ["Modules", "State Files"]
    assert client.get(f"{API}/competencies/{parent_id}/skills").json() == []
    assert client.get(f"{API}/competencies/missing/skills").status_code == 404
