import pytest
import requests

from skillmap.core import notifier as notifier_module
from skillmap.core.notifier import HttpNotifier, NullNotifier, get_notifier, notify_safely


class FakeResponse:
    def __init__(self, status_code=200):
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


@pytest.fixture()
def posts(monkeypatch):
    sent = []

    def fake_post(url, json=None, timeout=None):
        sent.append({"url": url, "json": json, "timeout": timeout})
        return FakeResponse()

    monkeypatch.setattr(notifier_module.requests, "post", fake_post)
    return sent


def test_gap_analysis_envelope(posts):
    notifier = HttpNotifier("http://learner.test/api", None, timeout=3)
    gap = {"React": [{"skill_id": "s1", "skill_name": "Hooks"}]}

    notifier.notify_gap_analysis("u1", gap, mode="narrow", course_name="React 101", exam_status="fail")

    assert posts == [
        {
            "url": "http://learner.test/api",
            "timeout": 3,
            "json": {
                "requester_service": "skillmap",
                "payload": {
                    "action": "gap_analysis",
                    "user_id": "u1",
                    "analysis_type": "narrow",
                    "course_name": "React 101",
                    "exam_status": "fail",
                    "missing_mgs": gap,
                },
            },
        }
    ]


def test_career_path_envelope(posts):
    notifier = HttpNotifier(None, "http://directory.test/hook", timeout=1)

    notifier.notify_career_path("u1", [{"competency_id": "c1", "competency_name": "React"}])

    payload = posts[0]["json"]["payload"]
    assert payload["action"] == "career_path_updated"
    assert payload["competencies"][0]["competency_name"] == "React"


def test_missing_urls_skip_delivery(posts):
    notifier = HttpNotifier(None, None)

    notifier.notify_gap_analysis("u1", {}, mode="broad")
    notifier.notify_career_path("u1", [])

    assert posts == []


def test_http_errors_propagate_but_notify_safely_swallows(monkeypatch):
    monkeypatch.setattr(notifier_module.requests, "post", lambda *args, **kwargs: FakeResponse(503))
    notifier = HttpNotifier("http://learner.test/api", None)

    with pytest.raises(requests.HTTPError):
        notifier.notify_gap_analysis("u1", {}, mode="broad")
    assert notify_safely(notifier.notify_gap_analysis, "u1", {}, mode="broad") is False
    assert notify_safely(NullNotifier().notify_gap_analysis, "u1", {}, mode="broad") is True


def test_factory_returns_null_notifier_without_urls(monkeypatch):
    monkeypatch.setattr(notifier_module.settings, "LEARNER_AI_URL", None)
    monkeypatch.setattr(notifier_module.settings, "DIRECTORY_URL", None)
    assert isinstance(get_notifier(), NullNotifier)

    monkeypatch.setattr(notifier_module.settings, "LEARNER_AI_URL", "http://learner.test")
    notifier = get_notifier()
    assert isinstance(notifier, HttpNotifier)
    assert notifier.learner_ai_url == "http://learner.test"
    assert notifier.directory_url is None
