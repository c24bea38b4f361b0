"""Outbound notifications to the learner-AI and directory services.

Delivery is best effort: callers go through ``notify_safely`` so a failing
downstream service never undoes committed taxonomy or ledger changes.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

import requests

from skillmap.core.config import settings

logger = logging.getLogger(__name__)

REQUESTER_SERVICE = "skillmap"


class Notifier:
    def notify_gap_analysis(
        self,
        user_id: str,
        gap: Dict[str, List[Dict[str, str]]],
        *,
        mode: str,
        course_name: Optional[str] = None,
        exam_status: Optional[str] = None,
    ) -> None:
        raise NotImplementedError

    def notify_career_path(self, user_id: str, competencies: List[Dict[str, Any]]) -> None:
        raise NotImplementedError


class NullNotifier(Notifier):
    def notify_gap_analysis(self, user_id, gap, *, mode, course_name=None, exam_status=None) -> None:
        logger.debug("Gap notification skipped for user %s (no notifier configured)", user_id)

    def notify_career_path(self, user_id, competencies) -> None:
        logger.debug("Career path notification skipped for user %s (no notifier configured)", user_id)


class HttpNotifier(Notifier):
    def __init__(
        self,
        learner_ai_url: Optional[str] = None,
        directory_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
    ):
        self.learner_ai_url = learner_ai_url
        self.directory_url = directory_url
        self.timeout = timeout if timeout is not None else settings.NOTIFICATION_TIMEOUT_SECONDS

    def notify_gap_analysis(self, user_id, gap, *, mode, course_name=None, exam_status=None) -> None:
        if not self.learner_ai_url:
            logger.info("LEARNER_AI_URL not set; gap analysis for user %s not sent", user_id)
            return
        payload = {
            "requester_service": REQUESTER_SERVICE,
            "payload": {
                "action": "gap_analysis",
                "user_id": user_id,
                "analysis_type": mode,
                "course_name": course_name,
                "exam_status": exam_status,
                "missing_mgs": gap,
            },
        }
        self._post(self.learner_ai_url, payload)

    def notify_career_path(self, user_id, competencies) -> None:
        if not self.directory_url:
            logger.info("DIRECTORY_URL not set; career path update for user %s not sent", user_id)
            return
        payload = {
            "requester_service": REQUESTER_SERVICE,
            "payload": {
                "action": "career_path_updated",
                "user_id": user_id,
                "competencies": competencies,
            },
        }
        self._post(self.directory_url, payload)

    def _post(self, url: str, payload: Dict[str, Any]) -> None:
        try:
            response = requests.post(url, json=payload, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.error("Notification to %s failed: %s", url, exc)
            raise
        logger.info("Notification '%s' delivered to %s", payload["payload"]["action"], url)


def notify_safely(send: Callable[..., None], *args, **kwargs) -> bool:
    """Run a notifier call, logging and swallowing any failure."""
    try:
        send(*args, **kwargs)
    except Exception as exc:
        logger.warning("Notification %s failed and was dropped: %s", getattr(send, "__name__", send), exc)
        return False
    return True


def get_notifier() -> Notifier:
    learner_ai_url = str(settings.LEARNER_AI_URL) if settings.LEARNER_AI_URL else None
    directory_url = str(settings.DIRECTORY_URL) if settings.DIRECTORY_URL else None
    if not learner_ai_url and not directory_url:
        return NullNotifier()
    return HttpNotifier(learner_ai_url, directory_url)
