"""Utility helpers for test factories."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from skillmap.core.notifier import Notifier
from skillmap.models.competency_model import Competency
from skillmap.models.skill_model import Skill

SAMPLE_HIERARCHIES: Dict[str, Dict[str, Any]] = {
    "Full Stack Development": {
        "competency": "Full Stack Development",
        "core-competency": False,
        "subcompetencies": [
            {
                "competency": "Frontend Engineering",
                "core-competency": False,
                "subcompetencies": [
                    {"competency": "React", "core-competency": True},
                    {"competency": "CSS Layout", "core-competency": True},
                ],
            },
            {
                "competency": "Backend Engineering",
                "core-competency": False,
                "subcompetencies": [
                    {"competency": "Node", "core-competency": True},
                    {"competency": "Relational Databases", "core-competency": True},
                ],
            },
        ],
    },
    "Mobile Development": {
        "competency": "Mobile Development",
        "subcompetencies": [
            {"competency": "ReactJS", "core-competency": True},
            {"competency": "Swift", "core-competency": True},
        ],
    },
}

SAMPLE_SKILL_TREES: Dict[str, Dict[str, Any]] = {
    "React": {
        "competency": "React",
        "skills": [
            {"skill": "Components", "subskills": [{"skill": "Props"}, {"skill": "State"}]},
            {"skill": "Hooks", "subskills": [{"skill": "useEffect"}, {"skill": "useMemo"}]},
        ],
    },
    "CSS Layout": {
        "competency": "CSS Layout",
        "skills": [{"skill": "Flexbox"}, {"skill": "Grid"}],
    },
    "Node": {
        "competency": "Node",
        "skills": [{"skill": "Event Loop"}, {"skill": "Streams"}],
    },
    "Relational Databases": {
        "competency": "Relational Databases",
        "skills": [
            {"skill": "SQL Queries", "subskills": [{"skill": "Joins"}, {"skill": "Aggregations"}]},
            {"skill": "Indexing"},
        ],
    },
}


def make_competency(store, name: str, *, parents: Optional[List[Competency]] = None) -> Competency:
    competency = store.create(name)
    for parent in parents or []:
        store.link_subcompetency(parent.id, competency.id)
    return competency


def make_skill(
    store,
    name: str,
    *,
    parent: Optional[Skill] = None,
    competency: Optional[Competency] = None,
) -> Skill:
    skill = store.create_skill(name)
    if parent is not None:
        store.link_subskill(parent.id, skill.id)
    if competency is not None:
        store.link_skill(competency.id, skill.id)
    return skill


def evidence(*skills: Skill, verified: bool = True) -> List[Dict[str, Any]]:
    return [{"skill_id": skill.id, "skill_name": skill.name, "verified": verified} for skill in skills]


def build_learning_tree(store) -> Dict[str, Any]:
    """Web -> Frontend -> {Styling, Scripting}; Web -> Backend.

    Styling requires Flexbox and Grid, Scripting requires Closures and Promises
    (both under the non-leaf skill "JavaScript Core"), Backend requires Routing.
    """
    web = make_competency(store, "Web Platform")
    frontend = make_competency(store, "Frontend", parents=[web])
    backend = make_competency(store, "Backend", parents=[web])
    styling = make_competency(store, "Styling", parents=[frontend])
    scripting = make_competency(store, "Scripting", parents=[frontend])

    flexbox = make_skill(store, "Flexbox", competency=styling)
    grid = make_skill(store, "Grid", competency=styling)
    js_core = make_skill(store, "JavaScript Core", competency=scripting)
    closures = make_skill(store, "Closures", parent=js_core)
    promises = make_skill(store, "Promises", parent=js_core)
    routing = make_skill(store, "Routing", competency=backend)

    return {
        "web": web,
        "frontend": frontend,
        "backend": backend,
        "styling": styling,
        "scripting": scripting,
        "flexbox": flexbox,
        "grid": grid,
        "js_core": js_core,
        "closures": closures,
        "promises": promises,
        "routing": routing,
    }


class RecordingNotifier(Notifier):
    def __init__(self, *, fail: bool = False):
        self.fail = fail
        self.gap_calls: List[Dict[str, Any]] = []
        self.career_path_calls: List[Dict[str, Any]] = []

    def notify_gap_analysis(self, user_id, gap, *, mode, course_name=None, exam_status=None) -> None:
        if self.fail:
            raise RuntimeError("learner service unavailable")
        self.gap_calls.append(
            {
                "user_id": user_id,
                "gap": gap,
                "mode": mode,
                "course_name": course_name,
                "exam_status": exam_status,
            }
        )

    def notify_career_path(self, user_id, competencies) -> None:
        if self.fail:
            raise RuntimeError("directory service unavailable")
        self.career_path_calls.append({"user_id": user_id, "competencies": competencies})
