"""Seed the competency taxonomy from a JSON file, without calling any LLM.

Usage::

    python -m scripts.seed_taxonomy scripts/data/taxonomy_seed.json
    python -m scripts.seed_taxonomy scripts/data/taxonomy_seed.json --with-skills

The file holds two mappings: ``hierarchies`` (topic -> competency tree) and
``skill_trees`` (competency name -> skill tree). Every topic is built through
the regular hierarchy builder, so re-running the seed is a no-op.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.append(str(PROJECT_ROOT))

from skillmap.core.tree_generator import StaticTreeGenerator  # noqa: E402
from skillmap.crud.sql_store import SqlStore  # noqa: E402
from skillmap.db import session as session_module  # noqa: E402
from skillmap.db.base import Base  # noqa: E402
from skillmap.services.skillmap_service import SkillMapService  # noqa: E402

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def load_seed_file(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, dict) or not isinstance(data.get("hierarchies"), dict):
        raise ValueError(f"{path} must contain a 'hierarchies' object")
    return data


def seed(data: dict, *, with_skills: bool = False) -> dict:
    generator = StaticTreeGenerator(data["hierarchies"], data.get("skill_trees") or {})
    Base.metadata.create_all(bind=session_module.engine)

    summary = {}
    with session_module.SessionLocal() as db:
        service = SkillMapService(SqlStore(db), generator=generator)
        for topic in data["hierarchies"]:
            stats = service.build_hierarchy(topic)
            summary[topic] = stats.as_dict()
            logger.info("Seeded '%s': %s", topic, stats.as_dict())

            if with_skills and stats.root_competency_id:
                mgs = service.get_required_mgs(stats.root_competency_id)
                logger.info("'%s' requires %s MGS", topic, len(mgs))
    return summary


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the competency taxonomy from a JSON file.")
    parser.add_argument("path", type=Path, help="JSON file with 'hierarchies' and optional 'skill_trees'.")
    parser.add_argument(
        "--with-skills",
        action="store_true",
        help="Also attach the skill trees from the file to every leaf competency.",
    )
    args = parser.parse_args()

    try:
        seed_data = load_seed_file(args.path)
    except (OSError, ValueError) as exc:
        logger.error("Cannot read seed file: %s", exc)
        sys.exit(1)

    seed(seed_data, with_skills=args.with_skills)
