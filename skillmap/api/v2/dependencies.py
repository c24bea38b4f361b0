import logging
from typing import Generator

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from skillmap.core import notifier as notifier_module
from skillmap.core import tree_generator as tree_generator_module
from skillmap.core.exceptions import SkillMapError
from skillmap.core.notifier import Notifier
from skillmap.core.tree_generator import TreeGenerator
from skillmap.crud.sql_store import SqlStore
from skillmap.db import session as db_session
from skillmap.services.skillmap_service import SkillMapService

log = logging.getLogger(__name__)


def get_db() -> Generator[Session, None, None]:
    """One session per request, closed once the response is built.

    ``SessionLocal`` is looked up on the module at call time because
    ``configure_database`` may swap it (SQLite fallback, tests).
    """
    db = db_session.SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_store(db: Session = Depends(get_db)) -> SqlStore:
    return SqlStore(db)


def get_tree_generator() -> TreeGenerator:
    return tree_generator_module.get_tree_generator()


def get_notifier() -> Notifier:
    return notifier_module.get_notifier()


def get_skillmap_service(
    store: SqlStore = Depends(get_store),
    generator: TreeGenerator = Depends(get_tree_generator),
    notifier: Notifier = Depends(get_notifier),
) -> SkillMapService:
    return SkillMapService(store, store, generator=generator, notifier=notifier)


def to_http_error(exc: SkillMapError) -> HTTPException:
    if exc.status_code >= 500:
        log.error("Request failed with %s: %s", exc.code, exc)
    return HTTPException(status_code=exc.status_code, detail={"code": exc.code, "message": str(exc)})
