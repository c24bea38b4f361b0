"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import os
import sys
from pathlib import Path

# Ensure the skillmap package is importable when tests run from the repo root.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("TREE_GENERATOR", "static")
os.environ.setdefault("SQLALCHEMY_SLOW_QUERY_THRESHOLD_MS", "0")
for _name in ("LEARNER_AI_URL", "DIRECTORY_URL", "OPENAI_API_KEY"):
    os.environ.pop(_name, None)

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from skillmap.crud.memory_store import InMemoryStore
from skillmap.crud.sql_store import SqlStore
from skillmap.core.tree_generator import StaticTreeGenerator
from skillmap.db.base import Base
from skillmap.services.skillmap_service import SkillMapService
from tests.utils import SAMPLE_HIERARCHIES, SAMPLE_SKILL_TREES, RecordingNotifier


@pytest.fixture()
def engine():
    # A single shared connection so TestClient threads see the same in-memory database.
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine) -> Session:
    SessionLocal = sessionmaker(bind=engine, future=True)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def sql_store(db_session) -> SqlStore:
    return SqlStore(db_session)


@pytest.fixture()
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture(params=["sql", "memory"])
def store(request):
    """Runs the test once per storage backend."""
    if request.param == "sql":
        return request.getfixturevalue("sql_store")
    return request.getfixturevalue("memory_store")


@pytest.fixture()
def generator() -> StaticTreeGenerator:
    return StaticTreeGenerator(SAMPLE_HIERARCHIES, SAMPLE_SKILL_TREES)


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def service(store, generator, notifier) -> SkillMapService:
    return SkillMapService(store, generator=generator, notifier=notifier)
