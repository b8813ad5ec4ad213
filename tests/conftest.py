from __future__ import annotations

from collections.abc import Generator
from dataclasses import replace

import pytest
from sqlalchemy.orm import Session, sessionmaker

from statehistory.core.config import Config, build_config, get_config
from statehistory.database.db import build_engine
from statehistory.machine.events import EventDispatcher
from statehistory.models import Base
from tests.support import FixtureBase


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch) -> Generator[None, None, None]:
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")
    monkeypatch.delenv("STATE_HISTORY_USE_CURRENT_COLUMNS", raising=False)
    monkeypatch.delenv("STATE_HISTORY_CURRENT_PREFIX", raising=False)
    monkeypatch.delenv("STATE_HISTORY_LOG_FALLBACK_WARNINGS", raising=False)
    monkeypatch.delenv("STATE_HISTORY_MODEL", raising=False)
    get_config.cache_clear()
    yield
    get_config.cache_clear()


@pytest.fixture
def config() -> Config:
    return build_config()


@pytest.fixture
def history_only_config(config) -> Config:
    return replace(config, USE_CURRENT_COLUMNS=False)


@pytest.fixture
def engine():
    engine = build_engine("sqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    FixtureBase.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine) -> Generator[Session, None, None]:
    TestingSessionLocal = sessionmaker(autoflush=False, bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def dispatcher() -> EventDispatcher:
    return EventDispatcher()
