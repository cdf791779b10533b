from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from diffset.config.engine import DEFAULT_ON_REPLACE_ENV, EMPTY_VALUES_ENV
from tests.helpers.blog import BlogSchemas, blog_schemas
from tests.helpers.orm import create_all_tables, start_mappers

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture(autouse=True)
def clean_engine_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(EMPTY_VALUES_ENV, raising=False)
    monkeypatch.delenv(DEFAULT_ON_REPLACE_ENV, raising=False)


@pytest.fixture
def blog() -> BlogSchemas:
    return blog_schemas()


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    start_mappers()
    create_all_tables(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()
