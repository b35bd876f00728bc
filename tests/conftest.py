from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from brokerlink.adapters.sqlalchemy import (
    SqlAlchemyCrmUnitOfWork,
    SqlAlchemyPolicyLinkStore,
    shutdown,
    start_mappers,
    startup,
)
from brokerlink.adapters.sqlalchemy.migrations import upgrade_head

# never fall through to the user's data directory
os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from sqlalchemy.engine import Engine


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    """Migrated in-memory database; one shared connection across threads."""

    engine = create_engine(
        "sqlite+pysqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    start_mappers()
    upgrade_head(engine=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def sqlite_session_factory(sqlite_engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=sqlite_engine, expire_on_commit=False)


@pytest.fixture
def sqlite_link_store(sqlite_session_factory: sessionmaker[Session]) -> SqlAlchemyPolicyLinkStore:
    return SqlAlchemyPolicyLinkStore(sqlite_session_factory)


@pytest.fixture
def sqlite_unit_of_work(sqlite_engine: Engine) -> Iterator[Callable[[], SqlAlchemyCrmUnitOfWork]]:
    """Bind the adapter to ``sqlite_engine`` and yield a unit-of-work factory."""

    startup(engine=sqlite_engine, force=True)
    yield SqlAlchemyCrmUnitOfWork
    shutdown()
