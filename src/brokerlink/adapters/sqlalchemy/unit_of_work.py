"""Engine lifecycle and the CRM unit of work.

The adapter binds to one engine per process. ``startup()`` maps the domain
classes, migrates the schema and remembers the engine; every unit of work and
link store built afterwards shares its session factory.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from brokerlink.adapters.sqlalchemy.mappings import start_mappers
from brokerlink.adapters.sqlalchemy.migrations import upgrade_head
from brokerlink.adapters.sqlalchemy.repositories import (
    SqlAlchemyClientRepository,
    SqlAlchemyLeadRepository,
    SqlAlchemyPolicyLinkStore,
    SqlAlchemyPolicyRepository,
)
from brokerlink.config import get_database_config
from brokerlink.domain.ports import CrmRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine


class StartupError(RuntimeError):
    """Raised when the SQLAlchemy adapter is used before ``startup()`` or twice."""


@dataclass(slots=True)
class _EngineBinding:
    engine: Engine | None = None
    _sessions: sessionmaker[Session] | None = field(default=None, repr=False)

    def bind(self, engine: Engine | None) -> None:
        if self.engine is not None:
            self.engine.dispose()
        self.engine = engine
        self._sessions = None

    def sessions(self) -> sessionmaker[Session]:
        if self.engine is None:
            raise StartupError("Database not started; call startup() first")
        if self._sessions is None:
            # link stores hand out detached entities that must stay readable
            self._sessions = sessionmaker(bind=self.engine, expire_on_commit=False)
        return self._sessions


_BINDING = _EngineBinding()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Map entities, migrate, and bind ``engine`` (or one built from config)."""

    if _BINDING.engine is not None and not force:
        raise StartupError("Database already started; pass force=True to rebind")

    target = engine or create_engine(database_uri or get_database_config().uri, future=True)
    start_mappers()
    upgrade_head(engine=target)
    if _BINDING.engine is not target:
        _BINDING.bind(target)


def configured_engine() -> Engine | None:
    return _BINDING.engine


def is_started() -> bool:
    return _BINDING.engine is not None


def shutdown() -> None:
    """Dispose the bound engine; a later ``startup()`` may bind a new one."""

    _BINDING.bind(None)


def build_policy_link_store() -> SqlAlchemyPolicyLinkStore:
    """Return a link store sharing the bound engine's session factory."""

    return SqlAlchemyPolicyLinkStore(_BINDING.sessions())


class SqlAlchemyCrmUnitOfWork:
    """One session spanning lead, client and policy writes.

    Leaving the block without ``commit()`` discards pending changes.
    """

    def __init__(self) -> None:
        self._sessions = _BINDING.sessions()
        self._session: Session | None = None
        self._repositories: CrmRepositories | None = None

    def __enter__(self) -> SqlAlchemyCrmUnitOfWork:
        if self._session is not None:
            raise StartupError("Unit of work is already open")
        session = self._sessions()
        self._session = session
        self._repositories = CrmRepositories(
            leads=SqlAlchemyLeadRepository(session),
            clients=SqlAlchemyClientRepository(session),
            policies=SqlAlchemyPolicyRepository(session),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        try:
            if exc_type is not None:
                session.rollback()
        finally:
            session.close()
            self._session = None
            self._repositories = None
        return False

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work used outside its with-block")
        return self._session

    @property
    def repositories(self) -> CrmRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work used outside its with-block")
        return self._repositories

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


if TYPE_CHECKING:
    from brokerlink.domain.ports import CrmUnitOfWork

    _uow_check: CrmUnitOfWork = SqlAlchemyCrmUnitOfWork()
