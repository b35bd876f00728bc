"""Repository and store implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from sqlalchemy import select, update

from brokerlink.adapters.sqlalchemy.mappings import client_table, policy_table
from brokerlink.domain.model import Client, Lead, Policy
from brokerlink.domain.ports import PolicyPage, UpdateOutcome

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.engine import CursorResult
    from sqlalchemy.orm import Session, sessionmaker


class SqlAlchemyRepository[TEntity]:
    """Session-scoped repository for one mapped aggregate."""

    def __init__(self, session: Session, entity_cls: type[TEntity]) -> None:
        self.session = session
        self._entity_cls = entity_cls

    def add(self, entity: TEntity) -> None:
        self.session.add(entity)

    def get(self, entity_id: int) -> TEntity | None:
        return self.session.get(self._entity_cls, entity_id)


class SqlAlchemyLeadRepository(SqlAlchemyRepository[Lead]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Lead)


class SqlAlchemyClientRepository(SqlAlchemyRepository[Client]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Client)


class SqlAlchemyPolicyRepository(SqlAlchemyRepository[Policy]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Policy)


class SqlAlchemyPolicyLinkStore:
    """Link store where every call runs in its own short-lived session.

    Returned entities are detached; callers read their loaded attributes only.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def get_policies_page(self, cursor: int | None, *, limit: int) -> PolicyPage:
        stmt = select(Policy).order_by(policy_table.c.id).limit(limit)
        if cursor is not None:
            stmt = stmt.where(policy_table.c.id > cursor)
        with self._session_factory() as session:
            policies = tuple(session.scalars(stmt))
        next_cursor = policies[-1].id if len(policies) == limit else None
        return PolicyPage(policies=policies, next_cursor=next_cursor)

    def get_client(self, client_id: int) -> Client | None:
        with self._session_factory() as session:
            return session.get(Client, client_id)

    def get_clients_by_lead_id(self, lead_id: int) -> Sequence[Client]:
        stmt = select(Client).where(client_table.c.lead_id == lead_id).order_by(client_table.c.id)
        with self._session_factory() as session:
            return tuple(session.scalars(stmt))

    def get_policies_by_lead_id(self, lead_id: int) -> Sequence[Policy]:
        stmt = select(Policy).where(policy_table.c.lead_id == lead_id).order_by(policy_table.c.id)
        with self._session_factory() as session:
            return tuple(session.scalars(stmt))

    def update_policy_client_id(
        self,
        policy_id: int,
        new_client_id: int,
        *,
        expected_version: int,
    ) -> UpdateOutcome:
        stmt = (
            update(policy_table)
            .where(policy_table.c.id == policy_id)
            .where(policy_table.c.version == expected_version)
            .values(client_id=new_client_id, version=policy_table.c.version + 1)
        )
        with self._session_factory() as session, session.begin():
            result = cast("CursorResult[object]", session.execute(stmt))
            if result.rowcount == 1:
                return UpdateOutcome.SUCCESS
            exists = session.execute(
                select(policy_table.c.id).where(policy_table.c.id == policy_id)
            ).first()
        return UpdateOutcome.CONFLICT if exists is not None else UpdateOutcome.NOT_FOUND


if TYPE_CHECKING:
    from brokerlink.domain.ports import (
        ClientRepository,
        LeadPolicyLookup,
        LeadRepository,
        PolicyLinkStore,
        PolicyRepository,
    )

    _session_stub = cast("Session", object())
    _lead_repo: LeadRepository = SqlAlchemyLeadRepository(_session_stub)
    _client_repo: ClientRepository = SqlAlchemyClientRepository(_session_stub)
    _policy_repo: PolicyRepository = SqlAlchemyPolicyRepository(_session_stub)
    _store_check: PolicyLinkStore = SqlAlchemyPolicyLinkStore(
        cast("sessionmaker[Session]", object())
    )
    _lookup_check: LeadPolicyLookup = SqlAlchemyPolicyLinkStore(
        cast("sessionmaker[Session]", object())
    )
