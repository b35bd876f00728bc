"""SQLAlchemy adapter package for brokerlink."""

from __future__ import annotations

from .mappings import client_table, lead_table, mapper_registry, policy_table, start_mappers
from .repositories import (
    SqlAlchemyClientRepository,
    SqlAlchemyLeadRepository,
    SqlAlchemyPolicyLinkStore,
    SqlAlchemyPolicyRepository,
)
from .unit_of_work import (
    SqlAlchemyCrmUnitOfWork,
    StartupError,
    build_policy_link_store,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyClientRepository",
    "SqlAlchemyCrmUnitOfWork",
    "SqlAlchemyLeadRepository",
    "SqlAlchemyPolicyLinkStore",
    "SqlAlchemyPolicyRepository",
    "StartupError",
    "build_policy_link_store",
    "client_table",
    "lead_table",
    "mapper_registry",
    "policy_table",
    "shutdown",
    "start_mappers",
    "startup",
]
