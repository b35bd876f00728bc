"""SQLAlchemy mapping metadata for the brokerlink domain model."""

from __future__ import annotations

import logging
from functools import cache

from sqlalchemy import Column, Enum, Index, Integer, String, Table, literal_column, orm
from sqlalchemy.orm import configure_mappers

from brokerlink.domain.model import Client, Lead, LeadStatus, Policy

log = logging.getLogger(__name__)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Core tables -----------------------------------------------------------------

lead_table = Table(
    "lead",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("first_name", String, nullable=False),
    Column("last_name", String, nullable=True),
    Column("email", String, nullable=True),
    Column(
        "status",
        Enum(LeadStatus, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=LeadStatus.NEW,
    ),
)

# No foreign keys on link columns: dangling references must stay representable.
client_table = Table(
    "client",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String, nullable=False),
    Column("email", String, nullable=False),
    Column("lead_id", Integer, nullable=True),
    Index("ix_client_lead_id", "lead_id"),
)

policy_table = Table(
    "policy",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("policy_number", String, nullable=False, unique=True),
    Column("carrier", String, nullable=True),
    Column("client_id", Integer, nullable=True),
    Column("lead_id", Integer, nullable=True),
    # ORM saves bump the version unconditionally; only link writes compare it
    Column(
        "version",
        Integer,
        nullable=False,
        onupdate=literal_column("version", Integer) + 1,
    ),
    Index("ix_policy_client_id", "client_id"),
    Index("ix_policy_lead_id", "lead_id"),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(Lead, lead_table)
    mapper_registry.map_imperatively(Client, client_table)
    mapper_registry.map_imperatively(
        Policy,
        policy_table,
        eager_defaults=True,
    )

    configure_mappers()
    return mapper_registry

