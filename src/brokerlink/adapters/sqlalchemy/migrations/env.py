"""Alembic runtime environment for the CRM link schema."""

from __future__ import annotations

from contextlib import ExitStack
from typing import TYPE_CHECKING

from alembic import context
from sqlalchemy import create_engine, pool

from brokerlink.adapters.sqlalchemy import mapper_registry, start_mappers
from brokerlink.config import get_database_config

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection

config = context.config
start_mappers()
target_metadata = mapper_registry.metadata

# batch mode lets SQLite alter tables by copy-and-move
_CONFIGURE_OPTIONS: dict[str, object] = {
    "target_metadata": target_metadata,
    "render_as_batch": True,
    "compare_type": True,
}


def _url() -> str:
    return config.get_main_option("sqlalchemy.url") or get_database_config().uri


def _migrate(connection: Connection) -> None:
    context.configure(connection=connection, **_CONFIGURE_OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


def run_offline() -> None:
    """Emit SQL for the pending revisions without connecting."""

    context.configure(url=_url(), literal_binds=True, **_CONFIGURE_OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


def run_online() -> None:
    """Apply pending revisions, reusing a caller's connection when one is passed."""

    shared: Connection | None = config.attributes.get("connection")
    if shared is not None:
        _migrate(shared)
        return

    engine = create_engine(_url(), poolclass=pool.NullPool, future=True)
    with ExitStack() as stack:
        stack.callback(engine.dispose)
        _migrate(stack.enter_context(engine.connect()))


if context.is_offline_mode():
    run_offline()
else:
    run_online()
