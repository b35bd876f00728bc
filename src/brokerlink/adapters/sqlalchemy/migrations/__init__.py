"""Alembic entry points for the CRM link schema.

Settings come from the ``[tool.alembic]`` table of the project's
``pyproject.toml`` when running from a checkout. An installed package has no
pyproject next to it and falls back to the bundled scripts.
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Final

from alembic import command
from alembic.config import Config

from brokerlink.config import get_database_config

PACKAGE_SCRIPTS: Final[Path] = Path(__file__).resolve().parent
CHECKOUT_ROOT: Final[Path] = PACKAGE_SCRIPTS.parents[4]
PYPROJECT_FILE: Final[Path] = CHECKOUT_ROOT / "pyproject.toml"

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


def _alembic_table() -> dict[str, str]:
    if not PYPROJECT_FILE.is_file():
        return {}
    with PYPROJECT_FILE.open("rb") as handle:
        table = tomllib.load(handle).get("tool", {}).get("alembic", {})
    return {str(key): str(value) for key, value in table.items()}


def _scripts_dir(declared: str | None) -> Path:
    if declared is None:
        return PACKAGE_SCRIPTS
    path = Path(declared)
    return path if path.is_absolute() else CHECKOUT_ROOT / path


def alembic_config() -> Config:
    """Build an in-memory Alembic ``Config``; no ``alembic.ini`` is involved."""

    settings = _alembic_table()
    config = Config()
    scripts = _scripts_dir(settings.pop("script_location", None))
    config.set_main_option("script_location", str(scripts))
    # the URL is chosen per call in upgrade_head
    settings.pop("sqlalchemy.url", None)
    for key, value in settings.items():
        config.set_main_option(key, value)
    return config


def upgrade_head(*, engine: Engine | None = None, database_uri: str | None = None) -> None:
    """Bring the lead/client/policy schema to the newest revision.

    With ``engine`` the upgrade shares one of its connections, which keeps
    in-memory SQLite databases visible to the caller.
    """

    config = alembic_config()
    if engine is None:
        config.set_main_option("sqlalchemy.url", database_uri or get_database_config().uri)
        command.upgrade(config, "head")
        return
    with engine.begin() as connection:
        config.attributes["connection"] = connection
        command.upgrade(config, "head")
