"""Schema helpers shared by the maintenance scripts."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from alembic import command
from alembic.autogenerate import api as ag_api
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from ..models import Base

PROJECT_ROOT = Path(__file__).resolve().parents[2]


def upgrade_db(target_revision: str = "head") -> None:
    """Apply Alembic migrations up to the requested revision."""
    alembic_cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    command.upgrade(alembic_cfg, target_revision)


def missing_tables(engine: Engine) -> list[str]:
    """Return model tables that do not exist in the database behind ``engine``."""
    existing = set(inspect(engine).get_table_names())
    return sorted(name for name in Base.metadata.tables if name not in existing)


def schema_drift(engine: Engine) -> list[Any]:
    """Return Alembic upgrade operations needed to match the models.

    An empty list means the database schema matches :data:`Base.metadata`.
    """
    with engine.connect() as connection:
        context = MigrationContext.configure(
            connection=connection,
            opts={
                "compare_type": True,
                "compare_server_default": True,
                "render_as_batch": connection.dialect.name == "sqlite",
            },
        )
        migration = ag_api.produce_migrations(context, Base.metadata)
    upgrade_ops = migration.upgrade_ops
    if upgrade_ops is None:
        raise RuntimeError("Alembic produced no upgrade operations")
    return list(upgrade_ops.ops or [])


__all__ = ["missing_tables", "schema_drift", "upgrade_db"]
