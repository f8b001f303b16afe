from __future__ import annotations

from logging.config import fileConfig

from sqlalchemy.engine import Engine

from alembic import context
from co_backend import models  # noqa: F401
from co_backend.config import get_database_config
from co_backend.db import Base, get_engine

config = context.config

# The ini file is optional; logging stays as configured by the caller without it.
if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata


def _get_url() -> str:
    """
    Resolve the database URL from CO_DATABASE_URL (or the SQLite default).
    """
    return get_database_config().database_url


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def run_migrations_offline() -> None:
    """
    Emit SQL for the migrations without connecting to a database.
    """
    url = _get_url()
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=_is_sqlite(url),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """
    Run migrations against the engine the application itself would use.
    """
    connectable: Engine = get_engine()

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            # SQLite cannot ALTER most constraints in place.
            render_as_batch=connection.dialect.name == "sqlite",
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
