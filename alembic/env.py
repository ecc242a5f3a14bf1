"""Alembic migration environment for the taleloop story store.

The URL comes from ``sqlalchemy.url`` when ``init_db`` sets it, otherwise
from ``taleloop.config.Config`` (DATABASE_URL, .env aware). SQLite runs in
batch mode so later ALTER TABLE migrations work there too.
"""

import os
import sys
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from taleloop.config import Config  # noqa: E402
from taleloop.db.models import Base  # noqa: E402

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata


def get_url() -> str:
    return config.get_main_option("sqlalchemy.url") or Config.get_database_url()


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of touching a database."""
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    url = get_url()
    engine_kwargs = {}
    if url.startswith("postgresql"):
        engine_kwargs.update({"pool_size": 5, "pool_pre_ping": True})

    connectable = create_engine(url, **engine_kwargs)
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=connection.dialect.name == "sqlite",
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
