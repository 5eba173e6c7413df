"""Alembic environment for the travel map schema."""

import sqlalchemy
import sqlmodel
from alembic import context
from sqlalchemy import engine_from_config, pool

from travelmap.app import settings
from travelmap.app.locations import models  # noqa: F401 # pyright: ignore[reportUnusedImport]

target_metadata = sqlmodel.SQLModel.metadata

config = context.config


def run_migrations_offline() -> None:
    url = config.get_main_option('sqlalchemy.url') or settings.DATABASE_URL
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={'paramstyle': 'named'},
        render_as_batch=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_with(connection: sqlalchemy.Connection) -> None:
    # SQLite needs batch mode for ALTER COLUMN
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        render_as_batch=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    # database.run_migrations hands over an open connection
    connection = config.attributes.get('connection')
    if connection is not None:
        _run_with(connection)
        return

    section = config.get_section(config.config_ini_section) or {}
    section.setdefault('sqlalchemy.url', settings.DATABASE_URL)
    connectable = engine_from_config(section, prefix='sqlalchemy.', poolclass=pool.NullPool)
    with connectable.connect() as connection:
        _run_with(connection)


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
