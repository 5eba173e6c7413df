"""Database engine, session management and schema migrations."""

import logging
import pathlib
from collections.abc import Generator

import alembic.command
import alembic.config
import alembic.runtime.migration
import sqlalchemy
import sqlmodel

from travelmap.app import settings

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = pathlib.Path(__file__).resolve().parent / 'migrations'


def make_engine(url: str | None = None) -> sqlalchemy.Engine:
    """Create the engine for a database URL, with Postgres TLS settings applied."""
    url = url or settings.DATABASE_URL
    connect_args: dict[str, object] = {}
    if url.startswith('sqlite'):
        # Sync route handlers share the engine across threads
        connect_args['check_same_thread'] = False
    elif url.startswith('postgresql'):
        connect_args['sslmode'] = settings.DATABASE_SSLMODE
        connect_args['connect_timeout'] = 10
    return sqlmodel.create_engine(
        url,
        connect_args=connect_args,
        echo=settings.DATABASE_ECHO,
        pool_pre_ping=True,
    )


engine = make_engine()


def ensure_sqlite_directory(url: str | None = None) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    url = url or settings.DATABASE_URL
    database = sqlalchemy.engine.make_url(url).database
    if url.startswith('sqlite') and database and database != ':memory:':
        pathlib.Path(database).parent.mkdir(parents=True, exist_ok=True)


def alembic_config() -> alembic.config.Config:
    """Alembic configuration pointing at the bundled migration scripts."""
    config = alembic.config.Config()
    config.set_main_option('script_location', str(MIGRATIONS_DIR))
    return config


def run_migrations(bind: sqlalchemy.Engine | None = None) -> None:
    """Upgrade the schema to the latest revision."""
    bind = bind or engine
    config = alembic_config()
    with bind.begin() as connection:
        config.attributes['connection'] = connection
        alembic.command.upgrade(config, 'head')
    logger.info('Database schema is at revision %s', current_revision(bind))


def current_revision(bind: sqlalchemy.Engine | None = None) -> str | None:
    """Return the schema revision recorded in the database."""
    bind = bind or engine
    with bind.connect() as connection:
        context = alembic.runtime.migration.MigrationContext.configure(connection)
        return context.get_current_revision()


def get_session() -> Generator[sqlmodel.Session, None, None]:
    """Get database session."""
    with sqlmodel.Session(engine) as session:
        yield session
