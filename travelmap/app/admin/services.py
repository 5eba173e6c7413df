"""Database status and maintenance actions for the admin page."""

import dataclasses
import logging

import alembic.runtime.migration
import sqlalchemy
import sqlalchemy.exc
import sqlmodel

from travelmap.app import database, errors
from travelmap.app.images import processing, storage
from travelmap.app.locations import models, services

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class ColumnInfo:
    """One column of the locations table as reported by the database."""

    name: str
    type: str
    nullable: bool


@dataclasses.dataclass
class DatabaseStatus:
    """Snapshot shown on the admin page and returned by the stats API."""

    database_available: bool
    table_exists: bool = False
    schema_revision: str | None = None
    columns: list[ColumnInfo] = dataclasses.field(default_factory=list)
    location_count: int = 0
    storage_bytes: int = 0
    missing_thumbnails: int = 0
    image_storage: str = ''
    error: str | None = None

    @property
    def storage_usage(self) -> str:
        """Stored image size in megabytes, formatted for display."""
        return f'{self.storage_bytes / (1024 * 1024):.2f} MB'


@dataclasses.dataclass
class FixResult:
    """Outcome of fix_database."""

    fixed_image_types: int
    generated_thumbnails: int
    schema_revision: str | None


class AdminService:
    """Service for inspecting and repairing the locations table."""

    def __init__(self, location_service: services.LocationService):
        """Initialize with the location service whose image store is active."""
        self.location_service = location_service

    @property
    def image_store(self) -> storage.ImageStore:
        return self.location_service.image_store

    def _engine(self, session: sqlmodel.Session) -> sqlalchemy.Engine:
        bind = session.get_bind()
        assert isinstance(bind, sqlalchemy.Engine)
        return bind

    def status(self, session: sqlmodel.Session) -> DatabaseStatus:
        """Collect table, revision and storage information."""
        status = DatabaseStatus(
            database_available=True, image_storage=self.image_store.name
        )
        try:
            with self._engine(session).connect() as connection:
                inspector = sqlalchemy.inspect(connection)
                status.table_exists = inspector.has_table(models.Location.__tablename__)
                if status.table_exists:
                    status.columns = [
                        ColumnInfo(
                            name=column['name'],
                            type=str(column['type']),
                            nullable=bool(column['nullable']),
                        )
                        for column in inspector.get_columns(models.Location.__tablename__)
                    ]
                migration_context = alembic.runtime.migration.MigrationContext.configure(
                    connection
                )
                status.schema_revision = migration_context.get_current_revision()

            if status.table_exists:
                locations = self.location_service.list_locations(session)
                status.location_count = len(locations)
                status.storage_bytes = sum(
                    self.image_store.size(location) for location in locations
                )
                status.missing_thumbnails = len(
                    self.location_service.locations_missing_thumbnails(session)
                )
        except sqlalchemy.exc.SQLAlchemyError as e:
            logger.exception('Could not read database status')
            session.rollback()
            status.database_available = False
            status.error = str(e)
        return status

    def fix_database(self, session: sqlmodel.Session) -> FixResult:
        """Bring the schema to head, fill missing image types and thumbnails."""
        engine = self._engine(session)
        database.run_migrations(engine)

        fixed = 0
        statement = sqlmodel.select(models.Location).where(
            models.Location.image_type.is_(None)  # type: ignore[union-attr]
        )
        for location in session.exec(statement).all():
            if location.has_image:
                location.image_type = 'image/jpeg'
                session.add(location)
                fixed += 1
        session.commit()
        logger.info('Filled missing image type on %d locations', fixed)

        generated = self.location_service.generate_all_missing_thumbnails(session)
        return FixResult(
            fixed_image_types=fixed,
            generated_thumbnails=generated,
            schema_revision=database.current_revision(engine),
        )

    def reset_database(self, session: sqlmodel.Session) -> int:
        """Delete every location with its image and recreate the table.

        Returns the number of deleted locations.
        """
        engine = self._engine(session)
        locations = []
        if sqlalchemy.inspect(engine).has_table(models.Location.__tablename__):
            locations = self.location_service.list_locations(session)
        for location in locations:
            self.image_store.delete(location)
        session.rollback()
        session.close()

        table = sqlmodel.SQLModel.metadata.tables[models.Location.__tablename__]
        table.drop(engine, checkfirst=True)
        table.create(engine)
        logger.warning('Reset locations table, %d locations removed', len(locations))
        return len(locations)

    def optimize_images(self, session: sqlmodel.Session) -> int:
        """Recompress stored images, keeping the result only when it is smaller.

        Returns the number of images that were replaced.
        """
        optimized = 0
        for location in self.location_service.list_locations(session):
            data = self.image_store.load(location)
            if data is None:
                continue
            try:
                compressed = processing.compress_image(
                    data, location.image_type or 'image/jpeg'
                )
            except errors.ImageRejectedError:
                logger.warning('Stored image of location %s is not readable', location.id)
                continue
            if len(compressed.data) >= len(data):
                continue

            previous = services.image_ref(location)
            self.image_store.save(location, compressed)
            session.add(location)
            session.commit()
            if previous.image_path != location.image_path:
                self.image_store.delete(previous)
            optimized += 1
        logger.info('Optimized %d images', optimized)
        return optimized

    def generate_thumbnails(self, session: sqlmodel.Session) -> int:
        """Generate thumbnails for every location that has an image but none yet."""
        return self.location_service.generate_all_missing_thumbnails(session)
