"""Business logic for storing and serving travel map locations."""

import logging

import pydantic
import sqlmodel

from travelmap.app import errors
from travelmap.app.images import processing, storage

from . import models

logger = logging.getLogger(__name__)

MISSING_FIELDS_MESSAGE = 'Titel und Koordinaten sind erforderlich'
INVALID_COORDINATES_MESSAGE = 'Ungültige Koordinaten'
NOT_FOUND_MESSAGE = 'Ort nicht gefunden'


def _clean(value: str | None) -> str | None:
    """Strip form input, mapping blank strings to None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def parse_location_fields(
    title: str | None,
    latitude: str | float | None,
    longitude: str | float | None,
    description: str | None = None,
    date: str | None = None,
    highlight: str | None = None,
    country_code: str | None = None,
) -> models.LocationFields:
    """Validate raw form values into LocationFields.

    Raises InvalidLocationError when title or coordinates are missing, not
    numeric, or out of range.
    """
    title = _clean(title)
    if isinstance(latitude, str):
        latitude = _clean(latitude)
    if isinstance(longitude, str):
        longitude = _clean(longitude)
    if not title or latitude is None or longitude is None:
        raise errors.InvalidLocationError(MISSING_FIELDS_MESSAGE)

    try:
        return models.LocationFields(
            title=title,
            latitude=float(latitude),
            longitude=float(longitude),
            description=_clean(description),
            date=_clean(date),
            highlight=_clean(highlight),
            country_code=_clean(country_code),
        )
    except (ValueError, pydantic.ValidationError) as e:
        raise errors.InvalidLocationError(INVALID_COORDINATES_MESSAGE) from e


def image_ref(location: models.Location) -> models.Location:
    """Detached copy of the image columns, usable after commit or rollback."""
    return models.Location(
        id=location.id,
        image_path=location.image_path,
        image_data=location.image_data,
        image_type=location.image_type,
    )


class LocationService:
    """Service for creating, listing and deleting locations and their images."""

    def __init__(self, image_store: storage.ImageStore | None = None):
        """Initialize the service with the active image store."""
        self.image_store = image_store or storage.get_image_store()

    def list_locations(self, session: sqlmodel.Session) -> list[models.Location]:
        """Get all locations, newest first."""
        statement = sqlmodel.select(models.Location).order_by(
            models.Location.id.desc()  # type: ignore[union-attr]
        )
        return list(session.exec(statement).all())

    def get_location(
        self, session: sqlmodel.Session, location_id: int
    ) -> models.Location | None:
        """Get a specific location by ID."""
        return session.get(models.Location, location_id)

    def _attach_image(
        self, location: models.Location, image: processing.ProcessedImage
    ) -> None:
        self.image_store.save(location, image)
        location.thumbnail_data = processing.try_make_thumbnail(image.data)

    def _commit(
        self,
        session: sqlmodel.Session,
        location: models.Location,
        stored: models.Location | None,
    ) -> None:
        """Commit a location, removing a freshly stored image on failure."""
        try:
            session.add(location)
            session.commit()
        except Exception:
            session.rollback()
            if stored is not None:
                self.image_store.delete(stored)
            raise
        session.refresh(location)

    def create_location(
        self,
        session: sqlmodel.Session,
        fields: models.LocationFields,
        image: processing.ProcessedImage | None = None,
    ) -> models.Location:
        """Insert a new location, storing its image and thumbnail."""
        location = models.Location(**fields.model_dump())
        stored = None
        if image is not None:
            self._attach_image(location, image)
            stored = image_ref(location)

        self._commit(session, location, stored)
        logger.info('Created location %s (%r)', location.id, location.title)
        return location

    def update_location(
        self,
        session: sqlmodel.Session,
        location_id: int,
        fields: models.LocationFields,
        image: processing.ProcessedImage | None = None,
    ) -> models.Location | None:
        """Update a location's fields, replacing the image only if a new one is given."""
        location = session.get(models.Location, location_id)
        if location is None:
            return None

        for key, value in fields.model_dump().items():
            setattr(location, key, value)

        previous = stored = None
        if image is not None:
            previous = image_ref(location)
            self._attach_image(location, image)
            stored = image_ref(location)

        self._commit(session, location, stored)
        if previous is not None and previous.image_path != location.image_path:
            self.image_store.delete(previous)
        logger.info('Updated location %s', location_id)
        return location

    def delete_location(self, session: sqlmodel.Session, location_id: int) -> bool:
        """Delete a location and its stored image."""
        location = session.get(models.Location, location_id)
        if location is None:
            return False

        stored = image_ref(location)
        session.delete(location)
        session.commit()

        # The row is gone; a file that cannot be removed is only logged
        self.image_store.delete(stored)
        logger.info('Deleted location %s', location_id)
        return True

    def get_image(
        self, session: sqlmodel.Session, location_id: int
    ) -> processing.ProcessedImage | None:
        """Get the stored full-size image of a location."""
        location = session.get(models.Location, location_id)
        if location is None:
            return None
        data = self.image_store.load(location)
        if data is None:
            return None
        return processing.ProcessedImage(data, location.image_type or 'image/jpeg')

    def ensure_thumbnail(
        self, session: sqlmodel.Session, location: models.Location
    ) -> bytes | None:
        """Return the thumbnail of a location, generating and saving it if missing."""
        if location.thumbnail_data is not None:
            return location.thumbnail_data

        data = self.image_store.load(location)
        if data is None:
            return None
        thumbnail = processing.try_make_thumbnail(data)
        if thumbnail is None:
            return None

        location.thumbnail_data = thumbnail
        session.add(location)
        session.commit()
        logger.info('Generated missing thumbnail for location %s', location.id)
        return thumbnail

    def get_thumbnail(self, session: sqlmodel.Session, location_id: int) -> bytes | None:
        """Get the thumbnail of a location, backfilling it for older rows."""
        location = session.get(models.Location, location_id)
        if location is None:
            return None
        return self.ensure_thumbnail(session, location)

    def locations_missing_thumbnails(
        self, session: sqlmodel.Session
    ) -> list[models.Location]:
        """Get locations that have an image but no thumbnail."""
        statement = sqlmodel.select(models.Location).where(
            sqlmodel.or_(
                models.Location.image_data.is_not(None),  # type: ignore[union-attr]
                models.Location.image_path.is_not(None),  # type: ignore[union-attr]
            ),
            models.Location.thumbnail_data.is_(None),  # type: ignore[union-attr]
        )
        return list(session.exec(statement).all())

    def generate_all_missing_thumbnails(self, session: sqlmodel.Session) -> int:
        """Backfill thumbnails for all locations missing one.

        Returns the number of thumbnails generated.
        """
        missing = self.locations_missing_thumbnails(session)
        if not missing:
            logger.info('All locations already have thumbnails')
            return 0

        logger.info('%d locations without thumbnails, generating', len(missing))
        generated = 0
        for location in missing:
            if self.ensure_thumbnail(session, location) is not None:
                generated += 1
        return generated
