"""Database and API models for travel map locations."""

import datetime

import sqlalchemy
import sqlmodel


class Location(sqlmodel.SQLModel, table=True):
    """A visited place shown as a marker on the map."""

    __tablename__ = 'locations'  # type: ignore[misc]

    id: int | None = sqlmodel.Field(default=None, primary_key=True)
    title: str = sqlmodel.Field(sa_column=sqlalchemy.Column(sqlalchemy.Text, nullable=False))
    latitude: float
    longitude: float
    description: str | None = sqlmodel.Field(
        default=None, sa_column=sqlalchemy.Column(sqlalchemy.Text, nullable=True)
    )
    date: str | None = sqlmodel.Field(
        default=None, sa_column=sqlalchemy.Column(sqlalchemy.Text, nullable=True)
    )
    highlight: str | None = sqlmodel.Field(
        default=None, sa_column=sqlalchemy.Column(sqlalchemy.Text, nullable=True)
    )
    country_code: str | None = sqlmodel.Field(
        default=None, sa_column=sqlalchemy.Column(sqlalchemy.Text, nullable=True)
    )

    # Exactly one of image_path / image_data is used, depending on IMAGE_STORAGE
    image_path: str | None = sqlmodel.Field(
        default=None, sa_column=sqlalchemy.Column(sqlalchemy.Text, nullable=True)
    )
    image_data: bytes | None = sqlmodel.Field(
        default=None,
        sa_column=sqlalchemy.Column(sqlalchemy.LargeBinary, nullable=True),
    )
    image_type: str | None = sqlmodel.Field(default=None, max_length=50)
    thumbnail_data: bytes | None = sqlmodel.Field(
        default=None,
        sa_column=sqlalchemy.Column(sqlalchemy.LargeBinary, nullable=True),
    )

    created_at: datetime.datetime = sqlmodel.Field(
        default_factory=lambda: datetime.datetime.now(datetime.UTC)
    )

    @property
    def has_image(self) -> bool:
        """True if an image is stored for this location."""
        return self.image_data is not None or self.image_path is not None


class LocationFields(sqlmodel.SQLModel):
    """Validated user-editable fields of a location."""

    title: str
    latitude: float = sqlmodel.Field(ge=-90, le=90)
    longitude: float = sqlmodel.Field(ge=-180, le=180)
    description: str | None = None
    date: str | None = None
    highlight: str | None = None
    country_code: str | None = None


class LocationSummary(sqlmodel.SQLModel):
    """Location as returned by the JSON API, without image bytes."""

    id: int
    title: str
    latitude: float
    longitude: float
    description: str | None = None
    date: str | None = None
    highlight: str | None = None
    country_code: str | None = None
    image_type: str | None = None
    has_image: bool
    has_thumbnail: bool
    created_at: datetime.datetime

    @classmethod
    def from_location(cls, location: Location) -> 'LocationSummary':
        """Build the API representation of a stored location."""
        assert location.id is not None
        return cls(
            id=location.id,
            title=location.title,
            latitude=location.latitude,
            longitude=location.longitude,
            description=location.description,
            date=location.date,
            highlight=location.highlight,
            country_code=location.country_code,
            image_type=location.image_type,
            has_image=location.has_image,
            has_thumbnail=location.thumbnail_data is not None,
            created_at=location.created_at,
        )
