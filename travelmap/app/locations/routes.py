"""JSON API routes for travel map locations."""

import typing

import fastapi
import fastapi.responses
import sqlmodel

from travelmap.app import database, errors, settings
from travelmap.app.auth import dependencies as auth
from travelmap.app.images import processing, storage

from . import models, services

router = fastapi.APIRouter(
    prefix='/api/locations', dependencies=[fastapi.Depends(auth.require_api_session)]
)

IMAGE_REQUIRED_MESSAGE = 'Bild ist erforderlich'

NO_CACHE_HEADERS = {
    'Cache-Control': 'no-cache, no-store, must-revalidate',
    'Pragma': 'no-cache',
    'Expires': '0',
}


def get_location_service(
    image_store: storage.ImageStore = fastapi.Depends(storage.get_image_store),
) -> services.LocationService:
    """Get location service instance."""
    return services.LocationService(image_store)


def _has_upload(image: fastapi.UploadFile | None) -> bool:
    # Browsers send an empty part when the file input is left blank
    return image is not None and bool(image.filename)


@router.get('', response_model=list[models.LocationSummary])
def list_locations(
    session: sqlmodel.Session = fastapi.Depends(database.get_session),
    location_service: services.LocationService = fastapi.Depends(get_location_service),
) -> list[models.LocationSummary]:
    """Get all locations, newest first."""
    return [
        models.LocationSummary.from_location(location)
        for location in location_service.list_locations(session)
    ]


@router.post('')
async def create_location(
    title: typing.Annotated[str | None, fastapi.Form()] = None,
    latitude: typing.Annotated[str | None, fastapi.Form()] = None,
    longitude: typing.Annotated[str | None, fastapi.Form()] = None,
    description: typing.Annotated[str | None, fastapi.Form()] = None,
    date: typing.Annotated[str | None, fastapi.Form()] = None,
    highlight: typing.Annotated[str | None, fastapi.Form()] = None,
    country_code: typing.Annotated[str | None, fastapi.Form()] = None,
    image: typing.Annotated[fastapi.UploadFile | None, fastapi.File()] = None,
    session: sqlmodel.Session = fastapi.Depends(database.get_session),
    location_service: services.LocationService = fastapi.Depends(get_location_service),
) -> dict[str, typing.Any]:
    """Create a location from a multipart form with an uploaded image."""
    fields = services.parse_location_fields(
        title, latitude, longitude, description, date, highlight, country_code
    )

    processed = None
    if _has_upload(image):
        assert image is not None
        processed = await processing.process_upload(image)
    elif settings.REQUIRE_IMAGE:
        raise errors.ImageRejectedError(IMAGE_REQUIRED_MESSAGE)

    location = location_service.create_location(session, fields, processed)
    return {
        'success': True,
        'id': location.id,
        'message': 'Ort erfolgreich gespeichert',
    }


@router.get('/{location_id}', response_model=models.LocationSummary)
def get_location(
    location_id: int,
    session: sqlmodel.Session = fastapi.Depends(database.get_session),
    location_service: services.LocationService = fastapi.Depends(get_location_service),
) -> models.LocationSummary:
    """Get details of a specific location."""
    location = location_service.get_location(session, location_id)
    if location is None:
        raise errors.LocationNotFoundError(services.NOT_FOUND_MESSAGE)
    return models.LocationSummary.from_location(location)


@router.put('/{location_id}')
async def update_location(
    location_id: int,
    title: typing.Annotated[str | None, fastapi.Form()] = None,
    latitude: typing.Annotated[str | None, fastapi.Form()] = None,
    longitude: typing.Annotated[str | None, fastapi.Form()] = None,
    description: typing.Annotated[str | None, fastapi.Form()] = None,
    date: typing.Annotated[str | None, fastapi.Form()] = None,
    highlight: typing.Annotated[str | None, fastapi.Form()] = None,
    country_code: typing.Annotated[str | None, fastapi.Form()] = None,
    image: typing.Annotated[fastapi.UploadFile | None, fastapi.File()] = None,
    session: sqlmodel.Session = fastapi.Depends(database.get_session),
    location_service: services.LocationService = fastapi.Depends(get_location_service),
) -> dict[str, typing.Any]:
    """Update a location; the image is replaced only when a new one is uploaded."""
    fields = services.parse_location_fields(
        title, latitude, longitude, description, date, highlight, country_code
    )

    processed = None
    if _has_upload(image):
        assert image is not None
        processed = await processing.process_upload(image)

    location = location_service.update_location(session, location_id, fields, processed)
    if location is None:
        raise errors.LocationNotFoundError(services.NOT_FOUND_MESSAGE)
    return {'success': True, 'id': location.id}


@router.delete('/{location_id}')
def delete_location(
    location_id: int,
    session: sqlmodel.Session = fastapi.Depends(database.get_session),
    location_service: services.LocationService = fastapi.Depends(get_location_service),
) -> dict[str, bool]:
    """Delete a location and its image."""
    if not location_service.delete_location(session, location_id):
        raise errors.LocationNotFoundError(services.NOT_FOUND_MESSAGE)
    return {'success': True}


@router.get('/{location_id}/image')
def get_location_image(
    location_id: int,
    session: sqlmodel.Session = fastapi.Depends(database.get_session),
    location_service: services.LocationService = fastapi.Depends(get_location_service),
) -> fastapi.responses.Response:
    """Serve the stored image of a location."""
    image = location_service.get_image(session, location_id)
    if image is None:
        raise errors.LocationNotFoundError('Bild nicht gefunden')
    return fastapi.responses.Response(
        content=image.data, media_type=image.mime_type, headers=NO_CACHE_HEADERS
    )


@router.get('/{location_id}/thumbnail')
def get_location_thumbnail(
    location_id: int,
    session: sqlmodel.Session = fastapi.Depends(database.get_session),
    location_service: services.LocationService = fastapi.Depends(get_location_service),
) -> fastapi.responses.Response:
    """Serve the thumbnail of a location, generating it if missing."""
    thumbnail = location_service.get_thumbnail(session, location_id)
    if thumbnail is None:
        raise errors.LocationNotFoundError('Thumbnail nicht gefunden')
    return fastapi.responses.Response(
        content=thumbnail, media_type='image/jpeg', headers=NO_CACHE_HEADERS
    )
