"""Admin page and JSON API for database status and maintenance."""

import logging
import typing
import urllib.parse
from collections.abc import Callable

import fastapi
import fastapi.responses
import sqlmodel

from travelmap.app import database
from travelmap.app.auth import dependencies as auth
from travelmap.app.locations import routes as location_routes
from travelmap.app.locations import services as location_services
from travelmap.app.templates import templates

from . import services

logger = logging.getLogger(__name__)

page_router = fastapi.APIRouter(prefix='/admin')
api_router = fastapi.APIRouter(
    prefix='/api/admin', dependencies=[fastapi.Depends(auth.require_api_session)]
)


def get_admin_service(
    location_service: location_services.LocationService = fastapi.Depends(
        location_routes.get_location_service
    ),
) -> services.AdminService:
    """Get admin service instance."""
    return services.AdminService(location_service)


def _status(
    request: fastapi.Request,
    session: sqlmodel.Session,
    admin_service: services.AdminService,
) -> services.DatabaseStatus:
    status = admin_service.status(session)
    request.app.state.database_available = status.database_available
    return status


def _fix_database(admin_service: services.AdminService, session: sqlmodel.Session) -> str:
    result = admin_service.fix_database(session)
    return (
        f'Datenbank repariert (Revision {result.schema_revision}): '
        f'{result.fixed_image_types} Bildtypen ergänzt, '
        f'{result.generated_thumbnails} Thumbnails erzeugt'
    )


def _reset_database(admin_service: services.AdminService, session: sqlmodel.Session) -> str:
    deleted = admin_service.reset_database(session)
    return f'Datenbank zurückgesetzt, {deleted} Orte gelöscht'


def _generate_thumbnails(
    admin_service: services.AdminService, session: sqlmodel.Session
) -> str:
    generated = admin_service.generate_thumbnails(session)
    return f'{generated} Thumbnails erzeugt'


def _optimize_images(admin_service: services.AdminService, session: sqlmodel.Session) -> str:
    optimized = admin_service.optimize_images(session)
    return f'{optimized} Bilder optimiert'


ACTIONS: dict[str, Callable[[services.AdminService, sqlmodel.Session], str]] = {
    'fix-database': _fix_database,
    'reset-database': _reset_database,
    'generate-thumbnails': _generate_thumbnails,
    'optimize-images': _optimize_images,
}

ActionName = typing.Literal[
    'fix-database', 'reset-database', 'generate-thumbnails', 'optimize-images'
]


def admin_url(session_id: str, message: str | None = None) -> str:
    """URL of the admin page, optionally carrying a result message."""
    params = {'sessionId': session_id}
    if message:
        params['message'] = message
    return '/admin?' + urllib.parse.urlencode(params)


@page_router.get('', response_class=fastapi.responses.HTMLResponse)
def admin_page(
    request: fastapi.Request,
    message: str | None = None,
    session_id: str = fastapi.Depends(auth.require_page_session),
    session: sqlmodel.Session = fastapi.Depends(database.get_session),
    admin_service: services.AdminService = fastapi.Depends(get_admin_service),
) -> fastapi.responses.Response:
    """Serve the admin page with the current database status."""
    return templates.TemplateResponse(
        request=request,
        name='admin.html.jinja2',
        context={
            'status': _status(request, session, admin_service),
            'message': message,
            'session_id': session_id,
        },
    )


@page_router.post('/{action}')
def run_admin_action(
    request: fastapi.Request,
    action: ActionName,
    session_id: str = fastapi.Depends(auth.require_page_session),
    session: sqlmodel.Session = fastapi.Depends(database.get_session),
    admin_service: services.AdminService = fastapi.Depends(get_admin_service),
) -> fastapi.responses.RedirectResponse:
    """Run a maintenance action from the admin page and redirect back to it."""
    logger.info('Running admin action %s', action)
    message = ACTIONS[action](admin_service, session)
    request.app.state.database_available = True
    return fastapi.responses.RedirectResponse(
        admin_url(session_id, message), status_code=303
    )


@api_router.get('/stats')
def get_stats(
    request: fastapi.Request,
    session: sqlmodel.Session = fastapi.Depends(database.get_session),
    admin_service: services.AdminService = fastapi.Depends(get_admin_service),
) -> dict[str, typing.Any]:
    """Get database status and storage usage."""
    status = _status(request, session, admin_service)
    return {
        'dbStatus': 'connected' if status.database_available else 'error',
        'locationCount': status.location_count,
        'storageUsage': status.storage_usage,
        'missingThumbnails': status.missing_thumbnails,
        'schemaRevision': status.schema_revision,
    }


@api_router.post('/{action}')
def run_admin_action_api(
    request: fastapi.Request,
    action: ActionName,
    session: sqlmodel.Session = fastapi.Depends(database.get_session),
    admin_service: services.AdminService = fastapi.Depends(get_admin_service),
) -> dict[str, typing.Any]:
    """Run a maintenance action and return its result message."""
    logger.info('Running admin action %s', action)
    message = ACTIONS[action](admin_service, session)
    request.app.state.database_available = True
    return {'success': True, 'message': message}
