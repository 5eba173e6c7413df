"""Main FastAPI application for the travel map."""

import contextlib
import logging
from collections.abc import AsyncGenerator

import fastapi
import fastapi.staticfiles
import sqlalchemy.exc
import sqlmodel
import uvicorn

from common.app import create_app
from travelmap.app import database, errors, settings
from travelmap.app.admin import routes as admin_routes
from travelmap.app.auth import routes as auth_routes
from travelmap.app.images import storage
from travelmap.app.locations import routes as location_routes
from travelmap.app.locations import services as location_services
from travelmap.app.templates import APP_DIR

logger = logging.getLogger(__name__)


def prepare_database() -> bool:
    """Migrate the schema and backfill thumbnails.

    Returns False when the database cannot be reached; the app then starts in
    degraded mode and the admin page reports the failure.
    """
    try:
        database.ensure_sqlite_directory()
        database.run_migrations()
        with sqlmodel.Session(database.engine) as session:
            location_services.LocationService(
                storage.get_image_store()
            ).generate_all_missing_thumbnails(session)
    except sqlalchemy.exc.SQLAlchemyError:
        logger.exception('Database initialisation failed, starting without database')
        return False
    return True


@contextlib.asynccontextmanager
async def lifespan(app: fastapi.FastAPI) -> AsyncGenerator[None, None]:
    """Initialize the database on startup."""
    app.state.database_available = prepare_database()
    yield


app = create_app('Travel Map', log_level=settings.LOG_LEVEL, lifespan=lifespan)
app.state.database_available = True
errors.install_handlers(app)

app.mount(
    '/static',
    fastapi.staticfiles.StaticFiles(directory=APP_DIR / 'static'),
    name='static',
)

app.include_router(auth_routes.router)
app.include_router(location_routes.router)
app.include_router(admin_routes.page_router)
app.include_router(admin_routes.api_router)


def run() -> None:
    """Serve the app with uvicorn."""
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
