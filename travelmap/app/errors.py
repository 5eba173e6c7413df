"""Error types and FastAPI exception handlers for the travel map."""

import logging

import fastapi
import fastapi.exceptions
import fastapi.responses
import sqlalchemy.exc
import starlette.exceptions

logger = logging.getLogger(__name__)


class TravelMapError(Exception):
    """Base error carrying a user-facing message and an HTTP status code."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidLocationError(TravelMapError):
    """Submitted location fields are missing or malformed."""

    status_code = 400


class ImageRejectedError(TravelMapError):
    """Uploaded file is too large, of a disallowed type, or not decodable."""

    status_code = 400


class LocationNotFoundError(TravelMapError):
    """No location exists with the requested id."""

    status_code = 404


class LoginRequiredError(Exception):
    """Raised by page routes when the request has no authenticated session."""


def error_response(message: str, status_code: int) -> fastapi.responses.JSONResponse:
    """Build the JSON error body used by every API endpoint."""
    return fastapi.responses.JSONResponse(
        status_code=status_code,
        content={'success': False, 'error': message},
    )


async def travel_map_error_handler(
    request: fastapi.Request, exc: Exception
) -> fastapi.responses.Response:
    """Render a TravelMapError as JSON."""
    assert isinstance(exc, TravelMapError)
    logger.info(
        '%s %s rejected (%d): %s',
        request.method,
        request.url.path,
        exc.status_code,
        exc.message,
    )
    return error_response(exc.message, exc.status_code)


async def http_error_handler(
    request: fastapi.Request, exc: Exception
) -> fastapi.responses.Response:
    """Render HTTP exceptions (including 401 from the auth gate) as JSON."""
    assert isinstance(exc, starlette.exceptions.HTTPException)
    return fastapi.responses.JSONResponse(
        status_code=exc.status_code,
        content={'success': False, 'error': str(exc.detail)},
        headers=getattr(exc, 'headers', None),
    )


def describe_validation_errors(exc: fastapi.exceptions.RequestValidationError) -> str:
    """Summarise request validation errors as one readable line."""
    parts = []
    for error in exc.errors():
        location = '.'.join(str(part) for part in error.get('loc', ()) if part != 'body')
        message = error.get('msg', 'ungültig')
        parts.append(f'{location}: {message}' if location else message)
    return 'Ungültige Anfrage: ' + '; '.join(parts)


async def validation_error_handler(
    request: fastapi.Request, exc: Exception
) -> fastapi.responses.Response:
    """Render request validation failures in the JSON error shape."""
    assert isinstance(exc, fastapi.exceptions.RequestValidationError)
    message = describe_validation_errors(exc)
    logger.info('%s %s rejected (422): %s', request.method, request.url.path, message)
    return error_response(message, 422)


async def login_required_handler(
    request: fastapi.Request, exc: Exception
) -> fastapi.responses.Response:
    """Send unauthenticated page requests back to the login page."""
    return fastapi.responses.RedirectResponse('/', status_code=303)


async def database_error_handler(
    request: fastapi.Request, exc: Exception
) -> fastapi.responses.Response:
    """Log database failures and expose the driver message to the client."""
    logger.exception(
        'Database error during %s %s', request.method, request.url.path, exc_info=exc
    )
    return error_response(f'Datenbankfehler: {exc}', 500)


def install_handlers(app: fastapi.FastAPI) -> None:
    """Register all exception handlers on the app."""
    app.add_exception_handler(TravelMapError, travel_map_error_handler)
    app.add_exception_handler(starlette.exceptions.HTTPException, http_error_handler)
    app.add_exception_handler(
        fastapi.exceptions.RequestValidationError, validation_error_handler
    )
    app.add_exception_handler(LoginRequiredError, login_required_handler)
    app.add_exception_handler(sqlalchemy.exc.SQLAlchemyError, database_error_handler)
