"""Login, logout and map page routes."""

import logging
import secrets
import typing
import urllib.parse

import fastapi
import fastapi.responses
import pydantic

from travelmap.app import settings
from travelmap.app.templates import templates

from . import dependencies, sessions

logger = logging.getLogger(__name__)

router = fastapi.APIRouter()

INVALID_SESSION_MESSAGE = 'Ungültige Session. Bitte lade die Seite neu.'
WRONG_CODE_MESSAGE = 'Falscher Zugriffscode. Bitte versuche es erneut.'


class LoginRequest(pydantic.BaseModel):
    """JSON body posted by the login page."""

    access_code: str = pydantic.Field(default='', alias='accessCode')
    session_id: str | None = pydantic.Field(default=None, alias='sessionId')


class LoginResult(pydantic.BaseModel):
    """Outcome of a login attempt."""

    success: bool
    redirect: str | None = None
    message: str | None = None


def map_url(session_id: str) -> str:
    """URL of the map page for a session."""
    return '/map?' + urllib.parse.urlencode({'sessionId': session_id})


def check_login(
    store: sessions.SessionStore, session_id: str | None, access_code: str
) -> LoginResult:
    """Authenticate a session against the shared access code."""
    if not session_id or store.get(session_id) is None:
        return LoginResult(success=False, message=INVALID_SESSION_MESSAGE)

    if not secrets.compare_digest(
        access_code.encode('utf-8'), settings.ACCESS_CODE.encode('utf-8')
    ):
        logger.info('Wrong access code for session %s', session_id[:8])
        return LoginResult(success=False, message=WRONG_CODE_MESSAGE)

    store.authenticate(session_id)
    return LoginResult(success=True, redirect=map_url(session_id))


def set_session_cookie(response: fastapi.responses.Response, session_id: str) -> None:
    """Attach the session cookie to a response."""
    response.set_cookie(
        dependencies.SESSION_COOKIE,
        session_id,
        max_age=settings.SESSION_TTL_SECONDS or None,
        httponly=True,
        samesite='lax',
    )


@router.get('/', response_class=fastapi.responses.HTMLResponse)
async def login_page(
    request: fastapi.Request,
    error: str | None = None,
    store: sessions.SessionStore = fastapi.Depends(dependencies.get_session_store),
) -> fastapi.responses.Response:
    """Serve the login page, issuing a session for the browser."""
    session_id = request.cookies.get(dependencies.SESSION_COOKIE)
    if store.is_valid(session_id):
        assert session_id is not None
        return fastapi.responses.RedirectResponse(map_url(session_id), status_code=303)

    if store.get(session_id) is None:
        session_id = store.create()
    assert session_id is not None

    response = templates.TemplateResponse(
        request=request,
        name='login.html.jinja2',
        context={'session_id': session_id, 'error': error},
    )
    set_session_cookie(response, session_id)
    return response


@router.post('/login', response_model=LoginResult, response_model_exclude_none=True)
async def login(
    request: fastapi.Request,
    body: LoginRequest,
    store: sessions.SessionStore = fastapi.Depends(dependencies.get_session_store),
) -> fastapi.responses.Response:
    """Check the access code posted as JSON."""
    session_id = body.session_id or request.cookies.get(dependencies.SESSION_COOKIE)
    result = check_login(store, session_id, body.access_code)
    response = fastapi.responses.JSONResponse(result.model_dump(exclude_none=True))
    if result.success:
        assert session_id is not None
        set_session_cookie(response, session_id)
    return response


@router.get('/login-check')
async def login_check(
    request: fastapi.Request,
    access_code: typing.Annotated[str, fastapi.Query(alias='accessCode')] = '',
    session_id: typing.Annotated[str | None, fastapi.Query(alias='sessionId')] = None,
    store: sessions.SessionStore = fastapi.Depends(dependencies.get_session_store),
) -> fastapi.responses.RedirectResponse:
    """Check the access code submitted by a plain form and redirect."""
    session_id = session_id or request.cookies.get(dependencies.SESSION_COOKIE)
    result = check_login(store, session_id, access_code)
    if not result.success:
        assert result.message is not None
        target = '/?' + urllib.parse.urlencode({'error': result.message})
        return fastapi.responses.RedirectResponse(target, status_code=303)

    assert result.redirect is not None and session_id is not None
    response = fastapi.responses.RedirectResponse(result.redirect, status_code=303)
    set_session_cookie(response, session_id)
    return response


@router.get('/logout')
async def logout(
    request: fastapi.Request,
    store: sessions.SessionStore = fastapi.Depends(dependencies.get_session_store),
) -> fastapi.responses.RedirectResponse:
    """Destroy the session and return to the login page."""
    store.destroy(dependencies.session_id_from_request(request))
    response = fastapi.responses.RedirectResponse('/', status_code=303)
    response.delete_cookie(dependencies.SESSION_COOKIE)
    return response


@router.get('/map', response_class=fastapi.responses.HTMLResponse)
async def map_page(
    request: fastapi.Request,
    session_id: str = fastapi.Depends(dependencies.require_page_session),
) -> fastapi.responses.Response:
    """Serve the map page."""
    return templates.TemplateResponse(
        request=request,
        name='map.html.jinja2',
        context={'session_id': session_id},
    )
