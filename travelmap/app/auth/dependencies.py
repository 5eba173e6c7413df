"""FastAPI dependencies guarding pages and API routes behind a session."""

import fastapi

from travelmap.app import errors, settings

from . import sessions

SESSION_PARAM = 'sessionId'
SESSION_HEADER = 'X-Session-Id'
SESSION_COOKIE = 'sessionId'

_store = sessions.InMemorySessionStore(ttl_seconds=settings.SESSION_TTL_SECONDS)


def get_session_store() -> sessions.SessionStore:
    """Get the process-wide session store."""
    return _store


def session_id_from_request(request: fastapi.Request) -> str | None:
    """Read the session id from the query string, a header, or the cookie."""
    return (
        request.query_params.get(SESSION_PARAM)
        or request.headers.get(SESSION_HEADER)
        or request.cookies.get(SESSION_COOKIE)
        or None
    )


def require_api_session(
    request: fastapi.Request,
    store: sessions.SessionStore = fastapi.Depends(get_session_store),
) -> str:
    """Reject API requests without an authenticated session with 401."""
    session_id = session_id_from_request(request)
    if not store.is_valid(session_id):
        raise fastapi.HTTPException(status_code=401, detail='Nicht angemeldet')
    assert session_id is not None
    return session_id


def require_page_session(
    request: fastapi.Request,
    store: sessions.SessionStore = fastapi.Depends(get_session_store),
) -> str:
    """Send page requests without an authenticated session back to the login page."""
    session_id = session_id_from_request(request)
    if not store.is_valid(session_id):
        raise errors.LoginRequiredError()
    assert session_id is not None
    return session_id
