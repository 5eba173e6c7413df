"""Unit tests for auth/dependencies.py."""

import unittest

import fastapi
from fastapi.testclient import TestClient

from travelmap.app import errors
from travelmap.app.auth import dependencies, sessions


def make_app(store: sessions.SessionStore) -> fastapi.FastAPI:
    """Small app exposing one API route and one page route behind the gates."""
    app = fastapi.FastAPI()
    errors.install_handlers(app)
    app.dependency_overrides[dependencies.get_session_store] = lambda: store

    @app.get('/api/ping')
    def ping(
        session_id: str = fastapi.Depends(dependencies.require_api_session),
    ) -> dict[str, str]:
        return {'session': session_id}

    @app.get('/page')
    def page(
        session_id: str = fastapi.Depends(dependencies.require_page_session),
    ) -> dict[str, str]:
        return {'session': session_id}

    return app


class TestSessionGates(unittest.TestCase):
    """Tests for require_api_session and require_page_session."""

    def setUp(self) -> None:
        self.store = sessions.InMemorySessionStore()
        self.session_id = self.store.create()
        self.client = TestClient(make_app(self.store))

    def test_api_rejects_missing_session(self) -> None:
        """API routes answer 401 with the JSON error shape."""
        response = self.client.get('/api/ping')
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {'success': False, 'error': 'Nicht angemeldet'})

    def test_api_rejects_unauthenticated_session(self) -> None:
        """An issued session must be authenticated first."""
        response = self.client.get('/api/ping', params={'sessionId': self.session_id})
        self.assertEqual(response.status_code, 401)

    def test_session_sources(self) -> None:
        """The session id is read from query, header or cookie."""
        self.store.authenticate(self.session_id)
        responses = [
            self.client.get('/api/ping', params={'sessionId': self.session_id}),
            self.client.get(
                '/api/ping', headers={dependencies.SESSION_HEADER: self.session_id}
            ),
            TestClient(
                self.client.app, cookies={dependencies.SESSION_COOKIE: self.session_id}
            ).get('/api/ping'),
        ]
        for response in responses:
            self.assertEqual(response.json(), {'session': self.session_id})

    def test_page_redirects_to_login(self) -> None:
        """Page routes send unauthenticated visitors back to the login page."""
        response = self.client.get('/page', follow_redirects=False)
        self.assertEqual(response.status_code, 303)
        self.assertEqual(response.headers['location'], '/')

    def test_page_allows_authenticated(self) -> None:
        """Authenticated sessions reach the page."""
        self.store.authenticate(self.session_id)
        response = self.client.get('/page', params={'sessionId': self.session_id})
        self.assertEqual(response.status_code, 200)

    def test_destroyed_session_rejected(self) -> None:
        """A logged-out session no longer passes the gate."""
        self.store.authenticate(self.session_id)
        self.store.destroy(self.session_id)
        response = self.client.get('/api/ping', params={'sessionId': self.session_id})
        self.assertEqual(response.status_code, 401)


class TestGetSessionStore(unittest.TestCase):
    """Tests for get_session_store."""

    def test_process_wide_store(self) -> None:
        """The same store is returned on every call."""
        self.assertIs(dependencies.get_session_store(), dependencies.get_session_store())


if __name__ == '__main__':
    unittest.main()
