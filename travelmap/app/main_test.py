"""Unit tests for the travel map FastAPI application."""

import unittest
from unittest.mock import patch

import sqlalchemy
import sqlalchemy.exc
import sqlalchemy.pool
import sqlmodel
from fastapi.testclient import TestClient

from travelmap.app import database, main


def make_in_memory_engine() -> sqlalchemy.Engine:
    """Create an in-memory SQLite engine without tables."""
    return sqlmodel.create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=sqlalchemy.pool.StaticPool,
    )


class TestTravelMapApp(unittest.TestCase):
    """Tests for the assembled application."""

    def setUp(self) -> None:
        self.client = TestClient(main.app)

    def test_health_endpoint(self) -> None:
        """Health check returns 200 with healthy status."""
        response = self.client.get('/health')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {'status': 'healthy'})

    def test_health_head(self) -> None:
        """Health check also answers HEAD."""
        self.assertEqual(self.client.head('/health').status_code, 200)

    def test_static_files(self) -> None:
        """The map script is served from /static."""
        response = self.client.get('/static/map.js')
        self.assertEqual(response.status_code, 200)
        self.assertIn('/api/locations', response.text)

    def test_map_script_uses_thumbnails(self) -> None:
        """Markers and popups load the small thumbnail image."""
        response = self.client.get('/static/map.js')
        self.assertIn("'/thumbnail'", response.text)
        self.assertIn('has_thumbnail', response.text)

    def test_unknown_route_json(self) -> None:
        """Unknown routes use the JSON error shape."""
        response = self.client.get('/does-not-exist')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {'success': False, 'error': 'Not Found'})

    def test_validation_error_json(self) -> None:
        """Malformed request bodies use the JSON error shape."""
        response = self.client.post('/login', json=['not', 'an', 'object'])
        self.assertEqual(response.status_code, 422)
        body = response.json()
        self.assertFalse(body['success'])
        self.assertTrue(body['error'].startswith('Ungültige Anfrage'))


class TestPrepareDatabase(unittest.TestCase):
    """Tests for prepare_database and the lifespan."""

    def test_migrates_and_backfills(self) -> None:
        """Startup migrates an empty database."""
        engine = make_in_memory_engine()
        with (
            patch.object(database, 'engine', engine),
            patch.object(database, 'ensure_sqlite_directory'),
        ):
            self.assertTrue(main.prepare_database())
            self.assertEqual(database.current_revision(engine), '0001')

    def test_database_unreachable(self) -> None:
        """A failing database puts the app in degraded mode instead of crashing."""
        error = sqlalchemy.exc.OperationalError('connect', {}, Exception('refused'))
        with (
            patch.object(database, 'ensure_sqlite_directory'),
            patch.object(database, 'run_migrations', side_effect=error),
            self.assertLogs('travelmap.app.main', level='ERROR'),
        ):
            self.assertFalse(main.prepare_database())

    def test_lifespan_sets_state(self) -> None:
        """The lifespan records whether the database is available."""
        with patch.object(main, 'prepare_database', return_value=False):
            with TestClient(main.app):
                self.assertFalse(main.app.state.database_available)
        with patch.object(main, 'prepare_database', return_value=True):
            with TestClient(main.app):
                self.assertTrue(main.app.state.database_available)


if __name__ == '__main__':
    unittest.main()
