"""Unit tests for common/app.py."""

import contextlib
import logging
import pathlib
import tempfile
import unittest
from collections.abc import AsyncGenerator

import fastapi
import fastapi.testclient

import common.app

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


class TestHealthCheckFilter(unittest.TestCase):
    """Tests for the HealthCheckFilter logging filter."""

    def test_health_path_filtered(self) -> None:
        """Health check requests are suppressed by the filter."""
        record = logging.LogRecord(
            name='uvicorn.access',
            level=logging.INFO,
            pathname='',
            lineno=0,
            msg='%s - "%s %s HTTP/%s" %d',
            args=('127.0.0.1', 'GET', '/health', '1.1', 200),
            exc_info=None,
        )
        f = common.app.HealthCheckFilter()
        self.assertFalse(f.filter(record))

    def test_other_path_not_filtered(self) -> None:
        """Non-health-check requests are not suppressed by the filter."""
        record = logging.LogRecord(
            name='uvicorn.access',
            level=logging.INFO,
            pathname='',
            lineno=0,
            msg='%s - "%s %s HTTP/%s" %d',
            args=('127.0.0.1', 'GET', '/api/locations', '1.1', 200),
            exc_info=None,
        )
        f = common.app.HealthCheckFilter()
        self.assertTrue(f.filter(record))


class TestConfigureLogging(unittest.TestCase):
    """Tests for configure_logging()."""

    def test_adds_filter_to_uvicorn_access_logger(self) -> None:
        """configure_logging() installs HealthCheckFilter on uvicorn.access."""
        common.app.configure_logging()
        logger = logging.getLogger('uvicorn.access')
        self.assertTrue(
            any(isinstance(f, common.app.HealthCheckFilter) for f in logger.filters)
        )

    def test_filter_installed_once(self) -> None:
        """Repeated calls do not stack up duplicate filters."""
        common.app.configure_logging()
        common.app.configure_logging()
        logger = logging.getLogger('uvicorn.access')
        count = sum(
            isinstance(f, common.app.HealthCheckFilter) for f in logger.filters
        )
        self.assertEqual(count, 1)

    def test_sets_root_level(self) -> None:
        """configure_logging() applies the requested root log level."""
        root = logging.getLogger()
        previous = root.level
        try:
            common.app.configure_logging('WARNING')
            self.assertEqual(root.level, logging.WARNING)
        finally:
            root.setLevel(previous)


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


class TestMakeTemplates(unittest.TestCase):
    """Tests for the make_templates factory."""

    def setUp(self) -> None:
        """Create a temporary directory to use as a templates directory."""
        self.tmpdir = tempfile.mkdtemp()

    def test_globals_set(self) -> None:
        """make_templates installs keyword arguments as template globals."""
        templates = common.app.make_templates(self.tmpdir, app_title='Reisekarte')
        self.assertEqual(templates.env.globals['app_title'], 'Reisekarte')  # type: ignore[reportUnknownMemberType]

    def test_accepts_pathlib_path(self) -> None:
        """make_templates accepts a pathlib.Path directory."""
        templates = common.app.make_templates(pathlib.Path(self.tmpdir), x=1)
        self.assertIn('x', templates.env.globals)  # type: ignore[reportUnknownMemberType,reportUnknownArgumentType]


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


class TestCreateApp(unittest.TestCase):
    """Tests for the create_app factory."""

    def test_returns_fastapi_instance(self) -> None:
        """create_app returns a FastAPI instance."""
        app = common.app.create_app('TestApp')
        self.assertIsInstance(app, fastapi.FastAPI)

    def test_title_is_set(self) -> None:
        """create_app sets the app title."""
        app = common.app.create_app('MyTitle')
        self.assertEqual(app.title, 'MyTitle')

    def test_health_endpoint_registered(self) -> None:
        """create_app registers the /health endpoint."""
        app = common.app.create_app('TestApp')
        client = fastapi.testclient.TestClient(app)
        response = client.get('/health')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {'status': 'healthy'})

    def test_health_head_method(self) -> None:
        """create_app health endpoint accepts HEAD requests."""
        app = common.app.create_app('TestApp')
        client = fastapi.testclient.TestClient(app)
        response = client.head('/health')
        self.assertEqual(response.status_code, 200)

    def test_kwargs_forwarded_to_fastapi(self) -> None:
        """Extra kwargs (e.g. lifespan) are forwarded to FastAPI."""

        @contextlib.asynccontextmanager
        async def my_lifespan(app: fastapi.FastAPI) -> AsyncGenerator[None, None]:
            yield

        app = common.app.create_app('TestApp', lifespan=my_lifespan)
        self.assertIsInstance(app, fastapi.FastAPI)


if __name__ == '__main__':
    unittest.main()
