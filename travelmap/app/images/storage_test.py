"""Unit tests for the image storage backends."""

import os
import tempfile
import unittest
from unittest.mock import patch

from travelmap.app import settings
from travelmap.app.images import processing, storage
from travelmap.app.locations import models


def make_location() -> models.Location:
    return models.Location(id=1, title='Rom', latitude=41.9, longitude=12.5)


class TestDatabaseImageStore(unittest.TestCase):
    """Tests for DatabaseImageStore."""

    def setUp(self) -> None:
        self.store = storage.DatabaseImageStore()

    def test_save_and_load(self) -> None:
        """Bytes are kept on the row together with their type."""
        location = make_location()
        self.store.save(location, processing.ProcessedImage(b'abc', 'image/png'))
        self.assertEqual(location.image_data, b'abc')
        self.assertEqual(location.image_type, 'image/png')
        self.assertEqual(self.store.load(location), b'abc')
        self.assertEqual(self.store.size(location), 3)

    def test_delete_clears_columns(self) -> None:
        """Deleting clears the image columns."""
        location = make_location()
        self.store.save(location, processing.ProcessedImage(b'abc', 'image/png'))
        self.store.delete(location)
        self.assertIsNone(location.image_data)
        self.assertIsNone(location.image_type)
        self.assertIsNone(self.store.load(location))
        self.assertEqual(self.store.size(location), 0)


class TestFilesystemImageStore(unittest.TestCase):
    """Tests for FilesystemImageStore."""

    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.upload_dir = os.path.join(self.tmpdir.name, 'uploads')
        self.store = storage.FilesystemImageStore(self.upload_dir)

    def tearDown(self) -> None:
        self.tmpdir.cleanup()

    def test_creates_upload_dir(self) -> None:
        """The uploads directory is created on construction."""
        self.assertTrue(os.path.isdir(self.upload_dir))

    def test_save_writes_unique_file(self) -> None:
        """Each save writes a new uuid-named file and records its name."""
        location = make_location()
        self.store.save(location, processing.ProcessedImage(b'one', 'image/jpeg'))
        first = location.image_path
        self.store.save(location, processing.ProcessedImage(b'two', 'image/jpeg'))

        assert first is not None and location.image_path is not None
        self.assertNotEqual(first, location.image_path)
        self.assertTrue(location.image_path.endswith('.jpg'))
        self.assertEqual(os.path.basename(location.image_path), location.image_path)
        self.assertEqual(self.store.load(location), b'two')
        self.assertEqual(self.store.size(location), 3)
        # The previous file stays until the caller deletes it
        self.assertTrue(os.path.exists(self.store.path_for(first)))

    def test_delete_removes_file(self) -> None:
        """Deleting removes the file and clears the columns."""
        location = make_location()
        self.store.save(location, processing.ProcessedImage(b'abc', 'image/png'))
        path = self.store.path_for(location.image_path or '')
        self.store.delete(location)
        self.assertFalse(os.path.exists(path))
        self.assertIsNone(location.image_path)
        self.assertIsNone(location.image_type)

    def test_delete_missing_file_is_logged(self) -> None:
        """A file that is already gone only produces a warning."""
        location = make_location()
        location.image_path = 'gone.jpg'
        with self.assertLogs('travelmap.app.images.storage', level='WARNING'):
            self.store.delete(location)
        self.assertIsNone(location.image_path)

    def test_load_missing_file(self) -> None:
        """Loading a missing file returns None."""
        location = make_location()
        location.image_path = 'gone.jpg'
        with self.assertLogs('travelmap.app.images.storage', level='WARNING'):
            self.assertIsNone(self.store.load(location))
        self.assertEqual(self.store.size(location), 0)

    def test_path_for_strips_directories(self) -> None:
        """Stored names cannot escape the uploads directory."""
        self.assertEqual(
            self.store.path_for('../../etc/passwd'),
            os.path.join(self.upload_dir, 'passwd'),
        )
        self.assertEqual(
            self.store.path_for('/uploads/legacy.jpg'),
            os.path.join(self.upload_dir, 'legacy.jpg'),
        )


class TestGetImageStore(unittest.TestCase):
    """Tests for get_image_store."""

    def test_database_default(self) -> None:
        """The database backend is used unless configured otherwise."""
        with patch.object(settings, 'IMAGE_STORAGE', 'database'):
            self.assertIsInstance(storage.get_image_store(), storage.DatabaseImageStore)

    def test_filesystem(self) -> None:
        """IMAGE_STORAGE=filesystem selects the uploads directory backend."""
        with tempfile.TemporaryDirectory() as tmpdir:
            with (
                patch.object(settings, 'IMAGE_STORAGE', 'filesystem'),
                patch.object(settings, 'UPLOADS_DIR', tmpdir),
            ):
                store = storage.get_image_store()
        assert isinstance(store, storage.FilesystemImageStore)
        self.assertEqual(store.upload_dir, tmpdir)


if __name__ == '__main__':
    unittest.main()
