"""Storage backends for full-size location images.

Exactly one backend is active per deployment (``IMAGE_STORAGE``):

* ``database`` keeps the bytes in ``locations.image_data``.
* ``filesystem`` writes a uuid-named file into the uploads directory and keeps
  the file name in ``locations.image_path``.

Thumbnails are always kept in ``locations.thumbnail_data``.
"""

import logging
import os
import uuid
from typing import Protocol

from travelmap.app import settings
from travelmap.app.locations import models

from . import processing

logger = logging.getLogger(__name__)

_EXTENSIONS = {'image/jpeg': '.jpg', 'image/png': '.png'}


class ImageStore(Protocol):
    """Interface shared by the storage backends."""

    name: str

    def save(self, location: models.Location, image: processing.ProcessedImage) -> None:
        """Attach image bytes to a location."""
        ...

    def load(self, location: models.Location) -> bytes | None:
        """Return the stored image bytes, or None if there are none."""
        ...

    def delete(self, location: models.Location) -> None:
        """Remove the stored image of a location."""
        ...

    def size(self, location: models.Location) -> int:
        """Return the number of bytes used by the stored image."""
        ...


class DatabaseImageStore:
    """Keep image bytes inline in the locations table."""

    name = 'database'

    def save(self, location: models.Location, image: processing.ProcessedImage) -> None:
        location.image_data = image.data
        location.image_type = image.mime_type

    def load(self, location: models.Location) -> bytes | None:
        return location.image_data

    def delete(self, location: models.Location) -> None:
        location.image_data = None
        location.image_type = None

    def size(self, location: models.Location) -> int:
        return len(location.image_data) if location.image_data else 0


class FilesystemImageStore:
    """Keep image files on disk and their names in the locations table."""

    name = 'filesystem'

    def __init__(self, upload_dir: str | None = None):
        """Initialize the store with upload directory."""
        if upload_dir is None:
            upload_dir = settings.UPLOADS_DIR
        self.upload_dir = upload_dir
        os.makedirs(upload_dir, exist_ok=True)

    def path_for(self, filename: str) -> str:
        """Path of a stored file inside the uploads directory."""
        # Only the base name is ever stored, never a path
        return os.path.join(self.upload_dir, os.path.basename(filename))

    def save(self, location: models.Location, image: processing.ProcessedImage) -> None:
        unique_filename = f'{uuid.uuid4()}{_EXTENSIONS.get(image.mime_type, "")}'
        with open(self.path_for(unique_filename), 'wb') as f:
            f.write(image.data)
        location.image_path = unique_filename
        location.image_type = image.mime_type

    def load(self, location: models.Location) -> bytes | None:
        if not location.image_path:
            return None
        try:
            with open(self.path_for(location.image_path), 'rb') as f:
                return f.read()
        except FileNotFoundError:
            logger.warning(
                'Image file %s for location %s is missing',
                location.image_path,
                location.id,
            )
            return None

    def delete(self, location: models.Location) -> None:
        if location.image_path:
            self._unlink(location.image_path)
        location.image_path = None
        location.image_type = None

    def size(self, location: models.Location) -> int:
        if not location.image_path:
            return 0
        try:
            return os.path.getsize(self.path_for(location.image_path))
        except OSError:
            return 0

    def _unlink(self, filename: str) -> None:
        """Best-effort removal of a stored file."""
        try:
            os.remove(self.path_for(filename))
            logger.info('Deleted image file %s', filename)
        except FileNotFoundError:
            logger.warning('Image file %s already gone', filename)
        except OSError:
            logger.exception('Could not delete image file %s', filename)


def get_image_store() -> ImageStore:
    """Get the image store selected by IMAGE_STORAGE."""
    if settings.IMAGE_STORAGE == 'filesystem':
        return FilesystemImageStore()
    return DatabaseImageStore()
