"""Travel map settings read from environment variables."""

import os

from common.settings import env_bool, env_int, env_str

HOST: str = env_str('HOST', '0.0.0.0')
PORT: int = env_int('PORT', 10000)
LOG_LEVEL: str = env_str('LOG_LEVEL', 'INFO').upper()

ACCESS_CODE: str = env_str('ACCESS_CODE', 'suuuu')
SESSION_TTL_SECONDS: int = env_int('SESSION_TTL_SECONDS', 24 * 60 * 60)

DATA_DIR: str = env_str('DATA_DIR', 'data')
UPLOADS_DIR: str = env_str('UPLOADS_DIR', os.path.join(DATA_DIR, 'uploads'))


def normalize_database_url(url: str) -> str:
    """Map Heroku/Render style postgres:// URLs onto the psycopg2 dialect."""
    for prefix in ('postgres://', 'postgresql://'):
        if url.startswith(prefix):
            return 'postgresql+psycopg2://' + url[len(prefix) :]
    return url


DATABASE_URL: str = normalize_database_url(
    env_str('DATABASE_URL', f'sqlite:///{DATA_DIR}/travelmap.db')
)
DATABASE_SSLMODE: str = env_str('DATABASE_SSLMODE', 'require')
DATABASE_ECHO: bool = env_bool('DATABASE_ECHO', False)

IMAGE_STORAGE: str = env_str('IMAGE_STORAGE', 'database')
if IMAGE_STORAGE not in ('database', 'filesystem'):
    raise ValueError(
        f"IMAGE_STORAGE must be 'database' or 'filesystem', got {IMAGE_STORAGE!r}"
    )

MAX_UPLOAD_BYTES: int = env_int('MAX_UPLOAD_BYTES', 20 * 1024 * 1024)
ACCEPT_HEIC: bool = env_bool('ACCEPT_HEIC', True)
REQUIRE_IMAGE: bool = env_bool('REQUIRE_IMAGE', True)

# Image pipeline constants
JPEG_QUALITY = 80
THUMBNAIL_QUALITY = 70
THUMBNAIL_SIZE = 60
PNG_CONVERT_THRESHOLD_BYTES = 1024 * 1024
