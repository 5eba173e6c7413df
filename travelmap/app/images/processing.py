"""Upload validation, compression and thumbnails for location images."""

import dataclasses
import io
import logging
import os

import fastapi
import pillow_heif  # pyright: ignore[reportMissingTypeStubs]
from PIL import Image, ImageOps, UnidentifiedImageError

from travelmap.app import errors, settings

logger = logging.getLogger(__name__)

# Register HEIF opener for PIL
pillow_heif.register_heif_opener()  # type: ignore

ALLOWED_MIME_TYPES = frozenset({'image/jpeg', 'image/jpg', 'image/png'})
HEIF_MIME_TYPES = frozenset({'image/heic', 'image/heif'})
HEIF_EXTENSIONS = ('.heic', '.heif')

HEIC_REJECTED_MESSAGE = (
    'HEIC-Dateien werden nicht unterstützt. Bitte konvertiere das Bild zu JPG.'
)
INVALID_TYPE_MESSAGE = 'Ungültiger Dateityp. Nur JPG und PNG erlaubt.'
UNREADABLE_MESSAGE = 'Das Bild konnte nicht gelesen werden.'

READ_CHUNK_BYTES = 1024 * 1024


@dataclasses.dataclass
class ProcessedImage:
    """Image bytes ready for storage together with their MIME type."""

    data: bytes
    mime_type: str


def too_large_message(max_bytes: int) -> str:
    """User-facing message for oversized uploads."""
    return f'Datei ist zu groß. Maximal {max_bytes // (1024 * 1024)} MB erlaubt.'


def is_heif(filename: str | None, content_type: str | None) -> bool:
    """Detect HEIC/HEIF uploads by MIME type or file extension."""
    extension = os.path.splitext(filename or '')[1].lower()
    return (content_type or '').lower() in HEIF_MIME_TYPES or extension in HEIF_EXTENSIONS


def check_upload_type(filename: str | None, content_type: str | None) -> str:
    """Validate the upload type and return the normalised MIME type.

    Raises ImageRejectedError for HEIC when HEIC support is disabled and for
    anything that is not a JPEG or PNG.
    """
    if is_heif(filename, content_type):
        if not settings.ACCEPT_HEIC:
            raise errors.ImageRejectedError(HEIC_REJECTED_MESSAGE)
        return 'image/heic'

    mime_type = (content_type or '').lower()
    if mime_type not in ALLOWED_MIME_TYPES:
        raise errors.ImageRejectedError(INVALID_TYPE_MESSAGE)
    return 'image/jpeg' if mime_type == 'image/jpg' else mime_type


async def read_upload(file: fastapi.UploadFile, max_bytes: int) -> bytes:
    """Read an uploaded file, rejecting it as soon as it exceeds max_bytes."""
    if file.size is not None and file.size > max_bytes:
        raise errors.ImageRejectedError(too_large_message(max_bytes))

    buffer = bytearray()
    while chunk := await file.read(READ_CHUNK_BYTES):
        buffer.extend(chunk)
        if len(buffer) > max_bytes:
            raise errors.ImageRejectedError(too_large_message(max_bytes))
    return bytes(buffer)


def _open(data: bytes) -> Image.Image:
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        ValueError,
    ) as e:
        raise errors.ImageRejectedError(UNREADABLE_MESSAGE) from e
    return img


def _to_jpeg(img: Image.Image, quality: int) -> bytes:
    # JPEG has no alpha channel or palette
    if img.mode not in ('RGB', 'L'):
        img = img.convert('RGB')
    output = io.BytesIO()
    img.save(output, format='JPEG', quality=quality)
    return output.getvalue()


def compress_image(data: bytes, mime_type: str) -> ProcessedImage:
    """Recompress an uploaded image for storage.

    JPEGs are re-encoded at the configured quality, HEIC/HEIF images and PNGs
    above the size threshold are converted to JPEG, small PNGs are kept as is.
    """
    img = _open(data)

    if mime_type in HEIF_MIME_TYPES:
        converted = _to_jpeg(img, settings.JPEG_QUALITY)
        logger.info('Converted HEIF image to JPEG: %d -> %d bytes', len(data), len(converted))
        return ProcessedImage(converted, 'image/jpeg')

    if mime_type == 'image/jpeg':
        compressed = _to_jpeg(img, settings.JPEG_QUALITY)
        logger.info('Recompressed JPEG: %d -> %d bytes', len(data), len(compressed))
        return ProcessedImage(compressed, 'image/jpeg')

    if mime_type == 'image/png' and len(data) > settings.PNG_CONVERT_THRESHOLD_BYTES:
        converted = _to_jpeg(img, settings.JPEG_QUALITY)
        logger.info('Converted large PNG to JPEG: %d -> %d bytes', len(data), len(converted))
        return ProcessedImage(converted, 'image/jpeg')

    return ProcessedImage(data, mime_type)


def make_thumbnail(data: bytes, size: int | None = None) -> bytes:
    """Create a square cover-cropped JPEG thumbnail."""
    size = size or settings.THUMBNAIL_SIZE
    img = _open(data)
    thumbnail = ImageOps.fit(img, (size, size), method=Image.Resampling.LANCZOS)
    return _to_jpeg(thumbnail, settings.THUMBNAIL_QUALITY)


def try_make_thumbnail(data: bytes) -> bytes | None:
    """Create a thumbnail, logging and returning None on failure."""
    try:
        return make_thumbnail(data)
    except Exception:
        logger.exception('Thumbnail generation failed')
        return None


async def process_upload(file: fastapi.UploadFile) -> ProcessedImage:
    """Validate, read and compress an uploaded image."""
    mime_type = check_upload_type(file.filename, file.content_type)
    data = await read_upload(file, settings.MAX_UPLOAD_BYTES)
    if not data:
        raise errors.ImageRejectedError(UNREADABLE_MESSAGE)
    logger.info(
        'Received image %s (%d bytes, %s)', file.filename, len(data), file.content_type
    )
    return compress_image(data, mime_type)
