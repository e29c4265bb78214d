"""Post cover uploads to object storage."""

import logging
import re
import secrets
import time

from blogsite.config import get_settings
from blogsite.errors import BackendError, ValidationError, translate_error
from blogsite.services.supabase_storage import SupabaseStorage

logger = logging.getLogger(__name__)

_SAFE_EXTENSION_RE = re.compile(r"^[a-z0-9]{1,10}$")

ALLOWED_CONTENT_TYPES = {
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/avif",
    "image/svg+xml",
}


def cover_object_name(filename: str) -> str:
    """Build a unique ``<epoch-ms>-<random>.<ext>`` object name.

    Raises ValueError when the filename carries no safe extension.
    """
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if not _SAFE_EXTENSION_RE.match(ext):
        raise ValueError(f"Invalid file extension in {filename!r}")
    return f"{int(time.time() * 1000)}-{secrets.token_hex(6)}.{ext}"


async def upload_cover(
    storage: SupabaseStorage,
    filename: str,
    data: bytes,
    content_type: str,
) -> str:
    """Upload a cover image and return a long-lived signed URL for it."""
    settings = get_settings()
    if not data:
        raise ValidationError("Empty upload", fields=["file"])
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise ValidationError(f"Unsupported image type {content_type!r}", fields=["file"])
    try:
        path = cover_object_name(filename)
    except ValueError as e:
        raise ValidationError(str(e), fields=["file"]) from e

    uploaded = await storage.upload(
        settings.cover_bucket, path, data, content_type=content_type
    )
    if uploaded.error:
        raise translate_error(uploaded.error)

    signed = await storage.create_signed_url(
        settings.cover_bucket, path, settings.cover_signed_url_ttl
    )
    if signed.error:
        raise translate_error(signed.error)
    if not signed.data:
        raise BackendError(f"No signed URL returned for {path}")

    logger.info("Uploaded cover %s (%d bytes)", path, len(data))
    return signed.data
