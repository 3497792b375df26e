"""
storage.py — validation and disk storage of uploaded images.

Content is sniffed with Pillow (never the client-supplied Content-Type) and
written under a uuid4 filename, so the client controls neither name nor path.
"""
import io
import logging
import os
import uuid
from typing import Optional

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

# Pillow format name → stored extension
ALLOWED_FORMATS = {
    "JPEG": ".jpg",
    "PNG": ".png",
    "GIF": ".gif",
}


class UnsupportedImageError(ValueError):
    """Uploaded bytes are not a JPEG, PNG or GIF image."""


def sniff_image_format(contents: bytes) -> str:
    """Return the Pillow format name of contents, or raise UnsupportedImageError."""
    try:
        with Image.open(io.BytesIO(contents)) as img:
            fmt = img.format
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise UnsupportedImageError(f"Unreadable image: {exc}") from exc
    if fmt not in ALLOWED_FORMATS:
        raise UnsupportedImageError(f"Unsupported image format '{fmt}'. Allowed: JPEG, PNG, GIF")
    return fmt


def save_upload(upload_dir: str, contents: bytes, fmt: str) -> str:
    """Write contents as <uuid4><ext> inside upload_dir. Returns the stored filename."""
    os.makedirs(upload_dir, exist_ok=True)
    filename = f"{uuid.uuid4()}{ALLOWED_FORMATS[fmt]}"
    with open(os.path.join(upload_dir, filename), "wb") as fh:
        fh.write(contents)
    logger.info("Upload written filename=%s bytes=%d", filename, len(contents))
    return filename


def remove_upload(upload_dir: str, file_path: str) -> bool:
    """Delete the file behind a /uploads/<name> path. False when it was already gone."""
    name = os.path.basename(file_path)
    full_path = os.path.join(upload_dir, name)
    try:
        os.remove(full_path)
    except FileNotFoundError:
        logger.warning("Upload already missing filename=%s", name)
        return False
    return True


def local_path(upload_dir: str, file_path: Optional[str]) -> Optional[str]:
    """Map a /uploads/<name> reference to the file on disk, or None when absent."""
    if not file_path:
        return None
    full_path = os.path.join(upload_dir, os.path.basename(file_path))
    return full_path if os.path.isfile(full_path) else None
