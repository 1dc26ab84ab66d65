"""Image format helpers."""

from __future__ import annotations

import io
import time

from PIL import Image, UnidentifiedImageError

_DEFAULT_CONTENT_TYPE = "image/jpeg"

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
    "image/bmp": "bmp",
    "image/tiff": "tiff",
}


def sniff_content_type(data: bytes) -> str | None:
    """Identify image bytes with Pillow. Returns a MIME type or None."""
    if not data:
        return None
    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = img.format
    except (UnidentifiedImageError, OSError, ValueError):
        return None
    if not fmt:
        return None
    return Image.MIME.get(fmt.upper())


def resolve_content_type(header: str | None, data: bytes) -> str:
    """Prefer the upstream header; sniff when it is missing or generic."""
    if header:
        mime = header.split(";", 1)[0].strip().lower()
        if mime and mime != "application/octet-stream":
            return mime
    return sniff_content_type(data) or _DEFAULT_CONTENT_TYPE


def image_filename(image_id: str, kind: str, content_type: str) -> str:
    """Relay file name, e.g. ``42_poster_1700000000000.jpg``."""
    ext = _EXTENSIONS.get(content_type, "jpg")
    return f"{image_id}_{kind}_{int(time.time() * 1000)}.{ext}"
