"""Cache key derivation: (logical id, origin URL) to SHA256 hex."""

from __future__ import annotations

import hashlib
from urllib.parse import urlsplit, urlunsplit

from imgrelay.errors.exceptions import InvalidInput


def derive_key(image_id: str, url: str) -> str:
    """Derive the cache key for an image.

    Deterministic for the same ``(image_id, url)``. Both parts are
    length-prefixed before hashing, so no two distinct pairs share an input.
    The id is used as given; only the URL is normalized.
    """
    if not isinstance(image_id, str) or not image_id.strip():
        raise InvalidInput("Missing id", field="id")
    if not isinstance(url, str) or not url.strip():
        raise InvalidInput("Missing url", field="url")
    normalized = normalize_url(url)
    combined = f"{len(image_id)}:{image_id}{len(normalized)}:{normalized}"
    return hashlib.sha256(combined.encode("utf-8")).hexdigest()


def normalize_url(url: str) -> str:
    """Lowercase scheme and host, drop the fragment. Path and query are kept.

    Raises InvalidInput when the URL cannot be parsed.
    """
    try:
        parts = urlsplit(url.strip())
    except ValueError as e:
        raise InvalidInput(f"Malformed url: {e}", field="url") from e
    return urlunsplit(
        (parts.scheme.lower(), parts.netloc.lower(), parts.path, parts.query, "")
    )
