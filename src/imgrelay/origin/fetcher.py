"""Origin fetcher: one GET against the upstream image host."""

from __future__ import annotations

import logging

import httpx

from imgrelay.errors.exceptions import InvalidInput, OriginUnavailable
from imgrelay.types import FetchedImage
from imgrelay.utils.image import resolve_content_type

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 30.0
_DEFAULT_MAX_BYTES = 10 * 1024 * 1024


class OriginFetcher:
    """Fetches original image bytes. Single attempt, no retry."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = _DEFAULT_TIMEOUT,
        max_bytes: int = _DEFAULT_MAX_BYTES,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self._timeout = timeout
        self._max_bytes = max_bytes

    async def fetch(self, url: str) -> FetchedImage:
        try:
            response = await self._client.get(url, timeout=self._timeout)
        except httpx.InvalidURL as e:
            raise InvalidInput(f"Malformed url: {e}", field="url") from e
        except httpx.HTTPError as e:
            logger.warning("Origin fetch failed for %s: %s", url, e)
            raise OriginUnavailable(f"Origin fetch failed: {e}", url=url, original=e) from e

        if not response.is_success:
            logger.warning("Origin returned %d for %s", response.status_code, url)
            raise OriginUnavailable(
                f"Origin returned HTTP {response.status_code}",
                url=url,
                http_status=response.status_code,
            )

        data = response.content
        if not data:
            raise OriginUnavailable("Origin returned an empty body", url=url)
        if len(data) > self._max_bytes:
            raise OriginUnavailable(
                f"Origin image is {len(data)} bytes (limit {self._max_bytes})", url=url
            )

        content_type = resolve_content_type(response.headers.get("content-type"), data)
        logger.debug("Fetched %d bytes (%s) from %s", len(data), content_type, url)
        return FetchedImage(data=data, content_type=content_type)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
