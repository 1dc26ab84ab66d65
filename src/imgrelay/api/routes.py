"""HTTP routes for the image cache and relay."""

from __future__ import annotations

import logging
import time
from typing import Any
from urllib.parse import quote

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from imgrelay.api.services import Services
from imgrelay.cache.keys import derive_key
from imgrelay.cache.stats import format_timestamp
from imgrelay.errors.exceptions import ImgRelayError, InvalidInput, RelayFetchError
from imgrelay.errors.result import ErrorResult
from imgrelay.types import ImageKind

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

_CACHE_CONTROL_RELAY = "public, max-age=86400"
_CACHE_CONTROL_FALLBACK = "public, max-age=3600"
_CACHE_CONTROL_ERROR = "no-cache, no-store, must-revalidate"

# encodeURIComponent leaves these unescaped
_URI_COMPONENT_SAFE = "!~*'()"


def _services(request: Request) -> Services:
    return request.app.state.services


def _now_ms() -> int:
    return int(time.time() * 1000)


def _error_response(
    kind: str, message: str, headers: dict[str, str] | None = None
) -> JSONResponse:
    result = ErrorResult(kind=kind, error=message)
    return JSONResponse(result.model_dump(), status_code=result.status_code, headers=headers)


def _parse_kind(value: str | None) -> ImageKind:
    try:
        return ImageKind(value or ImageKind.POSTER)
    except ValueError:
        return ImageKind.POSTER


def build_refresh_url(image_id: str, url: str, bust: int | None = None) -> str:
    """Cache-busted cache-image URL the client re-requests after a refresh."""
    bust = bust if bust is not None else _now_ms()
    return (
        f"/api/cache-image?id={quote(image_id, safe=_URI_COMPONENT_SAFE)}"
        f"&url={quote(url, safe=_URI_COMPONENT_SAFE)}&bust={bust}"
    )


# ── Stats ──


@router.get("/cache-stats")
async def get_cache_stats(request: Request) -> Any:
    try:
        stats = await _services(request).image_cache.stats()
    except Exception as e:
        logger.exception("Error getting cache stats: %s", e)
        return _error_response(getattr(e, "kind", "internal"), "Failed to get cache stats")
    return stats.to_payload()


@router.delete("/cache-stats")
async def clear_cache(request: Request) -> Any:
    try:
        await _services(request).image_cache.clear()
    except Exception as e:
        logger.exception("Error clearing cache: %s", e)
        return _error_response(getattr(e, "kind", "internal"), "Failed to clear cache")
    return {"message": "Cache cleared successfully"}


@router.get("/telegram-cache-stats")
async def get_telegram_cache_stats(request: Request) -> Any:
    services = _services(request)
    try:
        stats = await services.telegram_cache.stats()
    except Exception as e:
        logger.exception("Error getting Telegram cache stats: %s", e)
        return _error_response(getattr(e, "kind", "internal"), "Failed to get cache stats")
    return {**stats.to_payload(), "botConfigured": services.bot_configured}


@router.delete("/telegram-cache-stats")
async def clear_telegram_cache(request: Request) -> Any:
    try:
        await _services(request).telegram_cache.clear()
    except Exception as e:
        logger.exception("Error clearing Telegram cache: %s", e)
        return _error_response(getattr(e, "kind", "internal"), "Failed to clear cache")
    return {"message": "Telegram cache cleared successfully"}


# ── Invalidation ──


@router.post("/refresh-cache")
async def refresh_cache(request: Request) -> Any:
    try:
        payload = await request.json()
    except ValueError as e:
        raise InvalidInput("Missing id or url") from e

    if not isinstance(payload, dict):
        raise InvalidInput("Missing id or url")
    image_id = payload.get("id")
    url = payload.get("url")
    if image_id in (None, "") or not isinstance(url, str) or not url:
        raise InvalidInput("Missing id or url")
    if isinstance(image_id, bool) or not isinstance(image_id, (str, int)):
        raise InvalidInput("Malformed id", field="id")
    image_id = str(image_id)
    # Malformed ids and urls are rejected before touching the cache
    derive_key(image_id, url)

    try:
        await _services(request).telegram_cache.delete(image_id, url)
    except Exception as e:
        logger.exception("Refresh cache error: %s", e)
        return _error_response(getattr(e, "kind", "internal"), str(e) or "Unknown error")

    return {
        "success": True,
        "message": f"Cache refreshed for {image_id}",
        "refreshUrl": build_refresh_url(image_id, url),
        "timestamp": format_timestamp(),
    }


# ── Image delivery ──


@router.get("/proxy-image")
async def proxy_image(request: Request, url: str | None = None) -> Response:
    if not url:
        raise InvalidInput("Missing url", field="url")

    image = await _services(request).fetcher.fetch(url)
    return Response(
        content=image.data,
        media_type=image.content_type or "image/jpeg",
        headers={"Access-Control-Allow-Origin": "*"},
    )


@router.get("/cache-image")
async def cache_image(
    request: Request,
    id: str | None = None,
    url: str | None = None,
    type: str | None = None,
    bust: str | None = None,
) -> Response:
    if not url or not id:
        raise InvalidInput("Missing url or id")
    derive_key(id, url)

    services = _services(request)
    kind = _parse_kind(type)
    logger.info("Cache image request: id=%s kind=%s bust=%s", id, kind.value, bust)

    try:
        entry = await services.telegram_cache.lookup(id, url)
        source = "telegram-cache"
        if entry is None:
            entry = await services.telegram_cache.get(id, url, kind)
            source = "telegram-new"
        if entry.relay is None:
            raise RelayFetchError("Entry has no relay reference")
        image = await services.relay.download(entry.relay)
        return Response(
            content=image.data,
            media_type=image.content_type,
            headers={
                "Cache-Control": _CACHE_CONTROL_RELAY,
                "X-Source": source,
                "ETag": f'"{id}-{_now_ms()}"',
            },
        )
    except RelayFetchError as e:
        logger.warning("Relay fetch failed for %s, dropping entry: %s", id, e)
        await services.telegram_cache.delete(id, url)
    except ImgRelayError as e:
        logger.warning("Relay cache unavailable for %s (%s): %s", id, e.kind, e)

    # Fallback: serve from the inline cache (populates from origin on a miss)
    try:
        entry = await services.image_cache.get(id, url, kind)
    except ImgRelayError as e:
        logger.error("Fallback failed for %s: %s", id, e)
        return _error_response(
            e.kind, "Error fetching image", headers={"Cache-Control": _CACHE_CONTROL_ERROR}
        )

    return Response(
        content=entry.data or b"",
        media_type=entry.content_type,
        headers={
            "Cache-Control": _CACHE_CONTROL_FALLBACK,
            "X-Source": "fallback",
            "ETag": f'"{id}-fallback-{_now_ms()}"',
        },
    )
