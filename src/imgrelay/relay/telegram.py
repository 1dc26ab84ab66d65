"""Telegram Bot API relay. A chat serves as durable blob storage."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from imgrelay.concurrency.rate_limiter import RateLimiter
from imgrelay.errors.exceptions import RelayFetchError, RelayUploadError
from imgrelay.types import FetchedImage, RelayReference, UploadMethod
from imgrelay.utils.image import resolve_content_type

logger = logging.getLogger(__name__)

_API_BASE = "https://api.telegram.org"
_DEFAULT_TIMEOUT = 60.0

_ERROR_TYPES = {
    400: "bad_request",
    401: "auth_failure",
    403: "forbidden",
    404: "not_found",
    413: "too_large",
    429: "rate_limited",
}


class TelegramRelay:
    """Uploads images to a chat and resolves them back through the file API."""

    def __init__(
        self,
        bot_token: str = "",
        chat_id: str = "",
        client: httpx.AsyncClient | None = None,
        timeout: float = _DEFAULT_TIMEOUT,
        upload_method: UploadMethod = UploadMethod.PHOTO,
        rate_limiter: RateLimiter | None = None,
        retry_attempts: int = 1,
        api_base: str = _API_BASE,
    ) -> None:
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._timeout = timeout
        self._upload_method = UploadMethod(upload_method)
        self._rate_limiter = rate_limiter
        self._retry_attempts = max(1, retry_attempts)
        self._api_base = api_base.rstrip("/")

        if not self.configured:
            logger.warning("Telegram bot token or chat id not configured")

    @property
    def configured(self) -> bool:
        return bool(self._bot_token and self._chat_id)

    @property
    def rate_limiter(self) -> RateLimiter | None:
        return self._rate_limiter

    async def upload(self, data: bytes, content_type: str, filename: str) -> RelayReference:
        """Send the bytes to the relay chat and return the stored file reference."""
        if not self.configured:
            raise RelayUploadError("Telegram bot not configured", error_type="not_configured")

        if self._rate_limiter:
            await self._rate_limiter.acquire()

        method = "sendPhoto" if self._upload_method == UploadMethod.PHOTO else "sendDocument"
        field = self._upload_method.value
        logger.info("Uploading %s (%d bytes) via %s", filename, len(data), method)

        try:
            response = await self._send(
                "POST",
                self._method_url(method),
                data={"chat_id": self._chat_id, "caption": f"Cache: {filename}"},
                files={field: (filename, data, content_type)},
            )
        except httpx.HTTPError as e:
            logger.warning("Relay upload transport error: %s", self._redact(str(e)))
            raise RelayUploadError(
                f"Relay unreachable: {self._redact(str(e))}",
                error_type="connection_error",
                original=e,
            ) from e

        result = self._unwrap(response, RelayUploadError)
        return self._parse_reference(result)

    async def resolve_file_url(self, file_id: str) -> str:
        """Resolve a file id to a downloadable URL (valid for at least an hour)."""
        if not self._bot_token:
            raise RelayFetchError("Telegram bot not configured", file_id=file_id)

        try:
            response = await self._send(
                "GET", self._method_url("getFile"), params={"file_id": file_id}
            )
        except httpx.HTTPError as e:
            raise RelayFetchError(
                f"Relay unreachable: {self._redact(str(e))}", file_id=file_id
            ) from e

        try:
            result = self._unwrap(response, RelayUploadError)
        except RelayUploadError as e:
            raise RelayFetchError(e.message, file_id=file_id, http_status=e.http_status) from e

        file_path = result.get("file_path")
        if not file_path:
            raise RelayFetchError("Relay returned no file_path", file_id=file_id)
        return f"{self._api_base}/file/bot{self._bot_token}/{file_path}"

    async def download(self, reference: RelayReference) -> FetchedImage:
        """Fetch the stored bytes for a reference."""
        url = await self.resolve_file_url(reference.file_id)
        try:
            response = await self._send("GET", url)
        except httpx.HTTPError as e:
            raise RelayFetchError(
                f"Relay download failed: {self._redact(str(e))}", file_id=reference.file_id
            ) from e

        if not response.is_success or not response.content:
            raise RelayFetchError(
                f"Relay download returned HTTP {response.status_code}",
                file_id=reference.file_id,
                http_status=response.status_code,
            )
        content_type = resolve_content_type(response.headers.get("content-type"), response.content)
        return FetchedImage(data=response.content, content_type=content_type)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Issue a request; transport errors retry up to ``retry_attempts`` times."""
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(httpx.TransportError),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            stop=stop_after_attempt(self._retry_attempts),
            reraise=True,
        ):
            with attempt:
                return await self._client.request(method, url, timeout=self._timeout, **kwargs)
        raise AssertionError("unreachable")  # pragma: no cover

    def _method_url(self, method: str) -> str:
        return f"{self._api_base}/bot{self._bot_token}/{method}"

    def _redact(self, text: str) -> str:
        if self._bot_token:
            return text.replace(self._bot_token, "***")
        return text

    @staticmethod
    def _unwrap(response: httpx.Response, error_cls: type[RelayUploadError]) -> dict[str, Any]:
        """Return ``result`` from a Bot API envelope or raise ``error_cls``."""
        try:
            body = response.json()
        except ValueError:
            body = {}

        if not response.is_success or not body.get("ok"):
            status = body.get("error_code") or response.status_code
            description = body.get("description") or response.reason_phrase or "unknown error"
            logger.warning("Telegram API error %s: %s", status, description)
            raise error_cls(
                f"Telegram API error: {description}",
                error_type=_ERROR_TYPES.get(status, "api_error"),
                http_status=status,
            )
        return body.get("result") or {}

    @staticmethod
    def _parse_reference(result: dict[str, Any]) -> RelayReference:
        photos = result.get("photo")
        if photos:
            # Largest size is last
            item = photos[-1]
        else:
            item = result.get("document") or {}

        if not item.get("file_id"):
            raise RelayUploadError("Relay response carried no file_id", error_type="bad_response")

        return RelayReference(
            file_id=item["file_id"],
            file_unique_id=item.get("file_unique_id", ""),
            file_path=item.get("file_path"),
            message_id=result.get("message_id"),
            file_size=item.get("file_size"),
        )
