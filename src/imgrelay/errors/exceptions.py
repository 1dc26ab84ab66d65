"""Custom exception hierarchy for imgrelay."""

from __future__ import annotations

from typing import Any


class ImgRelayError(Exception):
    """Base exception for all imgrelay errors."""

    kind = "internal"

    def __init__(self, message: str = "", **kwargs: Any) -> None:
        super().__init__(message)
        self.message = message


class InvalidInput(ImgRelayError):
    """Missing or malformed request parameters (id, url)."""

    kind = "invalid_input"

    def __init__(self, message: str = "", field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class OriginUnavailable(ImgRelayError):
    """Upstream image fetch failed: network error, non-2xx, empty or oversized body.

    Not retried; the caller decides whether to try again.
    """

    kind = "origin_unavailable"

    def __init__(
        self,
        message: str = "",
        url: str | None = None,
        http_status: int | None = None,
        original: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.http_status = http_status
        self.original = original


class RelayUploadError(ImgRelayError):
    """The relay rejected or never received an upload.

    Examples: bot not configured, 401 bad token, 400 chat not found,
    413 payload too large, connection error.
    """

    kind = "relay_upload"

    def __init__(
        self,
        message: str = "",
        error_type: str = "api_error",
        http_status: int | None = None,
        original: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.error_type = error_type
        self.http_status = http_status
        self.original = original


class RelayFetchError(ImgRelayError):
    """A stored relay reference could not be resolved or downloaded."""

    kind = "relay_fetch"

    def __init__(
        self,
        message: str = "",
        file_id: str | None = None,
        http_status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.file_id = file_id
        self.http_status = http_status


class PersistenceError(ImgRelayError):
    """Store I/O failure."""

    kind = "persistence"

    def __init__(self, message: str = "", original: Exception | None = None) -> None:
        super().__init__(message)
        self.original = original
