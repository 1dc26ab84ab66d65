"""Exception taxonomy and the HTTP error result."""

from imgrelay.errors.exceptions import (
    ImgRelayError,
    InvalidInput,
    OriginUnavailable,
    PersistenceError,
    RelayFetchError,
    RelayUploadError,
)
from imgrelay.errors.result import ErrorResult, status_for_kind

__all__ = [
    "ImgRelayError",
    "InvalidInput",
    "OriginUnavailable",
    "RelayUploadError",
    "RelayFetchError",
    "PersistenceError",
    "ErrorResult",
    "status_for_kind",
]
