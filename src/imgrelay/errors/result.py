"""Tagged error result: one JSON shape for every failing route."""

from __future__ import annotations

from pydantic import BaseModel

from imgrelay.errors.exceptions import ImgRelayError

_STATUS_BY_KIND: dict[str, int] = {
    "invalid_input": 400,
    "origin_unavailable": 500,
    "relay_upload": 500,
    "relay_fetch": 500,
    "persistence": 500,
    "internal": 500,
}


class ErrorResult(BaseModel):
    kind: str
    error: str

    @property
    def status_code(self) -> int:
        return status_for_kind(self.kind)

    @classmethod
    def from_exception(cls, exc: ImgRelayError) -> ErrorResult:
        return cls(kind=exc.kind, error=exc.message or exc.__class__.__name__)


def status_for_kind(kind: str) -> int:
    """Map an error kind to its HTTP status. Unknown kinds are 500."""
    return _STATUS_BY_KIND.get(kind, 500)
