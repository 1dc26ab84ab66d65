"""FastAPI app exposing the caches."""

from imgrelay.api.app import create_app
from imgrelay.api.services import Services, build_services

__all__ = ["Services", "build_services", "create_app"]
