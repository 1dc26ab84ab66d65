"""FastAPI application factory."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from imgrelay.api.routes import router
from imgrelay.api.services import Services, build_services
from imgrelay.config.schema import Settings
from imgrelay.errors.exceptions import ImgRelayError
from imgrelay.errors.result import ErrorResult

logger = logging.getLogger(__name__)


async def _handle_imgrelay_error(request: Request, exc: ImgRelayError) -> JSONResponse:
    result = ErrorResult.from_exception(exc)
    if result.status_code >= 500:
        logger.error("%s %s failed (%s): %s", request.method, request.url.path, exc.kind, exc)
    return JSONResponse(result.model_dump(), status_code=result.status_code)


def create_app(services: Services | None = None, settings: Settings | None = None) -> FastAPI:
    """Build the app around an explicitly constructed service container.

    Pass ``services`` to inject fakes; otherwise they are built from
    ``settings``. Services are closed on shutdown either way.
    """
    if services is None:
        services = build_services(settings or Settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        logger.info("Closing services")
        await app.state.services.close()

    app = FastAPI(title="imgrelay", lifespan=lifespan)
    app.state.services = services
    app.add_exception_handler(ImgRelayError, _handle_imgrelay_error)
    app.include_router(router)
    return app
