from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from puredi import api
from puredi.composition_root import CompositionRoot
from puredi.exceptions import PureDIError
from puredi.integrations.fastapi import setup_puredi
from puredi.settings import PureDISettings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    try:
        yield
    finally:
        # Singletons are released here, once, when the server stops.
        app.state.puredi_root.close()


def create_app(
    root: CompositionRoot | None = None,
    settings: PureDISettings | None = None,
) -> FastAPI:
    """Create the FastAPI application with every handler built by ``root``.

    Args:
        root: Composition root owning the application's dependencies. Built
            from ``settings`` when omitted. The application closes it when
            its lifespan ends.
        settings: Application settings; read from the environment when omitted.

    """
    settings = settings or PureDISettings()
    if root is None:
        root = CompositionRoot(share_scoped_dependencies=settings.share_scoped_dependencies)

    app = FastAPI(title=settings.title, lifespan=lifespan)
    setup_puredi(app, root, middleware=settings.middleware)
    app.include_router(api.router, prefix=settings.api_prefix)

    @app.exception_handler(PureDIError)
    async def puredi_error_handler(request: Request, exc: PureDIError) -> JSONResponse:
        logger.error("Handler wiring failed on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    logger.info(
        "Application %s created with singleton %s",
        settings.title,
        root.singleton_dependency,
    )
    return app
