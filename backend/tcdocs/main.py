"""TCDocs FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tcdocs import __version__
from tcdocs.config import settings
from tcdocs.services import init_services, shutdown_services
from tcdocs.services.errors import FileErrorKind, FileServiceError

logger = logging.getLogger(__name__)

ERROR_STATUS: dict[FileErrorKind, int] = {
    FileErrorKind.NOT_FOUND: 404,
    FileErrorKind.FORBIDDEN: 403,
    FileErrorKind.UNAUTHORIZED: 401,
    FileErrorKind.IDENTIFIER_MISSING: 422,
    FileErrorKind.DECODING_ERROR: 422,
    FileErrorKind.UNKNOWN: 502,
}


@asynccontextmanager
async def _lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    _setup_logging()
    init_services()
    logger.info("TCDocs v%s started — listening on %s:%s", __version__, settings.host, settings.port)
    try:
        yield
    finally:
        shutdown_services()
        logger.info("TCDocs shutting down")


def _setup_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # httpx logs every request at INFO
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


async def _file_error_handler(request: Request, exc: FileServiceError) -> JSONResponse:
    status_code = ERROR_STATUS.get(exc.kind, 502)
    logger.warning("%s %s -> %s (%s)", request.method, request.url.path, status_code, exc.message)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def create_app() -> FastAPI:
    """Application factory."""
    from tcdocs.api.routes import api_router

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        debug=settings.debug,
        lifespan=_lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(FileServiceError, _file_error_handler)

    app.include_router(api_router, prefix=settings.api_prefix)
    return app


app = create_app()


def run(**kwargs: Any) -> None:
    import uvicorn

    uvicorn.run(
        "tcdocs.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=settings.uvicorn_workers,
        log_level=settings.log_level.lower(),
        **kwargs,
    )


if __name__ == "__main__":
    run()
