"""HTTP service for eidas-csr.

Exposes the qualified statement codec and the authority table over FastAPI.
Run with: eidas-csr serve, or uvicorn --factory eidas_csr.main:create_app
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from eidas_csr import __version__
from eidas_csr.audit.logger import (
    configure_audit_logger,
    log_error,
    log_shutdown,
    log_startup,
)
from eidas_csr.config import load_config_from_env
from eidas_csr.exceptions import EidasError
from eidas_csr.routes.qcstatements import router

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from eidas_csr.config import Settings


async def eidas_error_response(_request: Request, exc: EidasError) -> JSONResponse:
    """Render an EidasError as {error, message, details} with its HTTP status."""
    log_error(error=exc, context="request_handling")
    return JSONResponse(
        status_code=exc.http_status.value,
        content={
            "error": type(exc).__name__,
            "message": exc.message,
            "details": exc.details,
        },
    )


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    server = app.state.settings.server
    log_startup(version=__version__, host=server.host, port=server.port)
    yield
    log_shutdown()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the API for the given settings.

    Settings default to the file named by EIDAS_CSR_CONFIG, or built-in
    defaults. Route handlers read them from ``app.state.settings``.
    """
    if settings is None:
        settings = load_config_from_env()

    configure_audit_logger(settings.audit)

    app = FastAPI(
        title="eidas-csr",
        description="PSD2 qualified statement encoding for QWAC and QSEAL certificate requests",
        version=__version__,
        lifespan=_lifespan,
    )
    app.state.settings = settings
    app.include_router(router)
    app.add_exception_handler(EidasError, eidas_error_response)  # type: ignore[arg-type]

    return app


def main(settings: Settings | None = None) -> None:
    """Serve the API with uvicorn on the configured host and port."""
    app = create_app(settings)
    server = app.state.settings.server

    uvicorn.run(app, host=server.host, port=server.port)


if __name__ == "__main__":
    main()
