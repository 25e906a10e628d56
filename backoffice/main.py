"""FastAPI application instance and error mapping."""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from backoffice.core import get_logger, get_settings
from backoffice.core.errors import BackofficeError, ConnectivityError
from backoffice.core.security import get_security_provider
from backoffice.middleware.auth import AuthMiddleware
from backoffice.routers import bills_router, compensation_router, cron_router, proposals_router

LOGGER = get_logger(__name__)


async def handle_backoffice_error(request: Request, exc: BackofficeError) -> JSONResponse:
    level = logging.WARNING if isinstance(exc, ConnectivityError) else logging.INFO
    LOGGER.log(
        level,
        "Request failed",
        extra={"path": request.url.path, "status": exc.status_code, "reason": exc.message},
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"error": "Invalid input", "details": details})


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    LOGGER.exception("Unhandled error", extra={"path": request.url.path})
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "message": str(exc) or type(exc).__name__},
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(title="Back Office", version="0.1.0")
    app.add_middleware(AuthMiddleware, security_provider=get_security_provider())

    app.add_exception_handler(BackofficeError, handle_backoffice_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.include_router(compensation_router)
    app.include_router(bills_router)
    app.include_router(proposals_router)
    app.include_router(cron_router)

    @app.get("/health", include_in_schema=False)
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    settings = get_settings()
    LOGGER.info(
        "FastAPI application initialised",
        extra={
            "database": settings.database.masked_url,
            "auth_enabled": settings.auth.enabled,
            "cron_configured": settings.cron.is_configured,
        },
    )
    return app


app = create_app()
