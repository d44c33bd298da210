"""
WhereIsIt API
=============

Lost-and-found marketplace backend. Users post lost or found items and
other users record the recovery of those items.

Run with:
    uvicorn app.main:create_app --factory
or the ``whereisit-api`` console script.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from services.errors import ServiceError

from .config import Settings
from .context import AppContext
from .routes import health, highlights, inventory, recoveries, users

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def install_error_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.debug(f"[API] Rejected body for {request.method} {request.url.path}: {exc.errors()}")
        return JSONResponse(status_code=400, content={"message": "Invalid request body"})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"[API] Unhandled error on {request.method} {request.url.path}")
        content = {"message": "Server error"}
        if not settings.is_production:
            content["error"] = str(exc)
        return JSONResponse(status_code=500, content=content)


def create_app(
    settings: Optional[Settings] = None,
    context: Optional[AppContext] = None,
) -> FastAPI:
    """Build the FastAPI application.

    ``context`` lets tests inject a pre-wired AppContext (fake identity
    provider, temporary database).
    """
    if context is not None:
        settings = context.settings
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)
    ctx = context or AppContext.build(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await ctx.startup()
        try:
            yield
        finally:
            await ctx.shutdown()

    app = FastAPI(title="WhereIsIt API", version="1.0.0", lifespan=lifespan)
    app.state.context = ctx

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    install_error_handlers(app, settings)

    @app.get("/", response_class=PlainTextResponse)
    async def root():
        return "WhereIsIt backend server running!!"

    app.include_router(users.router)
    app.include_router(inventory.router)
    app.include_router(recoveries.router)
    app.include_router(highlights.router)
    app.include_router(health.router)

    return app


def run() -> None:
    settings = Settings.from_env()
    uvicorn.run("app.main:create_app", factory=True, host="0.0.0.0", port=settings.port)


__all__ = ["create_app", "run"]
