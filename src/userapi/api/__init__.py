"""FastAPI application for the userapi REST backend."""

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from userapi import __version__
from userapi.api.health import router as health_router
from userapi.api.users import router as users_router

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from userapi.cache import Cache
    from userapi.config import Config

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    log.info("api_starting")
    yield
    log.info("api_stopping")


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report request validation failures as 400 with per-field details."""
    details = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        message = error.get("msg", "invalid value").removeprefix("Value error, ")
        details.append({"field": ".".join(loc) or "request", "message": message})
    return JSONResponse(
        status_code=400,
        content={"error": "Validation failed", "details": details},
    )


def create_app(config: "Config") -> FastAPI:
    """Create and configure the FastAPI application.

    Shared resources (``db``, ``users``) are attached to ``app.state`` by
    ``build_app`` or by the caller.

    Args:
        config: Application configuration.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title="User Management API",
        description="A REST API for user records backed by SQL with a read-through cache.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.config = config

    # Request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        log.info(
            "request_start",
            method=request.method,
            path=request.url.path,
        )
        response = await call_next(request)
        log.info(
            "request_complete",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
        )
        return response

    app.add_exception_handler(RequestValidationError, validation_error_handler)

    # Register routes
    app.include_router(health_router)
    app.include_router(users_router)

    return app


def build_app(config: "Config", engine: "Engine", cache: "Cache") -> FastAPI:
    """Create the app and wire the database and user service into its state."""
    from userapi.users.repository import UserRepository
    from userapi.users.service import UserService

    app = create_app(config)
    app.state.db = engine
    app.state.users = UserService(
        UserRepository(engine),
        cache,
        ttl_seconds=config.cache.ttl_seconds,
    )
    return app
