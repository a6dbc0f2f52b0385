from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
from starlette.exceptions import HTTPException as StarletteHTTPException

from techstock.shared.core.app_routes import register_api_routers, register_lifecycle_routes
from techstock.shared.core.config import get_settings, reload_settings_from_environment
from techstock.shared.core.error_governance import handle_exception
from techstock.shared.core.exceptions import TechStockException
from techstock.shared.core.logging import setup_logging
from techstock.shared.core.middleware import RequestIDMiddleware
from techstock.shared.core.timeout import TimeoutMiddleware
from techstock.shared.db.session import create_all_tables, dispose_db_runtime

setup_logging()
settings = get_settings()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    global settings
    settings = reload_settings_from_environment()
    logger.info("app_starting", app_name=settings.APP_NAME, environment=settings.ENVIRONMENT)

    if settings.DB_AUTO_CREATE_TABLES:
        await create_all_tables()

    yield

    logger.info("app_shutting_down")
    await dispose_db_runtime()


# Application instance
techstock_app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    lifespan=lifespan,
)
app: FastAPI = techstock_app

__all__ = ["app", "techstock_app", "lifespan"]


@techstock_app.exception_handler(TechStockException)
async def techstock_exception_handler(request: Request, exc: TechStockException) -> JSONResponse:
    """Handle catalog domain exceptions."""
    return handle_exception(request, exc)


@techstock_app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return handle_exception(request, exc)


@techstock_app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return handle_exception(request, exc)


@techstock_app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    return handle_exception(request, exc)


@techstock_app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Unhandled exceptions leave as a sanitized 500."""
    return handle_exception(request, exc)


register_lifecycle_routes(
    techstock_app,
    app_name=settings.APP_NAME,
    version=settings.VERSION,
)
register_api_routers(techstock_app)

techstock_app.mount("/metrics", make_asgi_app())

# Middleware runs in reverse order of addition; CORS goes last so it sees requests first.
techstock_app.add_middleware(TimeoutMiddleware, timeout_seconds=settings.REQUEST_TIMEOUT_SECONDS)
techstock_app.add_middleware(GZipMiddleware, minimum_size=1000)
techstock_app.add_middleware(RequestIDMiddleware)

if settings.CORS_ORIGINS and "*" in settings.CORS_ORIGINS:
    logger.error("insecure_cors_config_detected", msg="allow_credentials=True with '*' origin is forbidden")
    cors_allowed_origins = [o for o in settings.CORS_ORIGINS if o != "*"]
else:
    cors_allowed_origins = settings.CORS_ORIGINS

techstock_app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "X-Request-ID", "X-Requested-With"],
)
