from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ashram.api.v1.routes import api_router
from ashram.core.config import settings
from ashram.core.logging_config import configure_logging
from ashram.core.sentry import init_sentry
from ashram.middleware.request_log import RequestLoggingMiddleware
from ashram.schemas.error import ErrorResponse
from ashram.services.browser_pool import BrowserPool


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "Invalid request: " + "; ".join(parts)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    app.state.browser_pool = BrowserPool()
    try:
        yield
    finally:
        await app.state.browser_pool.shutdown()


def get_application() -> FastAPI:
    configure_logging(settings.log_json)
    init_sentry()
    tags_metadata = [
        {"name": "receipts", "description": "Donation receipt PDF, preview and email"},
        {"name": "health", "description": "Liveness and readiness"},
        {"name": "metrics", "description": "In-process counters"},
    ]
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        openapi_tags=tags_metadata,
        lifespan=lifespan,
        swagger_ui_parameters={"displayRequestDuration": True},
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.include_router(api_router, prefix="/api/v1")

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
        payload = ErrorResponse(error=detail, code=None)
        return JSONResponse(status_code=exc.status_code, content=payload.model_dump(exclude_none=True))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        payload = ErrorResponse(error=_validation_message(exc), code="validation_error")
        return JSONResponse(status_code=400, content=jsonable_encoder(payload.model_dump(exclude_none=True)))

    return app


app = get_application()
