from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from co_backend.config import get_cors_origins
from co_backend.errors import OntologyError, UpstreamError
from co_backend.logging_config import configure_logging
from co_backend.manifest import build_manifest
from co_backend.request_context import (
    REQUEST_ID_HEADER,
    resolve_request_id,
    set_request_id,
)

from .deps import require_api_key
from .routes import health_router
from .routes import router as ontology_router

logger = logging.getLogger("contentontology.api")

API_VERSION = "1"


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(OntologyError)
    async def ontology_error_handler(request: Request, exc: OntologyError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return _error_response(exc.status_code, exc.message)

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.error(
            "Database query failed for %s %s", request.method, request.url.path, exc_info=exc
        )
        error = UpstreamError(f"Database query failed: {exc.__class__.__name__}")
        return _error_response(error.status_code, error.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        return _error_response(400, message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        message = "Not found" if exc.status_code == 404 else str(exc.detail)
        return _error_response(exc.status_code, message)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error for %s %s", request.method, request.url.path)
        return _error_response(500, str(exc) or exc.__class__.__name__)


def create_app() -> FastAPI:
    """
    Build the HTTP application.

    Configuration (API key, CORS origins, brand labels) is read from the
    environment at call time and, for per-request settings, on every request.
    """
    configure_logging()

    app = FastAPI(
        title="Content Ontology API",
        version="0.1.0",
        dependencies=[Depends(require_api_key)],
    )

    @app.middleware("http")
    async def security_headers_middleware(request: Request, call_next):
        """
        Inject a small set of security-related headers on all HTTP responses.

        Note: we implement this as function-based middleware (rather than
        BaseHTTPMiddleware) to avoid known edge cases in Starlette's
        BaseHTTPMiddleware with TestClient/anyio.
        """
        response = await call_next(request)
        headers = response.headers
        headers.setdefault("X-Content-Type-Options", "nosniff")
        headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        headers.setdefault("X-Frame-Options", "DENY")
        headers.setdefault("X-API-Version", API_VERSION)
        return response

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        set_request_id(request_id)
        try:
            response = await call_next(request)
        finally:
            set_request_id(None)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins(),
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER],
    )

    _register_exception_handlers(app)

    @app.get("/manifest.json")
    def manifest() -> dict:
        """
        Tool descriptor for the assistant plugin runtime.
        """
        return build_manifest()

    app.include_router(health_router)
    app.include_router(health_router, prefix="/api")
    app.include_router(ontology_router, prefix="/api")

    return app


app = create_app()

__all__ = ["app", "create_app"]
