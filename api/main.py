"""
Risk Assessment API - Application.

============================================================
RESPONSIBILITY
============================================================
Builds the FastAPI application:
- CORS from settings
- Routers
- Error envelope: {"success": false, "error": "<message>"}
- Database initialization at startup

============================================================
ERROR MAPPING
============================================================
- ValidationError (and malformed bodies)  -> 400
- DependencyError                         -> 500, generic message
- anything else                           -> 500, generic message

Internal details are logged, never returned.

============================================================
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import AppSettings
from core.exceptions import DokaniException, ValidationError, wrap_exception
from database.engine import initialize_database
from api.routers import health, risk_assessment
from api.schemas import ErrorResponse

logger = logging.getLogger(__name__)


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
    )


# ============================================================
# Exception Handlers
# ============================================================

async def handle_dokani_exception(request: Request, exc: DokaniException) -> JSONResponse:
    if isinstance(exc, ValidationError):
        logger.warning(f"{request.method} {request.url.path} rejected: {exc.to_log_format()}")
    else:
        logger.error(f"{request.method} {request.url.path} failed: {exc.to_log_format()}")
    return _error_response(exc.status_code, exc.client_message)


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    # Integer loc parts are JSON positions or list indexes, not field names
    names = [part for part in first.get("loc", ()) if isinstance(part, str) and part != "body"]

    if first.get("type") == "json_invalid":
        message = "Malformed JSON body"
    elif names:
        message = f"Invalid value for {'.'.join(names)}: {first.get('msg', 'invalid')}"
    else:
        message = "Invalid request"
    logger.warning(f"{request.method} {request.url.path} rejected: {message}")
    return _error_response(400, message)


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    error = wrap_exception(exc, operation=f"{request.method} {request.url.path}")
    logger.exception(error.to_log_format())
    return _error_response(error.status_code, error.client_message)


# ============================================================
# FastAPI Application
# ============================================================

def create_app(settings: Optional[AppSettings] = None, init_database: bool = True) -> FastAPI:
    """
    Create the API application.

    Args:
        settings: Process settings, defaults to AppSettings.from_env()
        init_database: Verify the connection and create tables at startup
    """
    settings = settings or AppSettings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if init_database:
            initialize_database()
        logger.info(f"Risk Assessment API started ({settings.environment})")
        yield
        logger.info("Risk Assessment API stopped")

    app = FastAPI(
        title="Dokani Risk Assessment API",
        description="Customer return-risk scoring and fraud flagging.",
        version=health.API_VERSION,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(DokaniException, handle_dokani_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(Exception, handle_unexpected)

    app.include_router(health.router)
    app.include_router(risk_assessment.router)

    @app.get("/")
    def root():
        return {"status": "ok", "message": "Risk Assessment API is running"}

    return app


app = create_app()
