"""
FastAPI API Service Entry Point
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from api.routes import appointments, artists, auth, clients, expenses, reports
from database.connection import Database
from shared.config import get_settings
from shared.logging_config import configure_logging
from shared.startup_validator import StartupValidationError, validate_startup_config
from studio.errors import StudioError, translate_store_error

# Configure structured JSON logging on startup
configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Tattoo Studio API",
    version="1.0.0",
)

settings = get_settings()
origins = [origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(clients.router)
app.include_router(artists.router)
app.include_router(appointments.router)
app.include_router(expenses.router)
app.include_router(reports.router)


# =========================================================================
# LIFECYCLE
# =========================================================================
@app.on_event("startup")
async def startup() -> None:
    """
    Validate configuration, then create the store client.

    Raises:
        StartupValidationError: If critical configuration is invalid
    """
    logger.info("Running API startup configuration validation...")
    try:
        validate_startup_config()
    except StartupValidationError as e:
        logger.critical(f"API startup blocked due to configuration errors: {e}")
        raise

    app.state.database = Database.from_settings()
    logger.info("API startup complete")


@app.on_event("shutdown")
async def shutdown() -> None:
    database = getattr(app.state, "database", None)
    if database is not None:
        await database.dispose()
        app.state.database = None


# =========================================================================
# ERROR HANDLERS
# =========================================================================
def _error_response(exc: StudioError, request: Request) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        f"{request.method} {request.url.path} -> {exc.status_code} {exc.kind}: {exc.message}",
        extra={"request_path": request.url.path, "error_kind": exc.kind},
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def _validation_details(errors: list[dict]) -> list[dict]:
    return [
        {
            "loc": [str(part) for part in error.get("loc", ())],
            "msg": error.get("msg", ""),
            "type": error.get("type", ""),
        }
        for error in errors
    ]


@app.exception_handler(StudioError)
async def studio_exception_handler(request: Request, exc: StudioError) -> JSONResponse:
    """Typed studio errors carry their own HTTP status and kind."""
    return _error_response(exc, request)


@app.exception_handler(SQLAlchemyError)
async def store_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Store errors not translated by a service (plain reads in routes)."""
    return _error_response(
        translate_store_error(exc, f"{request.method} {request.url.path}"), request
    )


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return 400 with validation error details."""
    return JSONResponse(
        status_code=400,
        content={
            "kind": "validation_error",
            "message": "Invalid request",
            "details": _validation_details(exc.errors()),
        },
    )


@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Return 400 with validation error details."""
    return JSONResponse(
        status_code=400,
        content={
            "kind": "validation_error",
            "message": "Invalid request",
            "details": _validation_details(exc.errors()),
        },
    )


@app.get("/health")
async def health_check(request: Request) -> JSONResponse:
    """
    Health check endpoint for Docker health checks and monitoring.

    Returns:
        200 OK if PostgreSQL answers SELECT 1
        503 Service Unavailable otherwise
    """
    health_status = {"status": "healthy", "postgres": "unknown"}
    status_code = 200

    database = getattr(request.app.state, "database", None)
    try:
        if database is None:
            raise StudioError("Database is not initialized.")
        await database.ping()
        health_status["postgres"] = "connected"
    except (StudioError, SQLAlchemyError, OSError, TimeoutError) as e:
        logger.warning(f"Health check failed: {e}")
        health_status["postgres"] = "disconnected"
        health_status["status"] = "degraded"
        status_code = 503

    return JSONResponse(status_code=status_code, content=health_status)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint"""
    return {"message": "Tattoo Studio API - Use /health for health checks"}
