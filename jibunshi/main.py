"""
main.py — Jibunshi FastAPI application entry point.

Start with: uvicorn jibunshi.main:app --reload --port 8000
(run from the repository root, where alembic.ini lives)

create_app() builds the application; resources live on app.state:
  database   Database (engine + session factory)
  redis      redis.asyncio client, or None when the cache is disabled
  mistral    Mistral client, or None when MISTRAL_API_KEY is empty
  upload_dir / pdf_dir   storage directories

Tests call create_app(database=...) with an in-memory Database; the lifespan
only creates what was not injected.
"""
import asyncio
import logging
import os
import subprocess
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from mistralai import Mistral
from starlette.exceptions import HTTPException as StarletteHTTPException

from jibunshi.ai.llm_service import AIServiceError
from jibunshi.cache import create_redis_pool
from jibunshi.config import settings
from jibunshi.database import Database
from jibunshi.store import StoredDataError
from jibunshi.tasks import run_session_sweeper

# ---------------------------------------------------------------------------
# Logging — configured before anything else
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def run_migrations() -> None:
    """Apply Alembic migrations (alembic upgrade head) in a subprocess."""
    result = subprocess.run(
        [sys.executable, "-m", "alembic", "upgrade", "head"],
        capture_output=True,
        text=True,
        cwd=PROJECT_ROOT,
    )
    if result.returncode != 0:
        logger.error("Alembic migration failed:\n%s", result.stderr)
        raise RuntimeError(f"Alembic migration failed: {result.stderr}")
    msg = result.stdout.strip() or "No pending migrations"
    logger.info("Alembic: %s", msg)


# ---------------------------------------------------------------------------
# Lifespan — startup & shutdown hooks
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
      1. Database (unless injected) + Alembic migrations
      2. Redis connection pool (optional)
      3. Mistral client (optional)
      4. Expired-session sweeper task
    Shutdown: reverse order.
    """
    # --- 1. Database ---
    owns_database = app.state.database is None
    if owns_database:
        app.state.database = Database(settings.database_url, echo=settings.debug)
        if settings.run_migrations:
            run_migrations()

    # --- 2. Redis ---
    app.state.redis = await create_redis_pool()

    # --- 3. Mistral client — singleton for HTTP connection pool reuse ---
    if app.state.mistral is None and settings.mistral_api_key:
        app.state.mistral = Mistral(api_key=settings.mistral_api_key)
        logger.info("Mistral client initialized")
    elif app.state.mistral is None:
        logger.warning("MISTRAL_API_KEY is not set; AI routes will answer 500 AI_SERVICE_ERROR")

    # --- 4. Background sweep ---
    sweeper = asyncio.create_task(
        run_session_sweeper(app.state.database, settings.session_sweep_interval_seconds)
    )

    logger.info("Jibunshi v%s starting up", settings.app_version)
    yield

    # --- Shutdown ---
    sweeper.cancel()
    try:
        await sweeper
    except asyncio.CancelledError:
        pass
    if app.state.redis is not None:
        await app.state.redis.aclose()
        logger.info("Redis connection pool closed")
    if owns_database:
        await app.state.database.dispose()
        app.state.database = None
    logger.info("Jibunshi shutting down")


# ---------------------------------------------------------------------------
# Error response helper
# ---------------------------------------------------------------------------
def _make_error_response(
    code: str,
    message: str,
    details: list[dict[str, Any]] | None = None,
    status_code: int = 500,
) -> JSONResponse:
    """Build a standard {error: {code, message, details}} response."""
    body = {
        "error": {
            "code": code,
            "message": message,
            "details": details or [],
        }
    }
    return JSONResponse(status_code=status_code, content=body)


# ---------------------------------------------------------------------------
# Global exception handlers
# ---------------------------------------------------------------------------
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Converts Pydantic / FastAPI validation errors to the standard format (400).
    Returns ALL field violations in one response.
    """
    details = []
    for error in exc.errors():
        # Dot-notation field path, without the top-level 'body' / 'query' loc
        field = ".".join(str(loc) for loc in error["loc"] if loc not in ("body", "query", "path"))
        details.append({"field": field or None, "issue": error["msg"]})
    return _make_error_response(
        code="VALIDATION_ERROR",
        message="Request validation failed",
        details=details,
        status_code=400,
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Converts HTTPException to the standard error format with a semantic code."""
    code_map = {
        400: "BAD_REQUEST",
        401: "UNAUTHORIZED",
        403: "FORBIDDEN",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        409: "CONFLICT",
        413: "FILE_TOO_LARGE",
        415: "INVALID_MIME_TYPE",
        429: "RATE_LIMITED",
    }
    code = code_map.get(exc.status_code, f"HTTP_{exc.status_code}")
    return _make_error_response(
        code=code,
        message=str(exc.detail),
        status_code=exc.status_code,
    )


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    """Explicit ValueError raises from business logic surface as 400 VALIDATION_ERROR."""
    return _make_error_response(
        code="VALIDATION_ERROR",
        message=str(exc),
        status_code=400,
    )


async def stored_data_error_handler(request: Request, exc: StoredDataError) -> JSONResponse:
    """Corrupt JSON in the database is reported, never silently replaced."""
    logger.error("Corrupt stored data on %s %s: %s", request.method, request.url.path, exc)
    return _make_error_response(
        code="CORRUPT_DATA",
        message="Stored data could not be parsed",
        details=[{"field": f"{exc.table}.{exc.column}", "issue": str(exc)}],
        status_code=500,
    )


async def ai_service_error_handler(request: Request, exc: AIServiceError) -> JSONResponse:
    logger.error("AI service failure on %s %s: %s", request.method, request.url.path, exc)
    return _make_error_response(
        code="AI_SERVICE_ERROR",
        message=str(exc),
        status_code=500,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all for unexpected errors. The exception type and message go into
    details; the traceback is logged server-side only.
    """
    logger.error(
        "Unhandled exception on %s %s",
        request.method,
        request.url.path,
        exc_info=True,
    )
    return _make_error_response(
        code="INTERNAL_ERROR",
        message="An unexpected error occurred",
        details=[{"issue": f"{type(exc).__name__}: {exc}"}],
        status_code=500,
    )


# ---------------------------------------------------------------------------
# System routes (no auth required)
# ---------------------------------------------------------------------------
async def health_check() -> dict:
    return {
        "status": "ok",
        "version": settings.app_version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


async def index() -> dict:
    return {
        "name": "Jibunshi API",
        "version": settings.app_version,
        "endpoints": {
            "health": "/api/health",
            "users": "/api/users",
            "interview": "/api/interview",
            "timeline": "/api/timeline",
            "photos": "/api/photos",
            "biography": "/api/biography",
            "ai": "/api/ai",
            "pdf": "/api/pdf",
            "cleanup": "/api/cleanup",
            "uploads": "/uploads",
            "docs": "/api/docs",
        },
    }


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------
def create_app(
    database: Optional[Database] = None,
    *,
    mistral: Optional[Mistral] = None,
    upload_dir: Optional[str] = None,
    pdf_dir: Optional[str] = None,
) -> FastAPI:
    app = FastAPI(
        title="Jibunshi API",
        version=settings.app_version,
        description=(
            "Backend for guided life-story writing: interviews, photos, "
            "AI-assisted biography assembly and PDF booklets."
        ),
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    app.state.database = database
    app.state.redis = None
    app.state.mistral = mistral
    app.state.upload_dir = upload_dir or settings.upload_dir
    app.state.pdf_dir = pdf_dir or settings.pdf_dir
    os.makedirs(app.state.upload_dir, exist_ok=True)
    os.makedirs(app.state.pdf_dir, exist_ok=True)

    # --- CORS — restricted to frontend origins from settings ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Exception handlers — registered BEFORE routers ---
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(StoredDataError, stored_data_error_handler)
    app.add_exception_handler(AIServiceError, ai_service_error_handler)
    app.add_exception_handler(ValueError, value_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.add_api_route("/api/health", health_check, methods=["GET"], tags=["System"])
    app.add_api_route("/", index, methods=["GET"], tags=["System"])

    # --- Feature routers ---
    from jibunshi.ai.routes import router as ai_router
    from jibunshi.biography.routes import router as biography_router
    from jibunshi.cleanup.routes import router as cleanup_router
    from jibunshi.interview.routes import router as interview_router
    from jibunshi.pdf.routes import router as pdf_router
    from jibunshi.photos.routes import router as photos_router
    from jibunshi.timeline.routes import router as timeline_router
    from jibunshi.users.routes import router as users_router

    app.include_router(users_router)
    app.include_router(interview_router)
    app.include_router(timeline_router)
    app.include_router(photos_router)
    app.include_router(biography_router)
    app.include_router(ai_router)
    app.include_router(pdf_router)
    app.include_router(cleanup_router)

    # --- Uploaded photos served as static files ---
    app.mount("/uploads", StaticFiles(directory=app.state.upload_dir), name="uploads")

    return app


app = create_app()
