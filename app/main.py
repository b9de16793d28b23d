"""
FastAPI application entry point.
Application factory wiring settings, database, blob store, sessions, rate
limiters, middleware and routes.
"""
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional
import asyncio
import logging

from fastapi import FastAPI, Request, status, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import Settings, get_settings
from app.database import build_engine, build_sessionmaker, close_db, get_db, init_db
from app.errors import AppError
from app.routes import admin, gallery, memories
from app.services.blob_store import BlobStore, CloudinaryBlobStore, validate_cloudinary_config
from app.services.sessions import SessionStore
from app.utils.auth import load_admin_credentials
from app.utils.rate_limit import RateLimiter, build_rate_limiter

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup, clear out expired sessions, close the pool on shutdown."""
    settings = app.state.settings
    await init_db(app.state.engine, settings.DATABASE_URL)

    async with app.state.sessionmaker() as db:
        await app.state.session_store.prune_expired(db)

    if not validate_cloudinary_config(settings):
        logger.warning("Cloudinary is not configured - photo uploads will fail")

    yield

    try:
        await close_db(app.state.engine)
    except Exception as e:
        # Cancellation during shutdown is expected
        if not isinstance(e, (KeyboardInterrupt, asyncio.CancelledError)):
            logger.warning(f"Error during database shutdown: {str(e)}")


def create_app(
    settings: Optional[Settings] = None,
    blob_store: Optional[BlobStore] = None,
    memory_limiter: Optional[RateLimiter] = None,
    login_limiter: Optional[RateLimiter] = None,
    session_store: Optional[SessionStore] = None,
) -> FastAPI:
    """
    Build the application.

    Every component can be injected; anything left out is built from settings.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.API_TITLE,
        description=settings.API_DESCRIPTION,
        version=settings.API_VERSION,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.engine = build_engine(settings.DATABASE_URL)
    app.state.sessionmaker = build_sessionmaker(app.state.engine)
    app.state.admin_credentials = load_admin_credentials(settings)
    app.state.blob_store = blob_store or CloudinaryBlobStore(settings)
    app.state.session_store = session_store or SessionStore(
        max_age=timedelta(hours=settings.SESSION_MAX_AGE_HOURS)
    )
    app.state.memory_limiter = memory_limiter or build_rate_limiter(
        settings.RATE_LIMIT_STORAGE_URI,
        settings.MEMORY_SUBMISSION_LIMIT,
        settings.MEMORY_SUBMISSION_WINDOW_SECONDS,
        namespace="memory-submission",
    )
    app.state.login_limiter = login_limiter or build_rate_limiter(
        settings.RATE_LIMIT_STORAGE_URI,
        settings.ADMIN_LOGIN_LIMIT,
        settings.ADMIN_LOGIN_WINDOW_SECONDS,
        namespace="admin-login",
    )

    # Credentials (the session cookie) are allowed, so origins are explicit
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log every request with its response status."""
        method = request.method
        path = request.url.path
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(f"Error processing {method} {path}: {str(e)} ({type(e).__name__})", exc_info=True)
            raise
        logger.info(f"Response status: {response.status_code} for {method} {path}")
        return response

    # /api/admin is registered first so /api/admin/memories never falls through
    # to the public memories router
    app.include_router(admin.router, prefix="/api")
    app.include_router(memories.router, prefix="/api", tags=["memories"])
    app.include_router(gallery.router, prefix="/api", tags=["gallery"])

    register_exception_handlers(app)
    register_health_routes(app)

    return app


def register_exception_handlers(app: FastAPI):

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        """Render application errors as {success: false, message, errors?}."""
        if exc.status_code >= 500:
            logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
        else:
            logger.info(
                f"{type(exc).__name__} on {request.method} {request.url.path}: "
                f"{exc.status_code} {exc.message}"
            )
        return JSONResponse(status_code=exc.status_code, content=exc.to_content())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle framework HTTP exceptions (404 for unknown routes, 405, ...)."""
        logger.info(f"HTTPException on {request.method} {request.url.path}: {exc.status_code} {exc.detail}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle request validation errors as 400 with field messages."""
        errors = [
            f"{'.'.join(str(part) for part in error['loc'] if part != 'body')}: {error['msg']}"
            for error in exc.errors()
        ]
        logger.info(f"Validation error on {request.method} {request.url.path}: {errors}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "message": "Validation failed", "errors": errors},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle anything unexpected without leaking details to the client."""
        logger.error(
            f"Unhandled exception on {request.method} {request.url.path}: "
            f"{str(exc)} ({type(exc).__name__})",
            exc_info=True
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "message": "Internal server error"},
        )


def register_health_routes(app: FastAPI):

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    @app.get("/health/db")
    async def health_check_db(db: AsyncSession = Depends(get_db)):
        """Tests the database connection."""
        try:
            result = await db.execute(text("SELECT 1"))
            return {"database": "connected", "status": "healthy", "result": result.scalar()}
        except Exception as e:
            logger.error(f"Database health check failed: {str(e)}", exc_info=True)
            return {"database": "error", "status": "unhealthy", "error": "Database connection failed"}


app = create_app()
