"""
FastAPI Main Application
Social Inbox Permission Service
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
import structlog
from contextlib import asynccontextmanager

from social_inbox import __version__
from social_inbox.core.config import settings
from social_inbox.core.database import close_database, init_database
from social_inbox.core.errors import AUTHORIZATION_UNDETERMINED_DETAIL, PermissionStoreUnavailable
from social_inbox.core.logging import setup_logging
from social_inbox.api.v1.router import api_router
from social_inbox.middleware.security import SecurityHeadersMiddleware
from social_inbox.middleware.logging import LoggingMiddleware

# Setup structured logging
setup_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("Starting Social Inbox API Service", version=__version__)
    await init_database()

    yield

    logger.info("Shutting down Social Inbox API Service")
    await close_database()


app = FastAPI(
    title="Social Inbox API",
    description="Unified social inbox permission service",
    version=__version__,
    docs_url="/docs" if settings.ENVIRONMENT == "development" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT == "development" else None,
    lifespan=lifespan
)

# CORS must be registered before the security middlewares
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=[
        "Authorization",
        "Content-Type",
        "Accept",
        "X-Request-ID",
    ],
    expose_headers=["X-Request-ID"],
    max_age=600,
)

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(LoggingMiddleware)

if settings.ENVIRONMENT == "production":
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=settings.ALLOWED_HOSTS
    )

app.include_router(api_router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Social Inbox API Service",
        "version": __version__,
        "docs": "/docs" if settings.ENVIRONMENT == "development" else "disabled",
        "health": "/api/v1/health"
    }


@app.exception_handler(PermissionStoreUnavailable)
async def permission_store_unavailable_handler(request: Request, exc: PermissionStoreUnavailable):
    """A store failure means access is unknown, not denied"""
    logger.error(
        "Authorization could not be determined",
        path=request.url.path,
        method=request.method,
        code=exc.code,
        error=exc.detail,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": AUTHORIZATION_UNDETERMINED_DETAIL, "code": exc.code},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    logger.error(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exc_info=True
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": "An unexpected error occurred",
        }
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "social_inbox.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
        log_level=settings.LOG_LEVEL.lower()
    )
