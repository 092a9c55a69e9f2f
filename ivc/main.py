"""
FastAPI Application - IVC Accounting site and content admin API
"""

from __future__ import annotations

import logging
import secrets
from contextlib import asynccontextmanager

from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import text
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from ivc.auth import auth_backend, fastapi_users
from ivc.bootstrap import ensure_admin_user, init_database
from ivc.config import settings
from ivc.database import get_db
from ivc.database_async import dispose_async_engine
from ivc.observability import MetricsMiddleware, configure_logging, metrics_response
from ivc.routers.admin_ai import router as admin_ai_router
from ivc.routers.admin_categories import router as admin_categories_router
from ivc.routers.admin_keys import router as admin_keys_router
from ivc.routers.admin_posts import router as admin_posts_router
from ivc.routers.admin_rss import router as admin_rss_router
from ivc.routers.admin_social import router as admin_social_router
from ivc.routers.api import router as api_router
from ivc.routers.blog import router as blog_router
from ivc.routers.ui import router as ui_router
from ivc.schemas.user import UserRead, UserUpdate
from ivc.security import SecurityHeadersMiddleware, limiter
from ivc.staticfiles import CachedStaticFiles, templates
from ivc.utils.assets import STATIC_ROOT

configure_logging(settings.log_level, json_logs=settings.is_production)
logger = logging.getLogger(__name__)


# ==========================================
# Application Lifespan
# ==========================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting application", extra={"environment": settings.environment})
    init_database()
    try:
        await ensure_admin_user()
    except Exception:
        logger.exception("Could not create admin user")
    yield
    await dispose_async_engine()
    logger.info("Application stopped")


# ==========================================
# Exception handlers
# ==========================================
def _wants_html(request: Request) -> bool:
    return (
        "text/html" in request.headers.get("accept", "").lower()
        and not request.url.path.startswith("/api/")
    )


async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    if _wants_html(request):
        return HTMLResponse(
            "<h2>Too Many Requests</h2><p>Please retry shortly.</p>",
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        )
    return JSONResponse(
        {"error": "Rate limit exceeded. Please retry shortly."},
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """JSON ``{"error": ...}`` bodies; HTML clients get the 404 page."""
    if exc.status_code == 404 and _wants_html(request):
        return templates.TemplateResponse(
            request,
            "404.html",
            {"detail": exc.detail if exc.detail != "Not Found" else None},
            status_code=status.HTTP_404_NOT_FOUND,
        )

    body = exc.detail if isinstance(exc.detail, dict) else {"error": exc.detail}
    return JSONResponse(
        body,
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        {"error": "Validation failed", "details": jsonable_encoder(exc.errors())},
        status_code=status.HTTP_400_BAD_REQUEST,
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(
        "Unhandled error", extra={"path": request.url.path, "method": request.method}
    )
    return JSONResponse(
        {"error": "Internal server error"},
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


# ==========================================
# FastAPI Application
# ==========================================
app = FastAPI(
    title=settings.site_name,
    description="Marketing site and content admin API",
    version="1.0.0",
    lifespan=lifespan,
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None if settings.is_production else "/redoc",
    openapi_url=None if settings.is_production else "/openapi.json",
)
# Order: compression → rate-limit/metrics → security → correlation id
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(MetricsMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(CorrelationIdMiddleware, header_name="X-Request-ID")
if settings.allowed_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Accept", "Content-Type", "Authorization"],
    )
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)
app.mount("/static", CachedStaticFiles(directory=str(STATIC_ROOT)), name="static")


# ==========================================
# Health & readiness
# ==========================================
@app.get("/healthz", tags=["system"], summary="Health check", response_model=dict)
def health_check(db: Session = Depends(get_db)) -> dict:
    try:
        db.execute(text("SELECT 1"))
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="unhealthy"
        ) from exc
    if settings.is_production:
        return {"status": "healthy"}
    return {"status": "healthy", "database": "connected", "version": app.version}


@app.get("/readyz", tags=["system"], summary="Readiness check", response_model=dict)
def readiness_check(db: Session = Depends(get_db)) -> dict:
    try:
        db.execute(text("SELECT 1"))
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
        ) from exc
    if not STATIC_ROOT.exists():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Static assets missing",
        )
    return {"status": "ready", "database": "connected"}


# ==========================================
# Metrics (Protected with HTTP Basic Auth)
# ==========================================
security = HTTPBasic()


def verify_metrics_auth(
    credentials: HTTPBasicCredentials = Depends(security),
) -> str:
    """Verify HTTP Basic Auth credentials for metrics endpoint."""
    if not settings.metrics_password:
        return credentials.username

    correct_username = secrets.compare_digest(
        credentials.username, settings.metrics_username
    )
    correct_password = secrets.compare_digest(
        credentials.password, settings.metrics_password
    )
    if not (correct_username and correct_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )
    return credentials.username


@app.get("/metrics", include_in_schema=False)
def metrics(_: str = Depends(verify_metrics_auth)):
    """Prometheus metrics (METRICS_USERNAME / METRICS_PASSWORD)."""
    return metrics_response()


# ==========================================
# Routers
# ==========================================
app.include_router(ui_router)
app.include_router(blog_router)
app.include_router(api_router)
app.include_router(admin_posts_router)
app.include_router(admin_categories_router)
app.include_router(admin_rss_router)
app.include_router(admin_ai_router)
app.include_router(admin_social_router)
app.include_router(admin_keys_router)
# Auth (no public registration: admins are created by the bootstrap tool)
app.include_router(
    fastapi_users.get_auth_router(auth_backend), prefix="/auth/jwt", tags=["auth"]
)
app.include_router(
    fastapi_users.get_users_router(UserRead, UserUpdate),
    prefix="/users",
    tags=["users"],
)
