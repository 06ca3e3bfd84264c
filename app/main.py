import logging
import time
from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.routes import cache, health, premises_visits
from app.config import settings
from app.core.database import init_database

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _init_sentry() -> bool:
    if not settings.sentry_dsn:
        return False
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        integrations=[
            FastApiIntegration(),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
        traces_sample_rate=0.1,
        environment=settings.environment,
        release=f"{settings.app_name}@{settings.app_version}",
    )
    return True


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "portal.startup",
        extra={"version": settings.app_version, "environment": settings.environment},
    )
    if _init_sentry():
        logger.info("portal.sentry.enabled")
    init_database()
    yield
    logger.info("portal.shutdown")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Mentoring programme portal: premises-visit tracking for admins",
    lifespan=lifespan,
    debug=settings.debug,
)

if settings.cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Authorization", "Content-Type"],
    )

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=["*"] if settings.debug else settings.allowed_hosts,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "portal.request",
        extra={
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": round((time.perf_counter() - started) * 1000, 2),
        },
    )
    return response


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    """Render HTTP errors in the dashboard's ``{success, error}`` envelope."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Report invalid request parameters as a single readable error string."""
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part not in ("query", "body", "path", "header"))
        problems.append(f"{location}: {error.get('msg', 'invalid value')}" if location else error.get("msg", "invalid value"))
    logger.info("portal.request.invalid", extra={"path": request.url.path, "problems": len(problems)})
    return JSONResponse(
        status_code=422,
        content={"success": False, "error": "Invalid request: " + "; ".join(problems)},
    )


app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(premises_visits.router, prefix="/api", tags=["premises"])
app.include_router(cache.router, prefix="/api", tags=["cache"])


@app.get("/")
async def root():
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.environment,
    }
