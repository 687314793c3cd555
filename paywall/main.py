"""GPT Paywall: FastAPI application entry point."""

import logging
import traceback
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from paywall.api.access import router as access_router
from paywall.api.admin import router as admin_router
from paywall.api.billing import router as billing_router
from paywall.api.webhooks import router as webhooks_router
from paywall.auth.rate_limit import RateLimiter
from paywall.config import settings
from paywall.directory import AirtableDirectory, utc_now
from paywall.errors import PaywallError, RateLimited, ServerMisconfigured
from paywall.schemas.common import HealthResponse

# Configure root logger so all paywall.* loggers output to stderr.
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the directory client on startup and close it on shutdown."""
    app.state.directory = AirtableDirectory.from_settings(settings)
    yield
    await app.state.directory.aclose()


def build_rate_limiters(app: FastAPI) -> None:
    """Attach fresh limiter instances for both policies to ``app.state``."""
    app.state.gateway_limiter = RateLimiter(
        settings.gateway_rate_limit_window_seconds,
        settings.gateway_rate_limit_max,
        storage_uri=settings.rate_limit_storage_uri,
        namespace="gateway",
    )
    app.state.api_key_limiter = RateLimiter(
        settings.api_key_rate_limit_window_seconds,
        settings.api_key_rate_limit_max,
        storage_uri=settings.rate_limit_storage_uri,
        namespace="api_key",
    )


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Subscription gate for a paid GPT tool, backed by Stripe and Airtable.",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)
build_rate_limiters(app)

# Browsers get CORS headers only for allow-listed origins in production;
# requests without an Origin header (server-to-server) are unaffected.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if not settings.is_production else settings.cors_origins,
    allow_credentials=settings.is_production,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "X-API-Key", "Authorization"],
)


@app.exception_handler(PaywallError)
async def paywall_error_handler(request: Request, exc: PaywallError) -> JSONResponse:
    content: dict = {"detail": exc.detail}
    headers: dict[str, str] = {}

    if isinstance(exc, ServerMisconfigured):
        logger.error("Server misconfigured on %s: %s", request.url.path, exc.reason)
    elif isinstance(exc, RateLimited):
        content["retryAfter"] = exc.retry_after
        headers["Retry-After"] = str(exc.retry_after)
    elif exc.status_code >= 500:
        logger.error("Request to %s failed: %s", request.url.path, exc.detail)

    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"detail": "Invalid request", "errors": errors})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s", request.url.path)
    content: dict = {"detail": "Internal server error"}
    if not settings.is_production:
        content["stack"] = "".join(traceback.format_exception(exc))
    return JSONResponse(status_code=500, content=content)


# Routers
app.include_router(access_router)
app.include_router(billing_router)
app.include_router(webhooks_router)
app.include_router(admin_router)


@app.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        message=f"{settings.app_name} is running",
        timestamp=utc_now(),
    )


@app.get("/", tags=["root"])
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }
