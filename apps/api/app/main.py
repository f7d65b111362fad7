"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from app.core.config import settings
from app.core.structured_logging import build_log_context, configure_logging
from app.db.session import engine

configure_logging()
logger = logging.getLogger(__name__)

# ============================================================================
# Sentry Integration (optional, for production error tracking)
# ============================================================================

if settings.SENTRY_DSN and settings.ENV != "dev":
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        release=settings.VERSION,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,  # 10% of requests for performance monitoring
        send_default_pii=False,  # Don't send PII to Sentry
    )
    logger.info("Sentry initialized for error tracking")

# ============================================================================
# Rate Limiting
# ============================================================================

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from app.core.rate_limit import limiter

# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="Client Portal API",
    description="Multi-tenant client support portal API",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS middleware - must be added before routers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,  # Required for cookies
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)

# ============================================================================
# Exception Handlers
# ============================================================================

from app.services.auth_service import AuthenticationError, PermissionDeniedError
from app.services.identity_provider import IdentityProviderError


def _request_log_context(request: Request) -> dict:
    ctx = getattr(request.state, "request_context", None)
    return build_log_context(
        request_id=ctx.request_id if ctx else None,
        route=request.url.path,
        method=request.method,
    )


@app.exception_handler(AuthenticationError)
async def authentication_error_handler(request: Request, exc: AuthenticationError):
    return JSONResponse(status_code=401, content={"detail": str(exc)})


@app.exception_handler(PermissionDeniedError)
async def permission_denied_handler(request: Request, exc: PermissionDeniedError):
    logger.info("Permission denied", extra=_request_log_context(request))
    return JSONResponse(status_code=403, content={"detail": str(exc)})


@app.exception_handler(IdentityProviderError)
async def identity_provider_error_handler(request: Request, exc: IdentityProviderError):
    logger.warning("Identity provider unavailable", extra=_request_log_context(request))
    return JSONResponse(status_code=502, content={"detail": "Identity provider unavailable"})


@app.middleware("http")
async def request_id_header(request: Request, call_next):
    response = await call_next(request)
    ctx = getattr(request.state, "request_context", None)
    if ctx is not None and ctx.request_id:
        response.headers["X-Request-ID"] = ctx.request_id
    return response

# ============================================================================
# Routers
# ============================================================================

from app.routers import analytics, auth, billing, clients, forms, forms_public, portal, support, users

app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(users.router)
app.include_router(clients.router)
app.include_router(portal.router)
app.include_router(billing.router)
app.include_router(support.router)
app.include_router(analytics.router)
app.include_router(forms.router)
app.include_router(forms_public.router)


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
def health():
    """
    Health check endpoint.

    Verifies database connectivity and returns environment info.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
