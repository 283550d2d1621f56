"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from assettrack.core.config import settings
from assettrack.core.structured_logging import build_log_context, configure_logging
from assettrack.db.session import engine
from assettrack.services.errors import (
    BackendUnavailableError,
    EmptySourcePayloadError,
    IdentityConflictError,
    LineageServiceError,
    NotFoundError,
    OperationCancelledError,
    PartitionMismatchError,
    UnsupportedOperationError,
)

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
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,  # 10% of requests for performance monitoring
        send_default_pii=False,  # Customer names live in report payloads
    )
    logging.info("Sentry initialized for error tracking")

# ============================================================================
# Rate Limiting
# ============================================================================

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from assettrack.core.rate_limit import limiter


# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="Asset Tracking API",
    description="Asset identity, catalog search, and report lineage API",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# ============================================================================
# Service error mapping
# ============================================================================

# 499: client closed request (nginx convention)
ERROR_STATUS_CODES: list[tuple[type[LineageServiceError], int]] = [
    (NotFoundError, 404),
    (PartitionMismatchError, 409),
    (IdentityConflictError, 409),
    (EmptySourcePayloadError, 422),
    (UnsupportedOperationError, 422),
    (BackendUnavailableError, 503),
    (OperationCancelledError, 499),
]


def status_code_for(exc: LineageServiceError) -> int:
    for error_type, code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return code
    return 400


@app.exception_handler(LineageServiceError)
async def lineage_error_handler(request: Request, exc: LineageServiceError) -> JSONResponse:
    code = status_code_for(exc)
    if code >= 500:
        logger.warning(
            f"{type(exc).__name__}: {exc}",
            extra=build_log_context(route=request.url.path, method=request.method),
        )
    return JSONResponse(
        status_code=code,
        content={
            "detail": str(exc),
            "error": type(exc).__name__,
            "retryable": exc.retryable,
        },
    )


# ============================================================================
# Routers
# ============================================================================

from assettrack.routers import (
    assets,
    catalog,
    customers,
    identities,
    jobs,
    lineage,
    reports,
    testing_history,
)

app.include_router(customers.router, prefix="/customers", tags=["customers"])
app.include_router(jobs.router, prefix="/jobs", tags=["jobs"])
app.include_router(identities.router, prefix="/identities", tags=["identities"])
app.include_router(testing_history.router, prefix="/assets", tags=["testing-history"])
app.include_router(assets.router, prefix="/assets", tags=["assets"])
app.include_router(reports.router, prefix="/reports", tags=["reports"])
app.include_router(catalog.router, prefix="/catalog", tags=["catalog"])
app.include_router(lineage.router, prefix="/lineage", tags=["lineage"])


@app.get("/health")
def health():
    """
    Health check endpoint.

    Verifies database connectivity and returns environment info.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
