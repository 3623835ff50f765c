"""
Swift Assistant - FastAPI Application

Main entry point for the backend API.
Provides the voice interaction endpoint plus subscription, usage,
feedback and admin notification endpoints.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from swift_assistant.config.settings import settings
from swift_assistant.infrastructure.exceptions import (
    ClientInputInvalid,
    ConfigurationError,
    DownstreamUnavailable,
    InternalEmptyResult,
    NotFoundError,
    SignatureInvalid,
    StoreError,
    SubscriptionRequired,
    SwiftAssistantError,
    Unauthenticated,
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    logger.info(f"Swift Assistant Backend starting in {settings.environment} mode...")

    if settings.database_url:
        try:
            from swift_assistant.infrastructure.db.database import init_db
            await init_db()
            logger.info("SQLModel database connection pool initialized")
        except Exception as e:
            logger.warning(f"SQLModel database initialization skipped: {e}")

    yield

    # Shutdown
    if settings.database_url:
        try:
            from swift_assistant.infrastructure.db.database import close_db
            await close_db()
            logger.info("SQLModel database connection pool closed")
        except Exception as e:
            logger.warning(f"SQLModel database shutdown error: {e}")

    logger.info("Swift Assistant Backend shutting down...")


app = FastAPI(
    title="Swift Assistant",
    description="Voice assistant with subscription paywall and daily usage limits",
    version="1.0.0",
    lifespan=lifespan,
    debug=settings.debug,
)

# CORS configuration from Settings
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[
        "X-Transcript",
        "X-Response",
        "X-Rate-Limited",
        "X-Usage-Count",
        "X-Daily-Limit",
        "X-Interaction-Id",
    ],
)


# ============================================================================
# Exception Handlers
# ============================================================================

def error_response(status_code: int, exc: SwiftAssistantError) -> JSONResponse:
    """JSON error body; carries any notifications queued before the failure."""
    return JSONResponse(
        status_code=status_code,
        content=exc.to_dict(),
        background=getattr(exc, "background", None),
    )


@app.exception_handler(ClientInputInvalid)
async def client_input_error_handler(request: Request, exc: ClientInputInvalid):
    """Handle unusable client input."""
    return error_response(400, exc)


@app.exception_handler(SignatureInvalid)
async def signature_error_handler(request: Request, exc: SignatureInvalid):
    """Handle unverifiable webhook payloads."""
    return error_response(400, exc)


@app.exception_handler(Unauthenticated)
async def unauthenticated_error_handler(request: Request, exc: Unauthenticated):
    """Handle missing authentication."""
    return error_response(401, exc)


@app.exception_handler(SubscriptionRequired)
async def subscription_required_handler(request: Request, exc: SubscriptionRequired):
    """Handle paywall refusals."""
    return error_response(403, exc)


@app.exception_handler(NotFoundError)
async def not_found_error_handler(request: Request, exc: NotFoundError):
    """Handle not found errors."""
    return error_response(404, exc)


@app.exception_handler(DownstreamUnavailable)
async def downstream_error_handler(request: Request, exc: DownstreamUnavailable):
    """Handle provider failures without leaking provider detail."""
    logger.error(f"{exc.service} unavailable: {exc.message}")
    return error_response(500, exc)


@app.exception_handler(InternalEmptyResult)
async def empty_result_handler(request: Request, exc: InternalEmptyResult):
    """Handle providers that succeeded with no content."""
    logger.error(f"{exc.service} returned no content")
    return error_response(500, exc)


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    """Handle database failures on integrity-critical paths."""
    return error_response(500, exc)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    """Handle missing configuration."""
    logger.error(f"Configuration error: {exc.message} {exc.details}")
    return error_response(500, exc)


@app.exception_handler(SwiftAssistantError)
async def general_error_handler(request: Request, exc: SwiftAssistantError):
    """Handle all other application errors."""
    return error_response(500, exc)


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "swift-assistant"}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Swift Assistant API",
        "version": "1.0.0",
        "docs": "/docs",
    }


# ============================================================================
# Import and register routers
# ============================================================================

from swift_assistant.api.routes import (  # noqa: E402
    admin,
    feedback,
    interact,
    subscriptions,
    telegram,
    usage,
    webhooks,
)

app.include_router(interact.router, prefix="/api", tags=["Interaction"])
app.include_router(usage.router, prefix="/api", tags=["Usage"])
app.include_router(subscriptions.router, prefix="/api", tags=["Subscriptions"])
app.include_router(webhooks.router, prefix="/api", tags=["Webhooks"])
app.include_router(feedback.router, prefix="/api", tags=["Feedback"])
app.include_router(telegram.router, prefix="/api", tags=["Notifications"])
app.include_router(admin.router, prefix="/api")
