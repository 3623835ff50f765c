"""
API Dependencies

FastAPI dependency injection for authentication, request context and the
application services.

Security: JWT tokens are verified cryptographically using Supabase JWKS (ES256)
with HS256 fallback via the JWT secret. Never decode without verification.
"""

import logging
import uuid
from functools import lru_cache
from typing import Optional

import jwt
from jwt import PyJWKClient
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from swift_assistant.config.settings import get_settings
from swift_assistant.domain.interaction import CurrentUser, RequestContext
from swift_assistant.infrastructure.ai.completion_service import CompletionService
from swift_assistant.infrastructure.ai.speech_synthesis_service import SpeechSynthesisService
from swift_assistant.infrastructure.ai.transcription_service import TranscriptionService
from swift_assistant.infrastructure.db.repositories import (
    EntitlementRepository,
    FeedbackRepository,
    get_entitlement_repository,
    get_feedback_repository,
    get_interaction_repository,
)
from swift_assistant.infrastructure.notifications.notifier import TelegramNotifier, get_notifier
from swift_assistant.infrastructure.notifications.telegram_service import (
    TelegramService,
    get_telegram_service,
)
from swift_assistant.infrastructure.payments.stripe_service import StripeService, get_stripe_service
from swift_assistant.infrastructure.services.admission import AdmissionGate
from swift_assistant.infrastructure.services.analytics_service import (
    AnalyticsService,
    get_analytics_service,
)
from swift_assistant.infrastructure.services.interaction_pipeline import InteractionPipeline
from swift_assistant.infrastructure.services.subscription_lifecycle import (
    SubscriptionLifecycleManager,
)
from swift_assistant.infrastructure.services.usage_metering import UsageMeter


logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

# Cached JWKS client; PyJWKClient caches keys internally.
_jwks_client: Optional[PyJWKClient] = None


def _get_jwks_client() -> PyJWKClient:
    """Return a singleton PyJWKClient for the Supabase JWKS endpoint."""
    global _jwks_client
    if _jwks_client is None:
        settings = get_settings()
        jwks_url = f"{settings.supabase_url}/auth/v1/.well-known/jwks.json"
        _jwks_client = PyJWKClient(jwks_url, cache_keys=True)
    return _jwks_client


def _decode_with_jwks(token: str, issuer: str) -> dict:
    """Verify JWT using Supabase JWKS endpoint (ES256 asymmetric keys)."""
    client = _get_jwks_client()
    signing_key = client.get_signing_key_from_jwt(token)
    return jwt.decode(
        token,
        signing_key.key,
        algorithms=["ES256"],
        issuer=issuer,
        audience="authenticated",
        options={"require": ["exp", "sub", "iss"]},
    )


def _decode_with_secret(token: str, secret: str, issuer: str) -> dict:
    """Verify JWT using HS256 symmetric secret (legacy Supabase signing)."""
    return jwt.decode(
        token,
        secret,
        algorithms=["HS256"],
        issuer=issuer,
        audience="authenticated",
        options={"require": ["exp", "sub", "iss"]},
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CurrentUser:
    """
    Verify a Supabase JWT and return the caller.

    Verification strategy (in order):
      1. JWKS (ES256), supports key rotation automatically.
      2. HS256 with ``SUPABASE_JWT_SECRET`` for legacy signing.

    Returns:
        CurrentUser with ``sub`` as id and the ``email`` claim

    Raises:
        HTTPException 401: token missing, expired, or invalid.
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = credentials.credentials
    settings = get_settings()
    issuer = f"{settings.supabase_url}/auth/v1"

    payload: Optional[dict] = None

    # --- Strategy 1: JWKS (ES256) ---
    try:
        payload = _decode_with_jwks(token, issuer)
    except (jwt.exceptions.PyJWKClientError, jwt.InvalidTokenError) as jwks_err:
        logger.debug("JWKS verification failed, trying HS256 fallback: %s", jwks_err)

    # --- Strategy 2: HS256 fallback ---
    if payload is None and settings.supabase_jwt_secret:
        try:
            payload = _decode_with_secret(token, settings.supabase_jwt_secret, issuer)
        except jwt.ExpiredSignatureError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token has expired",
            )
        except jwt.InvalidTokenError as e:
            logger.warning("HS256 JWT verification also failed: %s", e)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or unverifiable token",
        )

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing user ID",
        )

    return CurrentUser(id=user_id, email=payload.get("email"))


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[CurrentUser]:
    """
    Optionally resolve the caller.

    Returns ``None`` if no token is provided or it does not verify.
    """
    if not credentials:
        return None

    try:
        return await get_current_user(credentials)
    except HTTPException:
        return None


def get_request_context(request: Request) -> RequestContext:
    """Coarse location, time zone and a correlation id from edge headers."""
    headers = request.headers
    correlation_id = (
        headers.get("x-vercel-id")
        or headers.get("x-request-id")
        or str(uuid.uuid4())
    )
    return RequestContext(
        city=headers.get("x-vercel-ip-city"),
        region=headers.get("x-vercel-ip-country-region"),
        country=headers.get("x-vercel-ip-country"),
        timezone=headers.get("x-vercel-ip-timezone"),
        correlation_id=correlation_id,
        user_agent=headers.get("user-agent"),
    )


def request_origin(request: Request) -> str:
    """Origin used to build redirect URLs, falling back to APP_URL."""
    return request.headers.get("origin") or get_settings().app_url


# =============================================================================
# Service Providers
# =============================================================================

def get_entitlement_store() -> EntitlementRepository:
    return get_entitlement_repository()


def get_feedback_store() -> FeedbackRepository:
    return get_feedback_repository()


def get_analytics() -> AnalyticsService:
    return get_analytics_service()


def get_stripe() -> StripeService:
    return get_stripe_service()


def get_admin_notifier() -> TelegramNotifier:
    return get_notifier()


def get_telegram() -> TelegramService:
    return get_telegram_service()


@lru_cache
def get_usage_meter() -> UsageMeter:
    return UsageMeter(get_interaction_repository(), get_entitlement_repository())


@lru_cache
def get_admission_gate() -> AdmissionGate:
    settings = get_settings()
    return AdmissionGate(
        get_entitlement_repository(),
        get_usage_meter(),
        daily_limit=settings.daily_interaction_limit,
        paywall_enabled=settings.paywall_enabled,
        allow_anonymous=settings.allow_anonymous_interactions,
    )


@lru_cache
def get_lifecycle_manager() -> SubscriptionLifecycleManager:
    return SubscriptionLifecycleManager(
        get_entitlement_repository(),
        get_stripe_service(),
        get_analytics_service(),
        notifier=get_notifier(),
    )


@lru_cache
def get_interaction_pipeline() -> InteractionPipeline:
    settings = get_settings()
    return InteractionPipeline(
        gate=get_admission_gate(),
        meter=get_usage_meter(),
        transcriber=TranscriptionService(),
        completer=CompletionService(),
        synthesizer=SpeechSynthesisService(),
        notifier=get_notifier(),
        limit_message=settings.limit_message,
        limit_audio_path=settings.limit_audio_path,
    )
