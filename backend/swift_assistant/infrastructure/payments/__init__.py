"""
Payments Infrastructure Module

Stripe checkout, billing portal and webhook verification.
"""

from swift_assistant.infrastructure.payments.stripe_service import (
    StripeService,
    StripeServiceError,
    get_stripe_service,
)

__all__ = ["StripeService", "StripeServiceError", "get_stripe_service"]
