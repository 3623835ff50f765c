# API Routes Module
from swift_assistant.api.routes import (
    interact,
    usage,
    subscriptions,
    webhooks,
    feedback,
    admin,
    telegram,
)

__all__ = [
    "interact",
    "usage",
    "subscriptions",
    "webhooks",
    "feedback",
    "admin",
    "telegram",
]
