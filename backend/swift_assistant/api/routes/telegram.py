"""
Signup Notification Route

Called by the web client after sign-in. Creates the user row on first
sight and alerts the operator only for identities not seen before.
"""

import logging
from typing import Literal

from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import BaseModel

from swift_assistant.api.dependencies import (
    get_admin_notifier,
    get_current_user,
    get_entitlement_store,
)
from swift_assistant.domain.interaction import CurrentUser
from swift_assistant.infrastructure.db.repositories import EntitlementRepository
from swift_assistant.infrastructure.notifications.notifier import TelegramNotifier


logger = logging.getLogger(__name__)

router = APIRouter()


class SignupNotificationRequest(BaseModel):
    """How the user signed in."""
    method: Literal["email", "google"] = "email"


@router.post("/telegram/signup-notification")
async def signup_notification(
    background_tasks: BackgroundTasks,
    request: SignupNotificationRequest = SignupNotificationRequest(),
    user: CurrentUser = Depends(get_current_user),
    store: EntitlementRepository = Depends(get_entitlement_store),
    notifier: TelegramNotifier = Depends(get_admin_notifier),
):
    """
    Record the identity and announce it if it is new.

    Returning sign-ins are acknowledged without a notification.
    """
    is_new = await store.upsert_user_stub(user.id, user.email)

    if is_new:
        background_tasks.add_task(notifier.notify_user_signup, user.email, request.method)
    else:
        logger.debug(f"Returning sign-in for user {user.id}, not notifying")

    return {"success": True, "notified": is_new}
