"""
Usage API Route

Today's interaction count against the daily limit, for the usage meter UI.
"""

import logging

from fastapi import APIRouter, Depends

from swift_assistant.api.dependencies import (
    get_admission_gate,
    get_current_user,
    get_usage_meter,
)
from swift_assistant.domain.interaction import CurrentUser
from swift_assistant.domain.usage import UsageResponse
from swift_assistant.infrastructure.services.admission import AdmissionGate
from swift_assistant.infrastructure.services.usage_metering import UsageMeter


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/usage", response_model=UsageResponse)
async def get_usage(
    user: CurrentUser = Depends(get_current_user),
    meter: UsageMeter = Depends(get_usage_meter),
    gate: AdmissionGate = Depends(get_admission_gate),
):
    """Count, remaining, limit and percentage for the current UTC day."""
    usage = await meter.check_daily_limit(user.id, gate.daily_limit)
    unlimited = await gate.is_unlimited(user.id)

    return UsageResponse.build(usage.count, gate.daily_limit, unlimited=unlimited)
