"""
Interaction API Route

POST /interact: one spoken (or typed) turn in, synthesized speech out.
"""

import json
import logging
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response
from fastapi.responses import StreamingResponse
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from swift_assistant.api.dependencies import (
    get_interaction_pipeline,
    get_optional_user,
    get_request_context,
)
from swift_assistant.domain.interaction import (
    AudioInput,
    ChatTurn,
    CurrentUser,
    InteractionRequest,
    InteractionResult,
    RequestContext,
)
from swift_assistant.infrastructure.exceptions import ClientInputInvalid, SwiftAssistantError
from swift_assistant.infrastructure.services.interaction_pipeline import InteractionPipeline


logger = logging.getLogger(__name__)

router = APIRouter()

AUDIO_MEDIA_TYPE = "application/octet-stream"


def encode_header(value: str) -> str:
    """Percent-encode like JavaScript's encodeURIComponent."""
    return quote(value, safe="!~*'()")


def parse_history(raw_messages: List[str]) -> List[ChatTurn]:
    """Decode the repeated ``message`` form fields into chat turns."""
    try:
        return [ChatTurn.model_validate(json.loads(raw)) for raw in raw_messages]
    except (ValueError, TypeError, ValidationError) as e:
        raise ClientInputInvalid("Invalid request", details={"field": "message"}, original_error=e)


def build_headers(result: InteractionResult) -> dict:
    headers = {
        "X-Transcript": encode_header(result.transcript),
        "X-Response": encode_header(result.response_text),
    }
    if result.rate_limited:
        headers["X-Rate-Limited"] = "true"
    if result.usage_count is not None:
        headers["X-Usage-Count"] = str(result.usage_count)
    if result.daily_limit is not None:
        headers["X-Daily-Limit"] = str(result.daily_limit)
    if result.interaction_id:
        headers["X-Interaction-Id"] = result.interaction_id
    return headers


@router.post("/interact")
async def interact(
    request: Request,
    background_tasks: BackgroundTasks,
    user: Optional[CurrentUser] = Depends(get_optional_user),
    context: RequestContext = Depends(get_request_context),
    pipeline: InteractionPipeline = Depends(get_interaction_pipeline),
):
    """
    Run one assistant exchange.

    Multipart form fields:
        input: text, or an audio file
        message: repeated JSON ``{role, content}`` prior turns
        screenshot: optional ``data:image/...;base64,`` URL

    Returns the synthesized audio, streamed as it arrives from the
    provider, with the transcript and reply URL-encoded in
    ``X-Transcript`` / ``X-Response``.
    """
    try:
        form = await request.form()
    except Exception as e:
        raise ClientInputInvalid("Invalid request", original_error=e)

    raw_input = form.get("input")
    if isinstance(raw_input, UploadFile):
        user_input = AudioInput(
            data=await raw_input.read(),
            filename=raw_input.filename or "audio.wav",
            content_type=raw_input.content_type,
        )
    elif isinstance(raw_input, str):
        user_input = raw_input
    else:
        raise ClientInputInvalid("Invalid request", details={"field": "input"})

    screenshot = form.get("screenshot")
    if screenshot is not None and not isinstance(screenshot, str):
        raise ClientInputInvalid("Invalid request", details={"field": "screenshot"})

    interaction = InteractionRequest(
        input=user_input,
        history=parse_history([m for m in form.getlist("message") if isinstance(m, str)]),
        screenshot=screenshot or None,
        user=user,
        context=context,
    )

    try:
        result = await pipeline.run(interaction, background_tasks)
    except SwiftAssistantError as e:
        # Error responses carry the queued operator notifications
        e.background = background_tasks
        raise

    headers = build_headers(result)
    if isinstance(result.audio, bytes):
        return Response(
            content=result.audio,
            media_type=AUDIO_MEDIA_TYPE,
            headers=headers,
            background=background_tasks,
        )

    # Provider status was checked before the first chunk
    return StreamingResponse(
        result.audio,
        media_type=AUDIO_MEDIA_TYPE,
        headers=headers,
        background=background_tasks,
    )
