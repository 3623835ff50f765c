"""
Interaction Pipeline

One voice exchange, strictly in order:
admission -> transcription -> prompt assembly -> completion ->
metering commit -> speech synthesis.

Provider failures are reported to the operator as detached background
tasks so the notification never delays or breaks the response.
"""

import logging
import time
from pathlib import Path
from typing import Any, AsyncIterator, Optional, Union

from fastapi import BackgroundTasks

from swift_assistant.config.settings import settings
from swift_assistant.domain.interaction import (
    AudioInput,
    InteractionRequest,
    InteractionResult,
    RequestContext,
)
from swift_assistant.domain.interfaces import (
    CompletionProvider,
    Notifier,
    SpeechSynthesisProvider,
    TranscriptionProvider,
)
from swift_assistant.domain.prompt import build_conversation, is_valid_screenshot
from swift_assistant.infrastructure.exceptions import (
    ClientInputInvalid,
    DownstreamUnavailable,
    InternalEmptyResult,
)
from swift_assistant.infrastructure.services.admission import AdmissionGate
from swift_assistant.infrastructure.services.usage_metering import UsageMeter


logger = logging.getLogger(__name__)


class InteractionPipeline:
    """
    Orchestrates a single assistant interaction.

    Rate-limited callers get the "limit reached" audio without any
    transcription or completion call being made.
    """

    def __init__(
        self,
        gate: AdmissionGate,
        meter: UsageMeter,
        transcriber: TranscriptionProvider,
        completer: CompletionProvider,
        synthesizer: SpeechSynthesisProvider,
        notifier: Notifier,
        limit_message: Optional[str] = None,
        limit_audio_path: Optional[str] = None,
    ):
        self._gate = gate
        self._meter = meter
        self._transcriber = transcriber
        self._completer = completer
        self._synthesizer = synthesizer
        self._notifier = notifier
        self.limit_message = limit_message or settings.limit_message
        self._limit_audio_path = limit_audio_path
        self._limit_audio: Optional[bytes] = None

    async def run(
        self,
        request: InteractionRequest,
        background: Optional[BackgroundTasks] = None,
    ) -> InteractionResult:
        """
        Run the pipeline for one request.

        Args:
            request: Input, history, screenshot, caller and edge context
            background: Where to attach operator notifications

        Raises:
            Unauthenticated / SubscriptionRequired: refused by the gate
            ClientInputInvalid: unusable audio or screenshot
            DownstreamUnavailable: a provider failed
            InternalEmptyResult: the completion came back empty
        """
        context = request.context
        user = request.user

        decision = await self._gate.admit(user)
        if decision.rate_limited:
            audio = await self._limit_reached_audio(context, background)
            return InteractionResult(
                audio=audio,
                transcript="",
                response_text=self.limit_message,
                rate_limited=True,
                usage_count=decision.count,
                daily_limit=decision.limit,
            )

        if request.screenshot is not None and not is_valid_screenshot(request.screenshot):
            raise ClientInputInvalid("Invalid screenshot")

        with self._timed("transcribe", context):
            transcript = await self._transcribe(request.input)
        if not transcript:
            raise ClientInputInvalid("Invalid audio")

        messages = await build_conversation(
            transcript,
            request.history,
            context,
            screenshot=request.screenshot,
        )

        with self._timed("text completion", context):
            try:
                response_text = await self._completer.complete(messages)
            except DownstreamUnavailable as e:
                self._report(background, e.service, e.message, e.body, context)
                raise

        if not response_text:
            self._report(background, "LLM", "Completion returned no content", None, context)
            raise InternalEmptyResult("Invalid response", service="LLM")

        interaction_id = None
        usage_count = decision.count
        if user is not None:
            interaction_id = await self._meter.record_interaction(user.id, user.email)
            if interaction_id and usage_count is not None:
                usage_count += 1

        with self._timed("speech synthesis", context):
            audio = await self._synthesize(response_text, context, background)

        return InteractionResult(
            audio=audio,
            transcript=transcript,
            response_text=response_text,
            usage_count=usage_count,
            daily_limit=decision.limit,
            interaction_id=interaction_id,
        )

    # =========================================================================
    # Stages
    # =========================================================================

    async def _transcribe(self, user_input: Union[str, AudioInput]) -> Optional[str]:
        if isinstance(user_input, str):
            return user_input.strip() or None

        try:
            return await self._transcriber.transcribe(user_input)
        except Exception as e:
            logger.warning(f"Transcription raised, treating audio as invalid: {e}")
            return None

    async def _synthesize(
        self,
        text: str,
        context: RequestContext,
        background: Optional[BackgroundTasks],
    ) -> AsyncIterator[bytes]:
        try:
            return await self._synthesizer.open_stream(text)
        except DownstreamUnavailable as e:
            self._report(background, e.service, e.message, e.body, context)
            raise

    async def _limit_reached_audio(
        self,
        context: RequestContext,
        background: Optional[BackgroundTasks],
    ) -> Union[bytes, AsyncIterator[bytes]]:
        """Pre-rendered asset when available, live synthesis otherwise."""
        if self._limit_audio is None and self._limit_audio_path:
            path = Path(self._limit_audio_path)
            if path.is_file():
                self._limit_audio = path.read_bytes()
            else:
                logger.warning(f"Limit audio asset {path} not found, synthesizing live")

        if self._limit_audio:
            return self._limit_audio

        return await self._synthesize(self.limit_message, context, background)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _report(
        self,
        background: Optional[BackgroundTasks],
        service: str,
        error: str,
        details: Any,
        context: RequestContext,
    ) -> None:
        """Queue an operator notification to run after the response is sent."""
        if background is None:
            logger.warning(f"No background queue, dropping {service} notification")
            return

        background.add_task(
            self._notifier.notify_error,
            service,
            error,
            details,
            context.correlation_id,
            context.user_agent,
        )

    def _timed(self, stage: str, context: RequestContext) -> "_StageTimer":
        return _StageTimer(stage, context.correlation_id)


class _StageTimer:
    """Logs a stage's wall time at DEBUG, tagged with the request id."""

    def __init__(self, stage: str, correlation_id: str):
        self.stage = stage
        self.correlation_id = correlation_id

    def __enter__(self) -> "_StageTimer":
        self._started = time.perf_counter()
        return self

    def __exit__(self, *exc_info) -> None:
        elapsed_ms = (time.perf_counter() - self._started) * 1000
        logger.debug(f"{self.stage} {self.correlation_id}: {elapsed_ms:.0f}ms")
