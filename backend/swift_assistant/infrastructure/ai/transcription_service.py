"""
Speech-to-Text Service

Whisper transcription over the OpenAI audio API. The base URL is
configurable so an OpenAI-compatible host (Groq) can serve the model.
"""

import logging
from typing import Optional

from openai import AsyncOpenAI, OpenAIError

from swift_assistant.config.settings import settings
from swift_assistant.domain.interaction import AudioInput
from swift_assistant.domain.interfaces import TranscriptionProvider
from swift_assistant.infrastructure.exceptions import ConfigurationError


logger = logging.getLogger(__name__)


class TranscriptionService(TranscriptionProvider):
    """Transcribes one uploaded audio blob."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
    ):
        if client is None and not settings.stt_api_key:
            raise ConfigurationError("STT API key is not configured", missing_keys=["STT_API_KEY"])

        self._client = client or AsyncOpenAI(
            api_key=settings.stt_api_key,
            base_url=settings.stt_base_url,
            timeout=settings.provider_timeout_seconds,
        )
        self._model = model or settings.stt_model

    async def transcribe(self, audio: AudioInput) -> Optional[str]:
        """
        Transcribe audio to text.

        Returns:
            The stripped transcript, or None when the audio is empty, the
            provider fails, or nothing intelligible was heard
        """
        if not audio.data:
            logger.info("[STT] Empty audio upload")
            return None

        try:
            transcription = await self._client.audio.transcriptions.create(
                file=(audio.filename, audio.data, audio.content_type or "audio/wav"),
                model=self._model,
            )
        except OpenAIError as e:
            logger.warning(f"[STT] Transcription failed: {e}")
            return None

        text = (transcription.text or "").strip()
        return text or None
