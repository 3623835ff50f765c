"""
Text-to-Speech Service

Cartesia "bytes" endpoint returning raw 32-bit float PCM.
"""

import logging
from typing import AsyncIterator, Optional

import httpx

from swift_assistant.config.settings import settings
from swift_assistant.domain.interfaces import SpeechSynthesisProvider
from swift_assistant.infrastructure.exceptions import DownstreamUnavailable


logger = logging.getLogger(__name__)


class SpeechSynthesisService(SpeechSynthesisProvider):
    """Cartesia TTS provider."""

    SERVICE_NAME = "Cartesia"

    def __init__(
        self,
        api_key: Optional[str] = None,
        voice_id: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_key = api_key or settings.cartesia_api_key
        self._voice_id = voice_id or settings.cartesia_voice_id
        self._url = f"{settings.cartesia_base_url}/tts/bytes"
        self._transport = transport

    @property
    def output_format(self) -> dict:
        return {
            "container": "raw",
            "encoding": "pcm_f32le",
            "sample_rate": settings.cartesia_sample_rate,
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=settings.provider_timeout_seconds,
            transport=self._transport,
        )

    def _build_request(self, client: httpx.AsyncClient, text: str) -> httpx.Request:
        return client.build_request(
            "POST",
            self._url,
            headers={
                "Cartesia-Version": settings.cartesia_version,
                "Content-Type": "application/json",
                "X-API-Key": self._api_key or "",
            },
            json={
                "model_id": settings.cartesia_model_id,
                "transcript": text,
                "voice": {"mode": "id", "id": self._voice_id},
                "output_format": self.output_format,
            },
        )

    def _request_failed(self, error: httpx.HTTPError) -> DownstreamUnavailable:
        logger.error(f"[TTS] Request failed: {error}")
        return DownstreamUnavailable(
            "Speech synthesis request failed",
            service=self.SERVICE_NAME,
            body=str(error),
            original_error=error,
        )

    def _bad_status(self, status_code: int, body: str) -> DownstreamUnavailable:
        logger.error(f"[TTS] HTTP {status_code}: {body}")
        return DownstreamUnavailable(
            "Speech synthesis failed",
            service=self.SERVICE_NAME,
            body=body,
            status_code=status_code,
        )

    async def synthesize(self, text: str) -> bytes:
        """
        Synthesize ``text`` to raw PCM audio.

        Raises:
            DownstreamUnavailable: transport error or non-2xx response; the
                provider's raw body is kept on the exception
        """
        try:
            async with self._client() as client:
                response = await client.send(self._build_request(client, text))
        except httpx.HTTPError as e:
            raise self._request_failed(e)

        if not response.is_success:
            raise self._bad_status(response.status_code, response.text)

        return response.content

    async def open_stream(self, text: str) -> AsyncIterator[bytes]:
        """
        Send the request and hand back the audio body as it arrives.

        The status is checked before returning, so a failed synthesis
        raises here and never reaches the client as a partial body.
        """
        client = self._client()
        try:
            response = await client.send(self._build_request(client, text), stream=True)
        except httpx.HTTPError as e:
            await client.aclose()
            raise self._request_failed(e)

        if not response.is_success:
            try:
                body = (await response.aread()).decode(errors="replace")
            except httpx.HTTPError as e:
                body = str(e)
            finally:
                await response.aclose()
                await client.aclose()
            raise self._bad_status(response.status_code, body)

        return self._iter_audio(client, response)

    async def _iter_audio(
        self,
        client: httpx.AsyncClient,
        response: httpx.Response,
    ) -> AsyncIterator[bytes]:
        try:
            async for chunk in response.aiter_bytes():
                yield chunk
        except httpx.HTTPError as e:
            logger.error(f"[TTS] Stream interrupted: {e}")
            raise
        finally:
            await response.aclose()
            await client.aclose()
