"""
Chat Completion Service

Single non-streaming chat completion against an OpenAI-compatible API.
"""

import logging
from typing import Any, Dict, List, Optional

from openai import APIStatusError, AsyncOpenAI, OpenAIError

from swift_assistant.config.settings import settings
from swift_assistant.domain.interfaces import CompletionProvider
from swift_assistant.infrastructure.exceptions import ConfigurationError, DownstreamUnavailable


logger = logging.getLogger(__name__)


class CompletionService(CompletionProvider):
    """Chat completion provider."""

    SERVICE_NAME = "LLM"

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
    ):
        if client is None and not settings.llm_api_key:
            raise ConfigurationError("LLM API key is not configured", missing_keys=["LLM_API_KEY"])

        self._client = client or AsyncOpenAI(
            api_key=settings.llm_api_key,
            base_url=settings.llm_base_url,
            timeout=settings.provider_timeout_seconds,
        )
        self._model = model or settings.llm_model

    async def complete(self, messages: List[Dict[str, Any]]) -> Optional[str]:
        """
        Get the assistant's reply for ``messages``.

        Raises:
            DownstreamUnavailable: transport error or non-2xx response
        """
        try:
            completion = await self._client.chat.completions.create(
                model=self._model,
                messages=messages,
            )
        except APIStatusError as e:
            logger.error(f"[LLM] Completion failed with HTTP {e.status_code}: {e.message}")
            raise DownstreamUnavailable(
                "Completion request failed",
                service=self.SERVICE_NAME,
                body=str(e.body) if e.body is not None else e.message,
                status_code=e.status_code,
                original_error=e,
            )
        except OpenAIError as e:
            logger.error(f"[LLM] Completion failed: {e}")
            raise DownstreamUnavailable(
                "Completion request failed",
                service=self.SERVICE_NAME,
                body=str(e),
                original_error=e,
            )

        if not completion.choices:
            return None

        content = completion.choices[0].message.content
        return content.strip() if content else None
