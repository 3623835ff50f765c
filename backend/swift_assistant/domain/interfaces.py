"""
Service Interfaces for Swift Assistant

One narrow interface per external capability so the pipeline and the
lifecycle manager can be constructed with fakes in tests.
Follows Interface Segregation and Dependency Inversion principles.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Optional

from swift_assistant.domain.interaction import AudioInput
from swift_assistant.domain.subscription import Entitlement, SubscriptionStatus


class TranscriptionProvider(ABC):
    """Speech-to-text."""

    @abstractmethod
    async def transcribe(self, audio: AudioInput) -> Optional[str]:
        """Return the stripped transcript, or None for empty/unusable audio."""


class CompletionProvider(ABC):
    """Chat completion."""

    @abstractmethod
    async def complete(self, messages: List[Dict[str, Any]]) -> Optional[str]:
        """
        Return the assistant reply text.

        Raises DownstreamUnavailable on transport or non-2xx failures.
        Returns None (or empty) when the provider answered without content.
        """


class SpeechSynthesisProvider(ABC):
    """Text-to-speech."""

    @abstractmethod
    async def synthesize(self, text: str) -> bytes:
        """Return raw audio bytes; raises DownstreamUnavailable on failure."""

    async def open_stream(self, text: str) -> AsyncIterator[bytes]:
        """
        Start synthesis and return the audio as an async chunk iterator.

        Provider failures raise here, before the first chunk. The default
        buffers the whole clip and yields it once.
        """
        return _single_chunk(await self.synthesize(text))


async def _single_chunk(audio: bytes) -> AsyncIterator[bytes]:
    yield audio


class EntitlementStore(ABC):
    """Per-user subscription and override state."""

    @abstractmethod
    async def get_entitlement(self, user_id: str) -> Optional[Entitlement]:
        ...

    @abstractmethod
    async def upsert_user_stub(self, user_id: str, email: Optional[str] = None) -> bool:
        """Create the user if absent; True only when a row was inserted."""

    @abstractmethod
    async def link_customer_by_user_id(self, user_id: str, customer_id: str) -> None:
        ...

    @abstractmethod
    async def link_customer_by_email(self, email: str, customer_id: str) -> None:
        ...

    @abstractmethod
    async def set_subscription_active(
        self,
        customer_id: str,
        subscription_id: str,
        start: datetime,
        end: datetime,
    ) -> Optional[str]:
        """Returns the affected user id, if any."""

    @abstractmethod
    async def set_subscription_status(
        self,
        customer_id: str,
        status: SubscriptionStatus,
        **fields: Any,
    ) -> Optional[str]:
        """Returns the affected user id, if any."""


class InteractionStore(ABC):
    """Append-only interaction log used for metering."""

    @abstractmethod
    async def count_between(self, user_id: str, start: datetime, end: datetime) -> int:
        """Rows with start <= created_at < end."""

    @abstractmethod
    async def count_total(self, user_id: str) -> int:
        ...

    @abstractmethod
    async def create(self, user_id: str) -> str:
        """Insert one row and return its id."""


class Notifier(ABC):
    """Operator alert channel. Implementations never raise."""

    @abstractmethod
    async def notify(
        self,
        kind: str,
        message: str,
        details: Any = None,
        correlation_id: Optional[str] = None,
    ) -> bool:
        ...

    @abstractmethod
    async def notify_error(
        self,
        service: str,
        error: str,
        details: Any = None,
        correlation_id: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> bool:
        ...


class AnalyticsSink(ABC):
    """Write-only analytics events. Implementations never raise."""

    @abstractmethod
    async def track(
        self,
        event_type: str,
        user_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        ...
