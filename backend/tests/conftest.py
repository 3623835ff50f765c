"""
Test configuration and fixtures for Swift Assistant.

Provides in-memory fakes for every service interface, an on-disk SQLite
database for the repositories, and a TestClient wired to the fakes.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from swift_assistant.domain.interaction import AudioInput, CurrentUser
from swift_assistant.domain.interfaces import (
    AnalyticsSink,
    CompletionProvider,
    EntitlementStore,
    InteractionStore,
    Notifier,
    SpeechSynthesisProvider,
    TranscriptionProvider,
)
from swift_assistant.domain.subscription import Entitlement, SubscriptionStatus
from swift_assistant.infrastructure.db import models  # noqa: F401
from swift_assistant.infrastructure.exceptions import StoreError
from swift_assistant.infrastructure.services.admission import AdmissionGate
from swift_assistant.infrastructure.services.interaction_pipeline import InteractionPipeline
from swift_assistant.infrastructure.services.usage_metering import UsageMeter


# =============================================================================
# Fakes
# =============================================================================

class FakeEntitlementStore(EntitlementStore):
    """Users table held in a dict keyed by user id."""

    def __init__(self):
        self.users: Dict[str, Dict[str, Any]] = {}
        self.fail = False

    def _check(self):
        if self.fail:
            raise StoreError("store down")

    def add_user(self, user_id: str, email: Optional[str] = None, **fields):
        self.users[user_id] = {
            "email": email,
            "status": SubscriptionStatus.INACTIVE,
            "disable_usage_limit": False,
            "customer_id": None,
            "subscription_id": None,
            "start_date": None,
            "end_date": None,
            **fields,
        }

    async def get_entitlement(self, user_id: str) -> Optional[Entitlement]:
        self._check()
        row = self.users.get(user_id)
        if row is None:
            return None
        return Entitlement(
            user_id=user_id,
            status=row["status"],
            disable_usage_limit=row["disable_usage_limit"],
            customer_id=row["customer_id"],
            subscription_id=row["subscription_id"],
            start_date=row["start_date"],
            end_date=row["end_date"],
        )

    async def upsert_user_stub(self, user_id: str, email: Optional[str] = None) -> bool:
        self._check()
        if user_id in self.users:
            return False
        self.add_user(user_id, email)
        return True

    async def link_customer_by_user_id(self, user_id: str, customer_id: str) -> None:
        self._check()
        await self.upsert_user_stub(user_id)
        self.users[user_id]["customer_id"] = customer_id

    async def link_customer_by_email(self, email: str, customer_id: str) -> None:
        self._check()
        for row in self.users.values():
            if row["email"] == email:
                row["customer_id"] = customer_id

    def _user_for_customer(self, customer_id: str) -> Optional[str]:
        for user_id, row in self.users.items():
            if row["customer_id"] == customer_id:
                return user_id
        return None

    async def set_subscription_active(self, customer_id, subscription_id, start, end):
        return await self.set_subscription_status(
            customer_id,
            SubscriptionStatus.ACTIVE,
            stripe_subscription_id=subscription_id,
            subscription_start_date=start,
            subscription_end_date=end,
        )

    async def set_subscription_status(self, customer_id, status, **fields):
        self._check()
        user_id = self._user_for_customer(customer_id)
        if user_id is None:
            return None
        row = self.users[user_id]
        row["status"] = status
        if fields.get("stripe_subscription_id"):
            row["subscription_id"] = fields["stripe_subscription_id"]
        if fields.get("subscription_start_date"):
            row["start_date"] = fields["subscription_start_date"]
        if fields.get("subscription_end_date"):
            row["end_date"] = fields["subscription_end_date"]
        return user_id


class FakeInteractionStore(InteractionStore):
    """Interaction log as a list of (user_id, created_at) pairs."""

    def __init__(self):
        self.rows: List[tuple] = []
        self.fail = False

    def _check(self):
        if self.fail:
            raise StoreError("store down")

    def seed(self, user_id: str, count: int, at: Optional[datetime] = None):
        at = at or datetime.now(timezone.utc).replace(tzinfo=None)
        self.rows.extend((user_id, at) for _ in range(count))

    async def count_between(self, user_id, start, end) -> int:
        self._check()
        return sum(1 for uid, at in self.rows if uid == user_id and start <= at < end)

    async def count_total(self, user_id) -> int:
        self._check()
        return sum(1 for uid, _ in self.rows if uid == user_id)

    async def create(self, user_id) -> str:
        self._check()
        self.rows.append((user_id, datetime.now(timezone.utc).replace(tzinfo=None)))
        return f"int_{len(self.rows)}"


class FakeTranscriber(TranscriptionProvider):
    def __init__(self, text: Optional[str] = "what time is it"):
        self.text = text
        self.calls: List[AudioInput] = []

    async def transcribe(self, audio):
        self.calls.append(audio)
        if not audio.data:
            return None
        return self.text


class FakeCompleter(CompletionProvider):
    def __init__(self, reply: Optional[str] = "It is noon.", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls: List[list] = []

    async def complete(self, messages):
        self.calls.append(messages)
        if self.error:
            raise self.error
        return self.reply


class FakeSynthesizer(SpeechSynthesisProvider):
    def __init__(self, audio: bytes = b"\x00\x01pcm", error: Optional[Exception] = None):
        self.audio = audio
        self.error = error
        self.calls: List[str] = []

    async def synthesize(self, text):
        self.calls.append(text)
        if self.error:
            raise self.error
        return self.audio


class FakeNotifier(Notifier):
    def __init__(self):
        self.errors: List[tuple] = []
        self.events: List[tuple] = []
        self.signups: List[tuple] = []
        self.payment_failures: List[tuple] = []

    async def notify(self, kind, message, details=None, correlation_id=None):
        self.events.append((kind, message, details, correlation_id))
        return True

    async def notify_error(self, service, error, details=None, correlation_id=None, user_agent=None):
        self.errors.append((service, error, details, correlation_id, user_agent))
        return True

    async def notify_user_signup(self, email, method="email"):
        self.signups.append((email, method))
        return True

    async def notify_payment_failed(self, customer_id, user_id=None):
        self.payment_failures.append((customer_id, user_id))
        return True


class FakeAnalytics(AnalyticsSink):
    def __init__(self):
        self.events: List[tuple] = []

    async def track(self, event_type, user_id=None, metadata=None):
        value = getattr(event_type, "value", event_type)
        self.events.append((value, user_id, metadata))

    def of_type(self, event_type: str) -> List[tuple]:
        return [event for event in self.events if event[0] == event_type]


# =============================================================================
# Fake Fixtures
# =============================================================================

@pytest.fixture
def entitlement_store():
    return FakeEntitlementStore()


@pytest.fixture
def interaction_store():
    return FakeInteractionStore()


@pytest.fixture
def transcriber():
    return FakeTranscriber()


@pytest.fixture
def completer():
    return FakeCompleter()


@pytest.fixture
def synthesizer():
    return FakeSynthesizer()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def analytics():
    return FakeAnalytics()


@pytest.fixture
def meter(interaction_store, entitlement_store):
    return UsageMeter(interaction_store, entitlement_store)


@pytest.fixture
def gate(entitlement_store, meter):
    return AdmissionGate(entitlement_store, meter, daily_limit=10)


@pytest.fixture
def pipeline(gate, meter, transcriber, completer, synthesizer, notifier):
    return InteractionPipeline(
        gate=gate,
        meter=meter,
        transcriber=transcriber,
        completer=completer,
        synthesizer=synthesizer,
        notifier=notifier,
        limit_message="Daily limit reached.",
        limit_audio_path=None,
    )


@pytest.fixture
def test_user():
    return CurrentUser(id="user-1", email="ada@example.com")


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture
async def session_context(tmp_path):
    """
    Unit-of-work factory over a fresh SQLite database.

    Same contract as ``get_session_context``: commit on exit, roll back on
    error.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    @asynccontextmanager
    async def context():
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    yield context

    await engine.dispose()


# =============================================================================
# App Fixtures
# =============================================================================

@pytest.fixture
def app():
    """Get the FastAPI application."""
    from swift_assistant.main import app
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    """Get synchronous test client."""
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def authenticated(app, test_user):
    """Resolve every request to ``test_user`` without a JWT."""
    from swift_assistant.api.dependencies import get_current_user, get_optional_user

    app.dependency_overrides[get_current_user] = lambda: test_user
    app.dependency_overrides[get_optional_user] = lambda: test_user
    return test_user
