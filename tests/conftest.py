"""
Pytest configuration and fixtures.
"""
import os

from cryptography.fernet import Fernet

# Settings are read at import time, so the environment is prepared first
os.environ.setdefault("ENCRYPTION_KEY", Fernet.generate_key().decode())
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("MAX_RETRIES", "1")
os.environ.setdefault("ZOOM_CLIENT_ID", "test-zoom-client")
os.environ.setdefault("ZOOM_CLIENT_SECRET", "test-zoom-secret")
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-google-client")
os.environ.setdefault("GOOGLE_CLIENT_SECRET", "test-google-secret")
os.environ.setdefault("MICROSOFT_CLIENT_ID", "test-microsoft-client")
os.environ.setdefault("MICROSOFT_CLIENT_SECRET", "test-microsoft-secret")

import pytest
from contextlib import asynccontextmanager
from typing import List, Optional
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from meeting_engine.enums import IntegrationAppType, LocationType
from meeting_engine.meeting.combinations import build_default_registry
from meeting_engine.meeting.interfaces import (
    CalendarEvent,
    CalendarProvider,
    MeetingConfig,
    MeetingInfo,
    MeetingProvider,
    TokenConfig,
)
from meeting_engine.models import Base, Event, User
from meeting_engine.rate_limiters import RateLimiters
from meeting_engine.services.repositories import EventRepository, IntegrationRepository, MeetingRepository

# 2100-01-01T00:00:00Z
FAR_FUTURE_MILLIS = 4102444800000


# ============================================
# DATABASE FIXTURES
# ============================================

@pytest.fixture(scope="function")
async def test_engine():
    """Create a test database engine using in-memory SQLite."""
    # One shared connection, otherwise every session sees its own empty database
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(test_engine):
    """Unit-of-work factory with the same commit/rollback contract as get_db_session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    @asynccontextmanager
    async def _session():
        async with async_session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    return _session


@pytest.fixture
def events(session_factory):
    return EventRepository(session_factory)


@pytest.fixture
def integrations(session_factory):
    return IntegrationRepository(session_factory)


@pytest.fixture
def meetings(session_factory):
    return MeetingRepository(session_factory)


@pytest.fixture
def registry():
    return build_default_registry()


@pytest.fixture
def limiters():
    """Fresh limiters so no state leaks between event loops."""
    return RateLimiters()


# ============================================
# SEED DATA FIXTURES
# ============================================

@pytest.fixture
async def owner(session_factory):
    """Organizer who owns the test events."""
    async with session_factory() as session:
        user = User(email="owner@example.com", name="Olivia Owner", timezone="UTC")
        session.add(user)
        await session.flush()
    return user


@pytest.fixture
def make_event(session_factory, owner):
    """Create an Event owned by ``owner``."""
    async def _make_event(
        location_type: LocationType,
        calendar_id: Optional[str] = None,
        is_private: bool = False,
        title: str = "Intro Call",
    ) -> Event:
        async with session_factory() as session:
            event = Event(
                owner_user_id=owner.id,
                title=title,
                description="30 minute introduction",
                location_type=location_type,
                calendar_id=calendar_id,
                duration=30,
                is_private=is_private,
            )
            session.add(event)
            await session.flush()
        return event

    return _make_event


@pytest.fixture
def connect(integrations, owner):
    """Connect an integration for ``owner`` with a token that is not expired."""
    async def _connect(
        app_type: IntegrationAppType,
        calendar_id: Optional[str] = None,
        access_token: str = None,
        refresh_token: str = "stored-refresh-token",
        expiry_date: Optional[int] = FAR_FUTURE_MILLIS,
    ):
        return await integrations.connect(
            owner.id,
            app_type,
            access_token=access_token or f"{app_type.value.lower()}-access-token",
            refresh_token=refresh_token,
            expiry_date=expiry_date,
            calendar_id=calendar_id,
        )

    return _connect


@pytest.fixture
def booking_payload():
    """Booking for the example in the docs: Ana, 15:00-15:30 UTC."""
    return {
        "guest_name": "Ana",
        "guest_email": "ana@x.com",
        "start_time": "2025-03-10T15:00:00Z",
        "end_time": "2025-03-10T15:30:00Z",
        "timezone": "UTC",
        "additional_info": "Looking forward to it",
    }


# ============================================
# FAKE PROVIDERS
# ============================================

class FakeMeetingProvider(MeetingProvider):
    """Records calls; ``fail_create`` / ``fail_delete`` make the next call raise."""

    def __init__(self, provider_type: str = "zoom", join_url: str = "https://zoom.us/j/123456789"):
        self.meeting_provider_type = provider_type
        self.join_url = join_url
        self.created: List[MeetingConfig] = []
        self.deleted: List[str] = []
        self.validated: List[TokenConfig] = []
        self.fail_create: Optional[Exception] = None
        self.fail_delete: Optional[Exception] = None
        self.fail_validate: Optional[Exception] = None
        self.refresh_to: Optional[str] = None

    async def validate_and_refresh_token(self, token_config: TokenConfig) -> str:
        self.validated.append(token_config)
        if self.fail_validate:
            raise self.fail_validate
        if self.refresh_to:
            token_config.access_token = self.refresh_to
            token_config.refresh_token = f"{self.refresh_to}-refresh"
            token_config.refreshed = True
        return token_config.access_token

    async def create_meeting(self, config: MeetingConfig, token_config: TokenConfig) -> MeetingInfo:
        self.created.append(config)
        if self.fail_create:
            raise self.fail_create
        return MeetingInfo(id="123456789", join_url=self.join_url, passcode="pw")

    async def delete_meeting(self, meeting_id: str, token_config: TokenConfig, owner_user_id: str) -> None:
        self.deleted.append(meeting_id)
        if self.fail_delete:
            raise self.fail_delete

    async def can_create_meetings(self, user_id: str, token_config: TokenConfig) -> bool:
        return self.fail_validate is None

    @property
    def call_count(self) -> int:
        return len(self.created) + len(self.deleted)


class FakeCalendarProvider(CalendarProvider):
    """Records calendar calls and the calendar id each one targeted."""

    def __init__(self, provider_type: str = "outlook_calendar"):
        self.calendar_provider_type = provider_type
        self.created: List[tuple] = []
        self.deleted: List[tuple] = []
        self.fail_create: Optional[Exception] = None
        self.fail_delete: Optional[Exception] = None
        self.fail_validate: Optional[Exception] = None

    async def validate_and_refresh_token(self, token_config: TokenConfig) -> str:
        if self.fail_validate:
            raise self.fail_validate
        return token_config.access_token

    def normalize_calendar_id(self, calendar_id: Optional[str]) -> str:
        return calendar_id or "primary"

    async def create_event(self, calendar_id: str, event: CalendarEvent, token_config: TokenConfig) -> str:
        self.created.append((calendar_id, event))
        if self.fail_create:
            raise self.fail_create
        return "calendar-event-1"

    async def delete_event(self, calendar_id: str, event_id: str, token_config: TokenConfig) -> None:
        self.deleted.append((calendar_id, event_id))
        if self.fail_delete:
            raise self.fail_delete

    @property
    def call_count(self) -> int:
        return len(self.created) + len(self.deleted)


@pytest.fixture
def fake_zoom():
    return FakeMeetingProvider()


@pytest.fixture
def fake_outlook():
    return FakeCalendarProvider()


@pytest.fixture
def fake_google_calendar():
    return FakeCalendarProvider("google_calendar")
