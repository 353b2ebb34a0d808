"""
Repositories for events, integrations and meetings.

Each repository opens its own unit of work through ``session_factory`` (an
async context manager yielding an ``AsyncSession``), so tests can point
them at an in-memory database.
"""
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from meeting_engine.database import get_db_session
from meeting_engine.enums import (
    APP_TYPE_CATEGORY,
    APP_TYPE_PROVIDER,
    IntegrationAppType,
    MeetingFilter,
    MeetingStatus,
)
from meeting_engine.exceptions import (
    IntegrationAlreadyConnectedError,
    IntegrationMissingError,
    NotFoundError,
)
from meeting_engine.logging_config import get_logger
from meeting_engine.meeting.interfaces import TokenConfig
from meeting_engine.models import Event, Integration, Meeting
from meeting_engine.monitoring import database_operations_total
from meeting_engine.services.encryption import decrypt_token, encrypt_token
from meeting_engine.utils import utcnow

logger = get_logger(__name__)

SessionFactory = Callable


class EventRepository:
    """Read access to bookable events."""

    def __init__(self, session_factory: SessionFactory = get_db_session):
        self.session_factory = session_factory

    async def get_event(self, event_id: str) -> Optional[Event]:
        async with self.session_factory() as session:
            result = await session.execute(select(Event).where(Event.id == event_id))
            return result.scalar_one_or_none()

    async def get_public_event(self, event_id: str) -> Event:
        """
        Fetch a bookable event.

        Raises:
            NotFoundError: missing or private
        """
        event = await self.get_event(event_id)
        if event is None or event.is_private:
            raise NotFoundError("Event", event_id)
        return event


class IntegrationRepository:
    """Connected OAuth integrations; tokens are encrypted at rest."""

    def __init__(self, session_factory: SessionFactory = get_db_session):
        self.session_factory = session_factory

    async def get(self, user_id: str, app_type: IntegrationAppType) -> Optional[Integration]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Integration).where(
                    Integration.user_id == user_id,
                    Integration.app_type == app_type,
                    Integration.is_connected.is_(True),
                )
            )
            return result.scalar_one_or_none()

    async def require(self, user_id: str, app_type: IntegrationAppType) -> Integration:
        """
        Raises:
            IntegrationMissingError: the user has not connected ``app_type``
        """
        integration = await self.get(user_id, app_type)
        if integration is None:
            raise IntegrationMissingError(user_id, app_type.value)
        return integration

    async def list_for_user(self, user_id: str) -> List[Integration]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Integration)
                .where(Integration.user_id == user_id, Integration.is_connected.is_(True))
                .order_by(Integration.created_at)
            )
            return list(result.scalars().all())

    async def connect(
        self,
        user_id: str,
        app_type: IntegrationAppType,
        access_token: str,
        refresh_token: Optional[str] = None,
        expiry_date: Optional[int] = None,
        calendar_id: Optional[str] = None,
        provider_user_id: Optional[str] = None,
    ) -> Integration:
        """
        Store a new integration for ``(user_id, app_type)``.

        Raises:
            IntegrationAlreadyConnectedError: one already exists
        """
        if calendar_id is None and app_type == IntegrationAppType.GOOGLE_MEET_AND_CALENDAR:
            calendar_id = "primary"

        try:
            async with self.session_factory() as session:
                existing = await session.execute(
                    select(Integration.id).where(
                        Integration.user_id == user_id,
                        Integration.app_type == app_type,
                    )
                )
                if existing.scalar_one_or_none() is not None:
                    raise IntegrationAlreadyConnectedError(user_id, app_type.value)

                integration = Integration(
                    user_id=user_id,
                    provider=APP_TYPE_PROVIDER[app_type],
                    category=APP_TYPE_CATEGORY[app_type],
                    app_type=app_type,
                    access_token=encrypt_token(access_token),
                    refresh_token=encrypt_token(refresh_token),
                    expiry_date=expiry_date,
                    calendar_id=calendar_id,
                    provider_user_id=provider_user_id,
                    is_connected=True,
                )
                session.add(integration)
                await session.flush()
        except IntegrityError:
            # Lost a race against a concurrent connect for the same pair
            database_operations_total.labels(operation="connect_integration", status="duplicate").inc()
            raise IntegrationAlreadyConnectedError(user_id, app_type.value)

        database_operations_total.labels(operation="connect_integration", status="success").inc()
        logger.info("integration_connected", user_id=user_id, app_type=app_type.value)
        return integration

    async def update_tokens(self, integration_id: str, token_config: TokenConfig) -> None:
        """Write refreshed credentials back in place."""
        async with self.session_factory() as session:
            result = await session.execute(select(Integration).where(Integration.id == integration_id))
            integration = result.scalar_one_or_none()
            if integration is None:
                logger.warning("integration_vanished_during_refresh", integration_id=integration_id)
                return
            integration.access_token = encrypt_token(token_config.access_token)
            if token_config.refresh_token:
                integration.refresh_token = encrypt_token(token_config.refresh_token)
            integration.expiry_date = token_config.expiry_date
            integration.updated_at = utcnow()

        database_operations_total.labels(operation="update_tokens", status="success").inc()
        logger.info("integration_tokens_updated", integration_id=integration_id)

    @staticmethod
    def token_config(integration: Integration) -> TokenConfig:
        """Decrypted credentials for provider calls."""
        return TokenConfig(
            access_token=decrypt_token(integration.access_token),
            refresh_token=decrypt_token(integration.refresh_token),
            expiry_date=integration.expiry_date,
            integration_id=integration.id,
        )


class MeetingRepository:
    """Booking records."""

    def __init__(self, session_factory: SessionFactory = get_db_session):
        self.session_factory = session_factory

    async def create(self, **fields) -> Meeting:
        async with self.session_factory() as session:
            meeting = Meeting(status=MeetingStatus.SCHEDULED, **fields)
            session.add(meeting)
            await session.flush()

        database_operations_total.labels(operation="create_meeting", status="success").inc()
        return meeting

    async def get(self, meeting_id: str) -> Optional[Meeting]:
        async with self.session_factory() as session:
            result = await session.execute(select(Meeting).where(Meeting.id == meeting_id))
            return result.scalar_one_or_none()

    async def get_or_raise(self, meeting_id: str) -> Meeting:
        meeting = await self.get(meeting_id)
        if meeting is None:
            raise NotFoundError("Meeting", meeting_id)
        return meeting

    async def mark_cancelled(self, meeting_id: str) -> Meeting:
        """SCHEDULED -> CANCELLED. Calling it again leaves the row unchanged."""
        async with self.session_factory() as session:
            result = await session.execute(select(Meeting).where(Meeting.id == meeting_id))
            meeting = result.scalar_one_or_none()
            if meeting is None:
                raise NotFoundError("Meeting", meeting_id)
            if meeting.status != MeetingStatus.CANCELLED:
                meeting.status = MeetingStatus.CANCELLED
                meeting.updated_at = utcnow()

        database_operations_total.labels(operation="cancel_meeting", status="success").inc()
        return meeting

    async def list_for_user(
        self,
        user_id: str,
        meeting_filter: MeetingFilter = MeetingFilter.UPCOMING,
        now: Optional[datetime] = None,
    ) -> List[Meeting]:
        now = now or utcnow()
        query = select(Meeting).where(Meeting.owner_user_id == user_id)

        if meeting_filter == MeetingFilter.CANCELLED:
            query = query.where(Meeting.status == MeetingStatus.CANCELLED).order_by(Meeting.start_time.desc())
        elif meeting_filter == MeetingFilter.PAST:
            query = query.where(
                Meeting.status == MeetingStatus.SCHEDULED, Meeting.start_time < now
            ).order_by(Meeting.start_time.desc())
        else:
            query = query.where(
                Meeting.status == MeetingStatus.SCHEDULED, Meeting.start_time >= now
            ).order_by(Meeting.start_time.asc())

        async with self.session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())
