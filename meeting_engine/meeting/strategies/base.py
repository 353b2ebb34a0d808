"""
Shared create/cancel lifecycle for strategies built from one meeting
provider and one calendar provider.

Creation aborts on the first failure and writes the Meeting row last, so a
failed booking never leaves a local record. Cancellation attempts both
remote deletions independently, records what went wrong, and always marks
the Meeting cancelled.
"""
from datetime import datetime
from typing import Dict, List, Optional, Tuple
import time

from meeting_engine.enums import IntegrationAppType, MeetingCombination, MeetingStatus
from meeting_engine.exceptions import InvalidBookingError, MeetingEngineError
from meeting_engine.logging_config import LogContext, get_logger
from meeting_engine.meeting.combinations import CombinationConfig
from meeting_engine.meeting.interfaces import (
    BookingRequest,
    CalendarEvent,
    CalendarProvider,
    MeetingCancellationResult,
    MeetingConfig,
    MeetingCreationResult,
    MeetingInfo,
    MeetingProvider,
    MeetingStrategy,
    TokenConfig,
)
from meeting_engine.models import Event, Integration, Meeting
from meeting_engine.monitoring import (
    meeting_operation_duration,
    meetings_cancelled_total,
    meetings_created_total,
    record_error,
)
from meeting_engine.services.repositories import EventRepository, IntegrationRepository, MeetingRepository
from meeting_engine.utils import to_utc

logger = get_logger(__name__)

PRIMARY_CALENDAR = "primary"


def resolve_calendar_id(*candidates: Optional[str]) -> str:
    """First non-empty candidate, else the primary calendar."""
    for candidate in candidates:
        if candidate:
            return candidate
    return PRIMARY_CALENDAR


class TwoProviderStrategy(MeetingStrategy):
    """Meeting provider session first, then a calendar event embedding its join link."""

    combination: MeetingCombination
    # Stored on the Meeting so callers know which calendar holds the event
    calendar_app_type: IntegrationAppType
    join_link_label = "Join meeting"
    reminder_minutes: List[int] = []

    def __init__(
        self,
        config: CombinationConfig,
        meeting_provider: MeetingProvider,
        calendar_provider: CalendarProvider,
        events: EventRepository,
        integrations: IntegrationRepository,
        meetings: MeetingRepository,
    ):
        self.config = config
        self.meeting_provider = meeting_provider
        self.calendar_provider = calendar_provider
        self.events = events
        self.integrations = integrations
        self.meetings = meetings

    def get_meeting_provider(self) -> MeetingProvider:
        return self.meeting_provider

    def get_calendar_provider(self) -> CalendarProvider:
        return self.calendar_provider

    # ------------------------------------------------------------------
    # token handling
    # ------------------------------------------------------------------

    async def _validated_token(
        self,
        integration: Integration,
        provider,
        cache: Dict[str, TokenConfig],
    ) -> TokenConfig:
        """Decrypt, validate (refreshing if needed) and persist refreshed credentials."""
        token_config = cache.get(integration.id)
        if token_config is None:
            token_config = self.integrations.token_config(integration)
            cache[integration.id] = token_config
        await provider.validate_and_refresh_token(token_config)
        await self._persist_refreshed(token_config)
        return token_config

    async def _persist_refreshed(self, token_config: TokenConfig) -> None:
        # Zoom rotates refresh tokens, so a refresh must be stored even if the booking later fails
        if token_config.refreshed and token_config.integration_id:
            await self.integrations.update_tokens(token_config.integration_id, token_config)
            token_config.refreshed = False

    # ------------------------------------------------------------------
    # create
    # ------------------------------------------------------------------

    def _meeting_config(self, event: Event, request: BookingRequest,
                        start: datetime, end: datetime, calendar_id: str) -> MeetingConfig:
        return MeetingConfig(
            topic=f"{request.guest_name} - {event.title}",
            start_time=start,
            end_time=end,
            timezone=request.timezone,
            agenda=request.additional_info,
            settings=dict(self.config.default_meeting_settings),
            user_id=event.owner_user_id,
            attendees=self._attendees(event, request),
            calendar_id=calendar_id,
        )

    def _attendees(self, event: Event, request: BookingRequest) -> List[str]:
        attendees = [str(request.guest_email)]
        owner_email = event.owner.email if event.owner is not None else None
        if owner_email and owner_email not in attendees:
            attendees.append(owner_email)
        return attendees

    async def _create_remote_artifacts(
        self,
        meeting_config: MeetingConfig,
        calendar_id: str,
        meeting_token: TokenConfig,
        calendar_token: TokenConfig,
    ) -> Tuple[MeetingInfo, str]:
        """Create the session, then the calendar event carrying its join link."""
        meeting_info = await self.meeting_provider.create_meeting(meeting_config, meeting_token)
        if self.config.auto_calendar_creation:
            # The provider already wrote the calendar event along with the session
            return meeting_info, meeting_info.additional_data.get("calendar_event_id", meeting_info.id)

        calendar_event = CalendarEvent(
            title=meeting_config.topic,
            description=meeting_config.agenda,
            start_time=meeting_config.start_time,
            end_time=meeting_config.end_time,
            timezone=meeting_config.timezone,
            attendees=meeting_config.attendees,
            meeting_url=meeting_info.join_url,
            provider_specific={
                "join_link_label": self.join_link_label,
                "reminder_minutes": list(self.reminder_minutes),
            },
        )
        calendar_event_id = await self.calendar_provider.create_event(calendar_id, calendar_event, calendar_token)
        return meeting_info, calendar_event_id

    async def create_meeting(self, request: BookingRequest) -> MeetingCreationResult:
        strategy_name = self.get_strategy_name()
        started = time.time()
        with LogContext(event_id=request.event_id, strategy=strategy_name):
            try:
                result = await self._create(request)
            except MeetingEngineError as e:
                meetings_created_total.labels(strategy=strategy_name, status=e.error_code).inc()
                record_error(type(e).__name__, "meeting_strategy")
                logger.warning("meeting_creation_failed", error_code=e.error_code, error=e.message)
                raise
            except Exception as e:
                meetings_created_total.labels(strategy=strategy_name, status="internal_error").inc()
                record_error(type(e).__name__, "meeting_strategy")
                logger.error("meeting_creation_crashed", error=str(e), error_type=type(e).__name__, exc_info=True)
                raise
            finally:
                meeting_operation_duration.labels(operation="create").observe(time.time() - started)

            meetings_created_total.labels(strategy=strategy_name, status="success").inc()
            return result

    async def _create(self, request: BookingRequest) -> MeetingCreationResult:
        # Step 0: normalise the guest-supplied window to UTC
        start = to_utc(request.start_time, request.timezone)
        end = to_utc(request.end_time, request.timezone)
        if end <= start:
            raise InvalidBookingError(
                "Meeting end time must be after its start time",
                details={"start_time": start.isoformat(), "end_time": end.isoformat()},
            )

        # Step 1: resolve event
        event = await self.events.get_public_event(request.event_id)
        owner_id = event.owner_user_id

        # Step 2: required integrations
        meeting_integration = await self.integrations.require(owner_id, self.config.meeting_integration)
        calendar_integration = await self.integrations.require(owner_id, self.config.calendar_integration)

        # Step 3: tokens
        cache: Dict[str, TokenConfig] = {}
        meeting_token = await self._validated_token(meeting_integration, self.meeting_provider, cache)
        calendar_token = await self._validated_token(calendar_integration, self.calendar_provider, cache)

        # Steps 4-5: remote artifacts
        calendar_id = resolve_calendar_id(event.calendar_id, calendar_integration.calendar_id)
        meeting_config = self._meeting_config(event, request, start, end, calendar_id)
        try:
            meeting_info, calendar_event_id = await self._create_remote_artifacts(
                meeting_config, calendar_id, meeting_token, calendar_token
            )
        finally:
            for token_config in cache.values():
                await self._persist_refreshed(token_config)

        # Step 6: persist; nothing local exists until both remote ids are known
        stored_calendar_id = self.calendar_provider.normalize_calendar_id(calendar_id)
        meeting = await self.meetings.create(
            event_id=event.id,
            owner_user_id=owner_id,
            guest_name=request.guest_name,
            guest_email=str(request.guest_email),
            additional_info=request.additional_info,
            start_time=start.replace(tzinfo=None),
            end_time=end.replace(tzinfo=None),
            meet_link=meeting_info.join_url,
            calendar_event_id=calendar_event_id,
            calendar_app_type=self.calendar_app_type,
            calendar_id=stored_calendar_id,
            meeting_provider_id=meeting_info.id,
        )

        logger.info(
            "meeting_created",
            meeting_id=meeting.id,
            meeting_provider_id=meeting_info.id,
            calendar_event_id=calendar_event_id,
            calendar_id=stored_calendar_id,
        )
        return MeetingCreationResult(
            meet_link=meeting_info.join_url,
            meeting=meeting,
            calendar_event_id=calendar_event_id,
            meeting_provider_id=meeting_info.id,
            additional_data={
                "meeting_provider": self.meeting_provider.get_meeting_provider_type(),
                "calendar_provider": self.calendar_provider.get_calendar_provider_type(),
                "calendar_id": stored_calendar_id,
                "start_url": meeting_info.start_url,
                "passcode": meeting_info.passcode,
                **meeting_info.additional_data,
            },
        )

    # ------------------------------------------------------------------
    # cancel
    # ------------------------------------------------------------------

    async def _delete_remote_meeting(self, meeting: Meeting, cache: Dict[str, TokenConfig]) -> None:
        if not meeting.meeting_provider_id:
            logger.warning("meeting_provider_id_missing", meeting_id=meeting.id)
            return
        integration = await self.integrations.require(meeting.owner_user_id, self.config.meeting_integration)
        token_config = await self._validated_token(integration, self.meeting_provider, cache)
        await self.meeting_provider.delete_meeting(meeting.meeting_provider_id, token_config, meeting.owner_user_id)

    async def _delete_remote_calendar_event(
        self, meeting: Meeting, event: Optional[Event], cache: Dict[str, TokenConfig]
    ) -> None:
        integration = await self.integrations.require(meeting.owner_user_id, self.config.calendar_integration)
        token_config = await self._validated_token(integration, self.calendar_provider, cache)
        calendar_id = resolve_calendar_id(
            meeting.calendar_id,
            event.calendar_id if event is not None else None,
            integration.calendar_id,
        )
        await self.calendar_provider.delete_event(calendar_id, meeting.calendar_event_id, token_config)

    async def _attempt(self, label: str, errors: List[str], operation) -> bool:
        """Run one best-effort cleanup step; failures are recorded, never raised."""
        try:
            await operation
            return True
        except MeetingEngineError as e:
            message = f"{label} deletion failed: {e.message}"
        except Exception as e:
            logger.error("cleanup_step_crashed", step=label, error_type=type(e).__name__, exc_info=True)
            message = f"{label} deletion failed: {e}"
        errors.append(message)
        record_error("CleanupError", "meeting_strategy")
        logger.warning("meeting_cleanup_failed", step=label, error=message)
        return False

    async def _delete_remote_artifacts(
        self, meeting: Meeting, event: Optional[Event], errors: List[str]
    ) -> Tuple[bool, bool]:
        cache: Dict[str, TokenConfig] = {}
        if self.config.auto_calendar_creation:
            deleted = await self._attempt(
                self.meeting_provider.get_meeting_provider_type(), errors,
                self._delete_remote_calendar_event(meeting, event, cache),
            )
            return deleted, deleted

        meeting_deleted = await self._attempt(
            self.meeting_provider.get_meeting_provider_type(), errors,
            self._delete_remote_meeting(meeting, cache),
        )
        calendar_deleted = await self._attempt(
            self.calendar_provider.get_calendar_provider_type(), errors,
            self._delete_remote_calendar_event(meeting, event, cache),
        )
        return meeting_deleted, calendar_deleted

    async def cancel_meeting(self, meeting_id: str) -> MeetingCancellationResult:
        strategy_name = self.get_strategy_name()
        started = time.time()
        with LogContext(meeting_id=meeting_id, strategy=strategy_name):
            try:
                meeting = await self.meetings.get_or_raise(meeting_id)
                if meeting.status == MeetingStatus.CANCELLED:
                    logger.info("meeting_already_cancelled")
                    meetings_cancelled_total.labels(strategy=strategy_name, status="noop").inc()
                    return MeetingCancellationResult(success=True, already_cancelled=True)

                event = await self.events.get_event(meeting.event_id)
                errors: List[str] = []
                meeting_deleted, calendar_deleted = await self._delete_remote_artifacts(meeting, event, errors)

                # The booking is void even when remote cleanup is incomplete
                await self.meetings.mark_cancelled(meeting.id)
            finally:
                meeting_operation_duration.labels(operation="cancel").observe(time.time() - started)

            meetings_cancelled_total.labels(
                strategy=strategy_name, status="clean" if not errors else "partial"
            ).inc()
            logger.info(
                "meeting_cancelled",
                meeting_deleted=meeting_deleted,
                calendar_deleted=calendar_deleted,
                error_count=len(errors),
            )
            return MeetingCancellationResult(
                success=True,
                meeting_deleted=meeting_deleted,
                calendar_deleted=calendar_deleted,
                errors=errors,
            )
