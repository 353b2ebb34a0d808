"""
Tests for the create/cancel lifecycle shared by the orchestration strategies.
"""
import pytest
from datetime import datetime
from sqlalchemy import func, select

from meeting_engine.enums import IntegrationAppType, LocationType, MeetingCombination, MeetingStatus
from meeting_engine.exceptions import (
    IntegrationMissingError,
    InvalidBookingError,
    NotFoundError,
    ProviderOperationError,
    TokenRefreshError,
)
from meeting_engine.meeting.interfaces import BookingRequest
from meeting_engine.meeting.strategies import (
    ZoomGoogleCalendarStrategy,
    ZoomOutlookCalendarStrategy,
    resolve_calendar_id,
)
from meeting_engine.models import Meeting


@pytest.fixture
def zoom_outlook(registry, fake_zoom, fake_outlook, events, integrations, meetings):
    return ZoomOutlookCalendarStrategy(
        registry.get_config(MeetingCombination.ZOOM_OUTLOOK_CALENDAR),
        fake_zoom, fake_outlook, events, integrations, meetings,
    )


@pytest.fixture
def zoom_google(registry, fake_zoom, fake_google_calendar, events, integrations, meetings):
    return ZoomGoogleCalendarStrategy(
        registry.get_config(MeetingCombination.ZOOM_GOOGLE_CALENDAR),
        fake_zoom, fake_google_calendar, events, integrations, meetings,
    )


@pytest.fixture
async def outlook_event(make_event, connect):
    """OUTLOOK_WITH_ZOOM event whose owner has both integrations."""
    await connect(IntegrationAppType.ZOOM_MEETING)
    await connect(IntegrationAppType.OUTLOOK_CALENDAR)
    return await make_event(LocationType.OUTLOOK_WITH_ZOOM)


async def count_meetings(session_factory) -> int:
    async with session_factory() as session:
        result = await session.execute(select(func.count(Meeting.id)))
        return result.scalar_one()


@pytest.mark.unit
class TestResolveCalendarId:
    """Test calendar id fallback order."""

    def test_first_non_empty_wins(self):
        """Test that the first non-empty candidate is used."""
        assert resolve_calendar_id(None, "", "cal-b", "cal-c") == "cal-b"

    def test_defaults_to_primary(self):
        """Test that no candidates resolves to the primary calendar."""
        assert resolve_calendar_id(None, None) == "primary"


@pytest.mark.unit
class TestStrategyNames:
    """Test strategy names match their combination."""

    def test_zoom_outlook_name(self, zoom_outlook):
        assert zoom_outlook.get_strategy_name() == "zoom+outlook_calendar"

    def test_zoom_google_name(self, zoom_google):
        assert zoom_google.get_strategy_name() == "zoom+google_calendar"


@pytest.mark.unit
class TestCreateMeeting:
    """Test booking creation."""

    async def test_create_persists_meeting_with_both_remote_ids(
        self, zoom_outlook, outlook_event, booking_payload, owner
    ):
        """Test that a successful booking stores the join link and calendar event id."""
        result = await zoom_outlook.create_meeting(BookingRequest(event_id=outlook_event.id, **booking_payload))

        assert result.meet_link == "https://zoom.us/j/123456789"
        assert result.calendar_event_id == "calendar-event-1"
        assert result.meeting_provider_id == "123456789"

        meeting = result.meeting
        assert meeting.status == MeetingStatus.SCHEDULED
        assert meeting.owner_user_id == owner.id
        assert meeting.guest_email == "ana@x.com"
        assert meeting.calendar_app_type == IntegrationAppType.OUTLOOK_WITH_ZOOM
        assert meeting.calendar_id == "primary"
        assert meeting.start_time == datetime(2025, 3, 10, 15, 0)
        assert meeting.end_time == datetime(2025, 3, 10, 15, 30)

    async def test_calendar_event_carries_join_link(
        self, zoom_outlook, fake_zoom, fake_outlook, outlook_event, booking_payload
    ):
        """Test that the calendar event is built from the meeting provider's result."""
        await zoom_outlook.create_meeting(BookingRequest(event_id=outlook_event.id, **booking_payload))

        config = fake_zoom.created[0]
        assert config.topic == "Ana - Intro Call"
        assert config.duration_minutes == 30
        assert config.attendees == ["ana@x.com", "owner@example.com"]

        calendar_id, calendar_event = fake_outlook.created[0]
        assert calendar_id == "primary"
        assert calendar_event.meeting_url == "https://zoom.us/j/123456789"
        assert calendar_event.provider_specific["join_link_label"] == "Join Zoom Meeting"
        assert "Join Zoom Meeting: https://zoom.us/j/123456789" in calendar_event.body_with_join_link(
            calendar_event.provider_specific["join_link_label"]
        )

    async def test_local_times_are_normalised_to_utc(self, zoom_outlook, outlook_event, booking_payload):
        """Test that offset-less times are read in the booking timezone."""
        booking_payload.update(
            start_time="2025-03-10T10:00:00",
            end_time="2025-03-10T10:30:00",
            timezone="America/New_York",
        )
        result = await zoom_outlook.create_meeting(BookingRequest(event_id=outlook_event.id, **booking_payload))

        assert result.meeting.start_time == datetime(2025, 3, 10, 14, 0)
        assert result.meeting.end_time == datetime(2025, 3, 10, 14, 30)

    async def test_zoom_google_stores_zoom_app_type(
        self, zoom_google, make_event, connect, booking_payload
    ):
        """Test that Zoom on Google Calendar records the Zoom integration as the calendar app."""
        await connect(IntegrationAppType.ZOOM_MEETING)
        await connect(IntegrationAppType.GOOGLE_MEET_AND_CALENDAR)
        event = await make_event(LocationType.ZOOM_MEETING)

        result = await zoom_google.create_meeting(BookingRequest(event_id=event.id, **booking_payload))

        assert result.meeting.calendar_app_type == IntegrationAppType.ZOOM_MEETING
        assert result.additional_data["calendar_provider"] == "google_calendar"

    async def test_calendar_failure_leaves_no_meeting_record(
        self, zoom_outlook, fake_zoom, fake_outlook, outlook_event, booking_payload, session_factory
    ):
        """Test that a calendar failure after the meeting was created aborts the booking."""
        fake_outlook.fail_create = ProviderOperationError("Graph said no", "microsoft", "create_event", 400)

        with pytest.raises(ProviderOperationError):
            await zoom_outlook.create_meeting(BookingRequest(event_id=outlook_event.id, **booking_payload))

        assert len(fake_zoom.created) == 1
        assert await count_meetings(session_factory) == 0

    async def test_meeting_failure_skips_calendar(
        self, zoom_outlook, fake_zoom, fake_outlook, outlook_event, booking_payload, session_factory
    ):
        """Test that the calendar is never touched when the meeting provider fails."""
        fake_zoom.fail_create = ProviderOperationError("Zoom said no", "zoom", "create_meeting", 400)

        with pytest.raises(ProviderOperationError):
            await zoom_outlook.create_meeting(BookingRequest(event_id=outlook_event.id, **booking_payload))

        assert fake_outlook.created == []
        assert await count_meetings(session_factory) == 0

    async def test_missing_calendar_integration(
        self, zoom_outlook, fake_zoom, make_event, connect, booking_payload
    ):
        """Test that a missing integration fails before any provider call."""
        await connect(IntegrationAppType.ZOOM_MEETING)
        event = await make_event(LocationType.OUTLOOK_WITH_ZOOM)

        with pytest.raises(IntegrationMissingError) as exc_info:
            await zoom_outlook.create_meeting(BookingRequest(event_id=event.id, **booking_payload))

        assert exc_info.value.app_type == IntegrationAppType.OUTLOOK_CALENDAR.value
        assert fake_zoom.created == []

    async def test_token_error_propagates(
        self, zoom_outlook, fake_zoom, outlook_event, booking_payload, session_factory
    ):
        """Test that a failed refresh surfaces as TokenRefreshError."""
        fake_zoom.fail_validate = TokenRefreshError("zoom", "refresh token revoked")

        with pytest.raises(TokenRefreshError):
            await zoom_outlook.create_meeting(BookingRequest(event_id=outlook_event.id, **booking_payload))

        assert fake_zoom.created == []
        assert await count_meetings(session_factory) == 0

    async def test_refreshed_token_persisted_when_booking_fails(
        self, zoom_outlook, fake_zoom, fake_outlook, outlook_event, booking_payload, integrations, owner
    ):
        """Test that a rotated refresh token is stored even though the booking aborted."""
        fake_zoom.refresh_to = "rotated-zoom-token"
        fake_outlook.fail_create = ProviderOperationError("Graph said no", "microsoft", "create_event", 400)

        with pytest.raises(ProviderOperationError):
            await zoom_outlook.create_meeting(BookingRequest(event_id=outlook_event.id, **booking_payload))

        integration = await integrations.get(owner.id, IntegrationAppType.ZOOM_MEETING)
        token_config = integrations.token_config(integration)
        assert token_config.access_token == "rotated-zoom-token"
        assert token_config.refresh_token == "rotated-zoom-token-refresh"

    async def test_end_before_start_rejected(self, zoom_outlook, fake_zoom, outlook_event, booking_payload):
        """Test that an empty window is rejected before any provider call."""
        booking_payload["end_time"] = booking_payload["start_time"]

        with pytest.raises(InvalidBookingError):
            await zoom_outlook.create_meeting(BookingRequest(event_id=outlook_event.id, **booking_payload))

        assert fake_zoom.created == []

    async def test_private_event_is_not_bookable(self, zoom_outlook, make_event, booking_payload):
        """Test that private events behave as missing."""
        event = await make_event(LocationType.OUTLOOK_WITH_ZOOM, is_private=True)

        with pytest.raises(NotFoundError):
            await zoom_outlook.create_meeting(BookingRequest(event_id=event.id, **booking_payload))

    @pytest.mark.parametrize(
        "event_calendar, integration_calendar, expected",
        [
            ("event-calendar-b", "integration-calendar-c", "event-calendar-b"),
            (None, "integration-calendar-c", "integration-calendar-c"),
            (None, None, "primary"),
        ],
    )
    async def test_calendar_id_priority_on_create(
        self, zoom_outlook, fake_outlook, make_event, connect, booking_payload,
        event_calendar, integration_calendar, expected,
    ):
        """Test that the event's calendar beats the integration's, then primary."""
        await connect(IntegrationAppType.ZOOM_MEETING)
        await connect(IntegrationAppType.OUTLOOK_CALENDAR, calendar_id=integration_calendar)
        event = await make_event(LocationType.OUTLOOK_WITH_ZOOM, calendar_id=event_calendar)

        result = await zoom_outlook.create_meeting(BookingRequest(event_id=event.id, **booking_payload))

        assert fake_outlook.created[0][0] == expected
        assert result.meeting.calendar_id == expected


@pytest.mark.unit
class TestCancelMeeting:
    """Test booking cancellation."""

    async def _book(self, strategy, event, booking_payload):
        result = await strategy.create_meeting(BookingRequest(event_id=event.id, **booking_payload))
        return result.meeting

    async def test_cancel_deletes_both_artifacts(
        self, zoom_outlook, fake_zoom, fake_outlook, outlook_event, booking_payload, meetings
    ):
        """Test a clean cancellation."""
        meeting = await self._book(zoom_outlook, outlook_event, booking_payload)

        result = await zoom_outlook.cancel_meeting(meeting.id)

        assert result.success
        assert result.meeting_deleted and result.calendar_deleted
        assert result.errors == []
        assert fake_zoom.deleted == ["123456789"]
        assert fake_outlook.deleted == [("primary", "calendar-event-1")]
        assert (await meetings.get(meeting.id)).status == MeetingStatus.CANCELLED

    async def test_meeting_deletion_failure_does_not_block_cancel(
        self, zoom_outlook, fake_zoom, fake_outlook, outlook_event, booking_payload, meetings
    ):
        """Test that a provider failure is recorded and the meeting is still cancelled."""
        meeting = await self._book(zoom_outlook, outlook_event, booking_payload)
        fake_zoom.fail_delete = ProviderOperationError("Zoom is down", "zoom", "delete_meeting", 503)

        result = await zoom_outlook.cancel_meeting(meeting.id)

        assert result.success
        assert result.meeting_deleted is False
        assert result.calendar_deleted is True
        assert len(result.errors) == 1
        assert "zoom" in result.errors[0]
        assert len(fake_outlook.deleted) == 1
        assert (await meetings.get(meeting.id)).status == MeetingStatus.CANCELLED

    async def test_unexpected_exception_is_recorded(
        self, zoom_outlook, fake_outlook, outlook_event, booking_payload, meetings
    ):
        """Test that non-engine exceptions during cleanup are also collected."""
        meeting = await self._book(zoom_outlook, outlook_event, booking_payload)
        fake_outlook.fail_delete = RuntimeError("socket closed")

        result = await zoom_outlook.cancel_meeting(meeting.id)

        assert result.meeting_deleted is True
        assert result.calendar_deleted is False
        assert result.errors == ["outlook_calendar deletion failed: socket closed"]
        assert (await meetings.get(meeting.id)).status == MeetingStatus.CANCELLED

    async def test_remote_not_found_counts_as_deleted(
        self, zoom_outlook, fake_zoom, outlook_event, booking_payload
    ):
        """Test that providers swallowing not-found keep the cancel clean."""
        meeting = await self._book(zoom_outlook, outlook_event, booking_payload)

        async def already_gone(meeting_id, token_config, owner_user_id):
            fake_zoom.deleted.append(meeting_id)

        fake_zoom.delete_meeting = already_gone
        result = await zoom_outlook.cancel_meeting(meeting.id)

        assert result.errors == []
        assert result.meeting_deleted

    async def test_second_cancel_makes_no_provider_calls(
        self, zoom_outlook, fake_zoom, fake_outlook, outlook_event, booking_payload, meetings
    ):
        """Test that cancelling twice is a no-op the second time."""
        meeting = await self._book(zoom_outlook, outlook_event, booking_payload)
        await zoom_outlook.cancel_meeting(meeting.id)
        calls = fake_zoom.call_count + fake_outlook.call_count

        result = await zoom_outlook.cancel_meeting(meeting.id)

        assert result.success
        assert result.already_cancelled
        assert fake_zoom.call_count + fake_outlook.call_count == calls
        assert (await meetings.get(meeting.id)).status == MeetingStatus.CANCELLED

    async def test_lost_integration_is_reported(
        self, zoom_outlook, fake_outlook, outlook_event, booking_payload, session_factory, meetings
    ):
        """Test that a disconnected integration becomes an error entry, not an exception."""
        from meeting_engine.models import Integration

        meeting = await self._book(zoom_outlook, outlook_event, booking_payload)
        async with session_factory() as session:
            result = await session.execute(
                select(Integration).where(Integration.app_type == IntegrationAppType.OUTLOOK_CALENDAR)
            )
            result.scalar_one().is_connected = False

        result = await zoom_outlook.cancel_meeting(meeting.id)

        assert result.meeting_deleted is True
        assert result.calendar_deleted is False
        assert len(result.errors) == 1
        assert fake_outlook.deleted == []
        assert (await meetings.get(meeting.id)).status == MeetingStatus.CANCELLED

    async def test_unknown_meeting(self, zoom_outlook):
        """Test that cancelling an unknown id raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await zoom_outlook.cancel_meeting("does-not-exist")

    @pytest.mark.parametrize(
        "meeting_calendar, event_calendar, integration_calendar, expected",
        [
            ("calendar-a", "calendar-b", "calendar-c", "calendar-a"),
            (None, "calendar-b", "calendar-c", "calendar-b"),
            (None, None, "calendar-c", "calendar-c"),
            (None, None, None, "primary"),
        ],
    )
    async def test_calendar_id_priority_on_cancel(
        self, zoom_outlook, fake_outlook, make_event, connect, meetings, owner,
        meeting_calendar, event_calendar, integration_calendar, expected,
    ):
        """Test that the stored calendar beats the event's, then the integration's, then primary."""
        await connect(IntegrationAppType.ZOOM_MEETING)
        await connect(IntegrationAppType.OUTLOOK_CALENDAR, calendar_id=integration_calendar)
        event = await make_event(LocationType.OUTLOOK_WITH_ZOOM, calendar_id=event_calendar)
        meeting = await meetings.create(
            event_id=event.id,
            owner_user_id=owner.id,
            guest_name="Ana",
            guest_email="ana@x.com",
            start_time=datetime(2025, 3, 10, 15, 0),
            end_time=datetime(2025, 3, 10, 15, 30),
            meet_link="https://zoom.us/j/123456789",
            calendar_event_id="calendar-event-1",
            calendar_app_type=IntegrationAppType.OUTLOOK_WITH_ZOOM,
            calendar_id=meeting_calendar,
            meeting_provider_id="123456789",
        )

        result = await zoom_outlook.cancel_meeting(meeting.id)

        assert result.errors == []
        assert fake_outlook.deleted == [(expected, "calendar-event-1")]



@pytest.mark.unit
class TestAutoCalendarCreation:
    """Test combinations whose meeting provider writes the calendar event itself."""

    @pytest.fixture
    def combined(self, registry, fake_zoom, fake_outlook, events, integrations, meetings):
        config = registry.get_config(MeetingCombination.ZOOM_OUTLOOK_CALENDAR).model_copy(
            update={"auto_calendar_creation": True}
        )
        return ZoomOutlookCalendarStrategy(config, fake_zoom, fake_outlook, events, integrations, meetings)

    async def test_create_skips_separate_calendar_call(
        self, combined, fake_zoom, fake_outlook, outlook_event, booking_payload
    ):
        result = await combined.create_meeting(BookingRequest(event_id=outlook_event.id, **booking_payload))

        assert len(fake_zoom.created) == 1
        assert fake_outlook.created == []
        assert result.calendar_event_id == "123456789"
        assert result.meeting.calendar_event_id == "123456789"

    async def test_cancel_makes_one_deletion(
        self, combined, fake_zoom, fake_outlook, outlook_event, booking_payload
    ):
        """Test that one deletion removes both halves and reports both flags."""
        created = await combined.create_meeting(BookingRequest(event_id=outlook_event.id, **booking_payload))

        result = await combined.cancel_meeting(created.meeting.id)

        assert result.meeting_deleted and result.calendar_deleted
        assert fake_zoom.deleted == []
        assert fake_outlook.deleted == [("primary", "123456789")]
