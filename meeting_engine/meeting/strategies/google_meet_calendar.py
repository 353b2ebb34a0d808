"""
Google Meet on Google Calendar.

The combination is configured with ``auto_calendar_creation``: one remote
call creates both the Meet session and the calendar event, and one deletion
removes both, so the two halves of the lifecycle succeed or fail together.
"""
from meeting_engine.enums import IntegrationAppType, MeetingCombination
from meeting_engine.meeting.combinations import CombinationConfig
from meeting_engine.meeting.providers.google_meet import GoogleMeetProvider
from meeting_engine.meeting.strategies.base import TwoProviderStrategy
from meeting_engine.services.repositories import EventRepository, IntegrationRepository, MeetingRepository


class GoogleMeetCalendarStrategy(TwoProviderStrategy):
    """Single combined provider acting as both meeting and calendar provider."""

    combination = MeetingCombination.GOOGLE_MEET_CALENDAR
    calendar_app_type = IntegrationAppType.GOOGLE_MEET_AND_CALENDAR

    def __init__(
        self,
        config: CombinationConfig,
        provider: GoogleMeetProvider,
        events: EventRepository,
        integrations: IntegrationRepository,
        meetings: MeetingRepository,
    ):
        super().__init__(config, provider, provider, events, integrations, meetings)
