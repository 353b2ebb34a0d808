"""
Zoom meetings tracked on Google Calendar.
"""
from meeting_engine.enums import IntegrationAppType, MeetingCombination
from meeting_engine.meeting.strategies.base import TwoProviderStrategy


class ZoomGoogleCalendarStrategy(TwoProviderStrategy):
    combination = MeetingCombination.ZOOM_GOOGLE_CALENDAR
    calendar_app_type = IntegrationAppType.ZOOM_MEETING
    join_link_label = "Join Zoom Meeting"
