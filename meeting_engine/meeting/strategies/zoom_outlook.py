"""
Zoom meetings tracked on Outlook Calendar.
"""
from meeting_engine.enums import IntegrationAppType, MeetingCombination
from meeting_engine.meeting.strategies.base import TwoProviderStrategy


class ZoomOutlookCalendarStrategy(TwoProviderStrategy):
    """Zoom session first; the Outlook event body carries the Zoom join link."""

    combination = MeetingCombination.ZOOM_OUTLOOK_CALENDAR
    calendar_app_type = IntegrationAppType.OUTLOOK_WITH_ZOOM
    join_link_label = "Join Zoom Meeting"
    reminder_minutes = [15]
