"""
Vendor implementations of the meeting and calendar capabilities.
"""
from meeting_engine.meeting.providers.zoom import ZoomMeetingProvider
from meeting_engine.meeting.providers.google_calendar import GoogleCalendarProvider
from meeting_engine.meeting.providers.google_meet import GoogleMeetProvider
from meeting_engine.meeting.providers.outlook_calendar import OutlookCalendarProvider

__all__ = [
    'ZoomMeetingProvider',
    'GoogleCalendarProvider',
    'GoogleMeetProvider',
    'OutlookCalendarProvider',
]
