"""
One orchestration strategy per implemented meeting combination.
"""
from meeting_engine.meeting.strategies.base import TwoProviderStrategy, resolve_calendar_id
from meeting_engine.meeting.strategies.google_meet_calendar import GoogleMeetCalendarStrategy
from meeting_engine.meeting.strategies.zoom_google import ZoomGoogleCalendarStrategy
from meeting_engine.meeting.strategies.zoom_outlook import ZoomOutlookCalendarStrategy

__all__ = [
    'TwoProviderStrategy',
    'resolve_calendar_id',
    'GoogleMeetCalendarStrategy',
    'ZoomGoogleCalendarStrategy',
    'ZoomOutlookCalendarStrategy',
]
