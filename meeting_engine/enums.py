"""
Enumerations shared by the models, the orchestration layer and the API.
"""
from enum import Enum


class LocationType(str, Enum):
    """Tag chosen when an Event is created; selects the provider pair."""
    GOOGLE_MEET_AND_CALENDAR = "GOOGLE_MEET_AND_CALENDAR"
    ZOOM_MEETING = "ZOOM_MEETING"
    OUTLOOK_WITH_ZOOM = "OUTLOOK_WITH_ZOOM"
    OUTLOOK_WITH_TEAMS = "OUTLOOK_WITH_TEAMS"


class MeetingCombination(str, Enum):
    """One concrete (meeting provider, calendar provider) pair."""
    GOOGLE_MEET_CALENDAR = "google_meet_calendar"
    ZOOM_GOOGLE_CALENDAR = "zoom_google_calendar"
    ZOOM_OUTLOOK_CALENDAR = "zoom_outlook_calendar"
    TEAMS_OUTLOOK_CALENDAR = "teams_outlook_calendar"
    TEAMS_GOOGLE_CALENDAR = "teams_google_calendar"
    GOOGLE_MEET_OUTLOOK_CALENDAR = "google_meet_outlook_calendar"


class IntegrationProvider(str, Enum):
    GOOGLE = "GOOGLE"
    ZOOM = "ZOOM"
    MICROSOFT = "MICROSOFT"
    OUTLOOK = "OUTLOOK"
    TEAMS = "TEAMS"


class IntegrationCategory(str, Enum):
    CALENDAR_AND_VIDEO_CONFERENCING = "CALENDAR_AND_VIDEO_CONFERENCING"
    VIDEO_CONFERENCING = "VIDEO_CONFERENCING"
    CALENDAR = "CALENDAR"


class IntegrationAppType(str, Enum):
    """The app a user connected; one Integration per (user, app type)."""
    GOOGLE_MEET_AND_CALENDAR = "GOOGLE_MEET_AND_CALENDAR"
    ZOOM_MEETING = "ZOOM_MEETING"
    OUTLOOK_CALENDAR = "OUTLOOK_CALENDAR"
    OUTLOOK_WITH_ZOOM = "OUTLOOK_WITH_ZOOM"
    OUTLOOK_WITH_TEAMS = "OUTLOOK_WITH_TEAMS"


# Provider and category implied by each app type
APP_TYPE_PROVIDER = {
    IntegrationAppType.GOOGLE_MEET_AND_CALENDAR: IntegrationProvider.GOOGLE,
    IntegrationAppType.ZOOM_MEETING: IntegrationProvider.ZOOM,
    IntegrationAppType.OUTLOOK_CALENDAR: IntegrationProvider.MICROSOFT,
    IntegrationAppType.OUTLOOK_WITH_ZOOM: IntegrationProvider.MICROSOFT,
    IntegrationAppType.OUTLOOK_WITH_TEAMS: IntegrationProvider.TEAMS,
}

APP_TYPE_CATEGORY = {
    IntegrationAppType.GOOGLE_MEET_AND_CALENDAR: IntegrationCategory.CALENDAR_AND_VIDEO_CONFERENCING,
    IntegrationAppType.ZOOM_MEETING: IntegrationCategory.VIDEO_CONFERENCING,
    IntegrationAppType.OUTLOOK_CALENDAR: IntegrationCategory.CALENDAR,
    IntegrationAppType.OUTLOOK_WITH_ZOOM: IntegrationCategory.CALENDAR_AND_VIDEO_CONFERENCING,
    IntegrationAppType.OUTLOOK_WITH_TEAMS: IntegrationCategory.CALENDAR_AND_VIDEO_CONFERENCING,
}


class MeetingStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    CANCELLED = "CANCELLED"


class MeetingFilter(str, Enum):
    UPCOMING = "UPCOMING"
    PAST = "PAST"
    CANCELLED = "CANCELLED"
