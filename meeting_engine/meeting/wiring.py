"""
Assembles providers, strategies, the factory and the service from settings.
"""
from typing import Optional

import httpx
from msal import ConfidentialClientApplication

from meeting_engine.database import get_db_session
from meeting_engine.enums import IntegrationAppType, MeetingCombination
from meeting_engine.meeting.combinations import CombinationRegistry, build_default_registry
from meeting_engine.meeting.factory import MeetingStrategyFactory
from meeting_engine.meeting.providers import (
    GoogleCalendarProvider,
    GoogleMeetProvider,
    OutlookCalendarProvider,
    ZoomMeetingProvider,
)
from meeting_engine.meeting.service import MeetingOrchestrationService
from meeting_engine.meeting.strategies import (
    GoogleMeetCalendarStrategy,
    ZoomGoogleCalendarStrategy,
    ZoomOutlookCalendarStrategy,
)
from meeting_engine.meeting.tokens import build_token_helpers
from meeting_engine.rate_limiters import RateLimiters
from meeting_engine.services.repositories import EventRepository, IntegrationRepository, MeetingRepository


def build_orchestration_service(
    session_factory=get_db_session,
    registry: Optional[CombinationRegistry] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    msal_app: Optional[ConfidentialClientApplication] = None,
    limiters: Optional[RateLimiters] = None,
) -> MeetingOrchestrationService:
    """
    Build the production object graph.

    ``transport`` and ``msal_app`` replace the network layer in tests.
    """
    registry = registry or build_default_registry()
    helpers = build_token_helpers(transport=transport, msal_app=msal_app)

    zoom = ZoomMeetingProvider(helpers["zoom"], transport=transport, limiters=limiters)
    google_calendar = GoogleCalendarProvider(helpers["google"], transport=transport, limiters=limiters)
    google_meet = GoogleMeetProvider(helpers["google"], transport=transport, limiters=limiters)
    outlook = OutlookCalendarProvider(helpers["microsoft"], transport=transport, limiters=limiters)

    events = EventRepository(session_factory)
    integrations = IntegrationRepository(session_factory)
    meetings = MeetingRepository(session_factory)
    repositories = dict(events=events, integrations=integrations, meetings=meetings)

    strategies = {
        MeetingCombination.GOOGLE_MEET_CALENDAR: GoogleMeetCalendarStrategy(
            registry.get_config(MeetingCombination.GOOGLE_MEET_CALENDAR), google_meet, **repositories
        ),
        MeetingCombination.ZOOM_GOOGLE_CALENDAR: ZoomGoogleCalendarStrategy(
            registry.get_config(MeetingCombination.ZOOM_GOOGLE_CALENDAR), zoom, google_calendar, **repositories
        ),
        MeetingCombination.ZOOM_OUTLOOK_CALENDAR: ZoomOutlookCalendarStrategy(
            registry.get_config(MeetingCombination.ZOOM_OUTLOOK_CALENDAR), zoom, outlook, **repositories
        ),
    }
    factory = MeetingStrategyFactory(
        registry,
        {c: s for c, s in strategies.items() if registry.is_implemented(c)},
    )

    return MeetingOrchestrationService(
        factory,
        events,
        integrations,
        meetings,
        health_providers={
            IntegrationAppType.ZOOM_MEETING: zoom,
            IntegrationAppType.GOOGLE_MEET_AND_CALENDAR: google_meet,
            IntegrationAppType.OUTLOOK_CALENDAR: outlook,
        },
    )
