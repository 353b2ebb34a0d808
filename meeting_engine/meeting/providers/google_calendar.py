"""
Google Calendar provider.
"""
from typing import Any, Dict, Optional
from urllib.parse import quote
from zoneinfo import ZoneInfo

from meeting_engine.exceptions import ProviderOperationError, ProviderResourceNotFoundError
from meeting_engine.logging_config import get_logger
from meeting_engine.meeting.interfaces import CalendarEvent, CalendarInfo, CalendarProvider, TokenConfig
from meeting_engine.meeting.providers.base import HttpProviderMixin
from meeting_engine.utils import get_zone

logger = get_logger(__name__)

PRIMARY_CALENDAR = "primary"
# Placeholder ids written by older onboarding flows
PLACEHOLDER_CALENDAR_IDS = ("consultorias",)
MIN_CALENDAR_ID_LENGTH = 10


def normalize_google_calendar_id(calendar_id: Optional[str]) -> str:
    """
    Google accepts 'primary', email-style ids and opaque calendar ids.
    Short or placeholder values fall back to the primary calendar.
    """
    if not calendar_id or calendar_id == PRIMARY_CALENDAR:
        return PRIMARY_CALENDAR
    if "@" in calendar_id:
        return calendar_id
    if (
        len(calendar_id) < MIN_CALENDAR_ID_LENGTH
        or "fallback" in calendar_id
        or calendar_id in PLACEHOLDER_CALENDAR_IDS
    ):
        logger.info("google_calendar_id_fallback", calendar_id=calendar_id)
        return PRIMARY_CALENDAR
    return calendar_id


def google_event_time(value, tz_name: str) -> Dict[str, str]:
    zone: ZoneInfo = get_zone(tz_name or "UTC")
    return {"dateTime": value.astimezone(zone).isoformat(), "timeZone": tz_name or "UTC"}


class GoogleCalendarProvider(HttpProviderMixin, CalendarProvider):
    """Events on a user's Google Calendar."""

    GOOGLE_CALENDAR_API_BASE = "https://www.googleapis.com/calendar/v3"

    api_base = GOOGLE_CALENDAR_API_BASE
    api_name = "google"
    calendar_provider_type = "google_calendar"
    join_link_label = "Join meeting"

    def normalize_calendar_id(self, calendar_id: Optional[str]) -> str:
        return normalize_google_calendar_id(calendar_id)

    def _events_path(self, calendar_id: str) -> str:
        return f"/calendars/{quote(calendar_id, safe='@')}/events"

    def _event_body(self, event: CalendarEvent) -> Dict[str, Any]:
        body = {
            "summary": event.title,
            "description": event.body_with_join_link(
                event.provider_specific.get("join_link_label", self.join_link_label)
            ),
            "start": google_event_time(event.start_time, event.timezone),
            "end": google_event_time(event.end_time, event.timezone),
            "attendees": [{"email": email} for email in event.attendees if email],
        }
        if event.meeting_url:
            body["location"] = event.meeting_url
        reminder_minutes = event.provider_specific.get("reminder_minutes")
        if reminder_minutes:
            body["reminders"] = {
                "useDefault": False,
                "overrides": [{"method": "popup", "minutes": m} for m in reminder_minutes],
            }
        return body

    async def create_event(self, calendar_id: str, event: CalendarEvent, token_config: TokenConfig) -> str:
        valid_calendar_id = self.normalize_calendar_id(calendar_id)
        access_token = await self.validate_and_refresh_token(token_config)

        response = await self._send(
            "POST",
            self._events_path(valid_calendar_id),
            "create_event",
            access_token,
            json=self._event_body(event),
            params={"sendUpdates": "all"},
        )
        data = self._json(response)
        if not data.get("id"):
            raise ProviderOperationError("Google Calendar response did not include an event id",
                                         self.api_name, "create_event")

        logger.info("google_calendar_event_created", calendar_id=valid_calendar_id, calendar_event_id=data["id"])
        return data["id"]

    async def delete_event(self, calendar_id: str, event_id: str, token_config: TokenConfig) -> None:
        valid_calendar_id = self.normalize_calendar_id(calendar_id)
        access_token = await self.validate_and_refresh_token(token_config)
        try:
            await self._send_with_retry(
                "DELETE",
                f"{self._events_path(valid_calendar_id)}/{quote(event_id, safe='')}",
                "delete_event",
                access_token,
                params={"sendUpdates": "all"},
            )
        except ProviderResourceNotFoundError:
            logger.info("google_calendar_event_already_deleted", calendar_event_id=event_id)
            return
        logger.info("google_calendar_event_deleted", calendar_id=valid_calendar_id, calendar_event_id=event_id)

    async def get_calendar_info(self, calendar_id: str, token_config: TokenConfig) -> Optional[CalendarInfo]:
        valid_calendar_id = self.normalize_calendar_id(calendar_id)
        access_token = await self.validate_and_refresh_token(token_config)
        try:
            response = await self._send_with_retry(
                "GET",
                f"/users/me/calendarList/{quote(valid_calendar_id, safe='@')}",
                "get_calendar",
                access_token,
            )
        except ProviderResourceNotFoundError:
            return None
        data = self._json(response)
        return CalendarInfo(
            name=data.get("summary") or valid_calendar_id,
            timezone=data.get("timeZone"),
            is_writable=data.get("accessRole") in ("owner", "writer"),
        )
