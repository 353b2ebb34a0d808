"""
Outlook Calendar provider (Microsoft Graph).

Only event create/delete are used, so personal outlook.com / hotmail.com
accounts work even though their calendar-listing endpoints are unreliable.
"""
from datetime import timezone
from typing import Any, Dict, Optional
from urllib.parse import quote

from meeting_engine.exceptions import ProviderOperationError, ProviderResourceNotFoundError
from meeting_engine.logging_config import get_logger
from meeting_engine.meeting.interfaces import CalendarEvent, CalendarInfo, CalendarProvider, TokenConfig
from meeting_engine.meeting.providers.base import HttpProviderMixin

logger = get_logger(__name__)

PRIMARY_CALENDAR = "primary"
PLACEHOLDER_CALENDAR_IDS = ("consultorias",)
MIN_CALENDAR_ID_LENGTH = 10


def normalize_outlook_calendar_id(calendar_id: Optional[str]) -> str:
    """
    Graph calendar ids are long opaque strings. Anything short, a known
    placeholder, or not id-shaped falls back to the default calendar.
    """
    if (
        not calendar_id
        or calendar_id == PRIMARY_CALENDAR
        or "fallback" in calendar_id
        or calendar_id in PLACEHOLDER_CALENDAR_IDS
        or len(calendar_id) < MIN_CALENDAR_ID_LENGTH
    ):
        return PRIMARY_CALENDAR
    if len(calendar_id) > 20 or "-" in calendar_id:
        return calendar_id
    logger.info("outlook_calendar_id_fallback", calendar_id=calendar_id)
    return PRIMARY_CALENDAR


def graph_event_time(value) -> Dict[str, str]:
    # Graph reads dateTime in the zone named by timeZone; UTC avoids Windows/IANA name mismatches
    return {
        "dateTime": value.astimezone(timezone.utc).replace(tzinfo=None).isoformat(timespec="seconds"),
        "timeZone": "UTC",
    }


class OutlookCalendarProvider(HttpProviderMixin, CalendarProvider):
    """Events on a user's Outlook calendar."""

    GRAPH_API_ENDPOINT = "https://graph.microsoft.com/v1.0"

    api_base = GRAPH_API_ENDPOINT
    api_name = "microsoft"
    calendar_provider_type = "outlook_calendar"
    join_link_label = "Join meeting"

    def normalize_calendar_id(self, calendar_id: Optional[str]) -> str:
        return normalize_outlook_calendar_id(calendar_id)

    def _event_body(self, event: CalendarEvent) -> Dict[str, Any]:
        body = {
            "subject": event.title,
            "body": {
                "contentType": "Text",
                "content": event.body_with_join_link(
                    event.provider_specific.get("join_link_label", self.join_link_label)
                ),
            },
            "start": graph_event_time(event.start_time),
            "end": graph_event_time(event.end_time),
            "attendees": [
                {
                    "emailAddress": {"address": email, "name": email.split("@")[0]},
                    "type": "required",
                }
                for email in event.attendees if email
            ],
            # Conferencing is provided by the external meeting provider
            "isOnlineMeeting": False,
        }
        if event.meeting_url:
            body["location"] = {"displayName": event.meeting_url}
        reminder_minutes = event.provider_specific.get("reminder_minutes")
        if reminder_minutes:
            body["isReminderOn"] = True
            body["reminderMinutesBeforeStart"] = min(reminder_minutes)
        return body

    async def create_event(self, calendar_id: str, event: CalendarEvent, token_config: TokenConfig) -> str:
        valid_calendar_id = self.normalize_calendar_id(calendar_id)
        access_token = await self.validate_and_refresh_token(token_config)

        if valid_calendar_id == PRIMARY_CALENDAR:
            path = "/me/events"
        else:
            path = f"/me/calendars/{quote(valid_calendar_id, safe='')}/events"

        response = await self._send("POST", path, "create_event", access_token, json=self._event_body(event))
        data = self._json(response)
        if not data.get("id"):
            raise ProviderOperationError("Graph response did not include an event id", self.api_name, "create_event")

        logger.info("outlook_event_created", calendar_id=valid_calendar_id, calendar_event_id=data["id"])
        return data["id"]

    async def delete_event(self, calendar_id: str, event_id: str, token_config: TokenConfig) -> None:
        access_token = await self.validate_and_refresh_token(token_config)
        # Event ids are unique per mailbox, so the calendar segment is not needed
        try:
            await self._send_with_retry(
                "DELETE", f"/me/events/{quote(event_id, safe='')}", "delete_event", access_token
            )
        except ProviderResourceNotFoundError:
            logger.info("outlook_event_already_deleted", calendar_event_id=event_id)
            return
        logger.info("outlook_event_deleted", calendar_id=calendar_id, calendar_event_id=event_id)

    async def get_calendar_info(self, calendar_id: str, token_config: TokenConfig) -> Optional[CalendarInfo]:
        valid_calendar_id = self.normalize_calendar_id(calendar_id)
        access_token = await self.validate_and_refresh_token(token_config)
        if valid_calendar_id == PRIMARY_CALENDAR:
            path = "/me/calendar"
        else:
            path = f"/me/calendars/{quote(valid_calendar_id, safe='')}"
        try:
            response = await self._send_with_retry("GET", path, "get_calendar", access_token)
        except ProviderResourceNotFoundError:
            return None
        data = self._json(response)
        return CalendarInfo(
            name=data.get("name") or valid_calendar_id,
            timezone=None,
            is_writable=bool(data.get("canEdit", True)),
        )
