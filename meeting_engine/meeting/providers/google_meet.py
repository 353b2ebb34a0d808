"""
Google Meet via Google Calendar.

A Meet session is a calendar event with conference auto-generation, so
"create meeting" and "create calendar event" are the same remote call. This
provider satisfies both capabilities so it composes with the factory like
any other pair.
"""
from typing import Optional, Tuple
import uuid

from meeting_engine.exceptions import ProviderOperationError, ProviderResourceNotFoundError, TokenRefreshError
from meeting_engine.logging_config import get_logger
from meeting_engine.meeting.interfaces import (
    CalendarEvent,
    MeetingConfig,
    MeetingInfo,
    MeetingProvider,
    TokenConfig,
)
from meeting_engine.meeting.providers.google_calendar import GoogleCalendarProvider, PRIMARY_CALENDAR
from meeting_engine.utils import safe_dict_get

logger = get_logger(__name__)


def meet_session_id(calendar_id: str, event_id: str) -> str:
    """Session id of a Meet event: the event id, qualified when it lives off the primary calendar."""
    if calendar_id == PRIMARY_CALENDAR:
        return event_id
    return f"{calendar_id}/{event_id}"


def split_meet_session_id(session_id: str) -> Tuple[str, str]:
    # Google event ids are base32hex, so the last slash always separates the calendar
    calendar_id, _, event_id = session_id.rpartition("/")
    return calendar_id or PRIMARY_CALENDAR, event_id


class GoogleMeetProvider(GoogleCalendarProvider, MeetingProvider):
    """Meet links generated by Google Calendar's conferencing support."""

    meeting_provider_type = "google_meet"
    join_link_label = "Join Google Meet"

    @staticmethod
    def _join_url(data: dict) -> Optional[str]:
        return data.get("hangoutLink") or safe_dict_get(
            data, "conferenceData", "entryPoints", 0, "uri"
        ) or data.get("htmlLink")

    async def create_meeting(self, config: MeetingConfig, token_config: TokenConfig) -> MeetingInfo:
        config.ensure_valid_window()
        calendar_id = self.normalize_calendar_id(config.calendar_id)
        access_token = await self.validate_and_refresh_token(token_config)

        body = self._event_body(CalendarEvent(
            title=config.topic,
            description=config.agenda,
            start_time=config.start_time,
            end_time=config.end_time,
            timezone=config.timezone,
            attendees=config.attendees,
        ))
        body["conferenceData"] = {
            "createRequest": {
                "requestId": str(uuid.uuid4()),
                "conferenceSolutionKey": {"type": "hangoutsMeet"},
            }
        }

        response = await self._send(
            "POST",
            self._events_path(calendar_id),
            "create_meet_event",
            access_token,
            json=body,
            params={"conferenceDataVersion": 1, "sendUpdates": "all"},
        )
        data = self._json(response)
        join_url = self._join_url(data)
        if not data.get("id") or not join_url:
            raise ProviderOperationError(
                "Google Calendar response did not include an event id and Meet link",
                self.api_name,
                "create_meet_event",
            )

        logger.info("google_meet_event_created", calendar_id=calendar_id, calendar_event_id=data["id"])
        return MeetingInfo(
            id=meet_session_id(calendar_id, data["id"]),
            join_url=join_url,
            additional_data={
                "calendar_event_id": data["id"],
                "calendar_id": calendar_id,
                "html_link": data.get("htmlLink"),
                "conference_id": safe_dict_get(data, "conferenceData", "conferenceId"),
            },
        )

    async def delete_meeting(self, meeting_id: str, token_config: TokenConfig, owner_user_id: str) -> None:
        calendar_id, event_id = split_meet_session_id(meeting_id)
        await self.delete_event(calendar_id, event_id, token_config)

    async def can_create_meetings(self, user_id: str, token_config: TokenConfig) -> bool:
        try:
            access_token = await self.validate_and_refresh_token(token_config)
            await self._send_with_retry("GET", f"/users/me/calendarList/{PRIMARY_CALENDAR}", "get_calendar",
                                        access_token)
            return True
        except (ProviderOperationError, TokenRefreshError) as e:
            logger.warning("google_capability_probe_failed", user_id=user_id, error=str(e))
            return False

    async def get_meeting_info(self, meeting_id: str, token_config: TokenConfig) -> Optional[MeetingInfo]:
        calendar_id, event_id = split_meet_session_id(meeting_id)
        access_token = await self.validate_and_refresh_token(token_config)
        try:
            response = await self._send_with_retry(
                "GET", f"{self._events_path(calendar_id)}/{event_id}", "get_meet_event", access_token
            )
        except ProviderResourceNotFoundError:
            return None
        data = self._json(response)
        return MeetingInfo(
            id=meeting_id,
            join_url=self._join_url(data) or "",
            additional_data={"status": data.get("status"), "summary": data.get("summary")},
        )
