"""
Zoom meeting provider.
"""
from datetime import timezone
from typing import Optional

import httpx

from meeting_engine.exceptions import ProviderOperationError, ProviderResourceNotFoundError, TokenRefreshError
from meeting_engine.logging_config import get_logger
from meeting_engine.meeting.interfaces import MeetingConfig, MeetingInfo, MeetingProvider, TokenConfig
from meeting_engine.meeting.providers.base import HttpProviderMixin

logger = get_logger(__name__)

# Zoom error code for "Meeting does not exist"
ZOOM_MEETING_NOT_FOUND_CODE = 3001
# Scheduled meeting (as opposed to instant or recurring)
ZOOM_SCHEDULED_MEETING_TYPE = 2


class ZoomMeetingProvider(HttpProviderMixin, MeetingProvider):
    """Schedules meetings on the connected user's Zoom account."""

    ZOOM_API_BASE = "https://api.zoom.us/v2"

    api_base = ZOOM_API_BASE
    api_name = "zoom"
    meeting_provider_type = "zoom"

    def _handle_http_error(self, response: httpx.Response, operation: str) -> None:
        if self._json(response).get("code") == ZOOM_MEETING_NOT_FOUND_CODE:
            raise ProviderResourceNotFoundError(
                f"Zoom meeting does not exist: {operation}", self.api_name, operation, response.status_code
            )
        super()._handle_http_error(response, operation)

    async def create_meeting(self, config: MeetingConfig, token_config: TokenConfig) -> MeetingInfo:
        config.ensure_valid_window()
        access_token = await self.validate_and_refresh_token(token_config)

        body = {
            "topic": config.topic,
            "type": ZOOM_SCHEDULED_MEETING_TYPE,
            "start_time": config.start_time.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "duration": config.duration_minutes,
            "timezone": config.timezone,
            "settings": dict(config.settings),
        }
        if config.agenda:
            body["agenda"] = config.agenda

        # Not retried: a replayed POST could schedule the meeting twice
        response = await self._send("POST", "/users/me/meetings", "create_meeting", access_token, json=body)
        data = self._json(response)
        if not data.get("id") or not data.get("join_url"):
            raise ProviderOperationError(
                "Zoom response did not include a meeting id and join URL", self.api_name, "create_meeting"
            )

        logger.info("zoom_meeting_created", zoom_meeting_id=str(data["id"]), duration=config.duration_minutes)
        return MeetingInfo(
            id=str(data["id"]),
            join_url=data["join_url"],
            start_url=data.get("start_url"),
            passcode=data.get("password"),
            additional_data={"uuid": data.get("uuid"), "host_id": data.get("host_id")},
        )

    async def delete_meeting(self, meeting_id: str, token_config: TokenConfig, owner_user_id: str) -> None:
        access_token = await self.validate_and_refresh_token(token_config)
        try:
            await self._send_with_retry("DELETE", f"/meetings/{meeting_id}", "delete_meeting", access_token)
        except ProviderResourceNotFoundError:
            logger.info("zoom_meeting_already_deleted", zoom_meeting_id=meeting_id, owner_user_id=owner_user_id)
            return
        logger.info("zoom_meeting_deleted", zoom_meeting_id=meeting_id, owner_user_id=owner_user_id)

    async def can_create_meetings(self, user_id: str, token_config: TokenConfig) -> bool:
        try:
            access_token = await self.validate_and_refresh_token(token_config)
            await self._send_with_retry("GET", "/users/me", "get_user", access_token)
            return True
        except (ProviderOperationError, TokenRefreshError) as e:
            logger.warning("zoom_capability_probe_failed", user_id=user_id, error=str(e))
            return False

    async def get_meeting_info(self, meeting_id: str, token_config: TokenConfig) -> Optional[MeetingInfo]:
        access_token = await self.validate_and_refresh_token(token_config)
        try:
            response = await self._send_with_retry("GET", f"/meetings/{meeting_id}", "get_meeting", access_token)
        except ProviderResourceNotFoundError:
            return None
        data = self._json(response)
        return MeetingInfo(
            id=str(data.get("id", meeting_id)),
            join_url=data.get("join_url", ""),
            start_url=data.get("start_url"),
            passcode=data.get("password"),
            additional_data={"status": data.get("status"), "topic": data.get("topic")},
        )
