"""
Capability interfaces and the data shapes that flow between them.

Strategies and the factory depend only on ``MeetingProvider`` and
``CalendarProvider``; adding a vendor means adding an implementation, not
touching existing strategies.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from meeting_engine.enums import MeetingCombination
from meeting_engine.exceptions import InvalidBookingError


# ============================================
# DATA SHAPES
# ============================================

class TokenConfig(BaseModel):
    """
    Decrypted credentials for one provider call sequence.

    Token helpers update this object in place when they refresh, and set
    ``refreshed`` so the caller knows to write the new values back.
    """
    access_token: str
    refresh_token: Optional[str] = None
    expiry_date: Optional[int] = Field(None, description="Expiry as epoch milliseconds")
    integration_id: Optional[str] = None
    refreshed: bool = False


class MeetingConfig(BaseModel):
    topic: str
    start_time: datetime
    end_time: datetime
    timezone: str = "UTC"
    agenda: Optional[str] = None
    settings: Dict[str, Any] = Field(default_factory=dict)
    user_id: Optional[str] = None
    attendees: List[str] = Field(default_factory=list)
    # Only read by providers whose meetings live inside a calendar event
    calendar_id: Optional[str] = None

    @property
    def duration_minutes(self) -> int:
        return max(1, int((self.end_time - self.start_time).total_seconds() // 60))

    def ensure_valid_window(self) -> None:
        if self.end_time <= self.start_time:
            raise InvalidBookingError(
                "Meeting end time must be after its start time",
                details={"start_time": self.start_time.isoformat(), "end_time": self.end_time.isoformat()},
            )


class MeetingInfo(BaseModel):
    id: str
    join_url: str
    start_url: Optional[str] = None
    passcode: Optional[str] = None
    additional_data: Dict[str, Any] = Field(default_factory=dict)


class CalendarEvent(BaseModel):
    title: str
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    timezone: str = "UTC"
    attendees: List[str] = Field(default_factory=list)
    meeting_url: Optional[str] = None
    provider_specific: Dict[str, Any] = Field(default_factory=dict)

    def body_with_join_link(self, label: str) -> str:
        """Description with the join link appended so guests can join from the invite."""
        description = self.description or ""
        if self.meeting_url:
            separator = "\n\n" if description else ""
            description = f"{description}{separator}{label}: {self.meeting_url}"
        return description


class CalendarInfo(BaseModel):
    name: str
    timezone: Optional[str] = None
    is_writable: bool = True


class BookingRequest(BaseModel):
    """Input of the create entry point."""
    event_id: str
    guest_name: str = Field(..., min_length=1)
    guest_email: EmailStr
    start_time: Union[datetime, str]
    end_time: Union[datetime, str]
    timezone: str = "UTC"
    additional_info: Optional[str] = None


class MeetingCreationResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    meet_link: str
    meeting: Any
    calendar_event_id: str
    meeting_provider_id: Optional[str] = None
    additional_data: Dict[str, Any] = Field(default_factory=dict)


class MeetingCancellationResult(BaseModel):
    success: bool = True
    meeting_deleted: bool = False
    calendar_deleted: bool = False
    already_cancelled: bool = False
    errors: List[str] = Field(default_factory=list)


# ============================================
# CAPABILITIES
# ============================================

class MeetingProvider(ABC):
    """Creates and deletes video-conferencing sessions."""

    meeting_provider_type: str = ""

    def get_meeting_provider_type(self) -> str:
        return self.meeting_provider_type

    @abstractmethod
    async def create_meeting(self, config: MeetingConfig, token_config: TokenConfig) -> MeetingInfo:
        """Create one remote scheduled session."""

    @abstractmethod
    async def delete_meeting(self, meeting_id: str, token_config: TokenConfig, owner_user_id: str) -> None:
        """Delete a session. A remote "not found" counts as success."""

    @abstractmethod
    async def validate_and_refresh_token(self, token_config: TokenConfig) -> str:
        """Return a usable access token, refreshing it when expired."""

    @abstractmethod
    async def can_create_meetings(self, user_id: str, token_config: TokenConfig) -> bool:
        """Cheap probe used by integration health checks."""

    async def get_meeting_info(self, meeting_id: str, token_config: TokenConfig) -> Optional[MeetingInfo]:
        return None


class CalendarProvider(ABC):
    """Creates and deletes calendar events."""

    calendar_provider_type: str = ""

    def get_calendar_provider_type(self) -> str:
        return self.calendar_provider_type

    @abstractmethod
    async def create_event(self, calendar_id: str, event: CalendarEvent, token_config: TokenConfig) -> str:
        """Create an event and return its external id."""

    @abstractmethod
    async def delete_event(self, calendar_id: str, event_id: str, token_config: TokenConfig) -> None:
        """Delete an event. A remote "not found" counts as success."""

    @abstractmethod
    async def validate_and_refresh_token(self, token_config: TokenConfig) -> str:
        """Return a usable access token, refreshing it when expired."""

    @abstractmethod
    def normalize_calendar_id(self, calendar_id: Optional[str]) -> str:
        """Map placeholder or malformed ids onto the account's primary calendar."""

    def can_handle_calendar(self, calendar_id: Optional[str]) -> bool:
        """True when the id is addressed as given rather than falling back to primary."""
        return bool(calendar_id) and self.normalize_calendar_id(calendar_id) == calendar_id

    async def get_calendar_info(self, calendar_id: str, token_config: TokenConfig) -> Optional[CalendarInfo]:
        return None


class MeetingStrategy(ABC):
    """Create/cancel lifecycle for one meeting combination."""

    combination: MeetingCombination

    @abstractmethod
    async def create_meeting(self, request: BookingRequest) -> MeetingCreationResult:
        ...

    @abstractmethod
    async def cancel_meeting(self, meeting_id: str) -> MeetingCancellationResult:
        ...

    @abstractmethod
    def get_meeting_provider(self) -> MeetingProvider:
        ...

    @abstractmethod
    def get_calendar_provider(self) -> CalendarProvider:
        ...

    def get_strategy_name(self) -> str:
        return (
            f"{self.get_meeting_provider().get_meeting_provider_type()}"
            f"+{self.get_calendar_provider().get_calendar_provider_type()}"
        )
