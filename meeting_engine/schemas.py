"""
Pydantic models for request/response validation.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from meeting_engine.enums import IntegrationAppType, MeetingStatus
from meeting_engine.utils import as_utc


class CreateMeetingRequest(BaseModel):
    """Guest booking request."""
    event_id: str
    guest_name: str = Field(..., min_length=1, max_length=255)
    guest_email: EmailStr
    start_time: str = Field(..., description="ISO 8601; local to `timezone` when it has no offset")
    end_time: str = Field(..., description="ISO 8601; local to `timezone` when it has no offset")
    timezone: str = "UTC"
    additional_info: Optional[str] = None


class MeetingOut(BaseModel):
    """Booking record as returned to clients."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    event_id: str
    owner_user_id: str
    guest_name: str
    guest_email: str
    additional_info: Optional[str] = None
    start_time: datetime
    end_time: datetime
    meet_link: str
    calendar_event_id: str
    calendar_app_type: IntegrationAppType
    calendar_id: Optional[str] = None
    meeting_provider_id: Optional[str] = None
    status: MeetingStatus

    @field_validator("start_time", "end_time")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """Stored times are naive UTC."""
        return as_utc(v)


class CreateMeetingResponse(BaseModel):
    meet_link: str
    meeting: MeetingOut
    calendar_event_id: str
    meeting_provider_id: Optional[str] = None
    additional_data: Dict[str, Any] = Field(default_factory=dict)


class CancelMeetingResponse(BaseModel):
    success: bool
    meeting_deleted: bool
    calendar_deleted: bool
    already_cancelled: bool = False
    errors: List[str] = Field(default_factory=list)


class MeetingList(BaseModel):
    total: int
    filter: str
    meetings: List[MeetingOut]


class LocationTypeInfo(BaseModel):
    location_type: str
    combination: str
    meeting_provider: str
    calendar_provider: str
    required_integrations: List[str]
    description: str
    is_implemented: bool


class LocationTypesResponse(BaseModel):
    supported: List[LocationTypeInfo]
    future: List[LocationTypeInfo]
    implemented_combinations: List[str]
    future_combinations: List[str]


class EventReadiness(BaseModel):
    event_id: str
    location_type: str
    can_create: bool
    is_implemented: bool
    required_integrations: List[str]
    missing_integrations: List[str]
    reason: Optional[str] = None


class IntegrationHealth(BaseModel):
    integration_id: str
    app_type: str
    provider: str
    healthy: bool
    error: Optional[str] = None


class HealthCheck(BaseModel):
    """Health check response."""
    status: str
    database: str
    timestamp: str
    supported_location_types: List[str]
    future_location_types: List[str]
    strategies: List[str]


class ErrorResponse(BaseModel):
    """Error response model."""
    error: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)
