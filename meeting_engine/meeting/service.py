"""
Meeting orchestration service: the entry points used by booking and
cancellation flows, plus read-only capability queries.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Union

from meeting_engine.enums import IntegrationAppType, MeetingFilter, MeetingStatus
from meeting_engine.exceptions import (
    CombinationNotImplementedError,
    MeetingEngineError,
    UnsupportedLocationTypeError,
)
from meeting_engine.logging_config import LogContext, get_logger
from meeting_engine.meeting.factory import MeetingStrategyFactory
from meeting_engine.meeting.interfaces import (
    BookingRequest,
    CalendarProvider,
    MeetingCancellationResult,
    MeetingCreationResult,
    MeetingProvider,
)
from meeting_engine.models import Meeting
from meeting_engine.monitoring import record_error
from meeting_engine.services.repositories import EventRepository, IntegrationRepository, MeetingRepository

logger = get_logger(__name__)

HealthProvider = Union[MeetingProvider, CalendarProvider]


class MeetingOrchestrationService:
    """Resolves the owning event, picks the strategy and delegates."""

    def __init__(
        self,
        factory: MeetingStrategyFactory,
        events: EventRepository,
        integrations: IntegrationRepository,
        meetings: MeetingRepository,
        health_providers: Optional[Mapping[IntegrationAppType, HealthProvider]] = None,
    ):
        self.factory = factory
        self.events = events
        self.integrations = integrations
        self.meetings = meetings
        self.health_providers = dict(health_providers or {})

    async def create_meeting(self, request: BookingRequest) -> MeetingCreationResult:
        """
        Book a meeting on the event's provider pair.

        Raises:
            NotFoundError, UnsupportedLocationTypeError,
            CombinationNotImplementedError, IntegrationMissingError,
            TokenRefreshError, ProviderOperationError, InvalidBookingError
        """
        with LogContext(event_id=request.event_id):
            event = await self.events.get_public_event(request.event_id)
            strategy = self.factory.create_strategy(event.location_type)
            logger.info("meeting_creation_requested", location_type=event.location_type.value,
                        strategy=strategy.get_strategy_name())
            return await strategy.create_meeting(request)

    async def cancel_meeting(self, meeting_id: str) -> MeetingCancellationResult:
        """
        Cancel a booking. Succeeds unless the meeting does not exist.

        Raises:
            NotFoundError: unknown meeting id
        """
        with LogContext(meeting_id=meeting_id):
            meeting = await self.meetings.get_or_raise(meeting_id)
            if meeting.status == MeetingStatus.CANCELLED:
                logger.info("meeting_already_cancelled")
                return MeetingCancellationResult(success=True, already_cancelled=True)

            event = await self.events.get_event(meeting.event_id)
            if event is None:
                await self.meetings.mark_cancelled(meeting.id)
                return MeetingCancellationResult(
                    success=True,
                    errors=[f"Event '{meeting.event_id}' no longer exists; remote cleanup skipped"],
                )

            strategy = self.factory.create_strategy(event.location_type)
            return await strategy.cancel_meeting(meeting.id)

    async def get_user_meetings(
        self,
        user_id: str,
        meeting_filter: MeetingFilter = MeetingFilter.UPCOMING,
    ) -> List[Meeting]:
        return await self.meetings.list_for_user(user_id, meeting_filter)

    def get_available_strategies(self) -> Dict[str, Any]:
        registry = self.factory.registry
        return {
            "supported": [self.factory.get_location_type_info(lt) for lt in self.factory.get_supported_location_types()],
            "future": [self.factory.get_location_type_info(lt) for lt in self.factory.get_future_location_types()],
            "implemented_combinations": [c.value for c in registry.get_implemented_combinations()],
            "future_combinations": [c.value for c in registry.get_future_combinations()],
        }

    async def validate_event_can_create_meetings(self, event_id: str) -> Dict[str, Any]:
        """Whether bookings on ``event_id`` would get past dispatch and integration checks."""
        event = await self.events.get_public_event(event_id)
        result: Dict[str, Any] = {
            "event_id": event.id,
            "location_type": event.location_type.value,
            "can_create": False,
            "is_implemented": False,
            "required_integrations": [],
            "missing_integrations": [],
            "reason": None,
        }
        try:
            config = self.factory.get_combination_config(event.location_type)
        except UnsupportedLocationTypeError as e:
            result["reason"] = e.error_code
            return result

        result["is_implemented"] = config.is_implemented
        result["required_integrations"] = [app_type.value for app_type in config.required_integrations]
        for app_type in config.required_integrations:
            if await self.integrations.get(event.owner_user_id, app_type) is None:
                result["missing_integrations"].append(app_type.value)

        if not config.is_implemented:
            result["reason"] = CombinationNotImplementedError.error_code
        elif result["missing_integrations"]:
            result["reason"] = "integration_missing"
        else:
            result["can_create"] = True
        return result

    async def check_integration_health(self, user_id: str) -> List[Dict[str, Any]]:
        """Probe every connected integration of ``user_id``."""
        report = []
        for integration in await self.integrations.list_for_user(user_id):
            entry: Dict[str, Any] = {
                "integration_id": integration.id,
                "app_type": integration.app_type.value,
                "provider": integration.provider.value,
                "healthy": False,
                "error": None,
            }
            provider = self.health_providers.get(integration.app_type)
            if provider is None:
                entry["error"] = "no health probe for this integration"
                report.append(entry)
                continue

            try:
                token_config = self.integrations.token_config(integration)
                if isinstance(provider, MeetingProvider):
                    entry["healthy"] = await provider.can_create_meetings(user_id, token_config)
                else:
                    await provider.validate_and_refresh_token(token_config)
                    entry["healthy"] = await provider.get_calendar_info("primary", token_config) is not None
                if token_config.refreshed:
                    await self.integrations.update_tokens(integration.id, token_config)
            except MeetingEngineError as e:
                record_error(type(e).__name__, "integration_health")
                entry["error"] = e.error_code
            report.append(entry)

        logger.info("integration_health_checked", user_id=user_id,
                    healthy=sum(1 for entry in report if entry["healthy"]), total=len(report))
        return report

    def run_health_check(self) -> Dict[str, Any]:
        registry = self.factory.registry
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "supported_location_types": [lt.value for lt in self.factory.get_supported_location_types()],
            "future_location_types": [lt.value for lt in self.factory.get_future_location_types()],
            "implemented_combinations": len(registry.get_implemented_combinations()),
            "future_combinations": len(registry.get_future_combinations()),
            "strategies": sorted(
                self.factory.create_strategy(lt).get_strategy_name()
                for lt in self.factory.get_supported_location_types()
            ),
        }
