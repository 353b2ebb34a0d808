"""
Meeting Engine - API Routes

Thin HTTP adapter over the orchestration service.
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST
from sqlalchemy import text

from meeting_engine.database import get_db_session
from meeting_engine.enums import MeetingFilter
from meeting_engine.exceptions import MeetingEngineError
from meeting_engine.logging_config import get_logger
from meeting_engine.meeting.interfaces import BookingRequest
from meeting_engine.meeting.service import MeetingOrchestrationService
from meeting_engine.meeting.wiring import build_orchestration_service
from meeting_engine.monitoring import get_metrics
from meeting_engine.schemas import (
    CancelMeetingResponse,
    CreateMeetingRequest,
    CreateMeetingResponse,
    ErrorResponse,
    EventReadiness,
    HealthCheck,
    IntegrationHealth,
    LocationTypesResponse,
    MeetingList,
    MeetingOut,
)

logger = get_logger(__name__)


# ============================================
# CREATE API ROUTER
# ============================================

router = APIRouter()

ERROR_STATUS_CODES = {
    "not_found": 404,
    "unsupported_location_type": 400,
    "not_implemented": 501,
    "integration_missing": 409,
    "integration_already_connected": 409,
    "reauthorization_required": 401,
    "provider_error": 502,
    "invalid_booking": 422,
    "configuration_error": 500,
}


# ============================================
# DEPENDENCY INJECTION
# ============================================

_service = None


def get_orchestration_service() -> MeetingOrchestrationService:
    """Get or create the orchestration service instance."""
    global _service
    if _service is None:
        _service = build_orchestration_service()
    return _service


# ============================================
# ERROR HANDLING
# ============================================

async def meeting_engine_error_handler(request: Request, exc: MeetingEngineError) -> JSONResponse:
    status_code = ERROR_STATUS_CODES.get(exc.error_code, 500)
    logger.info("request_failed", path=request.url.path, error_code=exc.error_code, status_code=status_code)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MeetingEngineError, meeting_engine_error_handler)


# ============================================
# MEETINGS
# ============================================

@router.post(
    "/meetings",
    response_model=CreateMeetingResponse,
    status_code=201,
    responses={code: {"model": ErrorResponse} for code in (400, 401, 404, 409, 422, 501, 502)},
)
async def create_meeting(
    body: CreateMeetingRequest,
    service: MeetingOrchestrationService = Depends(get_orchestration_service),
):
    """Book a meeting on the event's provider pair."""
    result = await service.create_meeting(BookingRequest(**body.model_dump()))
    return CreateMeetingResponse(
        meet_link=result.meet_link,
        meeting=MeetingOut.model_validate(result.meeting),
        calendar_event_id=result.calendar_event_id,
        meeting_provider_id=result.meeting_provider_id,
        additional_data=result.additional_data,
    )


@router.post(
    "/meetings/{meeting_id}/cancel",
    response_model=CancelMeetingResponse,
    responses={404: {"model": ErrorResponse}},
)
async def cancel_meeting(
    meeting_id: str,
    service: MeetingOrchestrationService = Depends(get_orchestration_service),
):
    """Cancel a booking; remote cleanup failures are reported in `errors`."""
    result = await service.cancel_meeting(meeting_id)
    return CancelMeetingResponse(**result.model_dump())


@router.get("/users/{user_id}/meetings", response_model=MeetingList)
async def list_user_meetings(
    user_id: str,
    filter: MeetingFilter = MeetingFilter.UPCOMING,
    service: MeetingOrchestrationService = Depends(get_orchestration_service),
):
    meetings = await service.get_user_meetings(user_id, filter)
    return MeetingList(
        total=len(meetings),
        filter=filter.value,
        meetings=[MeetingOut.model_validate(m) for m in meetings],
    )


# ============================================
# CAPABILITIES
# ============================================

@router.get("/location-types", response_model=LocationTypesResponse)
async def location_types(service: MeetingOrchestrationService = Depends(get_orchestration_service)):
    return LocationTypesResponse(**service.get_available_strategies())


@router.get("/events/{event_id}/readiness", response_model=EventReadiness)
async def event_readiness(
    event_id: str,
    service: MeetingOrchestrationService = Depends(get_orchestration_service),
):
    return EventReadiness(**await service.validate_event_can_create_meetings(event_id))


@router.get("/users/{user_id}/integrations/health", response_model=list[IntegrationHealth])
async def integrations_health(
    user_id: str,
    service: MeetingOrchestrationService = Depends(get_orchestration_service),
):
    return [IntegrationHealth(**entry) for entry in await service.check_integration_health(user_id)]


# ============================================
# OPERATIONS
# ============================================

@router.get("/health", response_model=HealthCheck)
async def health_check(service: MeetingOrchestrationService = Depends(get_orchestration_service)):
    """Health check endpoint."""
    try:
        async with get_db_session() as session:
            await session.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception as e:
        logger.error("health_check_database_error", error=str(e))
        db_status = "error"

    summary = service.run_health_check()
    return HealthCheck(
        status="healthy" if db_status == "connected" else "degraded",
        database=db_status,
        timestamp=datetime.now(timezone.utc).isoformat(),
        supported_location_types=summary["supported_location_types"],
        future_location_types=summary["future_location_types"],
        strategies=summary["strategies"],
    )


@router.get("/metrics")
async def metrics():
    """Prometheus metrics."""
    return Response(content=get_metrics(), media_type=CONTENT_TYPE_LATEST)
