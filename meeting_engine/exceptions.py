"""
Exception hierarchy for the meeting engine.

Every exception carries a stable ``error_code`` so the HTTP surface (and any
other caller) can tell "please reconnect Zoom" apart from "this booking type
is not available yet" without parsing messages.
"""
from typing import Any, Dict, Optional


class MeetingEngineError(Exception):
    """Base exception for meeting engine errors."""
    error_code = "internal_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error_code, "message": self.message, "details": self.details}


class NotFoundError(MeetingEngineError):
    """Event or meeting absent, or not accessible (e.g. private event)."""
    error_code = "not_found"

    def __init__(self, resource: str, resource_id: str):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(
            f"{resource} '{resource_id}' not found",
            details={"resource": resource, "id": resource_id},
        )


class UnsupportedLocationTypeError(MeetingEngineError):
    """Location type has no entry in the combination registry."""
    error_code = "unsupported_location_type"

    def __init__(self, location_type: Any):
        self.location_type = location_type
        super().__init__(
            f"Location type '{location_type}' is not supported",
            details={"location_type": str(location_type)},
        )


class CombinationNotImplementedError(MeetingEngineError):
    """Combination is known to the registry but has no strategy yet."""
    error_code = "not_implemented"

    def __init__(self, location_type: Any, combination: Any):
        self.location_type = location_type
        self.combination = combination
        super().__init__(
            f"Meeting combination '{combination}' for location type '{location_type}' is not implemented yet",
            details={
                "location_type": str(location_type),
                "combination": str(combination),
                "future_feature": True,
            },
        )


class IntegrationMissingError(MeetingEngineError):
    """User has not connected an integration the combination requires."""
    error_code = "integration_missing"

    def __init__(self, user_id: str, app_type: Any):
        self.user_id = user_id
        self.app_type = app_type
        super().__init__(
            f"User has no connected '{app_type}' integration",
            details={"user_id": user_id, "app_type": str(app_type)},
        )


class IntegrationAlreadyConnectedError(MeetingEngineError):
    """An integration for this (user, app type) pair already exists."""
    error_code = "integration_already_connected"

    def __init__(self, user_id: str, app_type: Any):
        self.user_id = user_id
        self.app_type = app_type
        super().__init__(
            f"Integration '{app_type}' is already connected",
            details={"user_id": user_id, "app_type": str(app_type)},
        )


class TokenRefreshError(MeetingEngineError):
    """Refresh grant failed. The user must reauthorize; retrying will not help."""
    error_code = "reauthorization_required"

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(message, details={"provider": provider})


class ProviderOperationError(MeetingEngineError):
    """Remote provider API rejected a create/delete/read call."""
    error_code = "provider_error"

    def __init__(
        self,
        message: str,
        provider: str,
        operation: str,
        status_code: Optional[int] = None,
    ):
        self.provider = provider
        self.operation = operation
        self.status_code = status_code
        super().__init__(
            message,
            details={"provider": provider, "operation": operation, "status_code": status_code},
        )


class ProviderResourceNotFoundError(ProviderOperationError):
    """Remote resource does not exist (404/410, Zoom code 3001)."""
    pass


class TransientProviderError(ProviderOperationError):
    """Rate limited, 5xx, or network failure. Safe to retry."""

    def __init__(self, message: str, provider: str, operation: str,
                 status_code: Optional[int] = None, retry_after: Optional[int] = None):
        self.retry_after = retry_after
        super().__init__(message, provider, operation, status_code)


class InvalidBookingError(MeetingEngineError):
    """Booking request cannot be honoured (end <= start, bad timezone...)."""
    error_code = "invalid_booking"


class ConfigurationError(MeetingEngineError):
    """Registry, factory or environment misconfiguration."""
    error_code = "configuration_error"
