"""
Rate limiting configuration for provider API calls.
"""
from aiolimiter import AsyncLimiter

from meeting_engine.config import settings


class RateLimiters:
    """Centralized rate limiters for the three provider APIs."""

    def __init__(
        self,
        zoom_per_second: int = None,
        graph_per_minute: int = None,
        google_per_minute: int = None,
    ):
        # Zoom: account-level limits are per second
        self.zoom_limiter = AsyncLimiter(
            max_rate=zoom_per_second or settings.zoom_api_rate_limit, time_period=1
        )
        # Microsoft Graph: conservative per-minute budget
        self.graph_limiter = AsyncLimiter(
            max_rate=graph_per_minute or settings.graph_api_rate_limit, time_period=60
        )
        self.google_limiter = AsyncLimiter(
            max_rate=google_per_minute or settings.google_api_rate_limit, time_period=60
        )

    def for_provider(self, provider: str) -> AsyncLimiter:
        """Return the limiter guarding a provider's API ('zoom', 'microsoft' or 'google')."""
        if provider == "zoom":
            return self.zoom_limiter
        if provider == "microsoft":
            return self.graph_limiter
        return self.google_limiter


# Global rate limiters instance
rate_limiters = RateLimiters()
