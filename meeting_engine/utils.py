"""
Utility functions shared by providers, strategies and repositories.
"""
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, Optional, Tuple, TypeVar
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging

from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from meeting_engine.config import settings
from meeting_engine.exceptions import InvalidBookingError, TransientProviderError

# tenacity's log hooks call Logger.log(level, msg), so they get a stdlib logger
retry_logger = logging.getLogger(__name__)

T = TypeVar('T')


def async_retry(
    max_attempts: Optional[int] = None,
    backoff_base: Optional[float] = None,
    max_wait: Optional[int] = None,
    min_wait: float = 1,
    retry_on: Optional[Tuple[type, ...]] = None,
):
    """
    Decorator for retrying async provider calls with exponential backoff.

    Only transient failures are retried by default; a 4xx rejection or a
    revoked refresh token propagates on the first attempt.

    Args:
        max_attempts: Maximum attempts (default from config)
        backoff_base: Base for exponential backoff (default from config)
        max_wait: Maximum wait time in seconds (default from config)
        min_wait: Minimum wait time in seconds
        retry_on: Tuple of exception types to retry on

    Returns:
        Decorated function with retry logic
    """
    max_attempts = max_attempts if max_attempts is not None else settings.max_retries
    backoff_base = backoff_base if backoff_base is not None else settings.retry_backoff_base
    max_wait = max_wait if max_wait is not None else settings.retry_max_wait

    if retry_on is None:
        retry_on = (TransientProviderError,)

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @retry(
            stop=stop_after_attempt(max(1, max_attempts)),
            wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait, exp_base=backoff_base),
            retry=retry_if_exception_type(retry_on),
            before_sleep=before_sleep_log(retry_logger, logging.WARNING),
            reraise=True,
        )
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            return await func(*args, **kwargs)

        return wrapper

    return decorator


def safe_dict_get(d: dict, *keys: str, default: Any = None) -> Any:
    """
    Safely get nested dictionary values.

    Args:
        d: Dictionary to search
        *keys: Keys to traverse
        default: Default value if key not found

    Returns:
        Value or default
    """
    for key in keys:
        try:
            d = d[key]
        except (KeyError, TypeError, IndexError):
            return default
    return d


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def get_zone(tz_name: str) -> ZoneInfo:
    """Resolve an IANA timezone name, raising InvalidBookingError when unknown."""
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        raise InvalidBookingError(f"Unknown timezone '{tz_name}'", details={"timezone": tz_name})


def to_utc(value: Any, tz_name: str = "UTC") -> datetime:
    """
    Normalise a guest-supplied time to an aware UTC datetime.

    Strings are parsed as ISO 8601 ("Z" suffix accepted). Values without an
    offset are interpreted in ``tz_name``; values with an offset keep it.

    Raises:
        InvalidBookingError: unparseable value or unknown timezone
    """
    zone = get_zone(tz_name or "UTC")
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise InvalidBookingError(f"Invalid ISO 8601 time '{value}'", details={"value": str(value)})

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=zone)
    return parsed.astimezone(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to a naive datetime read back from the database."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def epoch_millis(value: datetime) -> int:
    return int(value.timestamp() * 1000)
