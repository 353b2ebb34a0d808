"""
Structured logging for the meeting engine.

Engine modules log snake_case events through structlog; third-party
libraries log through stdlib logging and are rendered as JSON by
python-json-logger, so one stream carries both.
"""
import logging
import structlog
from pythonjsonlogger import jsonlogger
from typing import Any, Dict, Iterable
import sys

# Event keys whose values are OAuth material and must never reach a log line
SENSITIVE_KEYS = frozenset({
    "access_token",
    "refresh_token",
    "id_token",
    "client_secret",
    "authorization",
    "code",
})
REDACTED = "[redacted]"

# Libraries that log request lines or SQL at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "msal", "sqlalchemy.engine", "aiosqlite")


def redact_tokens(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """structlog processor that masks OAuth secrets passed as keyword context."""
    for key in event_dict:
        if key.lower() in SENSITIVE_KEYS and event_dict[key] is not None:
            event_dict[key] = REDACTED
    return event_dict


def _quiet(names: Iterable[str], level: int) -> None:
    for name in names:
        logging.getLogger(name).setLevel(level)


def setup_logging(debug: bool = False) -> None:
    """
    Route engine and library logs to stdout as JSON.

    In debug mode engine events are rendered for the console instead and
    library loggers stay at INFO.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(jsonlogger.JsonFormatter(
        "%(asctime)s %(name)s %(levelname)s %(message)s",
        rename_fields={"asctime": "timestamp", "levelname": "level", "name": "logger"},
    ))

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(logging.DEBUG if debug else logging.INFO)
    _quiet(NOISY_LOGGERS, logging.INFO if debug else logging.WARNING)

    renderer = structlog.dev.ConsoleRenderer() if debug else structlog.processors.JSONRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            redact_tokens,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    return structlog.get_logger(name)


class LogContext:
    """
    Bind context such as event_id, meeting_id or strategy for one
    orchestration call. Nested contexts restore the outer values on exit,
    so a strategy binding event_id inside the service's own binding does
    not clear it. ``None`` values are not bound.
    """

    def __init__(self, **kwargs):
        self.context = {key: value for key, value in kwargs.items() if value is not None}
        self._tokens = {}

    def __enter__(self):
        self._tokens = structlog.contextvars.bind_contextvars(**self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        structlog.contextvars.reset_contextvars(**self._tokens)
