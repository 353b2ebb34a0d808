"""
Monitoring and metrics collection using Prometheus.
"""
from prometheus_client import Counter, Histogram, generate_latest, REGISTRY


# Metrics
provider_requests_total = Counter(
    'meeting_engine_provider_requests_total',
    'Total number of provider API requests made',
    ['provider', 'operation', 'status']
)

provider_request_duration = Histogram(
    'meeting_engine_provider_request_duration_seconds',
    'Duration of provider API requests',
    ['provider', 'operation']
)

token_refreshes_total = Counter(
    'meeting_engine_token_refreshes_total',
    'Total number of OAuth refresh-grant exchanges',
    ['provider', 'status']
)

meetings_created_total = Counter(
    'meeting_engine_meetings_created_total',
    'Total number of booking attempts',
    ['strategy', 'status']
)

meetings_cancelled_total = Counter(
    'meeting_engine_meetings_cancelled_total',
    'Total number of cancellations',
    ['strategy', 'status']
)

meeting_operation_duration = Histogram(
    'meeting_engine_operation_duration_seconds',
    'Time spent orchestrating create/cancel',
    ['operation']
)

database_operations_total = Counter(
    'meeting_engine_database_operations_total',
    'Total number of database operations',
    ['operation', 'status']
)

errors_total = Counter(
    'meeting_engine_errors_total',
    'Total number of errors by type',
    ['error_type', 'component']
)


def get_metrics() -> bytes:
    """
    Get current metrics in Prometheus format.

    Returns:
        Metrics in Prometheus text format
    """
    return generate_latest(REGISTRY)


def record_error(error_type: str, component: str):
    """
    Record an error occurrence.

    Args:
        error_type: Type of error (e.g., 'TokenRefreshError')
        component: Component where error occurred (e.g., 'zoom_provider')
    """
    errors_total.labels(error_type=error_type, component=component).inc()
