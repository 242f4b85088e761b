from taskpulse.services import (
    aggregation_service,
    analytics_service,
    metrics_service,
    statistics_service,
    task_service,
)


__all__ = [
    "aggregation_service",
    "analytics_service",
    "metrics_service",
    "statistics_service",
    "task_service",
]
