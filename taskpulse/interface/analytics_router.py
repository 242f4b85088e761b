"""Analytics endpoints."""

import logging

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from taskpulse.core.config import Constants
from taskpulse.core.errors import error_response_for
from taskpulse.domain.user import User
from taskpulse.interface.auth import require_principal
from taskpulse.models.service_models import AnalyticsDashboard, TaskStatistics, TeamPerformance
from taskpulse.services import analytics_service


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analytics", tags=["analytics"])

TEAM_PERFORMANCE_ERROR = "Error fetching analytics data"
TASK_STATISTICS_ERROR = "Error fetching task statistics"


def _failure(exception: Exception, message: str) -> JSONResponse:
    body = error_response_for(exception, message)
    return JSONResponse(content=body.model_dump(mode="json"), status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


@router.get("/team-performance", response_model=TeamPerformance)
async def get_team_performance(principal: User = Depends(require_principal)) -> TeamPerformance | JSONResponse:
    """Per-user rollups for the current window."""
    try:
        return await analytics_service.get_team_performance()
    except Exception as e:
        logger.error("Error fetching team performance data", extra={"user_id": principal.id, "error": str(e)})
        return _failure(e, TEAM_PERFORMANCE_ERROR)


@router.get("/task-statistics", response_model=TaskStatistics)
async def get_task_statistics(principal: User = Depends(require_principal)) -> TaskStatistics | JSONResponse:
    """Status and priority breakdowns plus completed-task detail."""
    try:
        return await analytics_service.get_task_statistics()
    except Exception as e:
        logger.error("Error fetching task statistics", extra={"user_id": principal.id, "error": str(e)})
        return _failure(e, TASK_STATISTICS_ERROR)


@router.get("/dashboard", response_model=AnalyticsDashboard)
async def get_dashboard(
    target_tasks: int = Query(default=Constants.DEFAULT_PROJECTION_TARGET, alias="targetTasks", ge=0),
    principal: User = Depends(require_principal),
) -> AnalyticsDashboard | JSONResponse:
    """Derived per-user metrics combining rollups and statistics."""
    try:
        return await analytics_service.get_dashboard(target_tasks=target_tasks)
    except Exception as e:
        logger.error("Error fetching analytics dashboard", extra={"user_id": principal.id, "error": str(e)})
        return _failure(e, TEAM_PERFORMANCE_ERROR)
