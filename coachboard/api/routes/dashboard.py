"""Dashboard headline numbers."""

from fastapi import APIRouter
from pydantic import BaseModel

from ...core import roster
from ..dependencies import CoachPrincipal, RecordStoreDep, SettingsDep

router = APIRouter()


class DashboardSummaryResponse(BaseModel):
    player_count: int
    observations_this_week: int
    active_plan_count: int
    recent_days: int


@router.get(
    "/summary",
    response_model=DashboardSummaryResponse,
    summary="Player, observation and plan counts",
)
def summary(
    principal: CoachPrincipal,
    store: RecordStoreDep,
    settings: SettingsDep,
) -> DashboardSummaryResponse:
    result = roster.dashboard_summary(store, recent_days=settings.recent_observation_days)
    return DashboardSummaryResponse(
        player_count=result.player_count,
        observations_this_week=result.observations_this_week,
        active_plan_count=result.active_plan_count,
        recent_days=settings.recent_observation_days,
    )
