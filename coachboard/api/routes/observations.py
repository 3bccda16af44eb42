"""Staff-wide observation feeds."""

import logging

from fastapi import APIRouter, Query

from ...core import roster
from ..dependencies import CoachPrincipal, RecordStoreDep, SettingsDep
from .players import ObservationResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "",
    response_model=list[ObservationResponse],
    summary="Latest observations across all players",
)
def list_observations(
    principal: CoachPrincipal,
    store: RecordStoreDep,
    settings: SettingsDep,
    limit: int | None = Query(None, ge=1, le=500),
) -> list[ObservationResponse]:
    observations = roster.list_observations(store, limit=limit or settings.observation_list_limit)
    return [ObservationResponse.from_observation(o) for o in observations]


@router.get(
    "/recent",
    response_model=list[ObservationResponse],
    summary="Observations from the last few days",
)
def recent_observations(
    principal: CoachPrincipal,
    store: RecordStoreDep,
    settings: SettingsDep,
    days: int | None = Query(None, ge=1, le=365),
    limit: int = Query(10, ge=1, le=100),
) -> list[ObservationResponse]:
    observations = roster.list_recent_observations(
        store,
        days=days or settings.recent_observation_days,
        limit=limit,
    )
    return [ObservationResponse.from_observation(o) for o in observations]
