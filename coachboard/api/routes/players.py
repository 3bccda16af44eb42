"""
Player endpoints: roster, observations and development plans.

Every write records the signed-in coach as its author. Plan writes go
through PlanLifecycleManager, which keeps at most one plan active per
player; a plan endpoint never writes pdp rows directly.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, status
from pydantic import BaseModel, Field, field_validator

from ...core import roster
from ...core.models import DevelopmentPlan, Observation, Player, PlayerWithPlan
from ..dependencies import (
    AdminPrincipal,
    CoachPrincipal,
    CurrentCoach,
    PlanManagerDep,
    RecordStoreDep,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Naive timestamps from clients are taken as UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class CreatePlayerRequest(BaseModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    position: Optional[str] = Field(None, max_length=50)


class CreateObservationRequest(BaseModel):
    content: str = Field(description="What the coach observed", min_length=1, max_length=5000)
    observation_date: Optional[datetime] = Field(
        None,
        description="When it was observed; defaults to now",
    )

    @field_validator("observation_date")
    @classmethod
    def observation_date_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)


class CreatePlanRequest(BaseModel):
    content: str = Field(description="Plan text", min_length=1, max_length=10000)
    start_date: Optional[datetime] = None

    @field_validator("start_date")
    @classmethod
    def start_date_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)


class PlayerResponse(BaseModel):
    id: str
    first_name: str
    last_name: str
    name: str
    position: Optional[str] = None
    created_at: str = Field(description="ISO format")

    @classmethod
    def from_player(cls, player: Player) -> "PlayerResponse":
        return cls(
            id=player.id,
            first_name=player.first_name,
            last_name=player.last_name,
            name=player.name,
            position=player.position,
            created_at=player.created_at.isoformat(),
        )


class ObservationResponse(BaseModel):
    id: str
    player_id: str
    content: str
    coach_id: Optional[str] = None
    observation_date: str = Field(description="ISO format")
    created_at: str = Field(description="ISO format")

    @classmethod
    def from_observation(cls, observation: Observation) -> "ObservationResponse":
        return cls(
            id=observation.id,
            player_id=observation.player_id,
            content=observation.content,
            coach_id=observation.coach_id,
            observation_date=observation.observation_date.isoformat(),
            created_at=observation.created_at.isoformat(),
        )


class PlanResponse(BaseModel):
    id: str
    player_id: str
    content: str
    active: bool
    coach_id: Optional[str] = None
    start_date: str = Field(description="ISO format")
    end_date: Optional[str] = Field(None, description="ISO format; set once superseded")
    created_at: str = Field(description="ISO format")

    @classmethod
    def from_plan(cls, plan: DevelopmentPlan) -> "PlanResponse":
        return cls(
            id=plan.id,
            player_id=plan.player_id,
            content=plan.content,
            active=plan.active,
            coach_id=plan.coach_id,
            start_date=plan.start_date.isoformat(),
            end_date=plan.end_date.isoformat() if plan.end_date else None,
            created_at=plan.created_at.isoformat(),
        )


class ActivePlanResponse(BaseModel):
    player_id: str
    plan: Optional[PlanResponse] = Field(None, description="Null when the player has no active plan")


class PlayerWithPlanResponse(PlayerResponse):
    active_plan: Optional[PlanResponse] = None

    @classmethod
    def from_player_with_plan(cls, item: PlayerWithPlan) -> "PlayerWithPlanResponse":
        base = PlayerResponse.from_player(item.player)
        return cls(
            **base.model_dump(),
            active_plan=PlanResponse.from_plan(item.active_plan) if item.active_plan else None,
        )


# ---------------------------------------------------------------------------
# Players
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=list[PlayerWithPlanResponse],
    summary="List players with their active plans",
)
def list_players(principal: CoachPrincipal, store: RecordStoreDep) -> list[PlayerWithPlanResponse]:
    return [
        PlayerWithPlanResponse.from_player_with_plan(item)
        for item in roster.list_players_with_active_plans(store)
    ]


@router.post(
    "",
    response_model=PlayerResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a player",
)
def create_player(
    body: CreatePlayerRequest,
    coach: CurrentCoach,
    store: RecordStoreDep,
) -> PlayerResponse:
    player = roster.create_player(
        store,
        body.first_name,
        body.last_name,
        position=body.position,
        coach_id=coach.id if coach else None,
    )
    return PlayerResponse.from_player(player)


@router.get(
    "/{player_id}",
    response_model=PlayerResponse,
    summary="Get a player",
)
def get_player(player_id: str, principal: CoachPrincipal, store: RecordStoreDep) -> PlayerResponse:
    return PlayerResponse.from_player(roster.get_player(store, player_id))


# ---------------------------------------------------------------------------
# Observations
# ---------------------------------------------------------------------------

@router.get(
    "/{player_id}/observations",
    response_model=list[ObservationResponse],
    summary="A player's observations, most recent first",
)
def list_player_observations(
    player_id: str,
    principal: CoachPrincipal,
    store: RecordStoreDep,
) -> list[ObservationResponse]:
    roster.get_player(store, player_id)
    return [
        ObservationResponse.from_observation(o)
        for o in roster.list_observations_for_player(store, player_id)
    ]


@router.post(
    "/{player_id}/observations",
    response_model=ObservationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record an observation",
)
def add_observation(
    player_id: str,
    body: CreateObservationRequest,
    coach: CurrentCoach,
    store: RecordStoreDep,
) -> ObservationResponse:
    observation = roster.add_observation(
        store,
        player_id,
        body.content,
        author_id=coach.id if coach else None,
        observation_date=body.observation_date,
    )
    return ObservationResponse.from_observation(observation)


# ---------------------------------------------------------------------------
# Development plans
# ---------------------------------------------------------------------------

@router.get(
    "/{player_id}/pdps",
    response_model=list[PlanResponse],
    summary="Plan history, newest first",
)
def plan_history(
    player_id: str,
    principal: CoachPrincipal,
    store: RecordStoreDep,
    plans: PlanManagerDep,
) -> list[PlanResponse]:
    roster.get_player(store, player_id)
    return [PlanResponse.from_plan(p) for p in plans.get_history(player_id)]


@router.get(
    "/{player_id}/pdps/active",
    response_model=ActivePlanResponse,
    summary="The plan currently in effect",
    responses={409: {"description": "More than one plan is active"}},
)
def active_plan(
    player_id: str,
    principal: CoachPrincipal,
    store: RecordStoreDep,
    plans: PlanManagerDep,
) -> ActivePlanResponse:
    roster.get_player(store, player_id)
    plan = plans.get_active(player_id)
    return ActivePlanResponse(
        player_id=player_id,
        plan=PlanResponse.from_plan(plan) if plan else None,
    )


@router.post(
    "/{player_id}/pdps",
    response_model=PlanResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new active plan, archiving the previous one",
    responses={409: {"description": "The replacement was only partially applied"}},
)
def create_plan(
    player_id: str,
    body: CreatePlanRequest,
    coach: CurrentCoach,
    plans: PlanManagerDep,
) -> PlanResponse:
    plan = plans.create_active_plan(
        player_id,
        body.content,
        author_id=coach.id if coach else None,
        start_date=body.start_date,
    )
    return PlanResponse.from_plan(plan)


@router.post(
    "/{player_id}/pdps/repair",
    response_model=ActivePlanResponse,
    summary="Keep only the newest active plan",
)
def repair_plans(
    player_id: str,
    principal: AdminPrincipal,
    store: RecordStoreDep,
    plans: PlanManagerDep,
) -> ActivePlanResponse:
    roster.get_player(store, player_id)
    plan = plans.repair_active(player_id)
    logger.info(
        "Active plans repaired",
        extra={"player_id": player_id, "by": principal.email}
    )
    return ActivePlanResponse(
        player_id=player_id,
        plan=PlanResponse.from_plan(plan) if plan else None,
    )
