"""
Admin-only endpoints.

Every route here depends on AdminPrincipal, so a signed-in coach
without the admin flag gets 403 with a redirect to the default area,
and an anonymous caller gets 401 with a redirect to login.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Query, Request, status
from pydantic import BaseModel, Field

from ...core import roster
from ...core.activity import list_activity, list_activity_for_coach
from ...core.models import ActivityEntry, Coach
from ..dependencies import AdminPrincipal, RecordStoreDep, SettingsDep

logger = logging.getLogger(__name__)

router = APIRouter()


class ActivityResponse(BaseModel):
    id: str
    activity_type: str
    summary: str
    coach_id: Optional[str] = None
    player_id: Optional[str] = None
    observation_id: Optional[str] = None
    pdp_id: Optional[str] = None
    created_at: str = Field(description="ISO format")

    @classmethod
    def from_entry(cls, entry: ActivityEntry) -> "ActivityResponse":
        return cls(
            id=entry.id,
            activity_type=entry.activity_type,
            summary=entry.summary,
            coach_id=entry.coach_id,
            player_id=entry.player_id,
            observation_id=entry.observation_id,
            pdp_id=entry.pdp_id,
            created_at=entry.created_at.isoformat(),
        )


class CoachResponse(BaseModel):
    id: str
    email: str
    name: str
    is_admin: bool

    @classmethod
    def from_coach(cls, coach: Coach) -> "CoachResponse":
        return cls(id=coach.id, email=coach.email, name=coach.name, is_admin=coach.is_admin)


class CreateCoachRequest(BaseModel):
    email: str = Field(min_length=3, max_length=254)
    first_name: str = Field("", max_length=100)
    last_name: str = Field("", max_length=100)
    is_admin: bool = False


@router.get(
    "/activity",
    response_model=list[ActivityResponse],
    summary="Staff activity log, newest first",
)
def activity(
    principal: AdminPrincipal,
    store: RecordStoreDep,
    settings: SettingsDep,
    coach_id: Optional[str] = Query(None, description="Only this coach's activity"),
    limit: Optional[int] = Query(None, ge=1, le=500),
) -> list[ActivityResponse]:
    limit = limit or settings.activity_log_limit
    if coach_id:
        entries = list_activity_for_coach(store, coach_id, limit=limit)
    else:
        entries = list_activity(store, limit=limit)
    return [ActivityResponse.from_entry(e) for e in entries]


@router.get(
    "/admins",
    response_model=list[CoachResponse],
    summary="Coaches with the admin flag",
)
def admins(principal: AdminPrincipal, store: RecordStoreDep) -> list[CoachResponse]:
    return [CoachResponse.from_coach(c) for c in roster.list_admins(store)]


@router.post(
    "/coaches",
    response_model=CoachResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a coach so they can sign in",
)
def register_coach(
    request: Request,
    body: CreateCoachRequest,
    principal: AdminPrincipal,
    store: RecordStoreDep,
) -> CoachResponse:
    coach = roster.create_coach(
        store,
        body.email,
        first_name=body.first_name,
        last_name=body.last_name,
        is_admin=body.is_admin,
    )
    # Cached "no coach row" results may now be wrong
    request.app.state.role_cache.clear()
    logger.info(
        "Coach registered",
        extra={"coach_id": coach.id, "is_admin": coach.is_admin, "by": principal.email}
    )
    return CoachResponse.from_coach(coach)
