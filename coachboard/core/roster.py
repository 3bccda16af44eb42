"""
Players, observations and coaches.

Per-entity operations are free functions over the generic record store
rather than a service subclass per table. Each takes the store as its
first argument.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from .activity import record_activity
from .errors import InvalidRecord
from .models import (
    ActivityType,
    Coach,
    DashboardSummary,
    DevelopmentPlan,
    Observation,
    Player,
    PlayerWithPlan,
    utc_now,
)
from .store import Collections, RecordStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Players
# ---------------------------------------------------------------------------

def create_player(
    store: RecordStore,
    first_name: str,
    last_name: str,
    position: Optional[str] = None,
    coach_id: Optional[str] = None,
) -> Player:
    first_name = (first_name or "").strip()
    last_name = (last_name or "").strip()
    if not first_name or not last_name:
        raise InvalidRecord("Player first and last name are required")

    now = utc_now()
    row = store.insert(Collections.PLAYERS, {
        "first_name": first_name,
        "last_name": last_name,
        "name": f"{first_name} {last_name}",
        "position": (position or "").strip() or None,
        "created_at": now,
        "updated_at": now,
    })
    player = Player.from_record(row)

    logger.info("Player created", extra={"player_id": player.id})
    record_activity(
        store,
        ActivityType.PLAYER_ADDED,
        summary=player.name,
        coach_id=coach_id,
        related_ids={"player_id": player.id},
    )
    return player


def get_player(store: RecordStore, player_id: str) -> Player:
    return Player.from_record(store.get(Collections.PLAYERS, player_id))


def list_players(store: RecordStore) -> list[Player]:
    """All players, by last name then first name."""
    players = [
        Player.from_record(row)
        for row in store.list(Collections.PLAYERS, order_by="last_name")
    ]
    players.sort(key=lambda p: (p.last_name.lower(), p.first_name.lower()))
    return players


def list_players_with_active_plans(store: RecordStore) -> list[PlayerWithPlan]:
    """
    Every player paired with the plan in effect.

    If a player somehow has several active plans, the newest is shown.
    Repair goes through PlanLifecycleManager.get_active/repair_active.
    """
    players = list_players(store)
    active_rows = store.list(
        Collections.PDP,
        filter={"active": True},
        order_by="created_at",
        descending=True,
    )

    by_player: dict[str, DevelopmentPlan] = {}
    for row in active_rows:
        player_id = row["player_id"]
        if player_id in by_player:
            logger.warning(
                "Player has more than one active plan",
                extra={"player_id": player_id}
            )
            continue
        by_player[player_id] = DevelopmentPlan.from_record(row)

    return [PlayerWithPlan(player=p, active_plan=by_player.get(p.id)) for p in players]


# ---------------------------------------------------------------------------
# Observations
# ---------------------------------------------------------------------------

def add_observation(
    store: RecordStore,
    player_id: str,
    content: str,
    author_id: Optional[str],
    observation_date: Optional[datetime] = None,
) -> Observation:
    if not content or not content.strip():
        raise InvalidRecord("Observation content cannot be empty")

    # NotFound if the player doesn't exist
    player = get_player(store, player_id)

    now = utc_now()
    row = store.insert(Collections.OBSERVATIONS, {
        "player_id": player.id,
        "content": content,
        "observation_date": observation_date or now,
        "coach_id": author_id,
        "created_at": now,
        "updated_at": now,
    })
    observation = Observation.from_record(row)

    record_activity(
        store,
        ActivityType.OBSERVATION_ADDED,
        summary=f"{player.name}: {content[:100]}",
        coach_id=author_id,
        related_ids={"player_id": player.id, "observation_id": observation.id},
    )
    return observation


def list_observations_for_player(store: RecordStore, player_id: str) -> list[Observation]:
    """A player's observations, most recent observation date first."""
    rows = store.list(
        Collections.OBSERVATIONS,
        filter={"player_id": player_id},
        order_by="observation_date",
        descending=True,
    )
    return [Observation.from_record(row) for row in rows]


def list_observations(store: RecordStore, limit: int = 100) -> list[Observation]:
    rows = store.list(
        Collections.OBSERVATIONS,
        order_by="created_at",
        descending=True,
        limit=limit,
    )
    return [Observation.from_record(row) for row in rows]


def list_recent_observations(
    store: RecordStore,
    days: int = 7,
    limit: Optional[int] = 10,
    now: Optional[datetime] = None,
) -> list[Observation]:
    """Observations dated within the last `days` days."""
    cutoff = (now or utc_now()) - timedelta(days=days)
    rows = store.list(
        Collections.OBSERVATIONS,
        order_by="observation_date",
        descending=True,
        limit=limit,
        since=("observation_date", cutoff),
    )
    return [Observation.from_record(row) for row in rows]


# ---------------------------------------------------------------------------
# Coaches
# ---------------------------------------------------------------------------

def get_coach_by_email(store: RecordStore, email: str) -> Optional[Coach]:
    rows = store.list(Collections.COACHES, filter={"email": email})
    return Coach.from_record(rows[0]) if rows else None


def list_admins(store: RecordStore) -> list[Coach]:
    rows = store.list(Collections.COACHES, filter={"is_admin": True}, order_by="email")
    return [Coach.from_record(row) for row in rows]


def create_coach(
    store: RecordStore,
    email: str,
    first_name: str = "",
    last_name: str = "",
    is_admin: bool = False,
) -> Coach:
    email = (email or "").strip()
    if not email or "@" not in email:
        raise InvalidRecord(f"Invalid coach email: {email!r}")
    if get_coach_by_email(store, email) is not None:
        raise InvalidRecord(f"Coach already registered: {email}")

    now = utc_now()
    row = store.insert(Collections.COACHES, {
        "email": email,
        "first_name": first_name,
        "last_name": last_name,
        "is_admin": is_admin,
        "created_at": now,
        "updated_at": now,
    })
    return Coach.from_record(row)


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------

def dashboard_summary(
    store: RecordStore,
    recent_days: int = 7,
    now: Optional[datetime] = None,
) -> DashboardSummary:
    cutoff = (now or utc_now()) - timedelta(days=recent_days)
    players = store.list(Collections.PLAYERS)
    recent = store.list(Collections.OBSERVATIONS, since=("created_at", cutoff))
    active = store.list(Collections.PDP, filter={"active": True})
    return DashboardSummary(
        player_count=len(players),
        observations_this_week=len(recent),
        active_plan_count=len(active),
    )
