"""
Domain models for the coaching dashboard.

These models represent the core business concepts. They have no dependencies
on external frameworks, databases, or APIs. The record store owns every
entity; these dataclasses are transient, request-scoped copies built from
store rows with `from_record`.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Role(Enum):
    """
    Role of an authenticated coach.

    Derived from the coach registry's `is_admin` flag, never stored
    as free-form text.
    """
    COACH = "coach"
    ADMIN = "admin"


class ActivityType(Enum):
    """Kinds of entries written to the activity log."""
    PLAYER_ADDED = "player_added"
    OBSERVATION_ADDED = "observation_added"
    PDP_CREATED = "pdp_created"
    PDP_REPLACED = "pdp_replaced"


@dataclass
class Player:
    """An athlete tracked by the coaching staff."""
    id: str
    first_name: str
    last_name: str
    position: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Player":
        return cls(
            id=record["id"],
            first_name=record.get("first_name") or "",
            last_name=record.get("last_name") or "",
            position=record.get("position") or None,
            created_at=record.get("created_at") or utc_now(),
            updated_at=record.get("updated_at") or utc_now(),
        )


@dataclass
class Observation:
    """
    A written note about a player from a practice or game.

    Append-only: there is no edit or delete path.
    """
    id: str
    player_id: str
    content: str
    observation_date: datetime
    coach_id: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Observation":
        created_at = record.get("created_at") or utc_now()
        return cls(
            id=record["id"],
            player_id=record["player_id"],
            content=record.get("content") or "",
            observation_date=record.get("observation_date") or created_at,
            coach_id=record.get("coach_id"),
            created_at=created_at,
            updated_at=record.get("updated_at") or utc_now(),
        )


@dataclass
class DevelopmentPlan:
    """
    A player development plan (PDP).

    Created active. When superseded it becomes inactive with `end_date`
    set, and from then on it is an archival record that never changes.
    """
    id: str
    player_id: str
    content: str
    active: bool
    start_date: datetime
    coach_id: Optional[str] = None
    end_date: Optional[datetime] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def is_archived(self) -> bool:
        return not self.active

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "DevelopmentPlan":
        created_at = record.get("created_at") or utc_now()
        return cls(
            id=record["id"],
            player_id=record["player_id"],
            content=record.get("content") or "",
            active=bool(record.get("active")),
            start_date=record.get("start_date") or created_at,
            coach_id=record.get("coach_id"),
            end_date=record.get("end_date"),
            created_at=created_at,
            updated_at=record.get("updated_at") or utc_now(),
        )


@dataclass
class Coach:
    """A member of the coaching staff. Email is the login correlation key."""
    id: str
    email: str
    is_admin: bool = False
    first_name: str = ""
    last_name: str = ""

    @property
    def role(self) -> Role:
        return Role.ADMIN if self.is_admin else Role.COACH

    @property
    def name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.email

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Coach":
        return cls(
            id=record["id"],
            email=record.get("email") or "",
            is_admin=bool(record.get("is_admin")),
            first_name=record.get("first_name") or "",
            last_name=record.get("last_name") or "",
        )


@dataclass
class ActivityEntry:
    """One line of the staff activity feed."""
    id: str
    activity_type: str
    summary: str
    coach_id: Optional[str] = None
    player_id: Optional[str] = None
    observation_id: Optional[str] = None
    pdp_id: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "ActivityEntry":
        return cls(
            id=record["id"],
            activity_type=record.get("activity_type") or "",
            summary=record.get("summary") or "",
            coach_id=record.get("coach_id"),
            player_id=record.get("player_id"),
            observation_id=record.get("observation_id"),
            pdp_id=record.get("pdp_id"),
            created_at=record.get("created_at") or utc_now(),
        )


@dataclass
class PlayerWithPlan:
    """A player paired with the plan currently in effect, if any."""
    player: Player
    active_plan: Optional[DevelopmentPlan] = None


@dataclass
class DashboardSummary:
    """Headline numbers for the dashboard."""
    player_count: int
    observations_this_week: int
    active_plan_count: int
