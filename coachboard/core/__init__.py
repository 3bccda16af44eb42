"""
Core business logic for the coaching dashboard.

This module is framework-agnostic - it doesn't import FastAPI, Snowflake,
or any infrastructure concerns. Everything here talks to persistence
through the RecordStore protocol and to authentication through the
IdentityProvider protocol.
"""

from .access import AccessDecision, AccessGate, Allow, AuthContext, GateState, Principal, Redirect
from .identity import IdentityProvider, IdentityResolver, RoleCache, Session, SessionEvent
from .models import (
    ActivityEntry,
    ActivityType,
    Coach,
    DashboardSummary,
    DevelopmentPlan,
    Observation,
    Player,
    PlayerWithPlan,
    Role,
)
from .plans import PlanLifecycleManager
from .store import Collections, RecordStore

__all__ = [
    "AccessDecision",
    "AccessGate",
    "ActivityEntry",
    "ActivityType",
    "Allow",
    "AuthContext",
    "Coach",
    "Collections",
    "DashboardSummary",
    "DevelopmentPlan",
    "GateState",
    "IdentityProvider",
    "IdentityResolver",
    "Observation",
    "PlanLifecycleManager",
    "Player",
    "PlayerWithPlan",
    "Principal",
    "RecordStore",
    "Redirect",
    "Role",
    "RoleCache",
    "Session",
    "SessionEvent",
]
