"""
FastAPI dependency injection.

Dependencies provide instances of services, stores and configuration
to route handlers. Using dependency injection means:
- Routes don't instantiate their own dependencies (easier to test)
- Dependencies can be overridden in tests
- Resource lifecycle (connections, HTTP clients) is managed properly

Per request we build an AuthContext from the bearer token. The role
cache it consults lives on app.state and outlives the request, so a
role is looked up once per session, not once per request.
"""

import logging
from typing import Annotated, Generator, Optional, Union

from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..config.settings import Settings, get_settings
from ..core.access import AccessGate, AuthContext, Principal
from ..core.errors import InvalidCredentials
from ..core.identity import IdentityResolver
from ..core.models import Coach, Role
from ..core.plans import PlanLifecycleManager
from ..core.roster import get_coach_by_email
from ..core.store import RecordStore
from ..infrastructure.auth.client import HostedAuthConfig, HostedIdentityProvider
from ..infrastructure.auth.mock import MockIdentityProvider
from ..infrastructure.factory import create_record_store

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

IdentityProviderImpl = Union[HostedIdentityProvider, MockIdentityProvider]


# ---------------------------------------------------------------------------
# Record store
# ---------------------------------------------------------------------------

def get_record_store(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
) -> Generator[RecordStore, None, None]:
    """
    Provide the record store for this request.

    This is a generator function because the Snowflake connection must
    be closed after the request. In mock mode, the in-memory store on
    app.state is shared across requests so data persists for the
    lifetime of the process.
    """
    with create_record_store(settings, request.app.state.mock_store) as store:
        yield store


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------

def get_identity_provider(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
) -> Generator[IdentityProviderImpl, None, None]:
    if settings.auth_mock_mode:
        provider = MockIdentityProvider(request.app.state.mock_auth)
    else:
        provider = HostedIdentityProvider(HostedAuthConfig(
            url=settings.auth_url,
            anon_key=settings.auth_anon_key,
            jwt_secret=settings.jwt_signing_secret,
            audience=settings.auth_jwt_audience,
            timeout_seconds=settings.auth_timeout_seconds,
        ))
    try:
        yield provider
    finally:
        provider.close()


def get_identity_resolver(
    request: Request,
    store: Annotated[RecordStore, Depends(get_record_store)],
) -> IdentityResolver:
    return IdentityResolver(store, cache=request.app.state.role_cache)


def get_access_gate(
    settings: Annotated[Settings, Depends(get_settings)],
) -> AccessGate:
    return AccessGate(
        login_path=settings.login_path,
        default_area_path=settings.default_area_path,
    )


def get_auth_context(
    provider: Annotated[IdentityProviderImpl, Depends(get_identity_provider)],
    resolver: Annotated[IdentityResolver, Depends(get_identity_resolver)],
    gate: Annotated[AccessGate, Depends(get_access_gate)],
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
) -> Generator[AuthContext, None, None]:
    """
    Build the request's auth context from the bearer token.

    A missing or invalid token leaves the context without a session;
    the gate then turns that into Unauthorized.
    """
    if credentials is not None:
        try:
            provider.restore(credentials.credentials)
        except InvalidCredentials as e:
            logger.info("Bearer token not accepted", extra={"error": str(e)})

    context = AuthContext(provider, resolver, gate)
    try:
        yield context
    finally:
        context.close()


def require_coach(
    request: Request,
    context: Annotated[AuthContext, Depends(get_auth_context)],
) -> Principal:
    """Any registered coach (admins included)."""
    return context.require(requested_path=request.url.path)


def require_admin(
    request: Request,
    context: Annotated[AuthContext, Depends(get_auth_context)],
) -> Principal:
    return context.require(Role.ADMIN, requested_path=request.url.path)


def get_current_coach(
    principal: Annotated[Principal, Depends(require_coach)],
    store: Annotated[RecordStore, Depends(get_record_store)],
) -> Optional[Coach]:
    """The coach row behind the principal, used as the author of writes."""
    return get_coach_by_email(store, principal.email)


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

def get_plan_manager(
    store: Annotated[RecordStore, Depends(get_record_store)],
) -> PlanLifecycleManager:
    return PlanLifecycleManager(store)


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
SettingsDep = Annotated[Settings, Depends(get_settings)]
RecordStoreDep = Annotated[RecordStore, Depends(get_record_store)]
AuthContextDep = Annotated[AuthContext, Depends(get_auth_context)]
CoachPrincipal = Annotated[Principal, Depends(require_coach)]
AdminPrincipal = Annotated[Principal, Depends(require_admin)]
CurrentCoach = Annotated[Optional[Coach], Depends(get_current_coach)]
PlanManagerDep = Annotated[PlanLifecycleManager, Depends(get_plan_manager)]
