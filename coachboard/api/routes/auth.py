"""
Authentication endpoints.

Sign-in and sign-out go through the request's AuthContext so the
session-change notification reaches the shared role cache before the
response is sent. `/authorize` exposes the access gate's decision for
a presentation-layer path, so the frontend can guard its routes with
the same rules the API enforces.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, Field

from ...core.access import Allow, GateState, Principal
from ...core.errors import InvalidCredentials
from ...core.models import Role
from ..dependencies import AuthContextDep, CoachPrincipal

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class SignInRequest(BaseModel):
    email: str = Field(description="Coach email address", min_length=3)
    password: str = Field(description="Account password", min_length=1)


class SignInResponse(BaseModel):
    access_token: str = Field(description="Bearer token for subsequent requests")
    token_type: str = "bearer"
    expires_at: Optional[datetime] = Field(None, description="Token expiry (UTC)")
    email: str
    role: Role


class PrincipalResponse(BaseModel):
    email: str
    role: Role
    is_admin: bool
    state: str = Field(description="Gate state of this request's auth context")

    @classmethod
    def from_principal(cls, principal: Principal, state: GateState) -> "PrincipalResponse":
        return cls(
            email=principal.email,
            role=principal.role,
            is_admin=principal.is_admin,
            state=state.value,
        )


class AuthorizeResponse(BaseModel):
    decision: str = Field(description="'allow' or 'redirect'")
    target: Optional[str] = Field(None, description="Where to redirect, if denied")
    reason: Optional[str] = Field(None, description="'unauthenticated' or 'forbidden'")
    from_path: Optional[str] = Field(
        None,
        description="Originally requested path, for returning after sign-in",
    )
    email: Optional[str] = None
    role: Optional[Role] = None


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/sign-in",
    response_model=SignInResponse,
    summary="Sign in with email and password",
)
def sign_in(body: SignInRequest, context: AuthContextDep) -> SignInResponse:
    """
    Authenticate and resolve the coach's role.

    Credentials that are valid at the identity provider but belong to
    no registered coach are refused, and the new session is ended.
    """
    session = context.sign_in(body.email.strip(), body.password)

    principal = context.principal
    if principal is None or principal.role is None:
        logger.warning("Sign-in by unregistered user", extra={"email": session.email})
        context.sign_out()
        raise InvalidCredentials("No coach account is registered for this email")

    return SignInResponse(
        access_token=session.access_token,
        expires_at=session.expires_at,
        email=principal.email,
        role=principal.role,
    )


@router.post(
    "/sign-out",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="End the current session",
)
def sign_out(principal: CoachPrincipal, context: AuthContextDep) -> None:
    context.sign_out()
    logger.info("Coach signed out", extra={"email": principal.email})


@router.get(
    "/me",
    response_model=PrincipalResponse,
    summary="The signed-in coach",
)
def me(principal: CoachPrincipal, context: AuthContextDep) -> PrincipalResponse:
    return PrincipalResponse.from_principal(principal, context.state)


@router.get(
    "/authorize",
    response_model=AuthorizeResponse,
    summary="Route guard decision for a frontend path",
    description="Always 200; the decision itself says whether to allow or redirect.",
)
def authorize(
    context: AuthContextDep,
    path: str = Query(..., description="Path the user is trying to open"),
    required_role: Optional[Role] = Query(None, description="Role the path requires"),
) -> AuthorizeResponse:
    decision = context.authorize(required_role, requested_path=path)

    if isinstance(decision, Allow):
        return AuthorizeResponse(
            decision="allow",
            email=decision.principal.email,
            role=decision.principal.role,
        )

    return AuthorizeResponse(
        decision="redirect",
        target=decision.target,
        reason=decision.reason,
        from_path=decision.from_path,
    )
