"""
Access gate and the per-client auth context.

The gate is a pure decision: given a principal (or none) and the role a
resource requires, either allow or redirect. It never looks anything up.

AuthContext is the explicit, per-client object that ties an identity
provider, the role resolver and the gate together. It replaces a global
auth singleton: whoever handles a request or drives a client session
holds one and passes it along.

Gate states:

    UNRESOLVED ──resolve──▶ UNAUTHENTICATED
                      ├───▶ AUTHENTICATED_COACH
                      └───▶ AUTHENTICATED_ADMIN

Any session-change notification sends the context back to UNRESOLVED
and it resolves again.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from .errors import Forbidden, StoreUnavailable, Unauthorized
from .identity import IdentityProvider, IdentityResolver, Session, SessionEvent
from .models import Role

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal:
    """An authenticated user with a resolved role (None if unregistered)."""
    email: str
    role: Optional[Role]
    session_id: str = ""
    user_id: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


@dataclass(frozen=True)
class Allow:
    """Access granted."""
    principal: Principal


@dataclass(frozen=True)
class Redirect:
    """
    Access denied; send the caller to `target`.

    `from_path` is the originally requested path, set on login redirects
    so the caller can return there after sign-in.
    """
    target: str
    reason: str
    from_path: Optional[str] = None


AccessDecision = Union[Allow, Redirect]


class AccessGate:
    """Decides whether a principal may view a protected resource."""

    def __init__(
        self,
        login_path: str = "/login",
        default_area_path: str = "/dashboard",
    ) -> None:
        self.login_path = login_path
        self.default_area_path = default_area_path

    def authorize(
        self,
        principal: Optional[Principal],
        required_role: Optional[Role] = None,
        requested_path: Optional[str] = None,
    ) -> AccessDecision:
        # A principal without a coach row is treated as not signed in
        if principal is None or principal.role is None:
            return Redirect(
                target=self.login_path,
                reason="unauthenticated",
                from_path=requested_path,
            )

        if required_role == Role.ADMIN and principal.role != Role.ADMIN:
            logger.warning(
                "Admin area denied",
                extra={"email": principal.email, "path": requested_path}
            )
            return Redirect(target=self.default_area_path, reason="forbidden")

        return Allow(principal=principal)

    def enforce(
        self,
        principal: Optional[Principal],
        required_role: Optional[Role] = None,
        requested_path: Optional[str] = None,
    ) -> Principal:
        """Like authorize, but raises Unauthorized / Forbidden on denial."""
        decision = self.authorize(principal, required_role, requested_path)
        if isinstance(decision, Allow):
            return decision.principal
        if decision.reason == "unauthenticated":
            raise Unauthorized(requested_path)
        raise Forbidden(required_role.value if required_role else "")


class GateState(Enum):
    UNRESOLVED = "unresolved"
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED_COACH = "authenticated_coach"
    AUTHENTICATED_ADMIN = "authenticated_admin"


class AuthContext:
    """
    Session cache with explicit invalidation hooks.

    Subscribes to the provider on construction. Call `close()` to
    unsubscribe when the client goes away.
    """

    def __init__(
        self,
        provider: IdentityProvider,
        resolver: IdentityResolver,
        gate: AccessGate,
    ) -> None:
        self._provider = provider
        self._resolver = resolver
        self._gate = gate
        self._state = GateState.UNRESOLVED
        self._principal: Optional[Principal] = None
        self._unsubscribe = provider.on_session_change(self._on_session_change)

    @property
    def state(self) -> GateState:
        return self._state

    @property
    def principal(self) -> Optional[Principal]:
        return self._principal

    def resolve(self) -> GateState:
        """
        Leave UNRESOLVED by reading the session and resolving its role.

        Store errors propagate and leave the context UNRESOLVED.
        """
        if self._state != GateState.UNRESOLVED:
            return self._state

        session = self._provider.get_session()
        self._apply(session)
        return self._state

    def authorize(
        self,
        required_role: Optional[Role] = None,
        requested_path: Optional[str] = None,
    ) -> AccessDecision:
        self.resolve()
        return self._gate.authorize(self._principal, required_role, requested_path)

    def require(
        self,
        required_role: Optional[Role] = None,
        requested_path: Optional[str] = None,
    ) -> Principal:
        self.resolve()
        return self._gate.enforce(self._principal, required_role, requested_path)

    def sign_in(self, email: str, password: str) -> Session:
        session = self._provider.sign_in(email, password)
        self.resolve()
        return session

    def sign_out(self) -> None:
        self._provider.sign_out()

    def close(self) -> None:
        self._unsubscribe()

    # -----------------------------------------------------------------------
    # Private Methods
    # -----------------------------------------------------------------------

    def _apply(self, session: Optional[Session]) -> None:
        if session is None or session.is_expired():
            self._principal = None
            self._state = GateState.UNAUTHENTICATED
            return

        role = self._resolver.role_for_session(session)
        self._principal = Principal(
            email=session.email,
            role=role,
            session_id=session.session_id,
            user_id=session.user_id,
        )
        if role == Role.ADMIN:
            self._state = GateState.AUTHENTICATED_ADMIN
        elif role == Role.COACH:
            self._state = GateState.AUTHENTICATED_COACH
        else:
            self._state = GateState.UNAUTHENTICATED

    def _on_session_change(
        self,
        event: SessionEvent,
        session: Optional[Session],
    ) -> None:
        # Resolver first so no stale role survives the notification
        self._resolver.handle_session_change(event, session)
        self._state = GateState.UNRESOLVED
        self._principal = None

        logger.info(
            "Session changed",
            extra={"event": event.value}
        )

        if event == SessionEvent.SIGNED_OUT:
            session = None
        try:
            self._apply(session)
        except StoreUnavailable as e:
            # Stay UNRESOLVED; the next resolve() retries the lookup
            self._state = GateState.UNRESOLVED
            self._principal = None
            logger.error(
                "Role lookup failed after session change",
                extra={"event": event.value, "error": str(e)}
            )
