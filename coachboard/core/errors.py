"""
Error taxonomy for the coaching dashboard.

Every failure the core can report has its own type so callers can tell
"that record doesn't exist" apart from "the store is down". Nothing in
the core collapses an error into an empty list or None.

The API layer maps these onto HTTP responses in one place (main.py);
the domain code only raises.
"""

from typing import Optional, Sequence


class CoachBoardError(Exception):
    """Base class for all domain errors."""
    
    # Whether the caller may retry after re-reading state
    retryable: bool = False


class NotFound(CoachBoardError):
    """Raised when a record addressed by id does not exist."""
    
    def __init__(self, collection: str, record_id: str) -> None:
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"{collection} record {record_id} not found")


class StoreUnavailable(CoachBoardError):
    """Raised when the record store cannot complete an operation."""
    
    retryable = True
    
    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        self.cause = cause
        super().__init__(message)


class InvalidRecord(CoachBoardError):
    """Raised when input data fails validation before reaching the store."""
    pass


class PartialLifecycleFailure(CoachBoardError):
    """
    A multi-step plan replacement stopped after changing some rows.
    
    `deactivated_ids` lists the plans already switched to inactive, and
    `phase` says which step failed ("deactivate" or "insert").
    `unconfirmed_ids` lists plans whose deactivation errored after the
    write was sent, so it may or may not have been saved. The caller
    must re-read the player's plans before retrying.
    """

    retryable = True

    def __init__(
        self,
        player_id: str,
        phase: str,
        deactivated_ids: Sequence[str],
        cause: Optional[BaseException] = None,
        unconfirmed_ids: Sequence[str] = (),
    ) -> None:
        self.player_id = player_id
        self.phase = phase
        self.deactivated_ids = list(deactivated_ids)
        self.unconfirmed_ids = list(unconfirmed_ids)
        self.cause = cause
        message = (
            f"Plan update for player {player_id} failed during {phase} "
            f"after deactivating {len(self.deactivated_ids)} plan(s)"
        )
        if self.unconfirmed_ids:
            message += f"; {len(self.unconfirmed_ids)} more may have been deactivated"
        super().__init__(message)


class MultipleActivePlans(CoachBoardError):
    """More than one active plan was found for a single player."""
    
    def __init__(self, player_id: str, plan_ids: Sequence[str]) -> None:
        self.player_id = player_id
        self.plan_ids = list(plan_ids)
        super().__init__(
            f"Player {player_id} has {len(self.plan_ids)} active plans"
        )


class Unauthorized(CoachBoardError):
    """No authenticated principal. Carries the path the caller wanted."""
    
    def __init__(self, requested_path: Optional[str] = None) -> None:
        self.requested_path = requested_path
        super().__init__("Authentication required")


class Forbidden(CoachBoardError):
    """Authenticated, but the resolved role is insufficient."""
    
    def __init__(self, required_role: str) -> None:
        self.required_role = required_role
        super().__init__(f"Role '{required_role}' required")


class InvalidCredentials(CoachBoardError):
    """Sign-in rejected, or a bearer token failed verification."""
    pass


class IdentityUnavailable(CoachBoardError):
    """Raised when the identity provider can't be reached."""
    
    retryable = True
