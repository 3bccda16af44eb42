"""
Record store facade.

A single generic interface over named collections of records. Every
backend (in-memory, Snowflake) implements the same four operations, and
every component above it talks to the store only through this protocol.

Records are plain dicts keyed by column name. Identifiers are opaque
strings assigned by the store on insert.

Failures are reported, never hidden:
- NotFound when an addressed id doesn't exist
- StoreUnavailable when the backend can't complete the operation
"""

from datetime import datetime
from typing import Any, Optional, Protocol


Record = dict[str, Any]


class Collections:
    """Collection names. Constants so a typo fails loudly at import."""
    PLAYERS = "players"
    COACHES = "coaches"
    OBSERVATIONS = "observations"
    PDP = "pdp"
    ACTIVITY_LOG = "activity_log"

    ALL = (PLAYERS, COACHES, OBSERVATIONS, PDP, ACTIVITY_LOG)


# Columns each collection may hold. Backends use this to whitelist
# identifiers that end up in SQL text.
COLUMNS: dict[str, tuple[str, ...]] = {
    Collections.PLAYERS: (
        "id", "first_name", "last_name", "name", "position",
        "created_at", "updated_at",
    ),
    Collections.COACHES: (
        "id", "email", "first_name", "last_name", "is_admin",
        "auth_uid", "created_at", "updated_at",
    ),
    Collections.OBSERVATIONS: (
        "id", "player_id", "coach_id", "content", "observation_date",
        "created_at", "updated_at",
    ),
    Collections.PDP: (
        "id", "player_id", "coach_id", "content", "active",
        "start_date", "end_date", "created_at", "updated_at",
    ),
    Collections.ACTIVITY_LOG: (
        "id", "activity_type", "summary", "coach_id", "player_id",
        "observation_id", "pdp_id", "created_at",
    ),
}


class RecordStore(Protocol):
    """
    Protocol for record persistence.

    Using a protocol means the lifecycle manager and resolver don't know
    whether they're talking to Snowflake or an in-memory dict.
    """

    def get(self, collection: str, record_id: str) -> Record:
        """Return one record or raise NotFound."""
        ...

    def list(
        self,
        collection: str,
        filter: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        since: Optional[tuple[str, datetime]] = None,
    ) -> list[Record]:
        """
        Return records whose columns equal every value in `filter`.

        `since` is a (column, lower bound) pair, inclusive. Rows with
        equal `order_by` values keep insertion order (reversed when
        descending).
        """
        ...

    def insert(self, collection: str, record: Record) -> Record:
        """Insert a record, assigning an id if absent. Returns the stored row."""
        ...

    def update(self, collection: str, record_id: str, patch: Record) -> Record:
        """Apply `patch` to one record. Returns the updated row or raises NotFound."""
        ...


def validate_columns(collection: str, columns) -> None:
    """Raise ValueError for unknown collections or columns."""
    allowed = COLUMNS.get(collection)
    if allowed is None:
        raise ValueError(f"Unknown collection: {collection}")
    unknown = [c for c in columns if c not in allowed]
    if unknown:
        raise ValueError(f"Unknown columns for {collection}: {', '.join(unknown)}")
