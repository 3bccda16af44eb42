"""
Staff activity log.

Free functions over the record store. The log is a side channel: a
failed write is logged and dropped by `record_activity` so it never
fails the operation that triggered it.
"""

import logging
from typing import Optional

from .errors import CoachBoardError
from .models import ActivityEntry, ActivityType, utc_now
from .store import Collections, RecordStore

logger = logging.getLogger(__name__)


def log_activity(
    store: RecordStore,
    activity_type: ActivityType,
    summary: str,
    coach_id: Optional[str] = None,
    related_ids: Optional[dict[str, str]] = None,
) -> ActivityEntry:
    """
    Write one activity entry.

    `related_ids` may carry player_id, observation_id and pdp_id.
    """
    record = {
        "activity_type": activity_type.value,
        "summary": summary,
        "coach_id": coach_id,
        "created_at": utc_now(),
    }
    record.update(related_ids or {})
    return ActivityEntry.from_record(store.insert(Collections.ACTIVITY_LOG, record))


def record_activity(
    store: RecordStore,
    activity_type: ActivityType,
    summary: str,
    coach_id: Optional[str] = None,
    related_ids: Optional[dict[str, str]] = None,
) -> Optional[ActivityEntry]:
    """Like log_activity, but a store failure is logged instead of raised."""
    try:
        return log_activity(store, activity_type, summary, coach_id, related_ids)
    except CoachBoardError as e:
        logger.warning(
            "Failed to write activity log entry",
            extra={"activity_type": activity_type.value, "error": str(e)}
        )
        return None


def list_activity(store: RecordStore, limit: int = 50) -> list[ActivityEntry]:
    rows = store.list(
        Collections.ACTIVITY_LOG,
        order_by="created_at",
        descending=True,
        limit=limit,
    )
    return [ActivityEntry.from_record(row) for row in rows]


def list_activity_for_coach(
    store: RecordStore,
    coach_id: str,
    limit: int = 50,
) -> list[ActivityEntry]:
    rows = store.list(
        Collections.ACTIVITY_LOG,
        filter={"coach_id": coach_id},
        order_by="created_at",
        descending=True,
        limit=limit,
    )
    return [ActivityEntry.from_record(row) for row in rows]
