"""
Player development plan (PDP) lifecycle.

A player has at most one active plan. Creating a plan and replacing a
plan are the same operation at the data level:

1. Read every active plan for the player
2. Deactivate each one (active=false, end_date=now)
3. Insert the new plan as active

The store gives us no multi-statement transaction, so the sequence is
not atomic. Two things follow from that:

- If it stops after changing some rows, we raise PartialLifecycleFailure
  with exactly what was changed. No rollback is attempted.
- Two concurrent calls for the same player can both read zero active
  plans and both insert. We don't prevent that here; `get_active`
  detects it and raises MultipleActivePlans so the caller can repair.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from .activity import record_activity
from .errors import (
    CoachBoardError,
    InvalidRecord,
    MultipleActivePlans,
    NotFound,
    PartialLifecycleFailure,
)
from .models import ActivityType, DevelopmentPlan, utc_now
from .store import Collections, RecordStore

logger = logging.getLogger(__name__)


class PlanLifecycleManager:
    """
    Enforces the single-active-plan rule for each player.

    `clock` is injectable so tests can produce strictly increasing
    timestamps without sleeping.
    """

    def __init__(
        self,
        store: RecordStore,
        clock: Optional[Callable[[], datetime]] = None,
        log_activity: bool = True,
    ) -> None:
        self._store = store
        self._clock = clock or utc_now
        self._log_activity = log_activity

    def create_active_plan(
        self,
        player_id: str,
        content: str,
        author_id: Optional[str],
        start_date: Optional[datetime] = None,
    ) -> DevelopmentPlan:
        """
        Make a new plan the player's only active plan.

        Raises:
            InvalidRecord: content is blank
            NotFound: the player doesn't exist
            StoreUnavailable: the store failed before anything changed
            PartialLifecycleFailure: the store failed after some rows changed,
                or while a deactivation may have been saved
        """
        if not content or not content.strip():
            raise InvalidRecord("Plan content cannot be empty")

        # Fails with NotFound before we touch any plan rows
        self._store.get(Collections.PLAYERS, player_id)

        active_rows = self._store.list(
            Collections.PDP,
            filter={"player_id": player_id, "active": True},
        )
        if len(active_rows) > 1:
            logger.warning(
                "Replacing more than one active plan",
                extra={"player_id": player_id, "active_count": len(active_rows)}
            )

        now = self._clock()
        deactivated = self._deactivate(player_id, active_rows, now)

        try:
            created = self._store.insert(Collections.PDP, {
                "player_id": player_id,
                "content": content,
                "active": True,
                "coach_id": author_id,
                "start_date": start_date or now,
                "end_date": None,
                "created_at": now,
                "updated_at": now,
            })
        except CoachBoardError as e:
            self._raise_partial(player_id, "insert", deactivated, e)

        plan = DevelopmentPlan.from_record(created)

        logger.info(
            "Development plan activated",
            extra={
                "player_id": player_id,
                "pdp_id": plan.id,
                "superseded": deactivated,
            }
        )

        if self._log_activity:
            activity = ActivityType.PDP_REPLACED if deactivated else ActivityType.PDP_CREATED
            record_activity(
                self._store,
                activity,
                summary=content[:120],
                coach_id=author_id,
                related_ids={"player_id": player_id, "pdp_id": plan.id},
            )

        return plan

    def get_history(self, player_id: str) -> list[DevelopmentPlan]:
        """All plans for the player, newest first. Read-only."""
        rows = self._store.list(
            Collections.PDP,
            filter={"player_id": player_id},
            order_by="created_at",
            descending=True,
        )
        return [DevelopmentPlan.from_record(row) for row in rows]

    def get_active(self, player_id: str) -> Optional[DevelopmentPlan]:
        """
        The player's active plan, or None.

        Raises MultipleActivePlans instead of picking one when the
        invariant has been broken.
        """
        rows = self._store.list(
            Collections.PDP,
            filter={"player_id": player_id, "active": True},
            order_by="created_at",
            descending=True,
        )
        if len(rows) > 1:
            ids = [row["id"] for row in rows]
            logger.error(
                "Multiple active plans detected",
                extra={"player_id": player_id, "pdp_ids": ids}
            )
            raise MultipleActivePlans(player_id, ids)
        if not rows:
            return None
        return DevelopmentPlan.from_record(rows[0])

    def repair_active(self, player_id: str) -> Optional[DevelopmentPlan]:
        """
        Keep the newest active plan and deactivate the rest.

        For callers that caught MultipleActivePlans. Returns the plan left
        active. A failure partway raises PartialLifecycleFailure.
        """
        rows = self._store.list(
            Collections.PDP,
            filter={"player_id": player_id, "active": True},
            order_by="created_at",
            descending=True,
        )
        if not rows:
            return None

        keep, extras = rows[0], rows[1:]
        deactivated = self._deactivate(player_id, extras, self._clock())

        if deactivated:
            logger.info(
                "Repaired active plans",
                extra={"player_id": player_id, "kept": keep["id"], "deactivated": deactivated}
            )
        return DevelopmentPlan.from_record(keep)

    def _deactivate(
        self,
        player_id: str,
        rows: list[dict],
        now: datetime,
    ) -> list[str]:
        """Switch each row to inactive. Returns the ids confirmed written."""
        deactivated: list[str] = []
        for row in rows:
            try:
                self._store.update(
                    Collections.PDP,
                    row["id"],
                    {"active": False, "end_date": now, "updated_at": now},
                )
            except NotFound as e:
                # No row matched, so this UPDATE changed nothing
                self._raise_partial(player_id, "deactivate", deactivated, e)
            except CoachBoardError as e:
                # The UPDATE may have been saved before the error surfaced
                self._raise_partial(
                    player_id, "deactivate", deactivated, e, unconfirmed=[row["id"]]
                )
            deactivated.append(row["id"])
        return deactivated

    def _raise_partial(
        self,
        player_id: str,
        phase: str,
        deactivated: list[str],
        error: CoachBoardError,
        unconfirmed: Optional[list[str]] = None,
    ) -> None:
        # Nothing written and nothing possibly written: the plain error is accurate
        if not deactivated and not unconfirmed:
            raise error

        logger.error(
            "Plan lifecycle partially applied",
            extra={
                "player_id": player_id,
                "phase": phase,
                "deactivated": deactivated,
                "unconfirmed": unconfirmed or [],
                "error": str(error),
            }
        )
        raise PartialLifecycleFailure(
            player_id,
            phase,
            deactivated,
            cause=error,
            unconfirmed_ids=unconfirmed or (),
        ) from error
