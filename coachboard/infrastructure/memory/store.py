"""
In-memory record store for local development and tests.

Stores data in a dictionary of dictionaries: {collection: {id: row}}.
This enables running the full API without provisioning a database.

Not suitable for production, but perfect for:
- Local development (STORE_MOCK_MODE=true)
- Unit tests
- CI/CD environments

Tests can inject store failures with `fail_on` to exercise the
partial-failure paths of multi-step operations.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

from ...core.errors import InvalidRecord, NotFound, StoreUnavailable
from ...core.store import Collections, Record, validate_columns

logger = logging.getLogger(__name__)


@dataclass
class _InjectedFailure:
    operation: str
    collection: str
    skip: int
    times: int


class InMemoryRecordStore:
    """
    Thread-safe in-memory implementation of the RecordStore protocol.

    Every row gets a hidden insertion sequence number so that ordering
    ties are broken deterministically.
    """

    def __init__(self) -> None:
        self._tables: dict[str, dict[str, Record]] = {
            name: {} for name in Collections.ALL
        }
        self._sequence: dict[str, int] = {}
        self._counter = 0
        self._failures: list[_InjectedFailure] = []
        self._lock = threading.RLock()

        logger.info("Initialized in-memory record store")

    # -----------------------------------------------------------------------
    # RecordStore protocol
    # -----------------------------------------------------------------------

    def get(self, collection: str, record_id: str) -> Record:
        with self._lock:
            self._check_failure("get", collection)
            row = self._table(collection).get(str(record_id))
            if row is None:
                raise NotFound(collection, str(record_id))
            return dict(row)

    def list(
        self,
        collection: str,
        filter: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        since: Optional[tuple[str, datetime]] = None,
    ) -> list[Record]:
        filter = filter or {}
        with self._lock:
            self._table(collection)
            validate_columns(collection, filter.keys())
            if since is not None:
                validate_columns(collection, [since[0]])
            self._check_failure("list", collection)
            rows = [
                row for row in self._table(collection).values()
                if self._matches(row, filter, since)
            ]

            if order_by:
                validate_columns(collection, [order_by])

                def sort_key(row: Record):
                    value = row.get(order_by)
                    # Nulls sort before any value
                    return (
                        value is not None,
                        value if value is not None else 0,
                        self._sequence[row["id"]],
                    )

                rows.sort(key=sort_key, reverse=descending)
            else:
                rows.sort(key=lambda row: self._sequence[row["id"]])

            if limit is not None:
                rows = rows[:limit]
            return [dict(row) for row in rows]

    def insert(self, collection: str, record: Record) -> Record:
        with self._lock:
            validate_columns(collection, record.keys())
            self._check_failure("insert", collection)

            row = dict(record)
            row["id"] = str(row.get("id") or uuid4())
            table = self._table(collection)
            if row["id"] in table:
                raise InvalidRecord(f"Duplicate id {row['id']} in {collection}")
            self._counter += 1
            self._sequence[row["id"]] = self._counter
            table[row["id"]] = row

            logger.debug(
                "In-memory insert",
                extra={"collection": collection, "record_id": row["id"]}
            )
            return dict(row)

    def update(self, collection: str, record_id: str, patch: Record) -> Record:
        with self._lock:
            validate_columns(collection, patch.keys())
            self._check_failure("update", collection)

            table = self._table(collection)
            row = table.get(str(record_id))
            if row is None:
                raise NotFound(collection, str(record_id))

            row.update({k: v for k, v in patch.items() if k != "id"})
            return dict(row)

    # -----------------------------------------------------------------------
    # Test helpers
    # -----------------------------------------------------------------------

    def fail_on(
        self,
        operation: str,
        collection: str,
        after: int = 0,
        times: int = 1,
    ) -> None:
        """
        Make `operation` on `collection` raise StoreUnavailable.

        The first `after` matching calls succeed, the next `times` fail.
        """
        with self._lock:
            self._failures.append(
                _InjectedFailure(operation, collection, skip=after, times=times)
            )

    def clear(self) -> None:
        """Drop all rows and pending injected failures."""
        with self._lock:
            for table in self._tables.values():
                table.clear()
            self._sequence.clear()
            self._failures.clear()

    def count(self, collection: str) -> int:
        with self._lock:
            return len(self._table(collection))

    # -----------------------------------------------------------------------
    # Private Methods
    # -----------------------------------------------------------------------

    def _table(self, collection: str) -> dict[str, Record]:
        table = self._tables.get(collection)
        if table is None:
            raise ValueError(f"Unknown collection: {collection}")
        return table

    def _check_failure(self, operation: str, collection: str) -> None:
        for failure in self._failures:
            if failure.operation != operation or failure.collection != collection:
                continue
            if failure.skip > 0:
                failure.skip -= 1
                continue
            if failure.times > 0:
                failure.times -= 1
                raise StoreUnavailable(
                    f"Injected failure on {operation} {collection}"
                )

    @staticmethod
    def _matches(
        row: Record,
        filter: dict[str, Any],
        since: Optional[tuple[str, datetime]],
    ) -> bool:
        for column, value in filter.items():
            if row.get(column) != value:
                return False
        if since is not None:
            column, bound = since
            value = row.get(column)
            if value is None or value < bound:
                return False
        return True
