"""
Snowflake implementation of the record store facade.

This module:
1. Translates between record dicts and SQL rows
2. Encapsulates all SQL text
3. Maps driver errors onto the domain error taxonomy

Collection and column names can't be bound as parameters, so every
identifier is checked against the COLUMNS whitelist before it reaches a
query. Values always go through parameter binding.

Snowflake runs each statement in autocommit here. The PDP lifecycle is
therefore two independent writes, which is what the lifecycle manager
assumes.
"""

import logging
from datetime import datetime
from typing import Any, List, Optional
from uuid import uuid4

from ...core.errors import NotFound, StoreUnavailable
from ...core.store import COLUMNS, Collections, Record, validate_columns
from .client import SnowflakeConnection

logger = logging.getLogger(__name__)


SCHEMA_DDL = {
    Collections.PLAYERS: """
        CREATE TABLE IF NOT EXISTS players (
            id VARCHAR PRIMARY KEY,
            first_name VARCHAR NOT NULL,
            last_name VARCHAR NOT NULL,
            name VARCHAR,
            position VARCHAR,
            created_at TIMESTAMP_TZ,
            updated_at TIMESTAMP_TZ
        )
    """,
    Collections.COACHES: """
        CREATE TABLE IF NOT EXISTS coaches (
            id VARCHAR PRIMARY KEY,
            email VARCHAR NOT NULL UNIQUE,
            first_name VARCHAR,
            last_name VARCHAR,
            is_admin BOOLEAN DEFAULT FALSE,
            auth_uid VARCHAR,
            created_at TIMESTAMP_TZ,
            updated_at TIMESTAMP_TZ
        )
    """,
    Collections.OBSERVATIONS: """
        CREATE TABLE IF NOT EXISTS observations (
            id VARCHAR PRIMARY KEY,
            player_id VARCHAR NOT NULL,
            coach_id VARCHAR,
            content TEXT NOT NULL,
            observation_date TIMESTAMP_TZ,
            created_at TIMESTAMP_TZ,
            updated_at TIMESTAMP_TZ
        )
    """,
    Collections.PDP: """
        CREATE TABLE IF NOT EXISTS pdp (
            id VARCHAR PRIMARY KEY,
            player_id VARCHAR NOT NULL,
            coach_id VARCHAR,
            content TEXT NOT NULL,
            active BOOLEAN NOT NULL,
            start_date TIMESTAMP_TZ,
            end_date TIMESTAMP_TZ,
            created_at TIMESTAMP_TZ,
            updated_at TIMESTAMP_TZ
        )
    """,
    Collections.ACTIVITY_LOG: """
        CREATE TABLE IF NOT EXISTS activity_log (
            id VARCHAR PRIMARY KEY,
            activity_type VARCHAR NOT NULL,
            summary TEXT,
            coach_id VARCHAR,
            player_id VARCHAR,
            observation_id VARCHAR,
            pdp_id VARCHAR,
            created_at TIMESTAMP_TZ
        )
    """,
}


def _default_driver_error() -> type:
    from snowflake.connector.errors import Error
    return Error


class SnowflakeRecordStore:
    """
    RecordStore backed by a Snowflake connection.

    `driver_error` is the exception type the connection raises; it
    defaults to snowflake-connector's base Error. Tests pass their own.
    """

    def __init__(
        self,
        connection: SnowflakeConnection,
        driver_error: Optional[type] = None,
    ) -> None:
        self._conn = connection
        self._driver_error = driver_error or _default_driver_error()

    def get(self, collection: str, record_id: str) -> Record:
        columns = COLUMNS[self._table(collection)]
        rows = self._query(
            f"SELECT {', '.join(columns)} FROM {collection} WHERE id = %s",
            (str(record_id),),
            columns,
        )
        if not rows:
            raise NotFound(collection, str(record_id))
        return rows[0]

    def list(
        self,
        collection: str,
        filter: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        since: Optional[tuple[str, datetime]] = None,
    ) -> list[Record]:
        columns = COLUMNS[self._table(collection)]
        filter = filter or {}
        validate_columns(collection, filter.keys())

        clauses = [f"{column} = %s" for column in filter]
        params: list[Any] = list(filter.values())

        if since is not None:
            since_column, bound = since
            validate_columns(collection, [since_column])
            clauses.append(f"{since_column} >= %s")
            params.append(bound)

        sql = f"SELECT {', '.join(columns)} FROM {collection}"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        if order_by:
            validate_columns(collection, [order_by])
            direction = "DESC" if descending else "ASC"
            sql += f" ORDER BY {order_by} {direction} NULLS {'LAST' if descending else 'FIRST'}"
        if limit is not None:
            sql += " LIMIT %s"
            params.append(int(limit))

        return self._query(sql, tuple(params), columns)

    def insert(self, collection: str, record: Record) -> Record:
        self._table(collection)
        row = dict(record)
        row["id"] = str(row.get("id") or uuid4())
        validate_columns(collection, row.keys())

        columns = list(row.keys())
        placeholders = ", ".join(["%s"] * len(columns))
        self._execute(
            f"INSERT INTO {collection} ({', '.join(columns)}) VALUES ({placeholders})",
            tuple(row[c] for c in columns),
            collection,
            "insert",
        )
        return row

    def update(self, collection: str, record_id: str, patch: Record) -> Record:
        """
        Update one row by id and return it with the patch applied.

        The row is read before the UPDATE, never after: once the write
        commits there is no further round trip that could fail and make
        a saved write look like a failed one.
        """
        self._table(collection)
        patch = {k: v for k, v in patch.items() if k != "id"}
        validate_columns(collection, patch.keys())

        row = self.get(collection, record_id)
        if patch:
            assignments = ", ".join(f"{column} = %s" for column in patch)
            rowcount = self._execute(
                f"UPDATE {collection} SET {assignments} WHERE id = %s",
                tuple(patch.values()) + (str(record_id),),
                collection,
                "update",
            )
            if rowcount == 0:
                raise NotFound(collection, str(record_id))
            row.update(patch)

        return row

    def create_tables(self) -> None:
        """Create every collection's table if it doesn't exist."""
        for collection, ddl in SCHEMA_DDL.items():
            self._execute(ddl, None, collection, "create")
            logger.info("Ensured table exists", extra={"collection": collection})

    # -----------------------------------------------------------------------
    # Private Methods
    # -----------------------------------------------------------------------

    @staticmethod
    def _table(collection: str) -> str:
        if collection not in COLUMNS:
            raise ValueError(f"Unknown collection: {collection}")
        return collection

    def _query(
        self,
        sql: str,
        params: tuple,
        columns: tuple[str, ...],
    ) -> List[Record]:
        cursor = self._conn.cursor()
        try:
            cursor.execute(sql, params)
            return [dict(zip(columns, row)) for row in cursor.fetchall()]
        except self._driver_error as e:
            logger.error(
                "Snowflake query failed",
                extra={"query": sql[:100], "error": str(e)}
            )
            raise StoreUnavailable(f"Query failed: {e}", cause=e) from e
        finally:
            cursor.close()

    def _execute(
        self,
        sql: str,
        params: Optional[tuple],
        collection: str,
        operation: str,
    ) -> int:
        cursor = self._conn.cursor()
        try:
            cursor.execute(sql, params)
            self._conn.commit()
            return cursor.rowcount
        except self._driver_error as e:
            logger.error(
                "Snowflake write failed",
                extra={"collection": collection, "operation": operation, "error": str(e)}
            )
            raise StoreUnavailable(f"{operation} on {collection} failed: {e}", cause=e) from e
        finally:
            cursor.close()
