"""Snowflake connection management and the SQL-backed record store."""

from .client import SnowflakeConfig, SnowflakeConnectionError, get_snowflake_connection
from .store import SnowflakeRecordStore

__all__ = [
    "SnowflakeConfig",
    "SnowflakeConnectionError",
    "SnowflakeRecordStore",
    "get_snowflake_connection",
]
