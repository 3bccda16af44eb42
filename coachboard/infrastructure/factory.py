"""
Record store selection.

The API and the import script both need "the configured store": the
in-memory one in mock mode, otherwise a SnowflakeRecordStore over a
connection that must be closed afterwards. Hence a context manager.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from ..config.settings import Settings
from ..core.store import RecordStore
from .memory import InMemoryRecordStore
from .snowflake.client import SnowflakeConfig, get_snowflake_connection
from .snowflake.store import SnowflakeRecordStore

logger = logging.getLogger(__name__)


def snowflake_config_from_settings(settings: Settings) -> SnowflakeConfig:
    return SnowflakeConfig(
        account=settings.snowflake_account,
        user=settings.snowflake_user,
        password=settings.snowflake_password or None,
        private_key_path=settings.snowflake_private_key_path,
        private_key_base64=settings.snowflake_private_key_base64,
        database=settings.snowflake_database,
        schema=settings.snowflake_schema,
        warehouse=settings.snowflake_warehouse,
        role=settings.snowflake_role,
    )


@contextmanager
def create_record_store(
    settings: Settings,
    mock_store: Optional[InMemoryRecordStore] = None,
) -> Iterator[RecordStore]:
    """
    Yield the record store the settings select.

    In mock mode `mock_store` is yielded when given, so callers can
    share one in-memory store across uses; otherwise a fresh one is made.
    """
    if settings.store_mock_mode:
        yield mock_store if mock_store is not None else InMemoryRecordStore()
        return

    with get_snowflake_connection(snowflake_config_from_settings(settings)) as conn:
        logger.debug("Created SnowflakeRecordStore")
        yield SnowflakeRecordStore(conn)
