"""In-memory record store used in mock mode and tests."""

from .store import InMemoryRecordStore

__all__ = ["InMemoryRecordStore"]
