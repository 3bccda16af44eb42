"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- snowflake: SQL-backed record store
- memory: In-memory record store for mock mode
- auth: Hosted identity provider and its in-memory mock

These wrappers translate between external formats and our domain models.
"""
