"""
CoachBoard - a coaching-staff dashboard for players, observations and
player development plans.

This package contains the complete application:
- core: Framework-agnostic business logic
- infrastructure: Record store backends and the identity provider
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
