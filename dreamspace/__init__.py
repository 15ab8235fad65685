"""
DreamSpace - goal tracking and team coaching.

This package contains the complete application:
- core: Framework-agnostic business logic (teams, weekly goals, results)
- infrastructure: Document store and repositories
- api: FastAPI routes and dependencies
- client: HTTP client and optimistic UI stores
- config: Application configuration
"""

__version__ = "0.1.0"
