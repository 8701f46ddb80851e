"""Repository pattern implementation for database access.

This module provides repository classes that encapsulate all database
access logic, providing a clean abstraction over SQLAlchemy models.
"""

from .base import BaseRepository
from .entity import EntityRepository
from .integration import GITHUB_PROVIDER, IntegrationRepository

__all__ = [
    "BaseRepository",
    "EntityRepository",
    "GITHUB_PROVIDER",
    "IntegrationRepository",
]
