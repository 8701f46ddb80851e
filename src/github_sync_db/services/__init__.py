"""Application services built on the repositories and the sync pipeline."""

from .integration import IntegrationService
from .query import CollectionQueryService

__all__ = [
    "CollectionQueryService",
    "IntegrationService",
]
