"""Pydantic schemas for GitHub Sync DB.

This module provides normalized sync records and read-side models.
"""

from .base import SchemaBase
from .integration import IntegrationDetails, IntegrationRead, RemovalResult, ResyncResult
from .query import FieldDef, FilterCondition, Page, SearchHit, SortItem
from .records import (
    CommitRecord,
    IssueChangelogRecord,
    IssueRecord,
    OrganizationRecord,
    PullRequestRecord,
    RecordBase,
    RepositoryRecord,
    UserRecord,
)

__all__ = [
    # Base
    "SchemaBase",
    # Integration
    "IntegrationDetails",
    "IntegrationRead",
    "RemovalResult",
    "ResyncResult",
    # Query
    "FieldDef",
    "FilterCondition",
    "Page",
    "SearchHit",
    "SortItem",
    # Records
    "CommitRecord",
    "IssueChangelogRecord",
    "IssueRecord",
    "OrganizationRecord",
    "PullRequestRecord",
    "RecordBase",
    "RepositoryRecord",
    "UserRecord",
]
