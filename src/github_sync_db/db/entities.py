"""Closed enumeration of the synced entity kinds.

Each kind carries its ORM model, natural key and immutable columns as data,
so writers, deleters and the read layer dispatch on ``EntityKind`` instead
of looking models up by string.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from sqlalchemy import Column, String

from github_sync_db.exceptions import CollectionNotFoundError

from .models import (
    Base,
    Commit,
    Issue,
    IssueChangelog,
    Organization,
    PullRequest,
    Repository,
    User,
)

# Columns maintained by the store rather than by sync records
STORE_MANAGED_COLUMNS = frozenset({"id", "created_at", "updated_at"})


@dataclass(frozen=True)
class EntitySpec:
    """Static description of one entity kind."""

    collection: str
    """Public collection name used by the read layer and CLI."""

    model: type[Base]
    """ORM model (store handle)."""

    natural_key: tuple[str, ...]
    """Columns forming the idempotency key for upserts."""

    parent_keys: tuple[str, ...]
    """Foreign keys assigned once at creation and never rewritten."""

    label: str
    """Human-readable name for logs."""


class EntityKind(Enum):
    """Entity kinds written by a sync run, in parent-before-child order."""

    ORGANIZATIONS = EntitySpec(
        collection="organizations",
        model=Organization,
        natural_key=("github_id",),
        parent_keys=("integration_id",),
        label="organization",
    )
    REPOSITORIES = EntitySpec(
        collection="repositories",
        model=Repository,
        natural_key=("github_id",),
        parent_keys=("integration_id", "organization_id"),
        label="repository",
    )
    COMMITS = EntitySpec(
        collection="commits",
        model=Commit,
        natural_key=("sha",),
        parent_keys=("integration_id", "repository_id"),
        label="commit",
    )
    PULL_REQUESTS = EntitySpec(
        collection="pullrequests",
        model=PullRequest,
        natural_key=("repository_id", "number"),
        parent_keys=("integration_id", "repository_id"),
        label="pull request",
    )
    ISSUES = EntitySpec(
        collection="issues",
        model=Issue,
        natural_key=("repository_id", "number"),
        parent_keys=("integration_id", "repository_id"),
        label="issue",
    )
    ISSUE_CHANGELOGS = EntitySpec(
        collection="issuechangelogs",
        model=IssueChangelog,
        natural_key=("issue_id", "github_event_id"),
        parent_keys=("integration_id", "repository_id", "issue_id"),
        label="issue event",
    )
    USERS = EntitySpec(
        collection="users",
        model=User,
        natural_key=("github_id",),
        parent_keys=("integration_id", "organization_id"),
        label="member",
    )

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------
    @property
    def collection(self) -> str:
        return self.value.collection

    @property
    def model(self) -> type[Base]:
        return self.value.model

    @property
    def natural_key(self) -> tuple[str, ...]:
        return self.value.natural_key

    @property
    def label(self) -> str:
        return self.value.label

    @property
    def columns(self) -> list[Column]:
        """Table columns in declaration order."""
        return list(self.model.__table__.columns)

    @property
    def immutable_columns(self) -> frozenset[str]:
        """Columns an upsert must never overwrite on an existing row."""
        return frozenset(self.natural_key) | frozenset(self.value.parent_keys) | {
            "id",
            "created_at",
        }

    @property
    def updatable_columns(self) -> list[str]:
        """Columns refreshed from the incoming record on conflict."""
        return [
            c.name
            for c in self.columns
            if c.name not in self.immutable_columns and c.name not in STORE_MANAGED_COLUMNS
        ]

    @property
    def referencing_columns(self) -> list[Column]:
        """Foreign-key columns of other kinds that point at this kind's rows."""
        table = self.model.__table__
        return [
            fk.parent
            for kind in EntityKind
            for fk in kind.model.__table__.foreign_keys
            if fk.column.table is table
        ]

    def field_names(self) -> list[str]:
        """All column names, as exposed to the read layer."""
        return [c.name for c in self.columns]

    def searchable_fields(self) -> list[str]:
        """Top-level string columns used for free-text search."""
        return [c.name for c in self.columns if isinstance(c.type, String)]

    @classmethod
    def from_collection(cls, name: str) -> EntityKind:
        """Resolve a public collection name.

        Raises:
            CollectionNotFoundError: If no kind uses that name
        """
        for kind in cls:
            if kind.collection == name:
                return kind
        raise CollectionNotFoundError(name)

    @classmethod
    def collections(cls) -> list[str]:
        return [kind.collection for kind in cls]

    @classmethod
    def deletion_order(cls) -> list[EntityKind]:
        """Children before parents, so no row outlives the row it points to."""
        return list(reversed(list(cls)))
