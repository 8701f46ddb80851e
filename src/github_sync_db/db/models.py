"""SQLAlchemy ORM models for GitHub Sync DB."""

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import JSON


# JSON columns store Python None as SQL NULL, not the JSON literal null
NullableJSON = JSON(none_as_null=True)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class IntegrationStatus(str, Enum):
    """Connection status of a GitHub integration."""

    ACTIVE = "active"
    DISCONNECTED = "disconnected"


# ------------------------------------------------------------------------------
# Integration model
# ------------------------------------------------------------------------------
class Integration(Base):
    """OAuth connection between an application user and GitHub.

    Owns every synced entity through ``integration_id``.
    """

    __tablename__ = "integrations"
    __table_args__ = (
        UniqueConstraint("user_id", "provider", name="uq_integration_user_provider"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64))  # GitHub user id of the connecting user
    provider: Mapped[str] = mapped_column(String(20), default="github")

    # Secrets (never returned by read schemas)
    access_token: Mapped[str] = mapped_column(String(255))
    refresh_token: Mapped[str | None] = mapped_column(String(255), nullable=True)
    token_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    scope: Mapped[str | None] = mapped_column(String(255), nullable=True)

    status: Mapped[IntegrationStatus] = mapped_column(default=IntegrationStatus.ACTIVE)
    connected_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())
    last_synced_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # {id, login, name, email, avatar_url, html_url}
    github_user: Mapped[dict[str, Any] | None] = mapped_column(NullableJSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return (
            f"<Integration(id={self.id}, user_id='{self.user_id}', "
            f"status={self.status.value})>"
        )


# ------------------------------------------------------------------------------
# Organization model
# ------------------------------------------------------------------------------
class Organization(Base):
    """GitHub organization visible to the integration's user."""

    __tablename__ = "organizations"

    id: Mapped[int] = mapped_column(primary_key=True)
    integration_id: Mapped[int] = mapped_column(
        ForeignKey("integrations.id", ondelete="CASCADE"), index=True
    )
    github_id: Mapped[int] = mapped_column(unique=True)

    login: Mapped[str | None] = mapped_column(String(255), nullable=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    html_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    github_created_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    github_updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    public_repos: Mapped[int | None] = mapped_column(nullable=True)
    followers: Mapped[int | None] = mapped_column(nullable=True)
    following: Mapped[int | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, login='{self.login}')>"


# ------------------------------------------------------------------------------
# Repository model
# ------------------------------------------------------------------------------
class Repository(Base):
    """GitHub repository belonging to a synced organization."""

    __tablename__ = "repositories"

    id: Mapped[int] = mapped_column(primary_key=True)
    integration_id: Mapped[int] = mapped_column(
        ForeignKey("integrations.id", ondelete="CASCADE"), index=True
    )
    organization_id: Mapped[int | None] = mapped_column(
        ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True
    )
    github_id: Mapped[int] = mapped_column(unique=True)

    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    full_name: Mapped[str | None] = mapped_column(String(500), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    html_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    private: Mapped[bool | None] = mapped_column(nullable=True)
    fork: Mapped[bool | None] = mapped_column(nullable=True)
    github_created_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    github_updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    pushed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    size: Mapped[int | None] = mapped_column(nullable=True)
    stargazers_count: Mapped[int | None] = mapped_column(nullable=True)
    watchers_count: Mapped[int | None] = mapped_column(nullable=True)
    language: Mapped[str | None] = mapped_column(String(100), nullable=True)
    forks_count: Mapped[int | None] = mapped_column(nullable=True)
    open_issues_count: Mapped[int | None] = mapped_column(nullable=True)
    default_branch: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # {login, id, type}
    owner: Mapped[dict[str, Any] | None] = mapped_column(NullableJSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<Repository(id={self.id}, full_name='{self.full_name}')>"


# ------------------------------------------------------------------------------
# Commit model
# ------------------------------------------------------------------------------
class Commit(Base):
    """Commit on a repository's default branch.

    ``parents`` may reference SHAs that are not (yet) stored.
    """

    __tablename__ = "commits"

    id: Mapped[int] = mapped_column(primary_key=True)
    integration_id: Mapped[int] = mapped_column(
        ForeignKey("integrations.id", ondelete="CASCADE"), index=True
    )
    repository_id: Mapped[int] = mapped_column(
        ForeignKey("repositories.id"), index=True
    )
    sha: Mapped[str] = mapped_column(String(64), unique=True)

    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    html_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # {name, email, date}
    author: Mapped[dict[str, Any] | None] = mapped_column(NullableJSON, nullable=True)
    committer: Mapped[dict[str, Any] | None] = mapped_column(NullableJSON, nullable=True)
    # [{sha}]
    parents: Mapped[list[dict[str, Any]] | None] = mapped_column(NullableJSON, nullable=True)
    # {additions, deletions, total}
    stats: Mapped[dict[str, Any] | None] = mapped_column(NullableJSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<Commit(id={self.id}, sha='{self.sha[:7]}')>"


# ------------------------------------------------------------------------------
# PullRequest model
# ------------------------------------------------------------------------------
class PullRequest(Base):
    """Pull request, keyed by (repository, number)."""

    __tablename__ = "pull_requests"
    __table_args__ = (
        UniqueConstraint("repository_id", "number", name="uq_pull_request_repo_number"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    integration_id: Mapped[int] = mapped_column(
        ForeignKey("integrations.id", ondelete="CASCADE"), index=True
    )
    repository_id: Mapped[int] = mapped_column(ForeignKey("repositories.id"))
    number: Mapped[int] = mapped_column()

    github_id: Mapped[int | None] = mapped_column(nullable=True)
    title: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    state: Mapped[str | None] = mapped_column(String(20), nullable=True)
    body: Mapped[str | None] = mapped_column(Text, nullable=True)
    html_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    github_created_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    github_updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    merged_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # {login, id, avatar_url}
    user: Mapped[dict[str, Any] | None] = mapped_column(NullableJSON, nullable=True)
    # {ref, sha}
    head: Mapped[dict[str, Any] | None] = mapped_column(NullableJSON, nullable=True)
    base: Mapped[dict[str, Any] | None] = mapped_column(NullableJSON, nullable=True)

    # Only present on the single-PR endpoint; absent from listings
    merged: Mapped[bool | None] = mapped_column(nullable=True)
    mergeable: Mapped[bool | None] = mapped_column(nullable=True)
    comments: Mapped[int | None] = mapped_column(nullable=True)
    commits: Mapped[int | None] = mapped_column(nullable=True)
    additions: Mapped[int | None] = mapped_column(nullable=True)
    deletions: Mapped[int | None] = mapped_column(nullable=True)
    changed_files: Mapped[int | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<PullRequest(id={self.id}, number={self.number}, state='{self.state}')>"


# ------------------------------------------------------------------------------
# Issue model
# ------------------------------------------------------------------------------
class Issue(Base):
    """Issue, keyed by (repository, number)."""

    __tablename__ = "issues"
    __table_args__ = (
        UniqueConstraint("repository_id", "number", name="uq_issue_repo_number"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    integration_id: Mapped[int] = mapped_column(
        ForeignKey("integrations.id", ondelete="CASCADE"), index=True
    )
    repository_id: Mapped[int] = mapped_column(ForeignKey("repositories.id"))
    number: Mapped[int] = mapped_column()

    github_id: Mapped[int | None] = mapped_column(nullable=True)
    title: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    state: Mapped[str | None] = mapped_column(String(20), nullable=True)
    body: Mapped[str | None] = mapped_column(Text, nullable=True)
    html_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    github_created_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    github_updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # {login, id, avatar_url}
    user: Mapped[dict[str, Any] | None] = mapped_column(NullableJSON, nullable=True)
    # [{id, name, color}]
    labels: Mapped[list[dict[str, Any]] | None] = mapped_column(NullableJSON, nullable=True)
    # [{login, id}]
    assignees: Mapped[list[dict[str, Any]] | None] = mapped_column(NullableJSON, nullable=True)

    comments: Mapped[int | None] = mapped_column(nullable=True)
    locked: Mapped[bool | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<Issue(id={self.id}, number={self.number}, state='{self.state}')>"


# ------------------------------------------------------------------------------
# IssueChangelog model
# ------------------------------------------------------------------------------
class IssueChangelog(Base):
    """Timeline event on an issue (labeled, assigned, renamed, closed...)."""

    __tablename__ = "issue_changelogs"
    __table_args__ = (
        UniqueConstraint("issue_id", "github_event_id", name="uq_issue_changelog_event"),
        Index("ix_issue_changelogs_repository_id", "repository_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    integration_id: Mapped[int] = mapped_column(
        ForeignKey("integrations.id", ondelete="CASCADE"), index=True
    )
    repository_id: Mapped[int] = mapped_column(ForeignKey("repositories.id"))
    issue_id: Mapped[int] = mapped_column(ForeignKey("issues.id"))
    github_event_id: Mapped[int] = mapped_column()

    event: Mapped[str | None] = mapped_column(String(100), nullable=True)
    github_created_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    commit_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    commit_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # {login, id}
    actor: Mapped[dict[str, Any] | None] = mapped_column(NullableJSON, nullable=True)
    # {name, color}
    label: Mapped[dict[str, Any] | None] = mapped_column(NullableJSON, nullable=True)
    # {login, id}
    assignee: Mapped[dict[str, Any] | None] = mapped_column(NullableJSON, nullable=True)
    # {from, to}
    rename: Mapped[dict[str, Any] | None] = mapped_column(NullableJSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return (
            f"<IssueChangelog(id={self.id}, issue_id={self.issue_id}, "
            f"event='{self.event}')>"
        )


# ------------------------------------------------------------------------------
# User model (organization member)
# ------------------------------------------------------------------------------
class User(Base):
    """Member of a synced organization."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    integration_id: Mapped[int] = mapped_column(
        ForeignKey("integrations.id", ondelete="CASCADE"), index=True
    )
    organization_id: Mapped[int | None] = mapped_column(
        ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True
    )
    github_id: Mapped[int] = mapped_column(unique=True)

    login: Mapped[str | None] = mapped_column(String(255), nullable=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    html_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    site_admin: Mapped[bool | None] = mapped_column(nullable=True)
    company: Mapped[str | None] = mapped_column(String(255), nullable=True)
    blog: Mapped[str | None] = mapped_column(String(500), nullable=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    public_repos: Mapped[int | None] = mapped_column(nullable=True)
    public_gists: Mapped[int | None] = mapped_column(nullable=True)
    followers: Mapped[int | None] = mapped_column(nullable=True)
    following: Mapped[int | None] = mapped_column(nullable=True)
    github_created_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    github_updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, login='{self.login}')>"
