"""Flat persisted-record shapes produced by the normalizer.

Every field other than the owning/parent keys and the natural key is
optional, and ``to_row`` emits only the fields that were actually set.
A field missing from the GitHub payload is therefore missing from the row,
never replaced by an invented default.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RecordBase(BaseModel):
    """Base class for normalized records."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    def to_row(self) -> dict[str, Any]:
        """Column mapping for the upsert writer (set fields only).

        Top-level timestamps stay ``datetime`` for DateTime columns; nested
        structures are dumped JSON-safe for JSON columns.
        """
        python_row = self.model_dump(exclude_unset=True, by_alias=True)
        json_row = self.model_dump(mode="json", exclude_unset=True, by_alias=True)
        return {
            key: value if isinstance(value, datetime) else json_row[key]
            for key, value in python_row.items()
        }


# ------------------------------------------------------------------------------
# Nested substructures (stored in JSON columns)
# ------------------------------------------------------------------------------
class GitActor(RecordBase):
    """Commit author or committer identity."""

    name: str | None = None
    email: str | None = None
    date: datetime | None = None


class CommitParent(RecordBase):
    sha: str | None = None


class CommitStats(RecordBase):
    additions: int | None = None
    deletions: int | None = None
    total: int | None = None


class AccountRef(RecordBase):
    """Repository owner."""

    login: str | None = None
    id: int | None = None
    type: str | None = None


class UserRef(RecordBase):
    """Author of a pull request or issue."""

    login: str | None = None
    id: int | None = None
    avatar_url: str | None = None


class LoginRef(RecordBase):
    """Assignee or event actor."""

    login: str | None = None
    id: int | None = None


class BranchRef(RecordBase):
    ref: str | None = None
    sha: str | None = None


class LabelRef(RecordBase):
    id: int | None = None
    name: str | None = None
    color: str | None = None


class EventLabel(RecordBase):
    name: str | None = None
    color: str | None = None


class Rename(RecordBase):
    """Title change carried by a "renamed" event."""

    from_: str | None = Field(default=None, alias="from")
    to: str | None = None


# ------------------------------------------------------------------------------
# Entity records
# ------------------------------------------------------------------------------
class OrganizationRecord(RecordBase):
    integration_id: int
    github_id: int = Field(description="GitHub organization id (natural key)")

    login: str | None = None
    name: str | None = None
    description: str | None = None
    html_url: str | None = None
    avatar_url: str | None = None
    type: str | None = None
    github_created_at: datetime | None = None
    github_updated_at: datetime | None = None
    public_repos: int | None = None
    followers: int | None = None
    following: int | None = None


class RepositoryRecord(RecordBase):
    integration_id: int
    organization_id: int | None = None
    github_id: int = Field(description="GitHub repository id (natural key)")

    name: str | None = None
    full_name: str | None = None
    description: str | None = None
    html_url: str | None = None
    private: bool | None = None
    fork: bool | None = None
    github_created_at: datetime | None = None
    github_updated_at: datetime | None = None
    pushed_at: datetime | None = None
    size: int | None = None
    stargazers_count: int | None = None
    watchers_count: int | None = None
    language: str | None = None
    forks_count: int | None = None
    open_issues_count: int | None = None
    default_branch: str | None = None
    owner: AccountRef | None = None


class CommitRecord(RecordBase):
    integration_id: int
    repository_id: int
    sha: str = Field(description="Commit hash (natural key)")

    message: str | None = None
    html_url: str | None = None
    author: GitActor | None = None
    committer: GitActor | None = None
    parents: list[CommitParent] | None = None
    stats: CommitStats | None = None


class PullRequestRecord(RecordBase):
    integration_id: int
    repository_id: int
    number: int = Field(description="PR number, unique within the repository")

    github_id: int | None = None
    title: str | None = None
    state: str | None = None
    body: str | None = None
    html_url: str | None = None
    github_created_at: datetime | None = None
    github_updated_at: datetime | None = None
    closed_at: datetime | None = None
    merged_at: datetime | None = None
    user: UserRef | None = None
    head: BranchRef | None = None
    base: BranchRef | None = None
    merged: bool | None = None
    mergeable: bool | None = None
    comments: int | None = None
    commits: int | None = None
    additions: int | None = None
    deletions: int | None = None
    changed_files: int | None = None


class IssueRecord(RecordBase):
    integration_id: int
    repository_id: int
    number: int = Field(description="Issue number, unique within the repository")

    github_id: int | None = None
    title: str | None = None
    state: str | None = None
    body: str | None = None
    html_url: str | None = None
    github_created_at: datetime | None = None
    github_updated_at: datetime | None = None
    closed_at: datetime | None = None
    user: UserRef | None = None
    labels: list[LabelRef] | None = None
    assignees: list[LoginRef] | None = None
    comments: int | None = None
    locked: bool | None = None


class IssueChangelogRecord(RecordBase):
    integration_id: int
    repository_id: int
    issue_id: int
    github_event_id: int = Field(description="GitHub event id, unique within the issue")

    event: str | None = None
    github_created_at: datetime | None = None
    actor: LoginRef | None = None
    label: EventLabel | None = None
    assignee: LoginRef | None = None
    rename: Rename | None = None
    commit_id: str | None = None
    commit_url: str | None = None


class UserRecord(RecordBase):
    integration_id: int
    organization_id: int | None = None
    github_id: int = Field(description="GitHub user id (natural key)")

    login: str | None = None
    name: str | None = None
    email: str | None = None
    avatar_url: str | None = None
    html_url: str | None = None
    type: str | None = None
    site_admin: bool | None = None
    company: str | None = None
    blog: str | None = None
    location: str | None = None
    bio: str | None = None
    public_repos: int | None = None
    public_gists: int | None = None
    followers: int | None = None
    following: int | None = None
    github_created_at: datetime | None = None
    github_updated_at: datetime | None = None
