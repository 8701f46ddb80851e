"""Result objects for sync operations.

Structured results provide consistent interfaces for monitoring,
error handling, and CLI output.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from github_sync_db.db.entities import EntityKind

# SyncStats counter per entity kind
_COUNTERS = {
    EntityKind.ORGANIZATIONS: "organizations",
    EntityKind.REPOSITORIES: "repositories",
    EntityKind.COMMITS: "commits",
    EntityKind.PULL_REQUESTS: "pull_requests",
    EntityKind.ISSUES: "issues",
    EntityKind.ISSUE_CHANGELOGS: "issue_changelogs",
    EntityKind.USERS: "users",
}


@dataclass
class StageFailure:
    """A sync stage that failed and contributed nothing to the run."""

    stage: str
    """Stage name, e.g. "commits" or "issue events"."""

    scope: str
    """Parent scope the stage ran in ("octo-org", "octo-org/api#12")."""

    error: str
    """Error message."""

    error_type: str = "Exception"
    """Exception class name."""

    @classmethod
    def from_error(cls, stage: str, scope: str, error: BaseException) -> "StageFailure":
        return cls(stage=stage, scope=scope, error=str(error), error_type=type(error).__name__)

    def to_dict(self) -> dict[str, str]:
        return {
            "stage": self.stage,
            "scope": self.scope,
            "error": self.error,
            "error_type": self.error_type,
        }


@dataclass
class SyncStats:
    """Counters for one full sync run.

    Counters hold the number of records actually written; a failed stage
    adds nothing and is listed in ``failures`` instead.
    """

    integration_id: int
    organizations: int = 0
    repositories: int = 0
    commits: int = 0
    pull_requests: int = 0
    issues: int = 0
    issue_changelogs: int = 0
    users: int = 0

    failures: list[StageFailure] = field(default_factory=list)
    """Stages that failed during the run."""

    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None

    @property
    def duration_seconds(self) -> float:
        """Elapsed time, or time so far when the run is still going."""
        end = self.completed_at or datetime.now(UTC)
        return (end - self.started_at).total_seconds()

    @property
    def total_written(self) -> int:
        return (
            self.organizations
            + self.repositories
            + self.commits
            + self.pull_requests
            + self.issues
            + self.issue_changelogs
            + self.users
        )

    @property
    def success(self) -> bool:
        """True if no stage failed."""
        return not self.failures

    def add(self, kind: EntityKind, count: int) -> None:
        """Add written records to the counter for ``kind``."""
        name = _COUNTERS[kind]
        setattr(self, name, getattr(self, name) + count)

    def record_failure(self, stage: str, scope: str, error: BaseException) -> None:
        self.failures.append(StageFailure.from_error(stage, scope, error))

    def complete(self) -> None:
        """Stamp the completion time."""
        self.completed_at = datetime.now(UTC)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "integration_id": self.integration_id,
            "organizations": self.organizations,
            "repositories": self.repositories,
            "commits": self.commits,
            "pull_requests": self.pull_requests,
            "issues": self.issues,
            "issue_changelogs": self.issue_changelogs,
            "users": self.users,
            "total_written": self.total_written,
            "failures": [f.to_dict() for f in self.failures],
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": round(self.duration_seconds, 2),
        }
