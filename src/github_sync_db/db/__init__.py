"""Database module for GitHub Sync DB."""

from github_sync_db.db.engine import (
    create_tables,
    dispose_engine,
    drop_tables,
    get_engine,
    get_session,
    get_session_factory,
)
from github_sync_db.db.entities import EntityKind
from github_sync_db.db.models import (
    Base,
    Commit,
    Integration,
    IntegrationStatus,
    Issue,
    IssueChangelog,
    Organization,
    PullRequest,
    Repository,
    User,
)
from github_sync_db.db.repositories import (
    BaseRepository,
    EntityRepository,
    IntegrationRepository,
)

__all__ = [
    # Models
    "Base",
    "Commit",
    "Integration",
    "IntegrationStatus",
    "Issue",
    "IssueChangelog",
    "Organization",
    "PullRequest",
    "Repository",
    "User",
    # Entity kinds
    "EntityKind",
    # Engine
    "create_tables",
    "dispose_engine",
    "drop_tables",
    "get_engine",
    "get_session",
    "get_session_factory",
    # Repositories
    "BaseRepository",
    "EntityRepository",
    "IntegrationRepository",
]
