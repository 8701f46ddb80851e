"""Map raw GitHub JSON onto flat persisted records.

One pure function per entity kind. Fields are copied only when present in
the payload; nested objects (``commit.author``, ``user``, ``label``...) are
trimmed to the fields we keep and dropped entirely when missing.
"""

from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any, TypeVar

from pydantic import ValidationError

from github_sync_db.logging import get_logger
from github_sync_db.schemas.records import (
    CommitRecord,
    IssueChangelogRecord,
    IssueRecord,
    OrganizationRecord,
    PullRequestRecord,
    RecordBase,
    RepositoryRecord,
    UserRecord,
)

logger = get_logger(__name__)

RecordT = TypeVar("RecordT", bound=RecordBase)

# GitHub timestamp fields renamed so they do not clash with our own audit columns
_TIMESTAMP_RENAMES = (
    ("created_at", "github_created_at"),
    ("updated_at", "github_updated_at"),
)


def _copy(raw: Mapping[str, Any], fields: Iterable[str | tuple[str, str]]) -> dict[str, Any]:
    """Copy present keys, optionally renaming (source, destination) pairs."""
    data: dict[str, Any] = {}
    for entry in fields:
        source, dest = entry if isinstance(entry, tuple) else (entry, entry)
        if source in raw:
            data[dest] = raw[source]
    return data


def _nested(value: Any, fields: Sequence[str]) -> dict[str, Any] | None:
    """Trim a nested object, or None when it is missing or not an object."""
    if not isinstance(value, Mapping):
        return None
    return _copy(value, fields)


def _nested_list(value: Any, fields: Sequence[str]) -> list[dict[str, Any]] | None:
    if not isinstance(value, list):
        return None
    return [_copy(item, fields) for item in value if isinstance(item, Mapping)]


def _put(data: dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        data[key] = value


# ------------------------------------------------------------------------------
# Per-kind normalizers
# ------------------------------------------------------------------------------
def to_organization_record(raw: Mapping[str, Any], *, integration_id: int) -> OrganizationRecord:
    data = _copy(
        raw,
        (
            ("id", "github_id"),
            "login",
            "name",
            "description",
            "html_url",
            "avatar_url",
            "type",
            *_TIMESTAMP_RENAMES,
            "public_repos",
            "followers",
            "following",
        ),
    )
    return OrganizationRecord.model_validate({**data, "integration_id": integration_id})


def to_repository_record(
    raw: Mapping[str, Any],
    *,
    integration_id: int,
    organization_id: int | None,
) -> RepositoryRecord:
    data = _copy(
        raw,
        (
            ("id", "github_id"),
            "name",
            "full_name",
            "description",
            "html_url",
            "private",
            "fork",
            *_TIMESTAMP_RENAMES,
            "pushed_at",
            "size",
            "stargazers_count",
            "watchers_count",
            "language",
            "forks_count",
            "open_issues_count",
            "default_branch",
        ),
    )
    _put(data, "owner", _nested(raw.get("owner"), ("login", "id", "type")))
    return RepositoryRecord.model_validate(
        {**data, "integration_id": integration_id, "organization_id": organization_id}
    )


def to_commit_record(
    raw: Mapping[str, Any],
    *,
    integration_id: int,
    repository_id: int,
) -> CommitRecord:
    """Commit listings nest message and identities under ``commit``."""
    data = _copy(raw, ("sha", "html_url"))

    detail = raw.get("commit")
    if isinstance(detail, Mapping):
        data.update(_copy(detail, ("message",)))
        _put(data, "author", _nested(detail.get("author"), ("name", "email", "date")))
        _put(data, "committer", _nested(detail.get("committer"), ("name", "email", "date")))

    _put(data, "parents", _nested_list(raw.get("parents"), ("sha",)))
    _put(data, "stats", _nested(raw.get("stats"), ("additions", "deletions", "total")))

    return CommitRecord.model_validate(
        {**data, "integration_id": integration_id, "repository_id": repository_id}
    )


def to_pull_request_record(
    raw: Mapping[str, Any],
    *,
    integration_id: int,
    repository_id: int,
) -> PullRequestRecord:
    data = _copy(
        raw,
        (
            ("id", "github_id"),
            "number",
            "title",
            "state",
            "body",
            "html_url",
            *_TIMESTAMP_RENAMES,
            "closed_at",
            "merged_at",
            "merged",
            "mergeable",
            "comments",
            "commits",
            "additions",
            "deletions",
            "changed_files",
        ),
    )
    _put(data, "user", _nested(raw.get("user"), ("login", "id", "avatar_url")))
    _put(data, "head", _nested(raw.get("head"), ("ref", "sha")))
    _put(data, "base", _nested(raw.get("base"), ("ref", "sha")))
    return PullRequestRecord.model_validate(
        {**data, "integration_id": integration_id, "repository_id": repository_id}
    )


def to_issue_record(
    raw: Mapping[str, Any],
    *,
    integration_id: int,
    repository_id: int,
) -> IssueRecord:
    data = _copy(
        raw,
        (
            ("id", "github_id"),
            "number",
            "title",
            "state",
            "body",
            "html_url",
            *_TIMESTAMP_RENAMES,
            "closed_at",
            "comments",
            "locked",
        ),
    )
    _put(data, "user", _nested(raw.get("user"), ("login", "id", "avatar_url")))
    _put(data, "labels", _nested_list(raw.get("labels"), ("id", "name", "color")))
    _put(data, "assignees", _nested_list(raw.get("assignees"), ("login", "id")))
    return IssueRecord.model_validate(
        {**data, "integration_id": integration_id, "repository_id": repository_id}
    )


def to_issue_changelog_record(
    raw: Mapping[str, Any],
    *,
    integration_id: int,
    repository_id: int,
    issue_id: int,
) -> IssueChangelogRecord:
    data = _copy(
        raw,
        (
            ("id", "github_event_id"),
            "event",
            ("created_at", "github_created_at"),
            "commit_id",
            "commit_url",
        ),
    )
    _put(data, "actor", _nested(raw.get("actor"), ("login", "id")))
    _put(data, "label", _nested(raw.get("label"), ("name", "color")))
    _put(data, "assignee", _nested(raw.get("assignee"), ("login", "id")))
    _put(data, "rename", _nested(raw.get("rename"), ("from", "to")))
    return IssueChangelogRecord.model_validate(
        {
            **data,
            "integration_id": integration_id,
            "repository_id": repository_id,
            "issue_id": issue_id,
        }
    )


def to_user_record(
    raw: Mapping[str, Any],
    *,
    integration_id: int,
    organization_id: int | None,
) -> UserRecord:
    """Members listings carry only the public summary; profile fields pass through when present."""
    data = _copy(
        raw,
        (
            ("id", "github_id"),
            "login",
            "name",
            "email",
            "avatar_url",
            "html_url",
            "type",
            "site_admin",
            "company",
            "blog",
            "location",
            "bio",
            "public_repos",
            "public_gists",
            "followers",
            "following",
            *_TIMESTAMP_RENAMES,
        ),
    )
    return UserRecord.model_validate(
        {**data, "integration_id": integration_id, "organization_id": organization_id}
    )


# ------------------------------------------------------------------------------
# Batches
# ------------------------------------------------------------------------------
def normalize_many(
    items: Iterable[Mapping[str, Any]],
    normalizer: Callable[..., RecordT],
    **context: Any,
) -> list[RecordT]:
    """Normalize a batch, skipping items that cannot form a valid record.

    An item without its natural key (or with a wrongly typed one) is logged
    and left out instead of failing the whole batch.

    Args:
        items: Raw GitHub objects
        normalizer: One of the ``to_*_record`` functions
        **context: Owning/parent keys forwarded to the normalizer

    Returns:
        Records in input order
    """
    records: list[RecordT] = []
    for item in items:
        try:
            records.append(normalizer(item, **context))
        except ValidationError as e:
            logger.warning(
                "Skipping malformed item for {normalizer}: {errors} error(s)",
                normalizer=normalizer.__name__,
                errors=e.error_count(),
            )
    return records
