"""initial schema

Revision ID: 4c1e9b7a2d30
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4c1e9b7a2d30'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    """Create integrations and the synced entity tables."""
    op.create_table('integrations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('provider', sa.String(length=20), nullable=False),
        sa.Column('access_token', sa.String(length=255), nullable=False),
        sa.Column('refresh_token', sa.String(length=255), nullable=True),
        sa.Column('token_type', sa.String(length=50), nullable=True),
        sa.Column('scope', sa.String(length=255), nullable=True),
        sa.Column('status', sa.Enum('ACTIVE', 'DISCONNECTED', name='integrationstatus'), nullable=False),
        sa.Column('connected_at', sa.DateTime(), nullable=False),
        sa.Column('last_synced_at', sa.DateTime(), nullable=True),
        sa.Column('github_user', sa.JSON(none_as_null=True), nullable=True),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'provider', name='uq_integration_user_provider')
    )

    op.create_table('organizations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('integration_id', sa.Integer(), nullable=False),
        sa.Column('github_id', sa.Integer(), nullable=False),
        sa.Column('login', sa.String(length=255), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('html_url', sa.String(length=500), nullable=True),
        sa.Column('avatar_url', sa.String(length=500), nullable=True),
        sa.Column('type', sa.String(length=50), nullable=True),
        sa.Column('github_created_at', sa.DateTime(), nullable=True),
        sa.Column('github_updated_at', sa.DateTime(), nullable=True),
        sa.Column('public_repos', sa.Integer(), nullable=True),
        sa.Column('followers', sa.Integer(), nullable=True),
        sa.Column('following', sa.Integer(), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['integration_id'], ['integrations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('github_id')
    )
    op.create_index(op.f('ix_organizations_integration_id'), 'organizations', ['integration_id'], unique=False)

    op.create_table('repositories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('integration_id', sa.Integer(), nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=True),
        sa.Column('github_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('full_name', sa.String(length=500), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('html_url', sa.String(length=500), nullable=True),
        sa.Column('private', sa.Boolean(), nullable=True),
        sa.Column('fork', sa.Boolean(), nullable=True),
        sa.Column('github_created_at', sa.DateTime(), nullable=True),
        sa.Column('github_updated_at', sa.DateTime(), nullable=True),
        sa.Column('pushed_at', sa.DateTime(), nullable=True),
        sa.Column('size', sa.Integer(), nullable=True),
        sa.Column('stargazers_count', sa.Integer(), nullable=True),
        sa.Column('watchers_count', sa.Integer(), nullable=True),
        sa.Column('language', sa.String(length=100), nullable=True),
        sa.Column('forks_count', sa.Integer(), nullable=True),
        sa.Column('open_issues_count', sa.Integer(), nullable=True),
        sa.Column('default_branch', sa.String(length=255), nullable=True),
        sa.Column('owner', sa.JSON(none_as_null=True), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['integration_id'], ['integrations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('github_id')
    )
    op.create_index(op.f('ix_repositories_integration_id'), 'repositories', ['integration_id'], unique=False)

    op.create_table('commits',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('integration_id', sa.Integer(), nullable=False),
        sa.Column('repository_id', sa.Integer(), nullable=False),
        sa.Column('sha', sa.String(length=64), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('html_url', sa.String(length=500), nullable=True),
        sa.Column('author', sa.JSON(none_as_null=True), nullable=True),
        sa.Column('committer', sa.JSON(none_as_null=True), nullable=True),
        sa.Column('parents', sa.JSON(none_as_null=True), nullable=True),
        sa.Column('stats', sa.JSON(none_as_null=True), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['integration_id'], ['integrations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['repository_id'], ['repositories.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sha')
    )
    op.create_index(op.f('ix_commits_integration_id'), 'commits', ['integration_id'], unique=False)
    op.create_index(op.f('ix_commits_repository_id'), 'commits', ['repository_id'], unique=False)

    op.create_table('pull_requests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('integration_id', sa.Integer(), nullable=False),
        sa.Column('repository_id', sa.Integer(), nullable=False),
        sa.Column('number', sa.Integer(), nullable=False),
        sa.Column('github_id', sa.Integer(), nullable=True),
        sa.Column('title', sa.String(length=1000), nullable=True),
        sa.Column('state', sa.String(length=20), nullable=True),
        sa.Column('body', sa.Text(), nullable=True),
        sa.Column('html_url', sa.String(length=500), nullable=True),
        sa.Column('github_created_at', sa.DateTime(), nullable=True),
        sa.Column('github_updated_at', sa.DateTime(), nullable=True),
        sa.Column('closed_at', sa.DateTime(), nullable=True),
        sa.Column('merged_at', sa.DateTime(), nullable=True),
        sa.Column('user', sa.JSON(none_as_null=True), nullable=True),
        sa.Column('head', sa.JSON(none_as_null=True), nullable=True),
        sa.Column('base', sa.JSON(none_as_null=True), nullable=True),
        sa.Column('merged', sa.Boolean(), nullable=True),
        sa.Column('mergeable', sa.Boolean(), nullable=True),
        sa.Column('comments', sa.Integer(), nullable=True),
        sa.Column('commits', sa.Integer(), nullable=True),
        sa.Column('additions', sa.Integer(), nullable=True),
        sa.Column('deletions', sa.Integer(), nullable=True),
        sa.Column('changed_files', sa.Integer(), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['integration_id'], ['integrations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['repository_id'], ['repositories.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('repository_id', 'number', name='uq_pull_request_repo_number')
    )
    op.create_index(op.f('ix_pull_requests_integration_id'), 'pull_requests', ['integration_id'], unique=False)

    op.create_table('issues',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('integration_id', sa.Integer(), nullable=False),
        sa.Column('repository_id', sa.Integer(), nullable=False),
        sa.Column('number', sa.Integer(), nullable=False),
        sa.Column('github_id', sa.Integer(), nullable=True),
        sa.Column('title', sa.String(length=1000), nullable=True),
        sa.Column('state', sa.String(length=20), nullable=True),
        sa.Column('body', sa.Text(), nullable=True),
        sa.Column('html_url', sa.String(length=500), nullable=True),
        sa.Column('github_created_at', sa.DateTime(), nullable=True),
        sa.Column('github_updated_at', sa.DateTime(), nullable=True),
        sa.Column('closed_at', sa.DateTime(), nullable=True),
        sa.Column('user', sa.JSON(none_as_null=True), nullable=True),
        sa.Column('labels', sa.JSON(none_as_null=True), nullable=True),
        sa.Column('assignees', sa.JSON(none_as_null=True), nullable=True),
        sa.Column('comments', sa.Integer(), nullable=True),
        sa.Column('locked', sa.Boolean(), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['integration_id'], ['integrations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['repository_id'], ['repositories.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('repository_id', 'number', name='uq_issue_repo_number')
    )
    op.create_index(op.f('ix_issues_integration_id'), 'issues', ['integration_id'], unique=False)

    op.create_table('issue_changelogs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('integration_id', sa.Integer(), nullable=False),
        sa.Column('repository_id', sa.Integer(), nullable=False),
        sa.Column('issue_id', sa.Integer(), nullable=False),
        sa.Column('github_event_id', sa.Integer(), nullable=False),
        sa.Column('event', sa.String(length=100), nullable=True),
        sa.Column('github_created_at', sa.DateTime(), nullable=True),
        sa.Column('commit_id', sa.String(length=64), nullable=True),
        sa.Column('commit_url', sa.String(length=500), nullable=True),
        sa.Column('actor', sa.JSON(none_as_null=True), nullable=True),
        sa.Column('label', sa.JSON(none_as_null=True), nullable=True),
        sa.Column('assignee', sa.JSON(none_as_null=True), nullable=True),
        sa.Column('rename', sa.JSON(none_as_null=True), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['integration_id'], ['integrations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['repository_id'], ['repositories.id']),
        sa.ForeignKeyConstraint(['issue_id'], ['issues.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('issue_id', 'github_event_id', name='uq_issue_changelog_event')
    )
    op.create_index(op.f('ix_issue_changelogs_integration_id'), 'issue_changelogs', ['integration_id'], unique=False)
    op.create_index('ix_issue_changelogs_repository_id', 'issue_changelogs', ['repository_id'], unique=False)

    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('integration_id', sa.Integer(), nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=True),
        sa.Column('github_id', sa.Integer(), nullable=False),
        sa.Column('login', sa.String(length=255), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('avatar_url', sa.String(length=500), nullable=True),
        sa.Column('html_url', sa.String(length=500), nullable=True),
        sa.Column('type', sa.String(length=50), nullable=True),
        sa.Column('site_admin', sa.Boolean(), nullable=True),
        sa.Column('company', sa.String(length=255), nullable=True),
        sa.Column('blog', sa.String(length=500), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('public_repos', sa.Integer(), nullable=True),
        sa.Column('public_gists', sa.Integer(), nullable=True),
        sa.Column('followers', sa.Integer(), nullable=True),
        sa.Column('following', sa.Integer(), nullable=True),
        sa.Column('github_created_at', sa.DateTime(), nullable=True),
        sa.Column('github_updated_at', sa.DateTime(), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['integration_id'], ['integrations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('github_id')
    )
    op.create_index(op.f('ix_users_integration_id'), 'users', ['integration_id'], unique=False)


def downgrade() -> None:
    """Drop all tables, children first."""
    op.drop_index(op.f('ix_users_integration_id'), table_name='users')
    op.drop_table('users')
    op.drop_index('ix_issue_changelogs_repository_id', table_name='issue_changelogs')
    op.drop_index(op.f('ix_issue_changelogs_integration_id'), table_name='issue_changelogs')
    op.drop_table('issue_changelogs')
    op.drop_index(op.f('ix_issues_integration_id'), table_name='issues')
    op.drop_table('issues')
    op.drop_index(op.f('ix_pull_requests_integration_id'), table_name='pull_requests')
    op.drop_table('pull_requests')
    op.drop_index(op.f('ix_commits_repository_id'), table_name='commits')
    op.drop_index(op.f('ix_commits_integration_id'), table_name='commits')
    op.drop_table('commits')
    op.drop_index(op.f('ix_repositories_integration_id'), table_name='repositories')
    op.drop_table('repositories')
    op.drop_index(op.f('ix_organizations_integration_id'), table_name='organizations')
    op.drop_table('organizations')
    op.drop_table('integrations')
