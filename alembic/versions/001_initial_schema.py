"""Initial schema - tenants, memberships, audit log, projects and tasks

Revision ID: 001
Revises:
Create Date: 2025-10-12

WHY: One migration creates the whole TaskSetu schema. Enum types store the
lowercase values used by the API ("org_admin", "invited").
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


organization_type = sa.Enum('company', 'team', name='organization_type')
organization_status = sa.Enum('active', 'suspended', name='organization_status')
user_role = sa.Enum('superadmin', 'org_admin', 'employee', 'individual', name='user_role')
user_status = sa.Enum('invited', 'active', 'inactive', name='user_status')
audit_action = sa.Enum(
    'login_success',
    'login_failure',
    'password_reset_request',
    'password_reset_complete',
    'account_created',
    'email_verified',
    'invite_sent',
    'invite_resent',
    'invite_revoked',
    'invite_accepted',
    'account_activated',
    'account_deactivated',
    'role_change',
    'org_created',
    'org_updated',
    'org_status_change',
    'license_change',
    name='audit_action',
)
project_status = sa.Enum('active', 'on_hold', 'completed', 'archived', name='project_status')
task_status = sa.Enum('todo', 'in_progress', 'review', 'completed', 'cancelled', name='task_status')
task_priority = sa.Enum('low', 'medium', 'high', 'urgent', name='task_priority')


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def upgrade() -> None:
    """
    Create all tables.

    Indexes cover the lookups the membership lifecycle runs on every request:
    email, each opaque token, and (org_id, status) for seat counting.
    """
    op.create_table(
        'organizations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=50), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('org_type', organization_type, nullable=False, server_default='company'),
        sa.Column('status', organization_status, nullable=False, server_default='active'),
        sa.Column('allow_public_signup', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('require_email_verification', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('max_users', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('license_type', sa.String(length=50), nullable=False, server_default='standard'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_organizations'),
    )
    op.create_index('ix_organizations_id', 'organizations', ['id'])
    op.create_index('ix_organizations_name', 'organizations', ['name'])
    op.create_index('ix_organizations_slug', 'organizations', ['slug'], unique=True)
    op.create_index('ix_organizations_status', 'organizations', ['status'])

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=True),
        sa.Column('last_name', sa.String(length=100), nullable=True),
        sa.Column('hashed_password', sa.String(length=255), nullable=True),
        sa.Column('role', user_role, nullable=False, server_default='employee'),
        sa.Column('org_id', sa.Integer(), nullable=True),
        sa.Column('status', user_status, nullable=False, server_default='active'),
        sa.Column('email_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('invite_token', sa.String(length=128), nullable=True),
        sa.Column('invite_token_expires_at', sa.DateTime(), nullable=True),
        sa.Column('invited_by_id', sa.Integer(), nullable=True),
        sa.Column('invited_at', sa.DateTime(), nullable=True),
        sa.Column('password_reset_token', sa.String(length=128), nullable=True),
        sa.Column('password_reset_expires_at', sa.DateTime(), nullable=True),
        sa.Column('email_verification_token', sa.String(length=128), nullable=True),
        sa.Column('email_verification_expires_at', sa.DateTime(), nullable=True),
        sa.Column('last_login_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id'], name='fk_users_org_id_organizations'),
        sa.ForeignKeyConstraint(
            ['invited_by_id'], ['users.id'], name='fk_users_invited_by_id_users', ondelete='SET NULL'
        ),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_org_id', 'users', ['org_id'])
    op.create_index('ix_users_status', 'users', ['status'])
    op.create_index('ix_users_invite_token', 'users', ['invite_token'], unique=True)
    op.create_index('ix_users_password_reset_token', 'users', ['password_reset_token'], unique=True)
    op.create_index(
        'ix_users_email_verification_token', 'users', ['email_verification_token'], unique=True
    )

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('actor_user_id', sa.Integer(), nullable=True),
        sa.Column('action', audit_action, nullable=False),
        sa.Column('resource_type', sa.String(length=100), nullable=False),
        sa.Column('resource_id', sa.Integer(), nullable=True),
        sa.Column('org_id', sa.Integer(), nullable=True),
        sa.Column('changes', sa.JSON(), nullable=True),
        sa.Column('extra_data', sa.JSON(), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_audit_logs'),
        sa.ForeignKeyConstraint(
            ['actor_user_id'], ['users.id'], name='fk_audit_logs_actor_user_id_users', ondelete='SET NULL'
        ),
        sa.ForeignKeyConstraint(
            ['org_id'], ['organizations.id'], name='fk_audit_logs_org_id_organizations', ondelete='SET NULL'
        ),
    )
    op.create_index('ix_audit_logs_id', 'audit_logs', ['id'])
    op.create_index('ix_audit_logs_actor_user_id', 'audit_logs', ['actor_user_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_resource_type', 'audit_logs', ['resource_type'])
    op.create_index('ix_audit_logs_resource_id', 'audit_logs', ['resource_id'])
    op.create_index('ix_audit_logs_org_id', 'audit_logs', ['org_id'])

    op.create_table(
        'projects',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', project_status, nullable=False, server_default='active'),
        sa.Column('org_id', sa.Integer(), nullable=False),
        sa.Column('created_by_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_projects'),
        sa.ForeignKeyConstraint(
            ['org_id'], ['organizations.id'], name='fk_projects_org_id_organizations', ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(
            ['created_by_id'], ['users.id'], name='fk_projects_created_by_id_users', ondelete='SET NULL'
        ),
    )
    op.create_index('ix_projects_id', 'projects', ['id'])
    op.create_index('ix_projects_org_id', 'projects', ['org_id'])

    op.create_table(
        'tasks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', task_status, nullable=False, server_default='todo'),
        sa.Column('priority', task_priority, nullable=False, server_default='medium'),
        sa.Column('due_date', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('project_id', sa.Integer(), nullable=True),
        sa.Column('assignee_id', sa.Integer(), nullable=True),
        sa.Column('org_id', sa.Integer(), nullable=True),
        sa.Column('created_by_id', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_tasks'),
        sa.ForeignKeyConstraint(
            ['project_id'], ['projects.id'], name='fk_tasks_project_id_projects', ondelete='SET NULL'
        ),
        sa.ForeignKeyConstraint(
            ['assignee_id'], ['users.id'], name='fk_tasks_assignee_id_users', ondelete='SET NULL'
        ),
        sa.ForeignKeyConstraint(
            ['org_id'], ['organizations.id'], name='fk_tasks_org_id_organizations', ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(
            ['created_by_id'], ['users.id'], name='fk_tasks_created_by_id_users', ondelete='CASCADE'
        ),
    )
    op.create_index('ix_tasks_id', 'tasks', ['id'])
    op.create_index('ix_tasks_status', 'tasks', ['status'])
    op.create_index('ix_tasks_project_id', 'tasks', ['project_id'])
    op.create_index('ix_tasks_assignee_id', 'tasks', ['assignee_id'])
    op.create_index('ix_tasks_org_id', 'tasks', ['org_id'])
    op.create_index('ix_tasks_created_by_id', 'tasks', ['created_by_id'])


def downgrade() -> None:
    """Drop every table, then the enum types."""
    op.drop_table('tasks')
    op.drop_table('projects')
    op.drop_table('audit_logs')
    op.drop_table('users')
    op.drop_table('organizations')

    bind = op.get_bind()
    for enum_type in (
        task_priority,
        task_status,
        project_status,
        audit_action,
        user_status,
        user_role,
        organization_status,
        organization_type,
    ):
        enum_type.drop(bind, checkfirst=True)
