"""Add task_comments table

Revision ID: 002
Revises: 001
Create Date: 2025-10-20

WHAT: Creates the task_comments table for discussion threads on tasks.

HOW: Comments hang off a task and are removed with it. Mentions are stored
as a JSON list of user ids.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '002'
down_revision: Union[str, None] = '001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'task_comments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('task_id', sa.Integer(), nullable=False),
        sa.Column('author_id', sa.Integer(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('mentions', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id', name='pk_task_comments'),
        sa.ForeignKeyConstraint(
            ['task_id'], ['tasks.id'], name='fk_task_comments_task_id_tasks', ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(
            ['author_id'], ['users.id'], name='fk_task_comments_author_id_users', ondelete='CASCADE'
        ),
    )
    op.create_index('ix_task_comments_id', 'task_comments', ['id'])
    op.create_index('ix_task_comments_task_id', 'task_comments', ['task_id'])
    op.create_index('ix_task_comments_author_id', 'task_comments', ['author_id'])


def downgrade() -> None:
    op.drop_table('task_comments')
