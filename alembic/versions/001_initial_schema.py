"""Initial schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000

Users, organizations, workspaces, channels, memberships, invites and messages.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'organizations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(64), nullable=False),
        sa.Column('name', sa.String(150), nullable=False),
        sa.Column('owner_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_organizations_code', 'organizations', ['code'], unique=True)
    op.create_index('ix_organizations_owner_id', 'organizations', ['owner_id'])

    op.create_table(
        'workspaces',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('color', sa.String(32), nullable=False),
        sa.Column('owner_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column(
            'organization_id',
            sa.Integer(),
            sa.ForeignKey('organizations.id', ondelete='SET NULL'),
            nullable=True,
        ),
        *_timestamps(),
    )
    op.create_index('ix_workspaces_owner_id', 'workspaces', ['owner_id'])

    op.create_table(
        'channels',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('workspace_id', sa.Integer(), sa.ForeignKey('workspaces.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(80), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_channels_workspace_id', 'channels', ['workspace_id'])
    op.create_index('ix_channels_slug', 'channels', ['slug'], unique=True)

    op.create_table(
        'memberships',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('workspace_id', sa.Integer(), sa.ForeignKey('workspaces.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role', sa.String(20), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('workspace_id', 'user_id', name='uq_membership_workspace_user'),
    )

    op.create_table(
        'channel_memberships',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('channel_id', sa.Integer(), sa.ForeignKey('channels.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('state', sa.String(20), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('channel_id', 'user_id', name='uq_channel_membership_channel_user'),
    )

    for table, target, target_table in (
        ('workspace_invites', 'workspace_id', 'workspaces'),
        ('channel_invites', 'channel_id', 'channels'),
    ):
        op.create_table(
            table,
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column(target, sa.Integer(), sa.ForeignKey(f'{target_table}.id', ondelete='CASCADE'), nullable=False),
            sa.Column('inviter_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
            sa.Column('email', sa.String(255), nullable=False),
            sa.Column('token', sa.Text(), nullable=False, unique=True),
            sa.Column('status', sa.String(20), nullable=False),
            sa.Column('responded_at', sa.DateTime(timezone=True), nullable=True),
            *_timestamps(),
        )
        op.create_index(f'ix_{table}_email', table, ['email'])
        op.create_index(f'ix_{table}_{target}', table, [target])

    # At most one pending invite per (target, email)
    op.create_index(
        'uq_workspace_invite_pending',
        'workspace_invites',
        ['workspace_id', 'email'],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
    )
    op.create_index(
        'uq_channel_invite_pending',
        'channel_invites',
        ['channel_id', 'email'],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
    )

    op.create_table(
        'messages',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('channel_id', sa.Integer(), sa.ForeignKey('channels.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_messages_channel_created', 'messages', ['channel_id', 'created_at'])


def downgrade() -> None:
    op.drop_table('messages')
    op.drop_table('channel_invites')
    op.drop_table('workspace_invites')
    op.drop_table('channel_memberships')
    op.drop_table('memberships')
    op.drop_table('channels')
    op.drop_table('workspaces')
    op.drop_table('organizations')
    op.drop_table('users')
