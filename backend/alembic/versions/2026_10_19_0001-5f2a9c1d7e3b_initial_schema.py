"""initial_schema

Create the AssetDrop tables.

Tables:
- profiles
- user_tokens
- health_check_logs
- projects
- form_fields
- assets
- activity_log

Revision ID: 5f2a9c1d7e3b
Revises:
Create Date: 2026-10-19 00:01:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '5f2a9c1d7e3b'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Owners
    op.create_table(
        'profiles',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=True),
        sa.Column('avatar_url', sa.String(1000), nullable=True),
        sa.Column('google_subject', sa.String(255), nullable=True, unique=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_profiles_email', 'profiles', ['email'], unique=True)

    # Google provider tokens, encrypted at rest
    op.create_table(
        'user_tokens',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('profiles.id', ondelete='CASCADE'),
                  nullable=False, unique=True),
        sa.Column('access_token', sa.Text(), nullable=False),
        sa.Column('refresh_token', sa.Text(), nullable=True),
        sa.Column('token_expiry', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'health_check_logs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('check_type', sa.String(50), nullable=False),
        sa.Column('email_sent_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_health_check_logs_check_type', 'health_check_logs', ['check_type'])

    op.create_table(
        'projects',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('client_name', sa.String(255), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('shareable_link_id', sa.String(32), nullable=False),
        sa.Column('link_password', sa.String(255), nullable=True),
        sa.Column('link_expiry', sa.DateTime(), nullable=True),
        sa.Column('link_disabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('google_drive_folder_id', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_projects_user_id', 'projects', ['user_id'])
    op.create_index('ix_projects_shareable_link_id', 'projects', ['shareable_link_id'], unique=True)
    op.create_index('ix_projects_user_created', 'projects', ['user_id', 'created_at'])

    op.create_table(
        'form_fields',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('project_id', sa.Uuid(), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('field_type', sa.String(30), nullable=False),
        sa.Column('label', sa.String(255), nullable=False),
        sa.Column('help_text', sa.Text(), nullable=True),
        sa.Column('internal_note', sa.Text(), nullable=True),
        sa.Column('is_required', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('field_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('storage_subfolder', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_form_fields_project_id', 'form_fields', ['project_id'])

    op.create_table(
        'assets',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('project_id', sa.Uuid(), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('form_field_id', sa.Uuid(), sa.ForeignKey('form_fields.id', ondelete='SET NULL'), nullable=True),
        sa.Column('file_name', sa.String(500), nullable=False),
        sa.Column('file_type', sa.String(255), nullable=True),
        sa.Column('file_size', sa.BigInteger(), nullable=True),
        sa.Column('google_drive_file_id', sa.String(255), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('uploaded_by', sa.String(50), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('approval_remark', sa.Text(), nullable=True),
        sa.Column('client_email', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_assets_project_id', 'assets', ['project_id'])
    op.create_index('ix_assets_status', 'assets', ['status'])
    op.create_index('ix_assets_client_email', 'assets', ['client_email'])
    op.create_index('ix_assets_project_email', 'assets', ['project_id', 'client_email'])

    op.create_table(
        'activity_log',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('project_id', sa.Uuid(), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('action_type', sa.String(50), nullable=False),
        sa.Column('action_details', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_activity_log_project_id', 'activity_log', ['project_id'])
    op.create_index('ix_activity_log_created_at', 'activity_log', ['created_at'])


def downgrade() -> None:
    op.drop_table('activity_log')
    op.drop_table('assets')
    op.drop_table('form_fields')
    op.drop_table('projects')
    op.drop_table('health_check_logs')
    op.drop_table('user_tokens')
    op.drop_table('profiles')
