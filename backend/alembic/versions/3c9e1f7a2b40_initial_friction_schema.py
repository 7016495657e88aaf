"""initial friction schema

Revision ID: 3c9e1f7a2b40
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = '3c9e1f7a2b40'
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
        'accounts',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('external_id', sa.String(100), nullable=True, unique=True),
        sa.Column('status', sa.String(50), nullable=True),
        sa.Column('health_score', sa.Integer(), nullable=True),
        sa.Column('nps_score', sa.Integer(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_accounts_created_at', 'accounts', ['created_at'])

    op.create_table(
        'raw_cases',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('account_id', sa.Uuid(), sa.ForeignKey('accounts.id'), nullable=False),
        sa.Column('source_type', sa.String(50), nullable=False),
        sa.Column('source_id', sa.String(255), nullable=True),
        sa.Column('text_content', sa.Text(), nullable=False),
        sa.Column('processed', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.UniqueConstraint('account_id', 'source_type', 'source_id'),
    )
    op.create_index('ix_raw_cases_account_id', 'raw_cases', ['account_id'])
    op.create_index('ix_raw_cases_processed', 'raw_cases', ['processed'])
    op.create_index('ix_raw_cases_created_at', 'raw_cases', ['created_at'])

    op.create_table(
        'friction_records',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('account_id', sa.Uuid(), sa.ForeignKey('accounts.id'), nullable=False),
        sa.Column('raw_case_id', sa.Uuid(), sa.ForeignKey('raw_cases.id'), nullable=False),
        sa.Column('is_friction', sa.Boolean(), nullable=False),
        sa.Column('summary', sa.Text(), nullable=False),
        sa.Column('theme_key', sa.String(50), nullable=False),
        sa.Column('severity', sa.Integer(), nullable=False),
        sa.Column('sentiment', sa.String(20), nullable=False),
        sa.Column('root_cause', sa.Text(), nullable=True),
        sa.Column('evidence', sa.JSON(), nullable=True),
        sa.Column('confidence_score', sa.Float(), nullable=False),
        sa.Column('reasoning', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_friction_records_account_id', 'friction_records', ['account_id'])
    op.create_index('ix_friction_records_raw_case_id', 'friction_records', ['raw_case_id'])
    op.create_index('ix_friction_records_is_friction', 'friction_records', ['is_friction'])
    op.create_index('ix_friction_records_created_at', 'friction_records', ['created_at'])

    op.create_table(
        'theme_ticket_links',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('account_id', sa.Uuid(), sa.ForeignKey('accounts.id'), nullable=False),
        sa.Column('theme_key', sa.String(50), nullable=False),
        sa.Column('issue_key', sa.String(50), nullable=False),
        sa.Column('summary', sa.String(500), nullable=True),
        sa.Column('status', sa.String(100), nullable=True),
        sa.Column('resolution_date', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('account_id', 'theme_key', 'issue_key'),
    )
    op.create_index('ix_theme_ticket_links_account_id', 'theme_ticket_links', ['account_id'])
    op.create_index('ix_theme_ticket_links_theme_key', 'theme_ticket_links', ['theme_key'])
    op.create_index('ix_theme_ticket_links_created_at', 'theme_ticket_links', ['created_at'])

    op.create_table(
        'account_snapshots',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('account_id', sa.Uuid(), sa.ForeignKey('accounts.id'), nullable=False),
        sa.Column('snapshot_date', sa.Date(), nullable=False),
        sa.Column('ofi_score', sa.Integer(), nullable=False),
        sa.Column('friction_card_count', sa.Integer(), nullable=False),
        sa.Column('high_severity_count', sa.Integer(), nullable=False),
        sa.Column('case_volume', sa.Integer(), nullable=False),
        sa.Column('top_themes', sa.JSON(), nullable=False),
        sa.Column('trend_vs_prior_period', sa.Integer(), nullable=True),
        sa.Column('trend_direction', sa.String(20), nullable=False),
        sa.Column('score_breakdown', sa.JSON(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('account_id', 'snapshot_date', name='uq_account_snapshot_day'),
    )
    op.create_index('ix_account_snapshots_account_id', 'account_snapshots', ['account_id'])
    op.create_index('ix_account_snapshots_snapshot_date', 'account_snapshots', ['snapshot_date'])
    op.create_index('ix_account_snapshots_created_at', 'account_snapshots', ['created_at'])

    op.create_table(
        'alerts',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('account_id', sa.Uuid(), sa.ForeignKey('accounts.id'), nullable=False),
        sa.Column('alert_type', sa.String(50), nullable=False),
        sa.Column('severity', sa.String(20), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('evidence', sa.JSON(), nullable=True),
        sa.Column('recommended_action', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_alerts_account_id', 'alerts', ['account_id'])
    op.create_index('ix_alerts_created_at', 'alerts', ['created_at'])


def downgrade() -> None:
    op.drop_table('alerts')
    op.drop_table('account_snapshots')
    op.drop_table('theme_ticket_links')
    op.drop_table('friction_records')
    op.drop_table('raw_cases')
    op.drop_table('accounts')
