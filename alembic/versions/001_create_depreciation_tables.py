"""Create asset register and depreciation ledger tables

Revision ID: 001_depreciation_ledger
Revises:
Create Date: 2026-10-19

Tables:
- assets: asset register (value, purchase date, useful life, status)
- depreciation_entries: one row per asset per monthly period
- depreciation_schedule_settings: auto-depreciation run configuration
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_depreciation_ledger'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create ledger tables."""

    # ==================== assets ====================
    op.create_table(
        'assets',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('asset_tag', sa.String(50), nullable=False, unique=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('location', sa.String(200), nullable=True),
        sa.Column('value', sa.Numeric(15, 2), nullable=False,
                  comment='Acquisition value, the depreciable base'),
        sa.Column('purchase_date', sa.Date(), nullable=False, comment='Anchor for period dates'),
        sa.Column('useful_life', sa.Integer(), nullable=False, comment='Useful life in months'),
        sa.Column('status', sa.String(50), nullable=False, server_default='In Use',
                  comment='In Use, In Repair, Disposed, Lost'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.func.now()),
    )
    op.create_index('ix_assets_status', 'assets', ['status'])

    # ==================== depreciation_entries ====================
    op.create_table(
        'depreciation_entries',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('asset_id', sa.Uuid(), sa.ForeignKey('assets.id', ondelete='CASCADE'), nullable=False),
        sa.Column('period_sequence', sa.Integer(), nullable=False),
        sa.Column('period_date', sa.Date(), nullable=False,
                  comment='Purchase day-of-month, clamped to month end'),
        sa.Column('period_amount', sa.Numeric(15, 2), nullable=False),
        sa.Column('cumulative_depreciation', sa.Numeric(15, 2), nullable=False),
        sa.Column('book_value_after', sa.Numeric(15, 2), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.func.now()),
        sa.UniqueConstraint('asset_id', 'period_sequence', name='uq_depreciation_asset_sequence'),
    )
    op.create_index('ix_depreciation_entries_asset_id', 'depreciation_entries', ['asset_id'])
    op.create_index('idx_depreciation_asset_date', 'depreciation_entries', ['asset_id', 'period_date'])

    # ==================== depreciation_schedule_settings ====================
    op.create_table(
        'depreciation_schedule_settings',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False, unique=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('frequency', sa.String(20), nullable=False, server_default='daily',
                  comment='daily, weekly, monthly, custom'),
        sa.Column('execution_time', sa.Time(), nullable=False),
        sa.Column('timezone', sa.String(64), nullable=False, server_default='Asia/Jakarta'),
        sa.Column('cron_expression', sa.String(100), nullable=True),
        sa.Column('day_of_week', sa.Integer(), nullable=True, comment='0-6, 0 = Sunday'),
        sa.Column('day_of_month', sa.Integer(), nullable=True, comment='1-31'),
        sa.Column('last_run_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('next_run_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_run_result', sa.JSON(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.func.now()),
    )


def downgrade() -> None:
    """Drop ledger tables."""
    op.drop_table('depreciation_schedule_settings')
    op.drop_index('idx_depreciation_asset_date', table_name='depreciation_entries')
    op.drop_index('ix_depreciation_entries_asset_id', table_name='depreciation_entries')
    op.drop_table('depreciation_entries')
    op.drop_index('ix_assets_status', table_name='assets')
    op.drop_table('assets')
