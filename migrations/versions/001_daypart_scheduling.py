"""Add daypart scheduling tables

Revision ID: 001_daypart_scheduling
Revises:
Create Date: 2026-10-18

Adds:
- stores and placements (only the columns the scheduler reads)
- daypart_definitions scoped globally, per concept or per store
- daypart_schedules (store-wide base schedule)
- placement_daypart_overrides (placement-specific schedule)
- publish_jobs for immediate and deferred publishing
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_daypart_scheduling'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _window_columns():
    return [
        sa.Column('days_of_week', sa.JSON(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('schedule_type', sa.String(50), nullable=True),
        sa.Column('schedule_name', sa.String(100), nullable=True),
        sa.Column('event_name', sa.String(100), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default=sa.text('1')),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        'stores',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('concept_id', sa.Uuid(), nullable=True),
        sa.Column('timezone', sa.String(50), nullable=False, server_default='UTC'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
    )

    op.create_table(
        'placements',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('store_id', sa.Uuid(), sa.ForeignKey('stores.id', ondelete='CASCADE'), nullable=False),
        sa.Column('parent_id', sa.Uuid(), sa.ForeignKey('placements.id', ondelete='SET NULL'), nullable=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index('idx_placements_store', 'placements', ['store_id'])

    op.create_table(
        'daypart_definitions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('display_label', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('color', sa.String(100), nullable=True),
        sa.Column('icon', sa.String(50), nullable=True),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('concept_id', sa.Uuid(), nullable=True),
        sa.Column('store_id', sa.Uuid(), sa.ForeignKey('stores.id', ondelete='CASCADE'), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
        sa.CheckConstraint('store_id IS NULL OR concept_id IS NULL', name='ck_daypart_definitions_single_scope'),
    )
    op.create_index('idx_daypart_definitions_name', 'daypart_definitions', ['name'])

    op.create_table(
        'daypart_schedules',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('daypart_id', sa.Uuid(), sa.ForeignKey('daypart_definitions.id', ondelete='CASCADE'), nullable=False),
        *_window_columns(),
    )
    op.create_index('idx_daypart_schedules_daypart', 'daypart_schedules', ['daypart_id'])

    # daypart_name is the legacy lookup key for rows without daypart_id
    op.create_table(
        'placement_daypart_overrides',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('placement_id', sa.Uuid(), sa.ForeignKey('placements.id', ondelete='CASCADE'), nullable=False),
        sa.Column('daypart_id', sa.Uuid(), sa.ForeignKey('daypart_definitions.id', ondelete='SET NULL'), nullable=True),
        sa.Column('daypart_name', sa.String(100), nullable=True),
        *_window_columns(),
    )
    op.create_index(
        'idx_placement_overrides_placement_daypart',
        'placement_daypart_overrides',
        ['placement_id', 'daypart_id']
    )

    op.create_table(
        'publish_jobs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('store_id', sa.Uuid(), sa.ForeignKey('stores.id', ondelete='SET NULL'), nullable=True),
        sa.Column('changes', sa.JSON(), nullable=False),
        sa.Column('effective_at', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('claimed_at', sa.DateTime(), nullable=True),
        sa.Column('applied_at', sa.DateTime(), nullable=True),
        sa.Column('failed_change_index', sa.Integer(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
    )

    # Sweep query: pending jobs that are due
    op.create_index('idx_publish_jobs_status_effective', 'publish_jobs', ['status', 'effective_at'])


def downgrade() -> None:
    op.drop_index('idx_publish_jobs_status_effective', table_name='publish_jobs')
    op.drop_table('publish_jobs')
    op.drop_index('idx_placement_overrides_placement_daypart', table_name='placement_daypart_overrides')
    op.drop_table('placement_daypart_overrides')
    op.drop_index('idx_daypart_schedules_daypart', table_name='daypart_schedules')
    op.drop_table('daypart_schedules')
    op.drop_index('idx_daypart_definitions_name', table_name='daypart_definitions')
    op.drop_table('daypart_definitions')
    op.drop_index('idx_placements_store', table_name='placements')
    op.drop_table('placements')
    op.drop_table('stores')
