"""Create hosts, availability, event type, booking and webhook tables

Revision ID: 3c1e7a52b9d0
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1e7a52b9d0'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'hosts',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('username', sa.String(), nullable=False, unique=True),
        sa.Column('timezone', sa.String(), nullable=False, server_default='UTC'),
        sa.Column('booking_version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('google_calendar_id', sa.String(), nullable=True),
        sa.Column('google_refresh_token', sa.String(), nullable=True),
        sa.Column('google_token_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        'availability_rules',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('host_id', sa.Uuid(), sa.ForeignKey('hosts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.String(5), nullable=False),
        sa.Column('end_time', sa.String(5), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('day_of_week >= 0 AND day_of_week <= 6', name='ck_rule_day_of_week'),
        sa.CheckConstraint('start_time < end_time', name='ck_rule_window_order'),
    )
    op.create_index('ix_availability_rules_host_id', 'availability_rules', ['host_id'])

    op.create_table(
        'date_overrides',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('host_id', sa.Uuid(), sa.ForeignKey('hosts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('start_time', sa.String(5), nullable=True),
        sa.Column('end_time', sa.String(5), nullable=True),
        sa.Column('reason', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('host_id', 'date', name='uq_date_override_host_date'),
        sa.CheckConstraint(
            'is_available = false OR (start_time IS NOT NULL AND end_time IS NOT NULL '
            'AND start_time < end_time)',
            name='ck_override_window',
        ),
    )
    op.create_index('ix_date_overrides_host_id', 'date_overrides', ['host_id'])

    op.create_table(
        'event_types',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('host_id', sa.Uuid(), sa.ForeignKey('hosts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('slug', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('location', sa.String(), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=False, server_default='30'),
        sa.Column('buffer_before', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('buffer_after', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('min_notice', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_days_ahead', sa.Integer(), nullable=False, server_default='60'),
        sa.Column('max_attendees', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('available_start_time', sa.String(5), nullable=True),
        sa.Column('available_end_time', sa.String(5), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('host_id', 'slug', name='uq_event_type_host_slug'),
        sa.CheckConstraint('duration > 0', name='ck_event_type_duration'),
        sa.CheckConstraint('buffer_before >= 0 AND buffer_after >= 0', name='ck_event_type_buffers'),
        sa.CheckConstraint('min_notice >= 0', name='ck_event_type_min_notice'),
        sa.CheckConstraint('max_days_ahead >= 1', name='ck_event_type_horizon'),
        sa.CheckConstraint('max_attendees >= 1', name='ck_event_type_capacity'),
    )
    op.create_index('ix_event_types_host_id', 'event_types', ['host_id'])

    op.create_table(
        'bookings',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('host_id', sa.Uuid(), sa.ForeignKey('hosts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('event_type_id', sa.Uuid(), sa.ForeignKey('event_types.id'), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='CONFIRMED'),
        sa.Column('guest_name', sa.String(), nullable=False),
        sa.Column('guest_email', sa.String(), nullable=False),
        sa.Column('guest_timezone', sa.String(), nullable=False, server_default='UTC'),
        sa.Column('guest_phone', sa.String(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('idx_bookings_host_start', 'bookings', ['host_id', 'start_time'])

    op.create_table(
        'webhooks',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('host_id', sa.Uuid(), sa.ForeignKey('hosts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('url', sa.String(), nullable=False),
        sa.Column('secret', sa.String(), nullable=False),
        sa.Column('events', sa.JSON(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_webhooks_host_id', 'webhooks', ['host_id'])


def downgrade() -> None:
    op.drop_index('ix_webhooks_host_id', table_name='webhooks')
    op.drop_table('webhooks')

    op.drop_index('idx_bookings_host_start', table_name='bookings')
    op.drop_table('bookings')

    op.drop_index('ix_event_types_host_id', table_name='event_types')
    op.drop_table('event_types')

    op.drop_index('ix_date_overrides_host_id', table_name='date_overrides')
    op.drop_table('date_overrides')

    op.drop_index('ix_availability_rules_host_id', table_name='availability_rules')
    op.drop_table('availability_rules')

    op.drop_table('hosts')
