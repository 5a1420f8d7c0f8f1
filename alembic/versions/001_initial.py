"""Initial migration - create alerts and trigger_events tables.

Revision ID: 001
Revises: 
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create alerts table
    op.create_table(
        'alerts',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('symbol', sa.String(), nullable=False),
        sa.Column('target_price', sa.Float(), nullable=False),
        sa.Column('direction', sa.String(), nullable=False),
        sa.Column('reference_price', sa.Float(), nullable=False),
        sa.Column('is_recurring', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_triggered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('arm_state', sa.String(), nullable=False),
        sa.Column('last_side', sa.String(), nullable=True),
        sa.Column('trigger_count', sa.Integer(), nullable=False),
    )
    op.create_index('ix_alerts_symbol', 'alerts', ['symbol'])
    
    # Create trigger_events table (append-only history)
    op.create_table(
        'trigger_events',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('alert_id', sa.String(), nullable=False),
        sa.Column('symbol', sa.String(), nullable=False),
        sa.Column('target_price', sa.Float(), nullable=False),
        sa.Column('trigger_price', sa.Float(), nullable=False),
        sa.Column('direction', sa.String(), nullable=False),
        sa.Column('triggered_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_trigger_events_alert_id', 'trigger_events', ['alert_id'])
    op.create_index('ix_trigger_events_symbol', 'trigger_events', ['symbol'])
    op.create_index('ix_trigger_events_triggered_at', 'trigger_events', ['triggered_at'])


def downgrade() -> None:
    op.drop_index('ix_trigger_events_triggered_at', table_name='trigger_events')
    op.drop_index('ix_trigger_events_symbol', table_name='trigger_events')
    op.drop_index('ix_trigger_events_alert_id', table_name='trigger_events')
    op.drop_table('trigger_events')
    op.drop_index('ix_alerts_symbol', table_name='alerts')
    op.drop_table('alerts')
