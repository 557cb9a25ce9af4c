"""Triage archive schema - crisis alerts, handoff requests, session archives

Revision ID: 001_triage_archive
Revises: 
Create Date: 2024-01-01 00:00:00.000000

Creates the write-only archive tables:
- crisis_alerts: Alerts that reached resolved or escalated
- handoff_requests: Assigned, expired and cancelled handoffs
- session_archives: Ended session summaries (no message content)
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = '001_triage_archive'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create crisis_alerts table
    op.create_table(
        'crisis_alerts',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('session_id', sa.String(128), nullable=False),
        sa.Column('user_id', sa.String(128), nullable=True),
        sa.Column('severity', sa.Integer(), nullable=False),
        sa.Column('indicators', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('resolution_reason', sa.String(32), nullable=True),
        sa.Column('acknowledged_by', sa.String(128), nullable=True),
        sa.Column('handoff_request_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('late_acknowledgements', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('opened_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('deadline_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('acknowledged_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('archived_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_crisis_alerts_session_id', 'crisis_alerts', ['session_id'])
    op.create_index('ix_crisis_alerts_user_id', 'crisis_alerts', ['user_id'])
    op.create_index('ix_crisis_alerts_status', 'crisis_alerts', ['status'])

    # Create handoff_requests table
    op.create_table(
        'handoff_requests',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('session_id', sa.String(128), nullable=False),
        sa.Column('user_id', sa.String(128), nullable=True),
        sa.Column('reason', sa.Text(), nullable=False, server_default=''),
        sa.Column('urgency', sa.String(10), nullable=False),
        sa.Column('preferred_specialty', sa.String(64), nullable=True),
        sa.Column('language', sa.String(16), nullable=True),
        sa.Column('alert_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('assigned_responder_id', sa.String(128), nullable=True),
        sa.Column('estimated_wait_minutes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('warnings', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('assigned_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('archived_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_handoff_requests_session_id', 'handoff_requests', ['session_id'])
    op.create_index('ix_handoff_requests_alert_id', 'handoff_requests', ['alert_id'])
    op.create_index('ix_handoff_requests_status', 'handoff_requests', ['status'])

    # Create session_archives table
    op.create_table(
        'session_archives',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('session_id', sa.String(128), nullable=False),
        sa.Column('user_id', sa.String(128), nullable=True),
        sa.Column('turn_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_risk_score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('technique_usage', postgresql.JSONB(), nullable=False, server_default='{}'),
        sa.Column('crisis_mode', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('ended_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('archived_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_session_archives_session_id', 'session_archives', ['session_id'])
    op.create_index('ix_session_archives_user_id', 'session_archives', ['user_id'])


def downgrade() -> None:
    op.drop_table('session_archives')
    op.drop_table('handoff_requests')
    op.drop_table('crisis_alerts')
