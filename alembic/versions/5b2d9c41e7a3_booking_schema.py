"""booking schema

Revision ID: 5b2d9c41e7a3
Revises:
Create Date: 2026-02-16 10:12:44.318204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '5b2d9c41e7a3'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""

    # 1. Users and teacher directory
    op.create_table(
        'users',
        sa.Column('id', sa.String(128), primary_key=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('display_name', sa.String(255), nullable=True),
        sa.Column('roles', sa.JSON(), nullable=False),
        sa.Column('approved', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('department', sa.String(255), nullable=True),
        sa.Column('subject', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False)
    )
    op.create_index('ix_users_email', 'users', ['email'])

    op.create_table(
        'teachers',
        sa.Column('id', sa.String(128), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('department', sa.String(255), nullable=True),
        sa.Column('subject', sa.String(255), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('office', sa.String(255), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('invited_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False)
    )

    # 2. Organization policy (singleton row "global")
    op.create_table(
        'organization_settings',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column('workday_start', sa.String(5), nullable=False),
        sa.Column('workday_end', sa.String(5), nullable=False),
        sa.Column('holidays', sa.JSON(), nullable=False),
        sa.Column('updated_by', sa.String(128), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False)
    )

    # 3. Teacher availability and single busy blocks
    op.create_table(
        'teacher_availability',
        sa.Column('teacher_id', sa.String(128), primary_key=True),
        sa.Column('weekly', sa.JSON(), nullable=False),
        sa.Column('busy', sa.JSON(), nullable=False),
        sa.Column('workday_start', sa.String(5), nullable=True),
        sa.Column('workday_end', sa.String(5), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False)
    )

    op.create_table(
        'teacher_busy_blocks',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('teacher_id', sa.String(128), nullable=False),
        sa.Column('date', sa.String(10), nullable=False),
        sa.Column('start', sa.String(5), nullable=False),
        sa.Column('end', sa.String(5), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(128), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False)
    )
    op.create_index('ix_teacher_busy_blocks_teacher_id', 'teacher_busy_blocks', ['teacher_id'])
    op.create_index('idx_busy_blocks_teacher_date', 'teacher_busy_blocks', ['teacher_id', 'date'])

    # 4. Appointments
    op.create_table(
        'appointments',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('teacher_id', sa.String(128), nullable=False),
        sa.Column('student_id', sa.String(128), nullable=False),
        sa.Column('start_at', sa.DateTime(), nullable=False),
        sa.Column('end_at', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='pending'),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('cancel_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False)
    )
    op.create_index('ix_appointments_teacher_id', 'appointments', ['teacher_id'])
    op.create_index('ix_appointments_student_id', 'appointments', ['student_id'])
    op.create_index('idx_appointments_teacher_status_start', 'appointments', ['teacher_id', 'status', 'start_at'])

    # 5. In-app notifications
    op.create_table(
        'notifications',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('to_uid', sa.String(128), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('read_at', sa.DateTime(), nullable=True)
    )
    op.create_index('ix_notifications_to_uid', 'notifications', ['to_uid'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_notifications_to_uid', table_name='notifications')
    op.drop_table('notifications')

    op.drop_index('idx_appointments_teacher_status_start', table_name='appointments')
    op.drop_index('ix_appointments_student_id', table_name='appointments')
    op.drop_index('ix_appointments_teacher_id', table_name='appointments')
    op.drop_table('appointments')

    op.drop_index('idx_busy_blocks_teacher_date', table_name='teacher_busy_blocks')
    op.drop_index('ix_teacher_busy_blocks_teacher_id', table_name='teacher_busy_blocks')
    op.drop_table('teacher_busy_blocks')
    op.drop_table('teacher_availability')

    op.drop_table('organization_settings')

    op.drop_table('teachers')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
