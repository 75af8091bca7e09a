"""Create notification table

Revision ID: 003
Revises: 002
Create Date: 2026-01-12 11:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '003'
down_revision = '002'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'notification',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('recipient_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('sender_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('type', sa.Text(), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('priority', sa.Text(), server_default='medium', nullable=False),
        sa.Column('is_read', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('read_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('document_submission_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('metadata_json', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['recipient_id'], ['user.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['sender_id'], ['user.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['document_submission_id'], ['document_submission.id'], ondelete='SET NULL'),
        sa.CheckConstraint(
            "type IN ('document_submission', 'document_resubmitted', 'document_approved', "
            "'document_rejected', 'workflow_update')",
            name='ck_notification_type'
        ),
        sa.CheckConstraint("priority IN ('low', 'medium', 'high', 'urgent')", name='ck_notification_priority')
    )

    op.create_index('ix_notification_recipient_read', 'notification', ['recipient_id', 'is_read'])


def downgrade():
    op.drop_index('ix_notification_recipient_read', table_name='notification')
    op.drop_table('notification')
