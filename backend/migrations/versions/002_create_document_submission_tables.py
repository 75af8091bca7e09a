"""Create document_submission, submission_document and rejected_document tables

Revision ID: 002
Revises: 001
Create Date: 2026-01-12 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '002'
down_revision = '001'
branch_labels = None
depends_on = None


SUBMISSION_STATUSES = (
    'draft', 'submitted', 'under_review', 'partially_approved',
    'fully_approved', 'rejected', 'requires_resubmission',
)
DOCUMENT_STATUSES = (
    'pending', 'uploaded', 'under_review', 'approved',
    'rejected', 'resubmitted', 'requires_resubmission',
)


def _in_list(column, values):
    return f"{column} IN ({', '.join(repr(v) for v in values)})"


def upgrade():
    op.create_table(
        'document_submission',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('submission_id', sa.Text(), nullable=False),
        sa.Column('vendor_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('upload_year', sa.Integer(), nullable=False),
        sa.Column('upload_month', sa.Text(), nullable=False),
        sa.Column('submission_status', sa.Text(), server_default='draft', nullable=False),
        sa.Column('is_approved', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('approval_date', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('approval_remarks', sa.Text(), nullable=True),
        sa.Column('approved_by_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('invoice_no', sa.Text(), nullable=True),
        sa.Column('work_location', sa.Text(), nullable=True),
        sa.Column('consultant_name', sa.Text(), nullable=True),
        sa.Column('consultant_email', sa.Text(), nullable=True),
        sa.Column('submission_date', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('last_modified_date', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('row_version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('submission_id', name='uq_document_submission_submission_id'),
        sa.UniqueConstraint('vendor_id', 'upload_year', 'upload_month', name='uq_submission_vendor_period'),
        sa.ForeignKeyConstraint(['vendor_id'], ['user.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['approved_by_id'], ['user.id'], ondelete='SET NULL'),
        sa.CheckConstraint(_in_list('submission_status', SUBMISSION_STATUSES), name='ck_submission_status'),
        sa.CheckConstraint('upload_year BETWEEN 2023 AND 2035', name='ck_submission_upload_year')
    )

    op.create_index('ix_document_submission_vendor_id', 'document_submission', ['vendor_id'])
    op.create_index('ix_document_submission_status', 'document_submission', ['submission_status'])

    op.create_table(
        'submission_document',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('document_submission_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('sequence', sa.Integer(), server_default='0', nullable=False),
        sa.Column('document_type', sa.Text(), nullable=False),
        sa.Column('document_name', sa.Text(), nullable=False),
        sa.Column('file_name', sa.Text(), nullable=False),
        sa.Column('file_path', sa.Text(), nullable=False),
        sa.Column('file_size', sa.BigInteger(), nullable=True),
        sa.Column('mime_type', sa.Text(), nullable=True),
        sa.Column('status', sa.Text(), server_default='pending', nullable=False),
        sa.Column('consultant_remarks', sa.Text(), nullable=True),
        sa.Column('is_mandatory', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('version', sa.Integer(), server_default='1', nullable=False),
        sa.Column('upload_date', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('review_date', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('reviewed_by_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('resubmission_date', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('document_submission_id', 'document_type', name='uq_submission_document_type'),
        sa.ForeignKeyConstraint(['document_submission_id'], ['document_submission.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['reviewed_by_id'], ['user.id'], ondelete='SET NULL'),
        sa.CheckConstraint(_in_list('status', DOCUMENT_STATUSES), name='ck_submission_document_status')
    )

    op.create_index('ix_submission_document_submission_id', 'submission_document', ['document_submission_id'])

    op.create_table(
        'rejected_document',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('document_submission_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('document_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('document_type', sa.Text(), nullable=False),
        sa.Column('rejection_reason', sa.Text(), nullable=False),
        sa.Column('rejected_date', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('rejected_by_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('is_resubmitted', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('resubmission_date', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['document_submission_id'], ['document_submission.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['document_id'], ['submission_document.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['rejected_by_id'], ['user.id'], ondelete='SET NULL')
    )

    op.create_index('ix_rejected_document_submission_id', 'rejected_document', ['document_submission_id'])

    for table in ('document_submission', 'submission_document'):
        op.execute(f"""
            CREATE TRIGGER update_{table}_updated_at
            BEFORE UPDATE ON {table}
            FOR EACH ROW
            EXECUTE FUNCTION update_updated_at_column();
        """)


def downgrade():
    for table in ('submission_document', 'document_submission'):
        op.execute(f'DROP TRIGGER IF EXISTS update_{table}_updated_at ON {table}')

    op.drop_index('ix_rejected_document_submission_id', table_name='rejected_document')
    op.drop_table('rejected_document')
    op.drop_index('ix_submission_document_submission_id', table_name='submission_document')
    op.drop_table('submission_document')
    op.drop_index('ix_document_submission_status', table_name='document_submission')
    op.drop_index('ix_document_submission_vendor_id', table_name='document_submission')
    op.drop_table('document_submission')
