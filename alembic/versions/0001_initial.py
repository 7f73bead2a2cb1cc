"""Initial schema: forms, immutable versions, submissions, edit history.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19

Creates:
- forms / form_versions (circular FK for current_version_id)
- submissions + submission_edit_history
- applications + application_edit_history (legacy fixed-schema intake)
- stored_files
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), 'postgresql')


def upgrade() -> None:
    # ==========================================================================
    # forms (current_version_id FK added after form_versions exists)
    # ==========================================================================
    op.create_table(
        'forms',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(150), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), server_default=sa.text("'draft'"), nullable=False),
        sa.Column('draft_schema', sa.Text(), nullable=False),
        sa.Column('current_version_id', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug', name='uq_forms_slug'),
    )
    op.create_index('idx_forms_status', 'forms', ['status'])

    # ==========================================================================
    # form_versions
    # ==========================================================================
    op.create_table(
        'form_versions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('form_id', sa.Uuid(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('schema', sa.Text(), nullable=False),
        sa.Column('published_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['form_id'], ['forms.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('form_id', 'version', name='uq_form_versions_form_version'),
    )
    op.create_index('idx_form_versions_form', 'form_versions', ['form_id'])

    with op.batch_alter_table('forms') as batch_op:
        batch_op.create_foreign_key(
            'fk_forms_current_version',
            'form_versions',
            ['current_version_id'], ['id'],
            ondelete='SET NULL',
        )

    # ==========================================================================
    # submissions
    # ==========================================================================
    op.create_table(
        'submissions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('form_version_id', sa.Uuid(), nullable=False),
        sa.Column('data', JSON_TYPE, nullable=False),
        sa.Column('status', sa.String(20), server_default=sa.text("'new'"), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('submitted_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['form_version_id'], ['form_versions.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_submissions_version', 'submissions', ['form_version_id'])
    op.create_index('idx_submissions_status', 'submissions', ['status'])
    op.create_index('idx_submissions_submitted', 'submissions', ['submitted_at'])

    op.create_table(
        'submission_edit_history',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('submission_id', sa.Uuid(), nullable=False),
        sa.Column('field_id', sa.String(100), nullable=False),
        sa.Column('field_label', sa.String(300), nullable=False),
        sa.Column('old_value', sa.Text(), nullable=False),
        sa.Column('new_value', sa.Text(), nullable=False),
        sa.Column('edited_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['submission_id'], ['submissions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'idx_submission_history_submission',
        'submission_edit_history',
        ['submission_id', 'edited_at'],
    )

    # ==========================================================================
    # applications (legacy fixed-schema intake)
    # ==========================================================================
    op.create_table(
        'applications',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('full_name', sa.String(200), nullable=False),
        sa.Column('email', sa.String(320), nullable=False),
        sa.Column('linkedin', sa.String(500), nullable=True),
        sa.Column('role', sa.String(200), nullable=False),
        sa.Column('bio', sa.Text(), nullable=False),
        sa.Column('floor', sa.String(100), nullable=False),
        sa.Column('floor_other', sa.String(200), nullable=True),
        sa.Column('initiative_name', sa.String(200), nullable=False),
        sa.Column('tagline', sa.String(300), nullable=False),
        sa.Column('values', sa.Text(), nullable=False),
        sa.Column('target_community', sa.Text(), nullable=False),
        sa.Column('estimated_size', sa.String(50), nullable=False),
        sa.Column('phase1_mvp', sa.Text(), nullable=False),
        sa.Column('phase2_expansion', sa.Text(), nullable=False),
        sa.Column('phase3_long_term', sa.Text(), nullable=False),
        sa.Column('benefit_to_ft', sa.Text(), nullable=False),
        sa.Column('existing_community', sa.Text(), nullable=False),
        sa.Column('space_needs', sa.Text(), nullable=False),
        sa.Column('start_date', sa.String(50), nullable=False),
        sa.Column('additional_notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), server_default=sa.text("'new'"), nullable=False),
        sa.Column('submitted_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_applications_status', 'applications', ['status'])
    op.create_index('idx_applications_submitted', 'applications', ['submitted_at'])

    op.create_table(
        'application_edit_history',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('application_id', sa.Uuid(), nullable=False),
        sa.Column('field', sa.String(100), nullable=False),
        sa.Column('old_value', sa.Text(), nullable=False),
        sa.Column('new_value', sa.Text(), nullable=False),
        sa.Column('edited_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['application_id'], ['applications.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'idx_application_history_application',
        'application_edit_history',
        ['application_id', 'edited_at'],
    )

    # ==========================================================================
    # stored_files
    # ==========================================================================
    op.create_table(
        'stored_files',
        sa.Column('storage_id', sa.String(64), nullable=False),
        sa.Column('upload_token', sa.String(128), nullable=False),
        sa.Column('storage_key', sa.String(512), nullable=False),
        sa.Column('content_type', sa.String(100), nullable=True),
        sa.Column('size', sa.Integer(), nullable=True),
        sa.Column('checksum_sha256', sa.String(64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('uploaded_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('storage_id'),
        sa.UniqueConstraint('upload_token', name='uq_stored_files_upload_token'),
    )
    op.create_index('idx_stored_files_created', 'stored_files', ['created_at'])


def downgrade() -> None:
    op.drop_table('stored_files')
    op.drop_table('application_edit_history')
    op.drop_table('applications')
    op.drop_table('submission_edit_history')
    op.drop_table('submissions')
    with op.batch_alter_table('forms') as batch_op:
        batch_op.drop_constraint('fk_forms_current_version', type_='foreignkey')
    op.drop_table('form_versions')
    op.drop_table('forms')
