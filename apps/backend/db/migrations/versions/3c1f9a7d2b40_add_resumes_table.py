"""add resumes table

Revision ID: 3c1f9a7d2b40
Revises: 
Create Date: 2025-08-04
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '3c1f9a7d2b40'
down_revision = None
branch_labels = None
depends_on = None

storage_kind = sa.Enum('external', 'embedded', 'legacy_local', name='resume_storage_kind')


def upgrade():
    op.create_table(
        'resumes',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('owner_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('original_name', sa.String(length=255), nullable=False),
        sa.Column('stored_name', sa.String(length=512), nullable=False),
        sa.Column('storage_kind', storage_kind, nullable=False),
        sa.Column('external_url', sa.String(length=2048), nullable=True),
        sa.Column('external_object_id', sa.String(length=512), nullable=True),
        sa.Column('blob_content', sa.LargeBinary(), nullable=True),
        sa.Column('legacy_path', sa.String(length=1024), nullable=True),
        sa.Column('size_bytes', sa.Integer(), nullable=False),
        sa.Column('mime_type', sa.String(length=255), nullable=False),
        sa.Column('download_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_resumes_owner_id', 'resumes', ['owner_id'])


def downgrade():
    op.drop_index('ix_resumes_owner_id', table_name='resumes')
    op.drop_table('resumes')
    storage_kind.drop(op.get_bind(), checkfirst=True)
