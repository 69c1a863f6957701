"""Create config files table for file field uploads

Revision ID: c7d3a5e9f214
Revises: 8b4e2f6a1c93
Create Date: 2026-09-28 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'c7d3a5e9f214'
down_revision = '8b4e2f6a1c93'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('config_files',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('config_entry_id', sa.String(length=36), nullable=True),
        sa.Column('field_name', sa.String(length=255), nullable=False),
        sa.Column('original_filename', sa.String(length=255), nullable=False),
        sa.Column('stored_filename', sa.String(length=255), nullable=False),
        sa.Column('file_path', sa.Text(), nullable=False),
        sa.Column('mime_type', sa.String(length=100), nullable=True),
        sa.Column('file_size', sa.BigInteger(), nullable=True),
        sa.Column('uploaded_at', sa.DateTime(), nullable=True),
        sa.Column('uploaded_by', sa.String(length=36), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_index(op.f('ix_config_files_config_entry_id'), 'config_files', ['config_entry_id'], unique=False)
    op.create_index(op.f('ix_config_files_field_name'), 'config_files', ['field_name'], unique=False)


def downgrade():
    op.drop_index(op.f('ix_config_files_field_name'), table_name='config_files')
    op.drop_index(op.f('ix_config_files_config_entry_id'), table_name='config_files')
    op.drop_table('config_files')
