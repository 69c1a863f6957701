"""Add catalog sync tracking

Revision ID: 8b4e2f6a1c93
Revises: 3f1a9c2d7b10
Create Date: 2026-09-21 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '8b4e2f6a1c93'
down_revision = '3f1a9c2d7b10'
branch_labels = None
depends_on = None

JSON = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def upgrade():
    # Sync bookkeeping on the catalog
    op.add_column('integration_catalog', sa.Column('version_hash', sa.String(length=64), nullable=True))
    op.add_column('integration_catalog', sa.Column('last_synced_at', sa.DateTime(), nullable=True))
    op.add_column(
        'integration_catalog',
        sa.Column('sync_status', sa.String(length=20), nullable=True, server_default='pending')
    )
    op.create_index(op.f('ix_integration_catalog_version_hash'), 'integration_catalog', ['version_hash'], unique=False)
    op.create_index(op.f('ix_integration_catalog_sync_status'), 'integration_catalog', ['sync_status'], unique=False)

    op.create_table('catalog_sync_history',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('sync_type', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='running'),
        sa.Column('started_at', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('total_integrations', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('new_integrations', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('updated_integrations', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('deleted_integrations', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('error_count', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('error_details', JSON, nullable=True),
        sa.Column('metadata', JSON, nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_catalog_sync_history_status'), 'catalog_sync_history', ['status'], unique=False)
    op.create_index(op.f('ix_catalog_sync_history_started_at'), 'catalog_sync_history', ['started_at'], unique=False)

    op.create_table('catalog_sync_changes',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('sync_id', sa.String(length=36), nullable=False),
        sa.Column('domain', sa.String(length=255), nullable=False),
        sa.Column('change_type', sa.String(length=20), nullable=False),
        sa.Column('previous_version_hash', sa.String(length=64), nullable=True),
        sa.Column('new_version_hash', sa.String(length=64), nullable=True),
        sa.Column('changed_fields', JSON, nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['sync_id'], ['catalog_sync_history.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_catalog_sync_changes_sync_id'), 'catalog_sync_changes', ['sync_id'], unique=False)
    op.create_index(op.f('ix_catalog_sync_changes_domain'), 'catalog_sync_changes', ['domain'], unique=False)
    op.create_index('ix_sync_changes_sync_domain', 'catalog_sync_changes', ['sync_id', 'domain'], unique=False)


def downgrade():
    op.drop_index('ix_sync_changes_sync_domain', table_name='catalog_sync_changes')
    op.drop_index(op.f('ix_catalog_sync_changes_domain'), table_name='catalog_sync_changes')
    op.drop_index(op.f('ix_catalog_sync_changes_sync_id'), table_name='catalog_sync_changes')
    op.drop_table('catalog_sync_changes')

    op.drop_index(op.f('ix_catalog_sync_history_started_at'), table_name='catalog_sync_history')
    op.drop_index(op.f('ix_catalog_sync_history_status'), table_name='catalog_sync_history')
    op.drop_table('catalog_sync_history')

    op.drop_index(op.f('ix_integration_catalog_sync_status'), table_name='integration_catalog')
    op.drop_index(op.f('ix_integration_catalog_version_hash'), table_name='integration_catalog')
    op.drop_column('integration_catalog', 'sync_status')
    op.drop_column('integration_catalog', 'last_synced_at')
    op.drop_column('integration_catalog', 'version_hash')
