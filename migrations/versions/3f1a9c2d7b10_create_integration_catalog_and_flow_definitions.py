"""Create integration catalog and flow definitions tables

Revision ID: 3f1a9c2d7b10
Revises:
Create Date: 2026-09-14 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '3f1a9c2d7b10'
down_revision = None
branch_labels = None
depends_on = None

JSON = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def upgrade():
    op.create_table('integration_catalog',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('domain', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('icon', sa.String(length=255), nullable=True),
        sa.Column('supports_devices', sa.Boolean(), nullable=True, server_default='false'),
        sa.Column('is_cloud', sa.Boolean(), nullable=True, server_default='false'),
        sa.Column('documentation_url', sa.Text(), nullable=True),
        sa.Column('brand_image_url', sa.Text(), nullable=True),
        sa.Column('flow_type', sa.String(length=50), nullable=True, server_default='manual'),
        sa.Column('flow_config', JSON, nullable=True),
        sa.Column('handler_class', sa.String(length=255), nullable=True),
        sa.Column('metadata', JSON, nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('domain')
    )

    op.create_table('integration_flow_definitions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('integration_domain', sa.String(length=255), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('flow_type', sa.String(length=50), nullable=False),
        sa.Column('definition', JSON, nullable=False),
        sa.Column('handler_class', sa.String(length=255), nullable=True),
        sa.Column('handler_config', JSON, nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('is_default', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(length=255), nullable=True, server_default='system'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('integration_domain', 'version', name='uq_flow_definitions_domain_version')
    )

    op.create_index(
        op.f('ix_integration_flow_definitions_integration_domain'),
        'integration_flow_definitions', ['integration_domain'], unique=False
    )
    op.create_index('ix_flow_definitions_type', 'integration_flow_definitions', ['flow_type'], unique=False)
    # One active definition per domain
    op.create_index(
        'uq_flow_definitions_active_domain',
        'integration_flow_definitions',
        ['integration_domain'],
        unique=True,
        postgresql_where=sa.text('is_active = true')
    )


def downgrade():
    op.drop_index('uq_flow_definitions_active_domain', table_name='integration_flow_definitions')
    op.drop_index('ix_flow_definitions_type', table_name='integration_flow_definitions')
    op.drop_index(
        op.f('ix_integration_flow_definitions_integration_domain'),
        table_name='integration_flow_definitions'
    )
    op.drop_table('integration_flow_definitions')
    op.drop_table('integration_catalog')
