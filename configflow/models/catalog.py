"""
IntegrationCatalog - reference list of available integrations.

Besides the display fields, each row carries the legacy flat flow settings
(flow_type, flow_config, metadata) read by the flow-type resolver, and the
sync bookkeeping (version_hash, last_synced_at, sync_status) written by the
catalog sync pipeline.
"""

import uuid
from datetime import datetime
from enum import Enum
from configflow.database import db, JSONType


class SyncStatus(str, Enum):
    PENDING = 'pending'
    SYNCED = 'synced'
    ERROR = 'error'
    DEPRECATED = 'deprecated'


# Fields that describe an integration, in the order used by the sync pipeline
CATALOG_ENTRY_FIELDS = (
    'domain',
    'name',
    'description',
    'icon',
    'supports_devices',
    'is_cloud',
    'documentation_url',
    'flow_type',
    'flow_config',
    'handler_class',
    'metadata',
    'brand_image_url',
)


class IntegrationCatalog(db.Model):
    __tablename__ = 'integration_catalog'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    domain = db.Column(db.String(255), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    icon = db.Column(db.String(255), nullable=True)
    supports_devices = db.Column(db.Boolean, default=False)
    is_cloud = db.Column(db.Boolean, default=False)
    documentation_url = db.Column(db.Text, nullable=True)
    brand_image_url = db.Column(db.Text, nullable=True)

    # Legacy flow settings
    flow_type = db.Column(db.String(50), default='manual')
    flow_config = db.Column(JSONType, nullable=True)
    handler_class = db.Column(db.String(255), nullable=True)
    # "metadata" is reserved on declarative models
    catalog_metadata = db.Column('metadata', JSONType, nullable=True)

    # Sync tracking
    version_hash = db.Column(db.String(64), nullable=True, index=True)
    last_synced_at = db.Column(db.DateTime, nullable=True)
    sync_status = db.Column(db.String(20), default=SyncStatus.PENDING.value, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_entry(self):
        """Catalog entry dict as consumed by the sync pipeline"""
        return {
            'domain': self.domain,
            'name': self.name,
            'description': self.description,
            'icon': self.icon,
            'supports_devices': bool(self.supports_devices),
            'is_cloud': bool(self.is_cloud),
            'documentation_url': self.documentation_url,
            'flow_type': self.flow_type,
            'flow_config': self.flow_config,
            'handler_class': self.handler_class,
            'metadata': self.catalog_metadata,
            'brand_image_url': self.brand_image_url,
        }

    def apply_entry(self, entry):
        """Copy catalog entry fields onto the row (domain excluded)"""
        self.name = entry.get('name')
        self.description = entry.get('description')
        self.icon = entry.get('icon')
        self.supports_devices = bool(entry.get('supports_devices', False))
        self.is_cloud = bool(entry.get('is_cloud', False))
        self.documentation_url = entry.get('documentation_url')
        self.brand_image_url = entry.get('brand_image_url')
        self.flow_type = entry.get('flow_type') or 'manual'
        self.flow_config = entry.get('flow_config')
        self.handler_class = entry.get('handler_class')
        self.catalog_metadata = entry.get('metadata')

    def to_dict(self):
        data = self.to_entry()
        data.update({
            'id': self.id,
            'version_hash': self.version_hash,
            'last_synced_at': self.last_synced_at.isoformat() if self.last_synced_at else None,
            'sync_status': self.sync_status,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        })
        return data

    @classmethod
    def get_by_domain(cls, domain: str):
        return cls.query.filter_by(domain=domain).first()
