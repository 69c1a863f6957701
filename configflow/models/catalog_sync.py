"""
Catalog sync bookkeeping: one CatalogSyncHistory row per sync run and one
CatalogSyncChange row per integration touched by that run.

The rollback snapshot taken before a sync lives in CatalogSyncHistory.metadata
under the "snapshot" key.
"""

import uuid
from datetime import datetime
from enum import Enum
from configflow.database import db, JSONType


class SyncType(str, Enum):
    FULL = 'full'
    INCREMENTAL = 'incremental'
    MANUAL = 'manual'


class SyncRunStatus(str, Enum):
    RUNNING = 'running'
    COMPLETED = 'completed'
    FAILED = 'failed'
    CANCELLED = 'cancelled'


class ChangeType(str, Enum):
    NEW = 'new'
    UPDATED = 'updated'
    DELETED = 'deleted'
    DEPRECATED = 'deprecated'


class CatalogSyncHistory(db.Model):
    __tablename__ = 'catalog_sync_history'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    sync_type = db.Column(db.String(20), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=SyncRunStatus.RUNNING.value, index=True)

    started_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    completed_at = db.Column(db.DateTime, nullable=True)

    total_integrations = db.Column(db.Integer, default=0)
    new_integrations = db.Column(db.Integer, default=0)
    updated_integrations = db.Column(db.Integer, default=0)
    deleted_integrations = db.Column(db.Integer, default=0)
    error_count = db.Column(db.Integer, default=0)

    # [{domain, error}]
    error_details = db.Column(JSONType, nullable=True)
    sync_metadata = db.Column('metadata', JSONType, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    changes = db.relationship(
        'CatalogSyncChange',
        backref='sync',
        lazy='dynamic',
        cascade='all, delete-orphan'
    )

    def to_dict(self, include_snapshot: bool = False):
        metadata = dict(self.sync_metadata or {})
        if not include_snapshot:
            metadata.pop('snapshot', None)

        return {
            'id': self.id,
            'sync_type': self.sync_type,
            'status': self.status,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'total_integrations': self.total_integrations,
            'new_integrations': self.new_integrations,
            'updated_integrations': self.updated_integrations,
            'deleted_integrations': self.deleted_integrations,
            'error_count': self.error_count,
            'error_details': self.error_details or [],
            'metadata': metadata,
        }


class CatalogSyncChange(db.Model):
    __tablename__ = 'catalog_sync_changes'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    sync_id = db.Column(
        db.String(36),
        db.ForeignKey('catalog_sync_history.id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )
    domain = db.Column(db.String(255), nullable=False, index=True)
    change_type = db.Column(db.String(20), nullable=False)
    previous_version_hash = db.Column(db.String(64), nullable=True)
    new_version_hash = db.Column(db.String(64), nullable=True)
    changed_fields = db.Column(JSONType, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.Index('ix_sync_changes_sync_domain', 'sync_id', 'domain'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'sync_id': self.sync_id,
            'domain': self.domain,
            'change_type': self.change_type,
            'previous_version_hash': self.previous_version_hash,
            'new_version_hash': self.new_version_hash,
            'changed_fields': self.changed_fields,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
