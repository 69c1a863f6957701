"""
IntegrationFlowDefinition - versioned, validated step graph for one integration domain.

Every create produces a new version for the domain. At most one version per
domain is active at a time; the registry keeps that invariant and the partial
unique index backs it at the database level.
"""

import uuid
from datetime import datetime
from configflow.database import db, JSONType


class IntegrationFlowDefinition(db.Model):
    __tablename__ = 'integration_flow_definitions'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    integration_domain = db.Column(db.String(255), nullable=False, index=True)
    version = db.Column(db.Integer, nullable=False, default=1)
    flow_type = db.Column(db.String(50), nullable=False)

    # Full FlowDefinition document: steps, validation, ui, completion
    definition = db.Column(JSONType, nullable=False)

    # Optional custom handler and its configuration
    handler_class = db.Column(db.String(255), nullable=True)
    handler_config = db.Column(JSONType, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    is_default = db.Column(db.Boolean, nullable=False, default=False)

    description = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.String(255), default='system')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('integration_domain', 'version', name='uq_flow_definitions_domain_version'),
        db.Index(
            'uq_flow_definitions_active_domain',
            'integration_domain',
            unique=True,
            postgresql_where=db.text('is_active = true'),
            sqlite_where=db.text('is_active = 1'),
        ),
        db.Index('ix_flow_definitions_type', 'flow_type'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'integration_domain': self.integration_domain,
            'version': self.version,
            'flow_type': self.flow_type,
            'definition': self.definition,
            'handler_class': self.handler_class,
            'handler_config': self.handler_config,
            'is_active': self.is_active,
            'is_default': self.is_default,
            'description': self.description,
            'created_by': self.created_by,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def next_version(cls, domain: str) -> int:
        """Next version number for a domain (1 for the first definition)"""
        current = db.session.query(db.func.max(cls.version)).filter(
            cls.integration_domain == domain
        ).scalar()
        return (current or 0) + 1

    @classmethod
    def deactivate_others(cls, domain: str, exclude_id: str = None) -> int:
        """
        Clear is_active on every active definition of a domain.

        Does not commit; callers run it inside the same transaction as the
        insert/update that activates the new record.

        Args:
            domain: Integration domain
            exclude_id: Record to leave untouched

        Returns:
            Number of rows deactivated
        """
        query = cls.query.filter(
            cls.integration_domain == domain,
            cls.is_active.is_(True)
        )
        if exclude_id:
            query = query.filter(cls.id != exclude_id)

        return query.update(
            {'is_active': False, 'updated_at': datetime.utcnow()},
            synchronize_session='fetch'
        )
