"""
Flow Definition Registry - CRUD, versioning and activation of flow definitions.

Definitions are stored in integration_flow_definitions. Each create adds a new
version for the domain; activating a version deactivates every other version
of that domain inside the same transaction.

Registered listeners are called with the affected domain after every write so
that caches built on top of the registry can drop stale entries.
"""

import logging
import math
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from configflow.database import db
from configflow.flow_engine.definition_validator import validate_flow_definition
from configflow.flow_engine.types import DefinitionError
from configflow.models.flow_definition import IntegrationFlowDefinition

logger = logging.getLogger(__name__)

SORTABLE_COLUMNS = {
    'created_at': IntegrationFlowDefinition.created_at,
    'updated_at': IntegrationFlowDefinition.updated_at,
    'version': IntegrationFlowDefinition.version,
    'integration_domain': IntegrationFlowDefinition.integration_domain,
    'flow_type': IntegrationFlowDefinition.flow_type,
}

FILTERABLE_COLUMNS = {
    'domain': IntegrationFlowDefinition.integration_domain,
    'flow_type': IntegrationFlowDefinition.flow_type,
    'is_active': IntegrationFlowDefinition.is_active,
    'is_default': IntegrationFlowDefinition.is_default,
    'version': IntegrationFlowDefinition.version,
}

UPDATABLE_FIELDS = ('definition', 'handler_class', 'handler_config', 'description', 'is_active', 'is_default')


class InvalidFlowDefinitionError(Exception):
    """Raised when a definition fails structural validation"""
    def __init__(self, errors: List[DefinitionError]):
        self.errors = errors
        message = ", ".join(e.message for e in errors)
        super().__init__(f"Invalid flow definition: {message}")


class FlowDefinitionNotFoundError(Exception):
    def __init__(self, definition_id: str):
        self.definition_id = definition_id
        super().__init__(f"Flow definition not found: {definition_id}")


def _ensure_valid(definition: Dict[str, Any]) -> None:
    result = validate_flow_definition(definition)
    if not result.valid:
        raise InvalidFlowDefinitionError(result.errors)


class FlowDefinitionRegistry:
    """Service layer over IntegrationFlowDefinition"""

    def __init__(self):
        self._listeners: List[Callable[[str], None]] = []

    def add_listener(self, listener: Callable[[str], None]) -> None:
        """Register a callable invoked with the domain after every write"""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def _notify(self, domain: str) -> None:
        for listener in self._listeners:
            try:
                listener(domain)
            except Exception as e:
                logger.error(f"Flow definition listener failed for {domain}: {e}")

    def _commit(self) -> None:
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

    def create(
        self,
        integration_domain: str,
        flow_type: str,
        definition: Dict[str, Any],
        handler_class: Optional[str] = None,
        handler_config: Optional[Dict[str, Any]] = None,
        is_active: bool = True,
        is_default: bool = False,
        description: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> IntegrationFlowDefinition:
        """
        Create a new version of a domain's flow definition.

        Raises:
            InvalidFlowDefinitionError: definition fails validation
        """
        _ensure_valid(definition)

        try:
            if is_active:
                IntegrationFlowDefinition.deactivate_others(integration_domain)

            record = IntegrationFlowDefinition(
                integration_domain=integration_domain,
                version=IntegrationFlowDefinition.next_version(integration_domain),
                flow_type=flow_type,
                definition=definition,
                handler_class=handler_class or None,
                handler_config=handler_config or None,
                is_active=is_active,
                is_default=bool(is_default),
                description=description or None,
                created_by=created_by or 'system',
            )
            db.session.add(record)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info(f"Created flow definition {integration_domain} v{record.version} ({record.id})")
        self._notify(integration_domain)
        return record

    def get_by_id(self, definition_id: str) -> Optional[IntegrationFlowDefinition]:
        return IntegrationFlowDefinition.query.get(definition_id)

    def get_active(self, domain: str) -> Optional[IntegrationFlowDefinition]:
        return IntegrationFlowDefinition.query.filter_by(
            integration_domain=domain,
            is_active=True
        ).order_by(IntegrationFlowDefinition.version.desc()).first()

    def get_flow_definition(self, domain: str, version: Optional[int] = None) -> Optional[IntegrationFlowDefinition]:
        """
        Definition for a domain.

        Args:
            domain: Integration domain
            version: Exact version; when omitted the active version is
                returned, falling back to the latest default version

        Returns:
            Record or None
        """
        if version is not None:
            return IntegrationFlowDefinition.query.filter_by(
                integration_domain=domain,
                version=version
            ).first()

        active = self.get_active(domain)
        if active:
            return active

        return IntegrationFlowDefinition.query.filter_by(
            integration_domain=domain,
            is_default=True
        ).order_by(IntegrationFlowDefinition.version.desc()).first()

    def get_versions(self, domain: str) -> List[IntegrationFlowDefinition]:
        return IntegrationFlowDefinition.query.filter_by(
            integration_domain=domain
        ).order_by(IntegrationFlowDefinition.version.desc()).all()

    def update(self, definition_id: str, **updates) -> IntegrationFlowDefinition:
        """
        Patch a definition record.

        Only definition, handler_class, handler_config, description,
        is_active and is_default can change. An empty patch returns the
        record untouched.

        Raises:
            FlowDefinitionNotFoundError: no record with that id
            InvalidFlowDefinitionError: patched definition fails validation
        """
        record = self.get_by_id(definition_id)
        if not record:
            raise FlowDefinitionNotFoundError(definition_id)

        patch = {key: value for key, value in updates.items() if key in UPDATABLE_FIELDS}
        if not patch:
            return record

        if patch.get('definition') is not None:
            _ensure_valid(patch['definition'])

        try:
            # Deactivate first so the active-per-domain index never sees two rows
            if patch.get('is_active'):
                IntegrationFlowDefinition.deactivate_others(record.integration_domain, exclude_id=record.id)

            for key, value in patch.items():
                if key in ('handler_class', 'handler_config', 'description'):
                    value = value or None
                setattr(record, key, value)
            record.updated_at = datetime.utcnow()
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        self._notify(record.integration_domain)
        return record

    def activate(self, definition_id: str) -> IntegrationFlowDefinition:
        record = self.update(definition_id, is_active=True)
        logger.info(f"Activated flow definition {record.integration_domain} v{record.version}")
        return record

    def deactivate(self, definition_id: str) -> IntegrationFlowDefinition:
        return self.update(definition_id, is_active=False)

    def delete(self, definition_id: str) -> None:
        """
        Raises:
            FlowDefinitionNotFoundError: nothing was deleted
        """
        record = self.get_by_id(definition_id)
        domain = record.integration_domain if record else None

        try:
            deleted = IntegrationFlowDefinition.query.filter_by(id=definition_id).delete(
                synchronize_session='fetch'
            )
            if deleted == 0:
                raise FlowDefinitionNotFoundError(definition_id)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        self._notify(domain)

    def list(
        self,
        filters: Optional[Dict[str, Any]] = None,
        page: int = 1,
        limit: int = 50,
        sort: str = 'created_at',
        order: str = 'desc'
    ) -> Dict[str, Any]:
        """
        Paginated listing.

        Args:
            filters: Any of domain, flow_type, is_active, is_default, version
            page: 1-based page number
            limit: Page size
            sort: Column name; unknown columns fall back to created_at
            order: 'asc' or 'desc'

        Returns:
            {'definitions', 'total', 'page', 'limit', 'total_pages'}
        """
        page = page or 1
        limit = limit or 50
        query = IntegrationFlowDefinition.query

        for key, value in (filters or {}).items():
            column = FILTERABLE_COLUMNS.get(key)
            if column is not None and value is not None:
                query = query.filter(column == value)

        total = query.count()

        sort_column = SORTABLE_COLUMNS.get(sort, IntegrationFlowDefinition.created_at)
        sort_clause = sort_column.asc() if str(order).lower() == 'asc' else sort_column.desc()
        definitions = query.order_by(sort_clause).offset((page - 1) * limit).limit(limit).all()

        return {
            'definitions': definitions,
            'total': total,
            'page': page,
            'limit': limit,
            'total_pages': math.ceil(total / limit) if total else 0,
        }


flow_definition_registry = FlowDefinitionRegistry()
