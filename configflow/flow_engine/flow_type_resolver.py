"""
Flow Type Resolver - maps an integration domain to its flow type.

Lookup order: cache -> flow definition record -> integration_catalog row ->
forced OAuth list -> manual. Results are cached per domain without expiry
until clear_cache / clear_cache_for_domain is called.
"""

import json
import logging
from typing import Any, Dict, Optional

from configflow.flow_engine.types import (
    DEFAULT_OAUTH_SCOPES,
    FlowType,
    default_oauth_provider,
    is_forced_oauth_domain,
)
from configflow.models.catalog import IntegrationCatalog

logger = logging.getLogger(__name__)


def _parse_json(value: Any) -> Any:
    if isinstance(value, str):
        return json.loads(value)
    return value


def _default_oauth_config(domain: str) -> Dict[str, Any]:
    return {
        'oauth_provider': default_oauth_provider(domain),
        'scopes': list(DEFAULT_OAUTH_SCOPES.get(domain, [])),
    }


def convert_definition_to_config(definition: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Legacy flow_config view of a FlowDefinition (extra keys preserved)"""
    if not definition or not definition.get('steps'):
        return {}

    config = dict(definition)
    config['steps'] = [
        {
            'step_id': step.get('step_id'),
            'title': step.get('title'),
            'description': step.get('description'),
            'schema': step.get('schema'),
            'condition': step.get('condition'),
        }
        for step in definition['steps']
    ]
    return config


class FlowTypeResolver:
    def __init__(self, loader=None):
        self._loader = loader
        self._cache: Dict[str, Dict[str, Any]] = {}

    @property
    def loader(self):
        if self._loader is None:
            from configflow.flow_engine.definition_loader import flow_definition_loader
            self._loader = flow_definition_loader
        return self._loader

    def get_flow_type(self, domain: str) -> str:
        """
        Flow type for a domain.

        Backing-store errors are logged and degrade to manual (oauth for
        forced domains); the manual fallback is not cached.
        """
        cached = self._cache.get(domain)
        if cached:
            return cached['flow_type']

        try:
            if self._cache_from_record(domain):
                return self._cache[domain]['flow_type']

            row = IntegrationCatalog.get_by_domain(domain)
            if row is None:
                flow_type = FlowType.OAUTH.value if is_forced_oauth_domain(domain) else FlowType.MANUAL.value
                self._cache[domain] = {'flow_type': flow_type, 'flow_config': None, 'metadata': None}
                return flow_type

            flow_type = row.flow_type or FlowType.MANUAL.value
            flow_config = _parse_json(row.flow_config)
            metadata = _parse_json(row.catalog_metadata)

            if is_forced_oauth_domain(domain) and flow_type != FlowType.OAUTH.value:
                flow_type = FlowType.OAUTH.value

            if flow_type == FlowType.OAUTH.value and (
                not flow_config or not flow_config.get('oauth_provider') or not flow_config.get('scopes')
            ):
                defaults = _default_oauth_config(domain)
                flow_config = dict(flow_config or {})
                flow_config['oauth_provider'] = defaults['oauth_provider']
                flow_config['scopes'] = flow_config.get('scopes') or defaults['scopes']

            self._cache[domain] = {'flow_type': flow_type, 'flow_config': flow_config, 'metadata': metadata}
            return flow_type

        except Exception as e:
            logger.error(f"Error getting flow type for {domain}: {e}")
            if is_forced_oauth_domain(domain):
                flow_config = _default_oauth_config(domain)
                flow_config['steps'] = []
                self._cache[domain] = {'flow_type': FlowType.OAUTH.value, 'flow_config': flow_config, 'metadata': None}
                return FlowType.OAUTH.value
            return FlowType.MANUAL.value

    def _cache_from_record(self, domain: str) -> bool:
        record = self.loader.load_record(domain)
        if not record:
            return False

        self._cache[domain] = {
            'flow_type': record['flow_type'],
            'flow_config': convert_definition_to_config(record['definition']),
            'metadata': record.get('handler_config') or {},
        }
        return True

    def get_flow_config(self, domain: str) -> Optional[Dict[str, Any]]:
        cached = self._cache.get(domain)
        if cached and cached.get('flow_config'):
            return cached['flow_config']

        if self._cache_from_record(domain):
            return self._cache[domain]['flow_config']

        self.get_flow_type(domain)
        return (self._cache.get(domain) or {}).get('flow_config') or None

    def get_flow_metadata(self, domain: str) -> Optional[Dict[str, Any]]:
        cached = self._cache.get(domain)
        if cached and cached.get('metadata'):
            return cached['metadata']

        self.get_flow_type(domain)
        return (self._cache.get(domain) or {}).get('metadata') or None

    def clear_cache(self) -> None:
        self._cache.clear()

    def clear_cache_for_domain(self, domain: str) -> None:
        self._cache.pop(domain, None)


flow_type_resolver = FlowTypeResolver()
