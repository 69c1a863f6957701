"""
Dynamic Options - resolves the option list of select/multiselect fields.

Field schema example:
    {
        "type": "select",
        "options": [{"label": "Default", "value": "default"}],
        "dynamicOptions": {
            "source": "api",
            "endpoint": "/api/integrations/hue/bridges",
            "mapping": {"label": "name", "value": "id"}
        }
    }

Sources: "api" (HTTP GET, cached), "field" (options held by another form
value) and "static". Any failure falls back to the static options.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Tuple

import httpx

from configflow.flow_engine.conditional_steps import resolve_path

logger = logging.getLogger(__name__)

DEFAULT_MAPPING = {'label': 'label', 'value': 'value'}


@dataclass
class DynamicOptionsContext:
    integration_id: str
    field_name: str
    form_values: Dict[str, Any] = field(default_factory=dict)


def _label(value: Any) -> str:
    if value is None:
        return 'undefined'
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def map_response_to_options(data: Any, mapping: Dict[str, str]) -> List[Dict[str, Any]]:
    """
    Turn an API payload into [{label, value}] using dot paths from mapping.

    A dict holding a single list is unwrapped ({"bridges": [...]}); any
    other dict becomes a single option.
    """
    if isinstance(data, list):
        return [
            {
                'label': _label(resolve_path(item, mapping['label'])),
                'value': resolve_path(item, mapping['value']),
            }
            for item in data
        ]

    if isinstance(data, dict):
        if len(data) == 1:
            only = next(iter(data.values()))
            if isinstance(only, list):
                return map_response_to_options(only, mapping)
        return [{
            'label': _label(resolve_path(data, mapping['label'])),
            'value': resolve_path(data, mapping['value']),
        }]

    return []


def _static_options(field_schema: Dict[str, Any]) -> List[Dict[str, Any]]:
    options = field_schema.get('options')
    return options if isinstance(options, list) else []


def _is_option_list(value: Any) -> bool:
    return isinstance(value, list) and all(
        isinstance(item, dict) and 'label' in item and 'value' in item
        for item in value
    )


class DynamicOptionsResolver:
    """
    Usage:
        resolver = DynamicOptionsResolver(base_url='http://localhost:3000')
        options = await resolver.resolve_options(field_schema, context)
    """

    def __init__(
        self,
        base_url: str = 'http://localhost:3000',
        cache_ttl: float = 300,
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self.base_url = base_url
        self.cache_ttl = cache_ttl
        self.timeout = timeout
        self.http_client = http_client
        self._cache: Dict[str, Tuple[float, List[Dict[str, Any]]]] = {}

    async def resolve_options(self, field_schema: Dict[str, Any], context: DynamicOptionsContext) -> List[Dict[str, Any]]:
        config = field_schema.get('dynamicOptions')
        if not config:
            return _static_options(field_schema)

        source = config.get('source')
        mapping = config.get('mapping') or DEFAULT_MAPPING

        try:
            if source == 'api':
                if not config.get('endpoint'):
                    raise ValueError("API source requires endpoint")
                return await self._resolve_from_api(config['endpoint'], mapping, context.form_values)

            elif source == 'field':
                if not config.get('field'):
                    raise ValueError("Field source requires field name")
                return self._resolve_from_field(config['field'], mapping, context.form_values)

            return _static_options(field_schema)

        except Exception as e:
            logger.warning(f"Error resolving dynamic options for {context.field_name}: {e}, using static options")
            return _static_options(field_schema)

    def _cache_key(self, endpoint: str, params: Dict[str, Any]) -> str:
        return f"api:{endpoint}:{json.dumps(params or {}, sort_keys=True, default=str)}"

    async def _resolve_from_api(
        self,
        endpoint: str,
        mapping: Dict[str, str],
        form_values: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        cache_key = self._cache_key(endpoint, form_values)
        cached = self._cache.get(cache_key)
        if cached:
            if time.monotonic() - cached[0] < self.cache_ttl:
                return cached[1]
            del self._cache[cache_key]

        params = {
            key: _label(value)
            for key, value in (form_values or {}).items()
            if value is not None
        }
        url = endpoint if endpoint.startswith('http') else f"{self.base_url.rstrip('/')}{endpoint}"

        if self.http_client is not None:
            response = await self.http_client.get(url, params=params)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url, params=params)
        response.raise_for_status()

        options = map_response_to_options(response.json(), mapping)
        self._cache[cache_key] = (time.monotonic(), options)
        return options

    def _resolve_from_field(
        self,
        field_name: str,
        mapping: Dict[str, str],
        form_values: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        value = (form_values or {}).get(field_name)
        if not value:
            return []
        if _is_option_list(value):
            return value
        if isinstance(value, (dict, list)):
            return map_response_to_options(value, mapping)
        return []

    def clear_cache(self) -> None:
        self._cache.clear()

    def invalidate(self, endpoint: str) -> None:
        prefix = f"api:{endpoint}:"
        for key in [k for k in self._cache if k.startswith(prefix)]:
            del self._cache[key]


dynamic_options_resolver = DynamicOptionsResolver()


async def resolve_options(field_schema: Dict[str, Any], context: DynamicOptionsContext) -> List[Dict[str, Any]]:
    return await dynamic_options_resolver.resolve_options(field_schema, context)


def clear_options_cache() -> None:
    dynamic_options_resolver.clear_cache()


def invalidate_cache(endpoint: str) -> None:
    dynamic_options_resolver.invalidate(endpoint)
