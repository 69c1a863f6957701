"""
Flow Definition Loader - caching facade over the registry.

Resolution order for a domain:
1. Active (or default) record from integration_flow_definitions
2. Legacy flow_config from the catalog, converted to a FlowDefinition
3. A synthesized confirm-only definition

OAuth flows always get the oauth_authorize / oauth_callback steps injected.
"""

import copy
import logging
from typing import Any, Dict, List, Optional

from configflow.flow_engine.conditional_steps import determine_next_step, find_step_index
from configflow.flow_engine.definition_registry import flow_definition_registry
from configflow.flow_engine.flow_type_resolver import flow_type_resolver
from configflow.flow_engine.types import (
    STEP_CONFIGURE,
    STEP_CONFIRM,
    STEP_OAUTH_AUTHORIZE,
    STEP_OAUTH_CALLBACK,
    FlowType,
    StepType,
    is_forced_oauth_domain,
)

logger = logging.getLogger(__name__)


def _empty_schema() -> Dict[str, Any]:
    return {'type': 'object', 'properties': {}}


def _confirm_step() -> Dict[str, Any]:
    return {
        'step_id': STEP_CONFIRM,
        'step_type': StepType.CONFIRM.value,
        'title': 'Confirm Device Registration',
        'description': 'Review and confirm device registration',
        'schema': _empty_schema(),
    }


def _has_step(steps: List[Dict[str, Any]], step_id: str) -> bool:
    return any(step.get('step_id') == step_id for step in steps)


def ensure_oauth_steps(domain: str, definition: Dict[str, Any], flow_type: str) -> Dict[str, Any]:
    """
    Inject the OAuth authorize/callback steps when the flow needs them.

    Applies when flow_type or definition['flow_type'] is oauth, or when the
    domain is on the forced OAuth list (which also rewrites flow_type).
    Returns a new dict; the input is never mutated. Running it twice gives
    the same result.
    """
    is_forced = is_forced_oauth_domain(domain)
    if (
        flow_type != FlowType.OAUTH.value
        and definition.get('flow_type') != FlowType.OAUTH.value
        and not is_forced
    ):
        return definition

    enhanced = copy.deepcopy(definition)
    if is_forced:
        enhanced['flow_type'] = FlowType.OAUTH.value
    else:
        enhanced['flow_type'] = definition.get('flow_type') or flow_type

    steps = enhanced.setdefault('steps', [])

    if not _has_step(steps, STEP_OAUTH_AUTHORIZE):
        steps.insert(0, {
            'step_id': STEP_OAUTH_AUTHORIZE,
            'step_type': StepType.OAUTH.value,
            'title': 'Authorize with Provider',
            'description': f"Authorize {domain} account",
            'schema': _empty_schema(),
        })

    if not _has_step(steps, STEP_OAUTH_CALLBACK):
        auth_index = find_step_index(enhanced, STEP_OAUTH_AUTHORIZE)
        steps.insert(auth_index + 1 if auth_index >= 0 else 1, {
            'step_id': STEP_OAUTH_CALLBACK,
            'step_type': StepType.OAUTH.value,
            'title': 'Authorization Callback',
            'description': 'Processing authorization...',
            'schema': _empty_schema(),
        })

    initial_step = enhanced.get('initial_step')
    if not initial_step or initial_step == STEP_CONFIRM or steps[0].get('step_id') == STEP_OAUTH_AUTHORIZE:
        enhanced['initial_step'] = STEP_OAUTH_AUTHORIZE

    return enhanced


def create_default_flow_definition(domain: str) -> Dict[str, Any]:
    """Confirm-only definition used when nothing else is configured"""
    return {
        'flow_type': FlowType.MANUAL.value,
        'name': f"{domain} Configuration Flow",
        'description': f"Configuration flow for {domain}",
        'steps': [_confirm_step()],
        'initial_step': STEP_CONFIRM,
    }


def convert_flow_config_to_definition(
    domain: str,
    flow_config: Dict[str, Any],
    flow_type: str = FlowType.MANUAL.value
) -> Dict[str, Any]:
    """
    Build a FlowDefinition out of a legacy catalog flow_config.

    Every legacy step becomes a wizard step whose schema wraps the flat
    field mapping. A 'user' step is aliased as 'configure' and a terminal
    confirm step is appended when missing.
    """
    legacy_steps = flow_config.get('steps') or []
    steps = []
    for index, step in enumerate(legacy_steps):
        converted = {
            'step_id': step.get('step_id') or f"step_{index + 1}",
            'step_type': StepType.WIZARD.value,
            'title': step.get('title') or f"Step {index + 1}",
            'description': step.get('description'),
            'schema': {'type': 'object', 'properties': step.get('schema') or {}},
        }
        condition = step.get('condition')
        if condition:
            converted['condition'] = {
                'depends_on': condition.get('depends_on'),
                'field': condition.get('field'),
                'operator': condition.get('operator'),
                'value': condition.get('value'),
            }
        steps.append(converted)

    is_oauth = flow_type == FlowType.OAUTH.value
    definition = {
        'flow_type': FlowType.OAUTH.value if is_oauth else FlowType.WIZARD.value,
        'name': f"{domain} Configuration Flow",
        'description': f"Configuration flow for {domain}",
        'steps': steps,
    }
    if steps:
        definition['initial_step'] = steps[0]['step_id']

    # Older flows address the user step as 'configure'
    user_index = find_step_index(definition, 'user')
    if user_index >= 0 and not _has_step(steps, STEP_CONFIGURE):
        alias = copy.deepcopy(steps[user_index])
        alias['step_id'] = STEP_CONFIGURE
        alias['title'] = alias.get('title') or 'Configure'
        steps.append(alias)

    if is_oauth:
        definition = ensure_oauth_steps(domain, definition, flow_type)

    if not _has_step(definition['steps'], STEP_CONFIRM):
        definition['steps'].append(_confirm_step())

    return definition


def get_step_definition(definition: Dict[str, Any], step_id: str) -> Optional[Dict[str, Any]]:
    for step in definition.get('steps') or []:
        if step.get('step_id') == step_id:
            return step
    return None


def get_initial_step_id(definition: Dict[str, Any]) -> Optional[str]:
    if definition.get('initial_step'):
        return definition['initial_step']
    steps = definition.get('steps') or []
    return steps[0].get('step_id') if steps else None


def get_next_step_id(definition: Dict[str, Any], current_step_id: str, flow_data: Dict[str, Any]) -> Optional[str]:
    return determine_next_step(definition, current_step_id, flow_data)


class FlowDefinitionLoader:
    """
    Loads FlowDefinitions per domain.

    Records coming from the registry are cached with their OAuth-enhanced
    definition until the domain is cleared. Legacy and synthesized
    definitions are rebuilt on every load.
    """

    def __init__(self, registry=None, resolver=None):
        self.registry = registry or flow_definition_registry
        self.resolver = resolver or flow_type_resolver
        self._cache: Dict[str, Dict[str, Any]] = {}

    def load(self, domain: str) -> Dict[str, Any]:
        """
        FlowDefinition for a domain. Never fails; errors degrade to the
        confirm-only default.
        """
        cached = self._cache.get(domain)
        if cached:
            return cached['definition']

        try:
            record = self._load_and_cache_record(domain)
            if record:
                return record['definition']

            flow_config = self.resolver.get_flow_config(domain)
            flow_type = self.resolver.get_flow_type(domain)
            if flow_config:
                return convert_flow_config_to_definition(domain, flow_config, flow_type)
        except Exception as e:
            logger.error(f"Error loading flow definition for {domain}: {e}")

        return ensure_oauth_steps(domain, create_default_flow_definition(domain), FlowType.MANUAL.value)

    def load_record(self, domain: str) -> Optional[Dict[str, Any]]:
        """Serialized definition record with the enhanced definition, or None"""
        cached = self._cache.get(domain)
        if cached:
            return cached

        try:
            return self._load_and_cache_record(domain)
        except Exception as e:
            logger.error(f"Error loading flow definition record for {domain}: {e}")
            return None

    def _load_and_cache_record(self, domain: str) -> Optional[Dict[str, Any]]:
        record = self.registry.get_flow_definition(domain)
        if not record:
            return None

        data = record.to_dict()
        data['definition'] = ensure_oauth_steps(domain, data['definition'] or {}, data['flow_type'])
        self._cache[domain] = data
        return data

    def clear_cache(self) -> None:
        self._cache.clear()

    def clear_cache_for_domain(self, domain: str) -> None:
        self._cache.pop(domain, None)

    def invalidate(self, domain: str) -> Dict[str, Any]:
        """Drop the cached entry for a domain and load it again"""
        self.clear_cache_for_domain(domain)
        return self.load(domain)


flow_definition_loader = FlowDefinitionLoader()
